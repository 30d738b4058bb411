"""Unit tests for meshdivert configuration settings."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from meshdivert.config.settings import (
    DivertSettings,
    KubernetesSettings,
    Settings,
    get_settings,
)


class TestSettings:
    """Tests for the main Settings class."""

    def test_default_settings(self) -> None:
        """Test default settings values."""
        settings = Settings()

        assert settings.environment == "development"
        assert settings.is_production is False
        assert settings.observability.log_level == "INFO"
        assert settings.observability.metrics_enabled is True

    def test_settings_from_env(self) -> None:
        """Test settings loaded from environment variables."""
        with patch.dict(
            os.environ,
            {
                "MESHDIVERT_ENVIRONMENT": "production",
                "MESHDIVERT_OBSERVABILITY_LOG_FORMAT": "json",
            },
        ):
            settings = Settings()

            assert settings.environment == "production"
            assert settings.is_production is True
            assert settings.observability.log_format == "json"


class TestDivertSettings:
    """Tests for divert configuration settings."""

    def test_default_divert_settings(self) -> None:
        settings = DivertSettings()

        assert settings.origin_namespace is None
        assert settings.target_namespace is None
        assert settings.service_name is None
        assert settings.max_conflict_retries == 3

    def test_divert_settings_from_env(self) -> None:
        with patch.dict(
            os.environ,
            {
                "MESHDIVERT_DIVERT_ORIGIN_NAMESPACE": "staging",
                "MESHDIVERT_DIVERT_TARGET_NAMESPACE": "cindy",
                "MESHDIVERT_DIVERT_SERVICE_NAME": "service-a",
            },
        ):
            settings = DivertSettings()

            assert settings.origin_namespace == "staging"
            assert settings.target_namespace == "cindy"
            assert settings.service_name == "service-a"

    def test_max_conflict_retries_validation(self) -> None:
        with pytest.raises(ValidationError):
            DivertSettings(max_conflict_retries=-1)


class TestKubernetesSettings:
    """Tests for Kubernetes configuration settings."""

    def test_kubernetes_settings_from_env(self) -> None:
        with patch.dict(
            os.environ,
            {"MESHDIVERT_K8S_IN_CLUSTER": "true", "MESHDIVERT_K8S_CONTEXT": "dev"},
        ):
            settings = KubernetesSettings()

            assert settings.in_cluster is True
            assert settings.context == "dev"
            assert settings.kubeconfig is None


class TestSettingsCache:
    """Tests for settings caching behavior."""

    def test_get_settings_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_cache_cleared_picks_up_environment(self) -> None:
        first = get_settings()

        with patch.dict(os.environ, {"MESHDIVERT_ENVIRONMENT": "staging"}):
            get_settings.cache_clear()
            second = get_settings()

        assert first is not second
        assert second.environment == "staging"

"""meshdivert Settings configuration.

Uses Pydantic Settings for type-safe configuration management
with support for environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from meshdivert.version import __version__


class DivertSettings(BaseSettings):
    """Default divert intent and reconcile behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="MESHDIVERT_DIVERT_",
        extra="ignore",
    )

    origin_namespace: str | None = Field(
        default=None,
        description="Shared staging namespace the service runs in",
    )
    target_namespace: str | None = Field(
        default=None,
        description="Developer namespace receiving diverted traffic",
    )
    service_name: str | None = Field(
        default=None,
        description="Backend service to divert",
    )
    max_conflict_retries: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Re-read and retry attempts after a write conflict",
    )


class KubernetesSettings(BaseSettings):
    """Kubernetes configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MESHDIVERT_K8S_",
        extra="ignore",
    )

    in_cluster: bool = Field(
        default=False,
        description="Whether running inside a Kubernetes cluster",
    )
    kubeconfig: str | None = Field(
        default=None,
        description="Path to kubeconfig file (if not in-cluster)",
    )
    context: str | None = Field(
        default=None,
        description="Kubernetes context to use",
    )


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MESHDIVERT_OBSERVABILITY_",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics",
    )


class Settings(BaseSettings):
    """Main meshdivert configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MESHDIVERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    version: str = Field(default=__version__)
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    divert: DivertSettings = Field(default_factory=DivertSettings)
    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()


"""meshdivert Configuration package.

Centralized configuration management using Pydantic Settings.
"""

from meshdivert.config.settings import Settings, get_settings

__all__: list[str] = ["Settings", "get_settings"]

"""Configuration models and loaders."""

from clinic_console.config.loader import YamlConfigLoader
from clinic_console.config.models import AppConfig, ConfigLoadRequest

__all__ = ["AppConfig", "ConfigLoadRequest", "YamlConfigLoader"]

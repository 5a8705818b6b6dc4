"""Configuration module for the agent proxy."""

from .adapter import AdapterSettings, AuthSettings, EngineSettings
from .core import CORSSettings, LoggingSettings, ServerSettings
from .settings import ConfigurationError, Settings, find_toml_config_file, get_settings


__all__ = [
    "AdapterSettings",
    "AuthSettings",
    "CORSSettings",
    "ConfigurationError",
    "EngineSettings",
    "LoggingSettings",
    "ServerSettings",
    "Settings",
    "find_toml_config_file",
    "get_settings",
]

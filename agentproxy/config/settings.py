import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentproxy.core.logging import LogCategory, get_logger

from .adapter import AdapterSettings, AuthSettings, EngineSettings
from .core import CORSSettings, LoggingSettings, ServerSettings


__all__ = [
    "CONFIG_FILE_ENV_VARS",
    "ConfigurationError",
    "Settings",
    "find_toml_config_file",
    "get_settings",
]


logger = get_logger(__name__)

CONFIG_FILE_ENV_VARS = ("AGENTPROXY_CONFIG", "CONFIG_FILE")


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def find_toml_config_file() -> Path | None:
    """Find the first TOML configuration file in the standard locations.

    Search order:
    1. .agentproxy.toml in current directory
    2. config.toml in XDG_CONFIG_HOME/agentproxy/
    """
    candidates = [Path.cwd() / ".agentproxy.toml"]

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    candidates.append(config_home / "agentproxy" / "config.toml")

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    """
    Configuration settings for the agent proxy server.

    Settings are loaded from environment variables, .env files, and TOML configuration files.
    Environment variables take precedence over TOML file values; explicit
    overrides passed to ``from_config`` (the CLI flags) take precedence over both.
    Nested values use ``__`` in environment names, e.g. ``ADAPTER__VERBOSE=true``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    server: ServerSettings = Field(
        default_factory=ServerSettings,
        description="Server configuration settings",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Process logging configuration",
    )

    cors: CORSSettings = Field(
        default_factory=CORSSettings,
        description="CORS configuration settings",
    )

    adapter: AdapterSettings = Field(
        default_factory=AdapterSettings,
        description="OpenAI adapter behaviour",
    )

    engine: EngineSettings = Field(
        default_factory=EngineSettings,
        description="Execution engine connection settings",
    )

    auth: AuthSettings = Field(
        default_factory=AuthSettings,
        description="Engine session settings",
    )

    @property
    def server_url(self) -> str:
        """Get the complete server URL."""
        return f"http://{self.server.host}:{self.server.port}"

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        **overrides: Any,
    ) -> "Settings":
        """Create Settings from a TOML file, the environment and explicit overrides.

        Args:
            config_path: TOML file to load; discovered when omitted
            **overrides: Section dictionaries (e.g. ``adapter={"verbose": True}``)
                whose ``None`` values are ignored

        Raises:
            ConfigurationError: If the file cannot be read or the values are invalid
        """
        if config_path is None:
            for env_var in CONFIG_FILE_ENV_VARS:
                if os.environ.get(env_var):
                    config_path = Path(os.environ[env_var])
                    break

        if isinstance(config_path, str):
            config_path = Path(config_path)

        if config_path is None:
            config_path = find_toml_config_file()

        config_data: dict[str, Any] = {}
        if config_path is not None:
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}")
            config_data = cls.load_toml_config(config_path)
            logger.info(
                "config_file_loaded",
                path=str(config_path),
                category=LogCategory.CONFIG,
            )

        try:
            settings = cls()
            merged = _merge_file_values(settings, config_data)
            for section, values in overrides.items():
                if isinstance(values, dict):
                    explicit = {k: v for k, v in values.items() if v is not None}
                    if explicit:
                        merged.setdefault(section, {}).update(explicit)
                elif values is not None:
                    merged[section] = values
            return cls.model_validate(merged)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def _merge_file_values(
    settings: "Settings", config_data: dict[str, Any]
) -> dict[str, Any]:
    """Overlay TOML values on the environment-derived settings.

    A TOML value only applies when no environment variable sets the same key.
    """
    merged = settings.model_dump()
    for key, value in config_data.items():
        if key not in merged:
            continue
        if isinstance(value, dict) and isinstance(getattr(settings, key), BaseModel):
            for nested_key, nested_value in value.items():
                env_key = f"{key.upper()}__{nested_key.upper()}"
                if os.getenv(env_key) is None:
                    merged[key][nested_key] = nested_value
        elif os.getenv(key.upper()) is None:
            merged[key] = value
    return merged


def get_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings, turning validation failures into ConfigurationError."""
    return Settings.from_config(config_path=config_path)

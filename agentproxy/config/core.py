"""Core configuration settings - server, CORS, and logging."""

from pydantic import BaseModel, Field, field_validator


# === Server Configuration ===


class ServerSettings(BaseModel):
    """Server-specific configuration settings."""

    host: str = Field(
        default="127.0.0.1",
        description="Server host address",
    )

    port: int = Field(
        default=8000,
        description="Server port number",
        ge=1,
        le=65535,
    )

    reload: bool = Field(
        default=False,
        description="Enable auto-reload for development",
    )

    bypass_mode: bool = Field(
        default=False,
        description="Use the built-in echo engine instead of the real execution engine",
    )


# === CORS Configuration ===


def _split_csv(v: str | list[str]) -> list[str]:
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class CORSSettings(BaseModel):
    """CORS-specific configuration settings."""

    origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:8080",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8080",
        ],
        description="CORS allowed origins (avoid using '*' for security)",
    )

    credentials: bool = Field(
        default=True,
        description="CORS allow credentials",
    )

    methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "OPTIONS"],
        description="CORS allowed methods",
    )

    headers: list[str] = Field(
        default_factory=lambda: [
            "Content-Type",
            "Authorization",
            "Accept",
            "Origin",
            "X-Requested-With",
            "X-Request-ID",
        ],
        description="CORS allowed headers",
    )

    @field_validator("origins", "headers", mode="before")
    @classmethod
    def validate_csv_lists(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated strings into lists."""
        return _split_csv(v)

    @field_validator("methods", mode="before")
    @classmethod
    def validate_cors_methods(cls, v: str | list[str]) -> list[str]:
        """Parse CORS methods from string or list."""
        return [method.upper() for method in _split_csv(v)]


# === Logging Configuration ===


class LoggingSettings(BaseModel):
    """Process logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    format: str = Field(
        default="console",
        description="Logging output format: 'console' for development, 'json' for production",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate and normalize the log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {sorted(valid_levels)}")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate the log format."""
        fmt = v.lower()
        if fmt not in {"console", "json"}:
            raise ValueError("Log format must be 'console' or 'json'")
        return fmt

    @property
    def json_logs(self) -> bool:
        return self.format == "json"

"""Adapter, engine and auth configuration settings."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from agentproxy.models.types import DeveloperPromptMode


class AdapterSettings(BaseModel):
    """Settings that shape how OpenAI requests are translated."""

    developer_prompt_mode: DeveloperPromptMode = Field(
        default=DeveloperPromptMode.DEFAULT,
        description=(
            "When to inject the compatibility developer prompt: "
            "'none' (never), 'default' (only when the caller sent no system message), "
            "'override' (always, keeping the caller's system text)"
        ),
    )

    expose_reasoning_models: bool = Field(
        default=False,
        description="Advertise reasoning-tier models and '<model>-<effort>' variants",
    )

    web_search_request: bool = Field(
        default=False,
        description="Add the engine's web_search tool to every prompt",
    )

    verbose: bool = Field(
        default=False,
        description=(
            "Log full request and prompt payloads and include raw internal "
            "error detail in error responses"
        ),
    )

    default_model: str = Field(
        default="gpt-5",
        description="Model used when a request does not name one",
    )

    @field_validator("developer_prompt_mode", mode="before")
    @classmethod
    def validate_developer_prompt_mode(
        cls, v: str | DeveloperPromptMode
    ) -> DeveloperPromptMode:
        """Accept the mode case-insensitively, with 'disabled' as an alias of 'none'."""
        return DeveloperPromptMode.parse(v)


class EngineSettings(BaseModel):
    """Connection settings for the Responses API execution engine."""

    base_url: str = Field(
        default="https://chatgpt.com/backend-api/codex",
        description="Base URL of the Responses API endpoint",
    )

    timeout: float = Field(
        default=300.0,
        gt=0,
        description="Read timeout in seconds for a single engine stream",
    )

    originator: str = Field(
        default="codex_cli_rs",
        description="Value of the 'originator' header sent to the engine",
    )

    instructions: str | None = Field(
        default=None,
        description="Base instructions sent with every engine request, if any",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate engine base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Engine base URL must start with http:// or https://")
        return v.rstrip("/")


class AuthSettings(BaseModel):
    """Where to look for the engine session."""

    auth_file: Path = Field(
        default_factory=lambda: Path.home() / ".codex" / "auth.json",
        description="Path to the Codex auth file written by `codex login`",
    )

    @field_validator("auth_file", mode="before")
    @classmethod
    def expand_auth_file(cls, v: str | Path) -> Path:
        """Expand '~' in the auth file path."""
        return Path(v).expanduser()

"""Option validators shared by CLI commands."""

import typer

from agentproxy.models.types import DeveloperPromptMode


def validate_port(
    ctx: typer.Context, param: typer.CallbackParam, value: int | None
) -> int | None:
    """Validate port number."""
    if value is None:
        return None

    if value < 1 or value > 65535:
        raise typer.BadParameter("Port must be between 1 and 65535")

    return value


def validate_log_level(
    ctx: typer.Context, param: typer.CallbackParam, value: str | None
) -> str | None:
    """Validate log level."""
    if value is None:
        return None

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if value.upper() not in valid_levels:
        raise typer.BadParameter(f"Log level must be one of: {', '.join(valid_levels)}")

    return value.upper()


def validate_developer_prompt_mode(
    ctx: typer.Context, param: typer.CallbackParam, value: str | None
) -> str | None:
    """Validate developer prompt mode, accepting 'disabled' for 'none'."""
    if value is None:
        return None

    try:
        return DeveloperPromptMode.parse(value).value
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

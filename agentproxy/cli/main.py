"""Main entry point for the agent proxy CLI."""

import os
from pathlib import Path
from typing import Annotated, Any

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from agentproxy._version import __version__
from agentproxy.cli.helpers import code, get_rich_toolkit, warning
from agentproxy.cli.options import (
    validate_developer_prompt_mode,
    validate_log_level,
    validate_port,
)
from agentproxy.config.settings import (
    CONFIG_FILE_ENV_VARS,
    ConfigurationError,
    Settings,
)
from agentproxy.core.logging import get_logger, setup_logging
from agentproxy.engine.presets import DEFAULT_MODEL_PRESETS
from agentproxy.services.model_catalog import ModelCatalog


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        toolkit = get_rich_toolkit()
        toolkit.print(f"agentproxy {__version__}", tag="version")
        raise typer.Exit()


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


@app.callback()
def app_main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """OpenAI Chat Completions compatible proxy for the Codex agent engine."""


ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to a TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        rich_help_panel="Configuration",
    ),
]

ExposeReasoningOption = Annotated[
    bool | None,
    typer.Option(
        "--expose-reasoning-models/--hide-reasoning-models",
        help="Advertise reasoning-tier models and '<model>-<effort>' variants",
        rich_help_panel="Adapter Settings",
    ),
]


def _env_overrides(overrides: dict[str, dict[str, Any]]) -> dict[str, str]:
    """Render CLI overrides as nested environment variables.

    The reloader imports the app factory in a fresh process, so overrides
    travel through the environment there.
    """
    env: dict[str, str] = {}
    for section, values in overrides.items():
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            env[f"{section.upper()}__{key.upper()}"] = str(value)
    return env


def _run_server(
    settings: Settings, overrides: dict[str, dict[str, Any]], config: Path | None
) -> None:
    toolkit = get_rich_toolkit()
    logger = get_logger(__name__)

    toolkit.print_title("Starting agentproxy", tag="agentproxy")
    toolkit.print(f"Listening on {code(settings.server_url)}", tag="info")
    if settings.server.bypass_mode:
        toolkit.print(
            warning("Bypass mode: replies come from the echo engine"), tag="bypass"
        )
    toolkit.print_line()

    logger.debug(
        "server_starting",
        host=settings.server.host,
        port=settings.server.port,
        url=settings.server_url,
        reload=settings.server.reload,
    )

    if settings.server.reload:
        os.environ.update(_env_overrides(overrides))
        if config is not None:
            os.environ[CONFIG_FILE_ENV_VARS[0]] = str(config)
        uvicorn.run(
            app="agentproxy.api.app:create_app",
            factory=True,
            host=settings.server.host,
            port=settings.server.port,
            reload=True,
            log_config=None,
            access_log=False,
            server_header=False,
            reload_includes=["agentproxy"],
        )
        return

    from agentproxy.api.app import create_app

    uvicorn.run(
        app=create_app(settings=settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
        access_log=False,
        server_header=False,
    )


@app.command()
def serve(
    config: ConfigOption = None,
    port: Annotated[
        int | None,
        typer.Option(
            "--port",
            "-p",
            help="Port to run the server on",
            callback=validate_port,
            rich_help_panel="Server Settings",
        ),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option(
            "--host",
            "-h",
            help="Host to bind the server to",
            rich_help_panel="Server Settings",
        ),
    ] = None,
    reload: Annotated[
        bool | None,
        typer.Option(
            "--reload/--no-reload",
            help="Enable auto-reload for development",
            rich_help_panel="Server Settings",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
            callback=validate_log_level,
            rich_help_panel="Logging",
        ),
    ] = None,
    json_logs: Annotated[
        bool | None,
        typer.Option(
            "--json-logs/--console-logs",
            help="Render logs as JSON lines instead of console output",
            rich_help_panel="Logging",
        ),
    ] = None,
    verbose: Annotated[
        bool | None,
        typer.Option(
            "--verbose/--no-verbose",
            help="Log full payloads and include raw error detail in error bodies",
            rich_help_panel="Logging",
        ),
    ] = None,
    expose_reasoning_models: ExposeReasoningOption = None,
    web_search_request: Annotated[
        bool | None,
        typer.Option(
            "--web-search-request/--no-web-search-request",
            help="Add the engine's web_search tool to every request",
            rich_help_panel="Adapter Settings",
        ),
    ] = None,
    developer_prompt_mode: Annotated[
        str | None,
        typer.Option(
            "--developer-prompt-mode",
            help="Compatibility prompt injection: none, default or override",
            callback=validate_developer_prompt_mode,
            rich_help_panel="Adapter Settings",
        ),
    ] = None,
    bypass: Annotated[
        bool | None,
        typer.Option(
            "--bypass/--no-bypass",
            help="Serve canned echo replies without contacting the engine",
            rich_help_panel="Server Settings",
        ),
    ] = None,
) -> None:
    """Start the API server."""
    overrides: dict[str, dict[str, Any]] = {
        "server": {
            "host": host,
            "port": port,
            "reload": reload,
            "bypass_mode": bypass,
        },
        "logging": {
            "level": log_level,
            "format": None
            if json_logs is None
            else ("json" if json_logs else "console"),
        },
        "adapter": {
            "verbose": verbose,
            "expose_reasoning_models": expose_reasoning_models,
            "web_search_request": web_search_request,
            "developer_prompt_mode": developer_prompt_mode,
        },
    }

    try:
        settings = Settings.from_config(config_path=config, **overrides)
        setup_logging(
            json_logs=settings.logging.json_logs,
            log_level_name=settings.logging.level,
        )
        _run_server(settings, overrides, config)
    except ConfigurationError as e:
        toolkit = get_rich_toolkit()
        toolkit.print(f"Configuration error: {e}", tag="error")
        raise typer.Exit(1) from e
    except OSError as e:
        toolkit = get_rich_toolkit()
        toolkit.print(
            f"Server startup failed (port/permission issue): {e}", tag="error"
        )
        raise typer.Exit(1) from e


@app.command()
def models(
    config: ConfigOption = None,
    expose_reasoning_models: ExposeReasoningOption = None,
) -> None:
    """List the models the server advertises."""
    try:
        settings = Settings.from_config(
            config_path=config,
            adapter={"expose_reasoning_models": expose_reasoning_models},
        )
    except ConfigurationError as e:
        toolkit = get_rich_toolkit()
        toolkit.print(f"Configuration error: {e}", tag="error")
        raise typer.Exit(1) from e

    catalog = ModelCatalog(DEFAULT_MODEL_PRESETS)
    expose = settings.adapter.expose_reasoning_models

    table = Table(title="Advertised models")
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Base model")
    table.add_column("Reasoning effort")
    table.add_column("Context window", justify="right")
    for descriptor in catalog.list_models(expose):
        context_window = descriptor.preset.context_window
        table.add_row(
            descriptor.id,
            descriptor.base_model,
            descriptor.reasoning_effort or "default",
            f"{context_window:,}" if context_window else "-",
        )

    Console().print(table)


def main() -> None:
    """Entry point for the ``agentproxy`` console script."""
    app()


if __name__ == "__main__":
    main()

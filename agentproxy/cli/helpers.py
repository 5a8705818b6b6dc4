"""CLI helper utilities."""

from rich_toolkit import RichToolkit, RichToolkitTheme
from rich_toolkit.styles import TaggedStyle


def get_rich_toolkit() -> RichToolkit:
    theme = RichToolkitTheme(
        style=TaggedStyle(tag_width=11),
        theme={
            "tag.title": "white on #009485",
            "tag": "white on #007166",
            "placeholder": "grey85",
            "text": "white",
            "selected": "#007166",
            "result": "grey85",
            "progress": "on #007166",
            "error": "bold red",
            "success": "bold green",
            "warning": "bold yellow",
            "info": "blue",
            "version": "cyan",
            "config": "cyan",
            "engine": "magenta",
            "auth": "bright_blue",
            "bypass": "yellow",
        },
    )

    return RichToolkit(theme=theme)


def warning(text: str) -> str:
    return f"[yellow]{text}[/yellow]"


def code(text: str) -> str:
    return f"[cyan]{text}[/cyan]"

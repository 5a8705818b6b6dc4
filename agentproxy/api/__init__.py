"""HTTP surface of the agent proxy."""

from .app import create_app


__all__ = ["create_app"]

"""Engine session collaborator."""

from .session import CodexAuthFileSession, EngineCredentials, SessionProvider, StaticSession


__all__ = ["CodexAuthFileSession", "EngineCredentials", "SessionProvider", "StaticSession"]

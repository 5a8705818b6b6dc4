"""Read-only per-process context shared by request handlers."""

from dataclasses import dataclass

from agentproxy.adapters.openai.error_mapper import ErrorMapper
from agentproxy.adapters.openai.request_translator import RequestTranslator
from agentproxy.auth.session import CodexAuthFileSession, SessionProvider, StaticSession
from agentproxy.config.settings import Settings
from agentproxy.core.logging import LogCategory, get_logger
from agentproxy.engine.base import ExecutionEngine
from agentproxy.engine.echo import EchoEngine
from agentproxy.engine.responses import ResponsesEngine
from agentproxy.services.model_catalog import ModelCatalog


logger = get_logger(__name__)


@dataclass(frozen=True)
class AppContext:
    """Collaborators every request reads but never mutates.

    Built once at startup and stored on ``app.state.context``. Tests build
    their own context with fake engines and sessions instead of patching
    module globals.
    """

    settings: Settings
    engine: ExecutionEngine
    session: SessionProvider
    catalog: ModelCatalog
    translator: RequestTranslator
    error_mapper: ErrorMapper

    @property
    def expose_reasoning_models(self) -> bool:
        return self.settings.adapter.expose_reasoning_models

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        engine: ExecutionEngine | None = None,
        session: SessionProvider | None = None,
    ) -> "AppContext":
        """Wire the default collaborators for ``settings``.

        Bypass mode swaps in the echo engine and an always-authenticated
        session. Explicit ``engine`` and ``session`` arguments win.
        """
        if session is None:
            if settings.server.bypass_mode:
                session = StaticSession(authenticated=True)
            else:
                session = CodexAuthFileSession(settings.auth.auth_file)

        if engine is None:
            if settings.server.bypass_mode:
                engine = EchoEngine()
            else:
                engine = ResponsesEngine(settings.engine, session)

        logger.debug(
            "app_context_created",
            engine=engine.name,
            bypass_mode=settings.server.bypass_mode,
            category=LogCategory.LIFECYCLE,
        )
        return cls(
            settings=settings,
            engine=engine,
            session=session,
            catalog=ModelCatalog(engine.model_presets()),
            translator=RequestTranslator(settings.adapter),
            error_mapper=ErrorMapper(verbose=settings.adapter.verbose),
        )


__all__ = ["AppContext"]

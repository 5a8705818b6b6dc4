"""Map adapter failures onto OpenAI error bodies and HTTP statuses."""

from agentproxy.core.errors import AdapterError
from agentproxy.models.openai import OpenAIErrorResponse


INTERNAL_ERROR_MESSAGE = "The server hit an unexpected internal error"
INTERNAL_ERROR_TYPE = "internal_error"


class ErrorMapper:
    """Converts exceptions into ``(status, OpenAIErrorResponse)`` pairs.

    ``AdapterError`` subclasses carry their own status and type. Anything
    else is an unexpected fault and maps to 500. Raw diagnostic text is only
    included when ``verbose`` is set, because it can echo request content.
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def map(self, exc: BaseException) -> tuple[int, OpenAIErrorResponse]:
        if isinstance(exc, AdapterError):
            message = exc.message
            if self.verbose and exc.diagnostic:
                message = f"{message}: {exc.diagnostic}"
            return exc.status_code, OpenAIErrorResponse.create(
                message=message,
                error_type=exc.error_type,
                code=exc.code,
            )

        message = INTERNAL_ERROR_MESSAGE
        if self.verbose:
            message = f"{message}: {type(exc).__name__}: {exc}"
        return 500, OpenAIErrorResponse.create(
            message=message, error_type=INTERNAL_ERROR_TYPE
        )


__all__ = ["ErrorMapper", "INTERNAL_ERROR_MESSAGE", "INTERNAL_ERROR_TYPE"]

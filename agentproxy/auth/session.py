"""Engine session detection.

The adapter only needs to know whether a usable session exists and, for the
Responses engine, which bearer credentials to send. Obtaining and refreshing
credentials is left to ``codex login``.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

import jwt

from agentproxy.core.logging import LogCategory, get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineCredentials:
    """Bearer credentials for the execution engine."""

    access_token: str
    account_id: str | None = None
    expires_at: datetime | None = None
    api_key: bool = False

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))


@runtime_checkable
class SessionProvider(Protocol):
    """Answers whether a usable engine session is present."""

    def has_usable_session(self) -> bool: ...

    def load_credentials(self) -> EngineCredentials | None: ...


class CodexAuthFileSession:
    """Session backed by the auth file that ``codex login`` writes."""

    def __init__(self, auth_file: Path) -> None:
        self.auth_file = auth_file

    def load_credentials(self) -> EngineCredentials | None:
        """Read credentials from the auth file.

        Returns:
            Credentials when the file holds an API key or an unexpired access
            token, None otherwise
        """
        try:
            data = json.loads(self.auth_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug(
                "auth_file_missing",
                path=str(self.auth_file),
                category=LogCategory.AUTH,
            )
            return None
        except (OSError, ValueError) as e:
            logger.warning(
                "auth_file_unreadable",
                path=str(self.auth_file),
                error=str(e),
                category=LogCategory.AUTH,
            )
            return None

        if not isinstance(data, dict):
            return None

        api_key = data.get("OPENAI_API_KEY")
        if isinstance(api_key, str) and api_key.strip():
            return EngineCredentials(access_token=api_key.strip(), api_key=True)

        tokens = data.get("tokens") or {}
        access_token = tokens.get("access_token") if isinstance(tokens, dict) else None
        if not isinstance(access_token, str) or not access_token:
            logger.debug(
                "no_access_token",
                path=str(self.auth_file),
                category=LogCategory.AUTH,
            )
            return None

        try:
            expires_at = _extract_expiration_from_token(access_token)
        except ValueError as e:
            logger.warning(
                "access_token_expiration_invalid",
                path=str(self.auth_file),
                error=str(e),
                category=LogCategory.AUTH,
            )
            return None

        account_id = tokens.get("account_id")
        if not isinstance(account_id, str) or not account_id:
            account_id = None
        credentials = EngineCredentials(
            access_token=access_token,
            account_id=account_id,
            expires_at=expires_at,
        )
        if credentials.is_expired():
            logger.info(
                "access_token_expired",
                path=str(self.auth_file),
                expires_at=credentials.expires_at.isoformat()
                if credentials.expires_at
                else None,
                category=LogCategory.AUTH,
            )
            return None
        return credentials

    def has_usable_session(self) -> bool:
        return self.load_credentials() is not None


class StaticSession:
    """Fixed session answer, for bypass mode and tests."""

    def __init__(
        self,
        authenticated: bool = True,
        credentials: EngineCredentials | None = None,
    ) -> None:
        self.authenticated = authenticated
        self.credentials = credentials

    def load_credentials(self) -> EngineCredentials | None:
        if not self.authenticated:
            return None
        return self.credentials or EngineCredentials(access_token="static")

    def has_usable_session(self) -> bool:
        return self.authenticated


def _extract_expiration_from_token(access_token: str) -> datetime | None:
    """Extract expiration time from a JWT access token, if it has one.

    Raises:
        ValueError: The token is a JWT whose ``exp`` claim is not a valid
            Unix timestamp
    """
    try:
        decoded = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        logger.debug("jwt_decode_failed", error=str(e), category=LogCategory.AUTH)
        return None

    exp_timestamp = decoded.get("exp")
    if exp_timestamp is None:
        return None
    if isinstance(exp_timestamp, bool) or not isinstance(exp_timestamp, int | float):
        raise ValueError(f"Cannot parse expiration from {type(exp_timestamp)}")
    try:
        return datetime.fromtimestamp(exp_timestamp, tz=UTC)
    except (OverflowError, OSError, ValueError) as e:
        raise ValueError(f"Expiration out of range: {exp_timestamp}") from e


__all__ = [
    "CodexAuthFileSession",
    "EngineCredentials",
    "SessionProvider",
    "StaticSession",
]

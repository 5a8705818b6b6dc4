"""Tests for Codex auth file session detection."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import jwt
import pytest

from agentproxy.auth.session import (
    CodexAuthFileSession,
    EngineCredentials,
    SessionProvider,
    StaticSession,
)


pytestmark = pytest.mark.unit


def make_token(expires_in: timedelta | None) -> str:
    claims: dict[str, Any] = {"sub": "user-1"}
    if expires_in is not None:
        claims["exp"] = int((datetime.now(UTC) + expires_in).timestamp())
    return jwt.encode(claims, "test-secret", algorithm="HS256")


def write_auth_file(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def auth_file(tmp_path: Path) -> Path:
    return tmp_path / "auth.json"


class TestCodexAuthFileSession:
    def test_missing_file(self, auth_file: Path) -> None:
        session = CodexAuthFileSession(auth_file)

        assert not session.has_usable_session()
        assert session.load_credentials() is None

    def test_unreadable_json(self, auth_file: Path) -> None:
        auth_file.write_text("{not json", encoding="utf-8")
        assert not CodexAuthFileSession(auth_file).has_usable_session()

    def test_valid_token(self, auth_file: Path) -> None:
        token = make_token(timedelta(hours=1))
        write_auth_file(
            auth_file, {"tokens": {"access_token": token, "account_id": "acct-1"}}
        )

        credentials = CodexAuthFileSession(auth_file).load_credentials()

        assert credentials is not None
        assert credentials.access_token == token
        assert credentials.account_id == "acct-1"
        assert credentials.expires_at is not None
        assert not credentials.api_key

    def test_expired_token(self, auth_file: Path) -> None:
        write_auth_file(
            auth_file, {"tokens": {"access_token": make_token(timedelta(hours=-1))}}
        )
        assert not CodexAuthFileSession(auth_file).has_usable_session()

    def test_token_without_expiry(self, auth_file: Path) -> None:
        write_auth_file(auth_file, {"tokens": {"access_token": make_token(None)}})

        credentials = CodexAuthFileSession(auth_file).load_credentials()

        assert credentials is not None
        assert credentials.expires_at is None

    def test_opaque_token(self, auth_file: Path) -> None:
        write_auth_file(auth_file, {"tokens": {"access_token": "not-a-jwt"}})
        assert CodexAuthFileSession(auth_file).has_usable_session()

    @pytest.mark.parametrize("exp", ["soon", 10**20, True, [1]])
    def test_malformed_expiry_is_not_usable(self, auth_file: Path, exp: Any) -> None:
        token = jwt.encode(
            {"sub": "user-1", "exp": exp}, "test-secret", algorithm="HS256"
        )
        write_auth_file(auth_file, {"tokens": {"access_token": token}})

        session = CodexAuthFileSession(auth_file)

        assert session.load_credentials() is None
        assert not session.has_usable_session()

    def test_non_string_token_fields(self, auth_file: Path) -> None:
        write_auth_file(auth_file, {"tokens": {"access_token": 12345}})
        assert CodexAuthFileSession(auth_file).load_credentials() is None

        token = make_token(timedelta(hours=1))
        write_auth_file(
            auth_file, {"tokens": {"access_token": token, "account_id": 42}}
        )
        credentials = CodexAuthFileSession(auth_file).load_credentials()

        assert credentials is not None
        assert credentials.account_id is None

    def test_api_key_wins(self, auth_file: Path) -> None:
        write_auth_file(
            auth_file,
            {
                "OPENAI_API_KEY": " sk-test ",
                "tokens": {"access_token": make_token(timedelta(hours=-1))},
            },
        )

        credentials = CodexAuthFileSession(auth_file).load_credentials()

        assert credentials == EngineCredentials(access_token="sk-test", api_key=True)

    @pytest.mark.parametrize(
        "data",
        [[], {"tokens": None}, {"tokens": {"access_token": ""}}, {"OPENAI_API_KEY": None}],
    )
    def test_no_usable_credentials(self, auth_file: Path, data: Any) -> None:
        write_auth_file(auth_file, data)
        assert CodexAuthFileSession(auth_file).load_credentials() is None


class TestStaticSession:
    def test_authenticated(self) -> None:
        session = StaticSession()

        assert isinstance(session, SessionProvider)
        assert session.has_usable_session()
        assert session.load_credentials() == EngineCredentials(access_token="static")

    def test_unauthenticated(self) -> None:
        session = StaticSession(authenticated=False)

        assert not session.has_usable_session()
        assert session.load_credentials() is None


class TestEngineCredentials:
    def test_is_expired(self) -> None:
        now = datetime(2025, 1, 1, tzinfo=UTC)
        credentials = EngineCredentials(access_token="t", expires_at=now)

        assert credentials.is_expired(now)
        assert not credentials.is_expired(now - timedelta(seconds=1))
        assert not EngineCredentials(access_token="t").is_expired()

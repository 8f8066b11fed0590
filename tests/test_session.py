"""Tests for the session store, its storage and the credential channel."""

from __future__ import annotations

import asyncio
import json

import pytest

from api_client.client import CollectApiClient
from api_client.transport import ApiResponse
from dashboard.session import (
    TOKEN_KEY,
    USER_KEY,
    CredentialChannel,
    InMemorySessionStorage,
    JsonFileSessionStorage,
    SessionStore,
)
from shared.errors import AuthError
from tests.fakes import StaticTransport


_USER = {"id": "user-1", "email": "staff@school.edu", "role": "admin"}


def _store(response: ApiResponse | None = None, storage=None) -> tuple[SessionStore, StaticTransport]:
    transport = StaticTransport(response or ApiResponse(status=200, payload={"access_token": "jwt-1", "user": _USER}))
    return SessionStore(CollectApiClient(transport), storage or InMemorySessionStorage()), transport


def test_restore_without_persisted_data_yields_empty_session() -> None:
    store, _ = _store()

    assert store.restore() is None
    assert store.restored is True
    assert store.session.get() is None
    assert store.channel.token is None


def test_restore_requires_both_token_and_user() -> None:
    store, _ = _store(storage=InMemorySessionStorage({TOKEN_KEY: "jwt-1"}))

    assert store.restore() is None
    assert store.channel.token is None


def test_restore_arms_channel_with_persisted_credential() -> None:
    storage = InMemorySessionStorage({TOKEN_KEY: "jwt-9", USER_KEY: json.dumps(_USER)})
    store, transport = _store(storage=storage)

    session = store.restore()

    assert session is not None
    assert session.user.email == "staff@school.edu"
    assert store.channel.token == "jwt-9"
    assert store.is_authenticated is True
    assert transport.requests == []


def test_restore_erases_corrupted_user(caplog) -> None:
    storage = InMemorySessionStorage({TOKEN_KEY: "jwt-9", USER_KEY: "{not json"})
    store, _ = _store(storage=storage)

    assert store.restore() is None
    assert storage.get(TOKEN_KEY) is None
    assert storage.get(USER_KEY) is None
    assert "session_restore_corrupted" in caplog.text


def test_restore_without_persisted_data_clears_active_session() -> None:
    storage = InMemorySessionStorage({TOKEN_KEY: "jwt-1", USER_KEY: json.dumps(_USER)})
    store, _ = _store(storage=storage)
    store.restore()
    storage.remove(TOKEN_KEY)
    storage.remove(USER_KEY)

    assert store.restore() is None
    assert store.session.get() is None
    assert store.channel.token is None


def test_restore_with_corrupted_user_clears_active_session() -> None:
    storage = InMemorySessionStorage({TOKEN_KEY: "jwt-1", USER_KEY: json.dumps(_USER)})
    store, _ = _store(storage=storage)
    store.restore()
    storage.set(USER_KEY, "{not json")

    assert store.restore() is None
    assert store.is_authenticated is False
    assert store.channel.token is None
    assert storage.get(TOKEN_KEY) is None


class _BrokenStorage(InMemorySessionStorage):
    def remove(self, key: str) -> None:
        raise OSError("read-only filesystem")


def test_logout_disarms_channel_even_when_storage_fails() -> None:
    store, _ = _store(storage=_BrokenStorage())
    asyncio.run(store.login("staff@school.edu", "secret"))

    with pytest.raises(OSError):
        store.logout()

    assert store.channel.token is None
    assert store.session.get() is None


def test_login_sets_session_persists_and_arms_channel() -> None:
    storage = InMemorySessionStorage()
    store, transport = _store(storage=storage)

    session = asyncio.run(store.login("staff@school.edu", "secret"))

    assert session.access_token == "jwt-1"
    assert store.session.get() == session
    assert store.channel.token == "jwt-1"
    assert storage.get(TOKEN_KEY) == "jwt-1"
    assert json.loads(storage.get(USER_KEY)) == _USER
    request = transport.requests[0]
    assert request.path == "/auth/login"
    assert request.body == {"email": "staff@school.edu", "password": "secret"}
    assert request.token is None


def test_login_failure_carries_server_message_and_keeps_prior_session() -> None:
    storage = InMemorySessionStorage({TOKEN_KEY: "jwt-9", USER_KEY: json.dumps(_USER)})
    store, _ = _store(ApiResponse(status=401, payload={"message": "Invalid credentials"}), storage=storage)
    store.restore()
    generation = store.channel.generation

    with pytest.raises(AuthError, match="Invalid credentials"):
        asyncio.run(store.login("staff@school.edu", "wrong"))

    assert store.session.get().access_token == "jwt-9"
    assert store.channel.token == "jwt-9"
    assert store.channel.generation == generation
    assert storage.get(TOKEN_KEY) == "jwt-9"


@pytest.mark.parametrize(
    ("operation", "default_message"),
    [("login", "Login failed"), ("register", "Registration failed")],
)
def test_auth_failure_without_message_uses_default(operation: str, default_message: str) -> None:
    store, _ = _store(ApiResponse(status=500, payload=None))

    with pytest.raises(AuthError) as error:
        asyncio.run(getattr(store, operation)("staff@school.edu", "secret"))

    assert error.value.message == default_message
    assert store.session.get() is None
    assert store.channel.token is None


def test_register_uses_register_endpoint() -> None:
    store, transport = _store()

    asyncio.run(store.register("new@school.edu", "secret"))

    assert transport.requests[0].path == "/auth/register"
    assert store.channel.token == "jwt-1"


def test_logout_disarms_channel_and_erases_storage() -> None:
    storage = InMemorySessionStorage()
    store, _ = _store(storage=storage)
    asyncio.run(store.login("staff@school.edu", "secret"))

    store.logout()

    assert store.session.get() is None
    assert store.channel.token is None
    assert storage.get(TOKEN_KEY) is None

    fresh = SessionStore(store.client, storage)
    assert fresh.restore() is None


def test_require_session_raises_when_logged_out() -> None:
    store, _ = _store()

    with pytest.raises(AuthError, match="Authentication required"):
        store.require_session()


def test_session_changes_bump_channel_generation() -> None:
    channel = CredentialChannel()
    before = channel.snapshot()

    channel.arm("jwt-1")
    armed = channel.snapshot()
    channel.disarm()

    assert armed.token == "jwt-1"
    assert channel.is_current(before) is False
    assert channel.is_current(armed) is False
    assert channel.is_current(channel.snapshot()) is True


def test_json_file_storage_round_trips_between_instances(tmp_path) -> None:
    path = tmp_path / "session" / "state.json"
    store, _ = _store(storage=JsonFileSessionStorage(path))
    asyncio.run(store.login("staff@school.edu", "secret"))

    restored, _ = _store(storage=JsonFileSessionStorage(path))

    assert restored.restore().user.id == "user-1"
    assert restored.channel.token == "jwt-1"

    restored.logout()
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_json_file_storage_ignores_unreadable_file(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("garbage", encoding="utf-8")

    assert JsonFileSessionStorage(path).get(TOKEN_KEY) is None

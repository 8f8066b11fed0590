"""Authenticated session store and the credential channel it owns."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from api_client.client import CollectApiClient
from dashboard.state import StateCell
from shared.errors import AuthError
from shared.models import AuthSession, AuthUser


logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class SessionStorage(Protocol):
    def get(self, key: str) -> str | None:
        """Return a persisted value or None."""

    def set(self, key: str, value: str) -> None:
        """Persist a value."""

    def remove(self, key: str) -> None:
        """Erase a persisted value if present."""


class InMemorySessionStorage:
    """Storage living as long as the process, like browser session storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileSessionStorage:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("session_storage_unreadable path=%s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


@dataclass(frozen=True, slots=True)
class Credential:
    """Credential captured at request issuance, tagged with the session generation."""

    token: str | None
    generation: int


class CredentialChannel:
    """Holder of the outgoing bearer credential; only SessionStore mutates it."""

    def __init__(self) -> None:
        self._token: str | None = None
        self._generation = 0

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def generation(self) -> int:
        return self._generation

    def arm(self, token: str) -> None:
        self._token = token
        self._generation += 1

    def disarm(self) -> None:
        self._token = None
        self._generation += 1

    def snapshot(self) -> Credential:
        return Credential(token=self._token, generation=self._generation)

    def is_current(self, credential: Credential) -> bool:
        return credential.generation == self._generation


class SessionStore:
    def __init__(
        self,
        client: CollectApiClient,
        storage: SessionStorage,
        channel: CredentialChannel | None = None,
    ) -> None:
        self.client = client
        self.storage = storage
        self.channel = channel or CredentialChannel()
        self.session: StateCell[AuthSession | None] = StateCell(None, name="session")
        self.restored = False

    @property
    def user(self) -> AuthUser | None:
        session = self.session.get()
        return session.user if session is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self.session.get() is not None

    def restore(self) -> AuthSession | None:
        """Rebuild the session from persisted storage, if both parts are present."""
        token = self.storage.get(TOKEN_KEY)
        raw_user = self.storage.get(USER_KEY)
        self.restored = True

        if not token or not raw_user:
            logger.info("session_restore_empty")
            self._deactivate()
            return None

        try:
            user = AuthUser.model_validate(json.loads(raw_user))
        except (json.JSONDecodeError, PydanticValidationError):
            logger.warning("session_restore_corrupted; erasing persisted session")
            self._deactivate()
            self._erase_persisted()
            return None

        session = AuthSession(access_token=token, user=user)
        self._activate(session, persist=False)
        logger.info("session_restored user_id=%s", user.id)
        return session

    async def login(self, email: str, password: str) -> AuthSession:
        try:
            session = await self.client.login(email, password)
        except AuthError:
            logger.info("session_login_failed")
            raise
        self._activate(session, persist=True)
        logger.info("session_login_succeeded user_id=%s", session.user.id)
        return session

    async def register(self, email: str, password: str) -> AuthSession:
        try:
            session = await self.client.register(email, password)
        except AuthError:
            logger.info("session_register_failed")
            raise
        self._activate(session, persist=True)
        logger.info("session_register_succeeded user_id=%s", session.user.id)
        return session

    def logout(self) -> None:
        self.channel.disarm()
        self.session.set(None)
        self._erase_persisted()
        logger.info("session_logged_out")

    def require_session(self) -> AuthSession:
        session = self.session.get()
        if session is None:
            raise AuthError("Authentication required")
        return session

    def _activate(self, session: AuthSession, *, persist: bool) -> None:
        if persist:
            self.storage.set(TOKEN_KEY, session.access_token)
            self.storage.set(USER_KEY, json.dumps(session.user.model_dump()))
        self.channel.arm(session.access_token)
        self.session.set(session)

    def _deactivate(self) -> None:
        if self.session.get() is None and self.channel.token is None:
            return
        self.channel.disarm()
        self.session.set(None)

    def _erase_persisted(self) -> None:
        self.storage.remove(TOKEN_KEY)
        self.storage.remove(USER_KEY)

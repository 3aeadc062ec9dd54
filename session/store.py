import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import BaseModel, Field

from services.schemas import Role

logger = logging.getLogger(__name__)


class SessionKeys:
    IS_LOGGED_IN = "isLoggedIn"
    USER_ID = "userId"
    USER_EMAIL = "userEmail"
    USER_ROLE = "userRole"

    ALL = (IS_LOGGED_IN, USER_ID, USER_EMAIL, USER_ROLE)


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryBackend:
    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileBackend:
    """
    String key-value pairs in one JSON file. Each write rewrites the file;
    nothing coordinates concurrent writers.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            return json.load(fh)

    def _dump(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)


class SessionRecord(BaseModel):
    is_logged_in: bool = False
    user_id: Optional[int] = Field(default=None)
    email: Optional[str] = None
    role: Optional[Role] = None


class SessionStore:
    """
    Typed access to the persisted session. Views read it to gate access;
    login, registration and logout are the only writers.
    """

    def __init__(self, backend: Optional[KeyValueBackend] = None):
        self.backend = backend if backend is not None else MemoryBackend()

    @classmethod
    def from_path(cls, path: Optional[str]) -> "SessionStore":
        return cls(JsonFileBackend(path) if path else MemoryBackend())

    def read(self) -> SessionRecord:
        raw_id = self.backend.get(SessionKeys.USER_ID)
        raw_role = self.backend.get(SessionKeys.USER_ROLE)
        try:
            user_id = int(raw_id) if raw_id else None
        except ValueError:
            logger.warning("Ignoring malformed %s in session: %r", SessionKeys.USER_ID, raw_id)
            user_id = None
        try:
            role = Role(raw_role) if raw_role else None
        except ValueError:
            logger.warning("Ignoring unknown %s in session: %r", SessionKeys.USER_ROLE, raw_role)
            role = None
        return SessionRecord(
            is_logged_in=self.backend.get(SessionKeys.IS_LOGGED_IN) == "true",
            user_id=user_id,
            email=self.backend.get(SessionKeys.USER_EMAIL),
            role=role,
        )

    def write(
        self,
        *,
        user_id: Optional[int] = None,
        email: Optional[str] = None,
        role: Optional[Role] = None,
        is_logged_in: Optional[bool] = None,
    ) -> None:
        """Sets only the fields that are passed."""
        if user_id is not None:
            self.backend.set(SessionKeys.USER_ID, str(user_id))
        if email is not None:
            self.backend.set(SessionKeys.USER_EMAIL, email)
        if role is not None:
            self.backend.set(SessionKeys.USER_ROLE, Role(role).value)
        if is_logged_in is not None:
            self.backend.set(SessionKeys.IS_LOGGED_IN, "true" if is_logged_in else "false")

    def start(self, user_id: int, email: str, role: Role) -> None:
        self.write(user_id=user_id, email=email, role=role, is_logged_in=True)
        logger.info("Session started for user %s (%s)", user_id, Role(role).value)

    def clear(self) -> None:
        for key in SessionKeys.ALL:
            self.backend.remove(key)

    def is_logged_in(self) -> bool:
        return self.read().is_logged_in

    def has_role(self, *roles: Role) -> bool:
        """Route guard: logged in and holding one of `roles` (any role if none given)."""
        record = self.read()
        if not record.is_logged_in:
            return False
        return not roles or record.role in roles

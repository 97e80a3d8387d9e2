"""
Authentication session for CMS access.

The session is an explicit object owned by the caller. Its JWT and user
profile are read and written through an injected storage so the same session
logic works in memory (tests, one-shot commands) or persisted to disk.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from ..models import User

logger = logging.getLogger(__name__)

JWT_TOKEN_KEY = 'jwt'
USER_INFO_KEY = 'user_info'


class TokenStorage(ABC):
    """Key/value storage for session data."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class MemoryTokenStorage(TokenStorage):
    """Process-local storage."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileTokenStorage(TokenStorage):
    """JSON file storage, written atomically."""

    def __init__(self, path: str):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix('.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        temp_path.replace(self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class AuthSession:
    """JWT and user profile of the signed-in volunteer."""

    def __init__(self, storage: Optional[TokenStorage] = None):
        self.storage = storage if storage is not None else MemoryTokenStorage()

    @property
    def token(self) -> Optional[str]:
        return self.storage.get_item(JWT_TOKEN_KEY) or None

    @property
    def user(self) -> Optional[User]:
        raw = self.storage.get_item(USER_INFO_KEY)
        if not raw:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Stored user info is invalid: {e}")
            return None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def store(self, jwt: str, user: User) -> None:
        """Persist a freshly issued token and its user."""
        self.storage.set_item(JWT_TOKEN_KEY, jwt)
        self.storage.set_item(USER_INFO_KEY, user.model_dump_json())
        logger.info(f"Signed in as {user.username}")

    def clear(self) -> None:
        """Forget the token and user."""
        self.storage.remove_item(JWT_TOKEN_KEY)
        self.storage.remove_item(USER_INFO_KEY)
        logger.debug("Auth session cleared")

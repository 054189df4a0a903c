# laundry/accounts/store.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from loguru import logger

from ..errors import DuplicateEmail, NotFound
from ..storage import Collection, CollectionStorage


class CredentialStore:
    """Users collection. Records carry the password digest and salt."""

    def __init__(self, storage: CollectionStorage) -> None:
        self._users = Collection(storage)
        logger.info("Loaded {} users from storage", len(self._users.snapshot()))

    def list_all(self) -> List[Dict[str, Any]]:
        return self._users.snapshot()

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        for u in self._users.snapshot():
            if u.get("email") == email:
                return u
        return None

    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        for u in self._users.snapshot():
            if u.get("id") == user_id:
                return u
        return None

    def insert(self, user: Dict[str, Any]) -> Dict[str, Any]:
        def _insert(users: List[Dict[str, Any]]) -> Dict[str, Any]:
            if any(u.get("email") == user.get("email") for u in users):
                raise DuplicateEmail()
            users.append(dict(user))
            return user

        return self._users.mutate(_insert)

    def update(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        def _update(users: List[Dict[str, Any]]) -> Dict[str, Any]:
            for u in users:
                if u.get("id") == user_id:
                    u.update(fields)
                    return u
            raise NotFound("User not found")

        return self._users.mutate(_update)

    def delete(self, user_id: str) -> Dict[str, Any]:
        def _delete(users: List[Dict[str, Any]]) -> Dict[str, Any]:
            for i, u in enumerate(users):
                if u.get("id") == user_id:
                    return users.pop(i)
            raise NotFound("User not found")

        return self._users.mutate(_delete)

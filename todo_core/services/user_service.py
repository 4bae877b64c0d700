from __future__ import annotations

import logging
import secrets
import threading
from collections.abc import Callable
from datetime import datetime

from todo_core.domain.entities import LEGACY_DEVICE_ID, User
from todo_core.domain.errors import NotFoundError, ValidationError
from todo_core.domain.ports import UserStore
from todo_core.infra.memory import MemoryStorage

logger = logging.getLogger(__name__)

CHAT_DEVICE_PREFIX = "telegram_"


def _check_device_id(device_id: object) -> str:
    if not isinstance(device_id, str) or not device_id.strip():
        raise ValidationError("device_id", device_id, "must be a non-empty string")
    return device_id


def _check_chat_id(chat_id: object, field: str = "telegram_id") -> int:
    if isinstance(chat_id, bool) or not isinstance(chat_id, int) or chat_id <= 0:
        raise ValidationError(field, chat_id, "must be a positive integer")
    return chat_id


class UserService:
    """
    Resolves external identities (device id, chat id) to user records.

    Lookup and creation for get-or-create run under one lock so that
    concurrent first sightings of an identity produce a single record.
    """

    def __init__(
            self,
            storage: UserStore | None = None,
            *,
            clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = storage if storage is not None else MemoryStorage()
        self._clock = clock
        self._identity_lock = threading.Lock()

    @staticmethod
    def generate_device_id() -> str:
        return secrets.token_hex(16)

    def create_user(self, device_id: str, telegram_id: int | None = None) -> User:
        """Create a user, or return the one already holding either identity."""
        _check_device_id(device_id)
        telegram_id = telegram_id or None
        if telegram_id is not None:
            _check_chat_id(telegram_id)
        with self._identity_lock:
            existing = self._store.find_user(device_id=device_id, telegram_id=telegram_id)
            if existing is not None:
                return existing
            return self._create_locked(device_id, telegram_id)

    def get_or_create_by_device_id(self, device_id: str) -> User:
        _check_device_id(device_id)
        with self._identity_lock:
            user = self._store.find_user(device_id=device_id)
            if user is not None:
                return user
            return self._create_locked(device_id, None)

    def get_or_create_by_chat_id(self, chat_id: int) -> User:
        _check_chat_id(chat_id, "chat_id")
        with self._identity_lock:
            user = self._store.find_user(telegram_id=chat_id)
            if user is not None:
                return user
            device_id = f"{CHAT_DEVICE_PREFIX}{chat_id}"
            owner = self._store.find_user(device_id=device_id)
            if owner is not None:
                if owner.telegram_id is not None:
                    raise ValidationError(
                        "device_id", device_id, f"already belongs to chat {owner.telegram_id}"
                    )
                # same identity seen before the chat id was recorded on it
                return self._store.update_user(
                    owner.id, {"telegram_id": chat_id, "updated_at": self._clock()}
                )
            return self._create_locked(device_id, chat_id)

    def get_or_create_legacy_user(self) -> User:
        return self.get_or_create_by_device_id(LEGACY_DEVICE_ID)

    def get_user(self, user_id: int) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def find_by_device_id(self, device_id: str) -> User:
        user = self._store.find_user(device_id=_check_device_id(device_id))
        if user is None:
            raise NotFoundError("user", device_id)
        return user

    def find_by_chat_id(self, chat_id: int) -> User:
        user = self._store.find_user(telegram_id=_check_chat_id(chat_id, "chat_id"))
        if user is None:
            raise NotFoundError("user", chat_id)
        return user

    def update_user(self, user: User) -> User:
        """Persist identity and push token changes; ``updated_at`` is refreshed."""
        _check_device_id(user.device_id)
        telegram_id = user.telegram_id or None
        if telegram_id is not None:
            _check_chat_id(telegram_id)
        with self._identity_lock:
            if self._store.get_user(user.id) is None:
                raise NotFoundError("user", user.id)
            self._ensure_unclaimed(user.id, device_id=user.device_id)
            if telegram_id is not None:
                self._ensure_unclaimed(user.id, telegram_id=telegram_id)
            updated = self._store.update_user(user.id, {
                "device_id": user.device_id,
                "telegram_id": telegram_id,
                "push_token": user.push_token,
                "updated_at": self._clock(),
            })
        if updated is None:
            raise NotFoundError("user", user.id)
        return updated

    def _ensure_unclaimed(self, user_id: int, **identity: object) -> None:
        other = self._store.find_user(**identity)
        if other is not None and other.id != user_id:
            field, value = next(iter(identity.items()))
            raise ValidationError(field, value, f"already belongs to user {other.id}")

    def _create_locked(self, device_id: str, telegram_id: int | None) -> User:
        now = self._clock()
        user = self._store.create_user({
            "device_id": device_id,
            "telegram_id": telegram_id,
            "push_token": None,
            "created_at": now,
            "updated_at": now,
        })
        logger.info("User created id=%s device=%s telegram=%s", user.id, device_id, telegram_id)
        return user

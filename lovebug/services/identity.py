"""IdentityStore interface and the SQLite-backed profile store."""
import logging
from typing import Protocol

from lovebug import database

logger = logging.getLogger(__name__)


class IdentityStore(Protocol):
    def current_user_id(self) -> str | None: ...

    async def set_verified_flag(self, user_id: str) -> bool: ...

    async def get_verified_flag(self, user_id: str) -> bool: ...


class ProfileStore:
    """
    Reads and writes profiles.is_robot_verified for one request's caller.
    The current user is bound at construction from the session token.
    """

    def __init__(self, current_user_id: str | None):
        self._current_user_id = current_user_id

    def current_user_id(self) -> str | None:
        return self._current_user_id

    async def set_verified_flag(self, user_id: str) -> bool:
        # True for an existing profile even when already verified.
        updated = await database.set_robot_verified(user_id)
        if not updated:
            logger.warning("No profile row for user=%s, verified flag not written", user_id)
        return updated

    async def get_verified_flag(self, user_id: str) -> bool:
        return bool(await database.fetch_robot_verified(user_id))

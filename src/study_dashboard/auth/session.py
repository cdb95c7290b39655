# src/study_dashboard/auth/session.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.ports import KeyValueStorage, WarningSink
from ..storage.kv_store import CURRENT_USER_KEY, StorageError
from .users import User

logger = logging.getLogger(__name__)


class AuthService:
    """
    Plaintext credential lookup + the logged-in user.

    The current user is persisted under "currentUser" so a restart keeps the
    session; a stored record that no longer matches the directory is dropped.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        users: Iterable[User],
        *,
        on_warning: WarningSink | None = None,
    ) -> None:
        self._storage = storage
        self._users = list(users)
        self.on_warning = on_warning
        self._current: User | None = None
        self._restore()

    def _warn(self, message: str) -> None:
        logger.warning("%s", message)
        if self.on_warning is not None:
            try:
                self.on_warning(message)
            except Exception:
                logger.exception("Warning sink failed")

    def _restore(self) -> None:
        try:
            raw = self._storage.get(CURRENT_USER_KEY)
        except StorageError as e:
            self._warn(f"Stored session could not be read ({e}); please log in again.")
            return
        if raw is None:
            return
        if not isinstance(raw, dict):
            self._warn("Stored session is malformed; please log in again.")
            return

        user = self.find_user(str(raw.get("id") or ""))
        if user is None:
            self._warn("Stored session refers to an unknown user; please log in again.")
            return
        self._current = user
        logger.info("Session restored user=%s", user.username)

    # ---- directory ----

    @property
    def users(self) -> list[User]:
        return list(self._users)

    def find_user(self, user_id: str) -> User | None:
        for u in self._users:
            if u.id == user_id:
                return u
        return None

    # ---- session ----

    @property
    def current_user(self) -> User | None:
        return self._current

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    def login(self, username: str, password: str) -> User | None:
        found = next(
            (u for u in self._users if u.username == username and u.password == password),
            None,
        )
        if found is None:
            logger.info("Login failed username=%s", username)
            return None

        self._current = found
        try:
            self._storage.set(CURRENT_USER_KEY, found.to_dict())
        except StorageError as e:
            self._warn(f"Session could not be saved ({e}); you will need to log in again next time.")
        logger.info("Login ok username=%s role=%s", found.username, found.role.value)
        return found

    def logout(self) -> None:
        user, self._current = self._current, None
        try:
            self._storage.remove(CURRENT_USER_KEY)
        except StorageError as e:
            self._warn(f"Stored session could not be removed ({e}).")
        if user is not None:
            logger.info("Logout username=%s", user.username)

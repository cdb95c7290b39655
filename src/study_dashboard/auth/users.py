# src/study_dashboard/auth/users.py

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class UserRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


@dataclass(slots=True, frozen=True)
class User:
    id: str
    username: str
    password: str  # plaintext, matched locally
    role: UserRole
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["role"] = self.role.value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        missing = [k for k in ("id", "username", "password") if not data.get(k)]
        if missing:
            raise ValueError(f"user record missing: {', '.join(missing)}")
        return cls(
            id=str(data["id"]),
            username=str(data["username"]),
            password=str(data["password"]),
            role=UserRole(data.get("role") or UserRole.USER),
            name=str(data.get("name") or data["username"]),
        )


DEFAULT_USERS: tuple[User, ...] = (
    User(id="user1", username="alice_student", password="study123", role=UserRole.USER, name="Alice Johnson"),
    User(id="user2", username="aditi", password="aditi123", role=UserRole.USER, name="Aditi Dhiman"),
    User(id="user3", username="neeraj", password="neeraj123", role=UserRole.USER, name="Neeraj Kumar"),
    User(id="user4", username="govt_student", password="student101", role=UserRole.USER, name="Govt Student"),
    User(id="admin1", username="admin", password="NKBadminpass", role=UserRole.ADMIN, name="Administrator"),
)


def load_users(path: str | Path | None) -> list[User]:
    """
    Load the user directory from a JSON list of user records.

    No path -> the built-in demo users. A broken file is an operator error and
    raises ValueError (we do not silently fall back to demo credentials).
    """
    if path is None:
        return list(DEFAULT_USERS)

    path = Path(path)
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError) as e:
        raise ValueError(f"cannot read users file {path}: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"users file {path} must contain a JSON list")

    users = [User.from_dict(item) for item in data if isinstance(item, dict)]
    ids = [u.id for u in users]
    if len(ids) != len(set(ids)):
        raise ValueError(f"users file {path} contains duplicate ids")
    logger.info("Loaded %d user(s) from %s", len(users), path)
    return users

# tests/test_auth.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from study_dashboard.auth.session import AuthService
from study_dashboard.auth.users import DEFAULT_USERS, UserRole, load_users
from study_dashboard.storage.kv_store import CURRENT_USER_KEY

from .fakes import FlakyStorage


def _auth(storage: FlakyStorage, warnings: list[str] | None = None) -> AuthService:
    return AuthService(
        storage,
        DEFAULT_USERS,
        on_warning=warnings.append if warnings is not None else None,
    )


def test_login_with_valid_credentials_persists_current_user(storage: FlakyStorage) -> None:
    auth = _auth(storage)
    user = auth.login("alice_student", "study123")

    assert user is not None and user.id == "user1"
    assert auth.is_authenticated
    assert storage.get(CURRENT_USER_KEY)["username"] == "alice_student"
    assert storage.get(CURRENT_USER_KEY)["role"] == "user"


def test_login_with_bad_credentials(storage: FlakyStorage) -> None:
    auth = _auth(storage)
    assert auth.login("alice_student", "wrong") is None
    assert auth.login("nobody", "study123") is None
    assert auth.current_user is None
    assert storage.get(CURRENT_USER_KEY) is None


def test_session_is_restored_on_restart(storage: FlakyStorage) -> None:
    _auth(storage).login("admin", "NKBadminpass")

    again = _auth(storage)
    assert again.current_user is not None
    assert again.current_user.is_admin


def test_logout_clears_persisted_session(storage: FlakyStorage) -> None:
    auth = _auth(storage)
    auth.login("aditi", "aditi123")
    auth.logout()

    assert auth.current_user is None
    assert storage.get(CURRENT_USER_KEY) is None
    assert _auth(storage).current_user is None


@pytest.mark.parametrize("stored", ["just a string", {"id": "ghost"}, {}])
def test_malformed_or_unknown_session_is_ignored(storage: FlakyStorage, stored) -> None:
    storage.set(CURRENT_USER_KEY, stored)
    warnings: list[str] = []

    auth = _auth(storage, warnings)

    assert auth.current_user is None
    assert len(warnings) == 1


def test_corrupted_session_json_is_ignored(storage: FlakyStorage) -> None:
    storage.put_raw(CURRENT_USER_KEY, "{oops")
    warnings: list[str] = []
    assert _auth(storage, warnings).current_user is None
    assert warnings


def test_login_survives_storage_failure(storage: FlakyStorage) -> None:
    warnings: list[str] = []
    auth = _auth(storage, warnings)
    storage.fail_writes = True

    assert auth.login("neeraj", "neeraj123") is not None
    assert auth.current_user is not None
    assert warnings and "could not be saved" in warnings[0]


def test_find_user_by_id(storage: FlakyStorage) -> None:
    auth = _auth(storage)
    assert auth.find_user("admin1").role == UserRole.ADMIN
    assert auth.find_user("missing") is None


def test_load_users_defaults_and_file(tmp_path: Path) -> None:
    assert [u.username for u in load_users(None)] == [u.username for u in DEFAULT_USERS]

    path = tmp_path / "users.json"
    path.write_text(
        json.dumps(
            [
                {"id": "s1", "username": "sam", "password": "pw", "name": "Sam"},
                {"id": "boss", "username": "boss", "password": "pw2", "role": "admin"},
            ]
        ),
        "utf-8",
    )
    users = load_users(path)
    assert [(u.id, u.role, u.name) for u in users] == [
        ("s1", UserRole.USER, "Sam"),
        ("boss", UserRole.ADMIN, "boss"),
    ]


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"id": "x"}),
        json.dumps([{"id": "x", "username": "a"}]),
        json.dumps([{"id": "x", "username": "a", "password": "p"}, {"id": "x", "username": "b", "password": "q"}]),
    ],
)
def test_load_users_rejects_broken_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "users.json"
    path.write_text(content, "utf-8")
    with pytest.raises(ValueError):
        load_users(path)

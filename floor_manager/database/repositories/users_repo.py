# floor_manager/database/repositories/users_repo.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, List, Mapping, Optional

from ...utils.loggers import log_event
from ...utils.validators import non_empty
from ..schema import User, _to_int, next_id
from ..store import BlobStore

_log = logging.getLogger(__name__)

# Permission levels, weakest first.
LEVELS = ("none", "view", "edit")


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


class UsersRepo:
    """
    Local user list behind the login gate. Passwords are compared as stored;
    a user without a password logs in with any input.
    """

    def __init__(self, store: BlobStore):
        self.store = store

    @contextmanager
    def _blob_tx(self):
        blob = self.store.load()
        yield blob
        self.store.save(blob)

    @staticmethod
    def _ensure_unique(rows, username: str, skip_id: Optional[int] = None) -> None:
        wanted = username.strip().casefold()
        for r in rows:
            if skip_id is not None and _to_int(r.get("id"), 0) == skip_id:
                continue
            if str(r.get("username", "")).strip().casefold() == wanted:
                raise DomainError(f"User '{username.strip()}' already exists.")

    # ---- Queries ----------------------------------------------------------

    def list_users(self) -> List[User]:
        return [User.from_dict(u) for u in self.store.load()["users"]]

    def get(self, user_id: int) -> Optional[User]:
        return next((u for u in self.list_users() if u.id == int(user_id)), None)

    def authenticate(self, username: str, password: str = "") -> Optional[User]:
        """Return the user when the credentials pass the gate, else None."""
        for u in self.list_users():
            if u.username == username:
                if not u.password or u.password == password:
                    log_event(_log, "login", "done", "user logged in", {"user_id": u.id})
                    return u
                log_event(_log, "login", "failed", "wrong password", {"user_id": u.id},
                          level=logging.WARNING)
                return None
        return None

    @staticmethod
    def can(user: User, module: str, level: str = "view") -> bool:
        """True if the user's permission for ``module`` is at least ``level``."""
        if level not in LEVELS:
            raise ValueError(f"Unknown permission level: {level!r}")
        granted = user.permissions.get(module, "none")
        if granted not in LEVELS:
            granted = "none"
        return LEVELS.index(granted) >= LEVELS.index(level)

    # ---- Mutations --------------------------------------------------------

    def add(self, fields: Mapping[str, Any]) -> User:
        username = str(fields.get("username") or "")
        if not non_empty(username):
            raise DomainError("Username cannot be empty.")
        with self._blob_tx() as blob:
            self._ensure_unique(blob["users"], username)
            user = User.from_dict({**fields, "username": username.strip(), "id": next_id(blob["users"])})
            blob["users"].append(user.to_dict())
        return user

    def update(self, user_id: int, fields: Mapping[str, Any]) -> User:
        """Merge fields; an empty password in ``fields`` keeps the current one."""
        fields = dict(fields)
        if not fields.get("password"):
            fields.pop("password", None)
        if "username" in fields and not non_empty(fields["username"]):
            raise DomainError("Username cannot be empty.")
        with self._blob_tx() as blob:
            for idx, row in enumerate(blob["users"]):
                if _to_int(row.get("id"), 0) == int(user_id):
                    if "username" in fields:
                        self._ensure_unique(blob["users"], fields["username"], skip_id=int(user_id))
                    user = User.from_dict({**row, **fields, "id": row["id"]})
                    blob["users"][idx] = user.to_dict()
                    return user
            raise DomainError(f"User #{user_id} not found.")

    def delete(self, user_id: int) -> None:
        with self._blob_tx() as blob:
            blob["users"] = [u for u in blob["users"] if _to_int(u.get("id"), 0) != int(user_id)]

"""Data models for CivicLink."""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from civiclink.core.credentials import SealedCredential
from civiclink.core.exceptions import MalformedRecordError

Row = sqlite3.Row | Mapping[str, Any]

_ACCOUNT_PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "zipcode",
    "state",
    "bio",
    "location",
    "picture_url",
)


def _row_keys(row: Row) -> set[str]:
    return set(row.keys())


def _require(row: Row, keys: set[str], name: str, record: str) -> Any:
    """Get a required, non-null column from a row."""
    if name not in keys or row[name] is None:
        raise MalformedRecordError(f"{record} row is missing required field '{name}'")
    return row[name]


@dataclass(frozen=True)
class Account:
    """A user account.

    The password hash is kept in a ``SealedCredential`` that is left out of
    repr, equality and ``to_dict()``. Use ``is_valid_password`` to check a
    password.
    """

    id: int
    username: str
    is_rep: bool = False
    first_name: str | None = None
    last_name: str | None = None
    zipcode: str | None = None
    state: str | None = None
    bio: str | None = None
    location: str | None = None
    picture_url: str | None = None
    _credential: SealedCredential = field(
        default_factory=lambda: SealedCredential(None), repr=False, compare=False
    )

    @classmethod
    def from_row(cls, row: Row) -> Account:
        """Create an Account from a ``users`` row, sealing its password hash."""
        keys = _row_keys(row)
        profile = {name: row[name] if name in keys else None for name in _ACCOUNT_PROFILE_FIELDS}
        return cls(
            id=_require(row, keys, "id", "users"),
            username=_require(row, keys, "username", "users"),
            is_rep=bool(row["is_rep"]) if "is_rep" in keys and row["is_rep"] is not None else False,
            _credential=SealedCredential(_require(row, keys, "password_hash", "users")),
            **profile,
        )

    @property
    def display_name(self) -> str:
        """Full name when known, otherwise the username."""
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username

    def is_valid_password(self, candidate: str) -> bool:
        """Check a plaintext password against this account's sealed hash."""
        return self._credential.verify(candidate)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict (never includes the hash)."""
        return {
            "id": self.id,
            "username": self.username,
            "is_rep": self.is_rep,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "zipcode": self.zipcode,
            "state": self.state,
            "bio": self.bio,
            "location": self.location,
            "picture_url": self.picture_url,
        }


@dataclass(frozen=True)
class FollowEdge:
    """A follow relationship: ``follower_id`` follows ``followed_id``."""

    id: int
    follower_id: int
    followed_id: int
    # Follower's username at follow time, for display without a join
    username: str

    @classmethod
    def from_row(cls, row: Row) -> FollowEdge:
        """Create a FollowEdge from a ``followers`` row."""
        keys = _row_keys(row)
        return cls(
            id=_require(row, keys, "id", "followers"),
            follower_id=_require(row, keys, "user_id", "followers"),
            followed_id=_require(row, keys, "followed_user_id", "followers"),
            username=_require(row, keys, "username", "followers"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "id": self.id,
            "follower_id": self.follower_id,
            "followed_id": self.followed_id,
            "username": self.username,
        }


@dataclass(frozen=True)
class RepositoryStats:
    """Row counts for the whole store."""

    users: int
    representatives: int
    follows: int

    def to_dict(self) -> dict[str, int]:
        return {"users": self.users, "representatives": self.representatives, "follows": self.follows}

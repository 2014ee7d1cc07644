"""Follow edge storage operations."""

from __future__ import annotations

import logging

from civiclink.core.models import FollowEdge
from civiclink.core.storage.database import Database

logger = logging.getLogger(__name__)


class FollowerStorage:
    """Storage operations for follow edges (follower -> followed).

    In the ``followers`` table ``user_id`` is the follower and
    ``followed_user_id`` the account being followed. ``username`` is a
    snapshot of the follower's username taken when the edge was created.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def follow_user(self, follower_id: int, followed_id: int, username: str) -> bool:
        """Create the edge unless it already exists.

        Relies on the unique index over (user_id, followed_user_id, username):
        concurrent identical calls store one edge and only one of them
        returns True.

        Returns:
            True if a new edge was stored, False if it already existed.
        """
        result = self._db.execute(
            """
            INSERT INTO followers (user_id, followed_user_id, username)
            VALUES (?, ?, ?)
            ON CONFLICT (user_id, followed_user_id, username) DO NOTHING
            """,
            (follower_id, followed_id, username),
        )
        created = result.rowcount > 0
        logger.debug(
            "follow %s -> %s (%s): %s",
            follower_id,
            followed_id,
            username,
            "created" if created else "already following",
        )
        return created

    def unfollow_user(self, follower_id: int, followed_id: int) -> bool:
        """Delete every edge from ``follower_id`` to ``followed_id``.

        Matches on the pair only, so edges recorded under an older username
        snapshot are removed as well.

        Returns:
            True if at least one edge was removed.
        """
        result = self._db.execute(
            "DELETE FROM followers WHERE user_id = ? AND followed_user_id = ?",
            (follower_id, followed_id),
        )
        logger.debug("unfollow %s -> %s: removed %d", follower_id, followed_id, result.rowcount)
        return result.rowcount > 0

    def get_followers(self, user_id: int) -> list[FollowEdge]:
        """Get edges of accounts following ``user_id`` (upstream)."""
        result = self._db.execute(
            "SELECT * FROM followers WHERE followed_user_id = ? ORDER BY id",
            (user_id,),
        )
        return [FollowEdge.from_row(row) for row in result.rows]

    def get_followed(self, user_id: int) -> list[FollowEdge]:
        """Get edges of accounts that ``user_id`` follows (downstream)."""
        result = self._db.execute(
            "SELECT * FROM followers WHERE user_id = ? ORDER BY id",
            (user_id,),
        )
        return [FollowEdge.from_row(row) for row in result.rows]

    def is_following(self, follower_id: int, followed_id: int) -> bool:
        """Check if ``follower_id`` follows ``followed_id`` under any username."""
        result = self._db.execute(
            "SELECT 1 FROM followers WHERE user_id = ? AND followed_user_id = ? LIMIT 1",
            (follower_id, followed_id),
        )
        return bool(result.rows)

    def create(self, follower_id: int, followed_id: int, username: str) -> bool:
        """Insert an edge without checking for an existing one.

        For callers that already know the edge is new.

        Raises:
            ConstraintViolationError: The edge already exists.
        """
        result = self._db.execute(
            "INSERT INTO followers (user_id, followed_user_id, username) VALUES (?, ?, ?)",
            (follower_id, followed_id, username),
        )
        return result.rowcount > 0

    def count(self) -> int:
        """Count all edges."""
        return self._db.execute("SELECT COUNT(*) FROM followers").rows[0][0]

    def delete_all(self) -> int:
        """Delete every edge. Returns count deleted."""
        return self._db.execute("DELETE FROM followers").rowcount

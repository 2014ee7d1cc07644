"""Repository that coordinates all storage operations."""

from __future__ import annotations

from pathlib import Path

from civiclink.core.credentials import DEFAULT_BCRYPT_ROUNDS
from civiclink.core.models import RepositoryStats
from civiclink.core.storage.database import DEFAULT_TIMEOUT, Database
from civiclink.core.storage.followers import FollowerStorage
from civiclink.core.storage.users import UserStorage


class SocialRepository:
    """Facade that coordinates users and followers storage."""

    def __init__(
        self,
        db_path: Path,
        *,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._db = Database(db_path, timeout=timeout)

        self.users = UserStorage(self._db, bcrypt_rounds=bcrypt_rounds)
        self.followers = FollowerStorage(self._db)

    @property
    def db_path(self) -> Path:
        return self._db.path

    def close(self) -> None:
        """Close the database connections."""
        self._db.close()

    def __enter__(self) -> SocialRepository:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    def get_stats(self) -> RepositoryStats:
        """Get row counts for the store."""
        return RepositoryStats(
            users=self.users.count(),
            representatives=self.users.count_representatives(),
            follows=self.followers.count(),
        )

    def clear(self) -> None:
        """Clear all data from the database."""
        self.followers.delete_all()
        self.users.delete_all()


def get_default_db_path(project_root: Path) -> Path:
    """Get the default database path for a project."""
    return project_root / ".civiclink" / "civiclink.db"

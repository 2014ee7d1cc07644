"""User storage operations."""

from __future__ import annotations

import builtins
import logging

from civiclink.core.credentials import DEFAULT_BCRYPT_ROUNDS, hash_password, verify_password
from civiclink.core.models import Account
from civiclink.core.storage.database import Database

logger = logging.getLogger(__name__)


class UserStorage:
    """Storage operations for user accounts.

    Every Account handed out is built with ``Account.from_row``, which
    seals the password hash. Username lookups use SQLite's default BINARY
    collation and are therefore case-sensitive.
    """

    def __init__(self, db: Database, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._db = db
        self._bcrypt_rounds = bcrypt_rounds
        self._dummy_hash: str | None = None

    def list(self) -> builtins.list[Account]:
        """Get all accounts. Unpaged."""
        result = self._db.execute("SELECT * FROM users ORDER BY id")
        return [Account.from_row(row) for row in result.rows]

    def find(self, user_id: int) -> Account | None:
        """Get an account by ID, or None if absent."""
        row = self._db.execute("SELECT * FROM users WHERE id = ?", (user_id,)).first()
        return Account.from_row(row) if row is not None else None

    def find_by_username(self, username: str) -> Account | None:
        """Get an account by exact username, or None if absent."""
        row = self._db.execute("SELECT * FROM users WHERE username = ?", (username,)).first()
        return Account.from_row(row) if row is not None else None

    def create(
        self,
        username: str,
        password: str,
        is_rep: bool,
        first_name: str | None,
        last_name: str | None,
        zipcode: str | None,
        state: str | None,
    ) -> Account:
        """Hash the password and insert a new account.

        Raises:
            InvalidInputError: The password is empty or too long.
            ConstraintViolationError: The username is taken.
        """
        password_hash = hash_password(password, rounds=self._bcrypt_rounds)
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO users (username, password_hash, is_rep,
                                   first_name, last_name, zipcode, state)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (username, password_hash, int(bool(is_rep)), first_name, last_name, zipcode, state),
            )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone()
        logger.debug("Created user %s (id=%s)", username, row["id"])
        return Account.from_row(row)

    def update(
        self,
        user_id: int,
        username: str,
        first_name: str | None,
        last_name: str | None,
        picture_url: str | None,
        zipcode: str | None,
        state: str | None,
        location: str | None,
        bio: str | None,
    ) -> Account | None:
        """Overwrite every mutable profile field of an account.

        This is a replace, not a merge: each argument is written as given,
        so a ``None`` clears the stored value. Pass the current value of any
        field that should stay the same. The password hash is not touched.

        Returns the updated account, or None if ``user_id`` does not exist.
        """
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE users
                SET username = ?, first_name = ?, last_name = ?, picture_url = ?,
                    zipcode = ?, state = ?, location = ?, bio = ?
                WHERE id = ?
                """,
                (username, first_name, last_name, picture_url, zipcode, state, location, bio, user_id),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return Account.from_row(row)

    def update_bio(self, user_id: int, bio: str | None) -> Account | None:
        """Set only the bio. Returns None if ``user_id`` does not exist."""
        with self._db.transaction() as conn:
            cursor = conn.execute("UPDATE users SET bio = ? WHERE id = ?", (bio, user_id))
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return Account.from_row(row)

    def is_valid_password(self, account: Account, candidate: str) -> bool:
        """Check a plaintext password against an account's sealed hash."""
        return account.is_valid_password(candidate)

    def authenticate(self, username: str, password: str) -> Account | None:
        """Get the account for a username/password pair, or None.

        An unknown username and a wrong password both give None.
        """
        account = self.find_by_username(username)
        if account is None:
            # Spend the same bcrypt work as a wrong password; timing must not
            # reveal whether the username exists.
            verify_password(password, self._get_dummy_hash())
            return None
        return account if account.is_valid_password(password) else None

    def count(self) -> int:
        """Count all accounts."""
        return self._db.execute("SELECT COUNT(*) FROM users").rows[0][0]

    def count_representatives(self) -> int:
        """Count accounts flagged as representatives."""
        return self._db.execute("SELECT COUNT(*) FROM users WHERE is_rep = 1").rows[0][0]

    def delete_all(self) -> int:
        """Delete every account. Returns count deleted.

        For tests and resets only.
        """
        deleted = self._db.execute("DELETE FROM users").rowcount
        logger.debug("Deleted %d users", deleted)
        return deleted

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = hash_password("civiclink-no-such-user", rounds=self._bcrypt_rounds)
        return self._dummy_hash

"""Password hashing and verification.

Hashes are produced by bcrypt with a fresh salt on every call, so two
hashes of the same password never compare equal. Verification goes
through ``bcrypt.checkpw``, which compares in constant time.

A stored hash that cannot be parsed is treated exactly like a wrong
password: ``verify_password`` returns ``False`` and never raises.
"""

from __future__ import annotations

import logging

import bcrypt

from civiclink.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def _encode_password(plaintext: object) -> bytes:
    if not isinstance(plaintext, str) or not plaintext:
        raise InvalidInputError("Password must be a non-empty string")
    encoded = plaintext.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise InvalidInputError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return encoded


def hash_password(plaintext: str, rounds: int | None = None) -> str:
    """Hash a plaintext password with a new random salt."""
    encoded = _encode_password(plaintext)
    rounds = DEFAULT_BCRYPT_ROUNDS if rounds is None else rounds
    if not MIN_BCRYPT_ROUNDS <= rounds <= MAX_BCRYPT_ROUNDS:
        raise InvalidInputError(
            f"bcrypt rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}"
        )
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(plaintext: str, password_hash: str | bytes | None) -> bool:
    """Return True if ``plaintext`` matches ``password_hash``.

    Bad candidates and malformed hashes both give False.
    """
    try:
        candidate = _encode_password(plaintext)
    except InvalidInputError:
        return False

    if isinstance(password_hash, str):
        try:
            stored = password_hash.encode("ascii")
        except UnicodeEncodeError:
            return False
    elif isinstance(password_hash, bytes):
        stored = password_hash
    else:
        return False

    if not stored:
        return False

    try:
        return bcrypt.checkpw(candidate, stored)
    except ValueError:
        logger.debug("Stored password hash could not be parsed")
        return False


def get_rounds(password_hash: str) -> int | None:
    """Extract the cost factor from a bcrypt hash (``$2b$12$...``)."""
    parts = password_hash.split("$")
    if len(parts) != 4 or not parts[2].isdigit():
        return None
    return int(parts[2])


def needs_rehash(password_hash: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> bool:
    """Check whether a hash was made with a lower cost than ``rounds``."""
    current = get_rounds(password_hash)
    return current is None or current < rounds


class SealedCredential:
    """A password hash that can be checked but not read back.

    Accounts carry one of these instead of the raw hash. It has no
    accessor for the hash and renders as ``<sealed>`` everywhere.
    """

    __slots__ = ("__hash",)

    def __init__(self, password_hash: str | bytes | None) -> None:
        self.__hash = password_hash

    def verify(self, candidate: str) -> bool:
        return verify_password(candidate, self.__hash)

    def __repr__(self) -> str:
        return "SealedCredential(<sealed>)"

    __str__ = __repr__

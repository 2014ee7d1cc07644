"""Runtime settings read from the environment."""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from civiclink.core.credentials import DEFAULT_BCRYPT_ROUNDS, MAX_BCRYPT_ROUNDS, MIN_BCRYPT_ROUNDS
from civiclink.core.exceptions import ConfigurationError
from civiclink.core.storage import get_default_db_path
from civiclink.core.storage.database import DEFAULT_TIMEOUT

ENV_DB_PATH = "CIVICLINK_DB_PATH"
ENV_BCRYPT_ROUNDS = "CIVICLINK_BCRYPT_ROUNDS"
ENV_DB_TIMEOUT = "CIVICLINK_DB_TIMEOUT"


@dataclass(frozen=True)
class Settings:
    """Settings for opening a SocialRepository."""

    db_path: Path
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    db_timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, cwd: Path | None = None) -> Settings:
        """Build settings from ``CIVICLINK_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        root = Path.cwd() if cwd is None else cwd

        raw_path = env.get(ENV_DB_PATH)
        db_path = Path(raw_path).expanduser() if raw_path else get_default_db_path(root)

        rounds = _parse(env, ENV_BCRYPT_ROUNDS, int, DEFAULT_BCRYPT_ROUNDS)
        if not MIN_BCRYPT_ROUNDS <= rounds <= MAX_BCRYPT_ROUNDS:
            raise ConfigurationError(
                f"{ENV_BCRYPT_ROUNDS} must be between {MIN_BCRYPT_ROUNDS} and "
                f"{MAX_BCRYPT_ROUNDS}, got {rounds}"
            )

        timeout = _parse(env, ENV_DB_TIMEOUT, float, DEFAULT_TIMEOUT)
        if not math.isfinite(timeout) or timeout <= 0:
            raise ConfigurationError(f"{ENV_DB_TIMEOUT} must be a positive number, got {timeout}")

        return cls(db_path=db_path, bcrypt_rounds=rounds, db_timeout=timeout)


def _parse(env: Mapping[str, str], name: str, convert: type, default: Any) -> Any:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return convert(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} is not a valid {convert.__name__}: {raw!r}") from e

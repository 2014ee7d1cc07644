"""
Core module: data models, credentials, exceptions, and storage.

This module provides the foundational types and persistence layer:

Models (models.py):
    - Account: A user account with its password hash sealed away
    - FollowEdge: A follower -> followed relationship
    - RepositoryStats: Row counts for the store

Credentials (credentials.py):
    - hash_password / verify_password: bcrypt hashing and checking
    - SealedCredential: Holds a hash that can be verified but not read

Exceptions (exceptions.py):
    - CivicLinkError: Base exception for all civiclink errors
    - InvalidInputError: Rejected input such as an empty password
    - ConstraintViolationError: Duplicate username or edge
    - StorageUnavailableError: Database could not serve the request
    - MalformedRecordError: Storage row missing required fields
    - ConfigurationError: Bad settings

Storage (storage/):
    - SocialRepository: Facade for all database operations
    - Uses SQLite for persistence in .civiclink/civiclink.db
"""

from civiclink.core.credentials import SealedCredential, hash_password, verify_password
from civiclink.core.exceptions import (
    CivicLinkError,
    ConfigurationError,
    ConstraintViolationError,
    InvalidInputError,
    MalformedRecordError,
    StorageUnavailableError,
)
from civiclink.core.models import Account, FollowEdge, RepositoryStats
from civiclink.core.storage import SocialRepository, get_default_db_path

__all__ = [
    # Models
    "Account",
    "FollowEdge",
    "RepositoryStats",
    # Credentials
    "hash_password",
    "verify_password",
    "SealedCredential",
    # Exceptions
    "CivicLinkError",
    "InvalidInputError",
    "ConstraintViolationError",
    "StorageUnavailableError",
    "MalformedRecordError",
    "ConfigurationError",
    # Storage
    "SocialRepository",
    "get_default_db_path",
]

"""
Storage layer: SQLite persistence for accounts and follow edges.

This module provides database operations split by concern:

Components:
    - SocialRepository: Main facade that coordinates all storage
    - Database: Per-thread connections and the parameterized-query boundary
    - UserStorage: CRUD operations for users table
    - FollowerStorage: Follow/unfollow and queries on followers table

Database Schema:
    users: id, username (unique), password_hash, is_rep, first_name, last_name,
           zipcode, state, bio, location, picture_url
    followers: id, user_id (follower), followed_user_id, username (follower snapshot)
               unique on (user_id, followed_user_id, username)

The database is stored at .civiclink/civiclink.db relative to the project root
unless configured otherwise.
"""

from civiclink.core.storage.database import Database, QueryResult
from civiclink.core.storage.followers import FollowerStorage
from civiclink.core.storage.repository import SocialRepository, get_default_db_path
from civiclink.core.storage.users import UserStorage

__all__ = [
    "SocialRepository",
    "Database",
    "QueryResult",
    "UserStorage",
    "FollowerStorage",
    "get_default_db_path",
]

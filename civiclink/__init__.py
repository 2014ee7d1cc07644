"""
CivicLink: account and follow-graph persistence for a civic social app.

Citizens follow representatives. CivicLink owns the two pieces of state
that relationship needs:
- Accounts, with bcrypt password hashes that never leave the record
- Follow edges (follower -> followed), created idempotently

Usage:
    from civiclink.core import SocialRepository, get_default_db_path

    db_path = get_default_db_path(Path("."))
    with SocialRepository(db_path) as repo:
        alice = repo.users.create("alice", "p@ss1", False, "Alice", "Ng", "10001", "NY")
        repo.followers.follow_user(alice.id, 2, alice.username)
"""

__version__ = "0.1.0"

"""Integration tests for account and follow storage."""

import gc
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from threading import Barrier, Thread
from typing import get_type_hints

import pytest

from civiclink.core.models import Account, FollowEdge
from civiclink.core.storage import SocialRepository, UserStorage, get_default_db_path
from civiclink.core.storage.database import Database


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def repository(temp_dir: Path):
    """Create a repository for testing."""
    db_path = get_default_db_path(temp_dir)
    with SocialRepository(db_path, bcrypt_rounds=4) as repo:
        yield repo


@pytest.fixture
def alice(repository: SocialRepository) -> Account:
    """A citizen account."""
    return repository.users.create("alice", "p@ss1", False, "Alice", "Ng", "10001", "NY")


@pytest.fixture
def rep(repository: SocialRepository) -> Account:
    """A representative account."""
    return repository.users.create("rep_jones", "vote4me", True, "Dana", "Jones", "10002", "NY")


class TestUserStorage:
    """Tests for account persistence."""

    def test_create_and_find(self, repository: SocialRepository, alice: Account) -> None:
        """Test that a created account reads back equal in every visible field."""
        found = repository.users.find(alice.id)

        assert found == alice
        assert found is not None
        assert found.to_dict() == alice.to_dict()
        assert "password_hash" not in found.to_dict()

    def test_create_sets_fields(self, alice: Account, rep: Account) -> None:
        assert alice.username == "alice"
        assert alice.is_rep is False
        assert alice.zipcode == "10001"
        assert alice.bio is None
        assert rep.is_rep is True

    def test_stored_hash_is_not_plaintext(self, repository: SocialRepository, alice: Account) -> None:
        row = repository._db.execute(
            "SELECT password_hash FROM users WHERE id = ?", (alice.id,)
        ).first()

        assert row is not None
        assert row["password_hash"] != "p@ss1"
        assert row["password_hash"].startswith("$2")

    def test_login_scenario(self, repository: SocialRepository, alice: Account) -> None:
        """Test find_by_username followed by password checks."""
        account = repository.users.find_by_username("alice")

        assert account is not None
        assert repository.users.is_valid_password(account, "p@ss1")
        assert not repository.users.is_valid_password(account, "wrong")

    def test_username_lookup_is_case_sensitive(
        self, repository: SocialRepository, alice: Account
    ) -> None:
        assert repository.users.find_by_username("Alice") is None

    def test_authenticate(self, repository: SocialRepository, alice: Account) -> None:
        assert repository.users.authenticate("alice", "p@ss1") == alice
        assert repository.users.authenticate("alice", "wrong") is None

    def test_list(self, repository: SocialRepository, alice: Account, rep: Account) -> None:
        accounts = repository.users.list()
        assert accounts == [alice, rep]

    def test_update_replaces_all_fields(
        self, repository: SocialRepository, alice: Account
    ) -> None:
        updated = repository.users.update(
            alice.id,
            "alice2",
            "Alicia",
            "Ngo",
            "https://example.org/a.png",
            "94110",
            "CA",
            "San Francisco",
            "Moved west",
        )

        assert updated is not None
        assert updated.id == alice.id
        assert updated.username == "alice2"
        assert updated.first_name == "Alicia"
        assert updated.picture_url == "https://example.org/a.png"
        assert updated.state == "CA"
        assert updated.location == "San Francisco"
        assert updated.bio == "Moved west"
        assert repository.users.find(alice.id) == updated

    def test_update_is_not_a_merge(self, repository: SocialRepository, alice: Account) -> None:
        """Test that fields a naive caller leaves as None are overwritten."""
        repository.users.update_bio(alice.id, "Keep me")

        updated = repository.users.update(
            alice.id, "alice", "Alice", None, None, None, None, None, None
        )

        assert updated is not None
        assert updated.last_name is None
        assert updated.zipcode is None
        assert updated.state is None
        assert updated.bio is None

    def test_update_keeps_password(self, repository: SocialRepository, alice: Account) -> None:
        updated = repository.users.update(
            alice.id, "alice", "Alice", "Ng", None, "10001", "NY", None, "hi"
        )

        assert updated is not None
        assert updated.is_valid_password("p@ss1")
        assert updated.is_rep is False

    def test_update_bio(self, repository: SocialRepository, alice: Account) -> None:
        updated = repository.users.update_bio(alice.id, "Community organizer")

        assert updated is not None
        assert updated.bio == "Community organizer"
        assert updated.first_name == "Alice"
        assert updated.zipcode == "10001"

    def test_delete_all(self, repository: SocialRepository, alice: Account, rep: Account) -> None:
        assert repository.users.delete_all() == 2
        assert repository.users.list() == []
        assert repository.users.find(alice.id) is None


class TestFollowerStorage:
    """Tests for follow edges."""

    def test_follow_scenario(self, repository: SocialRepository) -> None:
        """Test that a repeated follow is a no-op."""
        assert repository.followers.follow_user(1, 2, "bob") is True
        assert repository.followers.follow_user(1, 2, "bob") is False

        followers = repository.followers.get_followers(2)
        assert len(followers) == 1
        assert followers[0].follower_id == 1
        assert followers[0].followed_id == 2
        assert followers[0].username == "bob"

    def test_direction(self, repository: SocialRepository, alice: Account, rep: Account) -> None:
        """Test that followers and followed are not swapped."""
        repository.followers.follow_user(alice.id, rep.id, alice.username)

        assert [e.follower_id for e in repository.followers.get_followers(rep.id)] == [alice.id]
        assert repository.followers.get_followers(alice.id) == []
        assert [e.followed_id for e in repository.followers.get_followed(alice.id)] == [rep.id]
        assert repository.followers.get_followed(rep.id) == []

    def test_many_followers(self, repository: SocialRepository) -> None:
        for follower_id in (1, 3, 4):
            repository.followers.follow_user(follower_id, 2, f"user{follower_id}")
        repository.followers.follow_user(1, 5, "user1")

        assert {e.follower_id for e in repository.followers.get_followers(2)} == {1, 3, 4}
        assert {e.followed_id for e in repository.followers.get_followed(1)} == {2, 5}

    def test_edges_are_follow_edges(self, repository: SocialRepository) -> None:
        repository.followers.follow_user(1, 2, "bob")
        edge = repository.followers.get_followed(1)[0]

        assert isinstance(edge, FollowEdge)
        assert edge.to_dict()["username"] == "bob"

    def test_unfollow_is_idempotent(self, repository: SocialRepository) -> None:
        repository.followers.follow_user(1, 2, "bob")

        assert repository.followers.unfollow_user(1, 2) is True
        assert repository.followers.unfollow_user(1, 2) is False
        assert repository.followers.get_followers(2) == []

    def test_unfollow_without_edge(self, repository: SocialRepository) -> None:
        assert repository.followers.unfollow_user(1, 2) is False

    def test_unfollow_ignores_username_snapshot(self, repository: SocialRepository) -> None:
        """Test that edges stored under an old username are removed too."""
        repository.followers.follow_user(1, 2, "bob")
        repository.followers.follow_user(1, 2, "bobby")
        assert len(repository.followers.get_followers(2)) == 2

        assert repository.followers.unfollow_user(1, 2) is True
        assert repository.followers.get_followers(2) == []

    def test_unfollow_only_touches_pair(self, repository: SocialRepository) -> None:
        repository.followers.follow_user(1, 2, "bob")
        repository.followers.follow_user(2, 1, "carol")
        repository.followers.follow_user(1, 3, "bob")

        repository.followers.unfollow_user(1, 2)

        assert repository.followers.is_following(2, 1)
        assert repository.followers.is_following(1, 3)
        assert not repository.followers.is_following(1, 2)

    def test_follow_after_unfollow(self, repository: SocialRepository) -> None:
        repository.followers.follow_user(1, 2, "bob")
        repository.followers.unfollow_user(1, 2)

        assert repository.followers.follow_user(1, 2, "bob") is True

    def test_unconditional_create(self, repository: SocialRepository) -> None:
        assert repository.followers.create(1, 2, "bob") is True
        assert repository.followers.follow_user(1, 2, "bob") is False

    def test_follow_graph_independent_of_users(self, repository: SocialRepository) -> None:
        """Test that edges are stored without checking the accounts exist."""
        assert repository.followers.follow_user(100, 200, "ghost") is True


class TestConcurrentFollow:
    """Tests for follow_user under concurrent identical calls."""

    @pytest.mark.parametrize("workers", [2, 8])
    def test_single_winner(self, repository: SocialRepository, workers: int) -> None:
        """Test that concurrent identical follows store one edge with one True."""
        calls = workers * 3
        barrier = Barrier(workers)

        def follow(_: int) -> bool:
            # Release each round of workers together to widen the race
            barrier.wait(timeout=10)
            return repository.followers.follow_user(1, 2, "bob")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(follow, range(calls)))

        assert results.count(True) == 1
        assert results.count(False) == calls - 1
        assert len(repository.followers.get_followers(2)) == 1

    def test_concurrent_unfollow(self, repository: SocialRepository) -> None:
        repository.followers.follow_user(1, 2, "bob")

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: repository.followers.unfollow_user(1, 2), range(8)))

        assert results.count(True) == 1
        assert repository.followers.get_followers(2) == []


class TestRepository:
    """Tests for the repository facade."""

    def test_stats(self, repository: SocialRepository, alice: Account, rep: Account) -> None:
        repository.followers.follow_user(alice.id, rep.id, alice.username)
        stats = repository.get_stats()

        assert stats.users == 2
        assert stats.representatives == 1
        assert stats.follows == 1

    def test_clear(self, repository: SocialRepository, alice: Account, rep: Account) -> None:
        repository.followers.follow_user(alice.id, rep.id, alice.username)
        repository.clear()

        assert repository.get_stats().to_dict() == {"users": 0, "representatives": 0, "follows": 0}

    def test_persists_across_reopen(self, temp_dir: Path) -> None:
        db_path = get_default_db_path(temp_dir)
        with SocialRepository(db_path, bcrypt_rounds=4) as repo:
            created = repo.users.create("alice", "p@ss1", False, None, None, None, None)
            repo.followers.follow_user(created.id, 99, "alice")

        with SocialRepository(db_path, bcrypt_rounds=4) as repo:
            found = repo.users.find_by_username("alice")
            assert found == created
            assert found is not None and found.is_valid_password("p@ss1")
            assert repo.followers.is_following(created.id, 99)

    def test_list_annotation_is_builtin_list(self) -> None:
        """Test that the list() method does not shadow the return type."""
        assert get_type_hints(UserStorage.list)["return"] == list[Account]


class TestConnections:
    """Tests for per-thread connection lifetime."""

    def test_exited_threads_release_connections(self, temp_dir: Path) -> None:
        """Test that short-lived threads do not leave connections behind."""
        db = Database(temp_dir / "threads.db")
        db.execute("SELECT 1")

        for _ in range(50):
            worker = Thread(target=db.execute, args=("SELECT COUNT(*) FROM users",))
            worker.start()
            worker.join()
        gc.collect()

        try:
            assert db.open_connections <= 2
        finally:
            db.close()

    def test_close_releases_everything(self, temp_dir: Path) -> None:
        db = Database(temp_dir / "close.db")
        db.execute("SELECT 1")
        assert db.open_connections == 1

        db.close()

        assert db.open_connections == 0

    def test_schema_recreated_after_file_removed(self, temp_dir: Path) -> None:
        """Test that a closed repository rebuilds its schema on a fresh file."""
        db_path = temp_dir / "reset.db"
        repo = SocialRepository(db_path, bcrypt_rounds=4)
        repo.users.create("alice", "p@ss1", False, None, None, None, None)
        repo.close()

        db_path.unlink()

        try:
            assert repo.users.list() == []
            assert repo.followers.follow_user(1, 2, "bob") is True
        finally:
            repo.close()

"""
Tests for the DatabaseManager class.
"""
import os
import tempfile
from datetime import datetime, timezone

import pytest

from boxsync.exceptions import DuplicateAccountError, StorageError
from boxsync.models.data_models import User, Client, File
from boxsync.services.database_manager import DatabaseManager


def sample_file(path="/test/file.txt", file_hash="abc123"):
    return File(
        path=path,
        hash=file_hash,
        size=1024,
        modified=datetime(2023, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        name=os.path.basename(path)
    )


def test_database_manager_file_operations(db_manager, owner):
    """Test basic CRUD operations on the file index."""
    inserted = db_manager.insert_file(owner.id, sample_file())
    assert inserted.id is not None
    assert inserted.user_id == owner.id

    retrieved = db_manager.get_file(owner.id, "/test/file.txt")
    assert retrieved is not None
    assert retrieved.id == inserted.id
    assert retrieved.hash == "abc123"
    assert retrieved.size == 1024
    assert retrieved.name == "file.txt"
    assert retrieved.modified == datetime(2023, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    db_manager.update_file(inserted.id, sample_file(file_hash="def456"))
    assert db_manager.get_file(owner.id, "/test/file.txt").hash == "def456"

    assert db_manager.get_file_count(owner.id) == 1
    assert db_manager.get_file_count() == 1

    db_manager.delete_file(inserted.id)
    assert db_manager.get_file(owner.id, "/test/file.txt") is None
    assert db_manager.get_file_count(owner.id) == 0


def test_get_files_ordered_and_scoped(db_manager, owner):
    """get_files returns only the owner's rows, ordered by path."""
    other = db_manager.insert_user(User(email="other@example.com", hashed_password="x"))

    db_manager.insert_file(owner.id, sample_file("/b.txt"))
    db_manager.insert_file(owner.id, sample_file("/a.txt"))
    db_manager.insert_file(other.id, sample_file("/c.txt"))

    assert [file.path for file in db_manager.get_files(owner.id)] == ["/a.txt", "/b.txt"]
    assert [file.path for file in db_manager.get_files(other.id)] == ["/c.txt"]


def test_duplicate_path_per_owner_rejected(db_manager, owner):
    """The (user_id, path) pair is unique."""
    db_manager.insert_file(owner.id, sample_file())

    with pytest.raises(StorageError):
        db_manager.insert_file(owner.id, sample_file())


def test_users_and_clients(db_manager):
    """Users and clients round-trip through the database."""
    user = db_manager.insert_user(User(email="me@example.com", hashed_password="hash"))
    assert user.id is not None
    assert db_manager.get_user(user.id).email == "me@example.com"
    assert db_manager.get_user_by_email("me@example.com").id == user.id
    assert db_manager.get_user_by_email("nobody@example.com") is None

    client = db_manager.insert_client(Client(user_id=user.id, session_key="k" * 64))
    fetched = db_manager.get_client_by_session_key("k" * 64)
    assert fetched.id == client.id
    assert fetched.user_id == user.id
    assert db_manager.get_client_by_session_key("missing") is None


def test_duplicate_user_rejected(db_manager, owner):
    """Registering an email twice raises DuplicateAccountError."""
    with pytest.raises(DuplicateAccountError):
        db_manager.insert_user(User(email=owner.email, hashed_password="x"))


def test_file_for_unknown_user_rejected(db_manager):
    """Foreign keys keep file rows tied to existing users."""
    with pytest.raises(StorageError):
        db_manager.insert_file(999, sample_file())


class TestTransaction:
    """Test cases for DatabaseManager.transaction."""

    def test_commit(self, db_manager, owner):
        """Statements in a successful block are committed."""
        with db_manager.transaction() as conn:
            db_manager.insert_file(owner.id, sample_file("/a.txt"), conn=conn)
            db_manager.insert_file(owner.id, sample_file("/b.txt"), conn=conn)

        assert db_manager.get_file_count(owner.id) == 2

    def test_rollback_on_error(self, db_manager, owner):
        """An exception inside the block discards its writes."""
        with pytest.raises(RuntimeError):
            with db_manager.transaction() as conn:
                db_manager.insert_file(owner.id, sample_file("/a.txt"), conn=conn)
                raise RuntimeError("boom")

        assert db_manager.get_file_count(owner.id) == 0

    def test_sqlite_error_wrapped(self, db_manager, owner):
        """SQLite errors inside the block become StorageError."""
        with pytest.raises(StorageError):
            with db_manager.transaction() as conn:
                db_manager.insert_file(owner.id, sample_file("/a.txt"), conn=conn)
                db_manager.insert_file(owner.id, sample_file("/a.txt"), conn=conn)

        assert db_manager.get_file_count(owner.id) == 0

    def test_reads_see_uncommitted_writes(self, db_manager, owner):
        """Lookups on the transaction connection see its own writes."""
        with db_manager.transaction() as conn:
            db_manager.insert_file(owner.id, sample_file("/a.txt"), conn=conn)
            assert db_manager.get_file(owner.id, "/a.txt", conn=conn) is not None


def test_record_counts_and_clear(db_manager, owner):
    """Record counts cover every table and clear_all_records empties them."""
    db_manager.insert_client(Client(user_id=owner.id, session_key="key"))
    db_manager.insert_file(owner.id, sample_file())

    assert db_manager.get_record_counts() == {'users': 1, 'clients': 1, 'files': 1}

    db_manager.clear_all_records()

    assert db_manager.get_record_counts() == {'users': 0, 'clients': 0, 'files': 0}


def test_creates_missing_directory():
    """The database directory is created on demand."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        db_path = os.path.join(tmp_dir, "nested", "index.db")

        DatabaseManager(db_path)

        assert os.path.exists(db_path)

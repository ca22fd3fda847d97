"""
Pytest configuration and fixtures for the boxsync tests.
"""
import os
import pytest
import tempfile
from datetime import datetime

from boxsync.models.config import SyncConfig
from boxsync.models.data_models import File, FileAction, User
from boxsync.services.database_manager import DatabaseManager
from boxsync.services.sync_service import SyncService


@pytest.fixture
def temp_db():
    """Create a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as tmp_file:
        db_path = tmp_file.name

    yield db_path

    # Cleanup
    for suffix in ('', '-journal', '-wal', '-shm'):
        try:
            os.unlink(db_path + suffix)
        except OSError:
            pass


@pytest.fixture
def db_manager(temp_db):
    """Create a DatabaseManager instance for testing."""
    return DatabaseManager(temp_db)


@pytest.fixture
def owner(db_manager):
    """A persisted user owning a file index."""
    return db_manager.insert_user(User(email="owner@example.com", hashed_password="not-a-real-hash"))


@pytest.fixture
def sync_config(temp_db):
    """Create a test sync configuration with a cheap bcrypt cost."""
    return SyncConfig(
        database_path=temp_db,
        api_url="http://localhost:8002",
        bcrypt_rounds=4,
        session_key_bytes=32
    )


@pytest.fixture
def sync_service(sync_config, db_manager):
    """Create a SyncService over the temporary database."""
    return SyncService(sync_config, database_manager=db_manager)


@pytest.fixture
def make_action():
    """Factory for file actions: make_action(is_create, path, hash, **file_fields)."""
    def _make_action(is_create, path, file_hash, size=100,
                     modified=datetime(2015, 2, 9, 14, 39, 22), **kwargs):
        file = File(
            path=path,
            hash=file_hash,
            size=size,
            modified=modified,
            name=os.path.basename(path)
        )
        return FileAction(is_create=is_create, file=file, **kwargs)

    return _make_action

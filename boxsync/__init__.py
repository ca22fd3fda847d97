"""
boxsync - Reconciles client file-action batches against a persisted file index.
"""

from .services.sync_service import SyncService
from .services.action_compactor import compact_file_actions, materialize_files
from .models.config import SyncConfig
from .models.data_models import File, FileAction, User, Client

__version__ = "1.0.0"
__all__ = [
    "SyncService",
    "SyncConfig",
    "compact_file_actions",
    "materialize_files",
    "File",
    "FileAction",
    "User",
    "Client"
]

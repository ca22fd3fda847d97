# Services package
from .database_manager import DatabaseManager
from .action_compactor import compact_file_actions, materialize_files, compute_files
from .action_applier import ActionApplier
from .account_service import AccountService

__all__ = [
    'DatabaseManager',
    'compact_file_actions',
    'materialize_files',
    'compute_files',
    'ActionApplier',
    'AccountService'
]

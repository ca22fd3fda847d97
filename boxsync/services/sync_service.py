"""
Sync service orchestrator: decode, compact and apply client action batches.
"""
from datetime import datetime
from typing import Dict, Any, Iterable, List, Optional
from loguru import logger

from ..exceptions import AuthenticationError
from ..models.config import SyncConfig
from ..models.data_models import Client, File, FileAction, User
from .account_service import AccountService
from .action_applier import ActionApplier
from .action_codec import parse_file_actions
from .action_compactor import compact_file_actions, compute_files
from .database_manager import DatabaseManager


class SyncService:
    """
    Main reconciliation service that turns a client's reported file actions
    into changes to that client's owner's file index.
    """

    def __init__(self, config: SyncConfig, database_manager: Optional[DatabaseManager] = None):
        """
        Initialize sync service with configuration.

        Args:
            config: SyncConfig containing all service configuration
            database_manager: Storage backend; one is opened at
                config.database_path when not given
        """
        self.config = config

        # Initialize components
        self.database_manager = database_manager or DatabaseManager(config.database_path)
        self.account_service = AccountService(
            self.database_manager,
            bcrypt_rounds=config.bcrypt_rounds,
            session_key_bytes=config.session_key_bytes
        )
        self.action_applier = ActionApplier(self.database_manager, create_policy=config.create_policy)

        logger.info("SyncService initialized successfully")

    def sync_file_actions(self, payloads: Iterable[str], client: Client) -> Dict[str, Any]:
        """
        Reconcile one batch of JSON file-action payloads from a client.

        This method implements the complete reconciliation workflow:
        1. Decode every payload (nothing is applied if one is malformed)
        2. Compact the batch to its net effect
        3. Apply the surviving actions to the owner's index in one transaction

        Args:
            payloads: JSON text of each reported file action, in order
            client: Authenticated client that sent the batch

        Returns:
            Dictionary containing batch statistics

        Raises:
            BoxSyncError: Any decode, integrity or storage failure; the index
                is left unchanged
        """
        owner = self._get_owner(client)
        actions = parse_file_actions(payloads, client)
        return self.apply_batch(actions, owner)

    def apply_batch(self, actions: List[FileAction], owner: User) -> Dict[str, Any]:
        """
        Compact decoded actions and apply them for an owner.

        Args:
            actions: Decoded file actions, in reported order
            owner: User whose file index is mutated

        Returns:
            Dictionary containing batch statistics
        """
        sync_stats = {
            'start_time': datetime.now(),
            'user_id': owner.id,
            'actions_received': len(actions),
            'actions_applied': 0,
            'actions_cancelled': 0,
            'files_created': 0,
            'files_replaced': 0,
            'files_deleted': 0
        }

        try:
            simplified = compact_file_actions(actions)
            sync_stats['actions_applied'] = len(simplified)
            sync_stats['actions_cancelled'] = len(actions) - len(simplified)
            logger.info(f"Compacted {len(actions)} actions to {len(simplified)} for user {owner.id}")

            counts = self.action_applier.apply_file_actions(simplified, owner)
            sync_stats['files_created'] = counts['created']
            sync_stats['files_replaced'] = counts['replaced']
            sync_stats['files_deleted'] = counts['deleted']

            sync_stats['end_time'] = datetime.now()
            sync_stats['duration'] = (sync_stats['end_time'] - sync_stats['start_time']).total_seconds()
            sync_stats['success'] = True

            logger.info(f"Batch applied for user {owner.id} - "
                        f"Created: {sync_stats['files_created']}, "
                        f"Replaced: {sync_stats['files_replaced']}, "
                        f"Deleted: {sync_stats['files_deleted']}, "
                        f"Cancelled: {sync_stats['actions_cancelled']}, "
                        f"Duration: {sync_stats['duration']:.3f} seconds")

            return sync_stats

        except Exception as e:
            logger.error(f"Batch apply failed for user {owner.id}: {str(e)}")
            raise

    def preview_files(self, payloads: Iterable[str], client: Optional[Client] = None) -> List[File]:
        """
        Show the files a batch would leave behind, without touching storage.

        Args:
            payloads: JSON text of each reported file action, in order
            client: Client that sent the batch, if known

        Returns:
            File snapshots of the surviving actions
        """
        return compute_files(parse_file_actions(payloads, client))

    def get_files(self, user: User) -> List[File]:
        """Get the current file index of a user."""
        return self.database_manager.get_files(user.id)

    def get_sync_status(self) -> Dict[str, Any]:
        """
        Get current sync service status and statistics.

        Returns:
            Dictionary containing service status information
        """
        try:
            counts = self.database_manager.get_record_counts()

            return {
                'service_status': 'healthy',
                'database_path': self.config.database_path,
                'create_policy': self.config.create_policy,
                'users': counts['users'],
                'clients': counts['clients'],
                'files': counts['files']
            }
        except Exception as e:
            return {
                'service_status': 'error',
                'error': str(e)
            }

    def _get_owner(self, client: Client) -> User:
        user = self.database_manager.get_user(client.user_id)
        if user is None:
            raise AuthenticationError(f"Client {client.id} has no owner")
        return user

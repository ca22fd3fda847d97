"""
Applier for compacted file actions against the SQLite file index.
"""
import logging
import threading
import weakref
from dataclasses import replace
from typing import Dict, Iterable, List

from ..exceptions import ConflictError, MissingTargetError, HashMismatchError
from ..models.data_models import FileAction, User
from .database_manager import DatabaseManager


class ActionApplier:
    """Applies simplified file actions to a user's file index, one batch per transaction."""

    def __init__(self, database_manager: DatabaseManager, create_policy: str = 'reject'):
        """
        Initialize the applier.

        Args:
            database_manager: Storage backend holding the file index
            create_policy: 'reject' raises ConflictError when a creation hits an
                existing path, 'upsert' replaces the existing row
        """
        if create_policy not in ('reject', 'upsert'):
            raise ValueError(f"Invalid create policy: {create_policy}")

        self.db_manager = database_manager
        self.create_policy = create_policy
        self.logger = logging.getLogger(__name__)

        # Entries drop out once no running batch holds the lock
        self._owner_locks: 'weakref.WeakValueDictionary[int, threading.Lock]' = weakref.WeakValueDictionary()
        self._owner_locks_guard = threading.Lock()

    def _owner_lock(self, owner_id: int) -> threading.Lock:
        with self._owner_locks_guard:
            lock = self._owner_locks.get(owner_id)
            if lock is None:
                lock = self._owner_locks[owner_id] = threading.Lock()
            return lock

    def apply_file_actions(self, actions: Iterable[FileAction], owner: User) -> Dict[str, int]:
        """
        Apply a compacted batch of file actions to the owner's file index.

        The batch is all-or-nothing: the first failing action rolls back every
        change made by earlier actions of the same batch, and its error is
        re-raised. Only one batch per owner runs at a time.

        Args:
            actions: Simplified actions, as returned by compact_file_actions
            owner: User whose file index is mutated

        Returns:
            Dictionary with counts of created, replaced and deleted rows

        Raises:
            ConflictError: A creation targets an existing path ('reject' policy)
            MissingTargetError: A deletion targets a path with no row
            HashMismatchError: A deletion's hash differs from the stored row
            StorageError: The underlying SQLite operation failed
        """
        if owner.id is None:
            raise ValueError("Owner must be a persisted user")

        actions: List[FileAction] = list(actions)
        counts = {'created': 0, 'replaced': 0, 'deleted': 0}

        if not actions:
            self.logger.info(f"No file actions to apply for user {owner.id}")
            return counts

        self.logger.info(f"Applying {len(actions)} file actions for user {owner.id}")

        with self._owner_lock(owner.id):
            with self.db_manager.transaction() as conn:
                for index, action in enumerate(actions):
                    try:
                        if action.is_create:
                            outcome = self._apply_create(action, owner, conn)
                        else:
                            outcome = self._apply_delete(action, owner, conn)
                    except Exception as e:
                        self.logger.error(
                            f"Action {index} ({'create' if action.is_create else 'delete'} "
                            f"{action.file.path}) failed, rolling back batch: {e}"
                        )
                        raise
                    counts[outcome] += 1

        self.logger.info(f"Applied file actions for user {owner.id}: {counts}")
        return counts

    def _apply_create(self, action: FileAction, owner: User, conn) -> str:
        """
        Insert the action's file snapshot as a new row.

        Args:
            action: Creation action
            owner: User owning the new row
            conn: Connection of the running batch transaction

        Returns:
            'created' or 'replaced'
        """
        self.logger.debug(f"Handling create for {action.file.path}")

        existing = self.db_manager.get_file(owner.id, action.file.path, conn=conn)
        if existing is not None:
            if self.create_policy != 'upsert':
                raise ConflictError(action.file.path)

            self.db_manager.update_file(existing.id, action.file, conn=conn)
            self.logger.debug(f"Replaced record for {action.file.path}")
            return 'replaced'

        self.db_manager.insert_file(owner.id, replace(action.file, user_id=owner.id), conn=conn)
        self.logger.debug(f"Created record for {action.file.path}")
        return 'created'

    def _apply_delete(self, action: FileAction, owner: User, conn) -> str:
        """
        Delete the row matching the action's path and content hash.

        Args:
            action: Deletion action
            owner: User owning the row
            conn: Connection of the running batch transaction

        Returns:
            'deleted'
        """
        self.logger.debug(f"Handling delete for {action.file.path}")

        existing = self.db_manager.get_file(owner.id, action.file.path, conn=conn)
        if existing is None:
            raise MissingTargetError(action.file.path)

        if existing.hash != action.file.hash:
            raise HashMismatchError(action.file.path, action.file.hash, existing.hash)

        self.db_manager.delete_file(existing.id, conn=conn)
        self.logger.debug(f"Deleted record for {action.file.path}")
        return 'deleted'

#!/usr/bin/env python3
"""
Demo script showing a batch of client file actions being reconciled.

This example demonstrates:
1. Registering a user and opening a client session
2. Compacting a noisy batch (editor swap files, a file edited twice)
3. Applying the net changes to a local SQLite file index
4. An integrity failure rolling back a whole batch
"""

import json
import sys
import tempfile
from pathlib import Path

from loguru import logger

from boxsync.exceptions import BoxSyncError
from boxsync.models.config import SyncConfig
from boxsync.services.action_codec import parse_file_actions
from boxsync.services.action_compactor import compact_file_actions
from boxsync.services.sync_service import SyncService

V1 = "1f" * 32
V2 = "2e" * 32
SWAP = "3d" * 32


def payload(is_create, path, file_hash, size):
    return json.dumps({
        "IsCreate": is_create,
        "File": {
            "Name": Path(path).name,
            "Hash": file_hash,
            "Size": size,
            "Modified": "2015-02-09T14:39:22-05:00",
            "Path": path
        }
    })


def sample_batch():
    """A batch as an editor session might report it."""
    return [
        payload(True, "notes/todo.md", V1, 120),
        payload(True, "notes/.todo.md.swp", SWAP, 4096),
        payload(False, "notes/todo.md", V1, 120),
        payload(True, "notes/todo.md", V2, 180),
        payload(False, "notes/.todo.md.swp", SWAP, 4096),
        payload(True, "README.md", V1, 64),
    ]


def show_compaction(batch):
    actions = parse_file_actions(batch)
    simplified = compact_file_actions(actions)

    print(f"\nBatch of {len(actions)} actions compacts to {len(simplified)}:")
    for action in simplified:
        kind = "create" if action.is_create else "delete"
        print(f"  {kind:<6} {action.file.path} ({action.file.hash[:8]})")


def main():
    logger.remove()
    logger.add(sys.stderr, level="INFO", format="<level>{level: <8}</level> - {message}")

    with tempfile.TemporaryDirectory() as tmp_dir:
        config = SyncConfig(database_path=str(Path(tmp_dir) / "demo.db"), bcrypt_rounds=4)
        service = SyncService(config)

        user = service.account_service.create_user("demo@example.com", "demo-password")
        client = service.account_service.create_client(user)
        print(f"Client session key: {client.session_key}")

        batch = sample_batch()
        show_compaction(batch)

        stats = service.sync_file_actions(batch, client)
        print(f"\nApplied: {stats['files_created']} created, {stats['files_deleted']} deleted, "
              f"{stats['actions_cancelled']} cancelled")

        print("\nFile index:")
        for file in service.get_files(user):
            print(f"  {file.path} ({file.hash[:8]}, {file.size} bytes)")

        # Deleting content the server does not hold rejects the whole batch
        stale_batch = [
            payload(True, "notes/done.md", V1, 10),
            payload(False, "notes/todo.md", V1, 120),
        ]
        try:
            service.sync_file_actions(stale_batch, client)
        except BoxSyncError as e:
            print(f"\nStale batch rejected: {e}")

        print(f"Files after rejected batch: {[file.path for file in service.get_files(user)]}")


if __name__ == "__main__":
    main()

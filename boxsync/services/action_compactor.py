"""
Compaction of client file-action batches.

A batch reported by a client often contains actions that undo each other: a
file created and deleted again, or deleted and restored with the same content.
Compaction removes those pairs so only the net effect is applied to the index.

Pairing is done by counting, not by chronology. Within a ``(path, hash)``
bucket the first ``min(creates, deletes)`` actions of each kind are cancelled
in traversal order, so the survivors are the *last* surplus actions of the
majority kind. Survivors keep their relative input order.
"""
from collections import Counter
from typing import Iterable, List

from ..models.data_models import ActionKey, File, FileAction


def action_key(action: FileAction) -> ActionKey:
    """Bucket key of an action: ``(is_create, path, hash)``."""
    return action.key


def compact_file_actions(actions: Iterable[FileAction]) -> List[FileAction]:
    """
    Drop create/delete pairs that cancel out within a batch.

    Args:
        actions: Ordered file actions as reported by the client

    Returns:
        The surviving actions in their original relative order
    """
    actions = list(actions)
    tally = Counter(action_key(action) for action in actions)

    simplified = []
    for action in actions:
        opposing = action.opposing_key
        if tally[opposing] > 0:
            # cancelled by a counterpart elsewhere in the batch
            tally[opposing] -= 1
        else:
            simplified.append(action)

    return simplified


def materialize_files(simplified: Iterable[FileAction]) -> List[File]:
    """Project the file snapshot out of each action, in order."""
    return [action.file for action in simplified]


def compute_files(actions: Iterable[FileAction]) -> List[File]:
    """Compact a raw batch and return the files it leaves behind."""
    return materialize_files(compact_file_actions(actions))

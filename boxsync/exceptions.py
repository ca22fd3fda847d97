"""
Exception types raised by the reconciliation service.

The compactor and materializer are pure and raise nothing. Everything that
touches a payload, an account or the file index reports failure through one of
the classes below, and callers decide whether to retry the batch, ask the
client for a fresh action list, or surface a sync conflict.
"""
from typing import Optional


class BoxSyncError(Exception):
    """Base class for all service errors."""
    pass


class MalformedInput(BoxSyncError):
    """A client payload could not be decoded into a FileAction."""

    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        if index is not None:
            message = f"Payload {index}: {message}"
        super().__init__(message)


class ConflictError(BoxSyncError):
    """A creation targets a path that already exists in the file index."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File already exists at path: {path}")


class MissingTargetError(BoxSyncError):
    """A deletion targets a path that has no row in the file index."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No file to delete at path: {path}")


class HashMismatchError(BoxSyncError):
    """A deletion names content the index does not hold at that path."""

    def __init__(self, path: str, expected_hash: str, stored_hash: str):
        self.path = path
        self.expected_hash = expected_hash
        self.stored_hash = stored_hash
        super().__init__(
            f"Hash mismatch deleting {path}: action has {expected_hash}, "
            f"index has {stored_hash}"
        )


class StorageError(BoxSyncError):
    """The underlying SQLite operation failed."""
    pass


class AuthenticationError(BoxSyncError):
    """Credentials or session key were not accepted."""
    pass


class DuplicateAccountError(BoxSyncError):
    """A user with the given email is already registered."""
    pass

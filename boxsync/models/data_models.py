"""
Core data models for the reconciliation service.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional, Tuple


# (is_create, path, hash)
ActionKey = Tuple[bool, str, str]


@dataclass
class User:
    """An account owning a file index."""
    email: str
    hashed_password: str
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class Client:
    """A device session belonging to a user."""
    user_id: int
    session_key: str
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class File:
    """Represents a file row in a user's file index."""
    path: str
    hash: str
    size: int
    modified: datetime
    name: str = ""
    user_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            'path': self.path,
            'name': self.name,
            'hash': self.hash,
            'size': self.size,
            'modified': self.modified.isoformat(),
            'user_id': self.user_id,
            'id': self.id,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'File':
        """Create from a dictionary produced by to_dict."""
        created_at = data.get('created_at')
        return cls(
            path=data['path'],
            hash=data['hash'],
            size=int(data['size']),
            modified=datetime.fromisoformat(data['modified']),
            name=data.get('name') or "",
            user_id=data.get('user_id'),
            id=data.get('id'),
            created_at=datetime.fromisoformat(created_at) if created_at else None
        )


@dataclass(frozen=True)
class FileAction:
    """
    One observed creation or deletion reported by a client.

    The embedded file reflects the file's state at the time of the event.
    """
    is_create: bool
    file: File
    client_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def key(self) -> ActionKey:
        return (self.is_create, self.file.path, self.file.hash)

    @property
    def opposing_key(self) -> ActionKey:
        return (not self.is_create, self.file.path, self.file.hash)

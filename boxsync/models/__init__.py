"""
Models package for the reconciliation service.
"""
from .data_models import ActionKey, User, Client, File, FileAction
from .config import SyncConfig

__all__ = [
    'ActionKey',
    'User',
    'Client',
    'File',
    'FileAction',
    'SyncConfig'
]

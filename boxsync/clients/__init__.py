# Client packages
from .sync_api import SyncAPI, SyncAPIError

__all__ = ['SyncAPI', 'SyncAPIError']

# Sync-state persistence
from .base import Base
from .schema import UserSyncState
from .session import SessionManager
from .typed_operations import SyncStateOperations, SyncStateStore

__all__ = [
    "Base",
    "UserSyncState",
    "SessionManager",
    "SyncStateOperations",
    "SyncStateStore",
]

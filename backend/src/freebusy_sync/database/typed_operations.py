"""
Typed operations wrapper for the sync-state store.

``SyncStateOperations`` wraps an open session and returns pydantic schemas.
``SyncStateStore`` opens a short-lived session per call and is what the
batch workers share between threads.

Example usage:
    with session_manager.with_session() as session:
        ops = SyncStateOperations(session)
        ops.update_modified_time("user@example.com", modified)
        state = ops.get_sync_state("user@example.com")
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from . import operations as ops
from .pydantic_schemas import UserSyncStateSchema
from .session import SessionManager


class SyncStateOperations:
    def __init__(self, session: Session):
        self.session = session

    def get_sync_state(self, email: str) -> Optional[UserSyncStateSchema]:
        state = ops.get_sync_state(self.session, email)
        return UserSyncStateSchema.model_validate(state) if state else None

    def list_sync_states(self) -> list[UserSyncStateSchema]:
        return [
            UserSyncStateSchema.model_validate(state)
            for state in ops.list_sync_states(self.session)
        ]

    def get_modified_time(self, email: str) -> Optional[datetime]:
        return ops.get_modified_time(self.session, email)

    def update_modified_time(
        self,
        email: str,
        modified: datetime,
        synced_at: Optional[datetime] = None,
    ) -> UserSyncStateSchema:
        state = ops.update_modified_time(self.session, email, modified, synced_at)
        self.session.flush()
        return UserSyncStateSchema.model_validate(state)

    def record_sync_error(self, email: str, message: str) -> UserSyncStateSchema:
        state = ops.record_sync_error(self.session, email, message)
        self.session.flush()
        return UserSyncStateSchema.model_validate(state)

    def delete_sync_state(self, email: str) -> bool:
        return ops.delete_sync_state(self.session, email)


class SyncStateStore:
    """Thread-safe access to per-user modified times."""

    def __init__(self, session_manager: SessionManager):
        self._sessions = session_manager

    def get_modified_time(self, email: str) -> Optional[datetime]:
        with self._sessions.with_session() as session:
            return SyncStateOperations(session).get_modified_time(email)

    def update_modified_time(self, email: str, modified: datetime) -> None:
        with self._sessions.with_session() as session:
            SyncStateOperations(session).update_modified_time(email, modified)

    def record_sync_error(self, email: str, message: str) -> None:
        with self._sessions.with_session() as session:
            SyncStateOperations(session).record_sync_error(email, message)

    def get_sync_state(self, email: str) -> Optional[UserSyncStateSchema]:
        with self._sessions.with_session() as session:
            return SyncStateOperations(session).get_sync_state(email)

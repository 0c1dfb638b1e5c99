# Database operations for free/busy sync state

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .schema import UserSyncState

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def get_sync_state(session: Session, email: str) -> Optional[UserSyncState]:
    return session.get(UserSyncState, _normalize_email(email))


def get_or_create_sync_state(session: Session, email: str) -> UserSyncState:
    state = get_sync_state(session, email)
    if state is None:
        state = UserSyncState(email=_normalize_email(email), error_count=0)
        session.add(state)
        session.flush()
    return state


def list_sync_states(session: Session) -> list[UserSyncState]:
    return list(
        session.execute(select(UserSyncState).order_by(UserSyncState.email)).scalars()
    )


def get_modified_time(session: Session, email: str) -> Optional[datetime]:
    """Last modification time recorded for a user, or None if never synced."""
    state = get_sync_state(session, email)
    return state.last_modified if state else None


def update_modified_time(
    session: Session,
    email: str,
    modified: datetime,
    synced_at: Optional[datetime] = None,
) -> UserSyncState:
    """Record a successful sync. Clears the last error."""
    state = get_or_create_sync_state(session, email)
    state.last_modified = modified
    state.last_synced_at = synced_at or datetime.utcnow()
    state.last_error = None
    return state


def record_sync_error(session: Session, email: str, message: str) -> UserSyncState:
    state = get_or_create_sync_state(session, email)
    state.last_error = message
    state.error_count = (state.error_count or 0) + 1
    logger.debug("Recorded sync error %d for %s", state.error_count, state.email)
    return state


def delete_sync_state(session: Session, email: str) -> bool:
    state = get_sync_state(session, email)
    if state is None:
        return False
    session.delete(state)
    return True

# Schema for free/busy synchronization state

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserSyncState(Base):
    """
    Per-user synchronization bookkeeping.

    ``last_modified`` is the calendar modification time seen at the last
    successful sync and is passed back to the feed as the modified-since
    filter on the next run.
    """

    __tablename__ = "user_sync_state"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    last_modified: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

# Base class for sync-state database models
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all free/busy sync ORM models."""

    pass

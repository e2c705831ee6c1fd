"""
Base Model Module

This module provides a base class for all SQLAlchemy models with common fields:
- id: Primary key (UUID)
- created_at: Timestamp when record was created
- updated_at: Timestamp when record was last updated
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Uuid, func

from zord.db.database import Base


def utcnow() -> datetime:
    """Timezone-aware current time, used as the Python-side default."""
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """
    Abstract base model class that provides common fields for all models.

    Attributes:
        id (UUID): Primary key, auto-generated UUID
        created_at (DateTime): Timestamp set automatically when record is created
        updated_at (DateTime): Timestamp updated automatically when record is modified
    """

    # This makes the class abstract - no table will be created for BaseModel itself
    __abstract__ = True

    # Generic Uuid renders as native UUID on PostgreSQL
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
        index=True
    )

    # Created timestamp - set once when record is created
    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True
    )

    # Updated timestamp - updates every time the record is modified
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False
    )

    def __repr__(self):
        """String representation for debugging."""
        return f"<{self.__class__.__name__}(id={self.id})>"

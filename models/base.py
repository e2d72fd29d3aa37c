"""
SQLAlchemy base configuration for the Contact Reconciliation Service
This module sets up the declarative base and the shared column mixin
(surrogate id, audit timestamps and soft delete marker)
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Timezone-aware current time used for all audit columns"""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models"""
    pass


class BaseModel(Base):
    """
    Abstract model carrying the columns every table shares

    id is assigned by the database on insert and increases monotonically,
    so a lower id always means an older row.
    """
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self):
        """Convert the row to a plain dictionary keyed by column name"""
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}

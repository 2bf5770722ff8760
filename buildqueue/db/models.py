"""
SQLAlchemy database models.
Defines the build queue table.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from buildqueue.constants import MAX_ATTEMPTS


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class QueueEntry(Base):
    """
    A pending (or stalled) build request.

    The store-assigned autoincrement id is the FIFO ordering key. Rows are
    created with attempt 0, only ever have their attempt incremented, and are
    deleted exactly once on a successful build. Rows at MAX_ATTEMPTS stay in
    the table as dead-letter data.

    (name, version) is deliberately not unique: repeated feed deliveries
    produce duplicate rows.
    """

    __tablename__ = "queue"
    # Load created_at on insert so entries are usable after the session commits
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    version: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    attempt: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    @property
    def is_eligible(self) -> bool:
        """Check if the entry can still be selected by a drain pass."""
        return self.attempt < MAX_ATTEMPTS

    @property
    def is_stalled(self) -> bool:
        """Check if the entry has exhausted its retries."""
        return self.attempt >= MAX_ATTEMPTS

    def __repr__(self) -> str:
        return (
            f"QueueEntry(id={self.id}, name={self.name}, "
            f"version={self.version}, attempt={self.attempt}/{MAX_ATTEMPTS})"
        )

"""Declarative base and the column mixins shared by bidboard tables."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """``created_at``/``updated_at`` in UTC, set by both the ORM and the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )


class VersionedMixin:
    """Row version bumped on every store update.

    Local board state compares it to decide whether a server record is newer
    than the copy it already holds.
    """

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def next_version(self) -> int:
        return (self.version or 0) + 1

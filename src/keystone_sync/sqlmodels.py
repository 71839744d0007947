"""SQLAlchemy models for the local character history.

Every successful import appends one row. Rows are never updated, so the
table doubles as a log of which characters were imported and when.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CharacterSnapshot(Base):
    """A character descriptor and the timing table derived at import time."""

    __tablename__ = "character_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    region: Mapped[str] = mapped_column(String(10), nullable=False)
    realm: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    character_class: Mapped[str] = mapped_column(String(50), nullable=False)
    spec: Mapped[str] = mapped_column(String(50), nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(String(500), default="")
    guild_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    timings: Mapped[str] = mapped_column(Text, default="{}")
    imported_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_character_imported", "region", "realm", "name", "imported_at"),
    )

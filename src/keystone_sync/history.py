"""Append-only archive of imported characters."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .core.exceptions import ArchivalFailure
from .core.models import (
    CharacterInfo,
    CharacterSnapshotView,
    Dungeon,
    TimingEntry,
    WeeklyAffix,
)
from .db import get_session_factory
from .sqlmodels import CharacterSnapshot

logger = logging.getLogger(__name__)


def _encode_timings(timings: Optional[Mapping[Dungeon, Mapping[WeeklyAffix, TimingEntry]]]) -> str:
    if not timings:
        return "{}"
    return json.dumps({
        dungeon.value: {
            week.value: {"level": entry.level, "plus": entry.plus, "duration": entry.duration}
            for week, entry in weeks.items()
        }
        for dungeon, weeks in timings.items()
    })


def _to_view(row: CharacterSnapshot) -> CharacterSnapshotView:
    return CharacterSnapshotView(
        id=row.id,
        character=CharacterInfo(
            region=row.region,
            realm=row.realm,
            name=row.name,
            character_class=row.character_class,
            spec=row.spec,
            thumbnail_url=row.thumbnail_url,
            guild_name=row.guild_name,
        ),
        timings=json.loads(row.timings) if row.timings else {},
        imported_at=row.imported_at,
    )


class CharacterHistory:
    """Durable record of every character snapshot that was imported."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    async def save(
        self,
        character: CharacterInfo,
        timings: Optional[Mapping[Dungeon, Mapping[WeeklyAffix, TimingEntry]]] = None,
    ) -> int:
        """Append a snapshot and return its id.

        Raises:
            ArchivalFailure: the database rejected the write.
        """
        snapshot = CharacterSnapshot(
            region=character.region,
            realm=character.realm,
            name=character.name,
            character_class=character.character_class,
            spec=character.spec,
            thumbnail_url=character.thumbnail_url,
            guild_name=character.guild_name,
            timings=_encode_timings(timings),
            imported_at=datetime.utcnow(),
        )
        try:
            async with self._sessions()() as session:
                session.add(snapshot)
                await session.commit()
        except SQLAlchemyError as exc:
            raise ArchivalFailure(
                f"Could not archive {character.region}/{character.realm}/{character.name}: {exc}"
            ) from exc

        logger.info(
            "Archived snapshot %d for %s/%s/%s",
            snapshot.id, character.region, character.realm, character.name,
        )
        return snapshot.id

    async def recent(self, limit: int = 20) -> list[CharacterSnapshotView]:
        """Newest snapshots first."""
        async with self._sessions()() as session:
            result = await session.execute(
                select(CharacterSnapshot)
                .order_by(CharacterSnapshot.imported_at.desc(), CharacterSnapshot.id.desc())
                .limit(limit)
            )
            rows = result.scalars().all()
        return [_to_view(r) for r in rows]

    async def latest(self, region: str, realm: str, name: str) -> Optional[CharacterSnapshotView]:
        """Most recent snapshot of one character, or None if never imported."""
        async with self._sessions()() as session:
            result = await session.execute(
                select(CharacterSnapshot)
                .where(
                    CharacterSnapshot.region == region,
                    CharacterSnapshot.realm == realm,
                    CharacterSnapshot.name == name,
                )
                .order_by(CharacterSnapshot.imported_at.desc(), CharacterSnapshot.id.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
        return _to_view(row) if row else None

"""Static dungeon catalog.

Timers are the plus-one par times in milliseconds.
"""

from __future__ import annotations

from typing import Mapping

from .exceptions import MalformedRunRecord
from .models import (
    Dungeon,
    DungeonInfo,
    DungeonTimings,
    ScoredDungeonTimings,
    ScoredTimingEntry,
    TimingEntry,
    WeeklyAffix,
)

Catalog = Mapping[Dungeon, DungeonInfo]

DUNGEONS: dict[Dungeon, DungeonInfo] = {
    Dungeon.AD: DungeonInfo(name="Atal'Dazar", plus1=1_800_000),
    Dungeon.BRH: DungeonInfo(name="Black Rook Hold", plus1=2_160_000),
    Dungeon.DHT: DungeonInfo(name="Darkheart Thicket", plus1=1_800_000),
    Dungeon.EB: DungeonInfo(name="The Everbloom", plus1=1_980_000),
    Dungeon.FALL: DungeonInfo(name="DOTI: Galakrond's Fall", plus1=2_040_000),
    Dungeon.RISE: DungeonInfo(name="DOTI: Murozond's Rise", plus1=2_100_000),
    Dungeon.TOTT: DungeonInfo(name="Throne of the Tides", plus1=2_040_000),
    Dungeon.WM: DungeonInfo(name="Waycrest Manor", plus1=2_220_000),
}


def parse_dungeon(short_name: str, catalog: Catalog = DUNGEONS) -> Dungeon:
    """Resolve a Raider.IO short name to a catalog dungeon."""
    try:
        dungeon = Dungeon(short_name)
    except ValueError:
        raise MalformedRunRecord(f"Unknown dungeon short name: {short_name!r}") from None
    if dungeon not in catalog:
        raise MalformedRunRecord(f"Dungeon {short_name!r} is not in the catalog")
    return dungeon


def empty_timings(catalog: Catalog = DUNGEONS) -> DungeonTimings:
    return {
        dungeon: {week: TimingEntry() for week in WeeklyAffix}
        for dungeon in catalog
    }


def empty_scored_timings(catalog: Catalog = DUNGEONS) -> ScoredDungeonTimings:
    return {
        dungeon: {week: ScoredTimingEntry() for week in WeeklyAffix}
        for dungeon in catalog
    }

"""Pydantic data models, the shared business objects.

The importer, the player state, and the history archive all pass these
around. Raw Raider.IO payloads are validated into `RaiderIoProfile` and
`RaiderIoRun`; everything downstream works with the local types.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt


class Dungeon(str, Enum):
    """Dungeons in the current Mythic+ rotation, keyed by Raider.IO short name."""

    AD = "AD"
    BRH = "BRH"
    DHT = "DHT"
    EB = "EB"
    FALL = "FALL"
    RISE = "RISE"
    TOTT = "TOTT"
    WM = "WM"


class WeeklyAffix(str, Enum):
    """The weekly modifier a run was completed under."""

    TYRANNICAL = "Tyrannical"
    FORTIFIED = "Fortified"


class DungeonInfo(BaseModel):
    """Static catalog entry for one dungeon."""

    model_config = ConfigDict(frozen=True)

    name: str
    plus1: int = Field(description="Par time in ms; beating it earns one star")


class TimingEntry(BaseModel):
    """Best known run for one dungeon + weekly modifier slot."""

    level: int = Field(0, ge=0)
    plus: int = Field(0, description="Keystone upgrades (stars) earned")
    duration: int = Field(0, description="Clear time in ms")


class ScoredTimingEntry(TimingEntry):
    """A timing entry carrying the score it was selected by. Never persisted."""

    score: float = 0.0

    def to_timing(self) -> TimingEntry:
        return TimingEntry(level=self.level, plus=self.plus, duration=self.duration)


SCORE_TOLERANCE = 0.05


class Score(BaseModel):
    """A dungeon score as compared between Raider.IO and the local calculator.

    Raider.IO publishes scores rounded to one decimal place, so two scores are
    equal when they differ by no more than half that step.
    """

    model_config = ConfigDict(frozen=True)

    value: float = 0.0

    def equals(self, other: Union["Score", float, int]) -> bool:
        other_value = other.value if isinstance(other, Score) else float(other)
        return math.isclose(self.value, other_value, rel_tol=0.0, abs_tol=SCORE_TOLERANCE)

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        return f"{self.value:g}"


class DungeonScore(BaseModel):
    """Locally calculated base scores for one dungeon."""

    base_score: dict[WeeklyAffix, Score] = Field(
        default_factory=lambda: {week: Score() for week in WeeklyAffix}
    )


class CharacterInfo(BaseModel):
    """Identifies whose data was imported."""

    region: str
    realm: str
    name: str
    character_class: str = Field(description="Class name as reported by Raider.IO")
    spec: str
    thumbnail_url: str = ""
    guild_name: Optional[str] = None


class RunAffix(BaseModel):
    id: int


class RaiderIoRun(BaseModel):
    """One run from mythic_plus_best_runs or mythic_plus_alternate_runs.

    Numeric fields are strict: strings and booleans are rejected, not coerced.
    """

    short_name: str
    affixes: list[RunAffix] = Field(default_factory=list)
    mythic_level: StrictInt = Field(ge=0)
    num_keystone_upgrades: StrictInt
    clear_time_ms: StrictInt
    par_time_ms: StrictInt
    score: StrictFloat


class RaiderIoGuild(BaseModel):
    name: str


class RaiderIoProfile(BaseModel):
    """Decoded body of /characters/profile.

    Run lists stay raw; each run is validated when it is selected so a bad
    record surfaces as a MalformedRunRecord rather than a decode failure.
    """

    model_config = ConfigDict(populate_by_name=True)

    region: str
    realm: str
    name: str
    character_class: str = Field(alias="class")
    active_spec_name: str
    thumbnail_url: str = ""
    guild: Optional[RaiderIoGuild] = None
    mythic_plus_best_runs: list[dict[str, Any]]
    mythic_plus_alternate_runs: list[dict[str, Any]]


class TimerMismatch(BaseModel):
    """A run's par time disagreed with the catalog's plus-one timer."""

    dungeon: Dungeon
    week: WeeklyAffix
    expected: int
    actual: int


class ScoreMismatch(BaseModel):
    """Raider.IO's score for a slot disagreed with the locally calculated one."""

    dungeon: Dungeon
    week: WeeklyAffix
    expected: float = Field(description="Score reported by Raider.IO")
    calculated: float = Field(description="Locally calculated base score")


class CharacterSnapshotView(BaseModel):
    """An archived import as returned by the history archive."""

    id: int
    character: CharacterInfo
    timings: dict[str, dict[str, TimingEntry]] = Field(default_factory=dict)
    imported_at: datetime


DungeonTimings = dict[Dungeon, dict[WeeklyAffix, TimingEntry]]
ScoredDungeonTimings = dict[Dungeon, dict[WeeklyAffix, ScoredTimingEntry]]

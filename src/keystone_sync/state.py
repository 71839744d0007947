"""Local player state: best known times, base scores, and the current character.

`PlayerState` is owned by whoever creates it and handed to the importer.
It holds two parallel timing tables: `original_times` (as imported) and
`hypothetical_times` (the user's working copy). Writes are not guarded;
callers must serialize imports.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from .core.dungeons import DUNGEONS, Catalog, empty_timings
from .core.models import (
    CharacterInfo,
    Dungeon,
    DungeonScore,
    DungeonTimings,
    Score,
    TimingEntry,
    WeeklyAffix,
)

logger = logging.getLogger(__name__)

ScoreCalculator = Callable[[Dungeon, TimingEntry], Union[Score, float]]


class PlayerState:
    """Mutable per-process store of a player's dungeon times and scores."""

    def __init__(
        self,
        catalog: Catalog = DUNGEONS,
        score_calculator: Optional[ScoreCalculator] = None,
    ):
        self.catalog = catalog
        self.original_times: DungeonTimings = empty_timings(catalog)
        self.hypothetical_times: DungeonTimings = empty_timings(catalog)
        self.original_scores: dict[Dungeon, DungeonScore] = {
            dungeon: DungeonScore() for dungeon in catalog
        }
        self._character_info: Optional[CharacterInfo] = None
        self._score_calculator = score_calculator

    @property
    def character_info(self) -> Optional[CharacterInfo]:
        return self._character_info

    def set_character_info(self, info: CharacterInfo) -> None:
        self._character_info = info

    def get_original_time(self, dungeon: Dungeon, week: WeeklyAffix) -> TimingEntry:
        return self.original_times[dungeon][week]

    def set_original_time(self, dungeon: Dungeon, week: WeeklyAffix, entry: TimingEntry) -> None:
        """Store an imported time; recomputes the base score when a calculator is set."""
        self.original_times[dungeon][week] = entry
        if self._score_calculator is not None:
            self.set_base_score(dungeon, week, self._score_calculator(dungeon, entry))

    def get_hypothetical_time(self, dungeon: Dungeon, week: WeeklyAffix) -> TimingEntry:
        return self.hypothetical_times[dungeon][week]

    def set_hypothetical_time(self, dungeon: Dungeon, week: WeeklyAffix, entry: TimingEntry) -> None:
        self.hypothetical_times[dungeon][week] = entry

    def get_base_score(self, dungeon: Dungeon, week: WeeklyAffix) -> Score:
        return self.original_scores[dungeon].base_score[week]

    def set_base_score(self, dungeon: Dungeon, week: WeeklyAffix, score: Union[Score, float]) -> None:
        if not isinstance(score, Score):
            score = Score(value=score)
        self.original_scores[dungeon].base_score[week] = score

    def reset_hypothetical(self) -> None:
        """Discard what-if edits by copying the original times back."""
        for dungeon, weeks in self.original_times.items():
            for week, entry in weeks.items():
                self.hypothetical_times[dungeon][week] = entry.model_copy()
        logger.debug("Hypothetical times reset to original")

    def to_dict(self) -> dict:
        """JSON-ready view of the whole state."""
        return {
            "character": self._character_info.model_dump() if self._character_info else None,
            "original_times": _timings_to_dict(self.original_times),
            "hypothetical_times": _timings_to_dict(self.hypothetical_times),
            "base_scores": {
                dungeon.value: {week.value: score.value for week, score in scores.base_score.items()}
                for dungeon, scores in self.original_scores.items()
            },
        }


def _timings_to_dict(timings: DungeonTimings) -> dict:
    return {
        dungeon.value: {week.value: entry.model_dump() for week, entry in weeks.items()}
        for dungeon, weeks in timings.items()
    }

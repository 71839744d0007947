"""Raider.IO import pipeline.

Fetches a character profile, selects the best run per dungeon and weekly
modifier, archives the character, merges the result into a PlayerState, and
cross-checks Raider.IO's scores against the locally calculated ones.

Status is exposed through two flags. `loading` is set when an import starts
and cleared when it succeeds. `error` is set on any failure and stays set
until `dismiss_error()`. A failed import leaves `loading` set as well.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol

import httpx

from .core.clients import raiderio
from .core.models import (
    CharacterInfo,
    Dungeon,
    ScoredDungeonTimings,
    ScoreMismatch,
    TimerMismatch,
    TimingEntry,
    WeeklyAffix,
)
from .core.selection import select_best_runs
from .state import PlayerState

logger = logging.getLogger(__name__)


class Archive(Protocol):
    async def save(
        self,
        character: CharacterInfo,
        timings: Optional[Mapping[Dungeon, Mapping[WeeklyAffix, TimingEntry]]] = None,
    ) -> object:
        ...


class ImportResult:
    """What one Raider.IO profile yields before it touches local state."""

    def __init__(
        self,
        timings: ScoredDungeonTimings,
        character_info: CharacterInfo,
        timer_mismatches: list[TimerMismatch],
    ):
        self.timings = timings
        self.character_info = character_info
        self.timer_mismatches = timer_mismatches


class RaiderIoImporter:
    """Imports a character's Mythic+ runs into a PlayerState.

    Imports must not overlap: the state has no writer protection, so callers
    should not start a new import while `loading` is set.
    """

    def __init__(
        self,
        state: PlayerState,
        archive: Archive,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.state = state
        self.archive = archive
        self.client = client
        self.loading = False
        self.error = False
        self.last_timer_mismatches: list[TimerMismatch] = []
        self.last_score_mismatches: list[ScoreMismatch] = []

    def dismiss_error(self) -> None:
        """Clear a sticky failure. Does nothing unless `error` is set."""
        if self.error:
            self.loading = False
            self.error = False

    async def import_character(
        self,
        region: str,
        realm: str,
        name: str,
        force_refresh: bool = False,
    ) -> None:
        """Import a character end to end, recording the outcome in the flags.

        Never raises. Steps already applied before a failure are not rolled back.
        """
        self.loading = True
        self.last_timer_mismatches = []
        self.last_score_mismatches = []
        try:
            result = await self.run_import(region, realm, name, force_refresh)

            await self.archive.save(result.character_info, result.timings)

            self.apply_import(result.timings, result.character_info)
            self.last_timer_mismatches = result.timer_mismatches
            self.last_score_mismatches = self.check_scores(result.timings)
        except Exception as exc:
            logger.error("Import of %s/%s/%s failed: %s", region, realm, name, exc, exc_info=True)
            self.error = True
            return
        self.loading = False

    async def run_import(
        self,
        region: str,
        realm: str,
        name: str,
        force_refresh: bool = False,
    ) -> ImportResult:
        """Fetch and select without touching local state."""
        profile = await raiderio.fetch_character_profile(
            region, realm, name, force_refresh=force_refresh, client=self.client,
        )
        timings, mismatches = select_best_runs(raiderio.all_runs(profile), self.state.catalog)
        return ImportResult(
            timings=timings,
            character_info=raiderio.build_character_info(profile),
            timer_mismatches=mismatches,
        )

    def apply_import(self, timings: ScoredDungeonTimings, character_info: CharacterInfo) -> None:
        """Overwrite original and hypothetical times with the imported ones."""
        for dungeon, weeks in timings.items():
            for week, timing in weeks.items():
                self.state.set_original_time(dungeon, week, timing.to_timing())
                self.state.set_hypothetical_time(dungeon, week, timing.to_timing())

                self.state.set_character_info(character_info)

        logger.info(
            "Applied import for %s/%s/%s",
            character_info.region, character_info.realm, character_info.name,
        )

    def check_scores(self, timings: ScoredDungeonTimings) -> list[ScoreMismatch]:
        """Compare Raider.IO's scores with the locally calculated base scores.

        Mismatches are logged and returned; nothing here fails the import.
        """
        mismatches = []
        for dungeon in self.state.catalog:
            for week in (WeeklyAffix.FORTIFIED, WeeklyAffix.TYRANNICAL):
                calculated = self.state.get_base_score(dungeon, week)
                expected = timings[dungeon][week].score

                if not calculated.equals(expected):
                    logger.warning(
                        "Score mismatch: %s %s, raiderIO %s calculated %s",
                        dungeon.value, week.value, expected, calculated,
                    )
                    mismatches.append(ScoreMismatch(
                        dungeon=dungeon,
                        week=week,
                        expected=expected,
                        calculated=calculated.value,
                    ))
        return mismatches

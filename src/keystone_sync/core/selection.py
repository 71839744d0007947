"""Best-run selection over a character's Raider.IO run history.

Folds the unordered best + alternate run lists into one table holding the
highest-scoring run per dungeon and weekly modifier, and sanity-checks each
run's par time against the catalog along the way.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from .dungeons import DUNGEONS, Catalog, empty_scored_timings, parse_dungeon
from .exceptions import MalformedRunRecord
from .models import (
    Dungeon,
    RaiderIoRun,
    RunAffix,
    ScoredDungeonTimings,
    ScoredTimingEntry,
    TimerMismatch,
    WeeklyAffix,
)

logger = logging.getLogger(__name__)

TYRANNICAL_AFFIX_ID = 9
FORTIFIED_AFFIX_ID = 10

AffixLike = Union[int, RunAffix, dict]


def _affix_id(affix: AffixLike) -> Optional[int]:
    if isinstance(affix, RunAffix):
        return affix.id
    if isinstance(affix, dict):
        return affix.get("id")
    return affix


def get_week_from_affixes(affixes: Iterable[AffixLike]) -> WeeklyAffix:
    """Classify a run's affixes as a Tyrannical or Fortified week.

    Runs carrying neither affix fall back to Fortified.
    """
    ids = {_affix_id(affix) for affix in affixes}
    if TYRANNICAL_AFFIX_ID in ids:
        return WeeklyAffix.TYRANNICAL
    if FORTIFIED_AFFIX_ID in ids:
        return WeeklyAffix.FORTIFIED
    return WeeklyAffix.FORTIFIED


def _coerce_run(run: Union[RaiderIoRun, dict[str, Any]]) -> RaiderIoRun:
    if isinstance(run, RaiderIoRun):
        return run
    try:
        return RaiderIoRun.model_validate(run)
    except ValidationError as exc:
        short_name = run.get("short_name") if isinstance(run, dict) else None
        raise MalformedRunRecord(f"Invalid run record for {short_name!r}: {exc}") from exc


def check_timer(
    run: RaiderIoRun,
    dungeon: Dungeon,
    week: WeeklyAffix,
    catalog: Catalog = DUNGEONS,
) -> Optional[TimerMismatch]:
    """Compare a run's par time with the catalog's plus-one timer.

    The expected value is not adjusted for keystone level, so this is only a
    sanity signal. Mismatches are logged and returned, never raised.
    """
    expected = catalog[dungeon].plus1
    actual = run.par_time_ms
    if actual == expected:
        return None
    logger.warning(
        "Timer mismatch: %s %s, expected %d got %d",
        dungeon.value, week.value, expected, actual,
    )
    return TimerMismatch(dungeon=dungeon, week=week, expected=expected, actual=actual)


def select_best_runs(
    runs: Iterable[Union[RaiderIoRun, dict[str, Any]]],
    catalog: Catalog = DUNGEONS,
) -> tuple[ScoredDungeonTimings, list[TimerMismatch]]:
    """Keep the highest-scoring run for every dungeon and weekly modifier.

    A slot is only replaced by a strictly higher score, so on ties the run
    seen first wins. Slots with no qualifying run keep a zero entry.

    Returns:
        The complete scored table and the timer mismatches seen.

    Raises:
        MalformedRunRecord: a run names an unknown dungeon or has a missing
            or non-numeric field.
    """
    timings = empty_scored_timings(catalog)
    mismatches: list[TimerMismatch] = []

    for raw in runs:
        run = _coerce_run(raw)
        week = get_week_from_affixes(run.affixes)
        dungeon = parse_dungeon(run.short_name, catalog)

        if timings[dungeon][week].score < run.score:
            timings[dungeon][week] = ScoredTimingEntry(
                level=run.mythic_level,
                plus=run.num_keystone_upgrades,
                duration=run.clear_time_ms,
                score=run.score,
            )

        mismatch = check_timer(run, dungeon, week, catalog)
        if mismatch is not None:
            mismatches.append(mismatch)

    return timings, mismatches

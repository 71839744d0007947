"""
Tests for the Raider.IO import pipeline and its loading/error flags.
"""

import asyncio
import logging

import httpx

from keystone_sync.core.dungeons import DUNGEONS
from keystone_sync.core.models import Dungeon, DungeonInfo, ScoredTimingEntry, TimingEntry, WeeklyAffix
from keystone_sync.importer import RaiderIoImporter
from keystone_sync.state import PlayerState

from payloads import FakeArchive, make_profile, make_run, mock_client

SCENARIO_RUN = make_run(
    "AD",
    affixes=(9,),
    level=20,
    upgrades=3,
    clear_time_ms=1_000_000,
    par_time_ms=1_200_000,
    score=300,
)


def _catalog_with_ad_timer(plus1):
    return {**DUNGEONS, Dungeon.AD: DungeonInfo(name="Atal'Dazar", plus1=plus1)}


def _import(importer, times=1, force_refresh=False):
    async def run():
        for _ in range(times):
            await importer.import_character("eu", "Kazzak", "Naowh", force_refresh)
    asyncio.run(run())


def _importer(payload=None, status=200, archive=None, state=None, catalog=DUNGEONS, requests=None, handler=None):
    return RaiderIoImporter(
        state if state is not None else PlayerState(catalog),
        archive if archive is not None else FakeArchive(),
        client=mock_client(payload, status=status, requests=requests, handler=handler),
    )


class TestImportCharacter:
    """Tests for a successful import."""

    def test_scenario_matching_timer(self, caplog):
        importer = _importer(make_profile(best=[SCENARIO_RUN]), catalog=_catalog_with_ad_timer(1_200_000))
        with caplog.at_level(logging.WARNING):
            _import(importer)

        state = importer.state
        assert state.get_original_time(Dungeon.AD, WeeklyAffix.TYRANNICAL) == TimingEntry(level=20, plus=3, duration=1_000_000)
        assert state.get_hypothetical_time(Dungeon.AD, WeeklyAffix.TYRANNICAL) == TimingEntry(level=20, plus=3, duration=1_000_000)
        assert importer.last_timer_mismatches == []
        assert "Timer mismatch" not in caplog.text
        assert importer.error is False
        assert importer.loading is False

    def test_scenario_timer_mismatch(self, caplog):
        importer = _importer(make_profile(best=[SCENARIO_RUN]), catalog=_catalog_with_ad_timer(1_300_000))
        with caplog.at_level(logging.WARNING):
            _import(importer)

        [mismatch] = importer.last_timer_mismatches
        assert (mismatch.expected, mismatch.actual) == (1_300_000, 1_200_000)
        assert "expected 1300000 got 1200000" in caplog.text
        assert importer.state.get_original_time(Dungeon.AD, WeeklyAffix.TYRANNICAL).level == 20
        assert importer.error is False
        assert importer.loading is False

    def test_every_slot_present_after_import(self):
        importer = _importer(make_profile(best=[SCENARIO_RUN]))
        _import(importer)
        for table in (importer.state.original_times, importer.state.hypothetical_times):
            assert set(table) == set(DUNGEONS)
            for weeks in table.values():
                assert set(weeks) == {WeeklyAffix.FORTIFIED, WeeklyAffix.TYRANNICAL}

    def test_slots_without_runs_are_reset_to_zero(self):
        state = PlayerState()
        state.set_original_time(Dungeon.EB, WeeklyAffix.FORTIFIED, TimingEntry(level=15, plus=1, duration=1_900_000))
        importer = _importer(make_profile(best=[SCENARIO_RUN]), state=state)
        _import(importer)
        assert state.get_original_time(Dungeon.EB, WeeklyAffix.FORTIFIED) == TimingEntry()

    def test_importing_twice_is_idempotent(self):
        payload = make_profile(
            best=[SCENARIO_RUN, make_run("BRH", affixes=(10,), level=18, score=260)],
            alternate=[make_run("AD", affixes=(10,), level=17, score=240)],
        )
        importer = _importer(payload)
        _import(importer)
        first = importer.state.to_dict()
        _import(importer)
        assert importer.state.to_dict() == first

    def test_sets_character_info(self):
        importer = _importer(make_profile(best=[SCENARIO_RUN]))
        _import(importer)
        info = importer.state.character_info
        assert (info.region, info.realm, info.name, info.guild_name) == ("eu", "Kazzak", "Naowh", "Liquid")

    def test_archives_character_and_timings(self):
        archive = FakeArchive()
        importer = _importer(make_profile(best=[SCENARIO_RUN]), archive=archive)
        _import(importer)

        [(character, timings)] = archive.saved
        assert character.name == "Naowh"
        assert timings[Dungeon.AD][WeeklyAffix.TYRANNICAL].score == 300

    def test_force_refresh_reaches_transport(self):
        requests = []
        importer = _importer(make_profile(), requests=requests)
        _import(importer, force_refresh=True)
        assert requests[0].headers["cache-control"] == "no-cache"


class TestImportFailures:
    """Tests for the sticky error flag."""

    def test_fetch_failure_sets_error_and_leaves_loading(self):
        importer = _importer({"error": "Could not find requested character"}, status=400)
        before = importer.state.to_dict()
        _import(importer)

        assert importer.error is True
        assert importer.loading is True
        assert importer.state.to_dict() == before
        assert importer.archive.saved == []

    def test_malformed_run_aborts_before_archive(self):
        importer = _importer(make_profile(best=[make_run("NOPE")]))
        _import(importer)
        assert importer.error is True
        assert importer.archive.saved == []
        assert importer.state.character_info is None

    def test_archive_failure_skips_merge(self):
        importer = _importer(make_profile(best=[SCENARIO_RUN]), archive=FakeArchive(fail=True))
        _import(importer)
        assert importer.error is True
        assert importer.state.get_original_time(Dungeon.AD, WeeklyAffix.TYRANNICAL) == TimingEntry()

    def test_failure_is_logged(self, caplog):
        importer = _importer(status=500)
        with caplog.at_level(logging.ERROR):
            _import(importer)
        assert "Import of eu/Kazzak/Naowh failed" in caplog.text

    def test_error_stays_set_through_later_success(self):
        calls = []

        def flaky(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, json={})
            return httpx.Response(200, json=make_profile(best=[SCENARIO_RUN]))

        importer = _importer(handler=flaky)
        _import(importer, times=2)
        assert importer.error is True
        assert importer.loading is False

    def test_failed_import_clears_previous_mismatches(self):
        calls = []

        def then_unavailable(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(200, json=make_profile(best=[SCENARIO_RUN]))
            return httpx.Response(503, json={})

        importer = _importer(handler=then_unavailable, catalog=_catalog_with_ad_timer(1_300_000))
        _import(importer)
        assert importer.last_timer_mismatches
        assert importer.last_score_mismatches

        _import(importer)
        assert importer.error is True
        assert importer.last_timer_mismatches == []
        assert importer.last_score_mismatches == []


class TestStateCatalog:
    """The importer selects against the catalog its PlayerState was built with."""

    def test_run_outside_state_catalog_is_rejected(self):
        state = PlayerState({Dungeon.AD: DUNGEONS[Dungeon.AD]})
        profile = make_profile(best=[SCENARIO_RUN, make_run("BRH")])
        importer = _importer(profile, state=state)
        _import(importer)
        assert importer.error is True
        assert state.get_original_time(Dungeon.AD, WeeklyAffix.TYRANNICAL) == TimingEntry()

    def test_import_into_reduced_catalog(self):
        state = PlayerState({Dungeon.AD: DUNGEONS[Dungeon.AD]})
        importer = _importer(make_profile(best=[SCENARIO_RUN]), state=state)
        _import(importer)
        assert importer.error is False
        assert set(state.original_times) == {Dungeon.AD}
        assert state.get_original_time(Dungeon.AD, WeeklyAffix.TYRANNICAL) == TimingEntry(
            level=20, plus=3, duration=1_000_000,
        )
        assert [m.dungeon for m in importer.last_score_mismatches] == [Dungeon.AD]


class TestDismissError:
    """Tests for dismiss_error."""

    def test_no_op_without_error(self):
        importer = _importer(make_profile())
        importer.loading = True
        importer.dismiss_error()
        assert importer.loading is True
        assert importer.error is False

    def test_clears_both_flags(self):
        importer = _importer(status=500)
        _import(importer)
        assert (importer.loading, importer.error) == (True, True)

        importer.dismiss_error()
        assert (importer.loading, importer.error) == (False, False)


class TestCheckScores:
    """Tests for score cross-validation."""

    def test_reports_mismatch_without_failing(self, caplog):
        importer = _importer(make_profile(best=[SCENARIO_RUN]))
        with caplog.at_level(logging.WARNING):
            _import(importer)

        [mismatch] = importer.last_score_mismatches
        assert mismatch.dungeon == Dungeon.AD
        assert mismatch.week == WeeklyAffix.TYRANNICAL
        assert mismatch.expected == 300
        assert mismatch.calculated == 0
        assert "Score mismatch: AD Tyrannical, raiderIO 300.0 calculated 0" in caplog.text
        assert importer.error is False

    def test_calculator_scores_match(self):
        def calculator(dungeon, entry):
            return 300.0 if entry.level == 20 else 0.0

        state = PlayerState(score_calculator=calculator)
        importer = _importer(make_profile(best=[SCENARIO_RUN]), state=state)
        _import(importer)
        assert importer.last_score_mismatches == []

    def test_check_scores_uses_display_precision(self):
        state = PlayerState()
        state.set_base_score(Dungeon.AD, WeeklyAffix.TYRANNICAL, 300.04)
        importer = _importer(state=state)
        timings = {d: {w: ScoredTimingEntry() for w in WeeklyAffix} for d in DUNGEONS}
        timings[Dungeon.AD][WeeklyAffix.TYRANNICAL] = ScoredTimingEntry(score=300.0)
        assert importer.check_scores(timings) == []

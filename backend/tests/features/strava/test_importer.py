"""
Tests for ActivityImporter.

Strava's API is faked per path; the database is in-memory SQLite.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from tempo_guide.features.strava import (
    StravaActivity,
    StravaActivityLap,
    StravaActivitySplit,
    StravaActivitySplitRepository,
    StravaBestEffort,
    StravaStats,
    TokenVault,
)
from tempo_guide.features.strava.importer import (
    ActivityImporter,
    ImportConfig,
    is_running_activity,
    select_running_activities,
)
from tempo_guide.shared.errors import NotConnected

API = "/api/v3"
ACTIVITIES_PATH = f"{API}/athlete/activities"
STATS_PATH = f"{API}/athletes/777/stats"

STATS_BODY = {
    "recent_run_totals": {"count": 3, "distance": 15000.0, "moving_time": 4500, "elevation_gain": 40.0},
    "ytd_run_totals": {"count": 20, "distance": 100000.0, "moving_time": 30000, "elevation_gain": 300.0},
    "all_run_totals": {"count": 200, "distance": 1000000.0, "moving_time": 300000, "elevation_gain": 3000.0},
}


def activity(activity_id, day, distance=5000.0, moving_time=1500, type_="Run", name="Morning Run", **extra):
    return {
        "id": activity_id,
        "name": name,
        "type": type_,
        "sport_type": type_,
        "start_date": f"2025-02-{day:02d}T07:00:00Z",
        "distance": distance,
        "moving_time": moving_time,
        "elapsed_time": moving_time + 30,
        "achievement_count": 0,
        **extra,
    }


PAGE_ONE = [
    activity(1, 10, distance=5000.0, moving_time=1500),
    activity(2, 12, distance=10000.0, moving_time=3100, achievement_count=2),
    activity(3, 14, type_="Ride", name="Commute", distance=15000.0),
    activity(4, 16, type_="Workout", name="Evening run drills", distance=3000.0),
    activity(5, 18, distance=5100.0, moving_time=1450, achievement_count=1),
]


def paged(pages):
    """Activity list handler answering by ?page=."""
    def handler(request):
        page = int(request.url.params["page"])
        return 200, pages[page - 1] if page <= len(pages) else []
    return handler


class NoSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def vault(db, oauth, cipher, clock):
    return TokenVault(db, oauth, cipher, clock=clock)


@pytest.fixture
async def connected(db, vault, make_token_response):
    await vault.store_tokens("user-1", make_token_response(athlete_id=777))
    await db.commit()
    return "user-1"


@pytest.fixture
def sleep():
    return NoSleep()


@pytest.fixture
def importer(db, vault, strava_client, clock, sleep):
    return ActivityImporter(db, vault, strava_client, clock=clock, sleep=sleep)


@pytest.fixture
def strava_api(strava):
    strava.reply("GET", STATS_PATH, 200, STATS_BODY)
    strava.on("GET", ACTIVITIES_PATH, paged([PAGE_ONE]))
    strava.reply("GET", f"{API}/activities/2", 200, {
        "id": 2,
        "best_efforts": [
            {"id": 201, "name": "5k", "distance": 5000, "elapsed_time": 1540, "moving_time": 1540},
            {"id": 202, "name": "10k", "distance": 10000, "elapsed_time": 3100, "moving_time": 3100},
        ],
    })
    strava.reply("GET", f"{API}/activities/5", 200, {
        "id": 5,
        "best_efforts": [
            {"id": 501, "name": "5k", "distance": 5000, "elapsed_time": 1440, "moving_time": 1440, "pr_rank": 1},
        ],
        "splits_metric": [
            {"split": 1, "distance": 1000.0, "elapsed_time": 290, "moving_time": 288,
             "elevation_difference": 2.5, "average_speed": 3.47, "pace_zone": 3},
            {"split": 2, "distance": 1000.0, "elapsed_time": 285, "moving_time": 285},
            {"split": 3, "distance": 0.0, "elapsed_time": 2, "moving_time": 2},
        ],
        "laps": [
            {"lap_index": 1, "name": "Lap 1", "distance": 5100.0, "elapsed_time": 1480,
             "moving_time": 1450, "average_heartrate": 168.0, "average_cadence": 88.0},
        ],
    })
    return strava


async def _count(db, model, **where) -> int:
    query = select(func.count()).select_from(model)
    for key, value in where.items():
        query = query.where(getattr(model, key) == value)
    return (await db.execute(query)).scalar()


# =============================================================================
# Filtering
# =============================================================================

class TestRunningFilter:
    """Tests for running activity selection."""

    @pytest.mark.parametrize("data,expected", [
        ({"type": "Run"}, True),
        ({"type": "Workout", "sport_type": "TrailRun"}, True),
        ({"type": "VirtualRun"}, True),
        ({"type": "Workout", "name": "Track RUN session"}, True),
        ({"type": "Ride", "name": "Commute"}, False),
        ({"type": "Swim"}, False),
    ])
    def test_is_running_activity(self, data, expected):
        assert is_running_activity(data) is expected

    def test_duplicate_ids_keep_first(self):
        rows = select_running_activities("user-1", [
            activity(1, 10, moving_time=1500),
            activity(1, 10, moving_time=9999),
        ])
        assert len(rows) == 1
        assert rows[0]["moving_time"] == 1500

    def test_missing_start_date_skipped(self):
        data = activity(1, 10)
        data["start_date"] = None
        assert select_running_activities("user-1", [data]) == []


# =============================================================================
# Import
# =============================================================================

class TestImportActivities:
    """Tests for ActivityImporter.import_activities."""

    async def test_full_import(self, importer, db, connected, strava_api):
        result = await importer.import_activities(connected)

        assert result.activities_count == 4
        assert await _count(db, StravaActivity, user_id=connected) == 4
        assert await _count(db, StravaActivity, strava_activity_id=3) == 0

        assert result.stats == STATS_BODY
        periods = (await db.execute(select(StravaStats.period_type))).scalars().all()
        assert sorted(periods) == ["all", "recent", "ytd"]

        assert result.to_response() == {
            "success": True,
            "activitiesCount": 4,
            "statsData": STATS_BODY,
        }

    async def test_list_request_window(self, importer, connected, strava_api, clock):
        await importer.import_activities(connected)

        request = strava_api.calls(ACTIVITIES_PATH)[0]
        expected_after = clock.now - timedelta(days=182)
        assert int(request.url.params["after"]) == int(
            expected_after.replace(tzinfo=timezone.utc).timestamp()
        )
        assert request.url.params["per_page"] == "200"
        assert request.headers["Authorization"] == "Bearer access-1"

    async def test_best_efforts(self, importer, db, connected, strava_api, sleep):
        result = await importer.import_activities(connected)

        assert result.provider_efforts_count == 3
        assert await _count(db, StravaBestEffort, source="strava") == 3
        # Detail fetched only for activities with achievements, spaced out
        assert len(strava_api.calls(f"{API}/activities/2")) == 1
        assert len(strava_api.calls(f"{API}/activities/5")) == 1
        assert strava_api.calls(f"{API}/activities/1") == []
        assert sleep.calls == [ImportConfig.DETAIL_FETCH_DELAY]

        calculated = (await db.execute(
            select(StravaBestEffort).where(StravaBestEffort.source == "calculated")
        )).scalars().all()
        by_name = {e.name: e for e in calculated}
        assert by_name["5K"].strava_activity_id == 5
        assert by_name["5K"].elapsed_time == 1450
        assert by_name["10K"].strava_activity_id == 2

    async def test_rerun_replaces_rows(self, importer, db, connected, strava_api):
        await importer.import_activities(connected)
        await importer.import_activities(connected)

        assert await _count(db, StravaActivity) == 4
        assert await _count(db, StravaStats) == 3
        assert await _count(db, StravaBestEffort, source="strava") == 3
        assert await _count(db, StravaBestEffort, source="calculated") == 2

    async def test_splits_and_laps(self, importer, db, connected, strava_api):
        result = await importer.import_activities(connected)

        assert result.splits_count == 2
        assert result.laps_count == 1
        splits = await StravaActivitySplitRepository(db).get_for_activity(connected, 5)
        assert [s.split_number for s in splits] == [1, 2]
        assert splits[0].elevation_diff_m == 2.5
        assert splits[0].pace_zone == 3
        assert splits[0].pace_min_per_km == 4.8

        lap = (await db.execute(select(StravaActivityLap))).scalar_one()
        assert lap.strava_activity_id == 5
        assert lap.lap_number == 1
        assert lap.average_cadence == 88.0

    async def test_rerun_keeps_one_copy_of_splits(self, importer, db, connected, strava_api):
        await importer.import_activities(connected)
        await importer.import_activities(connected)

        assert await _count(db, StravaActivitySplit) == 2
        assert await _count(db, StravaActivityLap) == 1

    async def test_splits_of_dropped_activities_are_pruned(self, importer, db, connected, strava_api):
        db.add(StravaActivitySplit(
            user_id=connected, strava_activity_id=999, split_number=1,
            distance_m=1000.0, elapsed_time_s=300,
        ))
        db.add(StravaActivitySplit(
            user_id="user-2", strava_activity_id=999, split_number=1,
            distance_m=1000.0, elapsed_time_s=300,
        ))
        await db.commit()

        await importer.import_activities(connected)

        assert await _count(db, StravaActivitySplit, strava_activity_id=999, user_id=connected) == 0
        assert await _count(db, StravaActivitySplit, user_id="user-2") == 1

    async def test_not_connected(self, importer, strava):
        with pytest.raises(NotConnected):
            await importer.import_activities("nobody")
        assert strava.requests == []

    async def test_stats_failure_does_not_stop_import(self, importer, db, connected, strava_api):
        strava_api.reply("GET", STATS_PATH, 500, {"message": "Server Error"})

        result = await importer.import_activities(connected)

        assert result.stats is None
        assert result.activities_count == 4
        assert await _count(db, StravaStats) == 0

    async def test_detail_failure_is_skipped(self, importer, db, connected, strava_api):
        strava_api.reply("GET", f"{API}/activities/5", 500, {"message": "Server Error"})

        result = await importer.import_activities(connected)

        assert result.provider_efforts_count == 2
        assert result.activities_count == 4


class TestPagination:
    """Tests for ActivityFetcher paging through the importer."""

    async def test_stops_at_empty_page(self, importer, connected, strava_api):
        strava_api.on("GET", ACTIVITIES_PATH, paged([PAGE_ONE[:2], PAGE_ONE[2:]]))

        result = await importer.import_activities(connected)

        pages = [r.url.params["page"] for r in strava_api.calls(ACTIVITIES_PATH)]
        assert pages == ["1", "2", "3"]
        assert result.activities_count == 4

    async def test_page_cap(self, db, vault, strava_client, clock, sleep, connected, strava_api):
        class TwoPages(ImportConfig):
            MAX_PAGES = 2

        strava_api.on("GET", ACTIVITIES_PATH, lambda request: (200, [
            activity(int(request.url.params["page"]) * 100, 10)
        ]))
        importer = ActivityImporter(db, vault, strava_client, config=TwoPages, clock=clock, sleep=sleep)

        result = await importer.import_activities(connected)

        assert len(strava_api.calls(ACTIVITIES_PATH)) == 2
        assert result.activities_count == 2

    async def test_failed_page_keeps_earlier_pages(self, importer, connected, strava_api):
        def handler(request):
            if request.url.params["page"] == "1":
                return 200, PAGE_ONE
            return 500, {"message": "Server Error"}

        strava_api.on("GET", ACTIVITIES_PATH, handler)

        result = await importer.import_activities(connected)

        assert result.activities_count == 4

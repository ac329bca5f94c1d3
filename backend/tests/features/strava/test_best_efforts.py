"""
Tests for best effort derivation.

Tolerance bands:
- 1K ±15%, 5K ±10%, 10K ±8%, Half Marathon ±5%, Marathon ±5%
"""

from datetime import datetime

import pytest

from tempo_guide.features.strava.importer import (
    TARGET_DISTANCES,
    calculate_best_efforts,
    extract_provider_efforts,
)


def _run(activity_id, distance, moving_time, activity_type="Run"):
    return {
        "strava_activity_id": activity_id,
        "activity_type": activity_type,
        "distance": distance,
        "moving_time": moving_time,
        "start_date": datetime(2025, 2, activity_id % 28 + 1, 7, 0),
    }


def _by_name(efforts):
    return {e["name"]: e for e in efforts}


class TestTargetDistance:
    """Tests for tolerance bands."""

    @pytest.mark.parametrize("name,low,high", [
        ("1K", 850.0, 1150.0),
        ("5K", 4500.0, 5500.0),
        ("10K", 9200.0, 10800.0),
    ])
    def test_band_edges(self, name, low, high):
        target = next(t for t in TARGET_DISTANCES if t.name == name)
        assert target.min_meters == pytest.approx(low)
        assert target.max_meters == pytest.approx(high)
        assert target.matches(low + 0.5)
        assert target.matches(high - 0.5)
        assert not target.matches(low - 1)
        assert not target.matches(high + 1)


class TestCalculateBestEfforts:
    """Tests for calculate_best_efforts."""

    def test_5k_picks_fastest_inside_band(self):
        activities = [
            _run(1, 4000.0, 1100),   # outside band, fastest overall
            _run(2, 5400.0, 1500),
            _run(3, 5000.0, 1560),
            _run(4, 4950.0, 1490),
        ]

        efforts = _by_name(calculate_best_efforts(activities))

        assert efforts["5K"]["strava_activity_id"] == 4
        assert efforts["5K"]["moving_time"] == 1490
        assert efforts["5K"]["distance"] == 5000.0
        assert efforts["5K"]["effort_key"] == "calculated-5k"
        assert efforts["5K"]["source"] == "calculated"

    def test_upper_boundary_included(self):
        efforts = _by_name(calculate_best_efforts([_run(2, 5400.0, 1500), _run(3, 5600.0, 1400)]))
        assert efforts["5K"]["strava_activity_id"] == 2

    def test_half_marathon(self):
        efforts = _by_name(calculate_best_efforts([_run(5, 21200.0, 6300)]))
        assert efforts["Half Marathon"]["distance"] == 21097.5
        assert "Marathon" not in efforts

    def test_ignores_non_run_types(self):
        activities = [
            _run(1, 5000.0, 1200, activity_type="TrailRun"),
            _run(2, 5000.0, 1100, activity_type="Ride"),
        ]
        assert calculate_best_efforts(activities) == []

    def test_ignores_zero_distance_or_time(self):
        activities = [_run(1, 0.0, 1200), _run(2, 5000.0, 0), _run(3, None, 1200)]
        assert calculate_best_efforts(activities) == []

    def test_no_match_no_row(self):
        efforts = _by_name(calculate_best_efforts([_run(1, 3000.0, 900)]))
        assert efforts == {}


class TestExtractProviderEfforts:
    """Tests for extract_provider_efforts."""

    def test_maps_best_efforts(self):
        detail = {
            "id": 42,
            "best_efforts": [
                {
                    "id": 9001,
                    "name": "5k",
                    "distance": 5000,
                    "elapsed_time": 1480,
                    "moving_time": 1480,
                    "start_date": "2025-02-20T07:10:00Z",
                    "pr_rank": 1,
                },
                {"id": 9002, "name": "1 mile", "distance": 1609, "elapsed_time": 0},
            ],
        }

        rows = extract_provider_efforts("user-1", detail)

        assert len(rows) == 1
        row = rows[0]
        assert row["effort_key"] == "strava-9001"
        assert row["source"] == "strava"
        assert row["strava_activity_id"] == 42
        assert row["start_date"] == datetime(2025, 2, 20, 7, 10)
        assert row["pr_rank"] == 1
        assert row["achievement_rank"] is None

    def test_no_best_efforts(self):
        assert extract_provider_efforts("user-1", {"id": 42}) == []

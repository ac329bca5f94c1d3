"""
Tests for the training plan parser.
"""

from datetime import date

import pytest

from tempo_guide.features.plans import (
    PlanDocumentService,
    PlanParser,
    PlanUpdateBroker,
    TrainingDayRepository,
    parse_distance_km,
    parse_plan_text,
)
from tempo_guide.shared.errors import PlanParseError

PLAN_TEXT = """
Here is your plan:
2025-03-03|Easy Run|8 km easy|6:00-6:15/km|8|6:05|48:40
2025-03-04|Rest Day|N/A|N/A|0|0:00|0:00
2025-03-05|Tempo Run|2 km WU, 4 miles tempo, 2 km CD|5:10/km tempo|4 miles|5:30|55:00
2025-03-06|Intervals|6x800m
"""


@pytest.fixture
def broker():
    return PlanUpdateBroker()


@pytest.fixture
async def plan(db, broker):
    return await PlanDocumentService(db, broker).create("user-1", "plan document")


# =============================================================================
# Distance parsing
# =============================================================================

class TestParseDistance:
    """Tests for parse_distance_km."""

    @pytest.mark.parametrize("value,expected", [
        ("8", 8.0),
        ("10.5 km", 10.5),
        ("4 miles", 6.437),
        ("1 mi", 1.609),
        ("12 KM", 12.0),
    ])
    def test_parses(self, value, expected):
        assert parse_distance_km(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["N/A", "", "0", "about 5", "5 laps"])
    def test_unreadable_is_none(self, value):
        assert parse_distance_km(value) is None


# =============================================================================
# Text parsing
# =============================================================================

class TestParsePlanText:
    """Tests for parse_plan_text."""

    def test_parses_valid_lines(self):
        parsed = parse_plan_text(PLAN_TEXT)

        assert [d["date"] for d in parsed.days] == [
            date(2025, 3, 3), date(2025, 3, 4), date(2025, 3, 5)
        ]
        easy = parsed.days[0]
        assert easy["training_session"] == "Easy Run"
        assert easy["mileage_breakdown"] == "8 km easy"
        assert easy["pace_targets"] == "6:00-6:15/km"
        assert easy["estimated_distance_km"] == 8.0
        assert easy["estimated_avg_pace_min_per_km"] == "6:05"
        assert easy["estimated_moving_time"] == "48:40"
        assert easy["detailed_fields_generated"] is False

    def test_absent_values_become_none(self):
        rest = parse_plan_text(PLAN_TEXT).days[1]

        assert rest["mileage_breakdown"] is None
        assert rest["pace_targets"] is None
        assert rest["estimated_distance_km"] is None
        assert rest["estimated_avg_pace_min_per_km"] is None
        assert rest["estimated_moving_time"] is None

    def test_miles_converted(self):
        tempo = parse_plan_text(PLAN_TEXT).days[2]
        assert tempo["estimated_distance_km"] == pytest.approx(6.437)

    def test_short_line_skipped(self):
        parsed = parse_plan_text(PLAN_TEXT)
        assert parsed.skipped == ["2025-03-06|Intervals|6x800m"]

    def test_bad_date_skipped(self):
        parsed = parse_plan_text("next monday|Easy Run|8 km|6:00|8|6:00|48:00")
        assert parsed.days == []
        assert len(parsed.skipped) == 1

    def test_duplicate_date_keeps_first(self):
        parsed = parse_plan_text(
            "2025-03-03|Easy Run|||8||\n"
            "2025-03-03|Long Run|||20||"
        )
        assert [d["training_session"] for d in parsed.days] == ["Easy Run"]


# =============================================================================
# Storing
# =============================================================================

class TestPlanParser:
    """Tests for PlanParser.parse."""

    async def test_stores_days(self, db, plan):
        count = await PlanParser(db).parse("user-1", plan.id, PLAN_TEXT)

        assert count == 3
        days = await TrainingDayRepository(db).get_plan_days(plan.id)
        assert [d.training_session for d in days] == ["Easy Run", "Rest Day", "Tempo Run"]
        assert all(d.user_id == "user-1" for d in days)

    async def test_reparse_replaces_days(self, db, plan):
        parser = PlanParser(db)
        await parser.parse("user-1", plan.id, PLAN_TEXT)

        count = await parser.parse("user-1", plan.id, "2025-04-01|Long Run|||18||")

        assert count == 1
        days = await TrainingDayRepository(db).get_plan_days(plan.id)
        assert [d.date for d in days] == [date(2025, 4, 1)]

    async def test_no_valid_lines(self, db, plan):
        with pytest.raises(PlanParseError):
            await PlanParser(db).parse("user-1", plan.id, "just some prose\nno delimiters")

        assert await TrainingDayRepository(db).get_plan_days(plan.id) == []

    async def test_missing_input(self, db, plan):
        with pytest.raises(PlanParseError):
            await PlanParser(db).parse("user-1", plan.id, "")
        with pytest.raises(PlanParseError):
            await PlanParser(db).parse("user-1", "", PLAN_TEXT)

    async def test_other_users_plan(self, db, plan):
        with pytest.raises(PlanParseError):
            await PlanParser(db).parse("user-2", plan.id, PLAN_TEXT)

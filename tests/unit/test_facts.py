"""
Unit Tests - Fact Readers
"""
from datetime import date
from types import SimpleNamespace

import pytest

from academy_analytics.warehouse import AnalyticsFilters, DateRange
from academy_analytics.warehouse.facts import (
    aggregate_coach_load,
    duration_minutes,
    get_fact_attendance,
    get_fact_coach_load,
    get_fact_matches,
    get_fact_payments,
    get_fact_sessions,
)


def _session(coach_id, day, start, end, players, centre_id=1):
    return SimpleNamespace(
        center_id=centre_id,
        coach_id=coach_id,
        session_date=day,
        start_time=start,
        end_time=end,
        attendance=[SimpleNamespace(student_id=p) for p in players],
    )


class TestDurationMinutes:
    """Tests for duration_minutes"""

    def test_hours_and_minutes(self):
        assert duration_minutes("17:00", "18:30") == 90

    def test_with_seconds(self):
        assert duration_minutes("07:15:00", "08:00:30") == 45.5

    def test_unparseable(self):
        """Test a time that cannot be parsed gives no duration"""
        assert duration_minutes("5pm", "18:00") is None
        assert duration_minutes("17:00", None) is None


class TestCoachLoad:
    """Tests for aggregate_coach_load"""

    def test_groups_by_coach_and_date(self):
        """Test one row per (coach, date) with distinct players"""
        sessions = [
            _session(1, date(2024, 1, 8), "17:00", "18:30", [1, 2]),
            _session(1, date(2024, 1, 8), "18:30", "19:30", [2, 3]),
            _session(2, date(2024, 1, 8), "07:00", "08:00", [4]),
            _session(1, date(2024, 1, 9), "17:00", "18:00", [1]),
        ]

        load = {(row.coach_id, row.date): row for row in aggregate_coach_load(sessions)}

        assert len(load) == 3
        monday = load[(1, date(2024, 1, 8))]
        assert monday.total_sessions == 2
        assert monday.total_minutes == 150
        assert monday.unique_players_coached == 3
        assert load[(2, date(2024, 1, 8))].unique_players_coached == 1
        assert load[(1, date(2024, 1, 9))].total_minutes == 60

    def test_unparseable_minutes_are_skipped(self):
        """Test a session without a duration still counts as a session"""
        sessions = [
            _session(1, date(2024, 1, 8), "17:00", "18:00", [1]),
            _session(1, date(2024, 1, 8), "TBD", "19:00", [1]),
        ]

        [row] = aggregate_coach_load(sessions)

        assert row.total_sessions == 2
        assert row.total_minutes == 60
        assert row.unique_players_coached == 1

    def test_player_counted_once_per_coach(self):
        """Test a player with two coaches on one day counts for each coach"""
        sessions = [
            _session(1, date(2024, 1, 8), "17:00", "18:00", [7]),
            _session(2, date(2024, 1, 8), "18:00", "19:00", [7]),
            _session(2, date(2024, 1, 8), "19:00", "20:00", [7]),
        ]

        load = {row.coach_id: row for row in aggregate_coach_load(sessions)}

        assert load[1].unique_players_coached == 1
        assert load[2].unique_players_coached == 1
        assert load[2].total_sessions == 2

    def test_no_sessions(self):
        assert aggregate_coach_load([]) == []


class TestFactReaders:
    """Tests for the fact readers against the seeded academy"""

    @pytest.mark.asyncio
    async def test_sessions_in_range(self, academy, january):
        """Test session facts are scoped to centre and range"""
        async with academy() as session:
            facts = await get_fact_sessions(session, AnalyticsFilters(centre_id=1, date_range=january))

        assert [f.session_id for f in facts] == [1, 2, 3]
        first = facts[0]
        assert first.duration_minutes == 90
        assert first.actual_player_count == 1
        assert first.program_id is None
        assert first.is_cancelled is None

    @pytest.mark.asyncio
    async def test_sessions_without_filters(self, academy):
        """Test every session is read without filters"""
        async with academy() as session:
            facts = await get_fact_sessions(session)

        assert len(facts) == 5

    @pytest.mark.asyncio
    async def test_attendance_carries_program(self, academy, january):
        """Test attendance facts resolve centre, date and program"""
        async with academy() as session:
            facts = await get_fact_attendance(session, AnalyticsFilters(centre_id=1, date_range=january))

        assert [(f.session_id, f.player_id, f.status) for f in facts] == [
            (1, 1, "PRESENT"),
            (1, 2, "ABSENT"),
            (2, 1, "PRESENT"),
            (3, 2, "PRESENT"),
        ]
        assert facts[0].program_id == "Foundation"
        assert facts[1].program_id == "Elite"
        assert facts[0].date == date(2024, 1, 8)
        assert all(f.centre_id == 1 for f in facts)

    @pytest.mark.asyncio
    async def test_attendance_program_filter(self, academy, january):
        """Test the program filter applies through the player"""
        async with academy() as session:
            facts = await get_fact_attendance(
                session, AnalyticsFilters(date_range=january, program_type="Elite")
            )

        assert {f.player_id for f in facts} == {2}

    @pytest.mark.asyncio
    async def test_payments(self, academy, january):
        """Test payment facts with the fixed currency and status"""
        async with academy() as session:
            facts = await get_fact_payments(session, AnalyticsFilters(centre_id=1, date_range=january))

        assert [f.amount for f in facts] == [3000.0, 2000.0]
        assert facts[0].payment_method == "UPI"
        assert facts[1].payment_method is None
        assert facts[0].program_id == "Foundation"
        assert all(f.currency == "INR" and f.status == "PAID" for f in facts)
        assert facts[0].invoice_id is None

    @pytest.mark.asyncio
    async def test_payments_date_range_is_inclusive(self, academy):
        """Test payments on both range ends are included"""
        date_range = DateRange(start=date(2024, 1, 8), end=date(2024, 1, 10))
        async with academy() as session:
            facts = await get_fact_payments(session, AnalyticsFilters(date_range=date_range))

        assert [f.payment_id for f in facts] == [1, 3]

    @pytest.mark.asyncio
    async def test_matches(self, academy, january):
        """Test match facts"""
        async with academy() as session:
            facts = await get_fact_matches(session, AnalyticsFilters(centre_id=1, date_range=january))

        [match] = facts
        assert match.opposition == "Lions FC"
        assert match.competition_type == "LEAGUE"
        assert match.result is None
        assert match.to_dict()["date"] == "2024-01-20"

    @pytest.mark.asyncio
    async def test_coach_load(self, academy, january):
        """Test coach load derived from the session query"""
        async with academy() as session:
            facts = await get_fact_coach_load(session, AnalyticsFilters(date_range=january))

        load = {(f.coach_id, f.date): f for f in facts}
        assert load[(1, date(2024, 1, 8))].total_sessions == 2
        assert load[(1, date(2024, 1, 8))].total_minutes == 150
        assert load[(1, date(2024, 1, 8))].unique_players_coached == 2
        assert load[(2, date(2024, 1, 8))].centre_id == 2
        assert load[(2, date(2024, 1, 15))].unique_players_coached == 1

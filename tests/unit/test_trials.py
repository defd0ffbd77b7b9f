"""
Unit Tests - Trial Sources
"""
from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from academy_analytics.warehouse import (
    AbsentTrialSource,
    AnalyticsFilters,
    DateRange,
    PresentTrialSource,
    RollupEngine,
    probe_trial_source,
)
from academy_analytics.warehouse.trials import is_missing_table_error


class _FailingSession:
    """Session stand-in whose queries fail with a given error"""

    def __init__(self, error):
        self.error = error
        self.rolled_back = False

    async def execute(self, *args, **kwargs):
        raise self.error

    async def rollback(self):
        self.rolled_back = True


class TestMissingTableDetection:
    """Tests for is_missing_table_error"""

    @pytest.mark.parametrize("message", [
        "no such table: website_leads",
        'relation "website_leads" does not exist',
        "UndefinedTable: website_leads",
    ])
    def test_missing_table_messages(self, message):
        assert is_missing_table_error(Exception(message))

    def test_other_errors(self):
        assert not is_missing_table_error(Exception("database is locked"))


class TestPresentTrialSource:
    """Tests for PresentTrialSource"""

    @pytest.mark.asyncio
    async def test_reads_leads(self, academy, january):
        """Test leads are projected into trial facts"""
        async with academy() as session:
            trials = await PresentTrialSource().list_trials(
                session, AnalyticsFilters(centre_id=1, date_range=january)
            )

        assert [t.trial_id for t in trials] == [1, 2]
        converted, pending = trials
        assert converted.converted_to_player is True
        assert converted.status == "CONVERTED"
        assert converted.contact == "9800000001"
        assert converted.trial_date == datetime(2024, 1, 8, 10, 0)
        assert pending.converted_to_player is False
        assert pending.status == "PENDING"
        assert pending.contact == "kabir@example.com"

    @pytest.mark.asyncio
    async def test_range_covers_whole_end_day(self, academy):
        """Test a lead created late on the last day is in range"""
        date_range = DateRange(start=date(2024, 1, 22), end=date(2024, 1, 22))
        async with academy() as session:
            trials = await PresentTrialSource().list_trials(session, AnalyticsFilters(date_range=date_range))

        assert [t.trial_id for t in trials] == [2]

    @pytest.mark.asyncio
    async def test_missing_table_gives_no_trials(self, legacy_academy):
        """Test a missing lead table is reported as an empty result"""
        async with legacy_academy() as session:
            trials = await PresentTrialSource().list_trials(session)

        assert trials == []

    @pytest.mark.asyncio
    async def test_other_database_errors_propagate(self):
        """Test errors other than a missing table are raised"""
        error = OperationalError("SELECT 1", {}, Exception("database is locked"))
        session = _FailingSession(error)

        with pytest.raises(OperationalError):
            await PresentTrialSource().list_trials(session)
        assert session.rolled_back is False


class TestProbe:
    """Tests for probe_trial_source"""

    @pytest.mark.asyncio
    async def test_table_present(self, test_engine):
        assert isinstance(await probe_trial_source(test_engine), PresentTrialSource)

    @pytest.mark.asyncio
    async def test_table_absent(self, legacy_engine):
        assert isinstance(await probe_trial_source(legacy_engine), AbsentTrialSource)

    @pytest.mark.asyncio
    async def test_absent_source_returns_nothing(self):
        assert await AbsentTrialSource().list_trials(None) == []

    @pytest.mark.asyncio
    async def test_metrics_without_lead_table(self, legacy_academy, legacy_engine, january):
        """Test centre metrics still compute with no lead table"""
        engine = RollupEngine(legacy_academy, await probe_trial_source(legacy_engine))

        metrics = await engine.calculate_centre_metrics(1, january)

        assert metrics.total_trials == 0
        assert metrics.trial_conversion_rate == 0
        assert metrics.active_players == 2

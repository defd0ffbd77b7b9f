"""
Rollup Engine

Reduces dimension and fact reads into metrics bundles:

- per-centre metrics for a date range, with a per-program breakdown
- a per-day activity summary for one centre
- club-wide metrics across every active centre

Every bundle is computed from one concurrent burst of reads; the reducers
below are pure functions over the rows that burst returned.
"""

import asyncio
import math
from collections import Counter
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy_analytics.config import get_settings
from academy_analytics.database.models import AttendanceStatus, StudentStatus
from .dimensions import get_dim_centres, get_dim_players
from .facts import get_fact_attendance, get_fact_matches, get_fact_payments, get_fact_sessions
from .schemas import (
    CentreBreakdown,
    CentreDailySummary,
    CentreMetrics,
    GlobalMetrics,
    ProgramMetrics,
)
from .trials import PresentTrialSource, TrialSource
from .types import (
    AnalyticsFilters,
    DateRange,
    DimCentre,
    DimPlayer,
    FactAttendance,
    FactMatch,
    FactPayment,
    FactSession,
    FactTrial,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Monthly fee assumed for every active player enrolled in a program when
# estimating expected revenue. The record store keeps no fee schedule.
PLACEHOLDER_MONTHLY_FEE = 5000

UNKNOWN_PROGRAM = "Unknown"

_PRESENT = AttendanceStatus.PRESENT.value
_ACTIVE = StudentStatus.ACTIVE.value
_INACTIVE = StudentStatus.INACTIVE.value


def round_half_up(value: float, digits: int = 1) -> float:
    """Round with halves going up, as the dashboards always have."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(part: int, whole: int) -> float:
    """part / whole as a percentage, 0 for an empty whole."""
    if whole == 0:
        return 0.0
    return part / whole * 100


def months_in_range(date_range: DateRange) -> int:
    """Billing months in a range, counted as started 30-day blocks."""
    return math.ceil(date_range.days / 30)


def build_program_metrics(
    players: Sequence[DimPlayer],
    attendance: Sequence[FactAttendance],
    payments: Sequence[FactPayment],
) -> List[ProgramMetrics]:
    """
    Per-program breakdown.

    Programs are the ones found among the players; attendance and payments of
    any other program are left out. Sessions count attendance marks.
    """
    programs: Dict[str, ProgramMetrics] = {}
    for player in players:
        name = player.program_id or UNKNOWN_PROGRAM
        metrics = programs.setdefault(name, ProgramMetrics(program=name))
        if player.status == _ACTIVE:
            metrics.active_players += 1

    scheduled: Counter = Counter()
    present: Counter = Counter()
    for mark in attendance:
        name = mark.program_id or UNKNOWN_PROGRAM
        if name in programs:
            scheduled[name] += 1
            if mark.status == _PRESENT:
                present[name] += 1

    for payment in payments:
        name = payment.program_id or UNKNOWN_PROGRAM
        if name in programs:
            programs[name].revenue += payment.amount

    for name, metrics in programs.items():
        metrics.sessions = scheduled[name]
        metrics.attendance_rate = percentage(present[name], scheduled[name])

    return list(programs.values())


def build_centre_metrics(
    date_range: DateRange,
    sessions: Sequence[FactSession],
    players: Sequence[DimPlayer],
    payments: Sequence[FactPayment],
    attendance: Sequence[FactAttendance],
    trials: Sequence[FactTrial],
    matches: Sequence[FactMatch],
) -> CentreMetrics:
    """
    Reduce one centre's reads into its metrics bundle.

    Dropped players are inactive players who joined before the end of the
    range. Expected revenue charges PLACEHOLDER_MONTHLY_FEE per month in range
    for each active player with a program.
    """
    active = [p for p in players if p.status == _ACTIVE]
    new = [
        p for p in players
        if p.join_date is not None and date_range.start <= p.join_date <= date_range.end
    ]
    dropped = [
        p for p in players
        if p.status == _INACTIVE and p.join_date is not None and p.join_date < date_range.end
    ]

    attended = sum(1 for mark in attendance if mark.status == _PRESENT)
    attendance_rate = percentage(attended, len(attendance))

    total_revenue = sum((p.amount for p in payments), 0.0)
    months = months_in_range(date_range)
    expected_revenue = sum(PLACEHOLDER_MONTHLY_FEE * months for p in active if p.program_id)
    outstanding_dues = max(0.0, expected_revenue - total_revenue)
    collection_rate = (
        int(round_half_up(total_revenue / expected_revenue * 100, 0))
        if expected_revenue > 0 else 0
    )

    converted = sum(1 for trial in trials if trial.converted_to_player)
    conversion_rate = percentage(converted, len(trials))

    sessions_per_player = len(sessions) / len(active) if active else 0.0

    return CentreMetrics(
        active_players=len(active),
        new_players=len(new),
        dropped_players=len(dropped),
        total_sessions=len(sessions),
        avg_sessions_per_player=round_half_up(sessions_per_player),
        avg_attendance_rate=round_half_up(attendance_rate),
        total_revenue=total_revenue,
        outstanding_dues=outstanding_dues,
        collection_rate=collection_rate,
        total_trials=len(trials),
        trial_conversion_rate=round_half_up(conversion_rate),
        total_matches=len(matches),
        program_metrics=build_program_metrics(players, attendance, payments),
    )


def build_global_metrics(
    centres: Sequence[DimCentre],
    centre_metrics: Sequence[CentreMetrics],
) -> GlobalMetrics:
    """
    Club-wide totals.

    The club attendance rate is the plain mean of the centres' rates; a small
    centre weighs as much as a large one.
    """
    rates = [m.avg_attendance_rate for m in centre_metrics]
    avg_attendance = sum(rates) / len(rates) if rates else 0.0

    return GlobalMetrics(
        total_active_players=sum(m.active_players for m in centre_metrics),
        total_centres=len(centres),
        total_sessions=sum(m.total_sessions for m in centre_metrics),
        avg_club_attendance=round_half_up(avg_attendance),
        monthly_revenue=sum((m.total_revenue for m in centre_metrics), 0.0),
        total_trials=sum(m.total_trials for m in centre_metrics),
        centre_breakdown=[
            CentreBreakdown(
                centre_id=centre.centre_id,
                centre_name=centre.centre_name,
                **metrics.model_dump(),
            )
            for centre, metrics in zip(centres, centre_metrics)
        ],
    )


def build_centre_daily_summary(
    centre_id: int,
    sessions: Sequence[FactSession],
    attendance: Sequence[FactAttendance],
    players: Sequence[DimPlayer],
    payments: Sequence[FactPayment],
    trials: Sequence[FactTrial],
) -> List[CentreDailySummary]:
    """
    One row per day with at least one session, oldest first.

    Payments, joins and trials on days without a session are not reported.
    """
    days: Dict[Any, CentreDailySummary] = {}
    for fact in sessions:
        day = days.get(fact.date)
        if day is None:
            day = days[fact.date] = CentreDailySummary(centre_id=centre_id, date=fact.date)
        day.total_sessions += 1

    for mark in attendance:
        day = days.get(mark.date)
        if day is not None:
            day.total_players_scheduled += 1
            if mark.status == _PRESENT:
                day.total_players_present += 1

    for player in players:
        day = days.get(player.join_date)
        if day is not None:
            day.new_players_joined += 1

    for payment in payments:
        day = days.get(payment.date)
        if day is not None:
            day.total_revenue_collected += payment.amount

    converted: Counter = Counter()
    for trial in trials:
        day = days.get(trial.trial_date.date())
        if day is not None:
            day.number_of_trials += 1
            if trial.converted_to_player:
                converted[day.date] += 1

    for day in days.values():
        day.attendance_rate = percentage(day.total_players_present, day.total_players_scheduled)
        day.trial_conversion_rate = percentage(converted[day.date], day.number_of_trials)

    return sorted(days.values(), key=lambda d: d.date)


class RollupEngine:
    """
    Issues reads against the record store and reduces them into metrics.

    Each read gets its own session from the factory so that the reads behind
    one bundle can run concurrently. At most max_concurrent_reads sessions are
    open at once (the database pool size by default); further reads wait for
    a slot. A failed read fails the whole bundle.

    Example:
        engine = RollupEngine(get_session_factory(), trial_source)
        metrics = await engine.calculate_centre_metrics(3, DateRange(start, end))
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        trial_source: Optional[TrialSource] = None,
        max_concurrent_reads: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.trial_source = trial_source or PresentTrialSource()
        self.max_concurrent_reads = max_concurrent_reads or get_settings().database.pool_size
        self._read_slots = asyncio.Semaphore(self.max_concurrent_reads)

    async def read(self, reader: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Run one reader in a session of its own once a read slot is free."""
        async with self._read_slots:
            async with self.session_factory() as session:
                return await reader(session, *args)

    async def calculate_centre_metrics(self, centre_id: int, date_range: DateRange) -> CentreMetrics:
        """Metrics for one centre over a date range."""
        in_range = AnalyticsFilters(centre_id=centre_id, date_range=date_range)

        sessions, players, payments, attendance, trials, matches = await asyncio.gather(
            self.read(get_fact_sessions, in_range),
            self.read(get_dim_players, AnalyticsFilters(centre_id=centre_id)),
            self.read(get_fact_payments, in_range),
            self.read(get_fact_attendance, in_range),
            self.read(self.trial_source.list_trials, in_range),
            self.read(get_fact_matches, in_range),
        )

        metrics = build_centre_metrics(
            date_range, sessions, players, payments, attendance, trials, matches
        )
        logger.info(
            "Centre metrics calculated",
            centre_id=centre_id,
            start=str(date_range.start),
            end=str(date_range.end),
            active_players=metrics.active_players,
            sessions=metrics.total_sessions,
            revenue=metrics.total_revenue,
        )
        return metrics

    async def centre_daily_summary(
        self,
        centre_id: int,
        date_range: DateRange,
    ) -> List[CentreDailySummary]:
        """Per-day activity for one centre over a date range."""
        in_range = AnalyticsFilters(centre_id=centre_id, date_range=date_range)

        sessions, attendance, players, payments, trials = await asyncio.gather(
            self.read(get_fact_sessions, in_range),
            self.read(get_fact_attendance, in_range),
            self.read(get_dim_players, AnalyticsFilters(centre_id=centre_id)),
            self.read(get_fact_payments, in_range),
            self.read(self.trial_source.list_trials, in_range),
        )

        summary = build_centre_daily_summary(
            centre_id, sessions, attendance, players, payments, trials
        )
        logger.info("Centre daily summary calculated", centre_id=centre_id, days=len(summary))
        return summary

    async def calculate_global_metrics(self, date_range: DateRange) -> GlobalMetrics:
        """Club-wide metrics across every active centre."""
        centres = await self.read(get_dim_centres)

        centre_metrics = await asyncio.gather(
            *(self.calculate_centre_metrics(c.centre_id, date_range) for c in centres)
        )

        metrics = build_global_metrics(centres, centre_metrics)
        logger.info(
            "Global metrics calculated",
            centres=metrics.total_centres,
            active_players=metrics.total_active_players,
            avg_attendance=metrics.avg_club_attendance,
        )
        return metrics

"""
Fact Readers

Project transactional rows (sessions, attendance, payments, matches) into
flat fact records, resolving foreign keys to centre and program where the
record store allows it.

Filters:
- centre_id applies to every reader
- date_range applies to the session date, payment date or match date
- program_type applies where a program can be resolved through the player
  (attendance, payments); sessions and matches carry no program
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from academy_analytics.database.models import (
    Attendance,
    AttendanceStatus,
    Fixture,
    Payment,
    Session,
    Student,
)
from .types import (
    AnalyticsFilters,
    FactAttendance,
    FactCoachLoad,
    FactMatch,
    FactPayment,
    FactSession,
)

logger = structlog.get_logger(__name__)

_WALL_CLOCK_FORMATS = ("%H:%M", "%H:%M:%S")


def _parse_wall_clock(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    for fmt in _WALL_CLOCK_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def duration_minutes(start_time: Optional[str], end_time: Optional[str]) -> Optional[float]:
    """
    Minutes between two same-day wall-clock strings.

    None when either string cannot be parsed. An end before the start gives a
    negative duration; sessions never span midnight.
    """
    start = _parse_wall_clock(start_time)
    end = _parse_wall_clock(end_time)
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 60


def _session_conditions(filters: AnalyticsFilters) -> list:
    conditions = []
    if filters.centre_id is not None:
        conditions.append(Session.center_id == filters.centre_id)
    if filters.date_range is not None:
        conditions.append(Session.session_date >= filters.date_range.start)
        conditions.append(Session.session_date <= filters.date_range.end)
    return conditions


async def _load_sessions(session: AsyncSession, filters: AnalyticsFilters) -> Sequence[Session]:
    """Sessions in scope with their attendance marks, oldest first."""
    result = await session.execute(
        select(Session)
        .where(*_session_conditions(filters))
        .options(selectinload(Session.attendance))
        .order_by(Session.session_date, Session.id)
    )
    return result.scalars().all()


def project_session(row: Session) -> FactSession:
    """Reshape a session (with attendance loaded) into a session fact."""
    return FactSession(
        session_id=row.id,
        centre_id=row.center_id,
        coach_id=row.coach_id,
        date=row.session_date,
        start_time=row.start_time,
        actual_player_count=sum(
            1 for mark in row.attendance if mark.status == AttendanceStatus.PRESENT
        ),
        duration_minutes=duration_minutes(row.start_time, row.end_time),
    )


async def get_fact_sessions(
    session: AsyncSession,
    filters: Optional[AnalyticsFilters] = None,
) -> List[FactSession]:
    """Session facts with duration and present-player count."""
    filters = filters or AnalyticsFilters()
    facts = [project_session(s) for s in await _load_sessions(session, filters)]
    logger.debug("Session facts read", count=len(facts), centre_id=filters.centre_id)
    return facts


async def get_fact_attendance(
    session: AsyncSession,
    filters: Optional[AnalyticsFilters] = None,
) -> List[FactAttendance]:
    """One fact per attendance mark, with the player's program attached."""
    filters = filters or AnalyticsFilters()

    query = (
        select(Attendance, Session.center_id, Session.session_date, Student.program_type)
        .join(Session, Attendance.session_id == Session.id)
        .outerjoin(Student, Attendance.student_id == Student.id)
        .where(*_session_conditions(filters))
    )
    if filters.program_type is not None:
        query = query.where(Student.program_type == filters.program_type)

    result = await session.execute(
        query.order_by(Session.session_date, Session.id, Attendance.id)
    )

    facts = [
        FactAttendance(
            attendance_id=mark.id,
            session_id=mark.session_id,
            player_id=mark.student_id,
            centre_id=centre_id,
            date=session_date,
            status=mark.status.value,
            program_id=program_type,
        )
        for mark, centre_id, session_date, program_type in result.all()
    ]
    logger.debug("Attendance facts read", count=len(facts), centre_id=filters.centre_id)
    return facts


async def get_fact_payments(
    session: AsyncSession,
    filters: Optional[AnalyticsFilters] = None,
) -> List[FactPayment]:
    """Payment facts. Every payment is reported as PAID."""
    filters = filters or AnalyticsFilters()

    query = select(Payment, Student.program_type).outerjoin(
        Student, Payment.student_id == Student.id
    )
    if filters.centre_id is not None:
        query = query.where(Payment.center_id == filters.centre_id)
    if filters.date_range is not None:
        query = query.where(
            Payment.payment_date >= filters.date_range.start,
            Payment.payment_date <= filters.date_range.end,
        )
    if filters.program_type is not None:
        query = query.where(Student.program_type == filters.program_type)

    result = await session.execute(query.order_by(Payment.payment_date, Payment.id))

    facts = [
        FactPayment(
            payment_id=payment.id,
            player_id=payment.student_id,
            centre_id=payment.center_id,
            date=payment.payment_date,
            amount=float(payment.amount or 0),
            program_id=program_type,
            payment_method=payment.payment_mode or None,
        )
        for payment, program_type in result.all()
    ]
    logger.debug("Payment facts read", count=len(facts), centre_id=filters.centre_id)
    return facts


async def get_fact_matches(
    session: AsyncSession,
    filters: Optional[AnalyticsFilters] = None,
) -> List[FactMatch]:
    """Match facts. Results and scores are not recorded."""
    filters = filters or AnalyticsFilters()

    query = select(Fixture)
    if filters.centre_id is not None:
        query = query.where(Fixture.center_id == filters.centre_id)
    if filters.date_range is not None:
        query = query.where(
            Fixture.match_date >= filters.date_range.start,
            Fixture.match_date <= filters.date_range.end,
        )

    result = await session.execute(query.order_by(Fixture.match_date, Fixture.id))

    facts = [
        FactMatch(
            match_id=fixture.id,
            centre_id=fixture.center_id,
            date=fixture.match_date,
            opposition=fixture.opponent,
            competition_type=fixture.match_type,
        )
        for fixture in result.scalars().all()
    ]
    logger.debug("Match facts read", count=len(facts), centre_id=filters.centre_id)
    return facts


class _CoachDay:
    """Accumulator for one (coach, date) bucket"""

    __slots__ = ("centre_id", "coach_id", "date", "total_sessions", "total_minutes", "players")

    def __init__(self, centre_id: int, coach_id: int, day: date):
        self.centre_id = centre_id
        self.coach_id = coach_id
        self.date = day
        self.total_sessions = 0
        self.total_minutes = 0.0
        self.players: Set[int] = set()


def aggregate_coach_load(sessions: Sequence[Session]) -> List[FactCoachLoad]:
    """
    Group sessions into per (coach, date) load rows.

    The date key is the stored session date. A player marked at several
    sessions of the same coach on the same day is counted once; marks of any
    status count as coached.
    """
    buckets: Dict[Tuple[int, date], _CoachDay] = {}

    for row in sessions:
        key = (row.coach_id, row.session_date)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _CoachDay(row.center_id, row.coach_id, row.session_date)

        bucket.total_sessions += 1
        minutes = duration_minutes(row.start_time, row.end_time)
        if minutes is not None:
            bucket.total_minutes += minutes
        bucket.players.update(mark.student_id for mark in row.attendance)

    return [
        FactCoachLoad(
            centre_id=bucket.centre_id,
            coach_id=bucket.coach_id,
            date=bucket.date,
            total_sessions=bucket.total_sessions,
            total_minutes=bucket.total_minutes,
            unique_players_coached=len(bucket.players),
        )
        for bucket in buckets.values()
    ]


async def get_fact_coach_load(
    session: AsyncSession,
    filters: Optional[AnalyticsFilters] = None,
) -> List[FactCoachLoad]:
    """Coach load facts derived from the session query."""
    filters = filters or AnalyticsFilters()
    facts = aggregate_coach_load(await _load_sessions(session, filters))
    logger.debug("Coach load facts read", count=len(facts), centre_id=filters.centre_id)
    return facts

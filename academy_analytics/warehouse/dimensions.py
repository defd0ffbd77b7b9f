"""
Dimension Readers

Project centre and player entities into flat dimension rows.
"""

from datetime import date
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_analytics.database.models import Center, Student
from .types import AnalyticsFilters, DimCentre, DimPlayer

logger = structlog.get_logger(__name__)


def calculate_age(date_of_birth: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """
    Age in whole years, or None without a date of birth.

    The year difference is reduced by one until the birthday has been reached
    in the current year.
    """
    if date_of_birth is None:
        return None
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def _project_centre(centre: Center) -> DimCentre:
    return DimCentre(
        centre_id=centre.id,
        centre_name=centre.name,
        centre_short_name=centre.short_name,
        locality=centre.locality,
        city=centre.city,
        state=centre.state,
        is_active=centre.is_active,
    )


def project_player(student: Student, today: Optional[date] = None) -> DimPlayer:
    """Reshape a student row into a player dimension row."""
    return DimPlayer(
        player_id=student.id,
        full_name=student.full_name,
        centre_id=student.center_id,
        status=student.status.value if student.status is not None else None,
        date_of_birth=student.date_of_birth,
        age=calculate_age(student.date_of_birth, today),
        program_id=student.program_type,
        join_date=student.joining_date,
    )


async def get_dim_centre(session: AsyncSession, centre_id: int) -> Optional[DimCentre]:
    """Dimension row for one centre, active or not; None for an unknown id."""
    centre = await session.get(Center, centre_id)
    if centre is None:
        return None
    return _project_centre(centre)


async def get_dim_centres(session: AsyncSession) -> List[DimCentre]:
    """All active centres in display order."""
    result = await session.execute(
        select(Center)
        .where(Center.is_active.is_(True))
        .order_by(Center.display_order, Center.id)
    )
    centres = [_project_centre(c) for c in result.scalars().all()]
    logger.debug("Centre dimension read", count=len(centres))
    return centres


async def get_dim_players(
    session: AsyncSession,
    filters: Optional[AnalyticsFilters] = None,
) -> List[DimPlayer]:
    """
    Player dimension rows.

    Honours the centre and program filters; the date range does not apply to
    a dimension.
    """
    filters = filters or AnalyticsFilters()

    query = select(Student)
    if filters.centre_id is not None:
        query = query.where(Student.center_id == filters.centre_id)
    if filters.program_type is not None:
        query = query.where(Student.program_type == filters.program_type)

    result = await session.execute(query.order_by(Student.id))
    today = date.today()
    players = [project_player(s, today) for s in result.scalars().all()]

    logger.debug(
        "Player dimension read",
        count=len(players),
        centre_id=filters.centre_id,
        program_type=filters.program_type,
    )
    return players

"""
Trial Sources

Trial requests live in the website lead table, which only exists once the
CRM migration has been applied. The table's presence is probed once at
startup and the matching source is bound:

- PresentTrialSource reads the table
- AbsentTrialSource returns no trials without touching the database
"""

from typing import List, Optional, Protocol

import structlog
from sqlalchemy import inspect, select
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from academy_analytics.database.models import WebsiteLead
from .types import AnalyticsFilters, FactTrial

logger = structlog.get_logger(__name__)

_MISSING_TABLE_MARKERS = ("no such table", "does not exist", "undefinedtable")


def is_missing_table_error(error: Exception) -> bool:
    """True for the driver errors raised when a queried table does not exist."""
    message = str(error).lower()
    return any(marker in message for marker in _MISSING_TABLE_MARKERS)


def project_lead(lead: WebsiteLead) -> FactTrial:
    return FactTrial(
        trial_id=lead.id,
        lead_name=lead.full_name,
        contact=lead.phone_number or lead.email,
        centre_id=lead.center_id,
        program_id=lead.program_type,
        trial_date=lead.created_at,
        status=lead.status or "PENDING",
        converted_to_player=lead.converted_player_id is not None,
    )


class TrialSource(Protocol):
    """Supplies trial facts for a filter set."""

    async def list_trials(
        self,
        session: AsyncSession,
        filters: Optional[AnalyticsFilters] = None,
    ) -> List[FactTrial]:
        ...


class AbsentTrialSource:
    """Bound when the lead table does not exist."""

    async def list_trials(
        self,
        session: AsyncSession,
        filters: Optional[AnalyticsFilters] = None,
    ) -> List[FactTrial]:
        return []


class PresentTrialSource:
    """
    Reads trials from the website lead table.

    A table that disappears after startup is reported as an empty result;
    every other database error propagates.
    """

    async def list_trials(
        self,
        session: AsyncSession,
        filters: Optional[AnalyticsFilters] = None,
    ) -> List[FactTrial]:
        filters = filters or AnalyticsFilters()

        query = select(WebsiteLead)
        if filters.centre_id is not None:
            query = query.where(WebsiteLead.center_id == filters.centre_id)
        if filters.date_range is not None:
            query = query.where(
                WebsiteLead.created_at >= filters.date_range.start_datetime,
                WebsiteLead.created_at <= filters.date_range.end_datetime,
            )
        if filters.program_type is not None:
            query = query.where(WebsiteLead.program_type == filters.program_type)

        try:
            result = await session.execute(query.order_by(WebsiteLead.created_at, WebsiteLead.id))
        except (OperationalError, ProgrammingError) as e:
            if not is_missing_table_error(e):
                raise
            logger.warning("Lead table missing, reporting no trials", error=str(e.orig))
            await session.rollback()
            return []

        trials = [project_lead(lead) for lead in result.scalars().all()]
        logger.debug("Trial facts read", count=len(trials), centre_id=filters.centre_id)
        return trials


async def probe_trial_source(engine: AsyncEngine) -> TrialSource:
    """Pick the trial source matching the live schema."""
    async with engine.connect() as conn:
        present = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).has_table(WebsiteLead.__tablename__)
        )

    if present:
        logger.info("Lead table found, trial facts enabled")
        return PresentTrialSource()

    logger.warning("Lead table not found, trial facts disabled")
    return AbsentTrialSource()


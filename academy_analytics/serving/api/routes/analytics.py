"""
Analytics API Endpoints

Read-only REST surface over the warehouse readers and the rollup engine.
Every endpoint is served through the response cache.
"""

from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
import structlog

from academy_analytics.config import get_settings
from academy_analytics.serving.api.dependencies import get_rollup_engine
from academy_analytics.serving.cache import cached
from academy_analytics.warehouse import AnalyticsFilters, DateRange, RollupEngine
from academy_analytics.warehouse.dimensions import get_dim_centre, get_dim_centres, get_dim_players
from academy_analytics.warehouse.facts import (
    get_fact_attendance,
    get_fact_coach_load,
    get_fact_matches,
    get_fact_payments,
    get_fact_sessions,
)
from academy_analytics.warehouse.schemas import CentreDailySummary, CentreMetrics, GlobalMetrics

router = APIRouter()
logger = structlog.get_logger(__name__)
settings = get_settings()

_FACT_READERS = {
    "sessions": get_fact_sessions,
    "attendance": get_fact_attendance,
    "payments": get_fact_payments,
    "matches": get_fact_matches,
    "coach-load": get_fact_coach_load,
}


def resolve_date_range(start_date: Optional[date], end_date: Optional[date]) -> DateRange:
    """Range from query parameters, defaulting to the configured window ending today."""
    end = end_date or date.today()
    start = start_date or end - timedelta(days=settings.analytics.default_range_days)
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return DateRange(start=start, end=end)


async def _require_centre(engine: RollupEngine, centre_id: int) -> None:
    if await engine.read(get_dim_centre, centre_id) is None:
        raise HTTPException(status_code=404, detail=f"Centre {centre_id} not found")


@router.get("/dimensions/centres")
@cached()
async def list_centres(
    request: Request,
    engine: RollupEngine = Depends(get_rollup_engine),
) -> List[dict]:
    """Active centres in display order."""
    centres = await engine.read(get_dim_centres)
    return [c.to_dict() for c in centres]


@router.get("/dimensions/players")
@cached()
async def list_players(
    request: Request,
    centre_id: Optional[int] = None,
    program_type: Optional[str] = None,
    engine: RollupEngine = Depends(get_rollup_engine),
) -> List[dict]:
    """Player dimension rows, optionally for one centre and/or program."""
    filters = AnalyticsFilters(centre_id=centre_id, program_type=program_type)
    players = await engine.read(get_dim_players, filters)
    return [p.to_dict() for p in players]


@router.get("/facts/{fact_name}")
@cached()
async def list_facts(
    request: Request,
    fact_name: str,
    centre_id: Optional[int] = None,
    program_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    engine: RollupEngine = Depends(get_rollup_engine),
) -> List[dict]:
    """
    Fact rows of one kind: sessions, attendance, payments, trials, matches
    or coach-load.
    """
    if fact_name == "trials":
        reader = engine.trial_source.list_trials
    elif fact_name in _FACT_READERS:
        reader = _FACT_READERS[fact_name]
    else:
        raise HTTPException(status_code=404, detail=f"Unknown fact table: {fact_name}")

    filters = AnalyticsFilters(
        centre_id=centre_id,
        date_range=resolve_date_range(start_date, end_date),
        program_type=program_type,
    )
    logger.info("list_facts called", fact=fact_name, centre_id=centre_id, program_type=program_type)

    rows = await engine.read(reader, filters)
    return [row.to_dict() for row in rows]


@router.get("/centres/{centre_id}", response_model=CentreMetrics)
@cached()
async def get_centre_metrics(
    request: Request,
    centre_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    engine: RollupEngine = Depends(get_rollup_engine),
) -> CentreMetrics:
    """Metrics for one centre with a per-program breakdown."""
    date_range = resolve_date_range(start_date, end_date)
    logger.info("get_centre_metrics called", centre_id=centre_id, start=str(date_range.start), end=str(date_range.end))

    await _require_centre(engine, centre_id)
    return await engine.calculate_centre_metrics(centre_id, date_range)


@router.get("/centres/{centre_id}/daily", response_model=List[CentreDailySummary])
@cached()
async def get_centre_daily_summary(
    request: Request,
    centre_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    engine: RollupEngine = Depends(get_rollup_engine),
) -> List[CentreDailySummary]:
    """Per-day activity for one centre."""
    date_range = resolve_date_range(start_date, end_date)

    await _require_centre(engine, centre_id)
    return await engine.centre_daily_summary(centre_id, date_range)


@router.get("/global", response_model=GlobalMetrics)
@cached()
async def get_global_metrics(
    request: Request,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    engine: RollupEngine = Depends(get_rollup_engine),
) -> GlobalMetrics:
    """Club-wide metrics across every active centre."""
    date_range = resolve_date_range(start_date, end_date)
    logger.info("get_global_metrics called", start=str(date_range.start), end=str(date_range.end))

    return await engine.calculate_global_metrics(date_range)

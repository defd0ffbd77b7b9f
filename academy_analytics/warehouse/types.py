"""
Warehouse Row Types

Flat dimension and fact records produced by the readers. Field names follow
warehouse conventions (snake_case) and are emitted as-is in JSON.

Columns the record store does not track are declared Optional and default to
None, so a row states its own incompleteness through its shape.
"""

from dataclasses import dataclass, asdict
from datetime import date, datetime, time
from typing import Any, Dict, Optional


@dataclass
class DateRange:
    """Inclusive calendar date range"""
    start: date
    end: date

    @property
    def start_datetime(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def end_datetime(self) -> datetime:
        return datetime.combine(self.end, time.max)

    @property
    def days(self) -> int:
        return (self.end - self.start).days


@dataclass
class AnalyticsFilters:
    """Reader filters; None means the filter is not applied."""
    centre_id: Optional[int] = None
    date_range: Optional[DateRange] = None
    program_type: Optional[str] = None


class _Row:
    """JSON projection shared by all row types"""

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: value.isoformat() if isinstance(value, (date, datetime)) else value
            for key, value in asdict(self).items()
        }


# =============================================================================
# DIMENSIONS
# =============================================================================

@dataclass
class DimCentre(_Row):
    centre_id: int
    centre_name: str
    centre_short_name: Optional[str] = None
    locality: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    is_active: bool = True


@dataclass
class DimPlayer(_Row):
    player_id: int
    full_name: str
    centre_id: int
    status: str
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    program_id: Optional[str] = None
    join_date: Optional[date] = None


# =============================================================================
# FACTS
# =============================================================================

@dataclass
class FactSession(_Row):
    session_id: int
    centre_id: int
    coach_id: int
    date: date
    start_time: str
    actual_player_count: int
    duration_minutes: Optional[float] = None
    # Not tracked by the record store
    program_id: Optional[str] = None
    scheduled_player_count: Optional[int] = None
    is_cancelled: Optional[bool] = None
    session_type: Optional[str] = None


@dataclass
class FactAttendance(_Row):
    attendance_id: int
    session_id: int
    player_id: int
    centre_id: int
    date: date
    status: str
    program_id: Optional[str] = None
    check_in_time: Optional[datetime] = None


@dataclass
class FactPayment(_Row):
    payment_id: int
    player_id: int
    centre_id: int
    date: date
    amount: float
    program_id: Optional[str] = None
    payment_method: Optional[str] = None
    currency: str = "INR"
    status: str = "PAID"
    invoice_id: Optional[str] = None


@dataclass
class FactTrial(_Row):
    trial_id: int
    lead_name: str
    trial_date: datetime
    status: str
    converted_to_player: bool
    contact: Optional[str] = None
    centre_id: Optional[int] = None
    program_id: Optional[str] = None


@dataclass
class FactMatch(_Row):
    match_id: int
    centre_id: int
    date: date
    opposition: Optional[str] = None
    competition_type: Optional[str] = None
    # Not tracked by the record store
    team_id: Optional[int] = None
    squad_id: Optional[int] = None
    result: Optional[str] = None
    goals_for: Optional[int] = None
    goals_against: Optional[int] = None


@dataclass
class FactCoachLoad(_Row):
    centre_id: int
    coach_id: int
    date: date
    total_sessions: int
    total_minutes: float
    unique_players_coached: int

"""
Metrics Bundles

Aggregates produced by the rollup engine. They serialize with camelCase keys
for the dashboards that consume them, unlike the snake_case warehouse rows.
"""

from datetime import date
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model emitting camelCase JSON"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProgramMetrics(CamelModel):
    """Per-program slice of a centre's metrics"""
    program: str
    active_players: int = 0
    sessions: int = 0
    attendance_rate: float = 0
    revenue: float = 0


class CentreMetrics(CamelModel):
    """Metrics for one centre over one date range"""
    active_players: int
    new_players: int
    dropped_players: int
    total_sessions: int
    avg_sessions_per_player: float
    avg_attendance_rate: float
    total_revenue: float
    outstanding_dues: float
    collection_rate: int
    total_trials: int
    trial_conversion_rate: float
    total_matches: int
    program_metrics: List[ProgramMetrics] = Field(default_factory=list)


class CentreBreakdown(CentreMetrics):
    """Centre metrics labelled with the centre they belong to"""
    centre_id: int
    centre_name: str


class GlobalMetrics(CamelModel):
    """Club-wide metrics over every active centre"""
    total_active_players: int
    total_centres: int
    total_sessions: int
    avg_club_attendance: float
    monthly_revenue: float
    total_trials: int
    centre_breakdown: List[CentreBreakdown] = Field(default_factory=list)


class CentreDailySummary(BaseModel):
    """One day of activity at a centre (snake_case, like the warehouse rows)"""
    centre_id: int
    date: date
    total_sessions: int = 0
    total_players_scheduled: int = 0
    total_players_present: int = 0
    attendance_rate: float = 0
    new_players_joined: int = 0
    total_revenue_collected: float = 0
    number_of_trials: int = 0
    trial_conversion_rate: float = 0
    # No per-day drop or dues history exists; always 0
    players_dropped: int = 0
    total_outstanding_dues: float = 0

"""
Warehouse Module

Dimension and fact readers over the academy record store, and the rollup
engine that aggregates them.
"""
from .types import AnalyticsFilters, DateRange
from .trials import AbsentTrialSource, PresentTrialSource, TrialSource, probe_trial_source
from .rollup import RollupEngine

__all__ = [
    "AnalyticsFilters",
    "DateRange",
    "AbsentTrialSource",
    "PresentTrialSource",
    "TrialSource",
    "probe_trial_source",
    "RollupEngine",
]

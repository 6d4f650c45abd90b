"""
Core Analysis Module

Observation tables, glacier fraction classes, per-class aggregation and the
daily filtering summary used by the interactive controller.
"""

from .observations import Observation, OBSERVATION_COLUMNS, observations_to_frame, date_fields
from .fraction_classes import FractionClass, FractionClassifier, InvalidFractionError
from .analysis_request import AnalysisRequest
from .aggregation import (
    AggregateRecord,
    AggregationResult,
    AggregationReducer,
    YearSeries,
    build_year_series
)
from .day_summary import DaySummary, select_day, compute_day_summary, format_parameters
from .filter_comparison import FilterComparison

__all__ = [
    'Observation',
    'OBSERVATION_COLUMNS',
    'observations_to_frame',
    'date_fields',
    'FractionClass',
    'FractionClassifier',
    'InvalidFractionError',
    'AnalysisRequest',
    'AggregateRecord',
    'AggregationResult',
    'AggregationReducer',
    'YearSeries',
    'build_year_series',
    'DaySummary',
    'select_day',
    'compute_day_summary',
    'format_parameters',
    'FilterComparison'
]

"""
Trend Analysis Module

Sen's slope, change points, variability, anomalies, autocorrelation and
split-period comparison over annual albedo series.
"""

from .trend_statistics import TrendStatistics, trend_line
from .report import format_trend_report

__all__ = [
    'TrendStatistics',
    'trend_line',
    'format_trend_report'
]

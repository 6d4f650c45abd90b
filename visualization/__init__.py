#!/usr/bin/env python3
"""
Visualization Module

This module provides the annual trend charts and daily filtered albedo maps
for the snow albedo analysis.
"""

from .plots.trend_plots import TrendPlotter
from .plots.map_plots import DailyMapPlotter

__all__ = [
    'TrendPlotter',
    'DailyMapPlotter'
]

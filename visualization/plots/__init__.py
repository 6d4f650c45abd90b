#!/usr/bin/env python3
"""
Plots Module

Annual trend charts and daily albedo maps.
"""

from .base import BasePlotter
from .trend_plots import TrendPlotter
from .map_plots import DailyMapPlotter

__all__ = [
    'BasePlotter',
    'TrendPlotter',
    'DailyMapPlotter'
]

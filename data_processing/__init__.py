"""
Data Processing Module

Handles loading MOD10A1 observations from pixel tables or raster stacks
and exporting aggregated results to CSV.
"""

from .base_loader import BaseDataLoader, MODISDataLoader
from .loaders.observation_loaders import PixelObservationLoader, RasterStackLoader
from .exporters.csv_exporter import ExportFormatter

__all__ = [
    'BaseDataLoader',
    'MODISDataLoader',
    'PixelObservationLoader',
    'RasterStackLoader',
    'ExportFormatter'
]

#!/usr/bin/env python3
"""
MOD10A1 Observation Loaders

Two sources produce the same observation table
(``analysis.core.observations.OBSERVATION_COLUMNS``):

- PixelObservationLoader: a CSV of pixel observations, either in the
  pixel-level export layout or with MOD10A1 band names
- RasterStackLoader: a directory of per-date MOD10A1 GeoTIFFs plus a static
  glacier fraction raster on the same grid
"""

import re
import numpy as np
import pandas as pd
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import rasterio
from rasterio.transform import xy

from utils.config.helpers import validate_file_exists
from ..base_loader import MODISDataLoader

logger = logging.getLogger(__name__)

# MOD10A1.061 band order expected in each GeoTIFF
MOD10A1_BANDS: List[str] = [
    'NDSI_Snow_Cover',
    'Snow_Albedo_Daily_Tile',
    'NDSI_Snow_Cover_Basic_QA',
    'NDSI_Snow_Cover_Algorithm_Flags_QA',
]

BAND_COLUMNS: Dict[str, str] = {
    'NDSI_Snow_Cover': 'ndsi_snow_cover',
    'Snow_Albedo_Daily_Tile': 'snow_albedo_raw',
    'NDSI_Snow_Cover_Basic_QA': 'basic_qa',
    'NDSI_Snow_Cover_Algorithm_Flags_QA': 'algorithm_flags',
}

COLUMN_ALIASES: Dict[str, str] = {
    **BAND_COLUMNS,
    'lon': 'longitude',
    'lat': 'latitude',
    'static_glacier_fraction': 'glacier_fraction',
}

DATE_PATTERNS = [
    (re.compile(r'A(\d{4})(\d{3})'), '%Y%j'),
    (re.compile(r'(\d{4})[-_]?(\d{2})[-_]?(\d{2})'), '%Y%m%d'),
]


def parse_acquisition_date(file_name: str) -> Optional[pd.Timestamp]:
    """Extract the acquisition date from a MODIS (AYYYYDDD) or ISO-like file name."""
    for pattern, fmt in DATE_PATTERNS:
        match = pattern.search(file_name)
        if match:
            try:
                return pd.to_datetime(''.join(match.groups()), format=fmt)
            except ValueError:
                continue
    return None


class PixelObservationLoader(MODISDataLoader):
    """Loader for pixel observation tables in CSV format."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.null_marker = (config.get('output') or {}).get('null_marker', 'null')

    def load_data(self, file_path: str, **kwargs) -> pd.DataFrame:
        """
        Load a pixel observation CSV.

        ``glacier_fraction_pct`` (0-100) is accepted in place of
        ``glacier_fraction`` (0-1).

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If required columns are missing
        """
        if not validate_file_exists(file_path):
            raise FileNotFoundError(f"Observation file not found: {file_path}")

        logger.info(f"Loading pixel observations from: {file_path}")
        data = pd.read_csv(file_path, na_values=[self.null_marker])
        logger.info(f"Loaded data shape: {data.shape}")

        data = data.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in data.columns})
        if 'glacier_fraction' not in data.columns and 'glacier_fraction_pct' in data.columns:
            data['glacier_fraction'] = pd.to_numeric(data['glacier_fraction_pct'], errors='coerce') / 100.0

        if not self.validate_data(data):
            raise ValueError(f"Observation file {file_path} is missing required columns "
                             f"{self.get_required_columns()}")

        data = self.preprocess_data(data)

        if not self.validate_fraction_range(data):
            logger.warning("Some glacier fraction values lie outside [0, 1]")
        if not self.validate_coordinates(data):
            logger.warning("Missing or out-of-range pixel coordinates; annual per-pixel composites need "
                           "longitude and latitude for every observation")
        if 'algorithm_flags' in data.columns and data['algorithm_flags'].isna().all():
            logger.warning("No algorithm flags in input; flag filters will not reject any pixel")

        logger.info(f"Loaded {len(data)} observations spanning "
                    f"{data['date'].min():%Y-%m-%d} to {data['date'].max():%Y-%m-%d}")
        self.data = data
        return data


class RasterStackLoader(MODISDataLoader):
    """
    Loader for a directory of per-date MOD10A1 GeoTIFFs.

    Every GeoTIFF holds the bands of ``MOD10A1_BANDS`` in order (the algorithm
    flags band may be missing) and shares the grid of the glacier fraction raster.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        data_config = config.get('data') or {}
        self.file_pattern = data_config.get('raster_pattern', '*.tif')

    def load_fraction(self, fraction_path: str) -> Tuple[np.ndarray, Any]:
        """Read a glacier fraction raster (0-1) and its affine transform."""
        if not validate_file_exists(fraction_path):
            raise FileNotFoundError(f"Glacier fraction raster not found: {fraction_path}")

        with rasterio.open(fraction_path) as src:
            fraction = src.read(1, masked=True).astype(float).filled(0.0)
            transform = src.transform
        return fraction, transform

    def load_data(self, file_path: str, fraction: Optional[np.ndarray] = None,
                  transform: Optional[Any] = None, fraction_path: Optional[str] = None,
                  **kwargs) -> pd.DataFrame:
        """
        Flatten every GeoTIFF in ``file_path`` into observation rows.

        Args:
            file_path: Directory of per-date GeoTIFFs
            fraction: Glacier fraction array on the MODIS grid
            transform: Affine transform of that grid (defaults to each file's own)
            fraction_path: Glacier fraction raster, read when ``fraction`` is not given

        Returns:
            Observation DataFrame of on-glacier pixels
        """
        raster_dir = Path(file_path)
        if not raster_dir.is_dir():
            raise FileNotFoundError(f"Raster directory not found: {file_path}")

        if fraction is None:
            if fraction_path is None:
                raise ValueError("A glacier fraction array or raster path is required")
            fraction, transform = self.load_fraction(fraction_path)

        rows, cols = np.nonzero(fraction > 0)
        if len(rows) == 0:
            raise ValueError("Glacier fraction raster contains no glacier pixels")

        files = sorted(raster_dir.glob(self.file_pattern))
        logger.info(f"Loading {len(files)} MOD10A1 rasters from: {raster_dir}")

        frames = []
        for path in files:
            acquisition = parse_acquisition_date(path.name)
            if acquisition is None:
                logger.warning(f"Skipping {path.name}: no acquisition date in file name")
                continue
            frames.append(self._read_acquisition(path, acquisition, fraction, transform, rows, cols))

        if not frames:
            raise ValueError(f"No dated MOD10A1 rasters found in {file_path}")

        data = self.preprocess_data(pd.concat(frames, ignore_index=True))
        logger.info(f"Loaded {len(data)} observations from {len(frames)} acquisitions "
                    f"({len(rows)} glacier pixels)")
        self.data = data
        return data

    def _read_acquisition(self, path: Path, acquisition: pd.Timestamp, fraction: np.ndarray,
                          transform: Optional[Any], rows: np.ndarray, cols: np.ndarray) -> pd.DataFrame:
        with rasterio.open(path) as src:
            if (src.height, src.width) != fraction.shape:
                raise ValueError(f"{path.name} grid {src.height}x{src.width} does not match "
                                 f"glacier fraction grid {fraction.shape[0]}x{fraction.shape[1]}")
            bands = src.read().astype(float)
            grid_transform = transform if transform is not None else src.transform

        longitudes, latitudes = xy(grid_transform, rows, cols)
        frame = pd.DataFrame({
            'date': acquisition,
            'longitude': np.asarray(longitudes, dtype=float),
            'latitude': np.asarray(latitudes, dtype=float),
            'glacier_fraction': fraction[rows, cols],
        })
        for index, band in enumerate(MOD10A1_BANDS):
            column = BAND_COLUMNS[band]
            frame[column] = bands[index][rows, cols] if index < bands.shape[0] else np.nan
        return frame

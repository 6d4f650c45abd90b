import numpy as np
import pandas as pd
import logging
from dataclasses import dataclass, asdict
from datetime import date as date_type
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

OBSERVATION_COLUMNS: List[str] = [
    'date',
    'longitude',
    'latitude',
    'ndsi_snow_cover',
    'snow_albedo_raw',
    'basic_qa',
    'algorithm_flags',
    'glacier_fraction',
]

# Snow_Albedo_Daily_Tile values above this are fill/sentinel codes
MAX_VALID_ALBEDO_RAW = 100
ALBEDO_SCALE_FACTOR = 0.01


@dataclass(frozen=True)
class Observation:
    """
    One MOD10A1 overpass of one pixel on one date.

    ``glacier_fraction`` is the static fraction of the pixel covered by the
    glacier mask; the same value is reused for every date.
    """

    date: date_type
    ndsi_snow_cover: Optional[int]
    snow_albedo_raw: Optional[int]
    basic_qa: Optional[int]
    algorithm_flags: Optional[int]
    glacier_fraction: float
    longitude: Optional[float] = None
    latitude: Optional[float] = None

    @property
    def snow_albedo(self) -> Optional[float]:
        """Albedo scaled to [0, 1], None when the raw value is missing or invalid."""
        if self.snow_albedo_raw is None or self.snow_albedo_raw > MAX_VALID_ALBEDO_RAW:
            return None
        return self.snow_albedo_raw * ALBEDO_SCALE_FACTOR


ObservationInput = Union[pd.DataFrame, Sequence[Observation], Iterable[Observation]]


def observations_to_frame(observations: ObservationInput) -> pd.DataFrame:
    """Normalise observation input into a DataFrame with ``OBSERVATION_COLUMNS``."""
    if isinstance(observations, pd.DataFrame):
        frame = observations.copy()
    else:
        frame = pd.DataFrame([asdict(obs) for obs in observations], columns=OBSERVATION_COLUMNS)

    for column in OBSERVATION_COLUMNS:
        if column not in frame.columns:
            frame[column] = np.nan

    frame['date'] = pd.to_datetime(frame['date'])
    for column in ['ndsi_snow_cover', 'snow_albedo_raw', 'basic_qa', 'algorithm_flags',
                   'glacier_fraction', 'longitude', 'latitude']:
        frame[column] = pd.to_numeric(frame[column], errors='coerce')

    return frame


def season_mask(dates: pd.Series, start_month: int, end_month: int) -> pd.Series:
    """Boolean mask for dates whose month lies in [start_month, end_month]."""
    months = pd.to_datetime(dates).dt.month
    return (months >= start_month) & (months <= end_month)


def date_fields(value: Any) -> Dict[str, Any]:
    """Calendar fields written alongside every dated export row."""
    timestamp = pd.Timestamp(value)
    year = int(timestamp.year)
    doy = int(timestamp.dayofyear)
    return {
        'date': timestamp.strftime('%Y-%m-%d'),
        'year': year,
        'doy': doy,
        'decimal_year': year + doy / 365.25,
    }

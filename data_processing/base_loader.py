from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
import pandas as pd
import logging

from analysis.core.observations import OBSERVATION_COLUMNS

logger = logging.getLogger(__name__)


class BaseDataLoader(ABC):
    """Abstract base class for all observation loaders."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.data: Optional[pd.DataFrame] = None

    @abstractmethod
    def load_data(self, file_path: str, **kwargs) -> pd.DataFrame:
        """Load data from file and return a standardized observation DataFrame."""
        pass

    @abstractmethod
    def get_required_columns(self) -> List[str]:
        """Return list of required columns for this data type."""
        pass

    def validate_data(self, data: pd.DataFrame) -> bool:
        """Check that every required column is present."""
        missing = [col for col in self.get_required_columns() if col not in data.columns]
        if missing:
            logger.error(f"Missing required columns: {missing}")
            return False
        return True

    def preprocess_data(self, data: pd.DataFrame) -> pd.DataFrame:
        """Order columns, parse dates and sort by date."""
        for column in OBSERVATION_COLUMNS:
            if column not in data.columns:
                data[column] = float('nan')
        data['date'] = pd.to_datetime(data['date'])
        extra = [col for col in data.columns if col not in OBSERVATION_COLUMNS]
        return data[OBSERVATION_COLUMNS + extra].sort_values('date').reset_index(drop=True)

    def get_data(self) -> Optional[pd.DataFrame]:
        """Return loaded and processed data."""
        return self.data

    def has_data(self) -> bool:
        """Check if data has been loaded."""
        return self.data is not None and not self.data.empty


class MODISDataLoader(BaseDataLoader):
    """Base class for MOD10A1 observation loaders."""

    def __init__(self, config: Dict[str, Any], product_name: str = 'MOD10A1'):
        super().__init__(config)
        self.product_name = product_name

    def get_required_columns(self) -> List[str]:
        return ['date', 'ndsi_snow_cover', 'snow_albedo_raw', 'basic_qa', 'glacier_fraction']

    def validate_coordinates(self, data: pd.DataFrame) -> bool:
        """Validate that every row has coordinates within range."""
        if 'latitude' in data.columns and 'longitude' in data.columns:
            coords = data[['latitude', 'longitude']]
            if coords.isna().any().any():
                return False
            lat_valid = coords['latitude'].between(-90, 90).all()
            lon_valid = coords['longitude'].between(-180, 180).all()
            return bool(lat_valid and lon_valid)
        return False

    def validate_fraction_range(self, data: pd.DataFrame) -> bool:
        """Validate glacier fractions are within [0, 1]."""
        if 'glacier_fraction' in data.columns:
            return bool(data['glacier_fraction'].dropna().between(0, 1).all())
        return False

import logging
from dataclasses import dataclass, field, replace
from datetime import date as date_type
from typing import Dict, Any, Optional, Tuple

import pandas as pd

from analysis.quality.qa_flags import QAConfig, STANDARD_QA_CONFIG, INTERACTIVE_DEFAULT_QA_CONFIG
from utils.config.helpers import get_section

logger = logging.getLogger(__name__)

DEFAULT_NDSI_SNOW_THRESHOLD = 0
DEFAULT_GLACIER_FRACTION_THRESHOLD = 75
DEFAULT_MIN_PIXEL_THRESHOLD = 10
SUMMER_START_MONTH = 6
PEAK_MELT_START_MONTH = 7
SUMMER_END_MONTH = 9


@dataclass(frozen=True)
class AnalysisRequest:
    """
    Immutable snapshot of every user-selectable parameter.

    Controls never mutate a request; they derive a new one with
    ``with_changes`` and hand it to a recomputation function.

    Args:
        ndsi_threshold: Minimum NDSI_Snow_Cover index (0-100)
        fraction_threshold: Minimum glacier fraction in percent (0-100)
        min_pixels: Minimum pixel count for a statistic to be reported
        qa_config: Quality filter configuration
        selected_date: Date inspected in interactive mode
        peak_melt_only: Restrict the season to July-September
    """

    ndsi_threshold: int = DEFAULT_NDSI_SNOW_THRESHOLD
    fraction_threshold: float = DEFAULT_GLACIER_FRACTION_THRESHOLD
    min_pixels: int = DEFAULT_MIN_PIXEL_THRESHOLD
    qa_config: QAConfig = field(default_factory=lambda: STANDARD_QA_CONFIG)
    selected_date: Optional[date_type] = None
    peak_melt_only: bool = False
    season_start_month: int = SUMMER_START_MONTH
    season_end_month: int = SUMMER_END_MONTH

    def __post_init__(self):
        if not 0 <= self.ndsi_threshold <= 100:
            raise ValueError(f"NDSI threshold must be within 0-100, got {self.ndsi_threshold}")
        if not 0 <= self.fraction_threshold <= 100:
            raise ValueError(f"Glacier fraction threshold must be within 0-100%, got {self.fraction_threshold}")
        if self.min_pixels < 0:
            raise ValueError(f"Minimum pixel threshold cannot be negative, got {self.min_pixels}")
        if not 1 <= self.season_start_month <= self.season_end_month <= 12:
            raise ValueError(f"Invalid season months: {self.season_start_month}-{self.season_end_month}")
        if self.selected_date is not None and not isinstance(self.selected_date, date_type):
            object.__setattr__(self, 'selected_date', pd.Timestamp(self.selected_date).date())

    @property
    def season(self) -> Tuple[int, int]:
        start = PEAK_MELT_START_MONTH if self.peak_melt_only else self.season_start_month
        return start, self.season_end_month

    @property
    def season_label(self) -> str:
        return 'July-September (peak melt)' if self.peak_melt_only else 'June-September (extended melt)'

    def with_changes(self, **changes: Any) -> 'AnalysisRequest':
        return replace(self, **changes)

    def describe(self) -> Dict[str, Any]:
        return {
            'ndsi_snow_threshold': self.ndsi_threshold,
            'glacier_fraction_threshold': self.fraction_threshold,
            'min_pixel_threshold': self.min_pixels,
            'peak_melt_only': self.peak_melt_only,
            'basic_qa_level': self.qa_config.basic_level,
            'excluded_flags': sorted(self.qa_config.excluded_flags),
            'selected_date': self.selected_date.isoformat() if self.selected_date else None,
        }

    @classmethod
    def from_config(cls, config: Dict[str, Any], interactive: bool = False) -> 'AnalysisRequest':
        """
        Build the default request from the ``analysis`` config section.

        Batch runs always use the standard QA configuration; the interactive
        starting point can be tuned under ``quality.interactive``.
        """
        analysis = get_section(config, 'analysis', default={}) or {}
        season = analysis.get('season', {}) or {}

        if interactive:
            qa_config = QAConfig.from_dict(get_section(config, 'quality', 'interactive'),
                                           default=INTERACTIVE_DEFAULT_QA_CONFIG)
            selected_date = get_section(config, 'interactive', 'default_date')
        else:
            qa_config = STANDARD_QA_CONFIG
            selected_date = None

        return cls(
            ndsi_threshold=analysis.get('ndsi_snow_threshold', DEFAULT_NDSI_SNOW_THRESHOLD),
            fraction_threshold=analysis.get('glacier_fraction_threshold', DEFAULT_GLACIER_FRACTION_THRESHOLD),
            min_pixels=analysis.get('min_pixel_threshold', DEFAULT_MIN_PIXEL_THRESHOLD),
            qa_config=qa_config,
            selected_date=selected_date,
            peak_melt_only=season.get('peak_melt_only', False),
            season_start_month=season.get('start_month', SUMMER_START_MONTH),
            season_end_month=season.get('end_month', SUMMER_END_MONTH),
        )

import pandas as pd
import logging
from typing import Dict, Any, List, Optional

from analysis.quality.qa_flags import QAConfig, STANDARD_QA_CONFIG
from .aggregation import AggregationReducer
from .analysis_request import AnalysisRequest
from .observations import (ObservationInput, observations_to_frame, date_fields,
                           MAX_VALID_ALBEDO_RAW, ALBEDO_SCALE_FACTOR)

logger = logging.getLogger(__name__)


def _mean_or_none(values: pd.Series) -> Optional[float]:
    return float(values.mean()) if len(values) else None


class FilterComparison:
    """
    Per-date comparison of glacier albedo with and without the snow filters.

    The unfiltered side applies only the standard QA mask and the valid albedo
    range; the filtered side adds the NDSI and glacier fraction thresholds.
    """

    def __init__(self, reducer: Optional[AggregationReducer] = None,
                 qa_config: QAConfig = STANDARD_QA_CONFIG):
        self.reducer = reducer or AggregationReducer()
        self.qa_config = qa_config

    def compare(self, observations: ObservationInput, request: AnalysisRequest) -> List[Dict[str, Any]]:
        """
        Build one comparison row per acquisition date.

        ``difference`` is filtered minus unfiltered mean and is None when either
        side has no pixels. ``has_high_snow`` is 1 when the filtered side has data.
        """
        frame = observations_to_frame(observations)
        frame = frame[frame['glacier_fraction'] > 0]
        frame = self.reducer.season_filter(frame, request.peak_melt_only,
                                           request.season_start_month, request.season_end_month)

        raw = frame['snow_albedo_raw']
        base = (self.reducer.evaluator.mask_frame(frame, self.qa_config)
                & raw.notna() & (raw <= MAX_VALID_ALBEDO_RAW))
        high_snow = self.reducer.filter_mask(frame, self.qa_config,
                                             request.ndsi_threshold, request.fraction_threshold)

        frame = frame.assign(albedo=raw * ALBEDO_SCALE_FACTOR,
                             base=base, high_snow=high_snow,
                             day=frame['date'].dt.normalize())

        rows = []
        for day, group in frame.groupby('day'):
            unfiltered = group.loc[group['base'], 'albedo']
            filtered = group.loc[group['high_snow'], 'albedo']
            unfiltered_mean = _mean_or_none(unfiltered)
            filtered_mean = _mean_or_none(filtered)

            difference = None
            if filtered_mean is not None and unfiltered_mean is not None:
                difference = filtered_mean - unfiltered_mean

            row = date_fields(day)
            row.update({
                'unfiltered_mean': unfiltered_mean,
                'unfiltered_count': int(len(unfiltered)),
                'filtered_mean': filtered_mean,
                'filtered_count': int(len(filtered)),
                'difference': difference,
                'has_high_snow': 0 if filtered_mean is None else 1,
            })
            rows.append(row)

        logger.info(f"Filter comparison computed for {len(rows)} dates")
        return rows

#!/usr/bin/env python3
"""
CSV Export Module

Flattens aggregation results and observations into tables with a fixed
column order. Unavailable statistics stay None in the rows and are written
with an explicit null marker, never as 0 or an empty string.
"""

import pandas as pd
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from analysis.core.aggregation import AggregationResult, AggregationReducer
from analysis.core.fraction_classes import FractionClassifier
from analysis.core.observations import (ObservationInput, observations_to_frame, date_fields,
                                        MAX_VALID_ALBEDO_RAW, ALBEDO_SCALE_FACTOR)
from analysis.quality.qa_flags import QAConfig, QA_BIT_TABLE, STANDARD_QA_CONFIG, basic_qa_text
from analysis.quality.mask_evaluator import QualityMaskEvaluator
from utils.config.helpers import ensure_directory_exists

logger = logging.getLogger(__name__)

DEFAULT_NULL_MARKER = 'null'
ANNUAL_CLASS_SUFFIX = '_high_snow'

ANNUAL_BASE_COLUMNS = [
    'year', 'glacier_fraction_threshold', 'ndsi_snow_threshold', 'min_pixel_threshold',
    'peak_melt_only', 'total_filtered_pixels', 'sufficient_pixels',
]
DAILY_BASE_COLUMNS = [
    'date', 'year', 'doy', 'decimal_year', 'total_filtered_pixels', 'sufficient_total_pixels',
    'min_pixel_threshold', 'ndsi_snow_threshold', 'glacier_fraction_threshold',
]
PIXEL_COLUMNS = [
    'date', 'year', 'doy', 'decimal_year', 'longitude', 'latitude', 'glacier_fraction_pct',
    'glacier_class', 'ndsi_snow_cover', 'snow_albedo_raw', 'snow_albedo_scaled', 'basic_qa',
    'basic_qa_text', 'algorithm_flags', 'passes_standard_qa',
] + [flag.column for flag in QA_BIT_TABLE]
COMPARISON_COLUMNS = [
    'date', 'year', 'doy', 'decimal_year', 'unfiltered_mean', 'unfiltered_count',
    'filtered_mean', 'filtered_count', 'difference', 'has_high_snow',
]


def _int_or_none(value: Any) -> Optional[int]:
    return None if pd.isna(value) else int(value)


class ExportFormatter:
    """Serialize aggregation results and observations into CSV tables."""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 classifier: Optional[FractionClassifier] = None):
        self.config = config or {}
        self.null_marker = (self.config.get('output') or {}).get('null_marker', DEFAULT_NULL_MARKER)
        self.classifier = classifier or FractionClassifier()

    def annual_columns(self, class_names: List[str]) -> List[str]:
        columns = list(ANNUAL_BASE_COLUMNS)
        for name in class_names:
            prefix = f"{name}{ANNUAL_CLASS_SUFFIX}"
            columns += [f"{prefix}_mean", f"{prefix}_stdDev", f"{prefix}_count",
                        f"{prefix}_sufficient_pixels"]
        return columns

    def daily_columns(self, class_names: List[str]) -> List[str]:
        columns = list(DAILY_BASE_COLUMNS)
        for name in class_names:
            columns += [f"{name}_mean", f"{name}_median", f"{name}_pixel_count",
                        f"{name}_sufficient_pixels"]
        return columns

    def annual_rows(self, result: AggregationResult) -> List[Dict[str, Any]]:
        """One row per year with the statistics of every fraction class."""
        if result.bucket_type != 'annual':
            raise ValueError("annual_rows requires an annual aggregation result")

        rows = []
        for year, records in result.records.items():
            row: Dict[str, Any] = {
                'year': int(year),
                'glacier_fraction_threshold': result.fraction_threshold,
                'ndsi_snow_threshold': result.ndsi_threshold,
                'min_pixel_threshold': result.min_pixels,
                'peak_melt_only': result.peak_melt_only,
                'total_filtered_pixels': result.total_filtered_pixels(year),
                'sufficient_pixels': int(result.sufficient_total(year)),
            }
            for name in result.class_names:
                record = records[name]
                prefix = f"{name}{ANNUAL_CLASS_SUFFIX}"
                row[f"{prefix}_mean"] = record.mean
                row[f"{prefix}_stdDev"] = record.std_dev
                row[f"{prefix}_count"] = record.count
                row[f"{prefix}_sufficient_pixels"] = int(record.sufficient_pixels)
            rows.append(row)
        return rows

    def daily_rows(self, result: AggregationResult) -> List[Dict[str, Any]]:
        """One row per acquisition date with the statistics of every fraction class."""
        if result.bucket_type != 'daily':
            raise ValueError("daily_rows requires a daily aggregation result")

        rows = []
        for day, records in result.records.items():
            row = date_fields(day)
            row.update({
                'total_filtered_pixels': result.total_filtered_pixels(day),
                'sufficient_total_pixels': int(result.sufficient_total(day)),
                'min_pixel_threshold': result.min_pixels,
                'ndsi_snow_threshold': result.ndsi_threshold,
                'glacier_fraction_threshold': result.fraction_threshold,
            })
            for name in result.class_names:
                record = records[name]
                row[f"{name}_mean"] = record.mean
                row[f"{name}_median"] = record.median
                row[f"{name}_pixel_count"] = record.count
                row[f"{name}_sufficient_pixels"] = int(record.sufficient_pixels)
            rows.append(row)
        return rows

    def pixel_rows(self, observations: ObservationInput,
                   qa_config: QAConfig = STANDARD_QA_CONFIG,
                   evaluator: Optional[QualityMaskEvaluator] = None,
                   reducer: Optional[AggregationReducer] = None,
                   peak_melt_only: bool = False) -> List[Dict[str, Any]]:
        """
        One row per on-glacier, in-season observation with decoded QA.

        Flag columns are 0/1, or None when the observation carries no
        algorithm flags. ``snow_albedo_scaled`` is None for raw values above 100.
        """
        evaluator = evaluator or QualityMaskEvaluator()
        reducer = reducer or AggregationReducer(classifier=self.classifier, evaluator=evaluator)

        frame = observations_to_frame(observations)
        frame = frame[frame['glacier_fraction'] > 0]
        frame = reducer.season_filter(frame, peak_melt_only)

        passes = evaluator.mask_frame(frame, qa_config)
        labels = self.classifier.labels_for(frame['glacier_fraction']) if len(frame) else []

        rows = []
        for (_, obs), label, passed in zip(frame.iterrows(), labels, passes):
            raw = _int_or_none(obs['snow_albedo_raw'])
            flags = _int_or_none(obs['algorithm_flags'])

            row = date_fields(obs['date'])
            row.update({
                'longitude': None if pd.isna(obs['longitude']) else float(obs['longitude']),
                'latitude': None if pd.isna(obs['latitude']) else float(obs['latitude']),
                'glacier_fraction_pct': float(obs['glacier_fraction']) * 100,
                'glacier_class': label,
                'ndsi_snow_cover': _int_or_none(obs['ndsi_snow_cover']),
                'snow_albedo_raw': raw,
                'snow_albedo_scaled': raw * ALBEDO_SCALE_FACTOR if raw is not None and raw <= MAX_VALID_ALBEDO_RAW else None,
                'basic_qa': _int_or_none(obs['basic_qa']),
                'basic_qa_text': basic_qa_text(_int_or_none(obs['basic_qa'])),
                'algorithm_flags': flags,
                'passes_standard_qa': int(bool(passed)),
            })
            for flag in QA_BIT_TABLE:
                row[flag.column] = None if flags is None else int(bool(flags & flag.mask))
            rows.append(row)
        return rows

    def to_frame(self, rows: List[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
        """Rows as a DataFrame with exactly ``columns`` in that order."""
        return pd.DataFrame(rows, columns=columns)

    def annual_table(self, result: AggregationResult) -> pd.DataFrame:
        return self.to_frame(self.annual_rows(result), self.annual_columns(list(result.class_names)))

    def daily_table(self, result: AggregationResult) -> pd.DataFrame:
        return self.to_frame(self.daily_rows(result), self.daily_columns(list(result.class_names)))

    def pixel_table(self, observations: ObservationInput, **kwargs) -> pd.DataFrame:
        return self.to_frame(self.pixel_rows(observations, **kwargs), PIXEL_COLUMNS)

    def comparison_table(self, rows: List[Dict[str, Any]]) -> pd.DataFrame:
        return self.to_frame(rows, COMPARISON_COLUMNS)

    def write_csv(self, table: pd.DataFrame, output_path: str) -> str:
        """Write a table with the configured null marker for unavailable values."""
        ensure_directory_exists(str(Path(output_path).parent))
        table.to_csv(output_path, index=False, na_rep=self.null_marker)
        logger.info(f"Exported {len(table)} rows to: {output_path}")
        return output_path

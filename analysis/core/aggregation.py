#!/usr/bin/env python3
"""
Albedo Aggregation

Reduces quality-filtered MOD10A1 observations into per-class statistics for
annual or daily time buckets.

Annual buckets are reduced in two stages: each pixel is averaged over the
season, then the pixel means are reduced per class, so annual counts are
pixels. Daily buckets reduce observations directly.

Statistics of a (bucket, class) cell are only reported when the cell holds at
least ``min_pixels`` values; otherwise mean, median and standard deviation
are None while the pixel count is kept.
"""

import pandas as pd
import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Dict, Any, List, Optional, Sequence, Tuple, Union

from analysis.quality.qa_flags import QAConfig
from analysis.quality.mask_evaluator import QualityMaskEvaluator
from .analysis_request import AnalysisRequest, SUMMER_START_MONTH, SUMMER_END_MONTH, PEAK_MELT_START_MONTH
from .fraction_classes import FractionClassifier
from .observations import (ObservationInput, observations_to_frame, season_mask,
                           MAX_VALID_ALBEDO_RAW, ALBEDO_SCALE_FACTOR)

logger = logging.getLogger(__name__)

BUCKET_TYPES = ('annual', 'daily')
Bucket = Union[int, date_type]


def _optional(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def is_sufficient(count: int, min_pixels: int) -> bool:
    """An empty cell is never sufficient, even with a zero threshold."""
    return count > 0 and count >= min_pixels


@dataclass(frozen=True)
class AggregateRecord:
    """Statistics for one (time bucket, fraction class) cell."""

    bucket: Bucket
    class_name: str
    count: int
    mean: Optional[float] = None
    std_dev: Optional[float] = None
    median: Optional[float] = None
    sufficient_pixels: bool = False


@dataclass(frozen=True)
class AggregationResult:
    """
    Output of one aggregation run.

    ``records`` maps bucket -> class name -> AggregateRecord, ordered by bucket
    and by class. ``totals`` holds the number of accepted observations
    (pixel-days) in each bucket across all classes.
    """

    bucket_type: str
    class_names: Tuple[str, ...]
    records: Dict[Bucket, Dict[str, AggregateRecord]]
    totals: Dict[Bucket, int]
    min_pixels: int
    ndsi_threshold: int
    fraction_threshold: float
    peak_melt_only: bool = False

    @property
    def buckets(self) -> List[Bucket]:
        return list(self.records.keys())

    def record(self, bucket: Bucket, class_name: str) -> AggregateRecord:
        return self.records[bucket][class_name]

    def total_filtered_pixels(self, bucket: Bucket) -> int:
        return self.totals.get(bucket, 0)

    def sufficient_total(self, bucket: Bucket) -> bool:
        return is_sufficient(self.total_filtered_pixels(bucket), self.min_pixels)


@dataclass(frozen=True)
class YearSeries:
    """Ordered (year, mean albedo) pairs for one class, sufficient years only."""

    class_name: str
    years: Tuple[int, ...] = field(default_factory=tuple)
    values: Tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.years) != len(self.values):
            raise ValueError("YearSeries years and values must have the same length")
        order = sorted(range(len(self.years)), key=lambda i: self.years[i])
        object.__setattr__(self, 'years', tuple(int(self.years[i]) for i in order))
        object.__setattr__(self, 'values', tuple(float(self.values[i]) for i in order))

    def __len__(self) -> int:
        return len(self.years)

    @classmethod
    def from_mapping(cls, values: Dict[int, float], class_name: str = 'series') -> 'YearSeries':
        years = list(values.keys())
        return cls(class_name=class_name, years=tuple(years), values=tuple(values[y] for y in years))

    def to_series(self) -> pd.Series:
        return pd.Series(list(self.values), index=list(self.years), name=self.class_name)


class AggregationReducer:
    """
    Filter, classify and reduce observations into AggregateRecords.

    Args:
        classifier: Fraction classifier (default breakpoints when omitted)
        evaluator: Quality mask evaluator
        config: Optional configuration dictionary; ``analysis.fraction_thresholds``
            overrides the class breakpoints
    """

    def __init__(self, classifier: Optional[FractionClassifier] = None,
                 evaluator: Optional[QualityMaskEvaluator] = None,
                 config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        if classifier is None:
            thresholds = (self.config.get('analysis') or {}).get('fraction_thresholds')
            classifier = FractionClassifier(thresholds)
        self.classifier = classifier
        self.evaluator = evaluator or QualityMaskEvaluator()

    def filter_mask(self, frame: pd.DataFrame, cfg: QAConfig,
                    ndsi_threshold: float, fraction_threshold: float) -> pd.Series:
        """
        Boolean mask of observations entering the aggregation.

        An observation survives when it passes the QA filter, reaches the NDSI
        threshold, carries a valid raw albedo (<= 100), lies on the glacier and
        reaches the glacier fraction threshold (given in percent).
        """
        raw = frame['snow_albedo_raw']
        fraction = frame['glacier_fraction']
        return (self.evaluator.mask_frame(frame, cfg)
                & (frame['ndsi_snow_cover'] >= ndsi_threshold)
                & raw.notna()
                & (raw <= MAX_VALID_ALBEDO_RAW)
                & (fraction > 0)
                & (fraction >= fraction_threshold / 100.0))

    def season_filter(self, frame: pd.DataFrame, peak_melt_only: bool = False,
                      start_month: int = SUMMER_START_MONTH,
                      end_month: int = SUMMER_END_MONTH) -> pd.DataFrame:
        """Keep melt-season observations (July-September when ``peak_melt_only``)."""
        if peak_melt_only:
            start_month = PEAK_MELT_START_MONTH
        return frame[season_mask(frame['date'], start_month, end_month)]

    def _bucket_keys(self, frame: pd.DataFrame, bucket: str) -> pd.Series:
        if bucket == 'annual':
            return frame['date'].dt.year.astype(int)
        return frame['date'].dt.date

    def aggregate(self, observations: ObservationInput, cfg: QAConfig,
                  ndsi_threshold: float, fraction_threshold: float, min_pixels: int,
                  bucket: str = 'annual', peak_melt_only: bool = False,
                  composite_pixels: Optional[bool] = None,
                  buckets: Optional[Sequence[Bucket]] = None,
                  season: Optional[Tuple[int, int]] = None) -> AggregationResult:
        """
        Aggregate observations into per-bucket, per-class statistics.

        Args:
            observations: Observation records or an observation DataFrame
            cfg: Quality configuration
            ndsi_threshold: Minimum NDSI_Snow_Cover
            fraction_threshold: Minimum glacier fraction in percent
            min_pixels: Sufficiency threshold for reported statistics
            bucket: 'annual' (mean/stdDev) or 'daily' (mean/median)
            peak_melt_only: Restrict the season to July-September
            composite_pixels: Average each pixel over the season before
                reducing across pixels (annual only; defaults to True for
                annual buckets and False for daily ones)
            buckets: Buckets to report even when empty (e.g. study years)
            season: Explicit (start_month, end_month) season

        Returns:
            AggregationResult
        """
        if bucket not in BUCKET_TYPES:
            raise ValueError(f"Unknown bucket type: {bucket}. Expected one of {BUCKET_TYPES}")
        if composite_pixels is None:
            composite_pixels = bucket == 'annual'
        if composite_pixels and bucket != 'annual':
            raise ValueError("Pixel compositing is only defined for annual buckets")
        if min_pixels < 0:
            raise ValueError(f"Minimum pixel threshold cannot be negative, got {min_pixels}")

        frame = observations_to_frame(observations)
        frame = frame[frame['glacier_fraction'] > 0]
        if season is not None:
            frame = self.season_filter(frame, peak_melt_only, season[0], season[1])
        else:
            frame = self.season_filter(frame, peak_melt_only)

        keys = self._bucket_keys(frame, bucket)
        all_buckets = sorted(set(keys.tolist()) | set(buckets or []))

        survivors = frame[self.filter_mask(frame, cfg, ndsi_threshold, fraction_threshold)].copy()
        survivors['bucket'] = self._bucket_keys(survivors, bucket)
        survivors['albedo'] = survivors['snow_albedo_raw'] * ALBEDO_SCALE_FACTOR
        totals = survivors.groupby('bucket').size().to_dict()

        logger.debug(f"{len(survivors)} of {len(frame)} in-season observations passed the filters "
                     f"({bucket} buckets)")

        if composite_pixels:
            survivors = self._composite(survivors)

        survivors['class_index'] = self.classifier.classify_array(survivors['glacier_fraction'])
        stats = self._reduce(survivors)

        records: Dict[Bucket, Dict[str, AggregateRecord]] = {}
        for key in all_buckets:
            records[key] = {}
            for cls in self.classifier.classes:
                row = stats.get((key, cls.index))
                records[key][cls.name] = self._make_record(key, cls.name, row, bucket, min_pixels)

        return AggregationResult(
            bucket_type=bucket,
            class_names=tuple(self.classifier.class_names),
            records=records,
            totals={key: int(totals.get(key, 0)) for key in all_buckets},
            min_pixels=min_pixels,
            ndsi_threshold=ndsi_threshold,
            fraction_threshold=fraction_threshold,
            peak_melt_only=peak_melt_only,
        )

    def _composite(self, survivors: pd.DataFrame) -> pd.DataFrame:
        """Collapse each pixel's season of observations into its mean albedo."""
        if survivors.empty:
            return survivors
        if survivors[['longitude', 'latitude']].isna().any().any():
            raise ValueError("Pixel compositing requires longitude and latitude for every observation")
        return (survivors
                .groupby(['bucket', 'longitude', 'latitude'], as_index=False)
                .agg(albedo=('albedo', 'mean'), glacier_fraction=('glacier_fraction', 'first')))

    def _reduce(self, survivors: pd.DataFrame) -> Dict[Tuple[Bucket, int], Dict[str, Any]]:
        if survivors.empty:
            return {}
        grouped = survivors.groupby(['bucket', 'class_index'])['albedo']
        stats = grouped.agg(['count', 'mean', 'std', 'median'])
        return {index: row.to_dict() for index, row in stats.iterrows()}

    def _make_record(self, key: Bucket, class_name: str, row: Optional[Dict[str, Any]],
                     bucket: str, min_pixels: int) -> AggregateRecord:
        count = int(row['count']) if row else 0
        if not is_sufficient(count, min_pixels):
            return AggregateRecord(bucket=key, class_name=class_name, count=count,
                                   sufficient_pixels=False)

        return AggregateRecord(
            bucket=key,
            class_name=class_name,
            count=count,
            mean=_optional(row['mean']),
            std_dev=_optional(row['std']) if bucket == 'annual' else None,
            median=_optional(row['median']) if bucket == 'daily' else None,
            sufficient_pixels=True,
        )

    def annual(self, observations: ObservationInput, request: AnalysisRequest,
               study_years: Optional[Sequence[int]] = None,
               composite_pixels: bool = True) -> AggregationResult:
        """Annual statistics for an analysis request (per-pixel season composites by default)."""
        return self.aggregate(observations, request.qa_config, request.ndsi_threshold,
                              request.fraction_threshold, request.min_pixels,
                              bucket='annual', peak_melt_only=request.peak_melt_only,
                              composite_pixels=composite_pixels, buckets=study_years,
                              season=request.season)

    def daily(self, observations: ObservationInput, request: AnalysisRequest) -> AggregationResult:
        """Daily statistics for an analysis request."""
        return self.aggregate(observations, request.qa_config, request.ndsi_threshold,
                              request.fraction_threshold, request.min_pixels,
                              bucket='daily', peak_melt_only=request.peak_melt_only,
                              season=request.season)


def build_year_series(result: AggregationResult, class_name: str) -> YearSeries:
    """
    Extract the year series of one class from an annual aggregation.

    Years whose record is insufficient are left out.
    """
    if result.bucket_type != 'annual':
        raise ValueError("Year series can only be built from annual aggregation results")
    if class_name not in result.class_names:
        raise KeyError(f"Unknown fraction class: {class_name}")

    years, values = [], []
    for year, classes in result.records.items():
        record = classes[class_name]
        if record.sufficient_pixels and record.mean is not None:
            years.append(int(year))
            values.append(record.mean)

    return YearSeries(class_name=class_name, years=tuple(years), values=tuple(values))

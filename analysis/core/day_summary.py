#!/usr/bin/env python3
"""
Daily Filtering Summary

Pure recomputation used by the interactive controller: given the full
observation table and the current AnalysisRequest, find the acquisition to
display, apply the filters and summarise the result.
"""

import pandas as pd
import yaml
import logging
from dataclasses import dataclass, field
from datetime import date as date_type, timedelta
from typing import Dict, Any, List, Optional, Tuple

from .aggregation import AggregationReducer
from .analysis_request import AnalysisRequest
from .observations import ObservationInput, observations_to_frame, ALBEDO_SCALE_FACTOR

logger = logging.getLogger(__name__)

AVAILABILITY_WINDOW_DAYS = 5
DEFAULT_DISPLAY_RANGE: Tuple[float, float] = (0.4, 0.9)


@dataclass(frozen=True)
class DaySummary:
    """Outcome of filtering one acquisition date."""

    requested_date: Optional[date_type]
    acquisition_date: Optional[date_type]
    pixel_count: int
    mean_albedo: Optional[float]
    threshold_met: bool
    display_range: Tuple[float, float] = DEFAULT_DISPLAY_RANGE
    range_fallback: bool = True
    retention: Dict[str, Any] = field(default_factory=dict)
    filtered_pixels: Optional[pd.DataFrame] = field(default=None, compare=False, repr=False)

    @property
    def status(self) -> str:
        if self.acquisition_date is None:
            return 'NO_ACQUISITION'
        if self.pixel_count == 0:
            return 'NO_PIXELS'
        if not self.threshold_met:
            return 'INSUFFICIENT_PIXELS'
        return 'OK'


def select_day(observations: ObservationInput, selected_date: Any,
               window_days: int = AVAILABILITY_WINDOW_DAYS) -> Tuple[Optional[date_type], pd.DataFrame]:
    """
    Pick the first acquisition in ``[selected_date, selected_date + window_days)``.

    Returns:
        Tuple of (acquisition date or None, observations of that date)
    """
    frame = observations_to_frame(observations)
    start = pd.Timestamp(selected_date).normalize()
    end = start + timedelta(days=window_days)

    dates = frame['date'].dt.normalize()
    in_window = frame[(dates >= start) & (dates < end)]
    if in_window.empty:
        logger.warning(f"No acquisition within {window_days} days of {start.date()}")
        return None, in_window

    acquisition = in_window['date'].dt.normalize().min()
    day = in_window[in_window['date'].dt.normalize() == acquisition]
    return acquisition.date(), day


def min_pixel_label(min_pixels: int) -> str:
    return 'OFF (no filter)' if min_pixels == 0 else str(min_pixels)


def compute_day_summary(observations: ObservationInput, request: AnalysisRequest,
                        reducer: Optional[AggregationReducer] = None) -> DaySummary:
    """
    Filter the acquisition selected by ``request`` and summarise it.

    A minimum pixel threshold of 0 disables the sufficiency check. When the
    threshold is not met the pixel count is reported and the mean is None.
    The display range is the min/max of the filtered albedo, falling back to
    0.4-0.9 when it cannot be computed.
    """
    reducer = reducer or AggregationReducer()

    if request.selected_date is None:
        raise ValueError("Analysis request has no selected date")

    acquisition, day = select_day(observations, request.selected_date)
    if acquisition is None:
        return DaySummary(requested_date=request.selected_date, acquisition_date=None,
                          pixel_count=0, mean_albedo=None, threshold_met=request.min_pixels == 0)

    keep = reducer.filter_mask(day, request.qa_config, request.ndsi_threshold, request.fraction_threshold)
    filtered = day[keep].copy()
    filtered['albedo'] = filtered['snow_albedo_raw'] * ALBEDO_SCALE_FACTOR

    count = len(filtered)
    threshold_met = request.min_pixels == 0 or count >= request.min_pixels
    mean = float(filtered['albedo'].mean()) if count and threshold_met else None

    display_range, fallback = _display_range(filtered['albedo'])

    return DaySummary(
        requested_date=request.selected_date,
        acquisition_date=acquisition,
        pixel_count=count,
        mean_albedo=mean,
        threshold_met=threshold_met,
        display_range=display_range,
        range_fallback=fallback,
        retention=reducer.evaluator.retention(day, request.qa_config),
        filtered_pixels=filtered,
    )


def _display_range(albedo: pd.Series) -> Tuple[Tuple[float, float], bool]:
    try:
        low, high = albedo.min(), albedo.max()
        if pd.isna(low) or pd.isna(high):
            raise ValueError("no filtered albedo values")
        return (float(low), float(high)), False
    except (TypeError, ValueError) as e:
        logger.warning(f"Error computing adaptive display range, using default "
                       f"{DEFAULT_DISPLAY_RANGE[0]}-{DEFAULT_DISPLAY_RANGE[1]}: {e}")
        return DEFAULT_DISPLAY_RANGE, True


def format_day_summary(summary: DaySummary, request: AnalysisRequest) -> List[str]:
    """Console lines describing a DaySummary."""
    lines = [f"Selected date: {summary.requested_date}"]
    if summary.acquisition_date is None:
        lines.append(f"• No MOD10A1 acquisition within {AVAILABILITY_WINDOW_DAYS} days")
        return lines

    lines.append(f"Acquisition: {summary.acquisition_date}")
    lines.append(f"NDSI Snow Cover threshold: {request.ndsi_threshold} (index 0-100)")
    lines.append(f"Glacier fraction threshold: {request.fraction_threshold}%")
    lines.append(f"Minimum pixels: {min_pixel_label(request.min_pixels)}")

    if summary.status == 'OK':
        lines.append(f"• Mean albedo: {summary.mean_albedo:.3f}")
        lines.append(f"• Qualified pixels: {summary.pixel_count}")
        lines.append(f"• NDSI ≥{request.ndsi_threshold} AND Glacier ≥{request.fraction_threshold}%")
        if request.min_pixels > 0:
            lines.append(f"• Pixel threshold (≥{request.min_pixels}): met")
    elif summary.status == 'INSUFFICIENT_PIXELS':
        lines.append(f"• Pixels found: {summary.pixel_count}")
        lines.append(f"• Required threshold: ≥{request.min_pixels} pixels")
        lines.append("• Not enough qualified pixels")
    else:
        lines.append("• No qualified pixels")
        lines.append("• Try reducing thresholds")

    low, high = summary.display_range
    suffix = ' (default)' if summary.range_fallback else ''
    lines.append(f"Display range: {low:.2f} - {high:.2f}{suffix}")

    retention = summary.retention
    if retention.get('total_pixels'):
        lines.append(f"QA pixel retention: {retention['retained_pixels']}/{retention['total_pixels']} "
                     f"({retention['retention_pct']}%)")
    return lines


def format_parameters(request: AnalysisRequest) -> List[str]:
    """Tuned parameters rendered as a configuration snippet."""
    period = 'July-September (peak melt)' if request.peak_melt_only else 'June-September'
    return [
        "Optimal parameters found:",
        f"• NDSI Snow Cover threshold: {request.ndsi_threshold} (index 0-100)",
        f"• Glacier fraction threshold: {request.fraction_threshold}%",
        f"• Minimum pixels: {'OFF (disabled)' if request.min_pixels == 0 else request.min_pixels}",
        f"• Period: {period}",
        f"• Basic QA level: {request.qa_config.basic_level}",
        "Configuration:",
        "analysis:",
        f"  ndsi_snow_threshold: {request.ndsi_threshold}",
        f"  glacier_fraction_threshold: {request.fraction_threshold}",
        f"  min_pixel_threshold: {request.min_pixels}",
    ] + yaml.safe_dump({'quality': {'interactive': request.qa_config.to_dict()}},
                       sort_keys=False, default_flow_style=False).splitlines()

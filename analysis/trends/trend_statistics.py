#!/usr/bin/env python3
"""
Trend Statistics Module

Descriptive statistics over an annual albedo series (one value per year for
a single glacier fraction class):

- Sen's slope (median of all pairwise slopes)
- Sliding-window change-point scan
- Variability with rolling 5-year coefficient of variation
- Z-score anomaly flags
- Lag-1 autocorrelation
- Early/late split-period comparison

Each analysis reports its own status so a short series can still yield the
analyses it has enough years for.
"""

import numpy as np
import logging
from scipy import stats as scipy_stats
from typing import Dict, Any, List, Optional, Sequence

from analysis.core.aggregation import YearSeries

logger = logging.getLogger(__name__)

STATUS_OK = 'OK'
STATUS_INSUFFICIENT = 'INSUFFICIENT_DATA'
STATUS_UNDEFINED = 'UNDEFINED'
STATUS_ERROR = 'ERROR'


class TrendStatistics:
    """
    Battery of simplified trend statistics for a YearSeries.

    The change-point scan and split-period comparison are fixed heuristics
    (window 3 / threshold 0.03, split at n/2), not formal structural-break tests.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        trend_config = self.config.get('trend_analysis') or {}
        self.min_years = trend_config.get('min_years', 5)
        self.change_point_window = trend_config.get('change_point_window', 3)
        self.change_point_threshold = trend_config.get('change_point_threshold', 0.03)
        self.rolling_window = trend_config.get('rolling_window', 5)
        self.anomaly_threshold = trend_config.get('anomaly_z_threshold', 2.0)
        self.autocorrelation_min_years = trend_config.get('autocorrelation_min_years', 3)
        self.split_min_years = trend_config.get('split_min_years', 10)

    def sens_slope(self, years: Sequence[int], values: Sequence[float]) -> Dict[str, Any]:
        """
        Median of all pairwise slopes.

        Returns:
            Dictionary with slope per year, decadal change and total change over the span
        """
        years = np.asarray(years, dtype=float)
        values = np.asarray(values, dtype=float)
        n = len(values)

        slopes = []
        for i in range(n - 1):
            for j in range(i + 1, n):
                if years[j] != years[i]:
                    slopes.append((values[j] - values[i]) / (years[j] - years[i]))

        if not slopes:
            return {'status': STATUS_INSUFFICIENT, 'slope': None}

        slope = float(np.median(slopes))
        span = float(years.max() - years.min())
        return {
            'status': STATUS_OK,
            'slope': slope,
            'decadal_change': slope * 10,
            'total_change': slope * span,
            'span_years': int(span),
            'n_slopes': len(slopes),
        }

    def change_points(self, years: Sequence[int], values: Sequence[float]) -> Dict[str, Any]:
        """Compare the mean of ``window`` values before each index with the ``window`` values from it."""
        window = self.change_point_window
        threshold = self.change_point_threshold
        values = np.asarray(values, dtype=float)
        n = len(values)

        if n < 2 * window:
            return {'status': STATUS_INSUFFICIENT, 'window': window, 'threshold': threshold,
                    'change_points': []}

        points = []
        for i in range(window, n - window):
            before = values[i - window:i].mean()
            after = values[i:i + window].mean()
            change = abs(after - before)
            if change > threshold:
                points.append({
                    'year': int(years[i]),
                    'magnitude': float(change),
                    'direction': 'increase' if after > before else 'decrease',
                })

        return {'status': STATUS_OK, 'window': window, 'threshold': threshold,
                'change_points': points}

    def variability(self, years: Sequence[int], values: Sequence[float]) -> Dict[str, Any]:
        """Global mean, sample standard deviation, CV and rolling-window CV extremes."""
        values = np.asarray(values, dtype=float)
        n = len(values)
        if n < 2:
            return {'status': STATUS_INSUFFICIENT}

        mean = float(values.mean())
        std = float(values.std(ddof=1))
        cv = std / mean * 100 if mean != 0 else None

        result = {
            'status': STATUS_OK,
            'mean': mean,
            'std_dev': std,
            'cv_percent': cv,
            'rolling_cv': [],
            'most_stable': None,
            'most_variable': None,
        }

        window = self.rolling_window
        if n < window:
            return result

        rolling = []
        for end in range(window - 1, n):
            chunk = values[end - window + 1:end + 1]
            chunk_mean = chunk.mean()
            if chunk_mean == 0:
                continue
            rolling.append({
                'start_year': int(years[end - window + 1]),
                'end_year': int(years[end]),
                'cv_percent': float(chunk.std(ddof=1) / chunk_mean * 100),
            })

        if rolling:
            result['rolling_cv'] = rolling
            result['most_stable'] = min(rolling, key=lambda w: w['cv_percent'])
            result['most_variable'] = max(rolling, key=lambda w: w['cv_percent'])
        return result

    def anomalies(self, years: Sequence[int], values: Sequence[float]) -> Dict[str, Any]:
        """
        Flag years whose z-score exceeds the anomaly threshold.

        Z-scores use the sample standard deviation; a constant series has no
        defined z-scores and therefore no anomalies.
        """
        values = np.asarray(values, dtype=float)
        threshold = self.anomaly_threshold
        if len(values) < 2:
            return {'status': STATUS_INSUFFICIENT, 'threshold': threshold, 'z_scores': None, 'anomalies': []}

        if np.ptp(values) == 0:
            return {'status': STATUS_UNDEFINED, 'threshold': threshold, 'z_scores': None, 'anomalies': []}

        z_scores = scipy_stats.zscore(values, ddof=1)
        flagged = []
        for year, value, z in zip(years, values, z_scores):
            if abs(z) > threshold:
                flagged.append({
                    'year': int(year),
                    'albedo': float(value),
                    'z_score': float(z),
                    'type': 'HIGH' if z > 0 else 'LOW',
                })

        return {
            'status': STATUS_OK,
            'threshold': threshold,
            'z_scores': {int(y): float(z) for y, z in zip(years, z_scores)},
            'anomalies': flagged,
        }

    def lag1_autocorrelation(self, values: Sequence[float]) -> Dict[str, Any]:
        """Pearson correlation between the series and itself shifted by one year."""
        values = np.asarray(values, dtype=float)
        if len(values) < self.autocorrelation_min_years:
            return {'status': STATUS_INSUFFICIENT, 'autocorrelation': None, 'level': None}

        leading, lagged = values[:-1], values[1:]
        if np.ptp(leading) == 0 or np.ptp(lagged) == 0:
            return {'status': STATUS_UNDEFINED, 'autocorrelation': None, 'level': STATUS_UNDEFINED,
                    'interpretation': 'Undefined (zero variance)'}

        r, _ = scipy_stats.pearsonr(leading, lagged)
        r = float(r)
        if r > 0.5:
            level, interpretation = 'HIGH', 'Strong year-to-year memory'
        elif r > 0.2:
            level, interpretation = 'MODERATE', 'Moderate temporal dependence'
        else:
            level, interpretation = 'LOW', 'Weak temporal correlation'

        return {'status': STATUS_OK, 'autocorrelation': r, 'level': level,
                'interpretation': interpretation}

    def split_period(self, years: Sequence[int], values: Sequence[float]) -> Dict[str, Any]:
        """Compare the first and last floor(n/2) years; a middle odd year is dropped."""
        values = np.asarray(values, dtype=float)
        n = len(values)
        if n < self.split_min_years:
            return {'status': STATUS_INSUFFICIENT, 'min_years': self.split_min_years}

        half = n // 2
        early_mean = float(values[:half].mean())
        late_mean = float(values[-half:].mean())
        difference = late_mean - early_mean
        relative = difference / early_mean * 100 if early_mean != 0 else None

        if relative is None:
            signal = STATUS_UNDEFINED
        elif abs(relative) > 5:
            signal = 'STRONG'
        elif abs(relative) > 2:
            signal = 'MODERATE'
        else:
            signal = 'WEAK'

        return {
            'status': STATUS_OK,
            'early_period': (int(years[0]), int(years[half - 1])),
            'late_period': (int(years[n - half]), int(years[-1])),
            'early_mean': early_mean,
            'late_mean': late_mean,
            'difference': difference,
            'relative_change_percent': relative,
            'signal': signal,
        }

    def analyze(self, series: YearSeries) -> Dict[str, Any]:
        """
        Run every analysis on a year series.

        Args:
            series: Sufficient-year series for one fraction class

        Returns:
            Dictionary with an overall status and one entry per analysis
        """
        n = len(series)
        if n < self.min_years:
            logger.warning(f"Insufficient data for trend analysis of {series.class_name}: "
                           f"{n} years (need >= {self.min_years})")
            return {'status': STATUS_INSUFFICIENT, 'class_name': series.class_name,
                    'n_years': n, 'min_years': self.min_years}

        years, values = list(series.years), list(series.values)
        logger.info(f"Running trend statistics for {series.class_name} ({years[0]}-{years[-1]}, {n} years)")

        results: Dict[str, Any] = {
            'status': STATUS_OK,
            'class_name': series.class_name,
            'n_years': n,
            'period': (years[0], years[-1]),
            'mean': float(np.mean(values)),
        }

        analyses = {
            'sens_slope': lambda: self.sens_slope(years, values),
            'change_points': lambda: self.change_points(years, values),
            'variability': lambda: self.variability(years, values),
            'anomalies': lambda: self.anomalies(years, values),
            'autocorrelation': lambda: self.lag1_autocorrelation(values),
            'split_period': lambda: self.split_period(years, values),
        }
        for name, run in analyses.items():
            try:
                results[name] = run()
            except (ValueError, FloatingPointError, ZeroDivisionError) as e:
                logger.error(f"Error in {name} analysis: {e}")
                results[name] = {'status': STATUS_ERROR, 'error': str(e)}

        return results

    def analyze_values(self, years: Sequence[int], values: Sequence[float],
                       class_name: str = 'series') -> Dict[str, Any]:
        return self.analyze(YearSeries(class_name=class_name, years=tuple(years), values=tuple(values)))


def trend_line(years: Sequence[int], values: Sequence[float], slope: float) -> List[float]:
    """Sen's slope line through the median point of the series."""
    years = np.asarray(years, dtype=float)
    values = np.asarray(values, dtype=float)
    intercept = np.median(values) - slope * np.median(years)
    return list(intercept + slope * years)

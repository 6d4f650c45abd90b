#!/usr/bin/env python3
"""
Trend plot implementations for annual snow albedo.

Annual mean albedo of one glacier fraction class with a least-squares
trendline and the Sen's slope line, plus a multi-class overview.
"""

import matplotlib.pyplot as plt
from matplotlib.ticker import MaxNLocator
import numpy as np
import logging
from typing import Dict, Any, Optional

from analysis.core.aggregation import AggregationResult, YearSeries
from analysis.trends.trend_statistics import trend_line
from .base import BasePlotter

logger = logging.getLogger(__name__)

DEFAULT_Y_LIMITS = (0.2, 0.9)


class TrendPlotter(BasePlotter):
    """Specialized plotter for annual albedo trends."""

    def create_trend_plot(self, series: YearSeries,
                          trend_results: Optional[Dict[str, Any]] = None,
                          title: Optional[str] = None,
                          output_path: Optional[str] = None) -> Optional[plt.Figure]:
        """
        Plot the annual mean albedo of one class with its trend lines.

        Args:
            series: Sufficient-year series for one fraction class
            trend_results: Output of ``TrendStatistics.analyze`` for the Sen's slope line
            title: Plot title
            output_path: Where to save the figure

        Returns:
            The figure, or None when the series is empty
        """
        if len(series) == 0:
            logger.error(f"No sufficient years to plot for {series.class_name}")
            return None

        years = np.array(series.years)
        values = np.array(series.values)
        label = series.class_name.replace('glacier_', '').replace('_', '-').replace('pct', '%')

        fig, ax = plt.subplots(figsize=self.figure_size)
        ax.plot(years, values, marker='o', markersize=5, linewidth=2,
                color=self._get_class_color(series.class_name), label=f'Mean albedo ({label})')

        self._add_regression_line(ax, years, values, color='red', linestyle='-')

        sen = (trend_results or {}).get('sens_slope') or {}
        if sen.get('slope') is not None:
            ax.plot(years, trend_line(years, values, sen['slope']), color='black', linestyle='--',
                    linewidth=1.5, alpha=0.8, label=f"Sen's slope ({sen['slope']:.4f}/yr)")

        y_limits = self.viz_config.get('trend_y_limits', DEFAULT_Y_LIMITS)
        ax.set_ylim(y_limits[0], y_limits[1])
        ax.set_xlabel('Year')
        ax.set_ylabel('Mean Albedo')
        ax.set_title(title or f'Pure Ice Albedo Trend ({label} glacier fraction)')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='best')
        ax.xaxis.set_major_locator(MaxNLocator(integer=True))

        fig.tight_layout()
        self._save_figure(fig, output_path, "Trend plot")
        return fig

    def create_class_overview_plot(self, result: AggregationResult,
                                   output_path: Optional[str] = None) -> Optional[plt.Figure]:
        """Annual mean albedo of every fraction class on one axis."""
        if not result.records:
            logger.error("No annual records to plot")
            return None

        fig, ax = plt.subplots(figsize=self.figure_size)
        for index, name in enumerate(result.class_names):
            points = [(year, classes[name].mean) for year, classes in result.records.items()
                      if classes[name].mean is not None]
            if not points:
                continue
            years, means = zip(*points)
            ax.plot(years, means, marker='o', linewidth=1.5,
                    color=self._get_class_color(name, index), label=name)

        ax.set_xlabel('Year')
        ax.set_ylabel('Mean Albedo')
        ax.set_title(f'Annual Albedo by Glacier Fraction Class '
                     f'(NDSI ≥{result.ndsi_threshold}, min {result.min_pixels} pixels)')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='best', fontsize=9)

        fig.tight_layout()
        self._save_figure(fig, output_path, "Class overview plot")
        return fig

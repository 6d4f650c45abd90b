#!/usr/bin/env python3
"""
Base plotting functionality for snow albedo visualizations.

This module contains the BasePlotter class with shared configuration,
styling, and helper methods used across all specialized plotters.
"""

import matplotlib.pyplot as plt
import seaborn as sns
import numpy as np
import logging
from typing import Dict, Any, Optional, Sequence
from scipy import stats

logger = logging.getLogger(__name__)

# Set consistent plotting style
plt.style.use('default')
sns.set_palette("husl")


class BasePlotter:
    """Base class for all specialized plotters with shared functionality."""

    def __init__(self, config: Dict[str, Any]):
        """Initialize base plotter with configuration."""
        self.config = config
        self.viz_config = config.get('visualization') or {}

        # Colors per glacier fraction class
        self.colors = self.viz_config.get('colors', {
            'glacier_0_25pct': '#d73027',
            'glacier_25_50pct': '#fc8d59',
            'glacier_50_75pct': '#fee090',
            'glacier_75_90pct': '#91bfdb',
            'glacier_90_100pct': '#4575b4',
        })

        # Figure configuration
        self.figure_size = self.viz_config.get('figure_size', [10, 6])
        self.dpi = self.viz_config.get('dpi', 300)

        style = self.viz_config.get('style', 'seaborn-v0_8')
        try:
            plt.style.use(style)
        except (OSError, ValueError):
            logger.warning(f"Style '{style}' not available, using default")

    def _add_regression_line(self, ax, x_data: Sequence[float], y_data: Sequence[float], **kwargs):
        """Add least-squares trendline with R² in legend."""
        x_data = np.asarray(x_data, dtype=float)
        y_data = np.asarray(y_data, dtype=float)
        if len(x_data) < 2:
            return

        slope, intercept, r_value, p_value, std_err = stats.linregress(x_data, y_data)
        line_x = np.array([x_data.min(), x_data.max()])
        line_y = slope * line_x + intercept

        default_kwargs = {'color': 'red', 'alpha': 0.8, 'linewidth': 2}
        label = kwargs.pop('label', f'Linear trend (R²={r_value**2:.3f})')
        default_kwargs.update(kwargs)
        ax.plot(line_x, line_y, label=label, **default_kwargs)

    def _save_figure(self, fig, output_path: Optional[str], plot_type: str):
        """Save figure with appropriate settings and logging."""
        if output_path:
            fig.savefig(output_path, dpi=self.dpi, bbox_inches='tight',
                        facecolor='white', edgecolor='none')
            logger.info(f"{plot_type} saved to {output_path}")

    def _get_class_color(self, class_name: str, index: int = 0) -> str:
        """Get color for a fraction class, with fallback to indexed colors."""
        return self.colors.get(class_name, f'C{index}')

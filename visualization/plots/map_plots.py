import matplotlib.pyplot as plt
from matplotlib.colors import LinearSegmentedColormap
import logging
from typing import Optional

from analysis.core.analysis_request import AnalysisRequest
from analysis.core.day_summary import DaySummary
from .base import BasePlotter

logger = logging.getLogger(__name__)

ALBEDO_PALETTE = ['red', 'orange', 'yellow', 'green', 'cyan', 'blue']


class DailyMapPlotter(BasePlotter):
    """Scatter map of the filtered albedo of one acquisition."""

    def create_daily_map(self, summary: DaySummary, request: AnalysisRequest,
                         output_path: Optional[str] = None) -> Optional[plt.Figure]:
        """
        Plot filtered pixels colored by albedo over the summary's display range.

        Returns None when no filtered pixel has coordinates.
        """
        pixels = summary.filtered_pixels
        if pixels is None or pixels.empty:
            logger.warning(f"No filtered pixels to map for {summary.requested_date}")
            return None

        pixels = pixels.dropna(subset=['longitude', 'latitude'])
        if pixels.empty:
            logger.warning("Filtered pixels have no coordinates; skipping map")
            return None

        low, high = summary.display_range
        cmap = LinearSegmentedColormap.from_list('albedo', ALBEDO_PALETTE)

        fig, ax = plt.subplots(figsize=self.figure_size)
        points = ax.scatter(pixels['longitude'], pixels['latitude'], c=pixels['albedo'],
                            cmap=cmap, vmin=low, vmax=high, s=60, marker='s',
                            edgecolors='black', linewidth=0.3)
        fig.colorbar(points, ax=ax, label='Snow albedo')

        suffix = ' - Default' if summary.range_fallback else ''
        ax.set_title(f'Filtered Albedo {summary.acquisition_date} '
                     f'(NDSI>{request.ndsi_threshold}, G>{request.fraction_threshold}%){suffix}')
        ax.set_xlabel('Longitude')
        ax.set_ylabel('Latitude')
        ax.grid(True, alpha=0.3)

        fig.tight_layout()
        self._save_figure(fig, output_path, "Daily albedo map")
        return fig

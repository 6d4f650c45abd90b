#!/usr/bin/env python3
"""
MOD10A1 Snow Albedo Analysis Engine

Runs the full batch pipeline over a glacier:

1. Load observations (pixel CSV or MOD10A1 GeoTIFF stack + glacier fraction)
2. Log the filter configuration
3. Annual and daily per-class statistics, pixel-level table and
   filtered/unfiltered comparison, exported to CSV
4. Trend statistics on the annual series of one fraction class
5. Trend charts

Usage:
    python main.py --input data/pixels.csv
    python main.py --raster-dir data/mod10a1 --glacier-mask data/glacier_mask.tif
"""

import logging
import os
import pandas as pd
import matplotlib.pyplot as plt
from pathlib import Path
from typing import Dict, Any, List, Optional

from utils.config.helpers import load_config, setup_logging, ensure_directory_exists, get_timestamp
from analysis.quality.qa_flags import QA_BIT_TABLE, BASIC_QA_LEVEL_TEXT
from analysis.quality.mask_evaluator import QualityMaskEvaluator
from analysis.core.analysis_request import AnalysisRequest
from analysis.core.fraction_classes import FractionClassifier
from analysis.core.aggregation import AggregationReducer, AggregationResult, build_year_series
from analysis.core.filter_comparison import FilterComparison
from analysis.core.observations import observations_to_frame
from analysis.trends.trend_statistics import TrendStatistics
from analysis.trends.report import format_trend_report
from data_processing.loaders.observation_loaders import PixelObservationLoader, RasterStackLoader
from data_processing.exporters.csv_exporter import ExportFormatter
from spatial_analysis.masks.glacier_fraction import GlacierFractionProcessor
from visualization.plots.trend_plots import TrendPlotter

DEFAULT_TREND_CLASS = 'glacier_90_100pct'


class SnowAlbedoAnalysisEngine:
    """
    Batch analysis engine for MOD10A1 glacier snow albedo.

    Every export uses the standard QA configuration (basic QA good, every
    algorithm flag excluded except probably clear) together with the
    thresholds of the ``analysis`` configuration section.
    """

    def __init__(self, config_path: Optional[str] = None, config: Optional[Dict[str, Any]] = None):
        """Initialize the engine from a configuration file or dictionary."""
        if config_path:
            self.config = load_config(config_path)
        else:
            self.config = config or {}
        setup_logging(self.config)
        self.logger = logging.getLogger(__name__)

        analysis_config = self.config.get('analysis') or {}
        self.request = AnalysisRequest.from_config(self.config)
        self.composite_pixels = analysis_config.get('composite_pixels', True)
        self.study_years = self._study_years(analysis_config)

        self.classifier = FractionClassifier(analysis_config.get('fraction_thresholds'))
        self.evaluator = QualityMaskEvaluator()
        self.reducer = AggregationReducer(self.classifier, self.evaluator, self.config)
        self.comparison = FilterComparison(self.reducer, self.request.qa_config)
        self.trend_statistics = TrendStatistics(self.config)
        self.exporter = ExportFormatter(self.config, self.classifier)
        self.fraction_processor = GlacierFractionProcessor(self.config)
        self.trend_plotter = TrendPlotter(self.config)

    def _study_years(self, analysis_config: Dict[str, Any]) -> Optional[List[int]]:
        period = analysis_config.get('study_period') or {}
        if 'start_year' in period and 'end_year' in period:
            return list(range(int(period['start_year']), int(period['end_year']) + 1))
        return None

    # ===== DATA LOADING =====

    def load_observations(self, input_path: Optional[str] = None,
                          raster_dir: Optional[str] = None,
                          fraction_path: Optional[str] = None,
                          mask_path: Optional[str] = None,
                          fraction_output: Optional[str] = None) -> pd.DataFrame:
        """
        Load observations from a pixel CSV or a MOD10A1 raster directory.

        For rasters, the glacier fraction comes from ``fraction_path`` or is
        computed from ``mask_path`` on the grid of the first raster. A computed
        fraction is saved to ``fraction_output`` (or ``data.fraction_output``)
        so later runs can pass it as ``fraction_path``.
        """
        data_config = self.config.get('data') or {}
        input_path = input_path or data_config.get('pixel_observations')
        raster_dir = raster_dir or data_config.get('raster_dir')
        fraction_path = fraction_path or data_config.get('glacier_fraction')
        mask_path = mask_path or data_config.get('glacier_mask')
        fraction_output = fraction_output or data_config.get('fraction_output')

        if input_path:
            observations = PixelObservationLoader(self.config).load_data(input_path)
        elif raster_dir:
            loader = RasterStackLoader(self.config)
            if fraction_path:
                observations = loader.load_data(raster_dir, fraction_path=fraction_path)
            elif mask_path:
                rasters = sorted(Path(raster_dir).glob(loader.file_pattern))
                if not rasters:
                    raise FileNotFoundError(f"No MOD10A1 rasters found in {raster_dir}")
                fraction, transform = self.fraction_processor.compute_static_fraction(mask_path, str(rasters[0]))
                self._report_fraction(fraction, str(rasters[0]), fraction_output)
                observations = loader.load_data(raster_dir, fraction=fraction, transform=transform)
            else:
                raise ValueError("Raster input requires a glacier fraction raster or a glacier mask")
        else:
            raise ValueError("No input specified: provide a pixel observation CSV or a raster directory")

        if self.study_years:
            years = observations['date'].dt.year
            observations = observations[years.between(self.study_years[0], self.study_years[-1])]
            self.logger.info(f"Restricted to study period {self.study_years[0]}-{self.study_years[-1]}: "
                             f"{len(observations)} observations")
        return observations

    def _report_fraction(self, fraction, reference_path: str, fraction_output: Optional[str]) -> None:
        summary = self.fraction_processor.summarize(fraction, tuple(float(t) for t in self.classifier.thresholds))
        self.logger.info(f"Glacier fraction: {summary['glacier_pixels']} glacier pixels, "
                         f"pixels at or above each class breakpoint: {summary['pixels_at_or_above']}")
        if fraction_output:
            ensure_directory_exists(os.path.dirname(fraction_output))
            self.fraction_processor.write_fraction(fraction, reference_path, fraction_output)

    # ===== FILTER CONFIGURATION =====

    def describe_filters(self) -> List[str]:
        """Lines describing the QA configuration and thresholds used for the statistics."""
        request = self.request
        qa = request.qa_config
        lines = [
            "FILTER CONFIGURATION FOR STATISTICS",
            f"Basic QA level: {BASIC_QA_LEVEL_TEXT[qa.basic_level]}; Night (211) and Ocean (239) always excluded",
            "Algorithm flags (MOD10A1 v6.1 - 8 bits):",
        ]
        for flag in QA_BIT_TABLE:
            state = 'EXCLUDE' if qa.excludes(flag.key) else 'keep'
            lines.append(f"  {flag.label}: {state} ({flag.severity})")
        lines += [
            f"NDSI snow threshold: >= {request.ndsi_threshold} (index 0-100)",
            f"Glacier fraction: >= {request.fraction_threshold}%",
            f"Season: {request.season_label}",
            f"Minimum pixels: >= {request.min_pixels}",
            "Valid albedo: raw <= 100",
        ]
        return lines

    def log_filter_configuration(self) -> None:
        for line in self.describe_filters():
            self.logger.info(line)

    # ===== ANALYSIS =====

    def compute_annual(self, observations: pd.DataFrame) -> AggregationResult:
        return self.reducer.annual(observations, self.request, study_years=self.study_years,
                                   composite_pixels=self.composite_pixels)

    def compute_daily(self, observations: pd.DataFrame) -> AggregationResult:
        return self.reducer.daily(observations, self.request)

    def analyze_trends(self, annual: AggregationResult,
                       class_name: str = DEFAULT_TREND_CLASS) -> Dict[str, Any]:
        series = build_year_series(annual, class_name)
        results = self.trend_statistics.analyze(series)
        results['series'] = series
        return results

    def run_analysis(self, observations: pd.DataFrame, output_dir: Optional[str] = None,
                     trend_class: str = DEFAULT_TREND_CLASS, generate_plots: bool = True,
                     export_pixels: bool = True) -> Dict[str, Any]:
        """
        Run the full pipeline on loaded observations.

        Args:
            observations: Observation DataFrame
            output_dir: Output directory (timestamped directory under ``output.base_path`` by default)
            trend_class: Fraction class whose annual series feeds the trend statistics
            generate_plots: Whether to produce trend charts
            export_pixels: Whether to export the pixel-level table

        Returns:
            Dictionary with tables, trend results and written file paths
        """
        observations = observations_to_frame(observations)
        output_dir = output_dir or self._create_output_dir()
        results_dir = os.path.join(output_dir, 'results')
        plots_dir = os.path.join(output_dir, 'plots')
        ensure_directory_exists(results_dir)

        self.logger.info(f"Starting snow albedo analysis: {len(observations)} observations")
        self.log_filter_configuration()

        files: Dict[str, str] = {}

        self.logger.info("Computing annual statistics...")
        annual = self.compute_annual(observations)
        annual_table = self.exporter.annual_table(annual)
        files['annual'] = self.exporter.write_csv(
            annual_table, os.path.join(results_dir, 'MOD10A1_albedo_high_snow_annual.csv'))

        self.logger.info("Computing daily statistics...")
        daily = self.compute_daily(observations)
        daily_table = self.exporter.daily_table(daily)
        files['daily'] = self.exporter.write_csv(
            daily_table, os.path.join(results_dir, 'MOD10A1_albedo_high_snow_daily.csv'))
        self.logger.info(f"Number of days analyzed: {len(daily_table)}")

        pixel_table = None
        if export_pixels:
            self.logger.info("Computing pixel-level data...")
            pixel_table = self.exporter.pixel_table(observations, qa_config=self.request.qa_config,
                                                    evaluator=self.evaluator, reducer=self.reducer,
                                                    peak_melt_only=self.request.peak_melt_only)
            files['pixels'] = self.exporter.write_csv(
                pixel_table, os.path.join(results_dir, 'MOD10A1_albedo_pixel_level.csv'))

        self.logger.info("Comparing filtered and unfiltered albedo...")
        comparison_table = self.exporter.comparison_table(self.comparison.compare(observations, self.request))
        files['comparison'] = self.exporter.write_csv(
            comparison_table, os.path.join(results_dir, 'MOD10A1_albedo_filter_comparison.csv'))

        self.logger.info(f"Running trend statistics for {trend_class}...")
        trends = self.analyze_trends(annual, trend_class)
        report = format_trend_report(trends)
        report_path = os.path.join(results_dir, 'trend_report.txt')
        with open(report_path, 'w', encoding='utf-8') as file:
            file.write(report + '\n')
        files['trend_report'] = report_path

        if generate_plots:
            files.update(self._generate_plots(annual, trends, plots_dir))

        self.logger.info(f"Analysis completed. Outputs in: {output_dir}")
        return {
            'analysis_timestamp': get_timestamp(),
            'output_directory': output_dir,
            'request': self.request.describe(),
            'annual': annual,
            'daily': daily,
            'annual_table': annual_table,
            'daily_table': daily_table,
            'pixel_table': pixel_table,
            'comparison_table': comparison_table,
            'trends': trends,
            'trend_report': report,
            'files': files,
        }

    def _create_output_dir(self) -> str:
        base_path = (self.config.get('output') or {}).get('base_path', 'outputs')
        output_dir = os.path.join(base_path, f"snow_albedo_{get_timestamp()}")
        for subdir in ['results', 'plots']:
            ensure_directory_exists(os.path.join(output_dir, subdir))
        return output_dir

    def _generate_plots(self, annual: AggregationResult, trends: Dict[str, Any],
                        plots_dir: str) -> Dict[str, str]:
        """Trend charts; a failing plot is logged and skipped."""
        ensure_directory_exists(plots_dir)
        files = {}

        try:
            series = trends['series']
            path = os.path.join(plots_dir, f"annual_trend_{series.class_name}.png")
            fig = self.trend_plotter.create_trend_plot(series, trends, output_path=path)
            if fig is not None:
                plt.close(fig)
                files['trend_plot'] = path
        except Exception as e:
            self.logger.error(f"Error creating trend plot: {e}")

        try:
            path = os.path.join(plots_dir, 'annual_class_overview.png')
            fig = self.trend_plotter.create_class_overview_plot(annual, output_path=path)
            if fig is not None:
                plt.close(fig)
                files['class_overview_plot'] = path
        except Exception as e:
            self.logger.error(f"Error creating class overview plot: {e}")

        return files

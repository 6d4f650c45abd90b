#!/usr/bin/env python3
"""
MOD10A1 Snow Albedo - Interactive Parameter Tuning

Menu-driven console interface for exploring one acquisition at a time:
select a date, tune the NDSI / glacier fraction / minimum pixel thresholds
and the QA filters, inspect individual pixels and export the tuned
parameters.

Usage:
    python interactive_main.py --input data/pixels.csv
    python interactive_main.py --raster-dir data/mod10a1 --glacier-fraction data/fraction.tif
"""

import os
import sys
import argparse
import logging
from typing import Dict, Any, Optional

import pandas as pd
import matplotlib.pyplot as plt

from utils.config.helpers import load_config, ensure_directory_exists
from analysis.quality.qa_flags import QA_BIT_TABLE, QA_FLAG_KEYS, BASIC_QA_CEILINGS, BASIC_QA_LEVEL_TEXT
from analysis.quality.pixel_inspector import PixelInspector
from analysis.core.analysis_request import AnalysisRequest
from analysis.core.aggregation import AggregationReducer
from analysis.core.day_summary import (DaySummary, compute_day_summary, select_day,
                                       format_day_summary, format_parameters)
from analysis.core.observations import observations_to_frame
from snow_albedo_engine.engine import SnowAlbedoAnalysisEngine
from visualization.plots.map_plots import DailyMapPlotter

logger = logging.getLogger(__name__)

DEFAULT_DATE_RANGE = ('2010-07-01', '2024-09-30')
DEFAULT_SELECTED_DATE = '2023-08-07'


class InteractiveAlbedoController:
    """
    Interactive controller holding the current AnalysisRequest.

    Every control change builds a new request and recomputes the day
    summary from scratch; nothing computed earlier is modified.
    """

    def __init__(self, observations: pd.DataFrame, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.observations = observations_to_frame(observations)
        self.reducer = AggregationReducer(config=self.config)
        self.inspector = PixelInspector(self.reducer.evaluator)
        self.map_plotter = DailyMapPlotter(self.config)

        interactive_config = self.config.get('interactive') or {}
        date_range = interactive_config.get('date_range', DEFAULT_DATE_RANGE)
        self.min_date = pd.Timestamp(date_range[0]).date()
        self.max_date = pd.Timestamp(date_range[1]).date()

        request = AnalysisRequest.from_config(self.config, interactive=True)
        if request.selected_date is None:
            request = request.with_changes(selected_date=pd.Timestamp(DEFAULT_SELECTED_DATE).date())

        self.request = request
        self.summary: Optional[DaySummary] = None
        self.apply(request)

    # ===== STATE TRANSITIONS =====

    def apply(self, request: AnalysisRequest) -> DaySummary:
        """Adopt a new request and recompute the day summary."""
        self.request = request
        self.summary = compute_day_summary(self.observations, request, self.reducer)
        return self.summary

    def set_date(self, value: Any) -> DaySummary:
        selected = pd.Timestamp(value).date()
        if not self.min_date <= selected <= self.max_date:
            raise ValueError(f"Date {selected} outside {self.min_date} - {self.max_date}")
        return self.apply(self.request.with_changes(selected_date=selected))

    def set_ndsi_threshold(self, value: int) -> DaySummary:
        return self.apply(self.request.with_changes(ndsi_threshold=int(value)))

    def set_fraction_threshold(self, value: float) -> DaySummary:
        return self.apply(self.request.with_changes(fraction_threshold=value))

    def set_min_pixels(self, value: int) -> DaySummary:
        value = int(value)
        if value > 100:
            raise ValueError(f"Minimum pixel threshold must be within 0-100, got {value}")
        return self.apply(self.request.with_changes(min_pixels=value))

    def set_basic_level(self, level: str) -> DaySummary:
        qa_config = self.request.qa_config.with_basic_level(level)
        return self.apply(self.request.with_changes(qa_config=qa_config))

    def toggle_flag(self, key: str) -> DaySummary:
        qa_config = self.request.qa_config
        if key not in QA_FLAG_KEYS:
            raise ValueError(f"Unknown QA flag: {key}")
        return self.apply(self.request.with_changes(
            qa_config=qa_config.with_flag(key, not qa_config.excludes(key))))

    # ===== INSPECTION =====

    def inspect_pixel(self, longitude: float, latitude: float) -> Optional[Dict[str, Any]]:
        """Inspection report of the pixel nearest to a position on the acquisition date."""
        _, day = select_day(self.observations, self.request.selected_date)
        day = day.dropna(subset=['longitude', 'latitude'])
        if day.empty:
            return None

        distance = (day['longitude'] - longitude) ** 2 + (day['latitude'] - latitude) ** 2
        nearest = day.loc[distance.idxmin()]
        return self.inspector.inspect(nearest, self.request.qa_config)

    def save_map(self, output_dir: str) -> Optional[str]:
        """Save the filtered albedo map of the current day."""
        ensure_directory_exists(output_dir)
        path = os.path.join(output_dir, f"filtered_albedo_{self.request.selected_date}.png")
        try:
            fig = self.map_plotter.create_daily_map(self.summary, self.request, output_path=path)
        except Exception as e:
            logger.error(f"Error creating daily map: {e}")
            return None
        if fig is None:
            return None
        plt.close(fig)
        return path

    # ===== DISPLAY =====

    def display_header(self):
        """Display the application header."""
        print()
        print("+" + "=" * 78 + "+")
        print("|" + " " * 78 + "|")
        print("|" + "MOD10A1 GLACIER SNOW ALBEDO".center(78) + "|")
        print("|" + "Interactive Parameter Tuning".center(78) + "|")
        print("|" + " " * 78 + "|")
        print("+" + "=" * 78 + "+")
        print()

    def display_state(self):
        print("+" + "-" * 78 + "+")
        print("|" + " CURRENT DAY ".center(78) + "|")
        print("+" + "-" * 78 + "+")
        for line in format_day_summary(self.summary, self.request):
            print(f"| {line[:76]:<76} |")
        print("+" + "-" * 78 + "+")
        qa = self.request.qa_config
        print(f"| {'Basic QA level: ' + BASIC_QA_LEVEL_TEXT[qa.basic_level]:<76} |")
        for index, flag in enumerate(QA_BIT_TABLE, 1):
            state = '[x]' if qa.excludes(flag.key) else '[ ]'
            print(f"| {f'{state} {index}. Exclude {flag.description}':<76} |")
        print("+" + "-" * 78 + "+")
        print()

    def display_menu(self):
        print("+" + "-" * 78 + "+")
        print("|" + " CONTROLS ".center(78) + "|")
        print("+" + "-" * 78 + "+")
        print(f"| {'[D] Select date (' + str(self.min_date) + ' to ' + str(self.max_date) + ')':<76} |")
        print(f"| {'[N] NDSI snow cover threshold (0-100)':<76} |")
        print(f"| {'[G] Glacier fraction threshold (0-100%)':<76} |")
        print(f"| {'[P] Minimum pixels (0 = OFF)':<76} |")
        print(f"| {'[L] Basic QA level (best, good, ok, all)':<76} |")
        print(f"| {'[F] Toggle algorithm flag exclusion':<76} |")
        print(f"| {'[I] Inspect pixel at position':<76} |")
        print(f"| {'[M] Save filtered albedo map':<76} |")
        print(f"| {'[E] Export optimized parameters':<76} |")
        print(f"| {'[Q] Quit':<76} |")
        print("+" + "-" * 78 + "+")
        print()

    def handle_choice(self, choice: str) -> bool:
        """Apply one menu choice; returns False when the user quits."""
        if choice == 'Q':
            return False
        try:
            if choice == 'D':
                self.set_date(input("Date (YYYY-MM-DD): ").strip())
            elif choice == 'N':
                self.set_ndsi_threshold(int(input("NDSI threshold (0-100): ").strip()))
            elif choice == 'G':
                self.set_fraction_threshold(float(input("Glacier fraction threshold (0-100%): ").strip()))
            elif choice == 'P':
                self.set_min_pixels(int(input("Minimum pixels (0-100, 0 = OFF): ").strip()))
            elif choice == 'L':
                level = input(f"Basic QA level {list(BASIC_QA_CEILINGS)}: ").strip().lower()
                self.set_basic_level(level)
            elif choice == 'F':
                index = int(input("Flag number (1-8): ").strip())
                if not 1 <= index <= len(QA_BIT_TABLE):
                    raise ValueError(f"Flag number must be within 1-{len(QA_BIT_TABLE)}")
                self.toggle_flag(QA_BIT_TABLE[index - 1].key)
            elif choice == 'I':
                longitude = float(input("Longitude: ").strip())
                latitude = float(input("Latitude: ").strip())
                report = self.inspect_pixel(longitude, latitude)
                if report is None:
                    print("No pixel with coordinates on the acquisition date")
                else:
                    print(self.inspector.format_report(report))
                input("\nPress Enter to continue...")
            elif choice == 'M':
                output_dir = (self.config.get('output') or {}).get('plots_path', 'outputs/plots')
                path = self.save_map(output_dir)
                print(f"Map saved: {path}" if path else "No filtered pixels to map")
                input("\nPress Enter to continue...")
            elif choice == 'E':
                print('\n'.join(format_parameters(self.request)))
                input("\nPress Enter to continue...")
            else:
                print(f"[ERROR] Unknown option: {choice}")
        except ValueError as e:
            print(f"\n[ERROR] {e}")
            input("Press Enter to continue...")
        return True

    def run(self):
        """Run the interactive interface."""
        while True:
            self.display_header()
            self.display_state()
            self.display_menu()
            choice = input("> Select option: ").strip().upper()
            if not self.handle_choice(choice):
                print("\nExiting snow albedo parameter tuning. Goodbye!")
                break


def main():
    """Main function to run the interactive interface."""
    parser = argparse.ArgumentParser(
        description='MOD10A1 Snow Albedo - Interactive Parameter Tuning')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file (default: config/config.yaml)')
    parser.add_argument('--input', type=str, help='Pixel observation CSV')
    parser.add_argument('--raster-dir', type=str, help='Directory of per-date MOD10A1 GeoTIFFs')
    parser.add_argument('--glacier-fraction', type=str, help='Static glacier fraction raster')
    parser.add_argument('--glacier-mask', type=str, help='Glacier mask (raster or vector)')
    args = parser.parse_args()

    # Minimal logging for interactive mode
    logging.basicConfig(level=logging.WARNING)

    try:
        config = load_config(args.config)
        config.setdefault('logging', {})['file'] = None
        engine = SnowAlbedoAnalysisEngine(config=config)
        observations = engine.load_observations(args.input, args.raster_dir,
                                                args.glacier_fraction, args.glacier_mask)
        controller = InteractiveAlbedoController(observations, config)
        controller.run()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Interactive session failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

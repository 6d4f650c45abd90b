#!/usr/bin/env python3
"""
Main script for MOD10A1 Glacier Snow Albedo Analysis

Processes one glacier: filters MOD10A1 snow albedo with the standard QA
configuration, aggregates it per glacier fraction class, exports annual,
daily, pixel-level and comparison tables and computes trend statistics.

Usage:
    python main.py --input data/pixels.csv --config config/config.yaml
    python main.py --raster-dir data/mod10a1 --glacier-fraction data/fraction.tif
    python main.py --raster-dir data/mod10a1 --glacier-mask data/outline.shp --no-plots
    python main.py --raster-dir data/mod10a1 --glacier-mask data/outline.shp --save-fraction data/fraction.tif
"""

import argparse
import logging
import sys

from snow_albedo_engine.engine import SnowAlbedoAnalysisEngine, DEFAULT_TREND_CLASS


def main():
    """Main function to run the analysis."""
    parser = argparse.ArgumentParser(description='MOD10A1 Glacier Snow Albedo Analysis')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--input', type=str, help='Pixel observation CSV')
    parser.add_argument('--raster-dir', type=str, help='Directory of per-date MOD10A1 GeoTIFFs')
    parser.add_argument('--glacier-fraction', type=str, help='Static glacier fraction raster')
    parser.add_argument('--glacier-mask', type=str,
                        help='Glacier mask raster or outline (shp/gpkg/geojson)')
    parser.add_argument('--save-fraction', type=str,
                        help='Save the glacier fraction computed from --glacier-mask as a GeoTIFF')
    parser.add_argument('--output-dir', type=str, help='Output directory (default: timestamped)')
    parser.add_argument('--trend-class', type=str, default=DEFAULT_TREND_CLASS,
                        help=f'Fraction class used for trend statistics (default: {DEFAULT_TREND_CLASS})')
    parser.add_argument('--no-plots', action='store_true', help='Skip trend charts')
    parser.add_argument('--skip-pixel-export', action='store_true',
                        help='Skip the pixel-level CSV export')

    args = parser.parse_args()

    try:
        engine = SnowAlbedoAnalysisEngine(args.config)
        observations = engine.load_observations(args.input, args.raster_dir,
                                                args.glacier_fraction, args.glacier_mask,
                                                fraction_output=args.save_fraction)
        results = engine.run_analysis(observations,
                                      output_dir=args.output_dir,
                                      trend_class=args.trend_class,
                                      generate_plots=not args.no_plots,
                                      export_pixels=not args.skip_pixel_export)

        print(results['trend_report'])
        print()
        for name, path in results['files'].items():
            print(f"{name}: {path}")
        print(f"Analysis completed. Outputs in: {results['output_directory']}")

    except Exception as e:
        logging.error(f"Pipeline failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Test suite for configuration helpers and the shipped configuration file.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from utils.config.helpers import load_config, get_section, ensure_directory_exists, validate_file_exists
from analysis.core.analysis_request import AnalysisRequest
from analysis.quality.qa_flags import STANDARD_QA_CONFIG

CONFIG_PATH = Path(__file__).parent.parent / 'config' / 'config.yaml'


class TestConfigHelpers(unittest.TestCase):
    """Test cases for configuration helper functions."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_load_config(self):
        path = self.test_dir / 'config.yaml'
        path.write_text("analysis:\n  min_pixel_threshold: 5\n")
        config = load_config(str(path))
        self.assertEqual(config['analysis']['min_pixel_threshold'], 5)

    def test_load_empty_config(self):
        path = self.test_dir / 'empty.yaml'
        path.write_text("")
        self.assertEqual(load_config(str(path)), {})

    def test_load_missing_config(self):
        with self.assertRaises(FileNotFoundError):
            load_config(str(self.test_dir / 'missing.yaml'))

    def test_load_invalid_yaml(self):
        path = self.test_dir / 'invalid.yaml'
        path.write_text("analysis: [unclosed\n")
        with self.assertRaises(ValueError):
            load_config(str(path))

    def test_get_section(self):
        config = {'a': {'b': {'c': 1}}, 'd': None}
        self.assertEqual(get_section(config, 'a', 'b', 'c'), 1)
        self.assertIsNone(get_section(config, 'a', 'x'))
        self.assertEqual(get_section(config, 'd', 'e', default=3), 3)

    def test_directory_helpers(self):
        nested = self.test_dir / 'a' / 'b'
        ensure_directory_exists(str(nested))
        self.assertTrue(nested.is_dir())
        self.assertFalse(validate_file_exists(str(nested)))


class TestShippedConfiguration(unittest.TestCase):
    """The repository configuration builds valid analysis requests."""

    def setUp(self):
        self.config = load_config(str(CONFIG_PATH))

    def test_batch_request(self):
        request = AnalysisRequest.from_config(self.config)
        self.assertEqual(request.ndsi_threshold, 0)
        self.assertEqual(request.fraction_threshold, 75)
        self.assertEqual(request.min_pixels, 10)
        self.assertEqual(request.qa_config, STANDARD_QA_CONFIG)
        self.assertIsNone(request.selected_date)

    def test_interactive_request(self):
        request = AnalysisRequest.from_config(self.config, interactive=True)
        self.assertEqual(request.selected_date.isoformat(), '2023-08-07')
        self.assertTrue(request.qa_config.excludes('probably_cloudy'))
        self.assertFalse(request.qa_config.excludes('inland_water'))

    def test_request_validation(self):
        with self.assertRaises(ValueError):
            AnalysisRequest(ndsi_threshold=101)
        with self.assertRaises(ValueError):
            AnalysisRequest(min_pixels=-1)
        with self.assertRaises(ValueError):
            AnalysisRequest(season_start_month=10, season_end_month=9)


if __name__ == '__main__':
    unittest.main()

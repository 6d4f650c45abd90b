import pytest

from analysis.core.observations import Observation
from analysis.quality.qa_flags import QAConfig, STANDARD_QA_CONFIG
from analysis.quality.pixel_inspector import PixelInspector, decode_flags, format_binary, recommend


def make_observation(basic_qa=0, algorithm_flags=64):
    return Observation(
        date=None,
        ndsi_snow_cover=85,
        snow_albedo_raw=72,
        basic_qa=basic_qa,
        algorithm_flags=algorithm_flags,
        glacier_fraction=0.93,
        longitude=-117.2512,
        latitude=52.1934,
    )


class TestFlagDecoding:
    """Test algorithm-flag decoding helpers."""

    def test_format_binary(self):
        assert format_binary(5) == '00000101'
        assert format_binary(160) == '10100000'

    def test_decode_flags(self):
        states = decode_flags(0b10100000)
        assert states['probably_cloudy']
        assert states['high_solar_zenith']
        assert not states['probably_clear']

    def test_decode_missing_flags(self):
        assert decode_flags(None) == {}

    @pytest.mark.parametrize('flags, expected', [
        (0b00100000, 'CRITICAL'),
        (0b01000000, 'EXCELLENT'),
        (0b01001000, 'ACCEPTABLE'),
        (0b00000001, 'GOOD - Minor'),
        (0, 'GOOD - No critical'),
        (None, 'NO FLAGS'),
    ])
    def test_recommendation(self, flags, expected):
        assert recommend(decode_flags(flags)).startswith(expected)


class TestPixelInspector:
    """Test single-pixel inspection reports."""

    @pytest.fixture
    def inspector(self):
        return PixelInspector()

    def test_clear_pixel_passes(self, inspector):
        report = inspector.inspect(make_observation(), STANDARD_QA_CONFIG)
        assert report['passes_qa']
        assert report['basic_qa_text'] == 'Best'
        assert report['algorithm_flags_binary'] == '01000000'
        assert report['glacier_fraction_pct'] == pytest.approx(93.0)
        assert len(report['flags']) == 8

    def test_cloudy_pixel_fails_flags(self, inspector):
        report = inspector.inspect(make_observation(algorithm_flags=32), STANDARD_QA_CONFIG)
        assert report['passes_basic_qa']
        assert not report['passes_algorithm_flags']
        assert not report['passes_qa']
        cloudy = [flag for flag in report['flags'] if flag['key'] == 'probably_cloudy'][0]
        assert cloudy['set'] and cloudy['excluded_by_config']

    def test_night_pixel_fails_basic(self, inspector):
        report = inspector.inspect(make_observation(basic_qa=211), QAConfig.from_flags('all', []))
        assert report['basic_qa_text'] == 'Night'
        assert not report['passes_basic_qa']

    def test_missing_flags_report(self, inspector):
        report = inspector.inspect(make_observation(algorithm_flags=None), STANDARD_QA_CONFIG)
        assert report['flags'] == []
        assert report['passes_qa']
        assert 'Algorithm Flags: No data' in inspector.format_report(report)

    def test_format_report(self, inspector):
        report = inspector.inspect(make_observation(algorithm_flags=32), STANDARD_QA_CONFIG)
        text = inspector.format_report(report)
        assert '=== QA INSPECTOR - Position: -117.2512, 52.1934 ===' in text
        assert 'Bit 5 - Probably cloudy (v6.1 cloud detection): SET [CRITICAL]' in text
        assert 'Passes QA filters: NO' in text
        assert 'Glacier fraction: 93.0%' in text

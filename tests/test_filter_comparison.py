import pytest
import pandas as pd

from analysis.core.analysis_request import AnalysisRequest
from analysis.core.filter_comparison import FilterComparison


def pixel(date, raw, fraction, ndsi=60, flags=64):
    return {'date': date, 'longitude': -117.25, 'latitude': 52.19, 'ndsi_snow_cover': ndsi,
            'snow_albedo_raw': raw, 'basic_qa': 0, 'algorithm_flags': flags,
            'glacier_fraction': fraction}


class TestFilterComparison:
    """Test filtered versus unfiltered daily comparison."""

    @pytest.fixture
    def observations(self):
        return pd.DataFrame([
            pixel('2016-08-01', 70, 0.90),
            pixel('2016-08-01', 50, 0.50),
            pixel('2016-08-01', 20, 0.90, flags=32),
            pixel('2016-08-01', 10, 0.0),
            pixel('2016-08-05', 40, 0.30),
            pixel('2016-10-05', 40, 0.95),
        ])

    def test_rows_per_date(self, observations):
        rows = FilterComparison().compare(observations, AnalysisRequest(fraction_threshold=75))
        assert [row['date'] for row in rows] == ['2016-08-01', '2016-08-05']

    def test_filtered_and_unfiltered_means(self, observations):
        rows = FilterComparison().compare(observations, AnalysisRequest(fraction_threshold=75))
        first = rows[0]
        assert first['unfiltered_count'] == 2
        assert first['unfiltered_mean'] == pytest.approx(0.60)
        assert first['filtered_count'] == 1
        assert first['filtered_mean'] == pytest.approx(0.70)
        assert first['difference'] == pytest.approx(0.10)
        assert first['has_high_snow'] == 1
        assert first['year'] == 2016
        assert first['doy'] == 214

    def test_difference_none_without_high_snow(self, observations):
        rows = FilterComparison().compare(observations, AnalysisRequest(fraction_threshold=75))
        second = rows[1]
        assert second['unfiltered_mean'] == pytest.approx(0.40)
        assert second['filtered_mean'] is None
        assert second['difference'] is None
        assert second['has_high_snow'] == 0

    def test_ndsi_threshold_applies_to_filtered_side_only(self, observations):
        rows = FilterComparison().compare(observations, AnalysisRequest(ndsi_threshold=70, fraction_threshold=75))
        assert rows[0]['filtered_count'] == 0
        assert rows[0]['unfiltered_count'] == 2

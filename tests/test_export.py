import pytest
import pandas as pd
import numpy as np

from analysis.core.aggregation import AggregationReducer
from analysis.core.analysis_request import AnalysisRequest
from data_processing.exporters.csv_exporter import (
    ExportFormatter, ANNUAL_BASE_COLUMNS, DAILY_BASE_COLUMNS, PIXEL_COLUMNS, COMPARISON_COLUMNS
)


@pytest.fixture
def observations():
    rows = []
    for day in ['2015-07-15', '2015-08-01']:
        for index, raw in enumerate([60, 70, 80]):
            rows.append({
                'date': day,
                'longitude': -117.25 + 0.005 * index,
                'latitude': 52.19,
                'ndsi_snow_cover': 80,
                'snow_albedo_raw': raw,
                'basic_qa': 0,
                'algorithm_flags': 64,
                'glacier_fraction': 0.95,
            })
    rows.append({'date': '2015-07-15', 'longitude': -117.2, 'latitude': 52.18,
                 'ndsi_snow_cover': 80, 'snow_albedo_raw': 150, 'basic_qa': 1,
                 'algorithm_flags': np.nan, 'glacier_fraction': 0.5})
    return pd.DataFrame(rows)


class TestExportFormatter:
    """Test CSV table layout."""

    @pytest.fixture
    def formatter(self):
        return ExportFormatter({})

    def test_annual_column_order(self, formatter, observations):
        result = AggregationReducer().annual(observations, AnalysisRequest(min_pixels=3))
        table = formatter.annual_table(result)

        assert list(table.columns[:len(ANNUAL_BASE_COLUMNS)]) == ANNUAL_BASE_COLUMNS
        assert list(table.columns[len(ANNUAL_BASE_COLUMNS):len(ANNUAL_BASE_COLUMNS) + 4]) == [
            'glacier_0_25pct_high_snow_mean',
            'glacier_0_25pct_high_snow_stdDev',
            'glacier_0_25pct_high_snow_count',
            'glacier_0_25pct_high_snow_sufficient_pixels',
        ]
        row = table.iloc[0]
        assert row['year'] == 2015
        assert row['total_filtered_pixels'] == 6
        assert row['sufficient_pixels'] == 1
        assert row['glacier_90_100pct_high_snow_mean'] == pytest.approx(0.70)
        assert row['glacier_90_100pct_high_snow_sufficient_pixels'] == 1

    def test_daily_rows_keep_counts_when_insufficient(self, formatter, observations):
        result = AggregationReducer().daily(observations, AnalysisRequest(min_pixels=5))
        table = formatter.daily_table(result)

        assert list(table.columns[:len(DAILY_BASE_COLUMNS)]) == DAILY_BASE_COLUMNS
        assert table['date'].tolist() == ['2015-07-15', '2015-08-01']
        assert table['glacier_90_100pct_pixel_count'].tolist() == [3, 3]
        assert table['glacier_90_100pct_mean'].isna().all()
        assert table['sufficient_total_pixels'].tolist() == [0, 0]
        assert table.iloc[0]['doy'] == 196

    def test_null_marker_written(self, formatter, observations, tmp_path):
        result = AggregationReducer().annual(observations, AnalysisRequest(min_pixels=5))
        path = formatter.write_csv(formatter.annual_table(result), str(tmp_path / 'out' / 'annual.csv'))

        content = open(path).read()
        assert 'null' in content
        reloaded = pd.read_csv(path, na_values=['null'])
        assert pd.isna(reloaded.loc[0, 'glacier_0_25pct_high_snow_mean'])
        assert reloaded.loc[0, 'glacier_0_25pct_high_snow_count'] == 0

    def test_custom_null_marker(self, observations, tmp_path):
        formatter = ExportFormatter({'output': {'null_marker': 'NA'}})
        result = AggregationReducer().annual(observations, AnalysisRequest(min_pixels=5))
        path = formatter.write_csv(formatter.annual_table(result), str(tmp_path / 'annual.csv'))
        assert ',NA' in open(path).read()

    def test_pixel_table(self, formatter, observations):
        table = formatter.pixel_table(observations)

        assert list(table.columns) == PIXEL_COLUMNS
        assert len(table) == 7

        invalid = table[table['snow_albedo_raw'] == 150].iloc[0]
        assert pd.isna(invalid['snow_albedo_scaled'])
        assert invalid['glacier_class'] == '50-75%'
        assert invalid['basic_qa_text'] == 'Good'
        assert pd.isna(invalid['flag_probably_clear'])

        valid = table[table['snow_albedo_raw'] == 70].iloc[0]
        assert valid['snow_albedo_scaled'] == pytest.approx(0.70)
        assert valid['flag_probably_clear'] == 1
        assert valid['flag_probably_cloudy'] == 0
        assert valid['passes_standard_qa'] == 1
        assert valid['glacier_fraction_pct'] == pytest.approx(95.0)

    def test_comparison_table_columns(self, formatter):
        table = formatter.comparison_table([])
        assert list(table.columns) == COMPARISON_COLUMNS
        assert table.empty

    def test_wrong_bucket_type(self, formatter, observations):
        daily = AggregationReducer().daily(observations, AnalysisRequest())
        with pytest.raises(ValueError):
            formatter.annual_rows(daily)

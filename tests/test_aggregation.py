import pytest
import pandas as pd
import numpy as np

from analysis.core.aggregation import AggregationReducer, YearSeries, build_year_series
from analysis.core.analysis_request import AnalysisRequest
from analysis.quality.qa_flags import STANDARD_QA_CONFIG


def make_frame(rows):
    """Observation table from (date, raw albedo, glacier fraction, ...) tuples."""
    records = []
    for index, row in enumerate(rows):
        date, raw, fraction = row[:3]
        extra = row[3] if len(row) > 3 else {}
        record = {
            'date': date,
            'longitude': -117.25 + 0.005 * index,
            'latitude': 52.19,
            'ndsi_snow_cover': 80,
            'snow_albedo_raw': raw,
            'basic_qa': 0,
            'algorithm_flags': 64,
            'glacier_fraction': fraction,
        }
        record.update(extra)
        records.append(record)
    return pd.DataFrame(records)


class TestAggregationReducer:
    """Test annual and daily aggregation."""

    @pytest.fixture
    def reducer(self):
        return AggregationReducer()

    @pytest.fixture
    def request_default(self):
        return AnalysisRequest(ndsi_threshold=0, fraction_threshold=75, min_pixels=10)

    def test_insufficient_cell_keeps_count_and_drops_stats(self, reducer, request_default):
        frame = make_frame([('2015-07-15', 70, 0.95)] * 8)
        result = reducer.annual(frame, request_default)

        record = result.record(2015, 'glacier_90_100pct')
        assert record.count == 8
        assert record.mean is None
        assert record.std_dev is None
        assert record.sufficient_pixels is False

    def test_sufficient_cell_reports_stats(self, reducer, request_default):
        raws = [60, 62, 64, 66, 68, 70, 72, 74, 76, 78]
        frame = make_frame([('2015-07-15', raw, 0.95) for raw in raws])
        result = reducer.annual(frame, request_default)

        record = result.record(2015, 'glacier_90_100pct')
        assert record.count == 10
        assert record.sufficient_pixels
        assert record.mean == pytest.approx(0.69)
        assert record.std_dev == pytest.approx(np.std(np.array(raws) * 0.01, ddof=1))
        assert record.median is None

    def test_every_class_reported_for_every_bucket(self, reducer, request_default):
        frame = make_frame([('2015-07-15', 70, 0.95)])
        result = reducer.annual(frame, request_default)

        assert list(result.records[2015]) == list(result.class_names)
        empty = result.record(2015, 'glacier_0_25pct')
        assert empty.count == 0
        assert empty.mean is None
        assert not empty.sufficient_pixels

    def test_zero_min_pixels_never_sufficient_when_empty(self, reducer):
        request = AnalysisRequest(min_pixels=0)
        frame = make_frame([('2015-07-15', 70, 0.95)])
        result = reducer.annual(frame, request)

        assert result.record(2015, 'glacier_90_100pct').sufficient_pixels
        assert not result.record(2015, 'glacier_75_90pct').sufficient_pixels

    def test_invalid_albedo_excluded(self, reducer):
        request = AnalysisRequest(min_pixels=1)
        frame = make_frame([('2015-07-15', 70, 0.95), ('2015-07-15', 150, 0.95),
                            ('2015-07-15', np.nan, 0.95)])
        result = reducer.annual(frame, request)

        record = result.record(2015, 'glacier_90_100pct')
        assert record.count == 1
        assert record.mean == pytest.approx(0.70)

    def test_thresholds_and_qa_applied(self, reducer):
        request = AnalysisRequest(ndsi_threshold=50, fraction_threshold=75, min_pixels=1)
        frame = make_frame([
            ('2015-07-15', 70, 0.95),
            ('2015-07-15', 40, 0.95, {'ndsi_snow_cover': 20}),
            ('2015-07-15', 40, 0.60),
            ('2015-07-15', 40, 0.95, {'basic_qa': 211}),
            ('2015-07-15', 40, 0.95, {'algorithm_flags': 32}),
        ])
        result = reducer.annual(frame, request)

        assert result.total_filtered_pixels(2015) == 1
        assert result.record(2015, 'glacier_90_100pct').mean == pytest.approx(0.70)

    def test_season_window(self, reducer):
        request = AnalysisRequest(min_pixels=1)
        frame = make_frame([('2015-05-31', 90, 0.95), ('2015-06-01', 70, 0.95),
                            ('2015-09-30', 50, 0.95), ('2015-10-01', 10, 0.95)])
        result = reducer.annual(frame, request)
        assert result.record(2015, 'glacier_90_100pct').mean == pytest.approx(0.60)

        peak = reducer.annual(frame, request.with_changes(peak_melt_only=True))
        assert peak.record(2015, 'glacier_90_100pct').mean == pytest.approx(0.50)
        assert peak.peak_melt_only

    def test_study_years_reported_even_when_empty(self, reducer, request_default):
        frame = make_frame([('2015-07-15', 70, 0.95)])
        result = reducer.annual(frame, request_default, study_years=[2014, 2015, 2016])

        assert result.buckets == [2014, 2015, 2016]
        assert result.total_filtered_pixels(2014) == 0
        assert result.record(2016, 'glacier_90_100pct').count == 0

    def test_daily_mean_and_median(self, reducer, request_default):
        frame = make_frame([('2015-07-15', 60, 0.95)] * 10 + [('2015-07-15', 100, 0.95)])
        result = reducer.daily(frame, request_default)

        day = pd.Timestamp('2015-07-15').date()
        record = result.record(day, 'glacier_90_100pct')
        assert result.bucket_type == 'daily'
        assert record.count == 11
        assert record.mean == pytest.approx(7.0 / 11)
        assert record.median == pytest.approx(0.60)
        assert record.std_dev is None

    def test_composite_pixels_averages_each_pixel_first(self, reducer):
        request = AnalysisRequest(min_pixels=1)
        pixel_a = {'longitude': -117.25, 'latitude': 52.19}
        pixel_b = {'longitude': -117.24, 'latitude': 52.19}
        frame = make_frame([
            ('2015-07-01', 60, 0.95, pixel_a),
            ('2015-07-10', 60, 0.95, pixel_a),
            ('2015-07-20', 60, 0.95, pixel_a),
            ('2015-07-01', 90, 0.95, pixel_b),
        ])

        observation_level = reducer.annual(frame, request, composite_pixels=False)
        composited = reducer.annual(frame, request)

        assert observation_level.record(2015, 'glacier_90_100pct').mean == pytest.approx(0.675)
        assert observation_level.record(2015, 'glacier_90_100pct').count == 4
        assert composited.record(2015, 'glacier_90_100pct').mean == pytest.approx(0.75)
        assert composited.record(2015, 'glacier_90_100pct').count == 2
        assert composited.total_filtered_pixels(2015) == 4

    def test_annual_sufficiency_counts_pixels_not_pixel_days(self, reducer, request_default):
        rows = []
        for pixel in range(3):
            location = {'longitude': -117.25 + 0.005 * pixel, 'latitude': 52.19}
            for day in pd.date_range('2015-07-01', periods=30):
                rows.append((day.strftime('%Y-%m-%d'), 70, 0.95, location))
        result = reducer.annual(make_frame(rows), request_default)

        record = result.record(2015, 'glacier_90_100pct')
        assert record.count == 3
        assert not record.sufficient_pixels
        assert record.mean is None
        assert result.total_filtered_pixels(2015) == 90
        assert build_year_series(result, 'glacier_90_100pct').years == ()

    def test_daily_buckets_not_composited(self, reducer):
        request = AnalysisRequest(min_pixels=1)
        pixel = {'longitude': -117.25, 'latitude': 52.19}
        frame = make_frame([('2015-07-01', 60, 0.95, pixel), ('2015-07-01', 80, 0.95, pixel)])
        result = reducer.daily(frame, request)
        assert result.record(pd.Timestamp('2015-07-01').date(), 'glacier_90_100pct').count == 2

    def test_composite_requires_coordinates(self, reducer):
        request = AnalysisRequest(min_pixels=1)
        frame = make_frame([('2015-07-01', 60, 0.95, {'longitude': np.nan})])
        with pytest.raises(ValueError):
            reducer.annual(frame, request)

    def test_empty_bucket_total_never_sufficient(self, reducer):
        request = AnalysisRequest(min_pixels=0)
        frame = make_frame([('2015-07-15', 70, 0.95)])
        result = reducer.annual(frame, request, study_years=[2014, 2015])

        assert result.total_filtered_pixels(2014) == 0
        assert not result.sufficient_total(2014)
        assert not result.record(2014, 'glacier_90_100pct').sufficient_pixels
        assert result.sufficient_total(2015)

    def test_invalid_arguments(self, reducer):
        frame = make_frame([('2015-07-15', 70, 0.95)])
        with pytest.raises(ValueError):
            reducer.aggregate(frame, STANDARD_QA_CONFIG, 0, 75, 10, bucket='monthly')
        with pytest.raises(ValueError):
            reducer.aggregate(frame, STANDARD_QA_CONFIG, 0, 75, 10, bucket='daily', composite_pixels=True)
        with pytest.raises(ValueError):
            reducer.aggregate(frame, STANDARD_QA_CONFIG, 0, 75, -1)

    def test_configured_fraction_thresholds(self):
        reducer = AggregationReducer(config={'analysis': {'fraction_thresholds': [0.5]}})
        assert reducer.classifier.class_names == ['glacier_0_50pct', 'glacier_50_100pct']


class TestYearSeries:
    """Test year series extraction."""

    def test_series_sorted_by_year(self):
        series = YearSeries('test', years=(2012, 2010, 2011), values=(0.3, 0.1, 0.2))
        assert series.years == (2010, 2011, 2012)
        assert series.values == (0.1, 0.2, 0.3)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            YearSeries('test', years=(2010, 2011), values=(0.1,))

    def test_from_mapping(self):
        series = YearSeries.from_mapping({2011: 0.5, 2010: 0.6}, 'test')
        assert series.to_series().to_dict() == {2010: 0.6, 2011: 0.5}

    def test_build_year_series_skips_insufficient_years(self):
        reducer = AggregationReducer()
        request = AnalysisRequest(min_pixels=2)
        frame = make_frame([('2014-07-15', 70, 0.95), ('2014-07-16', 72, 0.95),
                            ('2015-07-15', 60, 0.95),
                            ('2016-07-15', 50, 0.95), ('2016-07-16', 52, 0.95)])
        result = reducer.annual(frame, request)
        series = build_year_series(result, 'glacier_90_100pct')

        assert series.years == (2014, 2016)
        assert series.values == pytest.approx((0.71, 0.51))

    def test_build_year_series_requires_annual(self):
        reducer = AggregationReducer()
        result = reducer.daily(make_frame([('2015-07-15', 70, 0.95)]), AnalysisRequest())
        with pytest.raises(ValueError):
            build_year_series(result, 'glacier_90_100pct')

    def test_build_year_series_unknown_class(self):
        reducer = AggregationReducer()
        result = reducer.annual(make_frame([('2015-07-15', 70, 0.95)]), AnalysisRequest())
        with pytest.raises(KeyError):
            build_year_series(result, 'glacier_1_2pct')

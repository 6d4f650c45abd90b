import pytest
import pandas as pd
import numpy as np
import rasterio
from rasterio.transform import from_origin

from data_processing.loaders.observation_loaders import (
    PixelObservationLoader, RasterStackLoader, parse_acquisition_date
)

TRANSFORM = from_origin(-117.30, 52.20, 0.01, 0.01)


def write_raster(path, bands, dtype='int16'):
    bands = np.asarray(bands)
    with rasterio.open(path, 'w', driver='GTiff', height=bands.shape[1], width=bands.shape[2],
                       count=bands.shape[0], dtype=dtype, crs='EPSG:4326',
                       transform=TRANSFORM) as dst:
        dst.write(bands.astype(dtype))


class TestAcquisitionDates:
    """Test date parsing from file names."""

    @pytest.mark.parametrize('name, expected', [
        ('MOD10A1.A2015196.h10v03.061.tif', '2015-07-15'),
        ('haig_2015-07-15.tif', '2015-07-15'),
        ('mod10a1_20150715.tif', '2015-07-15'),
    ])
    def test_parse(self, name, expected):
        assert parse_acquisition_date(name) == pd.Timestamp(expected)

    def test_no_date(self):
        assert parse_acquisition_date('glacier_mask.tif') is None


class TestPixelObservationLoader:
    """Test CSV observation loading."""

    @pytest.fixture
    def loader(self):
        return PixelObservationLoader({})

    def test_export_layout(self, loader, tmp_path):
        path = tmp_path / 'pixels.csv'
        path.write_text(
            "date,longitude,latitude,glacier_fraction_pct,ndsi_snow_cover,snow_albedo_raw,basic_qa,algorithm_flags\n"
            "2015-07-16,-117.25,52.19,95.0,80,70,0,64\n"
            "2015-07-15,-117.24,52.19,50.0,80,null,1,null\n"
        )
        data = loader.load_data(str(path))

        assert list(data.columns[:8]) == ['date', 'longitude', 'latitude', 'ndsi_snow_cover',
                                          'snow_albedo_raw', 'basic_qa', 'algorithm_flags',
                                          'glacier_fraction']
        assert data['date'].iloc[0] == pd.Timestamp('2015-07-15')
        assert data['glacier_fraction'].tolist() == pytest.approx([0.5, 0.95])
        assert pd.isna(data['snow_albedo_raw'].iloc[0])
        assert loader.has_data()

    def test_band_names(self, loader, tmp_path):
        path = tmp_path / 'bands.csv'
        path.write_text(
            "date,lon,lat,NDSI_Snow_Cover,Snow_Albedo_Daily_Tile,NDSI_Snow_Cover_Basic_QA,static_glacier_fraction\n"
            "2015-07-15,-117.25,52.19,80,70,0,0.9\n"
        )
        data = loader.load_data(str(path))
        assert data.loc[0, 'snow_albedo_raw'] == 70
        assert data.loc[0, 'longitude'] == pytest.approx(-117.25)
        assert pd.isna(data.loc[0, 'algorithm_flags'])

    def test_missing_coordinates_warned(self, loader, tmp_path, caplog):
        path = tmp_path / 'no_coords.csv'
        path.write_text(
            "date,ndsi_snow_cover,snow_albedo_raw,basic_qa,glacier_fraction\n"
            "2015-07-15,80,70,0,0.9\n"
        )
        with caplog.at_level('WARNING'):
            data = loader.load_data(str(path))
        assert len(data) == 1
        assert not loader.validate_coordinates(data)
        assert 'coordinates' in caplog.text

    def test_coordinate_ranges(self, loader):
        valid = pd.DataFrame({'longitude': [-117.25], 'latitude': [52.19]})
        out_of_range = pd.DataFrame({'longitude': [-217.25], 'latitude': [52.19]})
        assert loader.validate_coordinates(valid)
        assert not loader.validate_coordinates(out_of_range)

    def test_missing_file(self, loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            loader.load_data(str(tmp_path / 'missing.csv'))

    def test_missing_columns(self, loader, tmp_path):
        path = tmp_path / 'bad.csv'
        path.write_text("date,snow_albedo_raw\n2015-07-15,70\n")
        with pytest.raises(ValueError):
            loader.load_data(str(path))


class TestRasterStackLoader:
    """Test GeoTIFF stack loading."""

    @pytest.fixture
    def fraction_path(self, tmp_path):
        path = tmp_path / 'fraction.tif'
        write_raster(path, [[[1.0, 0.5], [0.0, 0.8]]], dtype='float32')
        return str(path)

    @pytest.fixture
    def raster_dir(self, tmp_path):
        directory = tmp_path / 'mod10a1'
        directory.mkdir()
        bands = [
            [[80, 70], [60, 50]],
            [[70, 65], [60, 150]],
            [[0, 1], [0, 2]],
            [[64, 32], [0, 64]],
        ]
        write_raster(directory / 'MOD10A1.A2015196.tif', bands)
        write_raster(directory / 'MOD10A1.A2015197.tif', bands)
        write_raster(directory / 'readme.tif', bands)
        return directory

    def test_only_glacier_pixels_loaded(self, raster_dir, fraction_path):
        data = RasterStackLoader({}).load_data(str(raster_dir), fraction_path=fraction_path)

        assert len(data) == 6
        assert sorted(data['date'].dt.strftime('%Y-%m-%d').unique()) == ['2015-07-15', '2015-07-16']
        first = data[(data['date'] == '2015-07-15') & (data['glacier_fraction'] == 1.0)].iloc[0]
        assert first['snow_albedo_raw'] == 70
        assert first['algorithm_flags'] == 64
        assert first['longitude'] == pytest.approx(-117.295)
        assert first['latitude'] == pytest.approx(52.195)

    def test_missing_flags_band(self, tmp_path, fraction_path):
        directory = tmp_path / 'three_bands'
        directory.mkdir()
        write_raster(directory / '2015-07-15.tif', [[[80, 70], [60, 50]],
                                                   [[70, 65], [60, 55]],
                                                   [[0, 1], [0, 2]]])
        data = RasterStackLoader({}).load_data(str(directory), fraction_path=fraction_path)
        assert data['algorithm_flags'].isna().all()

    def test_grid_mismatch(self, tmp_path, raster_dir):
        path = tmp_path / 'small_fraction.tif'
        write_raster(path, [[[1.0]]], dtype='float32')
        with pytest.raises(ValueError):
            RasterStackLoader({}).load_data(str(raster_dir), fraction_path=str(path))

    def test_requires_fraction(self, raster_dir):
        with pytest.raises(ValueError):
            RasterStackLoader({}).load_data(str(raster_dir))

    def test_missing_directory(self, tmp_path, fraction_path):
        with pytest.raises(FileNotFoundError):
            RasterStackLoader({}).load_data(str(tmp_path / 'nope'), fraction_path=fraction_path)

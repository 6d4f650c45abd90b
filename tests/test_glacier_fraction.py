import pytest
import numpy as np
import geopandas as gpd
import rasterio
from rasterio.transform import from_origin

from spatial_analysis.masks.glacier_fraction import GlacierFractionProcessor, block_average

ORIGIN = (-117.30, 52.20)


def write_raster(path, array, resolution, dtype='uint8'):
    array = np.asarray(array)
    with rasterio.open(path, 'w', driver='GTiff', height=array.shape[0], width=array.shape[1],
                       count=1, dtype=dtype, crs='EPSG:4326',
                       transform=from_origin(ORIGIN[0], ORIGIN[1], resolution, resolution)) as dst:
        dst.write(array.astype(dtype), 1)


class TestBlockAverage:
    """Test sub-pixel coverage averaging."""

    def test_fractions(self):
        mask = np.zeros((4, 4))
        mask[:2, :2] = 1
        mask[2, 2] = 1
        fraction = block_average(mask, 2)
        assert fraction.tolist() == [[1.0, 0.0], [0.0, 0.25]]

    def test_indivisible_shape(self):
        with pytest.raises(ValueError):
            block_average(np.zeros((3, 4)), 2)

    def test_invalid_factor(self):
        with pytest.raises(ValueError):
            block_average(np.zeros((4, 4)), 0)


class TestGlacierFractionProcessor:
    """Test static glacier fraction computation."""

    @pytest.fixture
    def processor(self):
        return GlacierFractionProcessor({'data': {'vector_supersample': 4}})

    @pytest.fixture
    def reference_path(self, tmp_path):
        path = tmp_path / 'MOD10A1.A2015196.tif'
        write_raster(path, np.zeros((2, 2)), 0.04, dtype='int16')
        return str(path)

    def test_fraction_from_raster_mask(self, processor, reference_path, tmp_path):
        mask = np.zeros((8, 8))
        mask[:, :4] = 1
        mask[:4, 4:6] = 1
        mask_path = tmp_path / 'mask.tif'
        write_raster(mask_path, mask, 0.01)

        fraction, transform = processor.compute_static_fraction(str(mask_path), reference_path)

        assert fraction.shape == (2, 2)
        assert fraction[0, 0] == pytest.approx(1.0, abs=1e-6)
        assert fraction[1, 0] == pytest.approx(1.0, abs=1e-6)
        assert fraction[0, 1] == pytest.approx(0.5, abs=1e-6)
        assert fraction[1, 1] == pytest.approx(0.0, abs=1e-6)
        assert transform.a == pytest.approx(0.04)

    def test_fraction_from_outline(self, processor, reference_path, tmp_path):
        outline = gpd.GeoDataFrame(
            {'name': ['test glacier']},
            geometry=gpd.GeoSeries.from_wkt(['POLYGON ((-117.30 52.20, -117.26 52.20, '
                                             '-117.26 52.16, -117.30 52.16, -117.30 52.20))']),
            crs='EPSG:4326')
        outline_path = tmp_path / 'outline.geojson'
        outline.to_file(outline_path, driver='GeoJSON')

        fraction, _ = processor.compute_static_fraction(str(outline_path), reference_path)

        assert fraction[0, 0] == pytest.approx(1.0)
        assert fraction[0, 1] == pytest.approx(0.0)
        assert fraction[1, 1] == pytest.approx(0.0)

    def test_unsupported_format(self, processor, reference_path, tmp_path):
        path = tmp_path / 'mask.txt'
        path.write_text('not a mask')
        with pytest.raises(ValueError):
            processor.compute_static_fraction(str(path), reference_path)

    def test_missing_mask(self, processor, reference_path, tmp_path):
        with pytest.raises(FileNotFoundError):
            processor.compute_static_fraction(str(tmp_path / 'missing.tif'), reference_path)

    def test_write_and_summarize(self, processor, reference_path, tmp_path):
        fraction = np.array([[1.0, 0.5], [0.0, 0.8]])
        output = processor.write_fraction(fraction, reference_path, str(tmp_path / 'fraction.tif'))

        with rasterio.open(output) as src:
            assert np.allclose(src.read(1), fraction)

        summary = processor.summarize(fraction)
        assert summary['glacier_pixels'] == 3
        assert summary['pixels_at_or_above'][0.75] == 2

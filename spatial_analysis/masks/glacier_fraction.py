import numpy as np
import geopandas as gpd
import rasterio
from rasterio.enums import Resampling
from rasterio.features import rasterize
from rasterio.transform import Affine
from rasterio.warp import reproject
import logging
from pathlib import Path
from typing import Dict, Any, Tuple, Optional

from utils.config.helpers import validate_file_exists

logger = logging.getLogger(__name__)

RASTER_MASK_SUFFIXES = ('.tif', '.tiff')
VECTOR_MASK_SUFFIXES = ('.shp', '.gpkg', '.geojson', '.json')


def block_average(mask: np.ndarray, factor: int) -> np.ndarray:
    """
    Fraction of each ``factor`` x ``factor`` block covered by a binary mask.

    Raises:
        ValueError: If the mask shape is not a multiple of ``factor``
    """
    if factor < 1:
        raise ValueError(f"Block factor must be >= 1, got {factor}")
    height, width = mask.shape
    if height % factor or width % factor:
        raise ValueError(f"Mask shape {mask.shape} is not divisible by block factor {factor}")

    binary = (np.asarray(mask) > 0).astype(float)
    return binary.reshape(height // factor, factor, width // factor, factor).mean(axis=(1, 3))


class GlacierFractionProcessor:
    """
    Static glacier fraction on the MODIS grid.

    The fraction of each 500 m cell covered by a fine-resolution glacier mask
    is computed once and reused for every acquisition date.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        data_config = config.get('data') or {}
        self.supersample = data_config.get('vector_supersample', 16)

    def reference_grid(self, reference_path: str) -> Dict[str, Any]:
        """Grid (transform, CRS, shape) of a MOD10A1 reference raster."""
        if not validate_file_exists(reference_path):
            raise FileNotFoundError(f"Reference raster not found: {reference_path}")
        with rasterio.open(reference_path) as src:
            return {
                'transform': src.transform,
                'crs': src.crs,
                'height': src.height,
                'width': src.width,
            }

    def compute_static_fraction(self, mask_path: str, reference_path: str) -> Tuple[np.ndarray, Affine]:
        """
        Average-resample a glacier mask onto the grid of ``reference_path``.

        Args:
            mask_path: Raster (non-zero = glacier) or vector glacier outline
            reference_path: Any MOD10A1 GeoTIFF on the analysis grid

        Returns:
            Tuple of (fraction array in [0, 1], affine transform)
        """
        if not validate_file_exists(mask_path):
            raise FileNotFoundError(f"Glacier mask not found: {mask_path}")

        grid = self.reference_grid(reference_path)
        suffix = Path(mask_path).suffix.lower()

        logger.info(f"Computing static glacier fraction from {mask_path}")
        if suffix in RASTER_MASK_SUFFIXES:
            fraction = self._fraction_from_raster(mask_path, grid)
        elif suffix in VECTOR_MASK_SUFFIXES:
            fraction = self._fraction_from_vector(mask_path, grid)
        else:
            raise ValueError(f"Unsupported mask format: {mask_path}")

        fraction = np.clip(fraction, 0.0, 1.0)
        glacier_pixels = int((fraction > 0).sum())
        logger.info(f"Glacier fraction grid {fraction.shape[0]}x{fraction.shape[1]}: "
                    f"{glacier_pixels} pixels with glacier cover")
        return fraction, grid['transform']

    def _fraction_from_raster(self, mask_path: str, grid: Dict[str, Any]) -> np.ndarray:
        destination = np.zeros((grid['height'], grid['width']), dtype=np.float32)
        with rasterio.open(mask_path) as src:
            binary = (src.read(1, masked=True).filled(0) > 0).astype(np.float32)
            reproject(
                source=binary,
                destination=destination,
                src_transform=src.transform,
                src_crs=src.crs,
                dst_transform=grid['transform'],
                dst_crs=grid['crs'],
                resampling=Resampling.average
            )
        return destination.astype(float)

    def _fraction_from_vector(self, mask_path: str, grid: Dict[str, Any]) -> np.ndarray:
        outlines = gpd.read_file(mask_path)
        if outlines.empty:
            raise ValueError(f"Glacier outline file is empty: {mask_path}")
        if grid['crs'] is not None and outlines.crs is not None and outlines.crs != grid['crs']:
            outlines = outlines.to_crs(grid['crs'])

        factor = self.supersample
        fine_transform = grid['transform'] * Affine.scale(1.0 / factor)
        fine = rasterize(
            ((geom, 1) for geom in outlines.geometry if geom is not None),
            out_shape=(grid['height'] * factor, grid['width'] * factor),
            transform=fine_transform,
            fill=0,
            dtype='uint8'
        )
        return block_average(fine, factor)

    def write_fraction(self, fraction: np.ndarray, reference_path: str, output_path: str) -> str:
        """Save a fraction array as a float32 GeoTIFF on the reference grid."""
        with rasterio.open(reference_path) as src:
            profile = src.profile.copy()
        profile.update(count=1, dtype=rasterio.float32, nodata=None)

        with rasterio.open(output_path, 'w', **profile) as dst:
            dst.write(fraction.astype(np.float32), 1)
        logger.info(f"Glacier fraction raster saved: {output_path}")
        return output_path

    def summarize(self, fraction: np.ndarray, thresholds: Optional[Tuple[float, ...]] = None) -> Dict[str, Any]:
        """Pixel counts of the glacier fraction grid, overall and above each threshold."""
        thresholds = thresholds or (0.25, 0.50, 0.75, 0.90)
        on_glacier = fraction[fraction > 0]
        return {
            'glacier_pixels': int(on_glacier.size),
            'mean_fraction': float(on_glacier.mean()) if on_glacier.size else None,
            'pixels_at_or_above': {t: int((fraction >= t).sum()) for t in thresholds},
        }

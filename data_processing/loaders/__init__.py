from .observation_loaders import PixelObservationLoader, RasterStackLoader, parse_acquisition_date

__all__ = ['PixelObservationLoader', 'RasterStackLoader', 'parse_acquisition_date']

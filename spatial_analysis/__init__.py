"""
Spatial Analysis Module

Static glacier fraction of each MODIS cell from a fine-resolution glacier mask.
"""

from .masks.glacier_fraction import GlacierFractionProcessor, block_average

__all__ = ['GlacierFractionProcessor', 'block_average']

from .glacier_fraction import GlacierFractionProcessor, block_average

__all__ = ['GlacierFractionProcessor', 'block_average']

from .csv_exporter import ExportFormatter, PIXEL_COLUMNS, COMPARISON_COLUMNS

__all__ = ['ExportFormatter', 'PIXEL_COLUMNS', 'COMPARISON_COLUMNS']

"""Load series generation, loading and windowing."""

from .load_series import (
    synthetic_load_series,
    load_series_csv,
    load_increments,
    scale_increments,
    increment_scale,
    sliding_windows
)

__all__ = [
    'synthetic_load_series',
    'load_series_csv',
    'load_increments',
    'scale_increments',
    'increment_scale',
    'sliding_windows'
]

"""Data source interfaces, the series adapter and reference sources."""

from .base import DepthSource, Series, SeriesFrame, SeriesSource
from .adapter import SeriesBundle, fetch_series
from .frame import FrameSeriesSource, StaticDepthSource, compute_series, load_candles_csv

__all__ = [
    "DepthSource",
    "Series",
    "SeriesFrame",
    "SeriesSource",
    "SeriesBundle",
    "fetch_series",
    "FrameSeriesSource",
    "StaticDepthSource",
    "compute_series",
    "load_candles_csv",
]

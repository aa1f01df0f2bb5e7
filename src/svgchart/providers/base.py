"""Interfaces for the external data sources consumed by the renderer.

The chart engine does not fetch market data or compute indicators
itself.  It talks to a :class:`SeriesSource` for candles plus aligned
indicator series and to a :class:`DepthSource` for order-book
snapshots.  Implementations report failures by raising
:class:`~svgchart.errors.ChartError` with the appropriate kind.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..models import Candle, DepthSnapshot

# A series is aligned index-for-index with the candles it was computed
# from; ``None`` marks a sample with insufficient history.
Series = Sequence[Optional[float]]


@dataclass(frozen=True)
class SeriesFrame:
    """Raw answer from a series source.

    Attributes
    ----------
    candles : list of Candle
        Rows in ascending time order, including warmup rows.
    series : dict
        Indicator key -> series aligned with ``candles``.
    past_buffer : int
        Leading rows the source added for indicator warmup.
    shift : int
        Forward shift (in slots) of the source's shifted series.
    """

    candles: List[Candle]
    series: Dict[str, Series] = field(default_factory=dict)
    past_buffer: int = 0
    shift: int = 0


class SeriesSource(abc.ABC):
    """Source of candles and indicator series."""

    @abc.abstractmethod
    def fetch(self, pair: str, candle_type: str, count: int) -> SeriesFrame:
        """Return at least the latest ``count`` rows plus any warmup rows."""
        raise NotImplementedError


class DepthSource(abc.ABC):
    """Source of order-book depth snapshots."""

    @abc.abstractmethod
    def fetch_depth(self, pair: str, max_levels: int) -> DepthSnapshot:
        """Return up to ``max_levels`` bid and ask levels for ``pair``."""
        raise NotImplementedError

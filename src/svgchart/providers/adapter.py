"""Series Provider Adapter.

Wraps a :class:`SeriesSource` call with the buffer bookkeeping the
renderer needs: when the cloud indicator is enabled, extra history is
requested so its forward-shifted components cover the visible window,
and those rows are folded into the leading buffer so they are never
displayed.  Short history never shrinks the visible window: only rows
beyond it become the shift buffer, and a note records the shortfall.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from ..errors import ChartError
from ..log import get_logger
from ..models import Candle
from .base import Series, SeriesSource

logger = get_logger("providers.adapter")


@dataclass(frozen=True)
class SeriesBundle:
    """Candles and series ready for drawing.

    Attributes
    ----------
    candles : list of Candle
        Every fetched row, buffer included.
    series : dict
        Indicator key -> series aligned with ``candles``.
    leading_buffer : int
        Rows at the head of ``candles`` that are fetched but not shown.
    forward_shift : int
        Extra horizontal slots reserved after the last candle.
    notes : list of str
        Degradations applied while fetching, e.g. a short cloud buffer.
    """

    candles: List[Candle]
    series: Dict[str, Series]
    leading_buffer: int
    forward_shift: int
    notes: List[str] = field(default_factory=list)

    @property
    def display_candles(self) -> List[Candle]:
        return self.candles[self.leading_buffer:]

    def get(self, key: str) -> Series:
        """Return the series for ``key`` or an empty sequence if absent."""
        return self.series.get(key) or []


def fetch_series(
    source: SeriesSource,
    pair: str,
    candle_type: str,
    visible_count: int,
    with_cloud: bool = False,
    cloud_shift: int = 26,
) -> SeriesBundle:
    """Fetch ``visible_count`` displayable rows from ``source``.

    Args:
        source: The indicator data source.
        pair: Instrument identifier, e.g. ``btc_jpy``.
        candle_type: Period type, e.g. ``1day``.
        visible_count: Number of candles that should end up on screen.
        with_cloud: Whether the cloud indicator is drawn.  Only then are
            ``cloud_shift`` extra rows requested.
        cloud_shift: Forward shift width of the cloud indicator.

    Returns:
        A :class:`SeriesBundle`.  Displayed candle count equals the
        number of fetched rows minus ``leading_buffer``.

    Raises:
        ChartError: ``data`` when the source returns no rows; any error
            raised by the source is forwarded with its kind unchanged.
    """
    extra = cloud_shift if with_cloud else 0
    frame = source.fetch(pair, candle_type, visible_count + extra)
    if not frame.candles:
        raise ChartError(f"no candles returned for {pair} {candle_type}", "data")
    past = max(0, frame.past_buffer)
    # Shift rows come only out of history beyond the visible window
    spare = max(0, len(frame.candles) - past - visible_count)
    shift_rows = min(extra, spare)
    leading = min(len(frame.candles), past + shift_rows)
    notes: List[str] = []
    if shift_rows < extra:
        logger.info(
            "short history for %s %s: cloud buffer has %d of %d rows",
            pair,
            candle_type,
            shift_rows,
            extra,
        )
        notes.append(f"short history: cloud buffer has {shift_rows} of {extra} rows")
    logger.debug(
        "fetched %d rows for %s %s (leading buffer %d, shift %d)",
        len(frame.candles),
        pair,
        candle_type,
        leading,
        frame.shift,
    )
    return SeriesBundle(
        candles=list(frame.candles),
        series=dict(frame.series),
        leading_buffer=leading,
        forward_shift=max(0, frame.shift),
        notes=notes,
    )

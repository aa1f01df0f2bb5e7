"""Axis and coordinate geometry.

This module turns the numeric samples of the enabled layers into a
:class:`Scale`: a vertical axis range snapped to "nice" tick values, a
left padding wide enough for the tick labels, and the two mapping
functions from candle index and price to canvas pixels.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import Padding, RenderConfig
from ..errors import ChartError

# Hard cap on generated ticks so degenerate inputs cannot loop forever
MAX_TICKS = 20

# Bounds on the vertical padding fraction
MAX_Y_PADDING_PCT = 0.2


def nice_ticks(lo: float, hi: float, count: int = 6) -> List[float]:
    """Return human-friendly tick values covering ``[lo, hi]``.

    The step is a power of ten multiplied by 1, 2, 5 or 10, picked from
    how far the raw power-of-ten step undershoots ``(hi - lo) / count``.
    The first tick is the largest step multiple not above ``lo`` and
    ticks continue until one reaches ``hi`` (at most ``MAX_TICKS``).

    A zero range yields a single tick equal to ``lo``.
    """
    if hi < lo:
        lo, hi = hi, lo
    span = hi - lo
    if span == 0:
        return [lo]
    count = max(1, count)
    step = max(1e-9, 10 ** math.floor(math.log10(span / count)))
    err = (count * step) / span
    if err <= 0.15:
        nice = step * 10
    elif err <= 0.35:
        nice = step * 5
    elif err <= 0.75:
        nice = step * 2
    else:
        nice = step
    # Round to the step's decimal precision to absorb float drift
    precision = max(0, -math.floor(math.log10(nice)))
    k = math.floor(lo / nice)
    ticks: List[float] = []
    while len(ticks) < MAX_TICKS:
        v = round(k * nice, precision)
        ticks.append(v)
        if v >= hi:
            break
        k += 1
    return ticks


def tick_decimals(ticks: Sequence[float]) -> int:
    """Number of decimals needed to print ``ticks`` without losing the step."""
    if len(ticks) > 1:
        step = abs(ticks[1] - ticks[0])
        if step > 0:
            return max(0, -math.floor(math.log10(step)))
    if ticks and not float(ticks[0]).is_integer():
        return 2
    return 0


def format_tick(value: float, decimals: int) -> str:
    """Format a tick label with thousands separators."""
    return f"{value:,.{decimals}f}"


def value_range(series: Iterable[Iterable[Optional[float]]]) -> Tuple[float, float]:
    """Min and max over every numeric, finite sample in ``series``.

    Raises:
        ChartError: (``user``) when there is no sample at all.
    """
    lo = math.inf
    hi = -math.inf
    for values in series:
        for v in values:
            if v is None or not math.isfinite(v):
                continue
            if v < lo:
                lo = v
            if v > hi:
                hi = v
    if lo is math.inf:
        raise ChartError("no numeric values to scale", "user")
    return lo, hi


def pad_range(lo: float, hi: float, pct: float) -> Tuple[float, float]:
    """Expand ``[lo, hi]`` by ``pct`` of its span on both sides.

    ``pct`` is clamped to ``[0, 0.2]``.  A flat range is padded relative
    to its magnitude instead.
    """
    pct = min(max(pct, 0.0), MAX_Y_PADDING_PCT)
    span = hi - lo
    if span == 0:
        span = abs(hi)
    pad = span * pct
    return lo - pad, hi + pad


@dataclass(frozen=True)
class Scale:
    """Pixel mapping for one chart.

    Candle ``i`` is centred at ``(i + 0.5) / total_slots`` of the plot
    width, so edge candles are never clipped and ``total_slots`` can
    reserve room for series drawn ahead of the last candle.
    """

    width: float
    height: float
    left: float
    top: float
    right: float
    bottom: float
    total_slots: int
    data_min: float
    data_max: float
    axis_min: float
    axis_max: float
    ticks: Tuple[float, ...]
    tick_labels: Tuple[str, ...]
    precision: int = 1

    @property
    def plot_w(self) -> float:
        return self.width - self.left - self.right

    @property
    def plot_h(self) -> float:
        return self.height - self.top - self.bottom

    @property
    def slot_width(self) -> float:
        return self.plot_w / max(1, self.total_slots)

    @property
    def plot_bottom(self) -> float:
        return self.height - self.bottom

    def x(self, i: float) -> float:
        return round(self.left + (i + 0.5) * self.slot_width, self.precision)

    def y(self, v: float) -> float:
        span = self.axis_max - self.axis_min
        if span <= 0:
            return round(self.top + self.plot_h / 2.0, self.precision)
        return round(self.plot_bottom - ((v - self.axis_min) * self.plot_h) / span, self.precision)


def build_scale(
    series: Iterable[Iterable[Optional[float]]],
    visible_count: int,
    forward_slots: int,
    config: RenderConfig,
    padding: Padding,
    y_padding_pct: float = 0.03,
    precision: int = 1,
) -> Scale:
    """Compute the :class:`Scale` for the given enabled-layer samples.

    Args:
        series: Every sample that must fit on the vertical axis (price
            highs/lows plus each enabled indicator series).
        visible_count: Number of displayed candles.
        forward_slots: Extra slots reserved after the last candle.
        config: Canvas size and label metrics.
        padding: Top/right/bottom paddings; left is computed here.
        y_padding_pct: Vertical padding fraction before tick generation.
        precision: Decimal places kept on mapped coordinates (0-3).
    """
    data_min, data_max = value_range(series)
    padded_min, padded_max = pad_range(data_min, data_max, y_padding_pct)
    ticks = nice_ticks(padded_min, padded_max, config.tick_count)
    decimals = tick_decimals(ticks)
    labels = tuple(format_tick(t, decimals) for t in ticks)
    widest = max(len(label) for label in labels)
    left = widest * config.label_char_px + config.label_margin_px
    return Scale(
        width=config.width,
        height=config.height,
        left=left,
        top=padding.top,
        right=padding.right,
        bottom=padding.bottom,
        total_slots=max(1, visible_count + max(0, forward_slots)),
        data_min=data_min,
        data_max=data_max,
        axis_min=ticks[0],
        axis_max=ticks[-1],
        ticks=tuple(ticks),
        tick_labels=labels,
        precision=max(0, min(3, precision)),
    )

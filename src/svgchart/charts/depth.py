"""Order-book depth chart.

Independent of the candle pipeline: the depth style consumes a bid/ask
snapshot, builds cumulative-quantity step functions for both sides and
draws them on a local price/quantity scale, with translucent fills and
a dashed mid-price marker.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import CHROME_COLORS, DEPTH_COLORS, Padding, RenderConfig
from ..errors import ChartError
from ..log import get_logger
from ..models import (
    ChartData,
    ChartMeta,
    ChartResult,
    RenderRequest,
    fail_result,
    format_pair,
    ok_result,
)
from ..output.governor import place_artifact, placement_summary
from ..output.storage import timestamped_filename
from ..providers.base import DepthSource
from .geometry import format_tick, nice_ticks, tick_decimals
from .svg import Group, Line, Path, Rect, SvgDocument, Text, minify

logger = get_logger("charts.depth")

DEPTH_TYPE = "depth"

# The header block sits above the plot
DEPTH_PADDING = Padding(top=84, right=12, bottom=32)

# Share of the mid price used for the near-book depth summary
NEAR_BAND = 0.01

Level = Tuple[float, float]
Point = Tuple[float, float]


def cumulative_steps(levels: Sequence[Level]) -> List[Level]:
    """Running quantity total per level, in the given price order."""
    total = 0.0
    steps: List[Level] = []
    for price, qty in levels:
        total += qty
        steps.append((price, total))
    return steps


@dataclass(frozen=True)
class DepthScale:
    """Local price (x) / cumulative quantity (y) mapping."""

    left: float
    top: float
    right: float
    bottom: float
    width: float
    height: float
    min_price: float
    max_price: float
    max_qty: float
    precision: int

    @property
    def plot_w(self) -> float:
        return self.width - self.left - self.right

    @property
    def plot_h(self) -> float:
        return self.height - self.top - self.bottom

    def x(self, price: float) -> float:
        span = max(self.max_price - self.min_price, 1e-9)
        return round(self.left + (price - self.min_price) * self.plot_w / span, self.precision)

    def y(self, qty: float) -> float:
        return round(self.height - self.bottom - qty * self.plot_h / max(self.max_qty, 1e-9), self.precision)


def step_points(steps: Sequence[Level], scale: DepthScale) -> List[Point]:
    """Staircase through ``steps`` starting from zero at the best price."""
    if not steps:
        return []
    points: List[Point] = [(scale.x(steps[0][0]), scale.y(0.0))]
    prev = 0.0
    for price, cum in steps:
        px = scale.x(price)
        points.append((px, scale.y(prev)))
        points.append((px, scale.y(cum)))
        prev = cum
    return points


def depth_summary(bids: Sequence[Level], asks: Sequence[Level], mid: float, now: datetime) -> Dict[str, Any]:
    """Best prices and the bid/ask quantity ratio within +/-1% of mid."""
    bid_depth = sum(q for p, q in bids if p >= mid * (1 - NEAR_BAND))
    ask_depth = sum(q for p, q in asks if p <= mid * (1 + NEAR_BAND))
    ratio: Optional[float] = round(bid_depth / ask_depth, 2) if ask_depth > 0 else None
    return {
        "current_price": round(mid),
        "best_bid": round(bids[0][0]) if bids else None,
        "best_ask": round(asks[0][0]) if asks else None,
        "band_pct": NEAR_BAND,
        "bid_depth": round(bid_depth, 4),
        "ask_depth": round(ask_depth, 4),
        "ratio": ratio,
        "timestamp": now.isoformat(),
    }


def _build_document(
    request: RenderRequest,
    bids: List[Level],
    asks: List[Level],
    mid: float,
    summary: Dict[str, Any],
    config: RenderConfig,
    now: datetime,
) -> str:
    bid_steps = cumulative_steps(bids)
    ask_steps = cumulative_steps(asks)
    max_qty = max(bid_steps[-1][1] if bid_steps else 0.0, ask_steps[-1][1] if ask_steps else 0.0) or 1.0
    y_ticks = nice_ticks(0.0, max_qty, config.tick_count)
    y_decimals = tick_decimals(y_ticks)
    y_labels = [format_tick(t, y_decimals) for t in y_ticks]
    left = max(len(label) for label in y_labels) * config.label_char_px + config.label_margin_px

    prices = [p for p, _ in bids] + [p for p, _ in asks]
    lo, hi = min(prices), max(prices)
    if lo == hi:
        lo, hi = lo - 1.0, hi + 1.0
    scale = DepthScale(
        left=left,
        top=DEPTH_PADDING.top,
        right=DEPTH_PADDING.right,
        bottom=DEPTH_PADDING.bottom,
        width=config.width,
        height=config.height,
        min_price=lo,
        max_price=hi,
        max_qty=y_ticks[-1],
        precision=request.svg_precision,
    )
    text = CHROME_COLORS["text"]
    axis = CHROME_COLORS["axis"]
    base = scale.y(0.0)
    right = scale.width - scale.right

    axes = Group(cls="axes")
    axes.add(
        Line(scale.left, scale.top, scale.left, base, axis, 1),
        Line(scale.left, base, right, base, axis, 1),
    )
    for value, label in zip(y_ticks, y_labels):
        axes.add(Text(scale.left - 8, scale.y(value), label, fill=text, size=10, anchor="end", baseline="middle"))
    x_ticks = [t for t in nice_ticks(lo, hi, 4) if lo <= t <= hi]
    x_decimals = tick_decimals(x_ticks)
    for t in x_ticks:
        axes.add(Text(scale.x(t), base + 14, format_tick(t, x_decimals), fill=text, size=10, anchor="middle"))

    bid_points = step_points(bid_steps, scale)
    ask_points = step_points(ask_steps, scale)
    fills = Group(cls="depth-fill")
    steps = Group(cls="depth-steps")
    for points, fill, stroke, css in (
        (bid_points, DEPTH_COLORS["bid_fill"], DEPTH_COLORS["bid"], "bids"),
        (ask_points, DEPTH_COLORS["ask_fill"], DEPTH_COLORS["ask"], "asks"),
    ):
        if not points:
            continue
        fills.add(Path.polygons([points + [(points[-1][0], base)]], fill=fill))
        steps.add(Path.line(points, stroke, stroke_width=2, css=css))

    mx = scale.x(mid)
    mid_marker = Group(cls="mid")
    mid_marker.add(
        Line(mx, scale.top, mx, base, DEPTH_COLORS["mid"], 1, dash="4 4", cls="mid-price"),
        Text(mx, scale.top + 12, f"{mid:,.0f}", fill=text, anchor="middle"),
    )

    ratio = summary["ratio"]
    header = Group(cls="header")
    header.add(
        Text(scale.left, scale.top - 36, f"{format_pair(request.pair)} order book depth", fill=text),
        Text(scale.left, scale.top - 22, now.strftime("%Y-%m-%d %H:%M:%S UTC"), fill=text),
        Text(right, scale.top - 8, f"bid/ask ratio (±1%): {ratio:.2f}" if ratio is not None else "bid/ask ratio (±1%): ∞", fill=text, anchor="end"),
    )
    legend = Group(cls="legend", transform=f"translate({scale.left + 190}, {max(14, scale.top - 34)})")
    legend.add(
        Rect(0, -10, 12, 12, DEPTH_COLORS["bid"]),
        Text(16, 0, "Bids", fill=text),
        Rect(120, -10, 12, 12, DEPTH_COLORS["ask"]),
        Text(136, 0, "Asks", fill=text),
    )

    doc = SvgDocument(
        width=config.width,
        height=config.height,
        title=f"{format_pair(request.pair)} depth chart",
        background=CHROME_COLORS["background"],
        text_color=text,
    )
    doc.add(legend, header, axes, Group([fills, steps, mid_marker], cls="plot-area"))
    return doc.serialize()


def render_depth_svg(
    request: RenderRequest,
    depth_source: DepthSource,
    config: Optional[RenderConfig] = None,
    now: Optional[datetime] = None,
) -> ChartResult:
    """Render an order-book depth chart and place it like any other chart.

    Candle, indicator and overlay settings on ``request`` are ignored.
    Failures are returned as failure envelopes, never raised.
    """
    config = config or RenderConfig()
    moment = now or datetime.now(timezone.utc)
    try:
        snapshot = depth_source.fetch_depth(request.pair, request.depth_levels)
        bids = sorted(((p, q) for p, q in snapshot.bids), key=lambda lvl: lvl[0], reverse=True)
        asks = sorted(((p, q) for p, q in snapshot.asks), key=lambda lvl: lvl[0])
        if not bids and not asks:
            raise ChartError(f"no order book levels for {request.pair}", "user")
        if bids and asks:
            mid = (bids[0][0] + asks[0][0]) / 2.0
        else:
            mid = (bids or asks)[0][0]
        summary = depth_summary(bids, asks, mid, moment)
        markup = _build_document(request, bids, asks, mid, summary, config, moment)
        if request.svg_minify:
            markup = minify(markup)
        filename = timestamped_filename("depth", request.pair, None, "", moment)
        placement = place_artifact(markup, request, config, filename)
    except ChartError as exc:
        return fail_result(exc.message, exc.kind, request.pair, DEPTH_TYPE)
    except Exception as exc:
        logger.exception("depth render failed for %s", request.pair)
        return fail_result(str(exc) or "failed to render depth", "internal", request.pair, DEPTH_TYPE)
    label = f"{format_pair(request.pair)} depth chart"
    data = ChartData(
        svg=placement.svg,
        file_path=placement.file_path,
        url=placement.url,
        legend={"bids": "Bids", "asks": "Asks"},
        depth_summary=summary,
    )
    meta = ChartMeta(
        pair=request.pair,
        type=DEPTH_TYPE,
        size_bytes=placement.size_bytes,
        layer_count=1,
        truncated=placement.truncated,
        fallback=placement.notes[0] if placement.notes else None,
    )
    return ok_result(placement_summary(label, placement, []), data, meta)

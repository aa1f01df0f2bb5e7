"""Overlay renderers for candle-based charts.

Each renderer takes a :class:`LayerContext` and returns drawing
primitives; none of them emits markup directly.  Series sample ``i``
is placed at display index ``i - leading_buffer + offset`` so buffer
rows fall left of the plot and forward-shifted series land in the
reserved slots on the right.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import (
    BAND_COLORS,
    CHROME_COLORS,
    CLOUD_COLORS,
    OVERLAY_COLORS,
    PRICE_COLORS,
    SMA_COLORS,
)
from ..models import Candle, RenderRequest, parse_timestamp
from ..providers.adapter import SeriesBundle
from ..providers.base import Series
from .cloud import build_cloud
from .geometry import Scale
from .simplify import simplify_polyline
from .svg import Circle, Group, Line, Path, Rect, Shape, Text

Point = Tuple[float, float]

# Legend item spacing in pixels
LEGEND_ITEM_WIDTH = 130


@dataclass
class LayerContext:
    """Everything a layer renderer needs for one chart."""

    request: RenderRequest
    bundle: SeriesBundle
    scale: Scale
    skipped: List[str] = field(default_factory=list)

    @property
    def leading(self) -> int:
        return self.bundle.leading_buffer

    @property
    def candles(self) -> List[Candle]:
        return self.bundle.display_candles


def _usable(v: Optional[float]) -> bool:
    return v is not None and math.isfinite(v)


def visible_samples(series: Series, leading: int, total_slots: int, offset: int = 0) -> List[float]:
    """Samples of ``series`` that land inside the plot after shifting."""
    out: List[float] = []
    for i, v in enumerate(series):
        pos = i - leading + offset
        if 0 <= pos < total_slots and _usable(v):
            out.append(float(v))
    return out


def series_points(ctx: LayerContext, series: Series, offset: int = 0) -> List[Point]:
    """Map a series to pixel points, keeping one point past each edge."""
    points: List[Point] = []
    last = ctx.scale.total_slots
    for i, v in enumerate(series):
        pos = i - ctx.leading + offset
        if pos < -1 or pos > last or not _usable(v):
            continue
        points.append((ctx.scale.x(pos), ctx.scale.y(float(v))))
    return points


def line_layer(
    ctx: LayerContext,
    series: Series,
    color: str,
    width: float = 2,
    dash: Optional[str] = None,
    offset: int = 0,
    simplify: bool = False,
) -> Optional[Path]:
    """A single polyline for ``series``; ``None`` when nothing is drawable.

    Indicator lines are not simplified unless ``simplify`` is set.
    """
    if not series:
        return None
    points = series_points(ctx, series, offset)
    if not points:
        return None
    if simplify:
        points = simplify_polyline(points, ctx.request.simplify_tolerance)
    return Path.line(points, color, stroke_width=width, dash=dash)


def _compact(shapes: Iterable[Optional[Shape]]) -> List[Shape]:
    return [s for s in shapes if s is not None]


# --- enabled layers ---------------------------------------------------------


def band_keys(request: RenderRequest) -> List[str]:
    """Series keys that make up the enabled band boundaries."""
    if not request.with_bb:
        return []
    if request.bb_mode == "extended":
        return [f"BB{k}_{side}" for k in (1, 2, 3) for side in ("upper", "lower")]
    return ["BB_upper", "BB_lower"]


def cloud_keys(request: RenderRequest) -> List[Tuple[str, int]]:
    """Series keys and offsets of the cloud layer (shift applied later)."""
    if not request.with_ichimoku:
        return []
    keys = [("ICHI_tenkan", 0), ("ICHI_kijun", 0), ("ICHI_spanA", 1), ("ICHI_spanB", 1)]
    if request.draw_chikou:
        keys.append(("ICHI_chikou", -1))
    return keys


def enabled_samples(request: RenderRequest, bundle: SeriesBundle, total_slots: int) -> List[List[float]]:
    """Every sample the vertical axis must cover for the enabled layers.

    Price highs and lows always count; indicator series count only
    when their layer is enabled and only for samples that fall inside
    the plot, so toggling a layer can widen but never narrow the axis.
    """
    display = bundle.display_candles
    samples: List[List[float]] = [[c.high for c in display], [c.low for c in display]]
    leading = bundle.leading_buffer
    shift = bundle.forward_shift
    for period in request.with_sma:
        if period in SMA_COLORS:
            samples.append(visible_samples(bundle.get(f"SMA_{period}"), leading, total_slots))
    for key in band_keys(request):
        samples.append(visible_samples(bundle.get(key), leading, total_slots))
    for key, direction in cloud_keys(request):
        samples.append(visible_samples(bundle.get(key), leading, total_slots, direction * shift))
    return samples


# --- price ------------------------------------------------------------------


def auto_bar_width_ratio(count: int) -> float:
    """Body width as a fraction of the slot, by candle count."""
    if count <= 30:
        return 0.7
    if count <= 60:
        return 0.6
    return 0.5


def candlestick_layer(ctx: LayerContext) -> List[Shape]:
    """Wicks and bodies; bodies are green when close >= open."""
    scale = ctx.scale
    candles = ctx.candles
    ratio = ctx.request.bar_width_ratio or auto_bar_width_ratio(len(candles))
    bar_w = round(max(1.0, scale.slot_width * ratio), scale.precision)
    wicks = Group(cls="wicks")
    bodies = Group(cls="bodies")
    for i, c in enumerate(candles):
        cx = scale.x(i)
        wicks.add(Line(cx, scale.y(c.high), cx, scale.y(c.low), PRICE_COLORS["wick"], 1))
        o = scale.y(c.open)
        cl = scale.y(c.close)
        top = min(o, cl)
        height = round(max(1.0, max(o, cl) - top), scale.precision)
        color = PRICE_COLORS["up"] if c.close >= c.open else PRICE_COLORS["down"]
        bodies.add(Rect(round(cx - bar_w / 2, scale.precision), top, bar_w, height, color))
    return [wicks, bodies]


def close_line_layer(ctx: LayerContext) -> List[Shape]:
    """Close-price polyline; the one line that opts into simplification."""
    closes = [c.close for c in ctx.candles]
    points = [(ctx.scale.x(i), ctx.scale.y(v)) for i, v in enumerate(closes)]
    points = simplify_polyline(points, ctx.request.simplify_tolerance)
    return [Group([Path.line(points, PRICE_COLORS["line"], stroke_width=1.5)], cls="price-line")]


# --- moving averages --------------------------------------------------------


def moving_average_layer(ctx: LayerContext) -> List[Shape]:
    shapes: List[Optional[Shape]] = []
    for period in ctx.request.with_sma:
        color = SMA_COLORS.get(period)
        series = ctx.bundle.get(f"SMA_{period}")
        if color is None or len(series) == 0:
            continue
        shapes.append(line_layer(ctx, series, color, width=2))
    lines = _compact(shapes)
    return [Group(lines, cls="sma")] if lines else []


# --- bands ------------------------------------------------------------------


def _band_fill(ctx: LayerContext, upper: Series, lower: Series) -> Optional[Path]:
    up = series_points(ctx, upper)
    lo = series_points(ctx, lower)
    if not up or not lo:
        return None
    return Path.polygons([up + lo[::-1]], fill=BAND_COLORS["fill"])


def band_layer(ctx: LayerContext) -> List[Shape]:
    """Single (+/-2 sigma) or multi (1/2/3 sigma) volatility bands.

    Missing boundary series render nothing instead of failing.
    """
    if not ctx.request.with_bb:
        return []
    get = ctx.bundle.get
    if ctx.request.bb_mode == "extended":
        shapes = [
            _band_fill(ctx, get("BB2_upper"), get("BB2_lower")),
            line_layer(ctx, get("BB1_upper"), BAND_COLORS["line1"], width=1),
            line_layer(ctx, get("BB1_lower"), BAND_COLORS["line1"], width=1),
            line_layer(ctx, get("BB2_upper"), BAND_COLORS["line2"], width=1),
            line_layer(ctx, get("BB2_lower"), BAND_COLORS["line2"], width=1),
            line_layer(ctx, get("BB2_middle"), BAND_COLORS["middle"], width=1, dash="4 4"),
            line_layer(ctx, get("BB3_upper"), BAND_COLORS["line3"], width=1),
            line_layer(ctx, get("BB3_lower"), BAND_COLORS["line3"], width=1),
        ]
    else:
        shapes = [
            _band_fill(ctx, get("BB_upper"), get("BB_lower")),
            line_layer(ctx, get("BB_upper"), BAND_COLORS["line2"], width=1),
            line_layer(ctx, get("BB_lower"), BAND_COLORS["line2"], width=1),
            line_layer(ctx, get("BB_middle"), BAND_COLORS["middle"], width=1, dash="4 4"),
        ]
    return [Group(_compact(shapes), cls="bands")]


# --- cloud ------------------------------------------------------------------


def cloud_layer(ctx: LayerContext) -> List[Shape]:
    """Cloud fill split at crossings plus the component lines."""
    if not ctx.request.with_ichimoku:
        return []
    get = ctx.bundle.get
    if not get("ICHI_tenkan"):
        return []
    shift = ctx.bundle.forward_shift
    scale = ctx.scale
    offset = shift - ctx.leading

    def to_px(ring: Sequence[Point]) -> List[Point]:
        return [(scale.x(i + offset), scale.y(v)) for i, v in ring]

    polygons = build_cloud(get("ICHI_spanA"), get("ICHI_spanB"))
    shapes: List[Optional[Shape]] = []
    if polygons.bullish:
        shapes.append(Path.polygons([to_px(p.ring()) for p in polygons.bullish], fill=CLOUD_COLORS["bullish_fill"]))
    if polygons.bearish:
        shapes.append(Path.polygons([to_px(p.ring()) for p in polygons.bearish], fill=CLOUD_COLORS["bearish_fill"]))
    shapes.append(line_layer(ctx, get("ICHI_tenkan"), CLOUD_COLORS["tenkan"], width=1))
    shapes.append(line_layer(ctx, get("ICHI_kijun"), CLOUD_COLORS["kijun"], width=1))
    if ctx.request.draw_chikou:
        shapes.append(line_layer(ctx, get("ICHI_chikou"), CLOUD_COLORS["chikou"], width=1, dash="2 2", offset=-shift))
    shapes.append(line_layer(ctx, get("ICHI_spanA"), CLOUD_COLORS["span_a"], width=1, offset=shift))
    shapes.append(line_layer(ctx, get("ICHI_spanB"), CLOUD_COLORS["span_b"], width=1, offset=shift))
    return [Group(_compact(shapes), cls="cloud")]


# --- auxiliary overlays -----------------------------------------------------


def _index_by_time(candles: Sequence[Candle]) -> Dict[object, int]:
    return {c.time: i for i, c in enumerate(candles)}


def zone_layer(ctx: LayerContext) -> List[Shape]:
    """Horizontal price bands across the full plot width."""
    overlays = ctx.request.overlays
    if overlays is None or not overlays.depth_zones:
        return []
    scale = ctx.scale
    group = Group(cls="zones")
    for zone in overlays.depth_zones:
        y_top = scale.y(max(zone.low, zone.high))
        y_bot = scale.y(min(zone.low, zone.high))
        group.add(Rect(scale.left, y_top, round(scale.plot_w, scale.precision), round(max(1.0, y_bot - y_top), scale.precision), zone.color or OVERLAY_COLORS["zone"]))
        if zone.label:
            group.add(Text(scale.left + 4, y_top + 12, zone.label, size=10))
    return [group]


def range_layer(ctx: LayerContext) -> List[Shape]:
    """Highlighted date ranges; ranges with an unknown endpoint are skipped."""
    overlays = ctx.request.overlays
    if overlays is None or not overlays.ranges:
        return []
    scale = ctx.scale
    index = _index_by_time(ctx.candles)
    group = Group(cls="ranges")
    for r in overlays.ranges:
        start = parse_timestamp(r.start)
        end = parse_timestamp(r.end)
        i0 = index.get(start) if start is not None else None
        i1 = index.get(end) if end is not None else None
        if i0 is None or i1 is None:
            ctx.skipped.append(f"range {r.start}..{r.end}: endpoint not in displayed candles")
            continue
        i0, i1 = min(i0, i1), max(i0, i1)
        half = scale.slot_width / 2.0
        x0 = round(scale.x(i0) - half, scale.precision)
        x1 = round(scale.x(i1) + half, scale.precision)
        group.add(Rect(x0, scale.top, round(x1 - x0, scale.precision), round(scale.plot_h, scale.precision), r.color or OVERLAY_COLORS["range"]))
        if r.label:
            group.add(Text(x0 + 4, scale.top + 12, r.label, size=10))
    return [group]


def annotation_layer(ctx: LayerContext) -> List[Shape]:
    """Marker, dashed stem and label per annotation, labels alternating rows."""
    overlays = ctx.request.overlays
    if overlays is None or not overlays.annotations:
        return []
    scale = ctx.scale
    index = _index_by_time(ctx.candles)
    group = Group(cls="annotations")
    placed = 0
    for note in overlays.annotations:
        ts = parse_timestamp(note.iso_time)
        i = index.get(ts) if ts is not None else None
        if i is None:
            ctx.skipped.append(f"annotation {note.iso_time}: time not in displayed candles")
            continue
        cx = scale.x(i)
        cy = scale.y(ctx.candles[i].high)
        label_y = scale.top + 12 + (placed % 2) * 14
        color = OVERLAY_COLORS["annotation"]
        group.add(
            Line(cx, label_y + 2, cx, cy, color, 1, dash="2 2"),
            Circle(cx, cy, 3, color),
            Text(cx, label_y, note.text, size=10, anchor="middle"),
        )
        placed += 1
    return [group]


# --- chrome -----------------------------------------------------------------


def axes_layer(ctx: LayerContext) -> List[Shape]:
    """Y axis with tick labels and X axis with M/D date labels."""
    scale = ctx.scale
    axis = CHROME_COLORS["axis"]
    text = CHROME_COLORS["text"]
    right = scale.width - scale.right
    y_axis = Group([Line(scale.left, scale.top, scale.left, scale.plot_bottom, axis, 1)])
    for value, label in zip(scale.ticks, scale.tick_labels):
        y_axis.add(Text(scale.left - 8, scale.y(value), label, fill=text, anchor="end", baseline="middle"))
    x_axis = Group([Line(scale.left, scale.plot_bottom, right, scale.plot_bottom, axis, 1)])
    candles = ctx.candles
    step = max(1, len(candles) // 5)
    for i in range(0, len(candles), step):
        t = candles[i].time
        x_axis.add(Text(scale.x(i), scale.plot_bottom + 16, f"{t.month}/{t.day}", fill=text, size=10, anchor="middle"))
    return [Group([y_axis, x_axis], cls="axes")]


def legend_entries(request: RenderRequest) -> Tuple[Dict[str, str], List[Tuple[str, str]]]:
    """Legend mapping for the result payload and the drawn legend items."""
    meta: Dict[str, str] = {}
    items: List[Tuple[str, str]] = []
    for period in request.with_sma:
        color = SMA_COLORS.get(period)
        if color is None:
            continue
        meta[f"SMA_{period}"] = f"SMA {period} ({color})"
        items.append((f"SMA {period}", color))
    if request.with_bb:
        if request.bb_mode == "extended":
            for k in (1, 2, 3):
                meta[f"BB{k}"] = f"BB ±{k}σ"
                items.append((f"BB ±{k}σ", BAND_COLORS[f"line{k}"]))
        else:
            meta["BB"] = "Bollinger Bands (±2σ)"
            items.append(("BB ±2σ", BAND_COLORS["line2"]))
    if request.with_ichimoku:
        meta["Ichimoku"] = "Ichimoku Cloud"
        items.append(("Tenkan", CLOUD_COLORS["tenkan"]))
        items.append(("Kijun", CLOUD_COLORS["kijun"]))
    return meta, items


def legend_layer(ctx: LayerContext, items: Sequence[Tuple[str, str]]) -> List[Shape]:
    if not items:
        return []
    y = max(14, ctx.scale.top - 18)
    group = Group(cls="legend")
    for i, (label, color) in enumerate(items):
        entry = Group(transform=f"translate({ctx.scale.left + i * LEGEND_ITEM_WIDTH}, {y})")
        entry.add(Rect(0, -10, 12, 12, color), Text(16, 0, label, fill=CHROME_COLORS["text"]))
        group.add(entry)
    return [group]

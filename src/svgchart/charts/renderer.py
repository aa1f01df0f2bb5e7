"""Candle chart renderer for svgchart.

This module turns a render request into a finished SVG chart.  The
pipeline is fixed: resolve the request, let the output governor drop
expensive layers, fetch candles and indicator series through the
provider adapter, size the shared scale from every enabled layer, draw
the layers back to front, then hand the markup to the governor for
placement.

Layers are stacked in this order: price zones, date ranges, cloud,
bands, price (candles or close line), moving averages, annotations.
Axes sit outside the plot clip; the legend is optional.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import CHROME_COLORS, RenderConfig
from ..errors import ChartError
from ..log import get_logger
from ..models import (
    ChartData,
    ChartMeta,
    ChartResult,
    DateRange,
    RenderRequest,
    fail_result,
    format_pair,
    ok_result,
)
from ..output.governor import plan_layers, place_artifact, placement_summary
from ..output.storage import timestamped_filename
from ..providers.adapter import fetch_series
from ..providers.base import DepthSource, SeriesSource
from .depth import render_depth_svg
from .geometry import build_scale
from .layers import (
    LayerContext,
    annotation_layer,
    axes_layer,
    band_layer,
    candlestick_layer,
    close_line_layer,
    cloud_layer,
    enabled_samples,
    legend_entries,
    legend_layer,
    moving_average_layer,
    range_layer,
    zone_layer,
)
from .svg import Group, SvgDocument, minify

logger = get_logger("charts.renderer")

RequestLike = Union[RenderRequest, Mapping[str, Any], None]

# Clip path id shared by the document and the plot group
PLOT_CLIP_ID = "plotArea"


def resolve_request(args: RequestLike) -> RenderRequest:
    """Validate ``args`` into a :class:`RenderRequest`.

    ``None`` and an empty mapping both yield the default request.

    Raises
    ------
    ChartError
        ``user`` when a field is out of range or has the wrong type.
    """
    if isinstance(args, RenderRequest):
        return args
    try:
        raw = dict(args or {})
    except (TypeError, ValueError) as exc:
        raise ChartError(f"invalid chart request: expected a mapping, got {type(args).__name__}", "user") from exc
    try:
        return RenderRequest.model_validate(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}" for err in exc.errors()
        )
        raise ChartError(f"invalid chart request: {problems}", "user") from exc


def _render_candles(
    request: RenderRequest,
    source: SeriesSource,
    config: RenderConfig,
    now: Optional[datetime],
) -> ChartResult:
    plan = plan_layers(request, config)
    req = plan.request
    bundle = fetch_series(
        source,
        req.pair,
        req.type,
        req.limit,
        with_cloud=req.with_ichimoku,
        cloud_shift=config.cloud_shift,
    )
    display = bundle.display_candles
    if not display:
        raise ChartError("No candle data available to render SVG chart.", "user")

    total_slots = len(display) + bundle.forward_shift
    padding = config.tight_padding if req.view_box_tight else config.loose_padding
    scale = build_scale(
        enabled_samples(req, bundle, total_slots),
        len(display),
        bundle.forward_shift,
        config,
        padding,
        y_padding_pct=req.y_padding_pct,
        precision=req.svg_precision,
    )
    ctx = LayerContext(request=req, bundle=bundle, scale=scale)
    legend, items = legend_entries(req)

    plot = Group(cls="plot-area", clip_path=PLOT_CLIP_ID)
    plot.extend(zone_layer(ctx))
    plot.extend(range_layer(ctx))
    plot.extend(cloud_layer(ctx))
    plot.extend(band_layer(ctx))
    plot.extend(close_line_layer(ctx) if req.style == "line" else candlestick_layer(ctx))
    plot.extend(moving_average_layer(ctx))
    plot.extend(annotation_layer(ctx))

    label = f"{format_pair(req.pair)} {req.type} chart"
    doc = SvgDocument(
        width=config.width,
        height=config.height,
        title=label,
        background=CHROME_COLORS["background"],
        text_color=CHROME_COLORS["text"],
        clip=(scale.left, scale.top, round(scale.plot_w, scale.precision), round(scale.plot_h, scale.precision)),
    )
    doc.add(*axes_layer(ctx))
    doc.add(plot)
    if req.with_legend:
        doc.add(*legend_layer(ctx, items))

    markup = doc.serialize()
    if req.svg_minify:
        markup = minify(markup)

    suffix = "_cloud" if req.with_ichimoku else ""
    filename = timestamped_filename("chart", req.pair, req.type, suffix, now)
    placement = place_artifact(markup, req, config, filename)
    if ctx.skipped:
        logger.info("skipped %d overlay(s) for %s %s", len(ctx.skipped), req.pair, req.type)

    render_notes = plan.notes + bundle.notes
    notes = render_notes + placement.notes
    data = ChartData(svg=placement.svg, file_path=placement.file_path, url=placement.url, legend=legend)
    meta = ChartMeta(
        pair=req.pair,
        type=req.type,
        limit=request.limit,
        indicators=list(legend),
        bb_mode=req.bb_mode,
        range=DateRange(start=display[0].iso_time, end=display[-1].iso_time),
        size_bytes=placement.size_bytes,
        layer_count=plan.estimated_layers,
        truncated=placement.truncated,
        fallback=notes[0] if notes else None,
        skipped_overlays=list(ctx.skipped),
    )
    return ok_result(placement_summary(label, placement, render_notes), data, meta)


def render_chart_svg(
    args: RequestLike,
    source: Optional[SeriesSource] = None,
    depth_source: Optional[DepthSource] = None,
    config: Optional[RenderConfig] = None,
    now: Optional[datetime] = None,
) -> ChartResult:
    """Render a chart described by ``args`` and return a result envelope.

    Parameters
    ----------
    args : RenderRequest or mapping or None
        Render request.  Mappings are validated; unknown styles fall back
        to candlesticks and legacy mode names are normalised.
    source : SeriesSource, optional
        Candle and indicator source.  Required unless ``style="depth"``.
    depth_source : DepthSource, optional
        Order-book source.  Required when ``style="depth"``.
    config : RenderConfig, optional
        Canvas and output settings; defaults to :class:`RenderConfig`.
    now : datetime, optional
        Clock override used for generated file names.

    Returns
    -------
    ChartResult
        ``ok=True`` with the inline markup and/or the saved file path, or
        ``ok=False`` with ``meta.error_type`` set.  Nothing is raised.
    """
    config = config or RenderConfig()
    try:
        request = resolve_request(args)
    except ChartError as exc:
        raw = args if isinstance(args, Mapping) else {}
        return fail_result(exc.message, exc.kind, str(raw.get("pair") or ""), str(raw.get("type") or ""))

    if request.style == "depth":
        if depth_source is None:
            return fail_result("depth style requires an order book source", "user", request.pair, "depth")
        return render_depth_svg(request, depth_source, config, now)
    if source is None:
        return fail_result("candle style requires a series source", "user", request.pair, request.type)

    try:
        return _render_candles(request, source, config, now)
    except ChartError as exc:
        logger.warning("chart render failed for %s %s: [%s] %s", request.pair, request.type, exc.kind, exc.message)
        return fail_result(exc.message, exc.kind, request.pair, request.type)
    except Exception as exc:
        logger.exception("unexpected failure rendering %s %s", request.pair, request.type)
        return fail_result(str(exc) or "failed to render chart", "internal", request.pair, request.type)

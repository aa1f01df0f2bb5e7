"""Output Governor.

Two decisions are made per request.  Before any data is fetched,
:func:`plan_layers` estimates the drawing cost from the visible candle
count and the enabled layers, and drops layers from heavy requests.
After rendering, :func:`place_artifact` measures the markup and decides
whether it is delivered inline, saved to a file, or both.

Placement rules, in order:

1. ``prefer_file``: always save to ``output_dir`` and return only the
   path.  A failed write is a terminal ``io`` error.
2. Size within ``max_svg_bytes``: with ``auto_save``, save to
   ``autosave_dir``, then ``output_dir``, then give up and deliver
   inline; without it, deliver inline.
3. Size over ``max_svg_bytes``: save to ``output_dir`` and mark the
   result truncated.  If that write fails, deliver inline anyway.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import RenderConfig
from ..errors import ChartError
from ..log import get_logger
from ..models import RenderRequest
from ..charts.svg import size_bytes
from .storage import named_filename, write_artifact

logger = get_logger("output.governor")

DEGRADE_NOTE = "heavy chart detected; fell back to candles-only to avoid oversized SVG"


@dataclass(frozen=True)
class LayerPlan:
    """Request after degradation plus the bookkeeping that led to it."""

    request: RenderRequest
    estimated_layers: int
    notes: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.notes)


def estimate_layers(request: RenderRequest) -> int:
    """Estimated number of drawn layers, the price layer included."""
    cloud = 1 if request.with_ichimoku else 0
    bands = request.band_count if request.with_bb else 0
    return cloud + bands + len(request.with_sma) + 1


def plan_layers(request: RenderRequest, config: RenderConfig) -> LayerPlan:
    """Drop expensive layers when the request is estimated to be too heavy.

    When ``limit * estimated_layers`` exceeds ``degrade_threshold``,
    bands and moving averages are disabled.  If the cloud indicator is
    still on and ``limit * (1 + band_count)`` exceeds
    ``cloud_degrade_threshold``, the cloud is disabled too.
    """
    estimated = estimate_layers(request)
    if request.limit * estimated <= config.degrade_threshold:
        return LayerPlan(request=request, estimated_layers=estimated)
    if not (request.with_bb or request.with_sma or request.with_ichimoku):
        return LayerPlan(request=request, estimated_layers=estimated)
    changes = {"with_bb": False, "with_sma": []}
    if request.with_ichimoku and request.limit * (1 + request.band_count) > config.cloud_degrade_threshold:
        changes["with_ichimoku"] = False
    degraded = request.model_copy(update=changes)
    logger.info(
        "degraded %s %s (limit=%d, estimated layers=%d): %s",
        request.pair,
        request.type,
        request.limit,
        estimated,
        ", ".join(sorted(changes)),
    )
    return LayerPlan(request=degraded, estimated_layers=estimate_layers(degraded), notes=[DEGRADE_NOTE])


@dataclass(frozen=True)
class Placement:
    """Where the rendered markup ended up."""

    svg: Optional[str]
    file_path: Optional[str]
    size_bytes: int
    truncated: bool = False
    notes: List[str] = field(default_factory=list)

    @property
    def url(self) -> Optional[str]:
        if self.file_path is None:
            return None
        return Path(self.file_path).resolve().as_uri()


def place_artifact(
    markup: str,
    request: RenderRequest,
    config: RenderConfig,
    filename: str,
) -> Placement:
    """Decide how ``markup`` is delivered and perform any file writes.

    Args:
        markup: Final (already minified, if requested) SVG text.
        request: The resolved request; supplies the placement knobs.
        config: Supplies the output directories.
        filename: Generated artifact name for mandatory writes.

    Raises:
        ChartError: ``io`` when ``prefer_file`` is set and the write fails.
    """
    size = size_bytes(markup)
    if request.prefer_file:
        try:
            path = write_artifact(config.output_dir, filename, markup)
        except OSError as exc:
            raise ChartError(f"failed to save SVG to {config.output_dir}: {exc}", "io") from exc
        return Placement(svg=None, file_path=str(path), size_bytes=size)

    if size <= request.max_svg_bytes:
        if not request.auto_save:
            return Placement(svg=markup, file_path=None, size_bytes=size)
        try:
            name = named_filename(request.output_name) if request.output_name else filename
        except ValueError as exc:
            raise ChartError(str(exc), "user") from exc
        notes: List[str] = []
        for directory in (config.autosave_dir, config.output_dir):
            try:
                path = write_artifact(directory, name, markup)
            except OSError as exc:
                logger.warning("auto-save to %s failed: %s", directory, exc)
                notes.append(f"auto-save to {directory} failed")
                continue
            return Placement(svg=markup, file_path=str(path), size_bytes=size, notes=notes)
        notes.append("auto-save failed; delivered inline")
        return Placement(svg=markup, file_path=None, size_bytes=size, notes=notes)

    try:
        path = write_artifact(config.output_dir, filename, markup)
    except OSError as exc:
        logger.warning(
            "SVG of %d bytes exceeds %d but could not be saved to %s (%s); delivering inline",
            size,
            request.max_svg_bytes,
            config.output_dir,
            exc,
        )
        return Placement(
            svg=markup,
            file_path=None,
            size_bytes=size,
            notes=["size limit exceeded and file save failed; delivered inline"],
        )
    return Placement(
        svg=None,
        file_path=str(path),
        size_bytes=size,
        truncated=True,
        notes=[f"SVG is {size} bytes (limit {request.max_svg_bytes}); saved to file only"],
    )


def placement_summary(label: str, placement: Placement, notes: List[str]) -> str:
    """Human readable one-line summary of a placement."""
    if placement.file_path and placement.svg is None:
        summary = f"{label} saved to {placement.file_path}"
    elif placement.file_path:
        summary = f"{label} rendered and saved to {placement.file_path}"
    else:
        summary = f"{label} rendered (inline SVG)"
    all_notes = list(notes) + list(placement.notes)
    if all_notes:
        summary += f" ({'; '.join(all_notes)})"
    return summary

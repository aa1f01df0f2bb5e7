"""Static configuration for the chart engine.

The engine never consults process-wide mutable state.  Canvas size,
paddings, thresholds and output locations live in an immutable
:class:`RenderConfig` that callers pass into each render call.  Colour
palettes are read-only module constants.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

# Supported candle period types
CANDLE_TYPES: Tuple[str, ...] = (
    "1min",
    "5min",
    "15min",
    "30min",
    "1hour",
    "4hour",
    "8hour",
    "12hour",
    "1day",
    "1week",
    "1month",
)

# Moving-average colours keyed by period.  Periods outside this palette
# are accepted in requests but render nothing.
SMA_COLORS: Mapping[int, str] = MappingProxyType(
    {
        5: "#f472b6",
        20: "#a78bfa",
        25: "#3b82f6",
        50: "#22d3ee",
        75: "#f59e0b",
        200: "#10b981",
    }
)

BAND_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "fill": "rgba(59, 130, 246, 0.10)",
        "line1": "#9ca3af",
        "line2": "#3b82f6",
        "line3": "#f59e0b",
        "middle": "#9ca3af",
    }
)

CLOUD_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "bullish_fill": "rgba(16, 163, 74, 0.16)",
        "bearish_fill": "rgba(239, 68, 68, 0.24)",
        "tenkan": "#00a3ff",
        "kijun": "#ff4d4d",
        "span_a": "#16a34a",
        "span_b": "#ef4444",
        "chikou": "#16a34a",
    }
)

PRICE_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "up": "#16a34a",
        "down": "#ef4444",
        "wick": "#9ca3af",
        "line": "#e5e7eb",
    }
)

DEPTH_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "bid": "#10b981",
        "ask": "#f97316",
        "bid_fill": "rgba(16, 185, 129, 0.12)",
        "ask_fill": "rgba(249, 115, 22, 0.12)",
        "mid": "#9ca3af",
    }
)

OVERLAY_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "range": "rgba(250, 204, 21, 0.12)",
        "zone": "rgba(167, 139, 250, 0.14)",
        "annotation": "#facc15",
    }
)

CHROME_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "background": "#1f2937",
        "axis": "#4b5563",
        "text": "#e5e7eb",
    }
)


@dataclass(frozen=True)
class Padding:
    """Fixed paddings around the plotting area (left is computed per chart)."""

    top: float
    right: float
    bottom: float


@dataclass(frozen=True)
class RenderConfig:
    """Immutable engine configuration.

    Attributes
    ----------
    width, height : int
        Canvas size in pixels.
    tight_padding, loose_padding : Padding
        Paddings used when the request asks for a tight viewport or not.
    tick_count : int
        Target number of Y-axis ticks.
    label_char_px, label_margin_px : int
        Approximate glyph width and margin used to size the left padding
        from the widest tick label.
    degrade_threshold : int
        ``visible * estimated_layers`` above which bands and moving
        averages are dropped.
    cloud_degrade_threshold : int
        ``visible * (1 + band_count)`` above which the cloud indicator is
        dropped as well.
    cloud_shift : int
        Forward shift width of the cloud indicator; also the extra number
        of rows fetched when the cloud is enabled.
    output_dir : str
        Directory for mandatory artifact writes; secondary auto-save target.
    autosave_dir : str
        Primary auto-save directory.
    """

    width: int = 860
    height: int = 420
    tight_padding: Padding = field(default_factory=lambda: Padding(36, 12, 32))
    loose_padding: Padding = field(default_factory=lambda: Padding(48, 16, 40))
    tick_count: int = 6
    label_char_px: int = 8
    label_margin_px: int = 16
    degrade_threshold: int = 500
    cloud_degrade_threshold: int = 800
    cloud_shift: int = 26
    output_dir: str = "assets"
    autosave_dir: str = "outputs"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def load_config() -> RenderConfig:
    """Build a :class:`RenderConfig` from environment overrides.

    Recognised variables are ``SVGCHART_OUTPUT_DIR``,
    ``SVGCHART_AUTOSAVE_DIR``, ``SVGCHART_WIDTH`` and ``SVGCHART_HEIGHT``.
    Unset variables fall back to the dataclass defaults.
    """
    defaults = RenderConfig()
    return RenderConfig(
        width=_env_int("SVGCHART_WIDTH", defaults.width),
        height=_env_int("SVGCHART_HEIGHT", defaults.height),
        output_dir=os.getenv("SVGCHART_OUTPUT_DIR") or defaults.output_dir,
        autosave_dir=os.getenv("SVGCHART_AUTOSAVE_DIR") or defaults.autosave_dir,
    )

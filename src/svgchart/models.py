"""Pydantic models for chart requests and results.

These classes define the validated request bundle accepted by the
renderers, the candle and order-book inputs they consume, and the
result envelope they return.  Requests are resolved once, up front:
legacy mode names are normalised and unknown styles fall back to
candlesticks, so drawing code never probes optional fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import CANDLE_TYPES

ChartStyle = Literal["candles", "line", "depth"]
BandMode = Literal["default", "extended"]
CloudMode = Literal["default", "extended"]

# Legacy mode names accepted for backwards compatibility
_MODE_ALIASES: Dict[str, str] = {
    "light": "default",
    "default": "default",
    "full": "extended",
    "extended": "extended",
}


def normalize_mode(value: Any) -> str:
    """Map a mode name (including ``light``/``full``) onto default/extended."""
    return _MODE_ALIASES.get(str(value or "").strip().lower(), "default")


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive is assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO string, epoch milliseconds or datetime into UTC.

    Returns ``None`` when the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return to_utc(datetime.fromisoformat(s))
        except ValueError:
            return None
    return None


class Candle(BaseModel):
    """A single OHLCV sample.

    Attributes:
        time: Period open time, always timezone aware (UTC).
        open: Opening price.
        high: Highest price.
        low: Lowest price.
        close: Closing price.
        volume: Traded volume.
    """

    model_config = ConfigDict(frozen=True)

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, v: Any) -> datetime:
        ts = parse_timestamp(v)
        if ts is None:
            raise ValueError(f"unparseable candle time: {v!r}")
        return ts

    @property
    def iso_time(self) -> str:
        return self.time.isoformat()


class RangeOverlay(BaseModel):
    """Highlighted span between two candle timestamps."""

    start: str
    end: str
    color: Optional[str] = None
    label: Optional[str] = None


class Annotation(BaseModel):
    """Text note pinned to the candle at ``iso_time``."""

    iso_time: str
    text: str


class PriceZone(BaseModel):
    """Horizontal price band drawn across the full plot width."""

    low: float
    high: float
    color: Optional[str] = None
    label: Optional[str] = None


class Overlays(BaseModel):
    """Optional auxiliary overlays; each list is independent and additive."""

    ranges: List[RangeOverlay] = Field(default_factory=list)
    annotations: List[Annotation] = Field(default_factory=list)
    depth_zones: List[PriceZone] = Field(default_factory=list)


class RenderRequest(BaseModel):
    """Validated configuration for one chart render.

    All fields have defaults so an empty mapping is a valid request
    (60 daily candlesticks, no indicators, inline delivery).
    """

    pair: str = "btc_jpy"
    type: str = "1day"
    limit: int = Field(default=60, ge=5, le=365)
    style: ChartStyle = "candles"
    depth_levels: int = Field(default=200, ge=10, le=500)
    with_sma: List[int] = Field(default_factory=list)
    with_bb: bool = False
    bb_mode: BandMode = "default"
    with_ichimoku: bool = False
    ichimoku_mode: CloudMode = "default"
    with_chikou: Optional[bool] = None
    with_legend: bool = False
    svg_precision: int = Field(default=1, ge=0, le=3)
    svg_minify: bool = True
    simplify_tolerance: float = Field(default=0.5, ge=0)
    view_box_tight: bool = True
    bar_width_ratio: Optional[float] = Field(default=None, ge=0.1, le=0.9)
    y_padding_pct: float = Field(default=0.03, ge=0, le=0.2)
    auto_save: bool = False
    output_name: Optional[str] = None
    max_svg_bytes: int = Field(default=100_000, ge=1024)
    prefer_file: bool = False
    overlays: Optional[Overlays] = None

    @field_validator("pair", mode="before")
    @classmethod
    def _normalize_pair(cls, v: Any) -> str:
        return str(v or "btc_jpy").strip().lower()

    @field_validator("type")
    @classmethod
    def _check_type(cls, v: str) -> str:
        if v not in CANDLE_TYPES:
            raise ValueError(f"unsupported candle type {v!r}; expected one of {', '.join(CANDLE_TYPES)}")
        return v

    @field_validator("style", mode="before")
    @classmethod
    def _fallback_style(cls, v: Any) -> str:
        s = str(v or "").strip().lower()
        return s if s in ("candles", "line", "depth") else "candles"

    @field_validator("bb_mode", "ichimoku_mode", mode="before")
    @classmethod
    def _normalize_modes(cls, v: Any) -> str:
        return normalize_mode(v)

    @property
    def band_count(self) -> int:
        """Number of band boundaries pairs drawn for the selected band mode."""
        return 3 if self.bb_mode == "extended" else 1

    @property
    def draw_chikou(self) -> bool:
        return self.ichimoku_mode == "extended" or self.with_chikou is True


class DepthSnapshot(BaseModel):
    """Best bid/ask levels as ``[price, quantity]`` pairs."""

    bids: List[List[float]] = Field(default_factory=list)
    asks: List[List[float]] = Field(default_factory=list)

    @field_validator("bids", "asks", mode="before")
    @classmethod
    def _coerce_levels(cls, v: Any) -> List[List[float]]:
        levels: List[List[float]] = []
        for level in v or []:
            if not isinstance(level, (list, tuple)) or len(level) < 2:
                raise ValueError(f"order book level must be [price, quantity], got {level!r}")
            price, qty = level[0], level[1]
            levels.append([float(price), float(qty)])
        return levels


class ChartData(BaseModel):
    """Payload of a successful render."""

    svg: Optional[str] = None
    file_path: Optional[str] = None
    url: Optional[str] = None
    legend: Dict[str, str] = Field(default_factory=dict)
    depth_summary: Optional[Dict[str, Any]] = None


class DateRange(BaseModel):
    start: str = ""
    end: str = ""


class ChartMeta(BaseModel):
    """Metadata describing what was rendered and where it went."""

    pair: str
    type: str
    limit: Optional[int] = None
    indicators: List[str] = Field(default_factory=list)
    bb_mode: Optional[BandMode] = None
    range: Optional[DateRange] = None
    size_bytes: Optional[int] = None
    layer_count: Optional[int] = None
    truncated: bool = False
    fallback: Optional[str] = None
    skipped_overlays: List[str] = Field(default_factory=list)
    error_type: Optional[str] = None


class ChartResult(BaseModel):
    """Result envelope returned by every public render call."""

    ok: bool
    summary: str
    data: ChartData = Field(default_factory=ChartData)
    meta: ChartMeta


def ok_result(summary: str, data: ChartData, meta: ChartMeta) -> ChartResult:
    return ChartResult(ok=True, summary=summary, data=data, meta=meta)


def fail_result(message: str, kind: str, pair: str = "", type: str = "") -> ChartResult:
    """Build a failure envelope; ``summary`` is prefixed with ``Error:``."""
    return ChartResult(
        ok=False,
        summary=f"Error: {message}",
        data=ChartData(),
        meta=ChartMeta(pair=pair, type=type, error_type=kind),
    )


def format_pair(pair: str) -> str:
    """Display form of a pair, e.g. ``btc_jpy`` -> ``BTC/JPY``."""
    return (pair or "").upper().replace("_", "/", 1)

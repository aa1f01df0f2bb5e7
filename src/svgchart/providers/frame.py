"""Reference sources backed by local data.

:class:`FrameSeriesSource` serves candles from a Pandas DataFrame and
computes the indicator series the renderer knows how to draw: simple
moving averages, Bollinger bands at one, two and three sigma, and the
Ichimoku components.  Computations are causal; values are aligned
one-to-one with the returned candles and ``None`` marks warmup gaps.

:class:`StaticDepthSource` serves a fixed order-book snapshot, e.g.
one loaded from a JSON file.
"""

from __future__ import annotations

import json
from datetime import timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from ..errors import ChartError
from ..models import Candle, DepthSnapshot
from .base import DepthSource, SeriesFrame, SeriesSource

SMA_PERIODS = (5, 20, 25, 50, 75, 200)
BB_PERIOD = 20
TENKAN_PERIOD = 9
KIJUN_PERIOD = 26
SENKOU_B_PERIOD = 52
ICHIMOKU_SHIFT = 26

# Rows needed before the forward-shifted Ichimoku spans are defined
ICHIMOKU_LOOKBACK = SENKOU_B_PERIOD + ICHIMOKU_SHIFT
WARMUP_ROWS = ICHIMOKU_LOOKBACK - 1

_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


def _to_dataframe(rows: Iterable[Union[dict, Candle]]) -> pd.DataFrame:
    """Normalise candle-like rows into a sorted DataFrame.

    Rows may be dictionaries or :class:`Candle` objects.  Timestamps are
    converted to timezone-aware UTC.
    """
    records: List[Dict[str, Any]] = []
    for r in rows:
        if r is None:
            continue
        if isinstance(r, Candle):
            records.append(r.model_dump())
        else:
            records.append({k: r.get(k) for k in _COLUMNS})
    df = pd.DataFrame.from_records(records, columns=_COLUMNS)
    if df.empty:
        return df
    df["time"] = pd.to_datetime(df["time"], utc=True)
    for col in ["open", "high", "low", "close", "volume"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)
    return df.sort_values("time").reset_index(drop=True)


def load_candles_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Load candles from a CSV file with time/open/high/low/close[/volume] columns."""
    raw = pd.read_csv(path)
    raw.columns = [str(c).strip().lower() for c in raw.columns]
    missing = [c for c in ["time", "open", "high", "low", "close"] if c not in raw.columns]
    if missing:
        raise ChartError(f"candle file {path} is missing columns: {', '.join(missing)}", "user")
    if "volume" not in raw.columns:
        raw["volume"] = 0.0
    return _to_dataframe(raw[_COLUMNS].to_dict("records"))


def _midpoint(df: pd.DataFrame, period: int) -> pd.Series:
    """Midpoint of the rolling high/low channel over ``period`` rows."""
    hi = df["high"].rolling(window=period, min_periods=period).max()
    lo = df["low"].rolling(window=period, min_periods=period).min()
    return (hi + lo) / 2.0


def _as_optional_list(s: pd.Series) -> List[Optional[float]]:
    """Convert a numeric series to a list with ``None`` for NaN."""
    return [None if pd.isna(v) else round(float(v), 2) for v in s.tolist()]


def compute_series(df: pd.DataFrame) -> Dict[str, List[Optional[float]]]:
    """Compute every drawable indicator series for ``df``.

    Returns:
        Mapping of indicator key to a list aligned with ``df`` rows.
        Keys: ``SMA_<p>``, ``BB<k>_upper|middle|lower`` for k = 1..3,
        the primary aliases ``BB_upper|middle|lower`` (two sigma), and
        ``ICHI_tenkan|kijun|spanA|spanB|chikou``.  The Ichimoku spans
        are unshifted; the renderer applies the forward shift.
    """
    out: Dict[str, List[Optional[float]]] = {}
    if df.empty:
        return out
    close = df["close"]
    for p in SMA_PERIODS:
        out[f"SMA_{p}"] = _as_optional_list(close.rolling(window=p, min_periods=p).mean())
    mid = close.rolling(window=BB_PERIOD, min_periods=BB_PERIOD).mean()
    # Population standard deviation, matching the usual band definition
    std = close.rolling(window=BB_PERIOD, min_periods=BB_PERIOD).std(ddof=0)
    for k in (1, 2, 3):
        out[f"BB{k}_upper"] = _as_optional_list(mid + k * std)
        out[f"BB{k}_middle"] = _as_optional_list(mid)
        out[f"BB{k}_lower"] = _as_optional_list(mid - k * std)
    out["BB_upper"] = out["BB2_upper"]
    out["BB_middle"] = out["BB2_middle"]
    out["BB_lower"] = out["BB2_lower"]
    tenkan = _midpoint(df, TENKAN_PERIOD)
    kijun = _midpoint(df, KIJUN_PERIOD)
    out["ICHI_tenkan"] = _as_optional_list(tenkan)
    out["ICHI_kijun"] = _as_optional_list(kijun)
    out["ICHI_spanA"] = _as_optional_list((tenkan + kijun) / 2.0)
    out["ICHI_spanB"] = _as_optional_list(_midpoint(df, SENKOU_B_PERIOD))
    out["ICHI_chikou"] = _as_optional_list(close)
    return out


class FrameSeriesSource(SeriesSource):
    """Serve candles and computed series from an in-memory DataFrame.

    Indicators are computed over the whole frame so the returned window
    carries properly warmed-up values; the window is the latest
    ``count + WARMUP_ROWS`` rows (or all rows when fewer exist).
    """

    def __init__(self, candles: Union[pd.DataFrame, Iterable[Union[dict, Candle]]]) -> None:
        if isinstance(candles, pd.DataFrame):
            self._df = _to_dataframe(candles.to_dict("records"))
        else:
            self._df = _to_dataframe(candles)
        self._series = compute_series(self._df)

    def fetch(self, pair: str, candle_type: str, count: int) -> SeriesFrame:
        total = len(self._df)
        if total == 0:
            return SeriesFrame(candles=[], series={}, past_buffer=0, shift=ICHIMOKU_SHIFT)
        start = max(0, total - (count + WARMUP_ROWS))
        window = self._df.iloc[start:]
        candles = [
            Candle(
                time=row["time"].to_pydatetime().astimezone(timezone.utc),
                open=row["open"],
                high=row["high"],
                low=row["low"],
                close=row["close"],
                volume=row["volume"],
            )
            for row in window.to_dict("records")
        ]
        series = {key: values[start:] for key, values in self._series.items()}
        past_buffer = max(0, len(candles) - count)
        return SeriesFrame(candles=candles, series=series, past_buffer=past_buffer, shift=ICHIMOKU_SHIFT)


class StaticDepthSource(DepthSource):
    """Serve a fixed order-book snapshot."""

    def __init__(self, snapshot: DepthSnapshot) -> None:
        self._snapshot = snapshot

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "StaticDepthSource":
        """Load ``{"bids": [[price, qty], ...], "asks": [...]}`` from ``path``."""
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return cls(DepthSnapshot.model_validate(payload))

    def fetch_depth(self, pair: str, max_levels: int) -> DepthSnapshot:
        return DepthSnapshot(
            bids=self._snapshot.bids[:max_levels],
            asks=self._snapshot.asks[:max_levels],
        )

"""Tests for the candle chart renderer."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from svgchart import render_chart_svg
from svgchart.config import RenderConfig
from svgchart.errors import ChartError
from svgchart.models import Candle
from svgchart.providers.base import SeriesFrame, SeriesSource
from svgchart.providers.frame import FrameSeriesSource

NS = "{http://www.w3.org/2000/svg}"
BASE = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _candles(count: int) -> List[Candle]:
    """Deterministic daily candles alternating up and down."""
    out = []
    for i in range(count):
        close = 100.0 + (i % 7) * 2.0
        open_ = close - 1.0 if i % 2 else close + 1.0
        out.append(
            Candle(
                time=BASE + timedelta(days=i),
                open=open_,
                high=max(open_, close) + 2.0,
                low=min(open_, close) - 2.0,
                close=close,
                volume=10.0,
            )
        )
    return out


class FakeSource(SeriesSource):
    """In-memory source returning the latest ``count`` rows."""

    def __init__(
        self,
        candles: List[Candle],
        series: Optional[Dict[str, list]] = None,
        past_buffer: int = 0,
        shift: int = 26,
        error: Optional[Exception] = None,
    ) -> None:
        self.candles = candles
        self.series = series or {}
        self.past_buffer = past_buffer
        self.shift = shift
        self.error = error
        self.requested: List[int] = []

    def fetch(self, pair: str, candle_type: str, count: int) -> SeriesFrame:
        self.requested.append(count)
        if self.error is not None:
            raise self.error
        rows = self.candles[-count:]
        start = len(self.candles) - len(rows)
        series = {k: v[start:] for k, v in self.series.items()}
        return SeriesFrame(candles=rows, series=series, past_buffer=self.past_buffer, shift=self.shift)


def _config(tmp_path: Path) -> RenderConfig:
    return RenderConfig(output_dir=str(tmp_path / "assets"), autosave_dir=str(tmp_path / "outputs"))


def _groups(svg: str, cls: str) -> List[ET.Element]:
    root = ET.fromstring(svg)
    return [g for g in root.iter(f"{NS}g") if g.get("class") == cls]


def test_default_candles_render_inline(tmp_path) -> None:
    candles = _candles(60)
    result = render_chart_svg({}, FakeSource(candles), config=_config(tmp_path))
    assert result.ok, result.summary
    assert result.data.svg is not None
    assert result.data.file_path is None
    assert result.meta.layer_count == 1
    assert result.meta.truncated is False
    assert result.meta.range.start == candles[0].iso_time
    assert result.meta.range.end == candles[-1].iso_time
    assert result.meta.size_bytes == len(result.data.svg.encode("utf-8"))
    bodies = _groups(result.data.svg, "bodies")
    assert len(bodies) == 1
    assert len(bodies[0].findall(f"{NS}rect")) == 60
    # Minified output has no whitespace between tags
    assert ">\n<" not in result.data.svg


def test_unminified_output_keeps_newlines(tmp_path) -> None:
    result = render_chart_svg({"svg_minify": False}, FakeSource(_candles(20)), config=_config(tmp_path))
    assert result.ok
    assert "\n" in result.data.svg


def test_line_style_draws_close_path(tmp_path) -> None:
    result = render_chart_svg({"style": "line", "limit": 30}, FakeSource(_candles(30)), config=_config(tmp_path))
    assert result.ok
    line = _groups(result.data.svg, "price-line")
    assert len(line) == 1
    assert len(line[0].findall(f"{NS}path")) == 1
    assert _groups(result.data.svg, "bodies") == []


def test_unknown_style_falls_back_to_candles(tmp_path) -> None:
    result = render_chart_svg({"style": "renko", "limit": 20}, FakeSource(_candles(20)), config=_config(tmp_path))
    assert result.ok
    assert len(_groups(result.data.svg, "bodies")) == 1


def test_leading_buffer_is_not_displayed(tmp_path) -> None:
    candles = _candles(70)
    result = render_chart_svg({"limit": 60}, FakeSource(candles, past_buffer=10), config=_config(tmp_path))
    assert result.ok
    assert result.meta.range.start == candles[10].iso_time
    bodies = _groups(result.data.svg, "bodies")[0]
    assert len(bodies.findall(f"{NS}rect")) == 60


def test_moving_average_and_legend(tmp_path) -> None:
    candles = _candles(40)
    series = {"SMA_25": [None] * 24 + [101.0 + (i % 3) for i in range(16)]}
    result = render_chart_svg(
        {"limit": 40, "with_sma": [25, 13], "with_legend": True},
        FakeSource(candles, series),
        config=_config(tmp_path),
    )
    assert result.ok
    assert result.data.legend == {"SMA_25": "SMA 25 (#3b82f6)"}
    assert result.meta.indicators == ["SMA_25"]
    sma = _groups(result.data.svg, "sma")
    assert len(sma[0].findall(f"{NS}path")) == 1
    assert len(_groups(result.data.svg, "legend")) == 1


def test_missing_band_series_render_nothing(tmp_path) -> None:
    result = render_chart_svg({"limit": 20, "with_bb": True}, FakeSource(_candles(20)), config=_config(tmp_path))
    assert result.ok
    bands = _groups(result.data.svg, "bands")
    assert bands and bands[0].findall(f"{NS}path") == []
    assert result.data.legend == {"BB": "Bollinger Bands (±2σ)"}


def _cloud_series(total: int) -> Dict[str, list]:
    span_a = [100.0 + (3.0 if (i // 10) % 2 else -3.0) for i in range(total)]
    span_b = [100.0] * total
    return {
        "ICHI_tenkan": [101.0] * total,
        "ICHI_kijun": [99.0] * total,
        "ICHI_spanA": span_a,
        "ICHI_spanB": span_b,
        "ICHI_chikou": [102.0] * total,
    }


def test_cloud_requests_shift_buffer_and_reserves_slots(tmp_path) -> None:
    candles = _candles(86)
    source = FakeSource(candles, _cloud_series(86))
    result = render_chart_svg(
        {"limit": 60, "with_ichimoku": True, "prefer_file": True},
        source,
        config=_config(tmp_path),
    )
    assert result.ok, result.summary
    assert source.requested == [86]
    assert result.meta.layer_count == 2
    assert result.meta.range.start == candles[26].iso_time
    assert result.data.svg is None
    assert result.data.file_path.endswith("_cloud.svg")
    svg = Path(result.data.file_path).read_text(encoding="utf-8")
    cloud = _groups(svg, "cloud")
    assert len(cloud) == 1
    fills = [p for p in cloud[0].findall(f"{NS}path") if p.get("stroke") == "none"]
    assert len(fills) == 2
    assert len(_groups(svg, "bodies")[0].findall(f"{NS}rect")) == 60


def test_cloud_on_short_history_keeps_date_range(tmp_path) -> None:
    candles = _candles(40)
    plain = render_chart_svg({"limit": 30}, FrameSeriesSource(candles), config=_config(tmp_path))
    cloud = render_chart_svg({"limit": 30, "with_ichimoku": True}, FrameSeriesSource(candles), config=_config(tmp_path))
    assert plain.ok and cloud.ok, cloud.summary
    assert plain.meta.range == cloud.meta.range
    assert cloud.meta.range.start == candles[10].iso_time
    assert len(_groups(cloud.data.svg, "bodies")[0].findall(f"{NS}rect")) == 30
    assert plain.meta.fallback is None
    assert "short history" in cloud.meta.fallback


def test_cloud_on_tiny_history_still_renders(tmp_path) -> None:
    result = render_chart_svg(
        {"limit": 5, "with_ichimoku": True},
        FrameSeriesSource(_candles(6)),
        config=_config(tmp_path),
    )
    assert result.ok, result.summary
    assert len(_groups(result.data.svg, "bodies")[0].findall(f"{NS}rect")) == 5


def test_extended_cloud_draws_trailing_line(tmp_path) -> None:
    base = render_chart_svg(
        {"limit": 60, "with_ichimoku": True},
        FakeSource(_candles(86), _cloud_series(86)),
        config=_config(tmp_path),
    )
    extended = render_chart_svg(
        {"limit": 60, "with_ichimoku": True, "ichimoku_mode": "full"},
        FakeSource(_candles(86), _cloud_series(86)),
        config=_config(tmp_path),
    )
    count = lambda r: len(_groups(r.data.svg, "cloud")[0].findall(f"{NS}path"))
    assert count(extended) == count(base) + 1


def test_heavy_request_reports_fallback(tmp_path) -> None:
    result = render_chart_svg(
        {"limit": 200, "with_sma": [25, 75], "with_bb": True},
        FakeSource(_candles(200)),
        config=_config(tmp_path),
    )
    assert result.ok
    assert result.meta.layer_count == 1
    assert result.meta.fallback is not None
    assert "heavy chart" in result.meta.fallback
    assert result.data.legend == {}
    assert result.meta.limit == 200


def test_overlays_and_skipped_items(tmp_path) -> None:
    candles = _candles(30)
    overlays = {
        "ranges": [
            {"start": candles[3].iso_time, "end": candles[8].iso_time, "label": "rally"},
            {"start": "2030-01-01T00:00:00Z", "end": candles[8].iso_time},
        ],
        "annotations": [{"iso_time": candles[5].iso_time.replace("+00:00", "Z"), "text": "news"}],
        "depth_zones": [{"low": 101.0, "high": 104.0, "label": "support"}],
    }
    result = render_chart_svg({"limit": 30, "overlays": overlays}, FakeSource(candles), config=_config(tmp_path))
    assert result.ok
    assert len(result.meta.skipped_overlays) == 1
    assert "2030" in result.meta.skipped_overlays[0]
    assert len(_groups(result.data.svg, "ranges")[0].findall(f"{NS}rect")) == 1
    assert len(_groups(result.data.svg, "annotations")[0].findall(f"{NS}circle")) == 1
    assert len(_groups(result.data.svg, "zones")[0].findall(f"{NS}rect")) == 1


def test_upstream_error_is_forwarded(tmp_path) -> None:
    source = FakeSource([], error=ChartError("Error: upstream timeout", "upstream"))
    result = render_chart_svg({}, source, config=_config(tmp_path))
    assert not result.ok
    assert result.summary == "Error: upstream timeout"
    assert result.meta.error_type == "upstream"


def test_empty_source_is_data_error(tmp_path) -> None:
    result = render_chart_svg({}, FakeSource([]), config=_config(tmp_path))
    assert not result.ok
    assert result.meta.error_type == "data"


def test_nothing_displayable_is_user_error(tmp_path) -> None:
    result = render_chart_svg({"limit": 10}, FakeSource(_candles(10), past_buffer=10), config=_config(tmp_path))
    assert not result.ok
    assert result.summary == "Error: No candle data available to render SVG chart."
    assert result.meta.error_type == "user"


def test_unexpected_exception_is_internal(tmp_path) -> None:
    result = render_chart_svg({}, FakeSource([], error=RuntimeError("boom")), config=_config(tmp_path))
    assert not result.ok
    assert result.summary == "Error: boom"
    assert result.meta.error_type == "internal"


def test_invalid_request_is_user_error(tmp_path) -> None:
    result = render_chart_svg({"limit": 1000, "pair": "eth_jpy"}, FakeSource(_candles(10)), config=_config(tmp_path))
    assert not result.ok
    assert result.meta.error_type == "user"
    assert result.meta.pair == "eth_jpy"
    assert "limit" in result.summary


@pytest.mark.parametrize("args", [42, "limit=30", [1, 2, 3]])
def test_non_mapping_request_is_user_error(tmp_path, args) -> None:
    result = render_chart_svg(args, FakeSource(_candles(10)), config=_config(tmp_path))
    assert not result.ok
    assert result.meta.error_type == "user"
    assert "expected a mapping" in result.summary


def test_oversized_chart_is_saved_and_marked_truncated(tmp_path) -> None:
    result = render_chart_svg(
        {"limit": 200, "max_svg_bytes": 1024},
        FakeSource(_candles(200)),
        config=_config(tmp_path),
    )
    assert result.ok
    assert result.meta.truncated is True
    assert result.data.svg is None
    assert Path(result.data.file_path).is_file()

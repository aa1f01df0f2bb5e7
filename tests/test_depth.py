"""Tests for the order-book depth renderer."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path

from svgchart import render_chart_svg, render_depth_svg
from svgchart.charts.depth import cumulative_steps, depth_summary
from svgchart.config import RenderConfig
from svgchart.errors import ChartError
from svgchart.models import DepthSnapshot, RenderRequest
from svgchart.providers.base import DepthSource
from svgchart.providers.frame import StaticDepthSource

NS = "{http://www.w3.org/2000/svg}"
NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _book() -> DepthSnapshot:
    return DepthSnapshot(
        bids=[[98.0, 2.0], [99.0, 1.0], [97.0, 3.0]],
        asks=[[102.0, 1.0], [101.0, 1.0], [110.0, 4.0]],
    )


def _config(tmp_path: Path) -> RenderConfig:
    return RenderConfig(output_dir=str(tmp_path / "assets"), autosave_dir=str(tmp_path / "outputs"))


class FailingDepthSource(DepthSource):
    def fetch_depth(self, pair: str, max_levels: int) -> DepthSnapshot:
        raise ChartError("Error: book unavailable", "data")


def test_cumulative_steps_accumulate_in_order() -> None:
    assert cumulative_steps([(99.0, 1.0), (98.0, 2.0), (97.0, 3.0)]) == [(99.0, 1.0), (98.0, 3.0), (97.0, 6.0)]


def test_depth_summary_near_band() -> None:
    bids = [(99.0, 1.0), (98.0, 2.0)]
    asks = [(101.0, 1.5), (102.0, 4.0)]
    summary = depth_summary(bids, asks, 100.0, NOW)
    assert summary["best_bid"] == 99
    assert summary["best_ask"] == 101
    assert summary["bid_depth"] == 1.0
    assert summary["ask_depth"] == 1.5
    assert summary["ratio"] == 0.67
    assert summary["timestamp"] == NOW.isoformat()


def test_depth_chart_markup(tmp_path) -> None:
    result = render_depth_svg(RenderRequest(style="depth"), StaticDepthSource(_book()), _config(tmp_path), NOW)
    assert result.ok, result.summary
    assert result.meta.type == "depth"
    summary = result.data.depth_summary
    assert summary["current_price"] == 100
    assert summary["ratio"] == 1.0
    root = ET.fromstring(result.data.svg)
    steps = [g for g in root.iter(f"{NS}g") if g.get("class") == "depth-steps"]
    assert len(steps) == 1
    assert [p.get("class") for p in steps[0].findall(f"{NS}path")] == ["bids", "asks"]
    mid = [line for line in root.iter(f"{NS}line") if line.get("class") == "mid-price"]
    assert len(mid) == 1
    assert mid[0].get("stroke-dasharray")
    texts = "".join(t.text or "" for t in root.iter(f"{NS}text"))
    assert "BTC/JPY" in texts
    assert "2025-01-01 12:00:00 UTC" in texts


def test_bid_staircase_starts_at_zero_quantity(tmp_path) -> None:
    result = render_depth_svg(
        RenderRequest(style="depth", svg_minify=False),
        StaticDepthSource(_book()),
        _config(tmp_path),
        NOW,
    )
    root = ET.fromstring(result.data.svg)
    bids = [p for p in root.iter(f"{NS}path") if p.get("class") == "bids"][0]
    coords = [tuple(float(v) for v in c.split(",")) for c in bids.get("d").replace("M ", "").split(" L ")]
    # First point sits on the baseline, quantities only grow
    ys = [y for _, y in coords]
    assert ys[0] == max(ys)
    assert all(a >= b for a, b in zip(ys, ys[1:]))
    # Bids walk away from the mid price
    xs = [x for x, _ in coords]
    assert all(a >= b for a, b in zip(xs, xs[1:]))


def test_one_sided_book_has_no_ratio(tmp_path) -> None:
    book = DepthSnapshot(bids=[[99.0, 1.0], [98.0, 1.0]], asks=[])
    result = render_depth_svg(RenderRequest(style="depth"), StaticDepthSource(book), _config(tmp_path), NOW)
    assert result.ok
    assert result.data.depth_summary["ratio"] is None
    assert result.data.depth_summary["best_ask"] is None


def test_empty_book_is_user_error(tmp_path) -> None:
    result = render_depth_svg(RenderRequest(style="depth"), StaticDepthSource(DepthSnapshot()), _config(tmp_path), NOW)
    assert not result.ok
    assert result.meta.error_type == "user"


def test_upstream_error_is_forwarded(tmp_path) -> None:
    result = render_depth_svg(RenderRequest(style="depth"), FailingDepthSource(), _config(tmp_path), NOW)
    assert not result.ok
    assert result.summary == "Error: book unavailable"
    assert result.meta.error_type == "data"


def test_depth_style_dispatch_and_placement(tmp_path) -> None:
    result = render_chart_svg(
        {"style": "depth", "prefer_file": True},
        depth_source=StaticDepthSource(_book()),
        config=_config(tmp_path),
        now=NOW,
    )
    assert result.ok
    assert result.data.svg is None
    assert Path(result.data.file_path).name == "depth-btc_jpy-1735732800000.svg"


def test_depth_style_without_book_source(tmp_path) -> None:
    result = render_chart_svg({"style": "depth"}, config=_config(tmp_path))
    assert not result.ok
    assert result.meta.error_type == "user"

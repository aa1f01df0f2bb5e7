"""Tests for request resolution, result helpers and configuration."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from svgchart.config import RenderConfig, load_config
from svgchart.models import (
    DepthSnapshot,
    RenderRequest,
    fail_result,
    format_pair,
    normalize_mode,
    parse_timestamp,
)


def test_defaults() -> None:
    req = RenderRequest()
    assert req.pair == "btc_jpy"
    assert req.type == "1day"
    assert req.limit == 60
    assert req.style == "candles"
    assert req.svg_minify is True
    assert req.band_count == 1
    assert req.draw_chikou is False


def test_unknown_style_falls_back_to_candles() -> None:
    assert RenderRequest(style="heikin").style == "candles"
    assert RenderRequest(style="LINE").style == "line"


@pytest.mark.parametrize(
    "raw, expected",
    [("light", "default"), ("full", "extended"), ("extended", "extended"), ("bogus", "default"), (None, "default")],
)
def test_mode_normalisation(raw, expected) -> None:
    assert normalize_mode(raw) == expected
    assert RenderRequest(bb_mode=raw).bb_mode == expected


def test_extended_modes() -> None:
    req = RenderRequest(bb_mode="full", ichimoku_mode="full")
    assert req.band_count == 3
    assert req.draw_chikou is True
    assert RenderRequest(with_chikou=True).draw_chikou is True


def test_pair_is_lowercased() -> None:
    assert RenderRequest(pair=" ETH_JPY ").pair == "eth_jpy"


@pytest.mark.parametrize(
    "field, value",
    [("type", "2day"), ("limit", 4), ("limit", 366), ("svg_precision", 4), ("max_svg_bytes", 10), ("y_padding_pct", 0.5)],
)
def test_out_of_range_fields_rejected(field, value) -> None:
    with pytest.raises(ValidationError):
        RenderRequest(**{field: value})


def test_parse_timestamp_variants() -> None:
    expected = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2025-01-01T00:00:00Z") == expected
    assert parse_timestamp(1735689600000) == expected
    assert parse_timestamp(datetime(2025, 1, 1)) == expected
    assert parse_timestamp("yesterday") is None


def test_fail_result_shape() -> None:
    result = fail_result("nothing to draw", "user", "btc_jpy", "1day")
    assert result.ok is False
    assert result.summary == "Error: nothing to draw"
    assert result.meta.error_type == "user"
    assert result.data.svg is None


def test_format_pair() -> None:
    assert format_pair("btc_jpy") == "BTC/JPY"


def test_load_config_env_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SVGCHART_OUTPUT_DIR", str(tmp_path / "a"))
    monkeypatch.setenv("SVGCHART_WIDTH", "1200")
    monkeypatch.delenv("SVGCHART_AUTOSAVE_DIR", raising=False)
    monkeypatch.delenv("SVGCHART_HEIGHT", raising=False)
    config = load_config()
    assert config.output_dir == str(tmp_path / "a")
    assert config.autosave_dir == "outputs"
    assert config.width == 1200
    assert config.height == 420


def test_load_config_rejects_bad_int(monkeypatch) -> None:
    monkeypatch.setenv("SVGCHART_HEIGHT", "tall")
    with pytest.raises(ValueError):
        load_config()


def test_config_is_immutable() -> None:
    config = RenderConfig()
    with pytest.raises(Exception):
        config.width = 10  # type: ignore[misc]


def test_depth_levels_are_coerced() -> None:
    snapshot = DepthSnapshot.model_validate({"bids": [["100", 2]], "asks": [(101.5, "0.25")]})
    assert snapshot.bids == [[100.0, 2.0]]
    assert snapshot.asks == [[101.5, 0.25]]


@pytest.mark.parametrize("level", [[99.0], [], 5.0])
def test_depth_level_needs_price_and_quantity(level) -> None:
    with pytest.raises(ValidationError):
        DepthSnapshot.model_validate({"bids": [level], "asks": []})

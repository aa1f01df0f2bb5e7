"""Command-line interface for svgchart.

This module uses the :mod:`click` library to render charts from local
files: ``render`` draws candlestick or close-line charts from a CSV of
candles, ``depth`` draws an order-book depth chart from a JSON snapshot.

Both commands print the result envelope as JSON (or, with ``--out``,
write the inline SVG to a file and print a one-line summary).  The exit
status is 0 for a successful envelope and 1 for a failure envelope.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import click

from .charts.renderer import render_chart_svg
from .config import CANDLE_TYPES, load_config
from .errors import ChartError
from .log import setup_logging
from .models import ChartResult
from .providers.frame import FrameSeriesSource, StaticDepthSource, load_candles_csv


def _parse_periods(raw: Optional[str]) -> List[int]:
    """Parse a comma separated list of moving-average periods."""
    if not raw:
        return []
    periods: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            periods.append(int(part))
        except ValueError:
            raise click.BadParameter(f"'{part}' is not an integer period", param_hint="--sma")
    return periods


def _emit(result: ChartResult, out: Optional[str]) -> None:
    """Print or write ``result`` and exit with the matching status."""
    ctx = click.get_current_context()
    if out and result.ok and result.data.svg is not None:
        out_path = Path(out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result.data.svg, encoding="utf-8")
        click.echo(f"{result.summary} -> {out_path}")
    else:
        click.echo(json.dumps(result.model_dump(), indent=2, sort_keys=True, default=str))
    ctx.exit(0 if result.ok else 1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """svgchart command-line interface."""
    setup_logging(logging.DEBUG if verbose else logging.INFO)


@cli.command()
@click.option(
    "--candles",
    "candles_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="CSV file with time,open,high,low,close[,volume] columns.",
)
@click.option("--pair", type=str, default="btc_jpy", help="Instrument identifier (default: btc_jpy).")
@click.option(
    "--type",
    "candle_type",
    type=click.Choice(CANDLE_TYPES),
    default="1day",
    help="Candle period type (default: 1day).",
)
@click.option("--limit", type=int, default=60, help="Number of candles to display (default: 60).")
@click.option(
    "--style",
    type=click.Choice(["candles", "line"]),
    default="candles",
    help="Price style (default: candles).",
)
@click.option("--sma", type=str, default=None, help="Comma-separated moving-average periods, e.g. 25,75.")
@click.option("--bb", "with_bb", is_flag=True, default=False, help="Draw volatility bands.")
@click.option(
    "--bb-mode",
    type=click.Choice(["default", "extended", "light", "full"]),
    default="default",
    help="Single (+/-2 sigma) or extended (1/2/3 sigma) bands.",
)
@click.option("--ichimoku", "with_ichimoku", is_flag=True, default=False, help="Draw the cloud indicator.")
@click.option(
    "--ichimoku-mode",
    type=click.Choice(["default", "extended", "light", "full"]),
    default="default",
    help="Cloud mode; extended also draws the trailing line.",
)
@click.option("--chikou", "with_chikou", is_flag=True, default=False, help="Draw the trailing line in default mode.")
@click.option("--legend", "with_legend", is_flag=True, default=False, help="Draw the legend.")
@click.option("--precision", type=int, default=1, help="Decimal places on coordinates, 0-3 (default: 1).")
@click.option("--no-minify", is_flag=True, default=False, help="Keep indentation in the SVG markup.")
@click.option("--simplify", type=float, default=0.5, help="Close-line simplification tolerance in px (0 disables).")
@click.option("--loose", is_flag=True, default=False, help="Use the loose padding preset.")
@click.option("--auto-save", is_flag=True, default=False, help="Also save small charts to the auto-save directory.")
@click.option("--output-name", type=str, default=None, help="File stem used for auto-save.")
@click.option("--prefer-file", is_flag=True, default=False, help="Always save to file and omit inline markup.")
@click.option("--max-bytes", type=int, default=100_000, help="Inline size limit in bytes (default: 100000).")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write the inline SVG to this file.")
def render(
    candles_path: str,
    pair: str,
    candle_type: str,
    limit: int,
    style: str,
    sma: Optional[str],
    with_bb: bool,
    bb_mode: str,
    with_ichimoku: bool,
    ichimoku_mode: str,
    with_chikou: bool,
    with_legend: bool,
    precision: int,
    no_minify: bool,
    simplify: float,
    loose: bool,
    auto_save: bool,
    output_name: Optional[str],
    prefer_file: bool,
    max_bytes: int,
    out: Optional[str],
) -> None:
    """Render a candlestick or close-line chart from a CSV of candles.

    Indicators are computed from the file itself, so the CSV should hold
    enough history before the displayed window for the requested
    moving averages and the cloud indicator to warm up.
    """
    try:
        frame = load_candles_csv(candles_path)
    except ChartError as exc:
        raise click.BadParameter(exc.message, param_hint="--candles")
    except ValueError as exc:
        raise click.BadParameter(f"could not read candles: {exc}", param_hint="--candles")
    args = {
        "pair": pair,
        "type": candle_type,
        "limit": limit,
        "style": style,
        "with_sma": _parse_periods(sma),
        "with_bb": with_bb,
        "bb_mode": bb_mode,
        "with_ichimoku": with_ichimoku,
        "ichimoku_mode": ichimoku_mode,
        "with_chikou": True if with_chikou else None,
        "with_legend": with_legend,
        "svg_precision": precision,
        "svg_minify": not no_minify,
        "simplify_tolerance": simplify,
        "view_box_tight": not loose,
        "auto_save": auto_save,
        "output_name": output_name,
        "prefer_file": prefer_file,
        "max_svg_bytes": max_bytes,
    }
    result = render_chart_svg(args, FrameSeriesSource(frame), config=load_config())
    _emit(result, out)


@cli.command()
@click.option(
    "--book",
    "book_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON file with 'bids' and 'asks' lists of [price, quantity].",
)
@click.option("--pair", type=str, default="btc_jpy", help="Instrument identifier (default: btc_jpy).")
@click.option("--levels", type=int, default=200, help="Maximum levels per side, 10-500 (default: 200).")
@click.option("--prefer-file", is_flag=True, default=False, help="Always save to file and omit inline markup.")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write the inline SVG to this file.")
def depth(book_path: str, pair: str, levels: int, prefer_file: bool, out: Optional[str]) -> None:
    """Render an order-book depth chart from a JSON snapshot."""
    try:
        source = StaticDepthSource.from_json(book_path)
    except (ValueError, KeyError, TypeError) as exc:
        raise click.BadParameter(f"could not read order book: {exc}", param_hint="--book")
    result = render_chart_svg(
        {"pair": pair, "style": "depth", "depth_levels": levels, "prefer_file": prefer_file},
        depth_source=source,
        config=load_config(),
    )
    _emit(result, out)

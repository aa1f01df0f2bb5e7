"""Tests for the single-pass line simplifier."""

from __future__ import annotations

import random

import pytest

from svgchart.charts.simplify import simplify_polyline


def test_zero_tolerance_returns_input() -> None:
    points = [(0.0, 0.0), (1.0, 0.1), (2.0, 0.0)]
    out = simplify_polyline(points, 0)
    assert out == points
    assert out is not points


def test_endpoints_always_kept() -> None:
    points = [(float(i), 0.0) for i in range(10)]
    out = simplify_polyline(points, 0.5)
    assert out == [(0.0, 0.0), (9.0, 0.0)]


def test_short_lines_untouched() -> None:
    assert simplify_polyline([(0.0, 0.0), (5.0, 5.0)], 10.0) == [(0.0, 0.0), (5.0, 5.0)]


def test_never_adds_points_and_keeps_spikes() -> None:
    points = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (3.0, 5.0), (4.0, 0.0), (5.0, 0.0), (6.0, 0.0)]
    out = simplify_polyline(points, 0.5)
    assert len(out) <= len(points)
    assert (3.0, 5.0) in out
    assert out[0] == points[0] and out[-1] == points[-1]


@pytest.mark.parametrize(
    "points",
    [
        [(0.0, 100.0), (1.0, 99.0), (2.0, 97.0), (3.0, 96.6), (4.0, 95.0)],
        [(0.0, 2.5), (2.0, 0.9), (6.0, 1.5), (7.0, 1.8)],
    ],
)
def test_simplifying_twice_is_stable_on_gentle_curves(points) -> None:
    once = simplify_polyline(points, 0.5)
    assert simplify_polyline(once, 0.5) == once
    assert once[0] == points[0] and once[-1] == points[-1]


@pytest.mark.parametrize("seed", range(25))
@pytest.mark.parametrize("tolerance", [0.25, 0.5, 2.0])
def test_simplifying_twice_is_stable_on_random_lines(seed: int, tolerance: float) -> None:
    rng = random.Random(seed)
    x = 0.0
    random_walk = []
    monotone = []
    y_walk = 50.0
    y_mono = 0.0
    for _ in range(rng.randint(3, 60)):
        x += rng.uniform(0.5, 8.0)
        y_walk += rng.uniform(-5.0, 5.0)
        y_mono += rng.uniform(0.0, 3.0)
        random_walk.append((round(x, 1), round(y_walk, 1)))
        monotone.append((round(x, 1), round(y_mono, 1)))
    for points in (random_walk, monotone):
        once = simplify_polyline(points, tolerance)
        assert len(once) <= len(points)
        assert set(once) <= set(points)
        assert simplify_polyline(once, tolerance) == once

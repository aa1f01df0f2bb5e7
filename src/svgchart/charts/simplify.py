"""Polyline simplification.

Passes over consecutive point triples: a middle point survives when its
squared perpendicular distance from the chord joining its two neighbours
exceeds ``tolerance ** 2``.  Endpoints always survive.  Passes repeat
until one removes nothing, so simplifying an already simplified line
returns it unchanged.  This is cheaper than recursive Douglas-Peucker
and good enough for chart lines, which are dense and monotonic along
the horizontal axis.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

Point = Tuple[float, float]


def _sq_distance_to_chord(a: Point, b: Point, c: Point) -> float:
    """Squared distance of ``b`` from the line through ``a`` and ``c``."""
    area = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
    dx = c[0] - a[0]
    dy = c[1] - a[1]
    len2 = dx * dx + dy * dy
    if len2 == 0:
        # Degenerate chord: fall back to the distance from ``a``
        return (b[0] - a[0]) ** 2 + (b[1] - a[1]) ** 2
    return (area * area) / len2


def _triple_pass(points: Sequence[Point], sq_tol: float) -> List[Point]:
    kept: List[Point] = [points[0]]
    for i in range(1, len(points) - 1):
        if _sq_distance_to_chord(points[i - 1], points[i], points[i + 1]) > sq_tol:
            kept.append(points[i])
    kept.append(points[-1])
    return kept


def simplify_polyline(points: Sequence[Point], tolerance: float) -> List[Point]:
    """Drop points that lie within ``tolerance`` of their neighbours' chord.

    Args:
        points: Ordered points in pixel space.
        tolerance: Distance threshold in pixels; ``0`` returns the input
            unchanged.

    Returns:
        A new list of points; first and last points are always kept.
    """
    if tolerance <= 0 or len(points) <= 2:
        return list(points)
    sq_tol = tolerance * tolerance
    current = list(points)
    while True:
        kept = _triple_pass(current, sq_tol)
        if len(kept) == len(current):
            return kept
        current = kept

"""Cloud polygon construction.

The area between the two cloud components is split into polygons that
are each entirely "first above second" (bullish) or "second above
first" (bearish).  Where the components cross between two samples the
exact crossing is found by linear interpolation and shared by the
polygon being closed and the one being opened, so the fill boundary
follows the component lines exactly.  A missing sample closes the
current polygon without interpolation.

All coordinates here are in value space: ``(index, price)``.  The
renderer maps them to pixels.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

Point = Tuple[float, float]


@dataclass
class CloudPolygon:
    """One filled region of the cloud.

    ``upper`` and ``lower`` run left to right along the top and bottom
    boundaries; :meth:`ring` closes them into a polygon.
    """

    bullish: bool
    upper: List[Point] = field(default_factory=list)
    lower: List[Point] = field(default_factory=list)

    def ring(self) -> List[Point]:
        return self.upper + self.lower[::-1]


@dataclass
class CloudPolygons:
    bullish: List[CloudPolygon] = field(default_factory=list)
    bearish: List[CloudPolygon] = field(default_factory=list)


def _usable(v: Optional[float]) -> bool:
    return v is not None and math.isfinite(v)


def crossing_fraction(a0: float, a1: float, b0: float, b1: float) -> float:
    """Fraction ``t`` in ``[0, 1]`` where ``a(t) == b(t)`` on the segment.

    ``a`` and ``b`` are linear between their two samples, so solving
    ``a0 + t * (a1 - a0) == b0 + t * (b1 - b0)`` gives
    ``t = (a0 - b0) / ((b1 - b0) - (a1 - a0))``.  Parallel segments
    return 0.
    """
    denom = (b1 - b0) - (a1 - a0)
    if denom == 0:
        return 0.0
    t = (a0 - b0) / denom
    return max(0.0, min(1.0, t))


def build_cloud(span_a: Sequence[Optional[float]], span_b: Sequence[Optional[float]]) -> CloudPolygons:
    """Split the area between ``span_a`` and ``span_b`` into polygons.

    A sample where ``a >= b`` counts as bullish.  Index ``i`` of the
    returned points is the sample index (possibly fractional at a
    crossing); callers add their own display offset.
    """
    result = CloudPolygons()
    current: Optional[CloudPolygon] = None

    def close() -> None:
        # A polygon needs at least two points along each boundary
        if current is None or len(current.upper) < 2 or len(current.lower) < 2:
            return
        (result.bullish if current.bullish else result.bearish).append(current)

    def edge(poly: CloudPolygon, i: float, a: float, b: float) -> None:
        hi, lo = (a, b) if poly.bullish else (b, a)
        poly.upper.append((i, hi))
        poly.lower.append((i, lo))

    n = max(len(span_a), len(span_b))
    for i in range(n - 1):
        a0 = span_a[i] if i < len(span_a) else None
        b0 = span_b[i] if i < len(span_b) else None
        a1 = span_a[i + 1] if i + 1 < len(span_a) else None
        b1 = span_b[i + 1] if i + 1 < len(span_b) else None
        if not (_usable(a0) and _usable(b0) and _usable(a1) and _usable(b1)):
            close()
            current = None
            continue
        bull0 = a0 >= b0
        bull1 = a1 >= b1
        if current is None:
            current = CloudPolygon(bullish=bull0)
            edge(current, i, a0, b0)
        if bull0 == bull1:
            edge(current, i + 1, a1, b1)
            continue
        t = crossing_fraction(a0, a1, b0, b1)
        cross = (i + t, a0 + t * (a1 - a0))
        current.upper.append(cross)
        current.lower.append(cross)
        close()
        current = CloudPolygon(bullish=bull1, upper=[cross], lower=[cross])
        edge(current, i + 1, a1, b1)
    close()
    return result

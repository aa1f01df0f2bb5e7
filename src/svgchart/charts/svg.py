"""Minimal SVG drawing primitives and document builder.

Layer renderers return lists of primitives instead of markup strings.
The document serializes them once, at the end, so a layer that fails
halfway never leaves a half-written element behind.  Minification is a
pure post-processing step over the serialized text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

Point = Tuple[float, float]

SVG_NS = "http://www.w3.org/2000/svg"

_ATTR_ENTITIES = {'"': "&quot;"}


def fmt_num(value: Any) -> str:
    """Render a number compactly: integral floats lose their ``.0``."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _attrs(pairs: Iterable[Tuple[str, Any]]) -> str:
    parts = []
    for name, value in pairs:
        if value is None:
            continue
        parts.append(f'{name}="{escape(fmt_num(value), _ATTR_ENTITIES)}"')
    return " ".join(parts)


def _tag(name: str, pairs: Iterable[Tuple[str, Any]]) -> str:
    attrs = _attrs(pairs)
    return f"<{name} {attrs}/>" if attrs else f"<{name}/>"


class Shape:
    """Base class of every drawable primitive."""

    def to_svg(self) -> str:  # pragma: no cover - abstract
        raise NotImplementedError


@dataclass
class Line(Shape):
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: float = 1
    dash: Optional[str] = None
    cls: Optional[str] = None

    def to_svg(self) -> str:
        return _tag(
            "line",
            [
                ("class", self.cls),
                ("x1", self.x1),
                ("y1", self.y1),
                ("x2", self.x2),
                ("y2", self.y2),
                ("stroke", self.stroke),
                ("stroke-width", self.stroke_width),
                ("stroke-dasharray", self.dash),
            ],
        )


@dataclass
class Rect(Shape):
    x: float
    y: float
    width: float
    height: float
    fill: str
    stroke: Optional[str] = None
    cls: Optional[str] = None

    def to_svg(self) -> str:
        return _tag(
            "rect",
            [
                ("class", self.cls),
                ("x", self.x),
                ("y", self.y),
                ("width", self.width),
                ("height", self.height),
                ("fill", self.fill),
                ("stroke", self.stroke),
            ],
        )


@dataclass
class Circle(Shape):
    cx: float
    cy: float
    r: float
    fill: str

    def to_svg(self) -> str:
        return _tag("circle", [("cx", self.cx), ("cy", self.cy), ("r", self.r), ("fill", self.fill)])


@dataclass
class Path(Shape):
    """One ``<path>`` made of one or more subpaths.

    Each subpath is a point list plus a flag telling whether it is
    closed (``Z``).  A path without points serializes to nothing.
    """

    subpaths: List[Tuple[List[Point], bool]]
    fill: str = "none"
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    dash: Optional[str] = None
    cls: Optional[str] = None

    @classmethod
    def line(cls, points: Sequence[Point], stroke: str, stroke_width: float = 2, dash: Optional[str] = None, css: Optional[str] = None) -> "Path":
        return cls([(list(points), False)], fill="none", stroke=stroke, stroke_width=stroke_width, dash=dash, cls=css)

    @classmethod
    def polygons(cls, rings: Iterable[Sequence[Point]], fill: str, css: Optional[str] = None) -> "Path":
        return cls([(list(r), True) for r in rings], fill=fill, stroke="none", cls=css)

    def d(self) -> str:
        parts = []
        for points, closed in self.subpaths:
            if not points:
                continue
            coords = " L ".join(f"{fmt_num(x)},{fmt_num(y)}" for x, y in points)
            parts.append(f"M {coords}" + (" Z" if closed else ""))
        return " ".join(parts)

    def to_svg(self) -> str:
        d = self.d()
        if not d:
            return ""
        return _tag(
            "path",
            [
                ("class", self.cls),
                ("d", d),
                ("fill", self.fill),
                ("stroke", self.stroke),
                ("stroke-width", self.stroke_width),
                ("stroke-dasharray", self.dash),
            ],
        )


@dataclass
class Text(Shape):
    x: float
    y: float
    text: str
    fill: str = "#e5e7eb"
    size: int = 12
    anchor: Optional[str] = None
    baseline: Optional[str] = None

    def to_svg(self) -> str:
        attrs = _attrs(
            [
                ("x", self.x),
                ("y", self.y),
                ("text-anchor", self.anchor),
                ("dominant-baseline", self.baseline),
                ("fill", self.fill),
                ("font-size", self.size),
            ]
        )
        return f"<text {attrs}>{escape(self.text)}</text>"


@dataclass
class Group(Shape):
    children: List[Shape] = field(default_factory=list)
    cls: Optional[str] = None
    clip_path: Optional[str] = None
    transform: Optional[str] = None

    def add(self, *shapes: Shape) -> "Group":
        self.children.extend(shapes)
        return self

    def extend(self, shapes: Iterable[Shape]) -> "Group":
        self.children.extend(shapes)
        return self

    def to_svg(self) -> str:
        attrs = _attrs(
            [
                ("class", self.cls),
                ("clip-path", f"url(#{self.clip_path})" if self.clip_path else None),
                ("transform", self.transform),
            ]
        )
        body = "\n".join(s for s in (c.to_svg() for c in self.children) if s)
        open_tag = f"<g {attrs}>" if attrs else "<g>"
        return f"{open_tag}\n{body}\n</g>"


@dataclass
class SvgDocument:
    """Top-level ``<svg>`` element with an optional plot clip rectangle."""

    width: float
    height: float
    title: str
    background: str
    text_color: str
    clip: Optional[Tuple[float, float, float, float]] = None
    children: List[Shape] = field(default_factory=list)

    def add(self, *shapes: Shape) -> "SvgDocument":
        self.children.extend(shapes)
        return self

    def serialize(self) -> str:
        w = fmt_num(self.width)
        h = fmt_num(self.height)
        style = f"background-color: {self.background}; color: {self.text_color}; font-family: sans-serif;"
        lines = [
            f'<svg width="{w}" height="{h}" viewBox="0 0 {w} {h}" xmlns="{SVG_NS}" style="{style}">',
            f"  <title>{escape(self.title)}</title>",
        ]
        if self.clip is not None:
            x, y, cw, ch = self.clip
            clip_rect = _tag("rect", [("x", x), ("y", y), ("width", cw), ("height", ch)])
            lines.append(f'  <defs>\n    <clipPath id="plotArea">\n      {clip_rect}\n    </clipPath>\n  </defs>')
        for child in self.children:
            markup = child.to_svg()
            if markup:
                lines.append(markup)
        lines.append("</svg>")
        return "\n".join(lines)


def minify(markup: str) -> str:
    """Collapse whitespace runs and strip whitespace between tags."""
    out = re.sub(r"\s{2,}", " ", markup)
    out = re.sub(r">\s+<", "><", out)
    return out.strip()


def size_bytes(markup: str) -> int:
    return len(markup.encode("utf-8"))

"""svgchart: SVG market chart rendering.

Top-level entry points:

- :func:`render_chart_svg` renders candlestick / close-line charts with
  optional moving averages, volatility bands, cloud and auxiliary
  overlays, or dispatches to the depth renderer for ``style="depth"``.
- :func:`render_depth_svg` renders an order-book depth chart.

Both return a :class:`~svgchart.models.ChartResult` envelope and never
raise.
"""

from .charts.depth import render_depth_svg
from .charts.renderer import render_chart_svg
from .config import RenderConfig, load_config
from .errors import ChartError
from .models import ChartResult, DepthSnapshot, RenderRequest

__all__ = [
    "render_chart_svg",
    "render_depth_svg",
    "RenderConfig",
    "load_config",
    "ChartError",
    "ChartResult",
    "DepthSnapshot",
    "RenderRequest",
]

__version__ = "0.1.0"

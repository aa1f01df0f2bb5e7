"""SVG chart drawing: geometry, primitives, overlay layers and renderers.

The renderers themselves live in :mod:`svgchart.charts.renderer` and
:mod:`svgchart.charts.depth`; they are re-exported from the top-level
package.
"""

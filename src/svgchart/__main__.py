"""Entry point for running svgchart as a module.

This allows the CLI to be invoked with ``python -m svgchart``.
"""

from .cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli()

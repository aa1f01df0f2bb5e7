"""Logging setup for svgchart."""

from __future__ import annotations

import logging
import sys


def setup_logging(level: int = logging.INFO) -> None:
    """Configure the root logger once at startup."""
    fmt = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s"
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    # Avoid duplicate handlers when called repeatedly
    if not root.handlers:
        root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``svgchart``."""
    return logging.getLogger(f"svgchart.{name}")

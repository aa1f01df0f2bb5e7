"""Artifact naming and file writes.

Directories are created on demand and creation tolerates concurrent
creators.  Filenames carry the pair, period type and a millisecond
timestamp, which keeps concurrent requests apart in practice; an exact
collision simply overwrites.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def timestamped_filename(
    prefix: str,
    pair: str,
    candle_type: Optional[str] = None,
    suffix: str = "",
    now: Optional[datetime] = None,
) -> str:
    """Return e.g. ``chart-btc_jpy-1day-1735689600000_cloud.svg``."""
    moment = now or datetime.now(timezone.utc)
    stamp = int(moment.timestamp() * 1000)
    parts = [prefix, pair]
    if candle_type:
        parts.append(candle_type)
    parts.append(str(stamp))
    return "-".join(parts) + suffix + ".svg"


def named_filename(name: str) -> str:
    """Turn a user supplied output name into a safe ``<stem>.svg``.

    Directory components are dropped and unsafe characters replaced.

    Raises:
        ValueError: If nothing usable remains of ``name``.
    """
    stem = Path(name).name
    if stem.lower().endswith(".svg"):
        stem = stem[:-4]
    stem = _UNSAFE.sub("_", stem).strip("._")
    if not stem:
        raise ValueError(f"invalid output name {name!r}")
    return f"{stem}.svg"


def write_artifact(directory: Union[str, Path], filename: str, markup: str) -> Path:
    """Write ``markup`` to ``directory/filename`` and return the path.

    Raises:
        OSError: When the directory cannot be created or the file written.
    """
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / filename
    path.write_text(markup, encoding="utf-8")
    return path

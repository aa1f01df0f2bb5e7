"""Error taxonomy for the chart engine.

Every failure raised inside the engine is a :class:`ChartError` carrying
a ``kind`` drawn from a small, fixed vocabulary.  The public render
functions convert these into failure envelopes; callers never see the
exception itself.
"""

from __future__ import annotations

from typing import Literal

ErrorKind = Literal["user", "data", "internal", "io"]

# Prefix used by upstream sources on their failure summaries.
_ERROR_PREFIX = "Error: "


class ChartError(Exception):
    """Raised when a chart cannot be produced.

    Attributes:
        message: Human readable description without any ``Error:`` prefix.
        kind: One of ``user`` (bad request / nothing to draw), ``data``
            (upstream returned nothing usable), ``internal`` (upstream or
            drawing failure) or ``io`` (artifact could not be written).
            Sources may report other kinds; they are forwarded verbatim.
    """

    def __init__(self, message: str, kind: str = "internal") -> None:
        self.message = strip_error_prefix(message)
        self.kind = kind
        super().__init__(self.message)


def strip_error_prefix(message: str) -> str:
    """Remove a single leading ``"Error: "`` from an upstream message."""
    if message.startswith(_ERROR_PREFIX):
        return message[len(_ERROR_PREFIX):]
    return message

"""Output formatting: one compact JSON value per line."""

from __future__ import annotations

import json
import math
from typing import Any, TextIO

from celq.models import EvaluationOutcome


def sort_keys(value: Any) -> Any:
    """Return *value* with every object's keys in ascending order, recursively."""
    if isinstance(value, dict):
        return {k: sort_keys(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [sort_keys(item) for item in value]
    return value


def _finite(value: Any) -> Any:
    # NaN and infinities have no JSON spelling.
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_finite(item) for item in value]
    return value


def serialize(value: Any, *, sort: bool = False) -> str:
    """Serialize *value* as compact single-line JSON text."""
    if sort:
        value = sort_keys(value)
    return json.dumps(
        _finite(value),
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
    )


class OutputFormatter:
    """Single writer for the output stream."""

    def __init__(self, stream: TextIO, *, sort: bool = False) -> None:
        self._stream = stream
        self._sort = sort
        self.lines_written = 0

    def write(self, outcome: EvaluationOutcome) -> bool:
        """Write one line for a successful outcome.

        Error outcomes produce no output; returns whether a line was written.
        """
        if not outcome.ok:
            return False
        self._stream.write(serialize(outcome.value, sort=self._sort) + "\n")
        self.lines_written += 1
        return True

    def flush(self) -> None:
        self._stream.flush()

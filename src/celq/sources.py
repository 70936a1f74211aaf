"""Input sources: turn stdin into an ordered sequence of Records.

Three mutually exclusive modes. Streaming is lazy: a line is read only
when the consumer asks for the next record, so memory stays bounded on
unbounded input.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import TextIO

from celq.errors import InputError, JsonParseError
from celq.models import InputMode, Record

_log = logging.getLogger("celq")


def parse_json(text: str, line: int | None = None) -> object:
    """Decode one JSON document.

    Raises:
        JsonParseError: If *text* is not a single valid JSON value.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise JsonParseError(str(e), line=line) from e


def null_records() -> Iterator[Record]:
    """Yield the single payload-less record of null mode. Never reads stdin."""
    yield Record(index=0, payload=None, has_payload=False)


def slurp_records(stream: TextIO) -> Iterator[Record]:
    """Read the whole stream as one JSON document."""
    try:
        text = stream.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Failed to read input: {e}") from e
    _log.debug("Slurped %d characters of input", len(text))
    yield Record(index=0, payload=parse_json(text))


def stream_records(stream: TextIO) -> Iterator[Record]:
    """Yield one record per non-blank line, in order.

    Blank lines are skipped without consuming an index. A malformed line
    raises JsonParseError with its 1-based line number and ends the
    sequence. Input with no non-blank line yields a single payload-less
    record, so the expression is still evaluated once.
    """
    index = 0
    line_number = 0
    while True:
        try:
            line = stream.readline()
        except (OSError, UnicodeDecodeError) as e:
            raise InputError(
                f"Failed to read input after line {line_number}: {e}"
            ) from e
        if not line:
            break
        line_number += 1
        if not line.strip():
            continue
        yield Record(
            index=index,
            payload=parse_json(line, line=line_number),
            line=line_number,
        )
        index += 1
    if index == 0:
        _log.debug("Empty input stream, evaluating once without a record")
        yield Record(index=0, payload=None, has_payload=False)


def open_records(mode: InputMode, stream: TextIO | None) -> Iterator[Record]:
    """Return the record sequence for *mode*.

    *stream* is ignored (and may be None) in null mode.
    """
    match mode:
        case InputMode.NULL:
            return null_records()
        case InputMode.SLURP:
            if stream is None:
                raise InputError("slurp mode requires an input stream")
            return slurp_records(stream)
        case InputMode.STREAM:
            if stream is None:
                raise InputError("streaming mode requires an input stream")
            return stream_records(stream)
    raise InputError(f"Unknown input mode: {mode}")

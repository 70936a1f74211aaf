"""Structured JSON logging for celq runs.

Writes JSON-lines to disk so a failed or slow run can be inspected
after the fact. Each log entry is a single JSON object on one line.
Nothing is written unless ``configure_logging`` was called.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

_logger = logging.getLogger("celq")

LOG_FILE_NAME = "celq.log"


def configure_logging(
    log_dir: str | Path, level: int = logging.DEBUG
) -> Path:
    """Set up run logging to write JSON-lines to a file.

    Args:
        log_dir: Directory to write ``celq.log`` into.
        level: Logging level (default: DEBUG).

    Returns:
        Path of the log file.
    """
    log_path = Path(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(str(log_path))
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    _logger.addHandler(handler)
    _logger.setLevel(level)
    return log_path


def _log(event: dict[str, Any]) -> None:
    _logger.info(json.dumps(event, default=str))


def log_run_start(
    mode: str, workers: int, expression: str, binding_names: list[str]
) -> None:
    _log({
        "event": "run_start",
        "mode": mode,
        "workers": workers,
        "expression": expression[:200],
        "bindings": binding_names,
    })


def log_record_error(index: int, line: int | None, error: str) -> None:
    _log({"event": "record_error", "index": index, "line": line, "error": error})


def log_input_error(error: str, line: int | None) -> None:
    _log({"event": "input_error", "line": line, "error": error})


def log_run_complete(
    records: int, errors: int, exit_code: int, duration_ms: float
) -> None:
    _log({
        "event": "run_complete",
        "records": records,
        "errors": errors,
        "exit_code": exit_code,
        "duration_ms": round(duration_ms, 2),
    })

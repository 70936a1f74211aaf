"""CEL expression engine used to evaluate records.

Thin wrapper over cel-python that compiles the user's expression once
and evaluates it against each record, with the record bound to ``this``
and every ``--arg`` binding visible by name. Results are converted back
to plain JSON values for the output formatter.
"""

from __future__ import annotations

import base64
import datetime
import math
from typing import Any

import celpy
from celpy import celtypes

from celq.errors import EvaluationError, ExpressionCompileError
from celq.models import Bindings, CompiledProgram, Record

CURRENT_VALUE = "this"


class ExpressionEngine:
    """One CEL environment per run, passed explicitly to each caller.

    The engine and the programs it compiles hold no per-evaluation
    state, so a single instance is shared by every worker thread.
    """

    def __init__(self) -> None:
        self._env = celpy.Environment()

    def compile(self, expression: str) -> CompiledProgram:
        """Compile *expression* into a reusable program.

        Raises:
            ExpressionCompileError: If the expression does not parse.
        """
        try:
            ast = self._env.compile(expression)
            runner = self._env.program(ast)
        except Exception as e:
            raise ExpressionCompileError(
                f"Failed to compile expression '{expression}': {e}"
            ) from e
        return CompiledProgram(source=expression, runner=runner)

    def evaluate(
        self, program: CompiledProgram, bindings: Bindings, record: Record
    ) -> Any:
        """Evaluate *program* for one record and return a JSON value.

        Raises:
            EvaluationError: If evaluation fails (missing field, type
                mismatch, division by zero, ...) or the input cannot be
                represented as a CEL value.
        """
        activation = bindings.to_activation()
        try:
            if record.has_payload:
                activation[CURRENT_VALUE] = celpy.json_to_cel(record.payload)
            result = program.runner.evaluate(activation)
        except Exception as e:
            raise EvaluationError(str(e) or type(e).__name__) from e

        if isinstance(result, celpy.CELEvalError):
            raise EvaluationError(str(result))
        return cel_to_json(result)


def cel_to_json(value: Any) -> Any:
    """Convert a CEL result into a plain JSON value.

    Bytes become standard base64, timestamps RFC 3339 strings, durations
    ``"<seconds>s"`` strings and non-finite doubles ``None``.
    """
    if value is None:
        return None
    # BoolType subclasses int, so it must be checked first.
    if isinstance(value, (bool, celtypes.BoolType)):
        return bool(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (list, tuple)):
        return [cel_to_json(item) for item in value]
    if isinstance(value, dict):
        return {_map_key(k): cel_to_json(v) for k, v in value.items()}
    if isinstance(value, datetime.datetime):
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, datetime.timedelta):
        return f"{value.total_seconds():g}s"
    return str(value)


def _map_key(key: Any) -> str:
    converted = cel_to_json(key)
    if isinstance(converted, bool):
        return "true" if converted else "false"
    if converted is None:
        return "null"
    return str(converted)

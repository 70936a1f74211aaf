"""celq: evaluate CEL expressions against JSON input."""

__version__ = "0.1.0"

from celq.binder import bind_arguments, parse_argument
from celq.dispatcher import Dispatcher
from celq.errors import (
    ArgumentError,
    CelqError,
    ConfigError,
    DuplicateBinding,
    EvaluationError,
    ExpressionCompileError,
    InputError,
    InvalidIdentifier,
    JsonParseError,
    MalformedArgument,
    UnknownType,
    ValueCoercionError,
)
from celq.executor import run
from celq.expressions import ExpressionEngine
from celq.models import (
    Binding,
    Bindings,
    EvaluationOutcome,
    InputMode,
    Record,
    RunOptions,
    RunResult,
    TypedValue,
    ValueType,
)
from celq.run_logger import configure_logging

__all__ = [
    "__version__",
    "ArgumentError",
    "bind_arguments",
    "Binding",
    "Bindings",
    "CelqError",
    "ConfigError",
    "configure_logging",
    "Dispatcher",
    "DuplicateBinding",
    "EvaluationError",
    "EvaluationOutcome",
    "ExpressionCompileError",
    "ExpressionEngine",
    "InputError",
    "InputMode",
    "InvalidIdentifier",
    "JsonParseError",
    "MalformedArgument",
    "parse_argument",
    "Record",
    "run",
    "RunOptions",
    "RunResult",
    "TypedValue",
    "UnknownType",
    "ValueCoercionError",
    "ValueType",
]

"""Pydantic models for bindings, records, outcomes and run options.

All data structures live here. No business logic beyond conversions,
just shapes. Every model is frozen: values are built once and then
shared read-only across worker threads.
"""

from __future__ import annotations

import base64
import math
from collections.abc import Iterator
from enum import Enum
from types import MappingProxyType
from typing import Any

from celpy import celtypes
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from celq.errors import ConfigError


# ── Typed values ──────────────────────────────────────────────────


class ValueType(str, Enum):
    STRING = "string"
    INT = "int"
    UINT = "uint"
    DOUBLE = "double"
    BOOL = "bool"
    BYTES = "bytes"
    LIST = "list"
    MAP = "map"
    NULL = "null"


INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1


class TypedValue(BaseModel):
    """A literal parsed against a declared type tag.

    ``list`` values hold a tuple of TypedValue and ``map`` values a
    read-only mapping of ``str -> TypedValue``, so the whole tree is
    immutable.
    """

    model_config = ConfigDict(frozen=True)

    type: ValueType
    value: Any = None

    @classmethod
    def from_json(cls, value: Any) -> TypedValue:
        """Type a decoded JSON value by its JSON kind.

        Raises:
            ValueError: If an integer does not fit in int64/uint64, or a
                number is not finite.
        """
        if value is None:
            return cls(type=ValueType.NULL)
        if isinstance(value, bool):
            return cls(type=ValueType.BOOL, value=value)
        if isinstance(value, int):
            if INT64_MIN <= value <= INT64_MAX:
                return cls(type=ValueType.INT, value=value)
            if 0 <= value <= UINT64_MAX:
                return cls(type=ValueType.UINT, value=value)
            raise ValueError(f"integer {value} out of 64-bit range")
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"number {value} is not finite")
            return cls(type=ValueType.DOUBLE, value=value)
        if isinstance(value, str):
            return cls(type=ValueType.STRING, value=value)
        if isinstance(value, list):
            return cls(
                type=ValueType.LIST,
                value=tuple(cls.from_json(item) for item in value),
            )
        if isinstance(value, dict):
            return cls(
                type=ValueType.MAP,
                value=MappingProxyType(
                    {str(k): cls.from_json(v) for k, v in value.items()}
                ),
            )
        raise ValueError(f"unsupported JSON value of type {type(value).__name__}")

    def to_cel(self) -> Any:
        """Convert to the expression engine's value types."""
        match self.type:
            case ValueType.STRING:
                return celtypes.StringType(self.value)
            case ValueType.INT:
                return celtypes.IntType(self.value)
            case ValueType.UINT:
                return celtypes.UintType(self.value)
            case ValueType.DOUBLE:
                return celtypes.DoubleType(self.value)
            case ValueType.BOOL:
                return celtypes.BoolType(self.value)
            case ValueType.BYTES:
                return celtypes.BytesType(self.value)
            case ValueType.LIST:
                return celtypes.ListType([item.to_cel() for item in self.value])
            case ValueType.MAP:
                return celtypes.MapType(
                    {celtypes.StringType(k): v.to_cel() for k, v in self.value.items()}
                )
            case _:
                return None

    def to_json(self) -> Any:
        """Convert to a plain JSON value. Bytes become standard base64."""
        match self.type:
            case ValueType.BYTES:
                return base64.b64encode(self.value).decode("ascii")
            case ValueType.LIST:
                return [item.to_json() for item in self.value]
            case ValueType.MAP:
                return {k: v.to_json() for k, v in self.value.items()}
            case _:
                return self.value


class Binding(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: TypedValue


class Bindings:
    """Immutable ordered mapping of binding name to value.

    Declaration order is preserved for iteration but has no effect on
    evaluation; lookup is by name.
    """

    __slots__ = ("_values",)

    def __init__(self, bindings: list[Binding] | tuple[Binding, ...] = ()) -> None:
        values: dict[str, TypedValue] = {}
        for binding in bindings:
            if binding.name in values:
                raise ValueError(f"duplicate binding name: {binding.name!r}")
            values[binding.name] = binding.value
        self._values = MappingProxyType(values)

    def __getitem__(self, name: str) -> TypedValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bindings):
            return NotImplemented
        return list(self._values.items()) == list(other._values.items())

    def get(self, name: str, default: TypedValue | None = None) -> TypedValue | None:
        return self._values.get(name, default)

    def items(self) -> Iterator[tuple[str, TypedValue]]:
        return iter(self._values.items())

    def __repr__(self) -> str:
        items = ", ".join(f"{k}:{v.type.value}" for k, v in self._values.items())
        return f"Bindings({items})"

    def names(self) -> list[str]:
        return list(self._values)

    def to_activation(self) -> dict[str, Any]:
        """Engine variables for every binding, keyed by name."""
        return {name: value.to_cel() for name, value in self._values.items()}


# ── Pipeline records ──────────────────────────────────────────────


class InputMode(str, Enum):
    NULL = "null"
    SLURP = "slurp"
    STREAM = "stream"


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    payload: Any = None
    line: int | None = None
    has_payload: bool = True


class CompiledProgram(BaseModel):
    """Compiled expression, produced once and shared by all workers."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: str
    runner: Any = Field(repr=False)


class EvaluationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    line: int | None = None
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ── Run configuration ────────────────────────────────────────────


def check_jobs(jobs: int) -> int:
    """Accept -1 (all CPUs) or a positive worker count.

    Raises:
        ValueError: If *jobs* is 0 or below -1.
    """
    if jobs == 0 or jobs < -1:
        raise ValueError(f"jobs must be -1 (all CPUs) or a positive integer, got {jobs}")
    return jobs


class RunOptions(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    expression: str
    bindings: Bindings = Field(default_factory=Bindings)
    mode: InputMode = InputMode.STREAM
    jobs: int = 1
    boolean: bool = False
    sort_keys: bool = False

    @field_validator("jobs")
    @classmethod
    def _check_jobs(cls, jobs: int) -> int:
        return check_jobs(jobs)

    @classmethod
    def from_flags(
        cls,
        expression: str,
        *,
        bindings: Bindings | None = None,
        null_input: bool = False,
        slurp: bool = False,
        jobs: int = 1,
        boolean: bool = False,
        sort_keys: bool = False,
    ) -> RunOptions:
        """Build options from CLI-style flags.

        Raises:
            ConfigError: If the flags conflict or a value is out of range.
        """
        if null_input and slurp:
            raise ConfigError("--null-input and --slurp are mutually exclusive")
        if null_input:
            mode = InputMode.NULL
        elif slurp:
            mode = InputMode.SLURP
        else:
            mode = InputMode.STREAM
        try:
            return cls(
                expression=expression,
                bindings=bindings if bindings is not None else Bindings(),
                mode=mode,
                jobs=jobs,
                boolean=boolean,
                sort_keys=sort_keys,
            )
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid options: {e}") from e


# ── Run results ──────────────────────────────────────────────────


class RunResult(BaseModel):
    exit_code: int
    records: int
    errors: int
    lines_written: int
    duration_ms: float

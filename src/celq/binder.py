"""Typed variable binding for ``--arg name:type=value`` declarations.

Each declaration is split into name, type tag and literal, the literal
is parsed with the grammar for its tag, and the results are collected
into an immutable Bindings mapping shared by every evaluation.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from collections.abc import Callable, Iterable
from types import MappingProxyType

from celq.errors import (
    DuplicateBinding,
    InvalidIdentifier,
    MalformedArgument,
    UnknownType,
    ValueCoercionError,
)
from celq.models import (
    INT64_MAX,
    INT64_MIN,
    UINT64_MAX,
    Binding,
    Bindings,
    TypedValue,
    ValueType,
)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INT_LITERAL = re.compile(r"[+-]?[0-9]+")
_UINT_LITERAL = re.compile(r"\+?[0-9]+")

# Bound to the current record by the dispatcher.
RESERVED_NAMES = frozenset({"this"})

# Spellings accepted by earlier releases of the tool.
TYPE_ALIASES: dict[str, ValueType] = {
    "str": ValueType.STRING,
    "i64": ValueType.INT,
    "u64": ValueType.UINT,
    "float": ValueType.DOUBLE,
    "f64": ValueType.DOUBLE,
    "boolean": ValueType.BOOL,
}


def _parse_string(literal: str) -> TypedValue:
    return TypedValue(type=ValueType.STRING, value=literal)


def _parse_int(literal: str) -> TypedValue:
    if not _INT_LITERAL.fullmatch(literal):
        raise ValueError("not a base-10 integer")
    value = int(literal)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError("out of range for int64")
    return TypedValue(type=ValueType.INT, value=value)


def _parse_uint(literal: str) -> TypedValue:
    if not _UINT_LITERAL.fullmatch(literal):
        raise ValueError("not a base-10 unsigned integer")
    value = int(literal)
    if value > UINT64_MAX:
        raise ValueError("out of range for uint64")
    return TypedValue(type=ValueType.UINT, value=value)


def _parse_double(literal: str) -> TypedValue:
    # float() tolerates surrounding whitespace and underscores; a literal does not.
    if literal != literal.strip() or "_" in literal:
        raise ValueError("not a floating point number")
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError("not a finite number")
    return TypedValue(type=ValueType.DOUBLE, value=value)


def _parse_bool(literal: str) -> TypedValue:
    if literal == "true":
        return TypedValue(type=ValueType.BOOL, value=True)
    if literal == "false":
        return TypedValue(type=ValueType.BOOL, value=False)
    raise ValueError("expected 'true' or 'false'")


def _parse_bytes(literal: str) -> TypedValue:
    try:
        value = base64.b64decode(literal.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64: {e}") from e
    return TypedValue(type=ValueType.BYTES, value=value)


def _parse_list(literal: str) -> TypedValue:
    decoded = json.loads(literal)
    if not isinstance(decoded, list):
        raise ValueError(f"expected a JSON array, got {type(decoded).__name__}")
    return TypedValue.from_json(decoded)


def _parse_map(literal: str) -> TypedValue:
    decoded = json.loads(literal)
    if not isinstance(decoded, dict):
        raise ValueError(f"expected a JSON object, got {type(decoded).__name__}")
    return TypedValue.from_json(decoded)


def _parse_null(literal: str) -> TypedValue:
    if literal not in ("", "null"):
        raise ValueError("expected 'null'")
    return TypedValue(type=ValueType.NULL)


LiteralParser = Callable[[str], TypedValue]

PARSERS: MappingProxyType[ValueType, LiteralParser] = MappingProxyType({
    ValueType.STRING: _parse_string,
    ValueType.INT: _parse_int,
    ValueType.UINT: _parse_uint,
    ValueType.DOUBLE: _parse_double,
    ValueType.BOOL: _parse_bool,
    ValueType.BYTES: _parse_bytes,
    ValueType.LIST: _parse_list,
    ValueType.MAP: _parse_map,
    ValueType.NULL: _parse_null,
})


def resolve_type(name: str, type_name: str) -> ValueType:
    """Map a type tag (or one of its aliases) to a ValueType.

    Raises:
        UnknownType: If the tag is not recognized.
    """
    tag = type_name.strip().lower()
    if tag in TYPE_ALIASES:
        return TYPE_ALIASES[tag]
    try:
        return ValueType(tag)
    except ValueError:
        raise UnknownType(name, type_name, [t.value for t in ValueType]) from None


def parse_literal(name: str, value_type: ValueType, literal: str) -> TypedValue:
    """Parse *literal* with the grammar for *value_type*.

    Raises:
        ValueCoercionError: If the literal does not parse.
    """
    try:
        return PARSERS[value_type](literal)
    except ValueError as e:
        # json.JSONDecodeError is a ValueError too.
        raise ValueCoercionError(name, literal, value_type.value, str(e)) from e


def parse_argument(raw: str) -> Binding:
    """Parse one ``name:type=value`` declaration into a Binding.

    The name is split on the first ``:`` and the type on the first
    ``=``, so the value itself may contain either character.

    Raises:
        MalformedArgument: If a separator is missing.
        InvalidIdentifier: If the name is not an identifier or is reserved.
        UnknownType: If the type tag is not recognized.
        ValueCoercionError: If the value does not parse under the type.
    """
    name, sep, rest = raw.partition(":")
    if not sep:
        raise MalformedArgument(raw)
    type_name, sep, literal = rest.partition("=")
    if not sep:
        raise MalformedArgument(raw)

    if not _IDENTIFIER.fullmatch(name):
        raise InvalidIdentifier(name)
    if name in RESERVED_NAMES:
        raise InvalidIdentifier(name, "reserved for the current input value")

    value_type = resolve_type(name, type_name)
    return Binding(name=name, value=parse_literal(name, value_type, literal))


def bind_arguments(raw_args: Iterable[str]) -> Bindings:
    """Parse every declaration and collect them into Bindings.

    Raises:
        ArgumentError: Any of the parse_argument failures, or
            DuplicateBinding if a name is declared twice.
    """
    bindings: list[Binding] = []
    seen: set[str] = set()
    for raw in raw_args:
        binding = parse_argument(raw)
        if binding.name in seen:
            raise DuplicateBinding(binding.name)
        seen.add(binding.name)
        bindings.append(binding)
    return Bindings(bindings)

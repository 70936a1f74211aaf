"""Custom exception hierarchy for celq.

All exceptions inherit from CelqError so callers can catch broadly
or narrowly as needed.
"""

from __future__ import annotations


class CelqError(Exception):
    """Base for all celq errors."""


class ConfigError(CelqError):
    """Invalid combination of run options."""


# ── Argument binding ──────────────────────────────────────────────


class ArgumentError(CelqError):
    """A ``--arg name:type=value`` declaration could not be bound."""


class MalformedArgument(ArgumentError):
    """The ``:`` or ``=`` separator is missing."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(
            f"Invalid argument format '{raw}'. Expected 'name:type=value'"
        )


class InvalidIdentifier(ArgumentError):
    """The binding name is not a usable variable name."""

    def __init__(self, name: str, reason: str = "not a valid identifier") -> None:
        self.name = name
        super().__init__(f"Invalid argument name '{name}': {reason}")


class UnknownType(ArgumentError):
    """The type tag is not one of the recognized types."""

    def __init__(self, name: str, type_name: str, known: list[str]) -> None:
        self.name = name
        self.type_name = type_name
        super().__init__(
            f"Unsupported type '{type_name}' for argument '{name}'. "
            f"Expected one of: {', '.join(known)}"
        )


class ValueCoercionError(ArgumentError):
    """The literal does not parse under the declared type."""

    def __init__(
        self, name: str, literal: str, type_name: str, detail: str = ""
    ) -> None:
        self.name = name
        self.literal = literal
        self.type_name = type_name
        message = (
            f"Failed to parse argument '{name}': "
            f"cannot parse '{literal}' as {type_name}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DuplicateBinding(ArgumentError):
    """The same name was declared twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate argument name: '{name}'")


# ── Expression and input ──────────────────────────────────────────


class ExpressionCompileError(CelqError):
    """The CEL expression failed to parse or compile."""


class EvaluationError(CelqError):
    """The compiled expression failed for one specific record."""


class JsonParseError(CelqError):
    """A record's raw text is not valid JSON."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(f"Failed to parse JSON input: {message}")


class InputError(CelqError):
    """Reading the input stream failed."""

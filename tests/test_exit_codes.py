"""Tests for the exit-code decision."""

from __future__ import annotations

from celq.exit_codes import (
    EXIT_BOOLEAN_ERROR,
    EXIT_EVAL_ERROR,
    EXIT_FALSE,
    EXIT_OK,
    EXIT_USAGE,
    ExitDecider,
)
from celq.models import EvaluationOutcome


def _decide(boolean: bool, *outcomes: EvaluationOutcome) -> int:
    decider = ExitDecider(boolean=boolean)
    for outcome in outcomes:
        decider.observe(outcome)
    return decider.code


def ok(value) -> EvaluationOutcome:
    return EvaluationOutcome(index=0, value=value)


ERR = EvaluationOutcome(index=0, error="no such key")


# ── Default mode ──────────────────────────────────────────────────


def test_default_all_ok():
    assert _decide(False, ok(1), ok(False), ok(None)) == EXIT_OK


def test_default_any_error():
    assert _decide(False, ok(1), ERR, ok(2)) == EXIT_EVAL_ERROR


def test_default_no_records():
    assert _decide(False) == EXIT_OK


# ── Boolean mode ──────────────────────────────────────────────────


def test_boolean_true():
    assert _decide(True, ok(True)) == EXIT_OK


def test_boolean_false():
    assert _decide(True, ok(False)) == EXIT_FALSE


def test_boolean_error():
    assert _decide(True, ERR) == EXIT_BOOLEAN_ERROR


def test_boolean_non_boolean_result():
    assert _decide(True, ok(1)) == EXIT_BOOLEAN_ERROR
    assert _decide(True, ok("true")) == EXIT_BOOLEAN_ERROR
    assert _decide(True, ok(None)) == EXIT_BOOLEAN_ERROR


def test_boolean_aggregates_over_all_records():
    assert _decide(True, ok(True), ok(True), ok(True)) == EXIT_OK
    assert _decide(True, ok(True), ok(False), ok(True)) == EXIT_FALSE


def test_boolean_error_dominates_false():
    assert _decide(True, ok(False), ok(True), ERR) == EXIT_BOOLEAN_ERROR


def test_boolean_no_records_is_false():
    assert _decide(True) == EXIT_FALSE


def test_counters():
    decider = ExitDecider(boolean=True)
    for outcome in (ok(True), ERR, ok(False), ok(3)):
        decider.observe(outcome)
    assert decider.records == 4
    assert decider.errors == 1
    assert decider.false_results == 1
    assert decider.non_boolean == 1


def test_usage_code_is_distinct():
    assert EXIT_USAGE not in {EXIT_OK, EXIT_FALSE, EXIT_EVAL_ERROR, EXIT_BOOLEAN_ERROR}

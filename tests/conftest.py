"""Shared fixtures for celq tests."""

from __future__ import annotations

import io
from dataclasses import dataclass

import pytest

from celq.executor import run
from celq.expressions import ExpressionEngine
from celq.models import RunOptions, RunResult


@dataclass
class Captured:
    result: RunResult
    stdout: str
    stderr: str

    @property
    def lines(self) -> list[str]:
        return self.stdout.splitlines()


@pytest.fixture
def engine() -> ExpressionEngine:
    return ExpressionEngine()


@pytest.fixture
def run_text():
    """Run celq over *text* with in-memory streams."""

    def _run(options: RunOptions, text: str = "") -> Captured:
        out, err = io.StringIO(), io.StringIO()
        result = run(options, io.StringIO(text), out, err)
        return Captured(result=result, stdout=out.getvalue(), stderr=err.getvalue())

    return _run

"""Tests for the evaluation dispatcher.

Most tests use a fake engine whose evaluation time varies per record so
that worker completion order differs from input order.
"""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Iterator
from typing import Any

import pytest

from celq.dispatcher import WINDOW_FACTOR, Dispatcher, resolve_workers
from celq.errors import EvaluationError, JsonParseError
from celq.models import Bindings, CompiledProgram, Record


# ── Helpers ───────────────────────────────────────────────────────


class FakeEngine:
    """Doubles the payload after a random delay; fails on negative payloads."""

    def __init__(self, max_delay: float = 0.005) -> None:
        self._rng = random.Random(1234)
        self._lock = threading.Lock()
        self.max_delay = max_delay
        self.threads: set[str] = set()

    def evaluate(self, program: CompiledProgram, bindings: Bindings, record: Record) -> Any:
        with self._lock:
            delay = self._rng.uniform(0, self.max_delay)
            self.threads.add(threading.current_thread().name)
        time.sleep(delay)
        if record.payload < 0:
            raise EvaluationError(f"negative payload {record.payload}")
        return record.payload * 2


PROGRAM = CompiledProgram(source="this * 2", runner=None)


def _records(count: int) -> list[Record]:
    return [Record(index=i, payload=i, line=i + 1) for i in range(count)]


def _dispatcher(jobs: int, engine: Any | None = None) -> Dispatcher:
    return Dispatcher(engine or FakeEngine(), PROGRAM, Bindings(), jobs=jobs)


# ── Worker count ──────────────────────────────────────────────────


def test_resolve_workers():
    assert resolve_workers(1) == 1
    assert resolve_workers(8) == 8
    assert resolve_workers(-1) >= 1


@pytest.mark.parametrize("jobs", [0, -2])
def test_resolve_workers_rejects(jobs):
    with pytest.raises(ValueError):
        resolve_workers(jobs)


def test_window_is_multiple_of_workers():
    assert _dispatcher(3).window == 3 * WINDOW_FACTOR


# ── Ordering ──────────────────────────────────────────────────────


@pytest.mark.parametrize("jobs", [1, 2, 4, 16])
def test_output_order_matches_input_order(jobs):
    outcomes = list(_dispatcher(jobs).run(_records(200)))
    assert [o.index for o in outcomes] == list(range(200))
    assert [o.value for o in outcomes] == [i * 2 for i in range(200)]


def test_single_worker_runs_in_calling_thread():
    engine = FakeEngine(max_delay=0)
    list(_dispatcher(1, engine).run(_records(5)))
    assert engine.threads == {threading.current_thread().name}


def test_multiple_workers_use_pool_threads():
    engine = FakeEngine()
    list(_dispatcher(4, engine).run(_records(40)))
    assert all(name.startswith("celq-worker") for name in engine.threads)


def test_empty_input():
    assert list(_dispatcher(4).run([])) == []


# ── Errors ────────────────────────────────────────────────────────


@pytest.mark.parametrize("jobs", [1, 4])
def test_evaluation_errors_are_captured_per_record(jobs):
    records = [Record(index=i, payload=p) for i, p in enumerate([1, -1, 2, -2, 3])]
    outcomes = list(_dispatcher(jobs).run(records))
    assert [o.ok for o in outcomes] == [True, False, True, False, True]
    assert outcomes[1].error == "negative payload -1"
    assert outcomes[4].value == 6


@pytest.mark.parametrize("jobs", [1, 4])
def test_source_failure_drains_then_raises(jobs):
    def source() -> Iterator[Record]:
        yield from _records(10)
        raise JsonParseError("bad", line=11)

    emitted: list[int] = []
    with pytest.raises(JsonParseError):
        for outcome in _dispatcher(jobs).run(source()):
            emitted.append(outcome.index)
    assert emitted == list(range(10))


# ── Back-pressure ─────────────────────────────────────────────────


def test_producer_stays_within_window():
    jobs = 2
    dispatcher = _dispatcher(jobs, FakeEngine(max_delay=0.002))
    pulled = 0
    consumed = 0
    max_ahead = 0

    def source() -> Iterator[Record]:
        nonlocal pulled, max_ahead
        for record in _records(100):
            pulled += 1
            max_ahead = max(max_ahead, pulled - consumed)
            yield record

    for _ in dispatcher.run(source()):
        consumed += 1

    assert consumed == 100
    assert max_ahead <= dispatcher.window + 1


def test_stopping_early_does_not_read_everything():
    pulled = 0

    def source() -> Iterator[Record]:
        nonlocal pulled
        for i in range(10_000):
            pulled += 1
            yield Record(index=i, payload=i)

    outcomes = _dispatcher(2).run(source())
    next(outcomes)
    outcomes.close()
    assert pulled <= 2 * WINDOW_FACTOR + 1


# ── Real engine ───────────────────────────────────────────────────


def test_real_engine_concurrent(engine):
    program = engine.compile("this.n * factor")
    from celq.binder import bind_arguments

    dispatcher = Dispatcher(engine, program, bind_arguments(["factor:int=3"]), jobs=4)
    records = [Record(index=i, payload={"n": i}) for i in range(50)]
    assert [o.value for o in dispatcher.run(records)] == [i * 3 for i in range(50)]

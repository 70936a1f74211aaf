"""Evaluation dispatcher: apply one compiled program to every record.

With one worker, records are evaluated synchronously in order. With
more, a thread pool evaluates them concurrently while the caller's
thread stays the single producer (reading input) and the single
consumer (releasing outcomes through the collector in input order).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from celq.collector import ResultCollector
from celq.errors import EvaluationError
from celq.expressions import ExpressionEngine
from celq.models import Bindings, CompiledProgram, EvaluationOutcome, Record, check_jobs

_log = logging.getLogger("celq")

# Records allowed in flight per worker ahead of the next one to emit.
WINDOW_FACTOR = 4


def resolve_workers(jobs: int) -> int:
    """Turn a ``--jobs`` value into a worker count.

    Raises:
        ValueError: If *jobs* is 0 or below -1.
    """
    if check_jobs(jobs) == -1:
        return max(os.cpu_count() or 1, 1)
    return jobs


class Dispatcher:
    """Evaluates records against a shared program and bindings.

    Usage::

        dispatcher = Dispatcher(engine, program, bindings, jobs=4)
        for outcome in dispatcher.run(records):
            ...  # outcomes arrive in input order
    """

    def __init__(
        self,
        engine: ExpressionEngine,
        program: CompiledProgram,
        bindings: Bindings,
        jobs: int = 1,
    ) -> None:
        self.engine = engine
        self.program = program
        self.bindings = bindings
        self.workers = resolve_workers(jobs)
        self.window = self.workers * WINDOW_FACTOR

    def evaluate(self, record: Record) -> EvaluationOutcome:
        """Evaluate one record. Evaluation failures become error outcomes."""
        try:
            value = self.engine.evaluate(self.program, self.bindings, record)
        except EvaluationError as e:
            return EvaluationOutcome(index=record.index, line=record.line, error=str(e))
        return EvaluationOutcome(index=record.index, line=record.line, value=value)

    def run(self, records: Iterable[Record]) -> Iterator[EvaluationOutcome]:
        """Yield one outcome per record, in input order.

        If the record source raises, nothing more is dispatched; records
        already in flight are drained and yielded, then the error is
        re-raised.
        """
        if self.workers == 1:
            for record in records:
                yield self.evaluate(record)
            return
        yield from self._run_pool(iter(records))

    def _run_pool(self, source: Iterator[Record]) -> Iterator[EvaluationOutcome]:
        collector = ResultCollector()
        pending: set[Future[EvaluationOutcome]] = set()
        failure: BaseException | None = None
        exhausted = False

        _log.debug("Dispatching with %d workers, window %d", self.workers, self.window)
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="celq-worker"
        ) as pool:
            while True:
                while not exhausted and collector.in_flight < self.window:
                    try:
                        record = next(source)
                    except StopIteration:
                        exhausted = True
                        break
                    except Exception as e:
                        failure = e
                        exhausted = True
                        break
                    expected = collector.expect()
                    if record.index != expected:
                        raise RuntimeError(
                            f"record index {record.index} out of sequence, "
                            f"expected {expected}"
                        )
                    pending.add(pool.submit(self.evaluate, record))

                if not pending:
                    break

                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    yield from collector.push(future.result())

        if failure is not None:
            raise failure

"""Run orchestrator.

Compiles the expression once, then streams records from the input
source through the dispatcher and writes the ordered outcomes, while the
exit decider watches the same stream.
"""

from __future__ import annotations

import sys
import time
from typing import TextIO

from celq import run_logger
from celq.dispatcher import Dispatcher
from celq.errors import InputError, JsonParseError
from celq.exit_codes import EXIT_INPUT, EXIT_IO, ExitDecider
from celq.expressions import ExpressionEngine
from celq.formatter import OutputFormatter
from celq.models import EvaluationOutcome, RunOptions, RunResult
from celq.sources import open_records


def _describe(outcome: EvaluationOutcome) -> str:
    if outcome.line is not None:
        return f"record {outcome.index} (line {outcome.line})"
    return f"record {outcome.index}"


def run(
    options: RunOptions,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    *,
    engine: ExpressionEngine | None = None,
) -> RunResult:
    """Evaluate the expression over the input selected by *options*.

    1. Compiles the expression (fatal on failure, nothing is read).
    2. Streams records through the dispatcher in input order.
    3. Writes each successful result as a JSON line; reports each
       evaluation error on *stderr* and keeps going.
    4. Stops at the first malformed input line after flushing every
       result that precedes it.

    Args:
        options: Validated run configuration.
        stdin: Input stream (defaults to ``sys.stdin``; unused in null mode).
        stdout: Output stream for results (defaults to ``sys.stdout``).
        stderr: Stream for error messages (defaults to ``sys.stderr``).
        engine: Expression engine to use; a fresh one is created if omitted.

    Returns:
        RunResult with the exit code and counters.

    Raises:
        ExpressionCompileError: If the expression does not compile.
    """
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    stderr = sys.stderr if stderr is None else stderr
    engine = engine or ExpressionEngine()

    program = engine.compile(options.expression)
    dispatcher = Dispatcher(engine, program, options.bindings, options.jobs)
    run_logger.log_run_start(
        options.mode.value,
        dispatcher.workers,
        options.expression,
        options.bindings.names(),
    )

    formatter = OutputFormatter(stdout, sort=options.sort_keys)
    decider = ExitDecider(boolean=options.boolean)
    start = time.monotonic()
    exit_code: int | None = None

    outcomes = dispatcher.run(open_records(options.mode, stdin))
    try:
        for outcome in outcomes:
            decider.observe(outcome)
            if not formatter.write(outcome):
                print(f"Error: {_describe(outcome)}: {outcome.error}", file=stderr)
                run_logger.log_record_error(outcome.index, outcome.line, outcome.error)
        formatter.flush()
    except (JsonParseError, InputError) as e:
        exit_code = EXIT_INPUT
        try:
            formatter.flush()
        except OSError as write_error:
            print(f"Error: failed to write output: {write_error}", file=stderr)
            exit_code = EXIT_IO
        print(f"Error: {e}", file=stderr)
        run_logger.log_input_error(str(e), getattr(e, "line", None))
    except OSError as e:
        print(f"Error: failed to write output: {e}", file=stderr)
        exit_code = EXIT_IO
    finally:
        outcomes.close()

    if exit_code is None:
        exit_code = decider.code
    duration_ms = (time.monotonic() - start) * 1000
    run_logger.log_run_complete(decider.records, decider.errors, exit_code, duration_ms)

    return RunResult(
        exit_code=exit_code,
        records=decider.records,
        errors=decider.errors,
        lines_written=formatter.lines_written,
        duration_ms=duration_ms,
    )

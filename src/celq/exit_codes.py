"""Process exit codes and the decision of which one a run ends with."""

from __future__ import annotations

from celq.models import EvaluationOutcome

EXIT_OK = 0
EXIT_FALSE = 1
EXIT_EVAL_ERROR = 1
EXIT_BOOLEAN_ERROR = 2
# sysexits.h EX_USAGE, EX_DATAERR and EX_IOERR
EXIT_USAGE = 64
EXIT_INPUT = 65
EXIT_IO = 74


class ExitDecider:
    """Aggregates the outcome stream into an exit code.

    Default mode: 0 unless any record failed to evaluate (1).

    Boolean mode aggregates over every record: any evaluation error or
    non-boolean result gives 2, otherwise any ``false`` gives 1, otherwise
    0. A run that produced no records at all counts as false.
    """

    def __init__(self, boolean: bool = False) -> None:
        self.boolean = boolean
        self.records = 0
        self.errors = 0
        self.non_boolean = 0
        self.false_results = 0

    def observe(self, outcome: EvaluationOutcome) -> None:
        self.records += 1
        if not outcome.ok:
            self.errors += 1
        elif not isinstance(outcome.value, bool):
            self.non_boolean += 1
        elif outcome.value is False:
            self.false_results += 1

    @property
    def code(self) -> int:
        if not self.boolean:
            return EXIT_EVAL_ERROR if self.errors else EXIT_OK
        if self.errors or self.non_boolean:
            return EXIT_BOOLEAN_ERROR
        if self.false_results or not self.records:
            return EXIT_FALSE
        return EXIT_OK

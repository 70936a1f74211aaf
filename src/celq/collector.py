"""Reorders evaluation outcomes back into input order."""

from __future__ import annotations

from celq.models import EvaluationOutcome


class ResultCollector:
    """Holding buffer addressed by record index.

    Outcomes may be pushed in any order; they are released strictly in
    sequence starting at index 0. ``in_flight`` counts records that were
    submitted but not yet released, which the dispatcher uses as its
    back-pressure window.
    """

    def __init__(self) -> None:
        self._held: dict[int, EvaluationOutcome] = {}
        self._next = 0
        self._submitted = 0

    @property
    def next_index(self) -> int:
        return self._next

    @property
    def in_flight(self) -> int:
        return self._submitted - self._next

    @property
    def buffered(self) -> int:
        return len(self._held)

    @property
    def drained(self) -> bool:
        return self._submitted == self._next

    def expect(self) -> int:
        """Register one more submitted record and return its index."""
        index = self._submitted
        self._submitted += 1
        return index

    def push(self, outcome: EvaluationOutcome) -> list[EvaluationOutcome]:
        """Accept an outcome and return those now releasable, in order.

        Raises:
            ValueError: If the index was never submitted, was already
                released, or is already held.
        """
        index = outcome.index
        if index < self._next or index >= self._submitted:
            raise ValueError(
                f"outcome index {index} outside the in-flight range "
                f"[{self._next}, {self._submitted})"
            )
        if index in self._held:
            raise ValueError(f"duplicate outcome for index {index}")
        self._held[index] = outcome

        ready: list[EvaluationOutcome] = []
        while self._next in self._held:
            ready.append(self._held.pop(self._next))
            self._next += 1
        return ready

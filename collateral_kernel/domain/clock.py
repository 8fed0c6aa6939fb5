"""
Clock -- Deterministic epoch abstraction.

Responsibility:
    Provides an injectable epoch source so that services never invent
    their own notion of "now".  The execution environment supplies a
    monotonically non-decreasing integer epoch (block height in the
    original financing domain); every mutation stamps that value.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Epochs are non-negative integers.
    - An epoch never moves backwards.

Failure modes:
    - ValueError when asked to move a clock backwards or to start below 0.
    - SequentialEpochClock raises ValueError if constructed empty.
"""

from abc import ABC, abstractmethod
from typing import Iterator


class EpochClock(ABC):
    """
    Abstract epoch clock interface.

    Contract:
        All services that stamp or compare epochs receive an EpochClock
        via constructor injection.

    Guarantees:
        - ``current_epoch()`` returns an ``int >= 0``.
        - Successive calls never return a smaller value.
    """

    @abstractmethod
    def current_epoch(self) -> int:
        """Get the current epoch."""
        ...


class DeterministicEpochClock(EpochClock):
    """
    Test and replay clock with a controlled epoch.

    Guarantees:
        - ``current_epoch()`` returns the same value until ``advance()``,
          ``tick()`` or ``set_epoch()`` is called.
    """

    def __init__(self, epoch: int = 1):
        if epoch < 0:
            raise ValueError(f"Epoch must be non-negative, got {epoch}")
        self._epoch = epoch

    def current_epoch(self) -> int:
        return self._epoch

    def set_epoch(self, epoch: int) -> None:
        """Jump to a specific epoch (never backwards)."""
        if epoch < self._epoch:
            raise ValueError(
                f"Epoch cannot move backwards: {self._epoch} -> {epoch}"
            )
        self._epoch = epoch

    def advance(self, epochs: int = 1) -> None:
        """Advance the clock by the given number of epochs."""
        if epochs < 0:
            raise ValueError(f"Cannot advance by a negative amount: {epochs}")
        self._epoch += epochs

    def tick(self) -> int:
        """Advance by one epoch and return the new value."""
        self.advance(1)
        return self._epoch


class SequentialEpochClock(EpochClock):
    """
    Clock that returns epochs from a predefined sequence.

    After exhaustion the last value repeats.

    Raises:
        ValueError: If initialized with an empty or decreasing sequence.
    """

    def __init__(self, epochs: list[int]):
        if not epochs:
            raise ValueError("SequentialEpochClock requires at least one epoch")
        if any(b < a for a, b in zip(epochs, epochs[1:])):
            raise ValueError("SequentialEpochClock epochs must be non-decreasing")
        self._epochs: Iterator[int] = iter(epochs)
        self._last: int = epochs[0]

    def current_epoch(self) -> int:
        """Get the next epoch in sequence."""
        self._last = next(self._epochs, self._last)
        return self._last

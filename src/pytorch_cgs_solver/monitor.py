"""
Per-iteration diagnostics for the iterative solvers.

A monitor is an optional sink attached to a solver. After every iteration
the solver calls ``monitor(iteration, residual_norm)``; conditions such as
a breakdown are reported through ``monitor.message(text)`` when the monitor
has that method, so a plain function also works. Solvers without a monitor
skip all formatting.
"""

import sys
from typing import List, Optional, Protocol, TextIO, Tuple, runtime_checkable


@runtime_checkable
class IterationMonitor(Protocol):
    """Protocol for progress reporters attached to a solver."""

    def __call__(self, iteration: int, residual_norm: float) -> None:
        ...

    def message(self, text: str) -> None:
        ...


class StreamMonitor:
    """
    Write one fixed-point line per iteration to a text stream.

    Each line is flushed as soon as it is written, so progress of a long
    solve is visible while it runs.

    Example:
        >>> solver = CGSSolver(A, monitor=StreamMonitor())
        >>> x = solver.solve(b)
             0     1.2345678901
             1     0.0123456789
    """

    def __init__(self, stream: Optional[TextIO] = None, precision: int = 10):
        self.stream = stream if stream is not None else sys.stdout
        self.precision = precision

    def __call__(self, iteration: int, residual_norm: float) -> None:
        self.stream.write(f"{iteration:6d} {residual_norm:16.{self.precision}f}\n")
        self.stream.flush()

    def message(self, text: str) -> None:
        self.stream.write(f"{text}\n")
        self.stream.flush()


class HistoryMonitor:
    """Record ``(iteration, residual_norm)`` pairs and messages in memory."""

    def __init__(self):
        self.history: List[Tuple[int, float]] = []
        self.messages: List[str] = []

    def __call__(self, iteration: int, residual_norm: float) -> None:
        self.history.append((iteration, residual_norm))

    def message(self, text: str) -> None:
        self.messages.append(text)

    @property
    def residual_norms(self) -> List[float]:
        return [norm for _, norm in self.history]

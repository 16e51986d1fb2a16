"""
Error reporting for pytorch_cgs_solver.

Structural input errors (a non-square matrix, a right-hand side of the wrong
length, a missing operator) never raise. The solver records a ``SolverError``
code and hands a readable message to an error handler injected at
construction. The default handler turns the message into a warning.
"""

import sys
import warnings
from enum import Enum
from typing import Callable


class SolverError(Enum):
    """Error codes reported by the solvers."""
    OK = "ok"
    NOT_SQUARE_MATRIX = "not_square_matrix"
    SIZE_MISMATCH = "size_mismatch"
    NIL_OPERATOR = "nil_operator"


class SolverWarning(UserWarning):
    """Warning category used by the default error handler."""


ErrorHandler = Callable[[SolverError, str], None]


def _is_library_frame(frame) -> bool:
    name = frame.f_globals.get("__name__", "")
    if name.startswith(__package__ + ".tests"):
        return False
    return name == __package__ or name.startswith(__package__ + ".")


def _caller_stacklevel() -> int:
    """``stacklevel`` for ``warnings.warn`` that lands on the first frame outside the package."""
    frame = sys._getframe(2)
    level = 2
    while frame is not None and _is_library_frame(frame):
        frame = frame.f_back
        level += 1
    return level


def warning_error_handler(error: SolverError, message: str) -> None:
    """
    Report a structural error as a ``SolverWarning``.

    The warning points at the line of user code that started the solve,
    whichever entry point was used.
    """
    warnings.warn(f"[{error.value}] {message}", SolverWarning, stacklevel=_caller_stacklevel())


def silent_error_handler(error: SolverError, message: str) -> None:
    """Ignore structural errors; callers inspect ``solver.error`` instead."""

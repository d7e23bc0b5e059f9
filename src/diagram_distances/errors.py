from typing import Optional


class DiagramDistanceError(Exception):
    """Base class for all errors raised by diagram_distances."""


class DiagramValidationError(DiagramDistanceError, ValueError):
    """A persistence diagram is malformed or has a death before its birth."""

    def __init__(self, argument: str, row: Optional[int] = None, reason: str = "contains pairs with death prior to birth"):
        self.argument = argument
        self.row = row
        self.reason = reason
        where = f" (row {row})" if row is not None else ""
        super().__init__(f"`{argument}` {reason}{where}.")


class ConvergenceError(DiagramDistanceError, RuntimeError):
    """The epsilon-scaling loop ran out of phases before reaching the tolerance."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        # Best matching found before giving up
        self.result = result


class AssignmentConsistencyError(DiagramDistanceError, AssertionError):
    """The bidder/item maps of an auction disagree with each other."""

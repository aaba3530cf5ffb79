"""Error types raised by squad selection and lineup building."""

from __future__ import annotations


class SquadError(Exception):
    """Base class for all pysquad domain errors."""


class InvalidConfiguration(SquadError, ValueError):
    """Raised when squad parameters are inconsistent (quotas, budget, size)."""


class DataIntegrityError(SquadError, ValueError):
    """Raised when a malformed candidate record reaches the optimizer."""


class InfeasiblePool(SquadError):
    """Raised when a candidate pool cannot fill a position quota by count alone."""

    def __init__(self, group: str, required: int, available: int):
        super().__init__(
            f"Pool has {available} {group} candidates but the quota requires {required}"
        )
        self.group = group
        self.required = required
        self.available = available


class SolverFailure(SquadError):
    """Raised when the integer program does not produce a proven optimum."""

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


class SolverTimeout(SolverFailure):
    """The solver hit its time limit before certifying optimality."""


class SolverInfeasible(SolverFailure):
    """The solver proved that no roster satisfies the constraints."""


class UnderfilledFormation(SquadError):
    """Raised when a roster lacks enough members to fill a formation."""

    def __init__(self, group: str, required: int, available: int):
        super().__init__(
            f"Formation needs {required} {group} but the roster has {available}"
        )
        self.group = group
        self.required = required
        self.available = available


__all__ = [
    "SquadError",
    "InvalidConfiguration",
    "DataIntegrityError",
    "InfeasiblePool",
    "SolverFailure",
    "SolverTimeout",
    "SolverInfeasible",
    "UnderfilledFormation",
]

"""Pydantic models for API I/O."""

from .squad import (
    ChemistryPayload,
    GreedyComparisonResponse,
    LineupPlayerResponse,
    LineupResponse,
    RosterPlayerResponse,
    SquadRequest,
    SquadResponse,
    SquadSummaryResponse,
)

__all__ = [
    "ChemistryPayload",
    "GreedyComparisonResponse",
    "LineupPlayerResponse",
    "LineupResponse",
    "RosterPlayerResponse",
    "SquadRequest",
    "SquadResponse",
    "SquadSummaryResponse",
]

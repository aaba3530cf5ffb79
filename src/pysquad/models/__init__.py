"""Domain records: candidates, pools, rosters and lineups."""

from .player import POSITION_ORDER, Candidate, CandidatePool, PlayerProfile, PositionGroup
from .squad import Lineup, LineupSlot, Roster, SolutionPath

__all__ = [
    "POSITION_ORDER",
    "Candidate",
    "CandidatePool",
    "PlayerProfile",
    "PositionGroup",
    "Lineup",
    "LineupSlot",
    "Roster",
    "SolutionPath",
]

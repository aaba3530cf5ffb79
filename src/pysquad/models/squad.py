"""Roster and lineup value objects produced by the optimizer and selector."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .player import POSITION_ORDER, Candidate, PositionGroup

_BUDGET_TOLERANCE = 1e-9


class SolutionPath(str, Enum):
    """Which algorithm produced a roster."""

    EXACT = "exact"
    FALLBACK = "fallback"


def _canonical_order(players: Tuple[Candidate, ...]) -> Tuple[Candidate, ...]:
    return tuple(
        sorted(
            players,
            key=lambda c: (POSITION_ORDER.index(c.position), -c.quality, c.player_id),
        )
    )


@dataclass(frozen=True)
class Roster:
    """Selected squad. Exact rosters respect the budget; fallback rosters may not."""

    players: Tuple[Candidate, ...]
    path: SolutionPath
    budget: float
    solver_status: Optional[str] = None
    fallback_reason: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "players", _canonical_order(tuple(self.players)))

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.players)

    def __len__(self) -> int:
        return len(self.players)

    @property
    def total_cost(self) -> float:
        return float(sum(player.cost for player in self.players))

    @property
    def total_quality(self) -> float:
        return float(sum(player.quality for player in self.players))

    @property
    def budget_remaining(self) -> float:
        return self.budget - self.total_cost

    @property
    def within_budget(self) -> bool:
        return self.total_cost <= self.budget + _BUDGET_TOLERANCE * max(1.0, abs(self.budget))

    @property
    def is_optimal(self) -> bool:
        return self.path is SolutionPath.EXACT

    @property
    def budget_checked(self) -> bool:
        # Greedy selection never looks at the budget.
        return self.path is SolutionPath.EXACT

    @property
    def player_ids(self) -> Tuple[str, ...]:
        return tuple(player.player_id for player in self.players)

    def by_group(self, group: PositionGroup) -> List[Candidate]:
        return [player for player in self.players if player.position == group]

    def count(self, group: PositionGroup) -> int:
        return sum(1 for player in self.players if player.position == group)


@dataclass(frozen=True)
class LineupSlot:
    slot: str
    candidate: Candidate


@dataclass(frozen=True)
class Lineup:
    """Starting selection drawn from a roster for one formation."""

    formation: str
    slots: Tuple[LineupSlot, ...]
    label: Optional[str] = None

    def __iter__(self) -> Iterator[LineupSlot]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    @property
    def players(self) -> Tuple[Candidate, ...]:
        return tuple(slot.candidate for slot in self.slots)

    @property
    def player_ids(self) -> Tuple[str, ...]:
        return tuple(slot.candidate.player_id for slot in self.slots)

    @property
    def total_quality(self) -> float:
        return float(sum(slot.candidate.quality for slot in self.slots))

    def count(self, group: PositionGroup) -> int:
        return sum(1 for slot in self.slots if slot.candidate.position == group)

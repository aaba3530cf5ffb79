"""Chemistry scoring for lineups and chemistry-adjusted selection scores."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Hashable, Iterable, Optional, Sequence, TypeVar

from pysquad.config import ChemistryWeights
from pysquad.models import Candidate

T = TypeVar("T", bound=Hashable)

DEFAULT_WEIGHTS = ChemistryWeights()


def _shared(first: str, second: str) -> bool:
    # A blank club or nationality is unknown, never a match.
    return bool(first) and first == second


def _pair_bonus(first: Candidate, second: Candidate, weights: ChemistryWeights) -> float:
    if _shared(first.club, second.club):
        return weights.same_club_bonus
    if _shared(first.nationality, second.nationality):
        return weights.same_nationality_bonus
    return 0.0


def chemistry_score(players: Iterable[Candidate], weights: ChemistryWeights = DEFAULT_WEIGHTS) -> float:
    """Sum pairwise bonuses over every unordered pair of ``players``.

    A shared club earns ``same_club_bonus``; otherwise a shared nationality
    earns ``same_nationality_bonus``. The result does not depend on the
    order of ``players`` and never exceeds ``max(bonus) * n * (n - 1) / 2``.
    """

    members = list(players)
    return float(sum(_pair_bonus(a, b, weights) for a, b in combinations(members, 2)))


def most_common(values: Iterable[T]) -> Optional[T]:
    """Most frequent non-blank value; ties go to the value seen first.

    ``None`` and empty strings are not counted. Returns ``None`` when nothing
    is left.
    """

    counts = Counter(value for value in values if value is not None and value != "")
    if not counts:
        return None
    return counts.most_common(1)[0][0]


@dataclass(frozen=True)
class ChemistryAnchor:
    club: Optional[str]
    nationality: Optional[str]


def chemistry_anchor(players: Sequence[Candidate]) -> ChemistryAnchor:
    """The squad's most common club and nationality."""

    return ChemistryAnchor(
        club=most_common(player.club for player in players),
        nationality=most_common(player.nationality for player in players),
    )


def chemistry_weight(
    candidate: Candidate,
    anchor: ChemistryAnchor,
    weights: ChemistryWeights = DEFAULT_WEIGHTS,
) -> float:
    weight = 0.0
    if anchor.club and candidate.club == anchor.club:
        weight += weights.same_club_bonus
    if anchor.nationality and candidate.nationality == anchor.nationality:
        weight += weights.same_nationality_bonus
    return weight


def selection_scores(
    players: Sequence[Candidate],
    weights: ChemistryWeights = DEFAULT_WEIGHTS,
    anchor: Optional[ChemistryAnchor] = None,
) -> Dict[str, float]:
    """Quality boosted by chemistry with the squad anchor, keyed by player id.

    Scores are returned as a new mapping; candidates are left untouched.
    """

    anchor = anchor or chemistry_anchor(players)
    return {
        player.player_id: player.quality
        + chemistry_weight(player, anchor, weights) * weights.importance_multiplier
        for player in players
    }

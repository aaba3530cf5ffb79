"""Pick a starting lineup from a roster for a formation and ranking rule."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pysquad.config import Formation, normalize_quotas
from pysquad.errors import InvalidConfiguration, UnderfilledFormation
from pysquad.models import POSITION_ORDER, Candidate, Lineup, LineupSlot, PositionGroup, Roster

logger = logging.getLogger(__name__)

RankingKey = Callable[[Candidate], Optional[float]]
RankingKeys = Union[RankingKey, Mapping[Any, RankingKey]]
FormationLike = Union[Formation, Mapping[Any, int]]


def by_quality(candidate: Candidate) -> float:
    return candidate.quality


def by_attribute(name: str) -> RankingKey:
    """Rank by a named score; players without it sort after everyone else.

    ``name`` may be a model field such as ``offensive_score`` or a key of
    ``Candidate.attributes``.
    """

    def key(candidate: Candidate) -> Optional[float]:
        value = getattr(candidate, name, None) if name in Candidate.model_fields else None
        if value is None:
            value = candidate.attributes.get(name)
        return value

    key.__name__ = f"by_{name}"
    return key


def by_score_map(scores: Mapping[str, float]) -> RankingKey:
    """Rank by precomputed scores keyed by player id (e.g. selection scores)."""

    def key(candidate: Candidate) -> Optional[float]:
        return scores.get(candidate.player_id)

    return key


def _sort_key(key: RankingKey) -> Callable[[Candidate], Tuple[int, float, str]]:
    def wrapped(candidate: Candidate) -> Tuple[int, float, str]:
        value = key(candidate)
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return (1, 0.0, candidate.player_id)
        return (0, -float(value), candidate.player_id)

    return wrapped


def _resolve_counts(formation: FormationLike) -> Tuple[str, Dict[PositionGroup, int]]:
    if isinstance(formation, Formation):
        return formation.code, dict(formation.counts)
    counts = normalize_quotas(formation)
    code = "-".join(str(counts[group]) for group in POSITION_ORDER[1:])
    return code, counts


def _resolve_keys(ranking_key: RankingKeys) -> Dict[PositionGroup, RankingKey]:
    if callable(ranking_key):
        return {group: ranking_key for group in POSITION_ORDER}
    keys: Dict[PositionGroup, RankingKey] = {}
    for raw_group, key in ranking_key.items():
        try:
            group = PositionGroup.parse(raw_group)
        except ValueError as exc:
            raise InvalidConfiguration(f"Unknown ranking group {raw_group!r}") from exc
        if not callable(key):
            raise InvalidConfiguration(f"Ranking key for {group.value} is not callable")
        keys[group] = key
    return keys


def select_lineup(
    roster: Union[Roster, Iterable[Candidate]],
    formation: FormationLike,
    ranking_key: RankingKeys = by_quality,
    *,
    label: Optional[str] = None,
) -> Lineup:
    """Take the top-N of each group by ``ranking_key`` (descending).

    Ties fall back to the lower player id. A group with fewer roster members
    than the formation needs raises ``UnderfilledFormation``; lineups are
    never padded.

    ``formation`` may be a plain group-to-count mapping. Such a mapping is
    taken as given: it is not checked against the eleven-slot rule that a
    registered ``Formation`` enforces.
    """

    code, counts = _resolve_counts(formation)
    keys = _resolve_keys(ranking_key)
    players = list(roster)

    slots: List[LineupSlot] = []
    for group in POSITION_ORDER:
        required = counts.get(group, 0)
        if required == 0:
            continue
        members = [player for player in players if player.position == group]
        if len(members) < required:
            raise UnderfilledFormation(group.value, required, len(members))
        key = keys.get(group, by_quality)
        ranked = sorted(members, key=_sort_key(key))
        slots.extend(
            LineupSlot(slot=f"{group.value}{idx}", candidate=player)
            for idx, player in enumerate(ranked[:required], start=1)
        )
    return Lineup(formation=code, slots=tuple(slots), label=label)


@dataclass(frozen=True)
class LineupRequest:
    formation: FormationLike
    ranking_key: RankingKeys = by_quality
    label: Optional[str] = None


def select_lineups(
    roster: Roster,
    requests: Sequence[LineupRequest],
    *,
    workers: int = 1,
) -> List[Lineup]:
    """Evaluate several lineup requests against one roster, preserving order."""

    def run(request: LineupRequest) -> Lineup:
        return select_lineup(roster, request.formation, request.ranking_key, label=request.label)

    if workers <= 1 or len(requests) <= 1:
        return [run(request) for request in requests]
    logger.debug("Selecting %s lineups on %s threads", len(requests), workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(run, requests))

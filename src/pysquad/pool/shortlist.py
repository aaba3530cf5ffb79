"""Turn valued player profiles into the optimizer's candidate pool."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import logging
from typing import Dict, List, Mapping, Sequence, Tuple

from pysquad.config import ShortlistCriteria
from pysquad.models import Candidate, CandidatePool, PlayerProfile


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShortlistSummary:
    considered: int
    shortlisted: int
    excluded: Dict[str, int]
    group_counts: Dict[str, int]


def _exclusion_reason(
    profile: PlayerProfile,
    predicted: float | None,
    criteria: ShortlistCriteria,
) -> str | None:
    if predicted is None:
        return "no_prediction"
    if profile.overall < criteria.min_overall:
        return "overall"
    if criteria.max_age is not None and profile.age > criteria.max_age:
        return "age"
    if criteria.min_potential is not None and profile.potential < criteria.min_potential:
        return "potential"
    if criteria.require_positive_value_gap and predicted - profile.value <= 0:
        return "value_gap"
    if profile.value <= 0:
        return "zero_cost"
    return None


def profile_to_candidate(profile: PlayerProfile, predicted: float) -> Candidate:
    """Quality is the overall rating and cost the current market value."""

    attributes = dict(profile.attributes)
    attributes["value_score"] = profile.overall / (profile.value / 1e6)
    attributes["potential"] = profile.potential
    attributes["wage"] = profile.wage
    if profile.passing_score is not None:
        attributes["passing_score"] = profile.passing_score
    if profile.physical_score is not None:
        attributes["physical_score"] = profile.physical_score
    return Candidate(
        player_id=profile.player_id,
        name=profile.name,
        position=profile.position_group,
        quality=profile.overall,
        cost=profile.value,
        club=profile.club,
        nationality=profile.nationality,
        age=profile.age,
        predicted_value=predicted,
        value_gap=predicted - profile.value,
        offensive_score=profile.offensive_score,
        defensive_score=profile.defensive_score,
        goalkeeping_score=profile.goalkeeping_score,
        attributes=attributes,
    )


def build_candidate_pool(
    profiles: Sequence[PlayerProfile],
    predicted_values: Mapping[str, float],
    criteria: ShortlistCriteria | None = None,
) -> Tuple[CandidatePool, ShortlistSummary]:
    """Keep undervalued players that meet the rating, age and potential bars."""

    criteria = criteria or ShortlistCriteria()
    candidates: List[Candidate] = []
    excluded: Counter[str] = Counter()
    for profile in profiles:
        predicted = predicted_values.get(profile.player_id)
        reason = _exclusion_reason(profile, predicted, criteria)
        if reason is not None:
            excluded[reason] += 1
            continue
        candidates.append(profile_to_candidate(profile, predicted))

    pool = CandidatePool(tuple(candidates))
    summary = ShortlistSummary(
        considered=len(profiles),
        shortlisted=len(pool),
        excluded=dict(excluded),
        group_counts={group.value: count for group, count in pool.counts().items()},
    )
    logger.info(
        "Shortlisted %s of %s players (%s)",
        summary.shortlisted,
        summary.considered,
        ", ".join(f"{group}:{count}" for group, count in summary.group_counts.items()),
    )
    return pool, summary

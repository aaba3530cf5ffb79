"""Game-day playbook: the four standard lineups, set-piece takers and bench impact subs."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pysquad.config import ChemistryWeights, get_formation
from pysquad.models import Candidate, Lineup, PositionGroup, Roster

from .chemistry import ChemistryAnchor, chemistry_anchor, chemistry_score, selection_scores
from .selector import LineupRequest, by_attribute, by_quality, by_score_map, select_lineups

logger = logging.getLogger(__name__)

GK = PositionGroup.GOALKEEPER
DEF = PositionGroup.DEFENDER
MID = PositionGroup.MIDFIELDER
FWD = PositionGroup.FORWARD

STANDARD_LINEUPS: Tuple[str, ...] = ("chemistry", "balanced", "defensive", "offensive")

# Role -> attributes summed to rank the squad for that set piece.
SET_PIECE_ROLES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Penalty Taker", ("penalties", "composure")),
    ("Direct Free Kick", ("fk_accuracy", "curve", "shot_power")),
    ("Corner Kicks", ("crossing", "curve")),
    ("Long Throw-Ins", ("strength",)),
)

# Role -> eligible groups and the score used to rank bench players.
SUBSTITUTE_ROLES: Tuple[Tuple[str, Tuple[PositionGroup, ...], str], ...] = (
    ("Offensive Spark", (FWD, MID), "offensive_score"),
    ("Defensive Closer", (DEF, MID), "defensive_score"),
    ("Fresh Legs", (MID, FWD), "stamina"),
)


@dataclass(frozen=True)
class RolePick:
    role: str
    candidate: Optional[Candidate]
    score: Optional[float] = None


@dataclass(frozen=True)
class Playbook:
    lineups: Dict[str, Lineup]
    chemistry: Dict[str, float]
    anchor: ChemistryAnchor
    specialists: Tuple[RolePick, ...] = field(default_factory=tuple)
    substitutes: Tuple[RolePick, ...] = field(default_factory=tuple)


def build_standard_lineups(
    roster: Roster,
    weights: ChemistryWeights = ChemistryWeights(),
    *,
    workers: int = 1,
) -> Dict[str, Lineup]:
    """Chemistry and balanced 4-4-2, defensive 5-3-2 and offensive 4-3-3.

    Goalkeepers are always chosen by goalkeeping score.
    """

    players = list(roster)
    keeper = by_attribute("goalkeeping_score")
    chemistry_key = by_score_map(selection_scores(players, weights))
    defensive = by_attribute("defensive_score")
    offensive = by_attribute("offensive_score")

    requests = [
        LineupRequest(
            get_formation("4-4-2"),
            {GK: keeper, DEF: chemistry_key, MID: chemistry_key, FWD: chemistry_key},
            label="chemistry",
        ),
        LineupRequest(
            get_formation("4-4-2"),
            {GK: keeper, DEF: by_quality, MID: by_quality, FWD: by_quality},
            label="balanced",
        ),
        LineupRequest(
            get_formation("5-3-2"),
            {GK: keeper, DEF: defensive, MID: defensive, FWD: by_quality},
            label="defensive",
        ),
        LineupRequest(
            get_formation("4-3-3"),
            {GK: keeper, DEF: by_quality, MID: offensive, FWD: offensive},
            label="offensive",
        ),
    ]
    lineups = select_lineups(roster, requests, workers=workers)
    return {lineup.label: lineup for lineup in lineups}


def _attribute_total(candidate: Candidate, names: Sequence[str]) -> Optional[float]:
    total = 0.0
    for name in names:
        value = by_attribute(name)(candidate)
        if value is None:
            return None
        total += value
    return total


def _best(players: Iterable[Candidate], score) -> Tuple[Optional[Candidate], Optional[float]]:
    scored = [(score(player), player) for player in players]
    scored = [(value, player) for value, player in scored if value is not None]
    if not scored:
        return None, None
    value, player = min(scored, key=lambda item: (-item[0], item[1].player_id))
    return player, value


def set_piece_specialists(players: Iterable[Candidate]) -> Tuple[RolePick, ...]:
    """Best squad member for each set piece; ``None`` when nobody has the attributes."""

    members = list(players)
    picks: List[RolePick] = []
    for role, attributes in SET_PIECE_ROLES:
        candidate, score = _best(members, lambda c, names=attributes: _attribute_total(c, names))
        if candidate is None:
            logger.debug("No squad member carries %s; leaving %s unassigned", attributes, role)
        picks.append(RolePick(role, candidate, score))
    return tuple(picks)


def impact_substitutes(roster: Iterable[Candidate], starters: Lineup) -> Tuple[RolePick, ...]:
    """Best bench option for each late-game role, excluding the starting XI."""

    starting = set(starters.player_ids)
    bench = [player for player in roster if player.player_id not in starting]
    picks: List[RolePick] = []
    for role, groups, attribute in SUBSTITUTE_ROLES:
        eligible = [player for player in bench if player.position in groups]
        candidate, score = _best(eligible, by_attribute(attribute))
        picks.append(RolePick(role, candidate, score))
    return tuple(picks)


def build_playbook(
    roster: Roster,
    weights: ChemistryWeights = ChemistryWeights(),
    *,
    workers: int = 1,
) -> Playbook:
    lineups = build_standard_lineups(roster, weights, workers=workers)
    chemistry = {label: chemistry_score(lineup.players, weights) for label, lineup in lineups.items()}
    anchor = chemistry_anchor(list(roster))
    logger.info(
        "Playbook built – anchor club %s, nationality %s, chemistry XI score %.1f",
        anchor.club,
        anchor.nationality,
        chemistry["chemistry"],
    )
    return Playbook(
        lineups=lineups,
        chemistry=chemistry,
        anchor=anchor,
        specialists=set_piece_specialists(roster),
        substitutes=impact_substitutes(roster, lineups["balanced"]),
    )

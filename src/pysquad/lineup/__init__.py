"""Lineup selection, chemistry scoring and game-day playbook helpers."""

from .chemistry import (
    ChemistryAnchor,
    chemistry_anchor,
    chemistry_score,
    chemistry_weight,
    most_common,
    selection_scores,
)
from .playbook import (
    Playbook,
    RolePick,
    build_playbook,
    build_standard_lineups,
    impact_substitutes,
    set_piece_specialists,
)
from .selector import (
    LineupRequest,
    by_attribute,
    by_quality,
    by_score_map,
    select_lineup,
    select_lineups,
)

__all__ = [
    "ChemistryAnchor",
    "chemistry_anchor",
    "chemistry_score",
    "chemistry_weight",
    "most_common",
    "selection_scores",
    "Playbook",
    "RolePick",
    "build_playbook",
    "build_standard_lineups",
    "impact_substitutes",
    "set_piece_specialists",
    "LineupRequest",
    "by_attribute",
    "by_quality",
    "by_score_map",
    "select_lineup",
    "select_lineups",
]

"""CSV export helpers for rosters and lineups."""

from __future__ import annotations

import csv
from io import StringIO
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from pysquad.models import Candidate, Lineup, Roster

ROSTER_HEADERS: tuple[str, ...] = (
    "player_id",
    "name",
    "position",
    "quality",
    "cost",
    "club",
    "nationality",
)
LINEUP_HEADERS: tuple[str, ...] = ("slot", *ROSTER_HEADERS)


def _candidate_row(candidate: Candidate) -> Dict[str, object]:
    return {
        "player_id": candidate.player_id,
        "name": candidate.name,
        "position": candidate.position.value,
        "quality": candidate.quality,
        "cost": candidate.cost,
        "club": candidate.club,
        "nationality": candidate.nationality,
    }


def roster_to_rows(roster: Roster) -> List[Dict[str, object]]:
    """One row per player in roster order (GK, DEF, MID, FWD; quality desc)."""

    return [_candidate_row(player) for player in roster]


def lineup_to_rows(lineup: Lineup) -> List[Dict[str, object]]:
    return [{"slot": slot.slot, **_candidate_row(slot.candidate)} for slot in lineup]


def _to_csv(rows: Iterable[Dict[str, object]], headers: Sequence[str]) -> str:
    buffer = StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(headers), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def export_roster_csv(roster: Roster, path: Path | None = None) -> str:
    """Render the roster as CSV text, also writing it to ``path`` when given."""

    text = _to_csv(roster_to_rows(roster), ROSTER_HEADERS)
    if path is not None:
        path.write_text(text, encoding="utf-8")
    return text


def export_lineup_csv(lineup: Lineup, path: Path | None = None) -> str:
    text = _to_csv(lineup_to_rows(lineup), LINEUP_HEADERS)
    if path is not None:
        path.write_text(text, encoding="utf-8")
    return text


__all__ = [
    "ROSTER_HEADERS",
    "LINEUP_HEADERS",
    "roster_to_rows",
    "lineup_to_rows",
    "export_roster_csv",
    "export_lineup_csv",
]

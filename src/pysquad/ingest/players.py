"""Load raw player-universe CSVs and emit cleaned player profiles."""

from __future__ import annotations

import csv
import io
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pysquad.models import PlayerProfile, PositionGroup


logger = logging.getLogger(__name__)

DEFENDER_CODES = frozenset({"CB", "LB", "RB", "LCB", "RCB", "LWB", "RWB"})
MIDFIELDER_CODES = frozenset({"CM", "CDM", "CAM", "LM", "RM", "LCM", "RCM"})

SKILL_ATTRIBUTES: Tuple[str, ...] = (
    "crossing",
    "finishing",
    "heading_accuracy",
    "short_passing",
    "volleys",
    "dribbling",
    "curve",
    "fk_accuracy",
    "long_passing",
    "ball_control",
    "acceleration",
    "sprint_speed",
    "agility",
    "reactions",
    "balance",
    "shot_power",
    "jumping",
    "stamina",
    "strength",
    "long_shots",
    "aggression",
    "interceptions",
    "positioning",
    "vision",
    "penalties",
    "composure",
    "marking",
    "standing_tackle",
    "sliding_tackle",
    "gk_diving",
    "gk_handling",
    "gk_kicking",
    "gk_positioning",
    "gk_reflexes",
)

TACTICAL_SCORES: Mapping[str, Tuple[str, ...]] = {
    "offensive_score": ("finishing", "shot_power", "long_shots", "positioning", "dribbling", "sprint_speed"),
    "defensive_score": (
        "marking",
        "standing_tackle",
        "sliding_tackle",
        "interceptions",
        "strength",
        "heading_accuracy",
    ),
    "goalkeeping_score": ("gk_diving", "gk_handling", "gk_kicking", "gk_positioning", "gk_reflexes"),
    "passing_score": ("short_passing", "long_passing", "crossing", "vision"),
    "physical_score": ("strength", "stamina", "aggression"),
}

REQUIRED_FIELDS: Tuple[str, ...] = ("overall", "value", "wage", "potential")


def clean_column_name(name: str) -> str:
    """snake_case a header: ``FKAccuracy`` -> ``fk_accuracy``, ``Short Passing`` -> ``short_passing``."""

    text = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name.strip())
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text)
    text = re.sub(r"[^A-Za-z0-9]+", "_", text).strip("_").lower()
    return text or "x"


def clean_column_names(names: Sequence[str]) -> List[str]:
    """Clean every header, suffixing repeats with ``_2``, ``_3`` ..."""

    seen: Counter[str] = Counter()
    cleaned: List[str] = []
    for name in names:
        base = clean_column_name(name)
        seen[base] += 1
        cleaned.append(base if seen[base] == 1 else f"{base}_{seen[base]}")
    return cleaned


def parse_currency(raw: Optional[str]) -> Optional[float]:
    """Parse ``€110.5M``, ``€565K`` or a plain number. Blank input returns ``None``."""

    if raw is None:
        return None
    text = str(raw).replace("€", "").replace(" ", "").replace(",", "")
    if not text:
        return None
    multiplier = 1.0
    if text[-1] in "Mm":
        multiplier, text = 1e6, text[:-1]
    elif text[-1] in "Kk":
        multiplier, text = 1e3, text[:-1]
    try:
        return float(text) * multiplier
    except ValueError:
        raise ValueError(f"currency value {raw!r} is not numeric") from None


def assign_position_group(position: Optional[str]) -> Optional[PositionGroup]:
    """Map a detailed position code to its group; blank positions have none."""

    code = (position or "").strip().upper()
    if not code:
        return None
    if "GK" in code:
        return PositionGroup.GOALKEEPER
    if code in DEFENDER_CODES:
        return PositionGroup.DEFENDER
    if code in MIDFIELDER_CODES:
        return PositionGroup.MIDFIELDER
    return PositionGroup.FORWARD


@dataclass(frozen=True)
class IngestReport:
    total_rows: int
    kept_rows: int
    dropped_missing: int = 0
    dropped_position: int = 0
    dropped_invalid: List[str] = field(default_factory=list)
    group_counts: Dict[str, int] = field(default_factory=dict)


def load_player_csv(source: Path | str) -> List[Dict[str, str]]:
    """Read a raw player CSV (path or CSV text) with cleaned column names."""

    if isinstance(source, Path):
        with source.open(newline="", encoding="utf-8-sig") as f:
            return _read_rows(f)
    return _read_rows(io.StringIO(source))


def _read_rows(handle: Iterable[str]) -> List[Dict[str, str]]:
    reader = csv.reader(handle)
    try:
        header = next(reader)
    except StopIteration:
        return []
    columns = clean_column_names(header)
    return [dict(zip(columns, row)) for row in reader if any(cell.strip() for cell in row)]


def _number(row: Mapping[str, str], key: str) -> Optional[float]:
    raw = (row.get(key) or "").strip()
    if not raw:
        return None
    return float(raw)


def _tactical_scores(attributes: Mapping[str, float]) -> Dict[str, Optional[float]]:
    scores: Dict[str, Optional[float]] = {}
    for name, parts in TACTICAL_SCORES.items():
        if all(part in attributes for part in parts):
            scores[name] = sum(attributes[part] for part in parts) / len(parts)
        else:
            scores[name] = None
    return scores


def _row_to_profile(row: Mapping[str, str], group: PositionGroup) -> PlayerProfile:
    attributes: Dict[str, float] = {}
    for name in SKILL_ATTRIBUTES:
        value = _number(row, name)
        if value is not None:
            attributes[name] = value

    name = (row.get("name") or "").strip()
    raw_id = (row.get("id") or "").strip()
    age = _number(row, "age")
    if age is None:
        raise ValueError("age is missing")
    return PlayerProfile(
        player_id=f"{name}_{raw_id}" if raw_id else name,
        name=name,
        age=int(age),
        overall=_number(row, "overall"),
        potential=_number(row, "potential"),
        club=(row.get("club") or "").strip(),
        nationality=(row.get("nationality") or "").strip(),
        position=(row.get("position") or "").strip(),
        position_group=group,
        value=parse_currency(row.get("value")),
        wage=parse_currency(row.get("wage")),
        attributes=attributes,
        **_tactical_scores(attributes),
    )


def rows_to_profiles(rows: Sequence[Mapping[str, str]]) -> Tuple[List[PlayerProfile], IngestReport]:
    """Clean raw rows into profiles, dropping incomplete or malformed players."""

    profiles: List[PlayerProfile] = []
    dropped_missing = 0
    dropped_position = 0
    dropped_invalid: List[str] = []

    for index, row in enumerate(rows):
        label = (row.get("name") or "").strip() or f"row {index + 1}"
        try:
            missing = [key for key in REQUIRED_FIELDS if not (row.get(key) or "").strip()]
            if missing or parse_currency(row.get("value")) is None or parse_currency(row.get("wage")) is None:
                dropped_missing += 1
                continue
            group = assign_position_group(row.get("position"))
            if group is None:
                dropped_position += 1
                continue
            profiles.append(_row_to_profile(row, group))
        except ValueError as exc:
            # pydantic's ValidationError is a ValueError too
            logger.debug("Dropping %s: %s", label, exc)
            dropped_invalid.append(label)

    seen: set[str] = set()
    unique: List[PlayerProfile] = []
    for profile in profiles:
        if profile.player_id in seen:
            dropped_invalid.append(profile.player_id)
            continue
        seen.add(profile.player_id)
        unique.append(profile)

    counts = Counter(profile.position_group.value for profile in unique)
    report = IngestReport(
        total_rows=len(rows),
        kept_rows=len(unique),
        dropped_missing=dropped_missing,
        dropped_position=dropped_position,
        dropped_invalid=dropped_invalid,
        group_counts={group.value: counts.get(group.value, 0) for group in PositionGroup},
    )
    logger.info(
        "Ingested %s of %s players (missing data %s, no position %s, invalid %s)",
        report.kept_rows,
        report.total_rows,
        dropped_missing,
        dropped_position,
        len(dropped_invalid),
    )
    return unique, report


def load_profiles_from_csv(source: Path | str) -> Tuple[List[PlayerProfile], IngestReport]:
    return rows_to_profiles(load_player_csv(source))

"""Read prepared candidate CSVs straight into a validated candidate pool."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from pysquad.errors import DataIntegrityError
from pysquad.models import Candidate, CandidatePool

from .players import clean_column_names, parse_currency


logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_MAPPING: Mapping[str, str] = {
    "player_id": "player_id",
    "name": "name",
    "position": "position",
    "quality": "quality",
    "cost": "cost",
    "club": "club",
    "nationality": "nationality",
}

_OPTIONAL_NUMBERS = (
    "predicted_value",
    "value_gap",
    "offensive_score",
    "defensive_score",
    "goalkeeping_score",
)


def _optional_float(raw: Optional[str]) -> Optional[float]:
    text = (raw or "").strip()
    if not text:
        return None
    return float(text)


def _row_to_payload(row: Mapping[str, str], mapping: Mapping[str, str]) -> Dict[str, Any]:
    def get(key: str) -> str:
        return (row.get(mapping.get(key, key)) or "").strip()

    cost = parse_currency(get("cost"))
    payload: Dict[str, Any] = {
        "player_id": get("player_id"),
        "name": get("name"),
        "position": get("position"),
        "quality": get("quality") or None,
        "cost": cost,
        "club": get("club"),
        "nationality": get("nationality"),
    }
    age = get("age")
    if age:
        payload["age"] = int(float(age))
    for key in _OPTIONAL_NUMBERS:
        value = _optional_float(row.get(key))
        if value is not None:
            payload[key] = value

    consumed = set(mapping.values()) | set(payload) | set(_OPTIONAL_NUMBERS)
    attributes: Dict[str, float] = {}
    for column, raw in row.items():
        if column in consumed or column is None:
            continue
        try:
            value = _optional_float(raw)
        except ValueError:
            continue
        if value is not None:
            attributes[column] = value
    payload["attributes"] = attributes
    return payload


def load_candidate_pool(
    source: Path | str,
    *,
    mapping: Mapping[str, str] | None = None,
) -> CandidatePool:
    """Parse a candidate CSV (path or CSV text).

    Costs may be currency strings such as ``€12.5M``. Every malformed row is
    collected and reported in a single ``DataIntegrityError``.
    """

    mapping = {**DEFAULT_CANDIDATE_MAPPING, **(mapping or {})}
    if isinstance(source, Path):
        text = source.read_text(encoding="utf-8-sig")
    else:
        text = source
    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        return CandidatePool(())
    columns = clean_column_names(header)

    candidates: List[Candidate] = []
    problems: List[str] = []
    for line_no, cells in enumerate(reader, start=2):
        if not any(cell.strip() for cell in cells):
            continue
        row = dict(zip(columns, cells))
        try:
            candidates.append(Candidate.model_validate(_row_to_payload(row, mapping)))
        except ValidationError as exc:
            error = exc.errors()[0]
            location = ".".join(str(part) for part in error["loc"])
            problems.append(f"line {line_no}: {location}: {error['msg']}")
        except ValueError as exc:
            problems.append(f"line {line_no}: {exc}")

    if problems:
        raise DataIntegrityError("Malformed candidate rows – " + "; ".join(problems))
    logger.info("Loaded %s candidates", len(candidates))
    return CandidatePool(tuple(candidates))

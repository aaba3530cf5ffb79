"""Canonical player models shared across ingestion, valuation and optimizer layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.config import ConfigDict

from pysquad.errors import DataIntegrityError


class PositionGroup(str, Enum):
    """Coarse role classification used for quotas and formations."""

    GOALKEEPER = "GK"
    DEFENDER = "DEF"
    MIDFIELDER = "MID"
    FORWARD = "FWD"

    @classmethod
    def parse(cls, value: Any) -> "PositionGroup":
        """Resolve a short code (``GK``) or a full name (``goalkeeper``)."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = value.strip().upper()
            for member in cls:
                if token in (member.value, member.name):
                    return member
        raise ValueError(f"Unknown position group {value!r}")


POSITION_ORDER: Tuple[PositionGroup, ...] = tuple(PositionGroup)


class Candidate(BaseModel):
    """One draftable player as consumed by the optimizer and lineup selector."""

    player_id: str = Field(..., min_length=1)
    name: str = ""
    position: PositionGroup
    quality: float = Field(..., allow_inf_nan=False)
    cost: float = Field(..., ge=0.0, allow_inf_nan=False)
    club: str = ""
    nationality: str = ""
    age: Optional[int] = None
    predicted_value: Optional[float] = None
    value_gap: Optional[float] = None
    offensive_score: Optional[float] = None
    defensive_score: Optional[float] = None
    goalkeeping_score: Optional[float] = None
    attributes: Dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("position", mode="before")
    @classmethod
    def _parse_position(cls, value: Any) -> PositionGroup:
        return PositionGroup.parse(value)


class PlayerProfile(BaseModel):
    """Cleaned row of the raw player universe, before shortlisting."""

    player_id: str = Field(..., min_length=1)
    name: str
    age: int = Field(..., ge=0)
    overall: float
    potential: float
    club: str = ""
    nationality: str = ""
    position: str
    position_group: PositionGroup
    value: float = Field(..., ge=0.0)
    wage: float = Field(..., ge=0.0)
    offensive_score: Optional[float] = None
    defensive_score: Optional[float] = None
    goalkeeping_score: Optional[float] = None
    passing_score: Optional[float] = None
    physical_score: Optional[float] = None
    attributes: Dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class CandidatePool:
    """Immutable, ordered shortlist of candidates with unique identifiers."""

    candidates: Tuple[Candidate, ...]

    def __post_init__(self) -> None:
        candidates = tuple(self.candidates)
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, Candidate):
                raise DataIntegrityError(
                    f"Pool entries must be Candidate records, got {type(candidate).__name__}"
                )
            if candidate.player_id in seen:
                raise DataIntegrityError(f"Duplicate candidate identifier {candidate.player_id!r}")
            seen.add(candidate.player_id)
        object.__setattr__(self, "candidates", candidates)

    @classmethod
    def from_records(cls, records: Iterable[Candidate | Mapping[str, Any]]) -> "CandidatePool":
        """Validate raw mappings into candidates, rejecting malformed rows."""

        candidates: List[Candidate] = []
        for index, record in enumerate(records):
            if isinstance(record, Candidate):
                candidates.append(record)
                continue
            try:
                candidates.append(Candidate.model_validate(record))
            except ValidationError as exc:
                ident = record.get("player_id") if isinstance(record, Mapping) else None
                raise DataIntegrityError(
                    f"Candidate record {index} ({ident!r}) is malformed: {exc.errors()[0]['msg']}"
                ) from exc
        return cls(tuple(candidates))

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    def by_group(self, group: PositionGroup) -> List[Candidate]:
        return [candidate for candidate in self.candidates if candidate.position == group]

    def count(self, group: PositionGroup) -> int:
        return sum(1 for candidate in self.candidates if candidate.position == group)

    def counts(self) -> Dict[PositionGroup, int]:
        return {group: self.count(group) for group in POSITION_ORDER}

    def get(self, player_id: str) -> Optional[Candidate]:
        for candidate in self.candidates:
            if candidate.player_id == player_id:
                return candidate
        return None

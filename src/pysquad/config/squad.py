"""Squad-building settings consumed by the optimizer, shortlist and chemistry scorer."""

from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional

from pysquad.errors import InvalidConfiguration
from pysquad.models import POSITION_ORDER, PositionGroup

DEFAULT_BUDGET = 2e9
DEFAULT_SQUAD_SIZE = 25
DEFAULT_SOLVER_TIME_LIMIT = 300.0

DEFAULT_QUOTAS: Mapping[PositionGroup, int] = {
    PositionGroup.GOALKEEPER: 3,
    PositionGroup.DEFENDER: 8,
    PositionGroup.MIDFIELDER: 8,
    PositionGroup.FORWARD: 6,
}


def normalize_quotas(quotas: Mapping[Any, Any]) -> Dict[PositionGroup, int]:
    """Return quotas keyed by every position group; absent groups get 0."""

    normalized: Dict[PositionGroup, int] = {}
    for key, count in quotas.items():
        try:
            group = PositionGroup.parse(key)
        except ValueError as exc:
            raise InvalidConfiguration(f"Unknown quota position {key!r}") from exc
        if group in normalized:
            raise InvalidConfiguration(f"Quota for {group.value} given more than once")
        if isinstance(count, bool) or not isinstance(count, numbers.Integral):
            raise InvalidConfiguration(f"Quota for {group.value} must be an integer, got {count!r}")
        if count < 0:
            raise InvalidConfiguration(f"Quota for {group.value} must be non-negative, got {count}")
        normalized[group] = int(count)
    return {group: normalized.get(group, 0) for group in POSITION_ORDER}


def validate_squad_parameters(
    quotas: Mapping[Any, Any],
    budget: float,
    squad_size: int,
    time_limit: Optional[float] = None,
) -> Dict[PositionGroup, int]:
    """Check budget, size and quotas together, returning normalized quotas."""

    if isinstance(squad_size, bool) or not isinstance(squad_size, numbers.Integral) or squad_size <= 0:
        raise InvalidConfiguration(f"Squad size must be a positive integer, got {squad_size!r}")
    if not isinstance(budget, numbers.Real) or not math.isfinite(budget) or budget < 0:
        raise InvalidConfiguration(f"Budget must be a finite non-negative number, got {budget!r}")
    if time_limit is not None and (
        not isinstance(time_limit, numbers.Real) or not math.isfinite(time_limit) or time_limit <= 0
    ):
        raise InvalidConfiguration(f"Solver time limit must be positive, got {time_limit!r}")
    normalized = normalize_quotas(quotas)
    total = sum(normalized.values())
    if total != squad_size:
        breakdown = ", ".join(f"{group.value}:{count}" for group, count in normalized.items())
        raise InvalidConfiguration(
            f"Quotas sum to {total} ({breakdown}) but squad size is {squad_size}"
        )
    return normalized


@dataclass(frozen=True)
class ChemistryWeights:
    same_club_bonus: float = 3.0
    same_nationality_bonus: float = 1.0
    importance_multiplier: float = 5.0

    def __post_init__(self) -> None:
        for name in ("same_club_bonus", "same_nationality_bonus", "importance_multiplier"):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value) or value < 0:
                raise InvalidConfiguration(f"{name} must be a non-negative number, got {value!r}")


@dataclass(frozen=True)
class ShortlistCriteria:
    min_overall: float = 75.0
    max_age: Optional[int] = 35
    min_potential: Optional[float] = None
    require_positive_value_gap: bool = True


@dataclass(frozen=True)
class SquadConfig:
    """Budget, quotas and solver settings for one optimization run."""

    budget: float = DEFAULT_BUDGET
    squad_size: int = DEFAULT_SQUAD_SIZE
    quotas: Mapping[PositionGroup, int] = field(default_factory=lambda: dict(DEFAULT_QUOTAS))
    solver_time_limit: float = DEFAULT_SOLVER_TIME_LIMIT
    fallback_enabled: bool = True
    deterministic_ties: bool = True
    chemistry: ChemistryWeights = field(default_factory=ChemistryWeights)

    def __post_init__(self) -> None:
        normalized = validate_squad_parameters(
            self.quotas,
            self.budget,
            self.squad_size,
            self.solver_time_limit,
        )
        object.__setattr__(self, "quotas", normalized)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SquadConfig":
        payload = dict(data)
        chemistry = payload.pop("chemistry", None)
        if isinstance(chemistry, Mapping):
            try:
                payload["chemistry"] = ChemistryWeights(**chemistry)
            except TypeError as exc:
                raise InvalidConfiguration(f"Invalid chemistry settings: {exc}") from exc
        elif chemistry is not None:
            payload["chemistry"] = chemistry
        unknown = set(payload) - set(cls.__dataclass_fields__)
        if unknown:
            raise InvalidConfiguration(f"Unknown squad settings: {', '.join(sorted(unknown))}")
        return cls(**payload)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "budget": self.budget,
            "squad_size": self.squad_size,
            "quotas": {group.value: count for group, count in self.quotas.items()},
            "solver_time_limit": self.solver_time_limit,
            "fallback_enabled": self.fallback_enabled,
            "deterministic_ties": self.deterministic_ties,
            "chemistry": asdict(self.chemistry),
        }

"""Configuration helpers for squad rules and formations."""

from .formations import (
    STARTING_XI_SIZE,
    Formation,
    get_formation,
    iter_formations,
    parse_formation,
    resolve_formation,
)
from .squad import (
    DEFAULT_QUOTAS,
    ChemistryWeights,
    ShortlistCriteria,
    SquadConfig,
    normalize_quotas,
    validate_squad_parameters,
)

__all__ = [
    "STARTING_XI_SIZE",
    "Formation",
    "get_formation",
    "iter_formations",
    "parse_formation",
    "resolve_formation",
    "DEFAULT_QUOTAS",
    "ChemistryWeights",
    "ShortlistCriteria",
    "SquadConfig",
    "normalize_quotas",
    "validate_squad_parameters",
]

"""Input adapters that normalize raw player data."""

from .candidates import DEFAULT_CANDIDATE_MAPPING, load_candidate_pool
from .players import (
    IngestReport,
    assign_position_group,
    clean_column_name,
    clean_column_names,
    load_player_csv,
    load_profiles_from_csv,
    parse_currency,
    rows_to_profiles,
)

__all__ = [
    "DEFAULT_CANDIDATE_MAPPING",
    "load_candidate_pool",
    "IngestReport",
    "assign_position_group",
    "clean_column_name",
    "clean_column_names",
    "load_player_csv",
    "load_profiles_from_csv",
    "parse_currency",
    "rows_to_profiles",
]

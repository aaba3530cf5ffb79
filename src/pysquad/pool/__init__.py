"""Candidate pool utilities (shortlisting, export)."""

from .export import (
    LINEUP_HEADERS,
    ROSTER_HEADERS,
    export_lineup_csv,
    export_roster_csv,
    lineup_to_rows,
    roster_to_rows,
)
from .shortlist import ShortlistSummary, build_candidate_pool, profile_to_candidate

__all__ = [
    "LINEUP_HEADERS",
    "ROSTER_HEADERS",
    "export_lineup_csv",
    "export_roster_csv",
    "lineup_to_rows",
    "roster_to_rows",
    "ShortlistSummary",
    "build_candidate_pool",
    "profile_to_candidate",
]

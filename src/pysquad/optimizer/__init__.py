"""Squad optimizer: exact selection with a greedy fallback."""

from .service import (
    GreedyComparison,
    ScenarioResult,
    compare_with_greedy,
    greedy_roster,
    optimize_squad,
    run_scenarios,
    select_roster,
)

__all__ = [
    "GreedyComparison",
    "ScenarioResult",
    "compare_with_greedy",
    "greedy_roster",
    "optimize_squad",
    "run_scenarios",
    "select_roster",
]

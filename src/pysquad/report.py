"""Human-readable summaries of squads, lineups and playbooks."""

from __future__ import annotations

from statistics import fmean
from typing import Any, Dict, Iterable, List, Optional

from pysquad.lineup.playbook import Playbook, RolePick
from pysquad.models import POSITION_ORDER, Lineup, Roster
from pysquad.optimizer.service import GreedyComparison


def format_currency(value: Optional[float]) -> str:
    """``1.105e8`` -> ``€110.5M``, ``565000`` -> ``€565.0K``, ``None`` -> ``€0``."""

    if value is None:
        return "€0"
    sign = "-" if value < 0 else ""
    amount = abs(value)
    if amount >= 1e6:
        scaled, suffix = amount / 1e6, "M"
    elif amount >= 1e3:
        scaled, suffix = amount / 1e3, "K"
    else:
        return f"{sign}€{amount:,.0f}"
    whole_digits = len(str(int(scaled)))
    decimals = max(1, 3 - whole_digits)
    return f"{sign}€{scaled:.{decimals}f}{suffix}"


def squad_summary(roster: Roster) -> Dict[str, Any]:
    players = list(roster)
    ages = [player.age for player in players if player.age is not None]
    potentials = [player.attributes["potential"] for player in players if "potential" in player.attributes]
    return {
        "total_players": len(players),
        "avg_quality": fmean(player.quality for player in players) if players else 0.0,
        "avg_age": fmean(ages) if ages else None,
        "avg_potential": fmean(potentials) if potentials else None,
        "total_quality": roster.total_quality,
        "total_cost": roster.total_cost,
        "budget": roster.budget,
        "budget_remaining": roster.budget_remaining,
        "within_budget": roster.within_budget,
        "path": roster.path.value,
        "solver_status": roster.solver_status,
        "fallback_reason": roster.fallback_reason,
        "position_breakdown": {group.value: roster.count(group) for group in POSITION_ORDER},
    }


def summary_lines(roster: Roster) -> List[str]:
    summary = squad_summary(roster)
    breakdown = ", ".join(f"{group} {count}" for group, count in summary["position_breakdown"].items())
    lines = [
        f"Squad: {summary['total_players']} players ({breakdown})",
        f"Path: {summary['path']}" + (f" – {roster.fallback_reason}" if roster.fallback_reason else ""),
        f"Average quality: {summary['avg_quality']:.2f}",
        f"Total cost: {format_currency(summary['total_cost'])} of {format_currency(summary['budget'])}"
        f" (remaining {format_currency(summary['budget_remaining'])})",
    ]
    if summary["avg_age"] is not None:
        lines.append(f"Average age: {summary['avg_age']:.1f}")
    return lines


def comparison_lines(comparison: GreedyComparison) -> List[str]:
    return [
        f"Optimized: quality {comparison.optimized.total_quality:.1f}, "
        f"cost {format_currency(comparison.optimized.total_cost)}",
        f"Greedy:    quality {comparison.greedy.total_quality:.1f}, "
        f"cost {format_currency(comparison.greedy.total_cost)}",
        f"Improvement: {comparison.quality_improvement:+.1f} quality, "
        f"{format_currency(comparison.cost_difference)} cost difference",
    ]


def _lineup_table(lineup: Lineup) -> List[str]:
    lines = [f"{'Slot':<6}{'Name':<28}{'Club':<24}{'Nationality':<16}{'Quality':>8}"]
    for slot in lineup:
        player = slot.candidate
        lines.append(
            f"{slot.slot:<6}{(player.name or player.player_id)[:27]:<28}"
            f"{player.club[:23]:<24}{player.nationality[:15]:<16}{player.quality:>8.1f}"
        )
    return lines


def _picks_table(picks: Iterable[RolePick]) -> List[str]:
    lines = []
    for pick in picks:
        name = (pick.candidate.name or pick.candidate.player_id) if pick.candidate else "-"
        lines.append(f"{pick.role:<24}{name}")
    return lines


_LINEUP_TITLES = {
    "chemistry": "Chemistry-Optimized XI",
    "balanced": "Balanced XI",
    "defensive": "Defensive XI",
    "offensive": "Offensive XI",
}


def render_playbook(playbook: Playbook, *, title: str = "GAME DAY PLAYBOOK") -> str:
    rule = "=" * 46
    lines = [rule, f"  {title}", rule, ""]
    for label, lineup in playbook.lineups.items():
        heading = _LINEUP_TITLES.get(label, label.title())
        lines.append(f"{heading} ({lineup.formation}) – chemistry {playbook.chemistry.get(label, 0.0):.0f}")
        lines.extend(_lineup_table(lineup))
        lines.append("")
    lines.append("Set-Piece Specialists")
    lines.extend(_picks_table(playbook.specialists))
    lines.append("")
    lines.append("Impact Substitutes")
    lines.extend(_picks_table(playbook.substitutes))
    return "\n".join(lines) + "\n"

"""Command-line interface for building a squad and its game-day playbook."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Dict, Optional

from pysquad.config_loader import load_profile
from pysquad.errors import SquadError, UnderfilledFormation
from pysquad.ingest import load_candidate_pool, load_profiles_from_csv
from pysquad.lineup import build_playbook
from pysquad.optimizer import compare_with_greedy, optimize_squad
from pysquad.pool import build_candidate_pool, export_lineup_csv, export_roster_csv
from pysquad.report import comparison_lines, format_currency, render_playbook, squad_summary, summary_lines
from pysquad.valuation import train_valuation_model


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a budget-constrained squad from player data")
    parser.add_argument("players", type=Path, help="Path to raw player CSV (or candidate CSV with --candidates)")
    parser.add_argument(
        "--candidates",
        action="store_true",
        help="Treat the input as a prepared candidate CSV and skip valuation",
    )
    parser.add_argument("--profile", type=Path, default=None, help="Load squad profile JSON")
    parser.add_argument("--save-profile", type=Path, default=None, help="Save the effective profile JSON")
    parser.add_argument("--budget", type=float, default=None, help="Total transfer budget")
    parser.add_argument("--squad-size", type=int, default=None, help="Number of players to select")
    parser.add_argument(
        "--quota",
        action="append",
        default=[],
        help="Position quota (e.g., GK=3); repeat for each group",
    )
    parser.add_argument("--time-limit", type=float, default=None, help="Solver time limit in seconds")
    parser.add_argument("--no-fallback", action="store_true", help="Fail instead of using greedy selection")
    parser.add_argument("--compare-greedy", action="store_true", help="Report the gain over greedy picks")
    parser.add_argument("--output-dir", type=Path, default=Path("outputs"), help="Directory for CSV outputs")
    parser.add_argument("--report", type=Path, default=None, help="Optional path to write a JSON run report")
    parser.add_argument("--workers", type=int, default=1, help="Threads used to build lineups")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress to stderr")
    return parser.parse_args(argv)


def _parse_quotas(entries: list[str]) -> Dict[str, int]:
    quotas: Dict[str, int] = {}
    for entry in entries:
        if "=" not in entry:
            raise SystemExit(f"Invalid quota '{entry}', expected GROUP=COUNT")
        key, value = entry.split("=", 1)
        try:
            quotas[key.strip()] = int(value)
        except ValueError:
            raise SystemExit(f"Invalid quota count in '{entry}'") from None
    return quotas


def main(argv: Optional[list[str]] = None) -> None:
    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    report: Dict[str, Any] = {}
    try:
        profile = load_profile(args.profile)
        overrides: Dict[str, Any] = {}
        if args.budget is not None:
            overrides["budget"] = args.budget
        if args.squad_size is not None:
            overrides["squad_size"] = args.squad_size
        if args.quota:
            overrides["quotas"] = _parse_quotas(args.quota)
        if args.time_limit is not None:
            overrides["solver_time_limit"] = args.time_limit
        if args.no_fallback:
            overrides["fallback_enabled"] = False
        if overrides:
            profile.squad = replace(profile.squad, **overrides)
        config = profile.squad

        if args.save_profile:
            profile.save(args.save_profile)
            print(f"Saved squad profile to {args.save_profile}")

        if args.candidates:
            pool = load_candidate_pool(args.players)
            print(f"Loaded {len(pool)} candidates")
        else:
            profiles, ingest = load_profiles_from_csv(args.players)
            print(f"Ingested {ingest.kept_rows}/{ingest.total_rows} players")
            valuation = train_valuation_model(profiles)
            metrics = valuation.metrics
            print(
                f"Valuation model: RMSE {format_currency(metrics.rmse)}, "
                f"MAE {format_currency(metrics.mae)}, R² {metrics.r_squared:.3f}"
            )
            pool, shortlist = build_candidate_pool(
                valuation.test_profiles,
                valuation.predicted_values(),
                profile.shortlist,
            )
            print(f"Shortlisted {shortlist.shortlisted} undervalued players")
            report["ingest"] = asdict(ingest)
            report["valuation"] = asdict(metrics)
            report["feature_importances"] = valuation.oracle.feature_importances()
            report["shortlist"] = asdict(shortlist)

        if args.compare_greedy:
            comparison = compare_with_greedy(pool, config)
            roster = comparison.optimized
            for line in comparison_lines(comparison):
                print(line)
            report["comparison"] = {
                "optimized_quality": comparison.optimized.total_quality,
                "greedy_quality": comparison.greedy.total_quality,
                "quality_improvement": comparison.quality_improvement,
            }
        else:
            roster = optimize_squad(pool, config)
    except SquadError as exc:
        raise SystemExit(f"{type(exc).__name__}: {exc}") from exc

    for line in summary_lines(roster):
        print(line)
    report["squad"] = squad_summary(roster)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    squad_path = args.output_dir / "final_squad.csv"
    export_roster_csv(roster, squad_path)
    print(f"Wrote squad to {squad_path}")

    try:
        playbook = build_playbook(roster, config.chemistry, workers=args.workers)
    except UnderfilledFormation as exc:
        print(f"Skipping playbook: {exc}")
    else:
        for label, lineup in playbook.lineups.items():
            export_lineup_csv(lineup, args.output_dir / f"lineup_{label}_{lineup.formation.replace('-', '')}.csv")
        playbook_path = args.output_dir / "game_day_playbook.txt"
        playbook_path.write_text(render_playbook(playbook), encoding="utf-8")
        print(f"Wrote playbook to {playbook_path}")
        report["chemistry"] = playbook.chemistry

    if args.report:
        args.report.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
        print(f"Wrote run report to {args.report}")


if __name__ == "__main__":
    main()

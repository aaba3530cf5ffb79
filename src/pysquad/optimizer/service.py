"""Squad selection: exact integer program with a greedy per-group fallback."""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
import logging
import math
import multiprocessing as mp
import os
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pulp

from pysquad.config import SquadConfig, validate_squad_parameters
from pysquad.errors import (
    DataIntegrityError,
    InfeasiblePool,
    SolverFailure,
    SolverInfeasible,
    SolverTimeout,
    SquadError,
)
from pysquad.models import (
    POSITION_ORDER,
    Candidate,
    CandidatePool,
    PositionGroup,
    Roster,
    SolutionPath,
)


logger = logging.getLogger(__name__)

_SOLVER_ENV = "PYSQUAD_SOLVER"
_SOLVER_THREADS_ENV = "PYSQUAD_SOLVER_THREADS"
_TIE_TOLERANCE = 1e-9


def _env_int(name: str, default: Optional[int], *, min_value: int | None = None) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %s", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


def _build_solver(time_limit: float) -> Tuple[pulp.LpSolver, str]:
    """Return a fresh solver instance; runs never share solver state."""

    choice = os.getenv(_SOLVER_ENV, "cbc").lower()
    threads = _env_int(_SOLVER_THREADS_ENV, None, min_value=1)
    limit = max(0.01, time_limit)

    if choice == "highs":
        try:
            candidate = pulp.HiGHS_CMD(msg=False, timeLimit=limit, gapRel=0.0, threads=threads)
            if candidate.available():
                return candidate, "HiGHS"
            logger.warning("HiGHS solver unavailable (missing binary); falling back to CBC")
        except AttributeError:
            logger.warning("HiGHS solver not exposed by this PuLP version; falling back to CBC")
    elif choice != "cbc":
        logger.warning("Unknown solver %s requested via %s; using CBC", choice, _SOLVER_ENV)

    return pulp.PULP_CBC_CMD(msg=False, timeLimit=limit, gapRel=0.0, threads=threads), "CBC"


def _check_candidates(pool: CandidatePool) -> None:
    for candidate in pool:
        if not isinstance(candidate.position, PositionGroup):
            raise DataIntegrityError(
                f"Candidate {candidate.player_id!r} has unrecognized position {candidate.position!r}"
            )
        if not isinstance(candidate.cost, (int, float)) or not math.isfinite(candidate.cost) or candidate.cost < 0:
            raise DataIntegrityError(
                f"Candidate {candidate.player_id!r} has invalid cost {candidate.cost!r}"
            )
        if not isinstance(candidate.quality, (int, float)) or not math.isfinite(candidate.quality):
            raise DataIntegrityError(
                f"Candidate {candidate.player_id!r} has invalid quality {candidate.quality!r}"
            )


def _check_pool_shape(pool: CandidatePool, quotas: Mapping[PositionGroup, int]) -> None:
    for group in POSITION_ORDER:
        required = quotas.get(group, 0)
        available = pool.count(group)
        if available < required:
            raise InfeasiblePool(group.value, required, available)


def _as_pool(pool: CandidatePool | Iterable[Candidate]) -> CandidatePool:
    if isinstance(pool, CandidatePool):
        return pool
    return CandidatePool.from_records(pool)


def greedy_roster(
    pool: CandidatePool | Iterable[Candidate],
    quotas: Mapping[Any, int],
) -> Tuple[Candidate, ...]:
    """Top-N by quality per group; ties go to the cheaper, then lower identifier.

    The budget is not considered.
    """

    pool = _as_pool(pool)
    selected: List[Candidate] = []
    for group in POSITION_ORDER:
        count = quotas.get(group, 0)
        if count <= 0:
            continue
        ranked = sorted(pool.by_group(group), key=lambda c: (-c.quality, c.cost, c.player_id))
        selected.extend(ranked[:count])
    return tuple(selected)


def _solve(problem: pulp.LpProblem, solver: pulp.LpSolver, label: str) -> None:
    try:
        problem.solve(solver)
    except pulp.PulpSolverError as exc:
        raise SolverFailure(f"{label} solver error: {exc}", status="Error") from exc

    status = pulp.LpStatus.get(problem.status, str(problem.status))
    if problem.status == pulp.LpStatusInfeasible:
        raise SolverInfeasible(f"{label}: no roster satisfies budget and quotas", status=status)
    if problem.sol_status == pulp.LpSolutionOptimal:
        return
    if problem.sol_status == pulp.LpSolutionIntegerFeasible or problem.status == pulp.LpStatusNotSolved:
        raise SolverTimeout(f"{label}: time limit reached before optimality was proven", status=status)
    raise SolverFailure(f"{label}: solver finished with status {status}", status=status)


def _selected(variables: Mapping[str, pulp.LpVariable]) -> set[str]:
    return {pid for pid, var in variables.items() if (var.value() or 0.0) > 0.5}


def _total(by_id: Mapping[str, Candidate], chosen: Iterable[str], field: str) -> float:
    return math.fsum(getattr(by_id[pid], field) for pid in chosen)


def _slack(value: float) -> float:
    # Rounding noise of a float sum at this magnitude, nothing wider.
    return max(_TIE_TOLERANCE, 8 * math.ulp(value))


def _ties(by_id: Mapping[str, Candidate], chosen: set[str], quality: float, cost: float) -> bool:
    return (
        _total(by_id, chosen, "quality") >= quality - _slack(quality)
        and _total(by_id, chosen, "cost") <= cost + _slack(cost)
    )


def _solve_exact(
    pool: CandidatePool,
    quotas: Mapping[PositionGroup, int],
    budget: float,
    squad_size: int,
    *,
    time_limit: float,
    deterministic_ties: bool,
) -> Tuple[Tuple[Candidate, ...], str]:
    deadline = time.perf_counter() + time_limit
    candidates = list(pool)

    problem = pulp.LpProblem("squad_selection", pulp.LpMaximize)
    variables: Dict[str, pulp.LpVariable] = {
        candidate.player_id: pulp.LpVariable(f"x_{idx}", cat=pulp.LpBinary)
        for idx, candidate in enumerate(candidates)
    }
    quality_expr = pulp.lpSum(c.quality * variables[c.player_id] for c in candidates)
    cost_expr = pulp.lpSum(c.cost * variables[c.player_id] for c in candidates)

    problem += quality_expr
    problem += pulp.lpSum(variables.values()) == squad_size, "squad_size"
    problem += cost_expr <= budget, "budget"
    for group in POSITION_ORDER:
        members = [variables[c.player_id] for c in candidates if c.position == group]
        if members:
            problem += pulp.lpSum(members) == quotas.get(group, 0), f"quota_{group.value}"

    solver, backend = _build_solver(time_limit)
    logger.info(
        "Solving squad ILP with %s – candidates=%s, squad_size=%s, budget=%.2f, time_limit=%.1fs",
        backend,
        len(candidates),
        squad_size,
        budget,
        time_limit,
    )
    start = time.perf_counter()
    _solve(problem, solver, "Squad ILP")
    chosen = _selected(variables)
    by_id = {c.player_id: c for c in candidates}
    logger.info(
        "Squad ILP optimal – quality %.2f, cost %.2f (%.2fs)",
        _total(by_id, chosen, "quality"),
        _total(by_id, chosen, "cost"),
        time.perf_counter() - start,
    )

    if deterministic_ties:
        chosen = _break_ties(
            problem,
            variables,
            by_id,
            quotas,
            quality_expr,
            cost_expr,
            chosen,
            deadline=deadline,
        )

    return tuple(by_id[pid] for pid in chosen), pulp.LpStatus[pulp.LpStatusOptimal]


def _solve_before(problem: pulp.LpProblem, deadline: float, label: str) -> None:
    remaining = deadline - time.perf_counter()
    if remaining <= 0:
        raise SolverTimeout(f"{label}: no time left", status=pulp.LpStatus[pulp.LpStatusNotSolved])
    solver, _ = _build_solver(remaining)
    _solve(problem, solver, label)


def _break_ties(
    problem: pulp.LpProblem,
    variables: Mapping[str, pulp.LpVariable],
    by_id: Mapping[str, Candidate],
    quotas: Mapping[PositionGroup, int],
    quality_expr: pulp.LpAffineExpression,
    cost_expr: pulp.LpAffineExpression,
    chosen: set[str],
    *,
    deadline: float,
) -> set[str]:
    """Among quality-optimal rosters prefer the cheapest, then the lowest identifiers.

    The identifier stage is lexicographic: walking ids in ascending order,
    each id is kept in the roster whenever some tied roster contains it.
    A stage result is only accepted when its quality (and, after the cost
    stage, its cost) matches the incumbent in exact arithmetic. A stage that
    fails or runs out of time keeps the incumbent.
    """

    best_quality = _total(by_id, chosen, "quality")
    problem += quality_expr >= best_quality - _slack(best_quality), "pin_quality"
    problem.sense = pulp.LpMinimize
    problem.setObjective(cost_expr)
    try:
        _solve_before(problem, deadline, "Cost tie-break")
    except SolverFailure as exc:
        logger.debug("Cost tie-break skipped: %s", exc)
        return chosen
    cheapest = _selected(variables)
    if _ties(by_id, cheapest, best_quality, _total(by_id, chosen, "cost")):
        chosen = cheapest
    else:
        logger.debug("Cost tie-break result left the quality optimum; keeping primary solution")
    min_cost = _total(by_id, chosen, "cost")
    problem += cost_expr <= min_cost + _slack(min_cost), "pin_cost"

    open_slots = {group: quotas.get(group, 0) for group in POSITION_ORDER}
    for pid in sorted(variables):
        var = variables[pid]
        group = by_id[pid].position
        if open_slots[group] == 0:
            var.upBound = 0
            continue
        if pid not in chosen:
            var.lowBound = 1
            try:
                _solve_before(problem, deadline, "Identifier tie-break")
                trial: Optional[set[str]] = _selected(variables)
            except SolverInfeasible:
                trial = None
            except SolverFailure as exc:
                logger.debug("Identifier tie-break stopped at %s: %s", pid, exc)
                return chosen
            if trial is None or not _ties(by_id, trial, best_quality, min_cost):
                var.lowBound = 0
                var.upBound = 0
                continue
            chosen = trial
        var.lowBound = 1
        open_slots[group] -= 1
    return chosen


def select_roster(
    pool: CandidatePool | Iterable[Candidate],
    quotas: Mapping[Any, int],
    budget: float,
    squad_size: int,
    *,
    time_limit: float = 300.0,
    fallback_enabled: bool = True,
    deterministic_ties: bool = True,
) -> Roster:
    """Select the quality-maximizing roster that meets quotas within budget.

    Raises ``InvalidConfiguration`` for inconsistent parameters,
    ``DataIntegrityError`` for malformed candidates and ``InfeasiblePool``
    when a group is short of candidates, all before any solve. Solver
    failures fall back to :func:`greedy_roster` unless ``fallback_enabled``
    is false, in which case they propagate.
    """

    normalized = validate_squad_parameters(quotas, budget, squad_size, time_limit)
    pool = _as_pool(pool)
    _check_candidates(pool)
    _check_pool_shape(pool, normalized)

    try:
        players, status = _solve_exact(
            pool,
            normalized,
            float(budget),
            squad_size,
            time_limit=time_limit,
            deterministic_ties=deterministic_ties,
        )
    except SolverFailure as exc:
        if not fallback_enabled:
            raise
        logger.warning("Exact solve failed (%s); falling back to greedy selection", exc.message)
        roster = Roster(
            players=greedy_roster(pool, normalized),
            path=SolutionPath.FALLBACK,
            budget=float(budget),
            solver_status=exc.status,
            fallback_reason=exc.message,
        )
        if not roster.within_budget:
            logger.warning(
                "Greedy roster costs %.2f, exceeding budget %.2f by %.2f",
                roster.total_cost,
                roster.budget,
                -roster.budget_remaining,
            )
        return roster

    roster = Roster(players=players, path=SolutionPath.EXACT, budget=float(budget), solver_status=status)
    if len(roster) != squad_size or any(roster.count(g) != normalized[g] for g in POSITION_ORDER):
        raise SolverFailure("Solver returned a roster that violates the quotas", status=status)
    return roster


def optimize_squad(pool: CandidatePool | Iterable[Candidate], config: SquadConfig) -> Roster:
    """Run :func:`select_roster` with the settings from ``config``."""

    return select_roster(
        pool,
        config.quotas,
        config.budget,
        config.squad_size,
        time_limit=config.solver_time_limit,
        fallback_enabled=config.fallback_enabled,
        deterministic_ties=config.deterministic_ties,
    )


@dataclass(frozen=True)
class GreedyComparison:
    optimized: Roster
    greedy: Roster

    @property
    def quality_improvement(self) -> float:
        return self.optimized.total_quality - self.greedy.total_quality

    @property
    def cost_difference(self) -> float:
        return self.optimized.total_cost - self.greedy.total_cost


def compare_with_greedy(pool: CandidatePool | Iterable[Candidate], config: SquadConfig) -> GreedyComparison:
    """Optimize the squad and report how it fares against plain greedy picks."""

    pool = _as_pool(pool)
    optimized = optimize_squad(pool, config)
    greedy = Roster(
        players=greedy_roster(pool, config.quotas),
        path=SolutionPath.FALLBACK,
        budget=config.budget,
        fallback_reason="comparison baseline",
    )
    comparison = GreedyComparison(optimized=optimized, greedy=greedy)
    logger.info(
        "Optimized quality %.2f vs greedy %.2f (improvement %.2f)",
        optimized.total_quality,
        greedy.total_quality,
        comparison.quality_improvement,
    )
    return comparison


@dataclass(frozen=True)
class ScenarioResult:
    name: str
    roster: Optional[Roster]
    elapsed: float
    error: Optional[str] = None


def _run_scenario(name: str, candidates: Tuple[Candidate, ...], config: SquadConfig) -> ScenarioResult:
    start = time.perf_counter()
    try:
        roster = optimize_squad(CandidatePool(candidates), config)
    except SquadError as exc:
        return ScenarioResult(name, None, time.perf_counter() - start, error=f"{type(exc).__name__}: {exc}")
    return ScenarioResult(name, roster, time.perf_counter() - start)


def run_scenarios(
    pool: CandidatePool | Iterable[Candidate],
    scenarios: Mapping[str, SquadConfig] | Sequence[Tuple[str, SquadConfig]],
    *,
    workers: int = 1,
) -> List[ScenarioResult]:
    """Optimize the same pool under several configurations.

    With ``workers > 1`` each scenario runs in its own spawned process with
    its own solver instance. Results keep the order of ``scenarios``.
    """

    pool = _as_pool(pool)
    items = list(scenarios.items()) if isinstance(scenarios, Mapping) else list(scenarios)
    workers = max(1, workers)
    run_start = time.perf_counter()
    logger.info("Running %s scenarios over %s candidates (workers=%s)", len(items), len(pool), workers)

    if workers == 1 or len(items) <= 1:
        results = [_run_scenario(name, pool.candidates, config) for name, config in items]
    else:
        ctx = mp.get_context("spawn")
        with ProcessPoolExecutor(max_workers=min(workers, len(items)), mp_context=ctx) as executor:
            futures = [
                executor.submit(_run_scenario, name, pool.candidates, config)
                for name, config in items
            ]
            results = [future.result() for future in futures]

    for result in results:
        if result.error:
            logger.warning("Scenario %s failed: %s", result.name, result.error)
        else:
            logger.info(
                "Scenario %s – %s path, quality %.2f, cost %.2f (%.2fs)",
                result.name,
                result.roster.path.value,
                result.roster.total_quality,
                result.roster.total_cost,
                result.elapsed,
            )
    logger.info("Completed %s scenarios in %.2fs", len(results), time.perf_counter() - run_start)
    return results

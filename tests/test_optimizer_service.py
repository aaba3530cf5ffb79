import itertools
import logging
import random

import pulp
import pytest

from pysquad.config import SquadConfig
from pysquad.errors import (
    DataIntegrityError,
    InfeasiblePool,
    InvalidConfiguration,
    SolverFailure,
    SolverInfeasible,
    SolverTimeout,
)
from pysquad.models import Candidate, CandidatePool, PositionGroup, SolutionPath
from pysquad.optimizer import compare_with_greedy, greedy_roster, optimize_squad, run_scenarios, select_roster
from pysquad.optimizer import service


def _candidate(player_id, position, quality, cost, club="", nationality=""):
    return Candidate(
        player_id=player_id,
        name=player_id.upper(),
        position=position,
        quality=quality,
        cost=cost,
        club=club,
        nationality=nationality,
    )


def _six_pool() -> CandidatePool:
    return CandidatePool(
        (
            _candidate("gk", "GK", 80, 10),
            _candidate("def_a", "DEF", 70, 5),
            _candidate("def_b", "DEF", 75, 8),
            _candidate("mid_a", "MID", 60, 3),
            _candidate("mid_b", "MID", 90, 20),
            _candidate("fwd", "FWD", 85, 15),
        )
    )


ONE_EACH = {"GK": 1, "DEF": 1, "MID": 1, "FWD": 1}


def _brute_force_best(pool, quotas, budget, squad_size):
    best = None
    for combo in itertools.combinations(list(pool), squad_size):
        if sum(c.cost for c in combo) > budget + 1e-9:
            continue
        counts = {group: sum(1 for c in combo if c.position == group) for group in PositionGroup}
        if any(counts[PositionGroup.parse(key)] != value for key, value in quotas.items()):
            continue
        quality = sum(c.quality for c in combo)
        if best is None or quality > best:
            best = quality
    return best


def _random_pool(seed: int) -> CandidatePool:
    rng = random.Random(seed)
    candidates = []
    for group, size in (("GK", 3), ("DEF", 4), ("MID", 4), ("FWD", 3)):
        for idx in range(size):
            candidates.append(
                _candidate(
                    f"{group.lower()}{idx}",
                    group,
                    rng.randint(55, 95),
                    rng.randint(1, 40),
                )
            )
    return CandidatePool(tuple(candidates))


def test_six_candidate_scenario_picks_best_affordable_roster():
    roster = select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4)

    assert roster.path is SolutionPath.EXACT
    assert roster.is_optimal
    assert set(roster.player_ids) == {"gk", "def_b", "mid_a", "fwd"}
    assert roster.total_quality == pytest.approx(300)
    assert roster.total_cost == pytest.approx(36)
    assert roster.within_budget
    assert roster.total_quality == pytest.approx(_brute_force_best(_six_pool(), ONE_EACH, 40, 4))


def test_roster_is_returned_in_canonical_order():
    roster = select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4)

    assert [player.position for player in roster] == [
        PositionGroup.GOALKEEPER,
        PositionGroup.DEFENDER,
        PositionGroup.MIDFIELDER,
        PositionGroup.FORWARD,
    ]


def test_two_goalkeepers_from_four_takes_best_pair():
    pool = [
        _candidate("k1", "GK", 70, 5),
        _candidate("k2", "GK", 85, 30),
        _candidate("k3", "GK", 80, 12),
        _candidate("k4", "GK", 78, 9),
    ]

    roster = select_roster(pool, {"GK": 2}, budget=25, squad_size=2)

    assert set(roster.player_ids) == {"k3", "k4"}
    assert roster.total_quality == pytest.approx(_brute_force_best(pool, {"GK": 2}, 25, 2))


@pytest.mark.parametrize("seed", [1, 7, 23, 42])
def test_exact_path_matches_brute_force(seed):
    pool = _random_pool(seed)
    quotas = {"GK": 1, "DEF": 2, "MID": 2, "FWD": 1}
    budget = 90

    roster = select_roster(pool, quotas, budget=budget, squad_size=6)
    best = _brute_force_best(pool, quotas, budget, 6)

    if best is None:
        assert roster.path is SolutionPath.FALLBACK
        return
    assert roster.path is SolutionPath.EXACT
    assert roster.total_cost <= budget
    assert roster.total_quality == pytest.approx(best)
    assert roster.count(PositionGroup.GOALKEEPER) == 1
    assert roster.count(PositionGroup.DEFENDER) == 2
    assert roster.count(PositionGroup.MIDFIELDER) == 2
    assert roster.count(PositionGroup.FORWARD) == 1
    assert len(roster) == 6


def test_missing_goalkeepers_raise_before_any_solve(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("solver must not run")

    monkeypatch.setattr(service, "_solve_exact", fail)
    candidates = [_candidate(f"gk{i}", "GK", 70, 1) for i in range(2)]
    for group in ("DEF", "MID", "FWD"):
        candidates.extend(_candidate(f"{group.lower()}{i}", group, 70, 1) for i in range(10))

    with pytest.raises(InfeasiblePool) as excinfo:
        select_roster(candidates, {"GK": 3, "DEF": 8, "MID": 8, "FWD": 6}, budget=1e9, squad_size=25)

    assert excinfo.value.group == "GK"
    assert excinfo.value.required == 3
    assert excinfo.value.available == 2


@pytest.mark.parametrize(
    "quotas, budget, squad_size",
    [
        ({"GK": 1, "DEF": 1, "MID": 1, "FWD": 1}, 40, 5),
        ({"GK": 1, "DEF": 1, "MID": 1, "FWD": 1}, -1, 4),
        ({"GK": 1, "DEF": 1, "MID": 1, "FWD": 1}, 40, 0),
        ({"GK": 1, "DEF": 1, "MID": 1, "XX": 1}, 40, 4),
        ({"GK": 1, "DEF": 1, "MID": 3, "FWD": -1}, 40, 4),
    ],
)
def test_invalid_configuration_fails_before_pool_checks(quotas, budget, squad_size):
    with pytest.raises(InvalidConfiguration):
        select_roster(["not a candidate"], quotas, budget=budget, squad_size=squad_size)


def test_malformed_candidates_are_rejected():
    bad_cost = Candidate.model_construct(player_id="x", position=PositionGroup.GOALKEEPER, quality=70.0, cost=-5.0)
    with pytest.raises(DataIntegrityError):
        select_roster(CandidatePool((bad_cost,)), {"GK": 1}, budget=10, squad_size=1)

    bad_position = Candidate.model_construct(player_id="y", position="COACH", quality=70.0, cost=5.0)
    with pytest.raises(DataIntegrityError):
        select_roster(CandidatePool((bad_position,)), {"GK": 1}, budget=10, squad_size=1)

    with pytest.raises(DataIntegrityError):
        select_roster([{"player_id": "z", "position": "GK", "quality": "high", "cost": 1}], {"GK": 1}, 10, 1)


def test_budget_infeasible_falls_back_to_greedy(caplog):
    caplog.set_level(logging.WARNING, logger="pysquad.optimizer.service")

    roster = select_roster(_six_pool(), ONE_EACH, budget=5, squad_size=4)

    assert roster.path is SolutionPath.FALLBACK
    assert not roster.is_optimal
    assert not roster.budget_checked
    assert roster.fallback_reason
    assert set(roster.player_ids) == {"gk", "def_b", "mid_b", "fwd"}
    assert not roster.within_budget
    assert any("exceeding budget" in record.getMessage() for record in caplog.records)


def test_fallback_disabled_propagates_solver_failure():
    with pytest.raises(SolverInfeasible):
        select_roster(_six_pool(), ONE_EACH, budget=5, squad_size=4, fallback_enabled=False)


def test_timeout_takes_fallback_path(monkeypatch):
    def timeout(*args, **kwargs):
        raise SolverTimeout("time limit reached", status="Not Solved")

    monkeypatch.setattr(service, "_solve_exact", timeout)

    first = select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4, time_limit=0.5)
    second = select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4, time_limit=0.5)

    assert first.path is SolutionPath.FALLBACK
    assert first.solver_status == "Not Solved"
    assert first.player_ids == second.player_ids
    assert len(first) == 4


def test_greedy_tie_break_prefers_cheaper_then_lower_id():
    pool = CandidatePool(
        (
            _candidate("d3", "DEF", 80, 10),
            _candidate("d2", "DEF", 80, 7),
            _candidate("d1", "DEF", 80, 10),
            _candidate("d0", "DEF", 60, 1),
        )
    )

    picks = greedy_roster(pool, {PositionGroup.DEFENDER: 2})
    reversed_picks = greedy_roster(CandidatePool(tuple(reversed(pool.candidates))), {PositionGroup.DEFENDER: 2})

    assert [c.player_id for c in picks] == ["d2", "d1"]
    assert [c.player_id for c in reversed_picks] == ["d2", "d1"]


def test_exact_ties_resolve_to_cheaper_then_lower_id():
    pool = CandidatePool(
        (
            _candidate("m3", "MID", 80, 10),
            _candidate("m2", "MID", 80, 10),
            _candidate("m1", "MID", 80, 12),
        )
    )

    roster = select_roster(pool, {"MID": 1}, budget=100, squad_size=1)

    assert roster.player_ids == ("m2",)


def test_near_tie_keeps_the_strictly_better_roster():
    pool = CandidatePool(
        (
            _candidate("best", "MID", 1000.0, 10),
            _candidate("close", "MID", 999.9995, 1),
        )
    )

    roster = select_roster(pool, {"MID": 1}, budget=100, squad_size=1)

    assert roster.player_ids == ("best",)
    assert roster.path is SolutionPath.EXACT
    assert roster.total_quality == 1000.0


def test_cost_tie_break_is_exact_at_large_budgets():
    pool = CandidatePool(
        (
            _candidate("m_a", "MID", 80, 1_500_000_000),
            _candidate("m_b", "MID", 80, 1_499_999_000),
        )
    )

    roster = select_roster(pool, {"MID": 1}, budget=2e9, squad_size=1)

    assert roster.player_ids == ("m_b",)


def test_identifier_tie_break_ignores_input_order():
    base = [
        _candidate("a", "MID", 90, 10),
        _candidate("b", "MID", 80, 5),
        _candidate("c", "MID", 80, 5),
        _candidate("d", "MID", 70, 0),
    ]
    orders = list(itertools.permutations(base))[::5]

    results = {
        select_roster(CandidatePool(order), {"MID": 2}, budget=10, squad_size=2).player_ids
        for order in orders
    }

    # {a, d} and {b, c} both reach quality 160 at cost 10; the lower id wins
    assert results == {("a", "d")}


def _fake_solve(status, sol_status):
    def solve(self, solver=None, **kwargs):
        self.status = status
        self.sol_status = sol_status
        return status

    return solve


@pytest.mark.parametrize(
    "status, sol_status, error",
    [
        (pulp.LpStatusOptimal, pulp.LpSolutionIntegerFeasible, SolverTimeout),
        (pulp.LpStatusNotSolved, pulp.LpSolutionNoSolutionFound, SolverTimeout),
        (pulp.LpStatusInfeasible, pulp.LpSolutionInfeasible, SolverInfeasible),
        (pulp.LpStatusUnbounded, pulp.LpSolutionUnbounded, SolverFailure),
        (pulp.LpStatusUndefined, pulp.LpSolutionNoSolutionFound, SolverFailure),
    ],
)
def test_solver_status_mapping(monkeypatch, status, sol_status, error):
    monkeypatch.setattr(pulp.LpProblem, "solve", _fake_solve(status, sol_status))

    with pytest.raises(SolverFailure) as excinfo:
        select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4, fallback_enabled=False)
    roster = select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4)

    assert type(excinfo.value) is error
    assert excinfo.value.status == pulp.LpStatus[status]
    assert roster.path is SolutionPath.FALLBACK
    assert roster.solver_status == pulp.LpStatus[status]
    assert set(roster.player_ids) == {"gk", "def_b", "mid_b", "fwd"}


def test_solver_error_takes_fallback_path(monkeypatch):
    def broken(self, solver=None, **kwargs):
        raise pulp.PulpSolverError("cbc binary missing")

    monkeypatch.setattr(pulp.LpProblem, "solve", broken)

    with pytest.raises(SolverFailure) as excinfo:
        select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4, fallback_enabled=False)
    roster = select_roster(_six_pool(), ONE_EACH, budget=40, squad_size=4)

    assert type(excinfo.value) is SolverFailure
    assert excinfo.value.status == "Error"
    assert roster.path is SolutionPath.FALLBACK
    assert "cbc binary missing" in roster.fallback_reason


def _run_only(monkeypatch, *allowed):
    real_solve = service._solve
    labels = []

    def solve(problem, solver, label):
        labels.append(label)
        if label not in allowed:
            raise SolverTimeout(f"{label}: time limit reached", status="Not Solved")
        real_solve(problem, solver, label)

    monkeypatch.setattr(service, "_solve", solve)
    return labels


def _tied_pool() -> CandidatePool:
    return CandidatePool(
        (
            _candidate("m3", "MID", 80, 10),
            _candidate("m2", "MID", 80, 10),
            _candidate("m1", "MID", 80, 12),
        )
    )


def test_unfinished_cost_stage_keeps_primary_solution(monkeypatch):
    primary = select_roster(_tied_pool(), {"MID": 1}, budget=100, squad_size=1, deterministic_ties=False)
    labels = _run_only(monkeypatch, "Squad ILP")

    roster = select_roster(_tied_pool(), {"MID": 1}, budget=100, squad_size=1)

    assert labels == ["Squad ILP", "Cost tie-break"]
    assert roster.path is SolutionPath.EXACT
    assert roster.player_ids == primary.player_ids
    assert roster.total_quality == 80


def test_unfinished_identifier_stage_keeps_cheapest_solution(monkeypatch):
    labels = _run_only(monkeypatch, "Squad ILP", "Cost tie-break")

    roster = select_roster(_tied_pool(), {"MID": 1}, budget=100, squad_size=1)

    assert labels == ["Squad ILP", "Cost tie-break", "Identifier tie-break"]
    assert roster.path is SolutionPath.EXACT
    assert roster.player_ids[0] in {"m2", "m3"}
    assert roster.total_cost == 10


def test_optimize_squad_uses_config():
    config = SquadConfig(budget=40, squad_size=4, quotas=ONE_EACH, solver_time_limit=30)

    roster = optimize_squad(_six_pool(), config)

    assert set(roster.player_ids) == {"gk", "def_b", "mid_a", "fwd"}


def test_compare_with_greedy_reports_both_rosters():
    config = SquadConfig(budget=1000, squad_size=4, quotas=ONE_EACH, solver_time_limit=30)

    comparison = compare_with_greedy(_six_pool(), config)

    assert comparison.optimized.path is SolutionPath.EXACT
    assert comparison.greedy.path is SolutionPath.FALLBACK
    assert comparison.quality_improvement == pytest.approx(0.0)
    assert set(comparison.optimized.player_ids) == set(comparison.greedy.player_ids)


def test_run_scenarios_captures_errors_per_scenario():
    scenarios = {
        "tight": SquadConfig(budget=40, squad_size=4, quotas=ONE_EACH, solver_time_limit=30),
        "two_keepers": SquadConfig(
            budget=1000,
            squad_size=4,
            quotas={"GK": 2, "DEF": 1, "MID": 1},
            solver_time_limit=30,
        ),
    }

    results = run_scenarios(_six_pool(), scenarios)

    assert [result.name for result in results] == ["tight", "two_keepers"]
    assert results[0].error is None
    assert results[0].roster.total_quality == pytest.approx(300)
    assert results[1].roster is None
    assert "InfeasiblePool" in results[1].error


def test_run_scenarios_in_worker_processes():
    scenarios = [
        ("tight", SquadConfig(budget=40, squad_size=4, quotas=ONE_EACH, solver_time_limit=30)),
        ("loose", SquadConfig(budget=1000, squad_size=4, quotas=ONE_EACH, solver_time_limit=30)),
    ]

    results = run_scenarios(_six_pool(), scenarios, workers=2)

    assert [result.name for result in results] == ["tight", "loose"]
    assert results[0].roster.total_cost <= 40
    assert results[1].roster.total_quality == pytest.approx(330)

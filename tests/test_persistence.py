from datetime import datetime, timedelta, timezone

import pytest

from pysquad.models import Candidate, Roster, SolutionPath
from pysquad.persistence import RunStore
from pysquad.report import squad_summary


@pytest.fixture
def store(tmp_path, monkeypatch):
    monkeypatch.delenv("PYSQUAD_DB_PATH", raising=False)
    return RunStore(tmp_path / "runs.sqlite")


def _roster(path=SolutionPath.EXACT) -> Roster:
    players = (
        Candidate(player_id="gk", name="Keeper", position="GK", quality=80, cost=10.0, club="A", nationality="X"),
        Candidate(
            player_id="fwd",
            name="Striker",
            position="FWD",
            quality=85,
            cost=20.0,
            club="B",
            nationality="Y",
            offensive_score=88.0,
            attributes={"stamina": 71.0},
        ),
    )
    reason = "solver timed out" if path is SolutionPath.FALLBACK else None
    return Roster(players=players, path=path, budget=40.0, solver_status="Optimal", fallback_reason=reason)


def test_save_and_get_round_trip(store):
    roster = _roster()
    store.save_run(run_id="run-1", request={"budget": 40.0}, summary=squad_summary(roster), roster=roster)

    record = store.get_run("run-1")

    assert record is not None
    assert record.request == {"budget": 40.0}
    assert record.summary["total_players"] == 2
    rebuilt = record.to_roster()
    assert rebuilt.player_ids == roster.player_ids
    assert rebuilt.budget == 40.0
    assert rebuilt.path is SolutionPath.EXACT
    assert rebuilt.players[1].attributes == {"stamina": 71.0}


def test_fallback_reason_survives_storage(store):
    roster = _roster(SolutionPath.FALLBACK)
    store.save_run(run_id="fb", request={}, summary=squad_summary(roster), roster=roster)

    rebuilt = store.get_run("fb").to_roster()

    assert rebuilt.path is SolutionPath.FALLBACK
    assert rebuilt.fallback_reason == "solver timed out"


def test_list_runs_newest_first(store):
    roster = _roster()
    now = datetime.now(timezone.utc)
    store.save_run(run_id="old", request={}, summary=squad_summary(roster), roster=roster, created_at=now - timedelta(hours=1))
    store.save_run(run_id="new", request={}, summary=squad_summary(roster), roster=roster, created_at=now)

    assert [record.run_id for record in store.list_runs()] == ["new", "old"]
    assert [record.run_id for record in store.list_runs(limit=1)] == ["new"]


def test_delete_run(store):
    roster = _roster()
    store.save_run(run_id="gone", request={}, summary=squad_summary(roster), roster=roster)

    assert store.delete_run("gone") is True
    assert store.delete_run("gone") is False
    assert store.get_run("gone") is None


def test_env_path_wins(tmp_path, monkeypatch):
    env_path = tmp_path / "env.sqlite"
    monkeypatch.setenv("PYSQUAD_DB_PATH", str(env_path))

    store = RunStore(tmp_path / "ignored.sqlite")

    assert store.db_path == env_path
    assert env_path.exists()

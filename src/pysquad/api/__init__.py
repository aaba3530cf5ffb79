"""REST API for the pysquad optimizer."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from fastapi import FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import ValidationError

from pysquad.api.schemas import (
    GreedyComparisonResponse,
    LineupPlayerResponse,
    LineupResponse,
    RosterPlayerResponse,
    SquadRequest,
    SquadResponse,
    SquadSummaryResponse,
)
from pysquad.config import SquadConfig, resolve_formation
from pysquad.errors import (
    DataIntegrityError,
    InfeasiblePool,
    InvalidConfiguration,
    SolverFailure,
    SquadError,
    UnderfilledFormation,
)
from pysquad.ingest import load_candidate_pool
from pysquad.lineup import by_attribute, by_quality, by_score_map, chemistry_score, select_lineup, selection_scores
from pysquad.models import Candidate, Roster
from pysquad.optimizer import compare_with_greedy, optimize_squad
from pysquad.persistence import RunRecord, RunStore
from pysquad.pool import export_roster_csv
from pysquad.report import squad_summary


def _http_error(exc: SquadError) -> HTTPException:
    if isinstance(exc, (InvalidConfiguration, DataIntegrityError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, (InfeasiblePool, SolverFailure, UnderfilledFormation)):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _player_payload(candidate: Candidate) -> dict[str, Any]:
    return {
        "player_id": candidate.player_id,
        "name": candidate.name,
        "position": candidate.position.value,
        "quality": candidate.quality,
        "cost": candidate.cost,
        "club": candidate.club,
        "nationality": candidate.nationality,
    }


def _summary_response(summary: dict[str, Any]) -> SquadSummaryResponse:
    return SquadSummaryResponse.model_validate(summary)


def _parse_request(raw: str) -> SquadRequest:
    try:
        return SquadRequest.model_validate_json(raw or "{}")
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid squad_request: {exc.errors()[0]['msg']}") from exc


def _request_to_config(request: SquadRequest) -> SquadConfig:
    payload = request.model_dump(exclude_none=True, exclude={"compare_greedy"})
    try:
        return SquadConfig.from_dict(payload)
    except InvalidConfiguration as exc:
        raise _http_error(exc) from exc


def _record_to_dict(run: RunRecord) -> dict[str, Any]:
    return {
        "run_id": run.run_id,
        "created_at": run.created_at.isoformat(),
        "request": run.request,
        "summary": run.summary,
        "players": run.players,
    }


def create_app(store: RunStore | None = None) -> FastAPI:
    app = FastAPI(title="pysquad optimizer")
    store = store or RunStore()
    app.state.run_store = store

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/squads", response_model=SquadResponse)
    async def create_squad(
        candidates: UploadFile = File(...),
        squad_request: str = Form("{}"),
    ):
        request = _parse_request(squad_request)
        config = _request_to_config(request)
        contents = await candidates.read()
        if not contents.strip():
            raise HTTPException(status_code=400, detail="candidates file is empty")
        try:
            text = contents.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise HTTPException(status_code=400, detail="candidates file must be UTF-8 CSV") from exc

        try:
            pool = load_candidate_pool(text)
            if request.compare_greedy:
                comparison = await run_in_threadpool(compare_with_greedy, pool, config)
                roster = comparison.optimized
            else:
                comparison = None
                roster = await run_in_threadpool(optimize_squad, pool, config)
        except SquadError as exc:
            raise _http_error(exc) from exc

        run_id = uuid4().hex
        summary = squad_summary(roster)
        store.save_run(run_id=run_id, request=config.to_dict(), summary=summary, roster=roster)

        comparison_payload = None
        if comparison is not None:
            comparison_payload = GreedyComparisonResponse(
                optimized_quality=comparison.optimized.total_quality,
                optimized_cost=comparison.optimized.total_cost,
                greedy_quality=comparison.greedy.total_quality,
                greedy_cost=comparison.greedy.total_cost,
                quality_improvement=comparison.quality_improvement,
            )
        return SquadResponse(
            run_id=run_id,
            summary=_summary_response(summary),
            players=[RosterPlayerResponse(**_player_payload(player)) for player in roster],
            comparison=comparison_payload,
        )

    @app.get("/runs")
    async def list_runs(limit: int = 50):
        return [
            {
                "run_id": run.run_id,
                "created_at": run.created_at.isoformat(),
                "path": run.summary.get("path"),
                "total_quality": run.summary.get("total_quality"),
                "total_cost": run.summary.get("total_cost"),
            }
            for run in store.list_runs(limit=limit)
        ]

    def _fetch_run_or_404(run_id: str) -> RunRecord:
        run = store.get_run(run_id)
        if run is None:
            raise HTTPException(status_code=404, detail="Run not found")
        return run

    @app.get("/runs/{run_id}")
    async def get_run(run_id: str):
        return _record_to_dict(_fetch_run_or_404(run_id))

    @app.get("/runs/{run_id}/lineups/{formation}", response_model=LineupResponse)
    async def get_lineup(run_id: str, formation: str, ranking: str = Query("quality")):
        run = _fetch_run_or_404(run_id)
        try:
            resolved = resolve_formation(formation)
        except InvalidConfiguration as exc:
            raise HTTPException(status_code=404, detail=f"Unknown formation {formation!r}") from exc

        roster: Roster = run.to_roster()
        weights = SquadConfig.from_dict(run.request).chemistry
        if ranking == "quality":
            key = by_quality
        elif ranking == "chemistry":
            key = by_score_map(selection_scores(list(roster), weights))
        else:
            key = by_attribute(ranking)
        try:
            lineup = select_lineup(roster, resolved, key, label=ranking)
        except SquadError as exc:
            raise _http_error(exc) from exc

        return LineupResponse(
            run_id=run.run_id,
            formation=lineup.formation,
            ranking=ranking,
            total_quality=lineup.total_quality,
            chemistry=chemistry_score(lineup.players, weights),
            players=[
                LineupPlayerResponse(slot=slot.slot, **_player_payload(slot.candidate)) for slot in lineup
            ],
        )

    @app.get("/runs/{run_id}/export.csv")
    async def export_csv(run_id: str):
        run = _fetch_run_or_404(run_id)
        csv_text = export_roster_csv(run.to_roster())
        return Response(
            content=csv_text,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={run_id}.csv"},
        )

    return app

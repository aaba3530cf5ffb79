from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ChemistryPayload(BaseModel):
    same_club_bonus: float = Field(default=3.0, ge=0.0)
    same_nationality_bonus: float = Field(default=1.0, ge=0.0)
    importance_multiplier: float = Field(default=5.0, ge=0.0)


class SquadRequest(BaseModel):
    budget: float = Field(default=2e9, ge=0.0)
    squad_size: int = Field(default=25, ge=1)
    quotas: Dict[str, int] | None = None
    solver_time_limit: float = Field(default=300.0, gt=0.0)
    fallback_enabled: bool = True
    deterministic_ties: bool = True
    chemistry: ChemistryPayload | None = None
    compare_greedy: bool = False


class RosterPlayerResponse(BaseModel):
    player_id: str
    name: str
    position: str
    quality: float
    cost: float
    club: str
    nationality: str


class SquadSummaryResponse(BaseModel):
    total_players: int
    total_quality: float
    total_cost: float
    budget: float
    budget_remaining: float
    within_budget: bool
    path: str
    solver_status: Optional[str] = None
    fallback_reason: Optional[str] = None
    position_breakdown: Dict[str, int]


class GreedyComparisonResponse(BaseModel):
    optimized_quality: float
    optimized_cost: float
    greedy_quality: float
    greedy_cost: float
    quality_improvement: float


class SquadResponse(BaseModel):
    run_id: str
    summary: SquadSummaryResponse
    players: List[RosterPlayerResponse]
    comparison: GreedyComparisonResponse | None = None


class LineupPlayerResponse(RosterPlayerResponse):
    slot: str


class LineupResponse(BaseModel):
    run_id: str
    formation: str
    ranking: str
    total_quality: float
    chemistry: float
    players: List[LineupPlayerResponse]

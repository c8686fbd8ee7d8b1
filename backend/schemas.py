"""
Pydantic request/response schemas for the bet simulator API.
"""

from __future__ import annotations

from typing import Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

class TeamResponse(BaseModel):
    id: int
    name: str
    crest: Optional[str] = None


class ScoreResponse(BaseModel):
    home: Optional[int] = None
    away: Optional[int] = None


class MatchResponse(BaseModel):
    """Match in the shape the frontend's MatchCard consumes."""
    id: int
    date: datetime
    status: str
    matchday: Optional[int] = None
    homeTeam: TeamResponse
    awayTeam: TeamResponse
    score: ScoreResponse

    @classmethod
    def from_orm_match(cls, m) -> "MatchResponse":
        return cls(
            id=m.match_id,
            date=m.utc_date,
            status=m.status,
            matchday=m.matchday,
            homeTeam=TeamResponse(id=m.home_team_id, name=m.home_team_name, crest=m.home_team_crest),
            awayTeam=TeamResponse(id=m.away_team_id, name=m.away_team_name, crest=m.away_team_crest),
            score=ScoreResponse(home=m.home_score, away=m.away_score),
        )


class OddsResponse(BaseModel):
    home_win: float
    draw: float
    away_win: float


class MatchOddsResponse(BaseModel):
    """Response for GET /api/matches/{match_id}/odds."""
    match_id: int
    home_team: str
    away_team: str
    home_strength: float
    away_strength: float
    draw_share: float
    odds: OddsResponse


class SyncResponse(BaseModel):
    """Response from the sync-matches / sync-standings routes."""
    source: str
    skipped: bool
    records_upserted: int
    last_fetch: Optional[str]


# ---------------------------------------------------------------------------
# Bets
# ---------------------------------------------------------------------------

class BetCreate(BaseModel):
    """
    Payload for POST /api/place-bet.

    Odds are not accepted from the client; the server prices the selection
    at placement time from the current standings.
    """

    match_id: int = Field(..., description="football-data match id")
    selection: Literal["HOME", "DRAW", "AWAY"] = Field(..., description="Outcome backed")
    team: Optional[str] = Field(
        None, max_length=120, description="Team backed; required unless selection is DRAW"
    )
    amount: float = Field(..., gt=0, description="Stake in virtual currency")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: float) -> float:
        if round(v, 2) <= 0:
            raise ValueError("amount must be at least 0.01")
        return round(v, 2)

    @model_validator(mode="after")
    def team_required_for_side(self) -> "BetCreate":
        if self.selection != "DRAW" and not (self.team and self.team.strip()):
            raise ValueError(f"team is required for a {self.selection} bet")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "match_id": 537785,
                "selection": "HOME",
                "team": "Arsenal",
                "amount": 50.0,
            }
        }
    }


class BetPlacedResponse(BaseModel):
    """Response after a bet is placed."""
    message: str
    bet_id: int
    match_id: int
    selection: str
    odds: float
    amount: float
    potential_payout: float
    balance: float


class BetResponse(BaseModel):
    """One bet as listed by GET /api/fetch-bets."""
    id: int
    match_id: int
    user_selection: str
    user_team: Optional[str]
    amount: float
    odds: float
    is_settled: bool
    result: Optional[str]
    won_amount: Optional[float]
    created_at: Optional[datetime]
    settled_at: Optional[datetime]
    match: Optional[MatchResponse] = None


class BetListResponse(BaseModel):
    total: int
    bets: list[BetResponse]


class SettlementResponse(BaseModel):
    """Response after an admin void."""
    message: str
    bet_id: int
    result: str
    won_amount: float


class UserResponse(BaseModel):
    id: str
    balance: float
    open_bets: int
    settled_bets: int

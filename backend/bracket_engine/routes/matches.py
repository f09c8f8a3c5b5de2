"""
Match API Routes
Result entry, result reversal, manual status changes and advancement repair.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, model_validator
from sqlmodel import Session

from bracket_engine.database import get_session
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.routes.brackets import MatchResponse
from bracket_engine.services import advancement_service, result_service
from bracket_engine.services.errors import BracketError
from bracket_engine.services.score_parser import SetScore, format_score, parse_score
from bracket_engine.utils.guards import raise_http

router = APIRouter()


class SetScoreIn(BaseModel):
    team1_games: int
    team2_games: int
    team1_tiebreak: Optional[int] = None
    team2_tiebreak: Optional[int] = None


class MatchResultRequest(BaseModel):
    winner_team_id: int
    sets: List[SetScoreIn] = []
    score: Optional[str] = None  # Alternative to sets: "6-4 7-6(7-5)"
    status: MatchStatus = MatchStatus.COMPLETED
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None

    @model_validator(mode="after")
    def validate_score_source(self):
        if self.sets and self.score:
            raise ValueError("Provide either sets or score, not both")
        if self.score and parse_score(self.score) is None:
            raise ValueError(f"Could not parse score '{self.score}'")
        return self

    def set_scores(self) -> List[SetScore]:
        if self.score:
            return parse_score(self.score)
        return [SetScore(**s.model_dump()) for s in self.sets]


class MatchStatusUpdate(BaseModel):
    status: MatchStatus


class SetScoreOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    set_number: int
    team1_games: int
    team2_games: int
    team1_tiebreak: Optional[int] = None
    team2_tiebreak: Optional[int] = None


class MatchDetailResponse(MatchResponse):
    sets: List[SetScoreOut] = []
    score: Optional[str] = None
    duration_minutes: Optional[int] = None


class AdvanceResponse(BaseModel):
    """Response for manual advancement"""
    match_id: int
    teams_advanced: int


class ResolveDependenciesResponse(BaseModel):
    """Response for bulk dependency resolution"""
    matches_processed: int
    teams_advanced: int
    unknown_before: int
    unknown_after: int


def _match_detail(match: Match) -> MatchDetailResponse:
    detail = MatchDetailResponse.model_validate(match)
    detail.sets = [SetScoreOut.model_validate(s) for s in match.sets]
    detail.score = format_score(detail.sets) if detail.sets else None
    return detail


@router.get("/matches/{match_id}", response_model=MatchDetailResponse)
def get_match(match_id: int, session: Session = Depends(get_session)):
    """Match with its set scores"""
    match = session.get(Match, match_id)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return _match_detail(match)


@router.post("/matches/{match_id}/result", response_model=MatchDetailResponse)
def record_result(match_id: int, payload: MatchResultRequest, session: Session = Depends(get_session)):
    """
    Record the result of a match.

    The winner (and, in double elimination, the loser) moves on to the
    next match automatically.
    """
    try:
        match = result_service.record_match_result(
            session,
            match_id,
            payload.winner_team_id,
            payload.set_scores(),
            status=payload.status.value,
            notes=payload.notes,
            duration_minutes=payload.duration_minutes,
        )
    except BracketError as e:
        raise_http(e)
    return _match_detail(match)


@router.delete("/matches/{match_id}/result", response_model=MatchDetailResponse)
def delete_result(match_id: int, session: Session = Depends(get_session)):
    """Remove a recorded result; downstream slots filled by it are cleared"""
    try:
        match = result_service.revert_match_result(session, match_id)
    except BracketError as e:
        raise_http(e)
    return _match_detail(match)


@router.patch("/matches/{match_id}/status", response_model=MatchDetailResponse)
def update_status(match_id: int, payload: MatchStatusUpdate, session: Session = Depends(get_session)):
    """Start or cancel a match. Results are recorded through /result."""
    try:
        match = result_service.update_match_status(session, match_id, payload.status.value)
    except BracketError as e:
        raise_http(e)
    return _match_detail(match)


@router.post("/matches/{match_id}/advance", response_model=AdvanceResponse)
def advance_match(match_id: int, session: Session = Depends(get_session)):
    """Re-run progression for a decided match (idempotent repair)"""
    try:
        count = advancement_service.apply_advancement(session, match_id)
    except BracketError as e:
        raise_http(e)
    return AdvanceResponse(match_id=match_id, teams_advanced=count)


@router.post("/tournaments/{tournament_id}/resolve-dependencies", response_model=ResolveDependenciesResponse)
def resolve_dependencies(tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)):
    """Re-run progression for every decided match of a category"""
    return advancement_service.resolve_all_dependencies(session, tournament_id, category_id)

"""
Bracket API Routes
Generation, reads, group standings and classification for a tournament category.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from bracket_engine.database import get_session
from bracket_engine.services import bracket_service
from bracket_engine.services.classification_service import classify_teams_to_elimination_phase, force_classify
from bracket_engine.services.errors import BracketError
from bracket_engine.services.standings_service import calculate_group_standings
from bracket_engine.utils.group_config import calculate_optimal_group_configuration
from bracket_engine.utils.guards import raise_http

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class GenerateBracketRequest(BaseModel):
    category_id: int
    force: bool = False


class GenerateBracketResponse(BaseModel):
    format: str
    team_count: int
    matches_created: int
    playable_matches: int
    byes: int
    zones_created: int
    total_rounds: int
    group_configuration: Optional[Dict[str, Any]] = None


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    category_id: int
    zone_id: Optional[int] = None
    round_number: int
    match_number: int
    phase_type: str
    bracket: str
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    team1_from_match_id: Optional[int] = None
    team2_from_match_id: Optional[int] = None
    team1_from_role: Optional[str] = None
    team2_from_role: Optional[str] = None
    status: str
    winner_team_id: Optional[int] = None
    team1_sets_won: int
    team2_sets_won: int
    is_bye: bool
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None


class BracketResponse(BaseModel):
    matches: List[MatchResponse]
    rounds: Dict[int, List[MatchResponse]]
    total_rounds: int
    total_matches: int


class ValidationResponse(BaseModel):
    valid: bool
    errors: List[str]
    team_count: int


class GroupConfigurationResponse(BaseModel):
    num_groups: int
    group_sizes: List[int]
    qualified_per_group: int
    wildcard_slots: int
    total_qualified: int


class StandingResponse(BaseModel):
    team_id: int
    zone_id: int
    position: Optional[int] = None
    matches_played: int
    matches_won: int
    matches_lost: int
    sets_won: int
    sets_lost: int
    games_won: int
    games_lost: int
    set_difference: int
    game_difference: int
    points: int


# ============================================================================
# Generation
# ============================================================================


@router.post("/tournaments/{tournament_id}/generate-bracket", response_model=GenerateBracketResponse)
def generate_bracket(tournament_id: int, payload: GenerateBracketRequest, session: Session = Depends(get_session)):
    """
    Generate (or regenerate) the bracket of a category.

    Regeneration deletes all existing matches and results of the category;
    when matches exist the caller must confirm with force=true.
    """
    existing = bracket_service.check_existing_matches(session, tournament_id, payload.category_id)
    if existing["has_matches"] and not payload.force:
        return JSONResponse(
            status_code=409,
            content={
                "code": "CONFIRMATION_REQUIRED",
                "detail": "Matches already exist for this category; regenerate with force=true to replace them",
                "existing": existing,
            },
        )

    try:
        return bracket_service.generate_bracket(session, tournament_id, payload.category_id)
    except BracketError as e:
        raise_http(e)


@router.get("/tournaments/{tournament_id}/bracket", response_model=BracketResponse)
def get_bracket(tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)):
    """Matches of a category grouped by round number"""
    bracket = bracket_service.get_bracket(session, tournament_id, category_id)
    return BracketResponse(
        matches=[MatchResponse.model_validate(m) for m in bracket["matches"]],
        rounds={
            number: [MatchResponse.model_validate(m) for m in round_matches]
            for number, round_matches in bracket["rounds_by_number"].items()
        },
        total_rounds=bracket["total_rounds"],
        total_matches=bracket["total_matches"],
    )


@router.get("/tournaments/{tournament_id}/bracket/validate", response_model=ValidationResponse)
def validate_bracket(tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)):
    """Check whether a bracket can be generated right now"""
    return bracket_service.validate_bracket_generation(session, tournament_id, category_id)


@router.get("/tournaments/{tournament_id}/bracket/existing")
def existing_matches(tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)):
    """Counts of existing matches by status"""
    return bracket_service.check_existing_matches(session, tournament_id, category_id)


@router.get("/tournaments/{tournament_id}/preview-bracket")
def preview_bracket(tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)):
    """Shape of the bracket that would be generated (nothing is written)"""
    try:
        return bracket_service.preview_bracket(session, tournament_id, category_id)
    except BracketError as e:
        raise_http(e)


@router.get("/group-configuration/{team_count}", response_model=GroupConfigurationResponse)
def group_configuration(team_count: int):
    """Group configuration for a number of teams"""
    try:
        config = calculate_optimal_group_configuration(team_count)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return config.to_dict()


# ============================================================================
# Groups
# ============================================================================


@router.get("/tournaments/{tournament_id}/groups")
def list_groups(tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)):
    """Groups of a category with their teams (standings order once calculated)"""
    return bracket_service.list_zones(session, tournament_id, category_id)


@router.post("/zones/{zone_id}/standings", response_model=List[StandingResponse])
def calculate_standings(zone_id: int, session: Session = Depends(get_session)):
    """Recalculate and store the standings of a group"""
    try:
        standings = calculate_group_standings(session, zone_id)
    except BracketError as e:
        raise_http(e)
    return [s.to_dict() for s in standings]


@router.post("/tournaments/{tournament_id}/classify")
def classify(tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)):
    """Fill the playoff first round from the group standings"""
    try:
        return classify_teams_to_elimination_phase(session, tournament_id, category_id)
    except BracketError as e:
        raise_http(e)


@router.post("/tournaments/{tournament_id}/force-classify")
def force_classify_category(
    tournament_id: int, category_id: int = Query(...), session: Session = Depends(get_session)
):
    """Recalculate all group standings and fill the playoff first round"""
    try:
        return force_classify(session, tournament_id, category_id)
    except BracketError as e:
        raise_http(e)

"""
Team Management API Routes
Registers two-player teams into tournament categories and assigns seeds.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from bracket_engine.database import get_session
from bracket_engine.models.category import TournamentCategory
from bracket_engine.models.registration import Registration, RegistrationStatus
from bracket_engine.models.team import Team
from bracket_engine.services.errors import BracketError
from bracket_engine.services.seeding_service import assign_seeds
from bracket_engine.utils.guards import raise_http, require_tournament

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PlayerEntry(BaseModel):
    player_name: str
    ranking_points: Optional[int] = None

    @field_validator("player_name")
    @classmethod
    def validate_player_name(cls, v):
        if not v or not v.strip():
            raise ValueError("player_name is required")
        return v.strip()


class TeamCreateRequest(BaseModel):
    category_id: int
    player1: PlayerEntry
    player2: PlayerEntry
    name: Optional[str] = None
    seed: Optional[int] = None
    registration_status: RegistrationStatus = RegistrationStatus.CONFIRMED

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        if v is not None and v < 1:
            raise ValueError("seed must be >= 1")
        return v


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    category_id: int
    name: Optional[str] = None
    seed: Optional[int] = None
    registration1_id: int
    registration2_id: int
    created_at: datetime


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    category_id: int
    player_name: str
    ranking_points: Optional[int] = None
    status: str


class SeedAssignmentResponse(BaseModel):
    team_id: int
    category_id: int
    seed: int
    ranking_points: Optional[int] = None


# ============================================================================
# Team Endpoints
# ============================================================================


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(tournament_id: int, payload: TeamCreateRequest, session: Session = Depends(get_session)):
    """Register a team: one registration per player plus the team row"""
    require_tournament(session, tournament_id)
    link = session.exec(
        select(TournamentCategory).where(
            TournamentCategory.tournament_id == tournament_id,
            TournamentCategory.category_id == payload.category_id,
        )
    ).first()
    if not link:
        raise HTTPException(status_code=404, detail="Category is not part of this tournament")

    if payload.seed is not None:
        taken = session.exec(
            select(Team).where(
                Team.tournament_id == tournament_id,
                Team.category_id == payload.category_id,
                Team.seed == payload.seed,
            )
        ).first()
        if taken:
            raise HTTPException(status_code=409, detail=f"Seed {payload.seed} is already taken")

    registrations = []
    for player in (payload.player1, payload.player2):
        registration = Registration(
            tournament_id=tournament_id,
            category_id=payload.category_id,
            player_name=player.player_name,
            ranking_points=player.ranking_points,
            status=payload.registration_status.value,
        )
        session.add(registration)
        registrations.append(registration)
    session.flush()

    team = Team(
        tournament_id=tournament_id,
        category_id=payload.category_id,
        name=payload.name or f"{payload.player1.player_name} / {payload.player2.player_name}",
        seed=payload.seed,
        registration1_id=registrations[0].id,
        registration2_id=registrations[1].id,
    )
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def list_teams(
    tournament_id: int,
    category_id: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """
    Teams of a tournament, optionally for one category.

    Order: seed ascending (nulls last), then registration order.
    """
    require_tournament(session, tournament_id)
    query = select(Team).where(Team.tournament_id == tournament_id)
    if category_id is not None:
        query = query.where(Team.category_id == category_id)
    teams = session.exec(query).all()
    return sorted(teams, key=lambda t: (t.seed is None, t.seed or 0, t.created_at, t.id))


@router.patch("/registrations/{registration_id}", response_model=RegistrationResponse)
def update_registration_status(
    registration_id: int, payload: RegistrationStatusUpdate, session: Session = Depends(get_session)
):
    """Confirm, cancel or waitlist a player registration"""
    registration = session.get(Registration, registration_id)
    if not registration:
        raise HTTPException(status_code=404, detail="Registration not found")
    registration.status = payload.status.value
    session.add(registration)
    session.commit()
    session.refresh(registration)
    return registration


@router.post("/tournaments/{tournament_id}/assign-seeds", response_model=List[SeedAssignmentResponse])
def assign_seeds_endpoint(
    tournament_id: int,
    category_id: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Seed eligible teams by combined ranking points (highest first)"""
    try:
        assignments = assign_seeds(session, tournament_id, category_id)
    except BracketError as e:
        raise_http(e)
    return [
        SeedAssignmentResponse(team_id=a.team_id, category_id=a.category_id, seed=a.seed, ranking_points=a.ranking_points)
        for a in assignments
    ]

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from sqlmodel import Session, select

from bracket_engine.database import get_session
from bracket_engine.models.category import Category, TournamentCategory
from bracket_engine.models.tournament import Tournament, TournamentFormat, TournamentStatus
from bracket_engine.utils.guards import require_tournament

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    format: TournamentFormat
    status: TournamentStatus = TournamentStatus.DRAFT
    min_participants: int = 2
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("min_participants")
    @classmethod
    def validate_min_participants(cls, v):
        if v < 2:
            raise ValueError("min_participants must be >= 2")
        return v

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    format: Optional[TournamentFormat] = None
    status: Optional[TournamentStatus] = None
    min_participants: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    format: str
    status: str
    min_participants: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CategoryCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TournamentCategoryCreate(BaseModel):
    category_id: int
    max_teams: Optional[int] = None


class TournamentCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    category_id: int
    max_teams: Optional[int] = None


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a new tournament (DRAFT unless a status is given)"""
    data = tournament_data.model_dump()
    data["format"] = tournament_data.format.value
    data["status"] = tournament_data.status.value
    tournament = Tournament(**data)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return require_tournament(session, tournament_id)


@router.put("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(tournament_id: int, tournament_data: TournamentUpdate, session: Session = Depends(get_session)):
    """Update a tournament"""
    tournament = require_tournament(session, tournament_id)

    update_data = tournament_data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if value is None:
            continue
        if isinstance(value, (TournamentFormat, TournamentStatus)):
            value = value.value
        setattr(tournament, key, value)

    if tournament.start_date and tournament.end_date and tournament.end_date < tournament.start_date:
        raise HTTPException(status_code=400, detail="end_date must be >= start_date")

    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(category_data: CategoryCreate, session: Session = Depends(get_session)):
    """Create a category (names are unique)"""
    existing = session.exec(select(Category).where(Category.name == category_data.name)).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Category '{category_data.name}' already exists")
    category = Category(name=category_data.name)
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(session: Session = Depends(get_session)):
    """List all categories"""
    return session.exec(select(Category).order_by(Category.id)).all()


@router.post(
    "/tournaments/{tournament_id}/categories", response_model=TournamentCategoryResponse, status_code=201
)
def add_tournament_category(
    tournament_id: int, payload: TournamentCategoryCreate, session: Session = Depends(get_session)
):
    """Run a category in a tournament"""
    require_tournament(session, tournament_id)
    if not session.get(Category, payload.category_id):
        raise HTTPException(status_code=404, detail="Category not found")

    existing = session.exec(
        select(TournamentCategory).where(
            TournamentCategory.tournament_id == tournament_id,
            TournamentCategory.category_id == payload.category_id,
        )
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail="Category already added to this tournament")

    link = TournamentCategory(tournament_id=tournament_id, category_id=payload.category_id, max_teams=payload.max_teams)
    session.add(link)
    session.commit()
    session.refresh(link)
    return link


@router.get("/tournaments/{tournament_id}/categories", response_model=List[TournamentCategoryResponse])
def list_tournament_categories(tournament_id: int, session: Session = Depends(get_session)):
    """Categories run in a tournament"""
    require_tournament(session, tournament_id)
    return session.exec(
        select(TournamentCategory).where(TournamentCategory.tournament_id == tournament_id)
    ).all()

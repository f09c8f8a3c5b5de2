from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.category import TournamentCategory


class TournamentFormat(str, Enum):
    SINGLE_ELIMINATION = "SINGLE_ELIMINATION"
    DOUBLE_ELIMINATION = "DOUBLE_ELIMINATION"
    ROUND_ROBIN = "ROUND_ROBIN"
    GROUP_STAGE_ELIMINATION = "GROUP_STAGE_ELIMINATION"
    AMERICANO = "AMERICANO"


class TournamentStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    REGISTRATION_OPEN = "REGISTRATION_OPEN"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    format: TournamentFormat = Field(sa_column=Column(String, nullable=False))
    status: TournamentStatus = Field(
        default=TournamentStatus.DRAFT, sa_column=Column(String, nullable=False)
    )
    min_participants: int = Field(default=2)
    start_date: Optional[date] = Field(default=None)
    end_date: Optional[date] = Field(default=None)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    categories: List["TournamentCategory"] = Relationship(back_populates="tournament")

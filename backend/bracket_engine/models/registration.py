from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    WAITLIST = "WAITLIST"


# Statuses that make a player eligible for the draw
CONFIRMED_STATUSES = (RegistrationStatus.CONFIRMED.value, RegistrationStatus.PAID.value)


class Registration(SQLModel, table=True):
    """One player's entry into a tournament category."""

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    player_name: str
    ranking_points: Optional[int] = Field(default=None)
    status: RegistrationStatus = Field(
        default=RegistrationStatus.PENDING, sa_column=Column(String, nullable=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)

from datetime import datetime
from typing import List, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from bracket_engine.models.match import PhaseType


class Zone(SQLModel, table=True):
    """A round-robin group inside a group-stage tournament category."""

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    name: str  # "Group A", "Group B", ...
    phase_type: PhaseType = Field(default=PhaseType.GROUP_STAGE, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)

    teams: List["ZoneTeam"] = Relationship(back_populates="zone")


class ZoneTeam(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("zone_id", "team_id", name="uq_zone_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    zone_id: int = Field(foreign_key="zone.id", index=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    position: Optional[int] = Field(default=None)  # Standings position, null until calculated

    zone: "Zone" = Relationship(back_populates="teams")

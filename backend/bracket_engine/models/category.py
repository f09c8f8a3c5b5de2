from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.tournament import Tournament


class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)  # e.g. "Men A", "Mixed B"

    tournaments: List["TournamentCategory"] = Relationship(back_populates="category")


class TournamentCategory(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "category_id", name="uq_tournament_category"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    max_teams: Optional[int] = Field(default=None)

    tournament: "Tournament" = Relationship(back_populates="categories")
    category: "Category" = Relationship(back_populates="tournaments")

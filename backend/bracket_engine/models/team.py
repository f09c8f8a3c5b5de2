from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Team(SQLModel, table=True):
    __table_args__ = (
        # Enforce unique seeds within a tournament category (where seed is not null)
        SAUniqueConstraint("tournament_id", "category_id", "seed", name="uq_category_seed"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    name: Optional[str] = Field(default=None)
    seed: Optional[int] = Field(default=None)  # 1-based seed (1=highest)
    registration1_id: int = Field(foreign_key="registration.id")
    registration2_id: int = Field(foreign_key="registration.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)  # Registration order tie-break

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.match_set import MatchSet


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    WALKOVER = "WALKOVER"
    CANCELLED = "CANCELLED"


FINISHED_STATUSES = (MatchStatus.COMPLETED.value, MatchStatus.WALKOVER.value)
TERMINAL_STATUSES = FINISHED_STATUSES + (MatchStatus.CANCELLED.value,)


class PhaseType(str, Enum):
    GROUP_STAGE = "GROUP_STAGE"
    ROUND_OF_32 = "ROUND_OF_32"
    ROUND_OF_16 = "ROUND_OF_16"
    QUARTERFINALS = "QUARTERFINALS"
    SEMIFINALS = "SEMIFINALS"
    FINAL = "FINAL"
    LOWER_BRACKET = "LOWER_BRACKET"


class SlotRole(str, Enum):
    WINNER = "WINNER"
    LOSER = "LOSER"


class Match(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "category_id", "round_number", "match_number", name="uq_match_round_number"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    zone_id: Optional[int] = Field(default=None, foreign_key="zone.id", index=True)

    round_number: int
    match_number: int  # 1-based within the round
    phase_type: PhaseType = Field(sa_column=Column(String, nullable=False))
    bracket: str = Field(default="MAIN")  # "GROUP" | "MAIN" | "UPPER" | "LOWER" | "GRAND_FINAL" | "PLAYOFF"

    # Team slots (direct assignment at creation, or filled by progression)
    team1_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team2_id: Optional[int] = Field(default=None, foreign_key="team.id")

    # Upstream edges: which match feeds each slot, and with which of its participants
    team1_from_match_id: Optional[int] = Field(default=None, foreign_key="match.id")
    team2_from_match_id: Optional[int] = Field(default=None, foreign_key="match.id")
    team1_from_role: Optional[str] = Field(default=None)  # "WINNER" | "LOSER"
    team2_from_role: Optional[str] = Field(default=None)

    status: MatchStatus = Field(default=MatchStatus.SCHEDULED, sa_column=Column(String, nullable=False))
    winner_team_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team1_sets_won: int = Field(default=0)
    team2_sets_won: int = Field(default=0)
    is_bye: bool = Field(default=False)
    notes: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    sets: List["MatchSet"] = Relationship(
        back_populates="match", sa_relationship_kwargs={"order_by": "MatchSet.set_number"}
    )

    def participants(self) -> List[int]:
        return [t for t in (self.team1_id, self.team2_id) if t is not None]

    def loser_id(self) -> Optional[int]:
        """The participant that is not the recorded winner (None until decided)."""
        if self.winner_team_id is None:
            return None
        if self.winner_team_id == self.team1_id:
            return self.team2_id
        if self.winner_team_id == self.team2_id:
            return self.team1_id
        return None

from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.match import Match


class MatchSet(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("match_id", "set_number", name="uq_match_set_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    set_number: int  # 1-based
    team1_games: int
    team2_games: int
    team1_tiebreak: Optional[int] = Field(default=None)
    team2_tiebreak: Optional[int] = Field(default=None)

    match: "Match" = Relationship(back_populates="sets")

    def winner_side(self) -> Optional[int]:
        """1 or 2 for the side that took the set, None for a level set."""
        if self.team1_games > self.team2_games:
            return 1
        if self.team2_games > self.team1_games:
            return 2
        if self.team1_tiebreak is not None and self.team2_tiebreak is not None:
            if self.team1_tiebreak > self.team2_tiebreak:
                return 1
            if self.team2_tiebreak > self.team1_tiebreak:
                return 2
        return None

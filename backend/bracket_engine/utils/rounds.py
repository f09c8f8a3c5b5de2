"""
Round identifiers.

Every bracket round is persisted as a single ``round_number`` column, with
each bracket side living in its own numeric range:

- GROUP / MAIN / UPPER: 1..N
- LOWER: 100 + index
- GRAND_FINAL: 200
- PLAYOFF (elimination after a group stage): 10, 11, ...

``RoundKey`` carries the side explicitly so engine code never has to infer
a bracket from a magic number. ``Match.bracket`` stores the side.
"""

from dataclasses import dataclass
from enum import Enum

from bracket_engine.models.match import PhaseType

LOWER_ROUND_OFFSET = 100
GRAND_FINAL_ROUND = 200
PLAYOFF_FIRST_ROUND = 10


class BracketSide(str, Enum):
    GROUP = "GROUP"
    MAIN = "MAIN"
    UPPER = "UPPER"
    LOWER = "LOWER"
    GRAND_FINAL = "GRAND_FINAL"
    PLAYOFF = "PLAYOFF"


@dataclass(frozen=True)
class RoundKey:
    side: BracketSide
    index: int = 1  # 1-based within the side

    @property
    def round_number(self) -> int:
        if self.side == BracketSide.LOWER:
            return LOWER_ROUND_OFFSET + self.index
        if self.side == BracketSide.GRAND_FINAL:
            return GRAND_FINAL_ROUND
        if self.side == BracketSide.PLAYOFF:
            return PLAYOFF_FIRST_ROUND - 1 + self.index
        return self.index

    @classmethod
    def from_round_number(cls, side: BracketSide, round_number: int) -> "RoundKey":
        side = BracketSide(side)
        if side == BracketSide.LOWER:
            return cls(side, round_number - LOWER_ROUND_OFFSET)
        if side == BracketSide.GRAND_FINAL:
            return cls(side, 1)
        if side == BracketSide.PLAYOFF:
            return cls(side, round_number - PLAYOFF_FIRST_ROUND + 1)
        return cls(side, round_number)


# Phase label by distance from the final (0 = the final itself)
_PHASE_BY_DISTANCE = {
    0: PhaseType.FINAL,
    1: PhaseType.SEMIFINALS,
    2: PhaseType.QUARTERFINALS,
    3: PhaseType.ROUND_OF_16,
    4: PhaseType.ROUND_OF_32,
}


def elimination_phase(round_index: int, total_rounds: int) -> PhaseType:
    """
    Label an elimination round by how far it is from the final.

    Rounds further out than the round of 32 get the generic GROUP_STAGE label.
    """
    return _PHASE_BY_DISTANCE.get(total_rounds - round_index, PhaseType.GROUP_STAGE)


def lower_round_for_upper_loser(upper_round: int) -> int:
    """
    Lower-bracket round index that receives losers of the given upper round.

    Upper round 1 losers meet each other in lower round 1; losers of upper
    round k (k >= 2) drop into lower round 2(k - 1).
    """
    if upper_round <= 1:
        return 1
    return 2 * (upper_round - 1)

"""
Seed / Bye Distribution

Places teams into the first round of an elimination bracket. Byes sit at
every other leading slot (0, 2, 4, ...) so each bye faces a real team and
two byes never meet.
"""

from typing import List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def bracket_dimensions(team_count: int) -> Tuple[int, int, int]:
    """
    Compute (rounds, bracket_size, byes) for a single-elimination bracket.

    rounds = ceil(log2(team_count)), bracket_size = 2 ** rounds.

    Examples:
    - 8 teams → (3, 8, 0)
    - 5 teams → (3, 8, 3)
    - 2 teams → (1, 2, 0)
    """
    if team_count < 2:
        raise ValueError(f"team_count must be >= 2, got {team_count}")
    rounds = (team_count - 1).bit_length()
    bracket_size = 1 << rounds
    return rounds, bracket_size, bracket_size - team_count


def distribute_byes(teams: Sequence[T], bracket_size: int) -> List[Optional[T]]:
    """
    Spread teams (seed order) over a bracket of bracket_size slots.

    Returns a list of length bracket_size with None at bye positions.
    Position 2i and 2i+1 form round-1 match i+1.

    Raises:
        ValueError: more teams than slots, or fewer than half the slots filled
    """
    byes = bracket_size - len(teams)
    if byes < 0:
        raise ValueError(f"{len(teams)} teams do not fit a bracket of {bracket_size}")
    if byes == 0:
        return list(teams)
    if byes > bracket_size // 2:
        raise ValueError(f"{byes} byes in a bracket of {bracket_size} would pair two byes")

    bye_positions = {2 * i for i in range(byes)}
    slots: List[Optional[T]] = []
    remaining = iter(teams)
    for position in range(bracket_size):
        if position in bye_positions:
            slots.append(None)
        else:
            slots.append(next(remaining))
    return slots

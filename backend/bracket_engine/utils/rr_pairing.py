"""
Round-robin pairing generator (circle method).

Used for round-robin categories, group-stage zones and Americano rotations.
"""

from typing import List, Optional, Tuple

Pairing = Tuple[int, int]


def circle_pairings(team_count: int, max_rounds: Optional[int] = None) -> List[List[Pairing]]:
    """
    Round-robin pairings by the circle method.

    Seats 0..m-1 are placed around a circle (m = team_count, plus one virtual
    BYE seat when team_count is odd). Seat 0 stays fixed; each round pairs
    seat i with seat m-1-i, then every other seat moves one place (seat 1 goes
    to the end).

    Args:
        team_count: Number of real teams
        max_rounds: Cap on rounds produced (default: a full round robin, m-1)

    Returns:
        One list per round of (a, b) pairs of 0-based team indices, a < b.
        Pairs touching the BYE seat are dropped.
    """
    if team_count < 2:
        return []

    seat_count = team_count + 1 if team_count % 2 == 1 else team_count
    bye_seat = team_count if team_count % 2 == 1 else None
    full_rounds = seat_count - 1
    rounds_count = full_rounds if max_rounds is None else min(max_rounds, full_rounds)

    seats = list(range(seat_count))
    rounds: List[List[Pairing]] = []
    for _ in range(rounds_count):
        pairs: List[Pairing] = []
        for i in range(seat_count // 2):
            a, b = seats[i], seats[seat_count - 1 - i]
            if a == bye_seat or b == bye_seat:
                continue
            pairs.append((min(a, b), max(a, b)))
        rounds.append(pairs)
        # Rotate: keep seat 0, move seat 1 to the end
        seats = [seats[0]] + seats[2:] + [seats[1]]

    return rounds

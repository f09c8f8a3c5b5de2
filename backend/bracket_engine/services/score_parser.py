"""
Score parser for padel score strings.

Supports formats like:
  "6-4"                → 1 set
  "6-4 3-6 10-8"       → 3 sets
  "6-4, 7-6(7-5)"      → comma-separated, tiebreak points in parentheses

Returns None on parse failure; callers decide whether that is fatal.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

_SET_PATTERN = re.compile(r"^(\d+)-(\d+)(?:\((\d+)-(\d+)\))?$")


@dataclass
class SetScore:
    team1_games: int
    team2_games: int
    team1_tiebreak: Optional[int] = None
    team2_tiebreak: Optional[int] = None

    def winner_side(self) -> Optional[int]:
        if self.team1_games != self.team2_games:
            return 1 if self.team1_games > self.team2_games else 2
        if self.team1_tiebreak is not None and self.team2_tiebreak is not None:
            if self.team1_tiebreak != self.team2_tiebreak:
                return 1 if self.team1_tiebreak > self.team2_tiebreak else 2
        return None


def sets_won(sets: List[SetScore]) -> tuple[int, int]:
    """(team1 sets, team2 sets)"""
    sides = [s.winner_side() for s in sets]
    return sides.count(1), sides.count(2)


def parse_score(raw: Optional[str]) -> Optional[List[SetScore]]:
    """Parse strings like '6-4', '6-4 3-6 10-8', '6-4, 7-6(7-5)'."""
    if not raw or not raw.strip():
        return None

    # Normalize: replace commas with spaces, collapse whitespace
    parts = raw.replace(",", " ").split()

    sets: List[SetScore] = []
    for part in parts:
        found = _SET_PATTERN.match(part)
        if not found:
            return None
        a, b, tb_a, tb_b = found.groups()
        sets.append(
            SetScore(
                team1_games=int(a),
                team2_games=int(b),
                team1_tiebreak=int(tb_a) if tb_a is not None else None,
                team2_tiebreak=int(tb_b) if tb_b is not None else None,
            )
        )
    return sets or None


def format_score(sets: List[SetScore]) -> str:
    """Inverse of parse_score: '6-4 7-6(7-5)'."""
    rendered = []
    for s in sets:
        text = f"{s.team1_games}-{s.team2_games}"
        if s.team1_tiebreak is not None and s.team2_tiebreak is not None:
            text += f"({s.team1_tiebreak}-{s.team2_tiebreak})"
        rendered.append(text)
    return " ".join(rendered)

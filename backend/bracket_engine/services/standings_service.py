"""
Group standings.

Points: win = 2, loss in a played match = 1, loss by walkover = 0.
Ranking: points, set difference, game difference, sets won; teams still
level are split by head-to-head wins among themselves, then by team id.
"""

import logging
from dataclasses import asdict, dataclass
from itertools import groupby
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from bracket_engine.models.match import FINISHED_STATUSES, Match, MatchStatus
from bracket_engine.models.match_set import MatchSet
from bracket_engine.models.zone import Zone, ZoneTeam
from bracket_engine.services.errors import NotFoundError

logger = logging.getLogger(__name__)

POINTS_WIN = 2
POINTS_LOSS = 1
POINTS_WALKOVER_LOSS = 0


@dataclass
class TeamStanding:
    team_id: int
    zone_id: int
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    points: int = 0
    position: Optional[int] = None

    @property
    def set_difference(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def game_difference(self) -> int:
        return self.games_won - self.games_lost

    def ranking_key(self) -> Tuple[int, int, int, int]:
        return (self.points, self.set_difference, self.game_difference, self.sets_won)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["set_difference"] = self.set_difference
        data["game_difference"] = self.game_difference
        return data


def _apply_match(stats: Dict[int, TeamStanding], match: Match, sets: Sequence[MatchSet]) -> None:
    team1 = stats[match.team1_id]
    team2 = stats[match.team2_id]

    for s in sets:
        team1.games_won += s.team1_games
        team1.games_lost += s.team2_games
        team2.games_won += s.team2_games
        team2.games_lost += s.team1_games
        side = s.winner_side()
        if side == 1:
            team1.sets_won += 1
            team2.sets_lost += 1
        elif side == 2:
            team2.sets_won += 1
            team1.sets_lost += 1

    winner, loser = (team1, team2) if match.winner_team_id == match.team1_id else (team2, team1)
    for team in (winner, loser):
        team.matches_played += 1
    winner.matches_won += 1
    winner.points += POINTS_WIN
    loser.matches_lost += 1
    loser.points += POINTS_WALKOVER_LOSS if match.status == MatchStatus.WALKOVER.value else POINTS_LOSS


def _head_to_head(tied: List[TeamStanding], matches: Sequence[Match]) -> List[TeamStanding]:
    """Order tied teams by wins in the matches they played against each other."""
    tied_ids = {s.team_id for s in tied}
    wins = {team_id: 0 for team_id in tied_ids}
    for match in matches:
        if match.team1_id in tied_ids and match.team2_id in tied_ids:
            wins[match.winner_team_id] += 1
    return sorted(tied, key=lambda s: (-wins[s.team_id], s.team_id))


def rank_standings(stats: List[TeamStanding], matches: Sequence[Match]) -> List[TeamStanding]:
    """Sort standings and assign positions 1..k. Pure."""
    ordered = sorted(stats, key=lambda s: tuple(-v for v in s.ranking_key()) + (s.team_id,))
    ranked: List[TeamStanding] = []
    for _, group in groupby(ordered, key=lambda s: s.ranking_key()):
        tied = list(group)
        ranked.extend(_head_to_head(tied, matches) if len(tied) > 1 else tied)
    for position, standing in enumerate(ranked, start=1):
        standing.position = position
    return ranked


def compute_zone_standings(session: Session, zone_id: int) -> List[TeamStanding]:
    """Standings of a zone from its decided matches, without persisting positions."""
    zone = session.get(Zone, zone_id)
    if not zone:
        raise NotFoundError(f"Zone {zone_id} not found")

    members = session.exec(select(ZoneTeam).where(ZoneTeam.zone_id == zone_id)).all()
    stats = {zt.team_id: TeamStanding(team_id=zt.team_id, zone_id=zone_id) for zt in members}

    decided = session.exec(
        select(Match)
        .where(Match.zone_id == zone_id, Match.status.in_(FINISHED_STATUSES))
        .order_by(Match.round_number, Match.match_number)
    ).all()
    counted: List[Match] = []
    for match in decided:
        if match.team1_id not in stats or match.team2_id not in stats:
            continue
        if match.winner_team_id not in (match.team1_id, match.team2_id):
            logger.warning("Match %s in zone %s has no valid winner; ignored in standings", match.id, zone_id)
            continue
        sets = session.exec(
            select(MatchSet).where(MatchSet.match_id == match.id).order_by(MatchSet.set_number)
        ).all()
        _apply_match(stats, match, sets)
        counted.append(match)

    return rank_standings(list(stats.values()), counted)


def calculate_group_standings(session: Session, zone_id: int, commit: bool = True) -> List[TeamStanding]:
    """
    Compute the standings of a zone and persist positions 1..k on its ZoneTeam rows.

    Raises:
        NotFoundError: zone does not exist
    """
    standings = compute_zone_standings(session, zone_id)
    positions = {s.team_id: s.position for s in standings}
    for zone_team in session.exec(select(ZoneTeam).where(ZoneTeam.zone_id == zone_id)).all():
        zone_team.position = positions.get(zone_team.team_id)
        session.add(zone_team)
    if commit:
        session.commit()
    logger.info("Standings calculated for zone %s (%s teams)", zone_id, len(standings))
    return standings


def calculate_all_standings(
    session: Session, tournament_id: int, category_id: int, commit: bool = True
) -> Dict[int, List[TeamStanding]]:
    """Standings for every zone of a category, keyed by zone id."""
    zones = session.exec(
        select(Zone).where(Zone.tournament_id == tournament_id, Zone.category_id == category_id).order_by(Zone.id)
    ).all()
    result = {zone.id: calculate_group_standings(session, zone.id, commit=False) for zone in zones}
    if commit:
        session.commit()
    return result

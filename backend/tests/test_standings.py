"""
Group standings: points, tie-breakers and persisted positions.
"""

from typing import List, Sequence, Tuple

import pytest
from sqlmodel import Session, select

from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.match_set import MatchSet
from bracket_engine.models.tournament import TournamentFormat
from bracket_engine.models.zone import Zone, ZoneTeam
from bracket_engine.services.errors import NotFoundError
from bracket_engine.services.standings_service import (
    TeamStanding,
    calculate_group_standings,
    compute_zone_standings,
    rank_standings,
)


@pytest.fixture
def zone_setup(session: Session, make_tournament):
    """A three-team zone with no matches yet."""
    tournament, category, teams = make_tournament(TournamentFormat.ROUND_ROBIN.value, 3)
    zone = Zone(tournament_id=tournament.id, category_id=category.id, name="Group A")
    session.add(zone)
    session.commit()
    session.refresh(zone)
    for team in teams:
        session.add(ZoneTeam(zone_id=zone.id, team_id=team.id))
    session.commit()
    return tournament, category, zone, teams


def add_result(
    session: Session,
    zone_setup,
    number: int,
    team1,
    team2,
    winner,
    sets: Sequence[Tuple[int, int]] = (),
    status: str = MatchStatus.COMPLETED.value,
) -> Match:
    tournament, category, zone, _ = zone_setup
    match = Match(
        tournament_id=tournament.id,
        category_id=category.id,
        zone_id=zone.id,
        round_number=1,
        match_number=number,
        phase_type="GROUP_STAGE",
        bracket="GROUP",
        team1_id=team1.id,
        team2_id=team2.id,
        winner_team_id=winner.id if winner else None,
        status=status,
    )
    session.add(match)
    session.flush()
    for set_number, (games1, games2) in enumerate(sets, start=1):
        session.add(MatchSet(match_id=match.id, set_number=set_number, team1_games=games1, team2_games=games2))
    session.commit()
    return match


def positions(standings: List[TeamStanding]) -> List[int]:
    return [s.team_id for s in standings]


class TestPoints:
    def test_win_and_played_loss(self, session, zone_setup):
        _, _, zone, (a, b, c) = zone_setup
        add_result(session, zone_setup, 1, a, b, a, [(6, 4), (6, 3)])

        standings = {s.team_id: s for s in compute_zone_standings(session, zone.id)}

        assert standings[a.id].points == 2
        assert standings[b.id].points == 1
        assert standings[c.id].points == 0
        assert (standings[a.id].sets_won, standings[a.id].sets_lost) == (2, 0)
        assert (standings[b.id].games_won, standings[b.id].games_lost) == (7, 12)
        assert standings[c.id].matches_played == 0

    def test_walkover_loss_scores_nothing(self, session, zone_setup):
        _, _, zone, (a, b, _) = zone_setup
        add_result(session, zone_setup, 1, a, b, b, status=MatchStatus.WALKOVER.value)

        standings = {s.team_id: s for s in compute_zone_standings(session, zone.id)}

        assert standings[b.id].points == 2
        assert standings[a.id].points == 0
        assert standings[a.id].matches_lost == 1

    def test_unfinished_matches_ignored(self, session, zone_setup):
        _, _, zone, (a, b, _) = zone_setup
        add_result(session, zone_setup, 1, a, b, None, status=MatchStatus.SCHEDULED.value)
        add_result(session, zone_setup, 2, a, b, None, status=MatchStatus.IN_PROGRESS.value)

        standings = compute_zone_standings(session, zone.id)

        assert all(s.matches_played == 0 for s in standings)


class TestTieBreakers:
    def test_set_difference(self, session, zone_setup):
        _, _, zone, (a, b, c) = zone_setup
        add_result(session, zone_setup, 1, a, b, a, [(6, 4), (6, 4)])
        add_result(session, zone_setup, 2, b, c, b, [(6, 4), (4, 6), (6, 4)])
        add_result(session, zone_setup, 3, c, a, c, [(6, 4), (4, 6), (6, 4)])

        standings = compute_zone_standings(session, zone.id)

        assert all(s.points == 3 for s in standings)
        assert positions(standings) == [a.id, c.id, b.id]
        assert [s.position for s in standings] == [1, 2, 3]

    def test_game_difference(self, session, zone_setup):
        _, _, zone, (a, b, c) = zone_setup
        add_result(session, zone_setup, 1, a, b, a, [(6, 4), (6, 4)])
        add_result(session, zone_setup, 2, b, c, b, [(6, 0), (6, 0)])
        add_result(session, zone_setup, 3, c, a, c, [(6, 4), (6, 4)])

        standings = compute_zone_standings(session, zone.id)

        assert all(s.set_difference == 0 for s in standings)
        assert positions(standings) == [b.id, a.id, c.id]
        assert [s.game_difference for s in standings] == [8, 0, -8]

    def test_head_to_head_breaks_full_tie(self):
        a = TeamStanding(team_id=1, zone_id=1, points=3, sets_won=2, sets_lost=2, games_won=20, games_lost=20)
        b = TeamStanding(team_id=2, zone_id=1, points=3, sets_won=2, sets_lost=2, games_won=20, games_lost=20)
        meeting = Match(
            tournament_id=1,
            category_id=1,
            round_number=1,
            match_number=1,
            phase_type="GROUP_STAGE",
            team1_id=1,
            team2_id=2,
            winner_team_id=2,
            status=MatchStatus.COMPLETED.value,
        )

        ranked = rank_standings([a, b], [meeting])

        assert positions(ranked) == [2, 1]

    def test_team_id_is_final_tie_breaker(self):
        a = TeamStanding(team_id=7, zone_id=1)
        b = TeamStanding(team_id=3, zone_id=1)
        assert positions(rank_standings([a, b], [])) == [3, 7]


class TestPersistedPositions:
    def test_positions_written(self, session, zone_setup):
        _, _, zone, (a, b, c) = zone_setup
        add_result(session, zone_setup, 1, c, a, c, [(6, 1), (6, 1)])
        add_result(session, zone_setup, 2, a, b, a, [(6, 1), (6, 1)])

        calculate_group_standings(session, zone.id)

        rows = session.exec(select(ZoneTeam).where(ZoneTeam.zone_id == zone.id)).all()
        by_team = {zt.team_id: zt.position for zt in rows}
        # a: win + played loss = 3, c: one win = 2, b: played loss = 1
        assert by_team == {a.id: 1, c.id: 2, b.id: 3}

    def test_recalculation_is_stable(self, session, zone_setup):
        _, _, zone, (a, b, _) = zone_setup
        add_result(session, zone_setup, 1, a, b, b, [(3, 6), (3, 6)])
        first = [s.to_dict() for s in calculate_group_standings(session, zone.id)]
        second = [s.to_dict() for s in calculate_group_standings(session, zone.id)]
        assert first == second

    def test_missing_zone(self, session):
        with pytest.raises(NotFoundError):
            calculate_group_standings(session, 999)

    def test_api_endpoint(self, client, session, zone_setup):
        _, _, zone, (a, b, _) = zone_setup
        add_result(session, zone_setup, 1, a, b, b, [(3, 6), (3, 6)])

        response = client.post(f"/api/zones/{zone.id}/standings")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["team_id"] == b.id
        assert data[0]["position"] == 1
        assert data[0]["points"] == 2
        assert data[0]["game_difference"] == 6

"""
Classification from group standings into the playoff bracket.
"""

from typing import Dict, Optional, Tuple

import pytest
from sqlmodel import Session, select

from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.match_set import MatchSet
from bracket_engine.models.tournament import TournamentFormat
from bracket_engine.models.zone import Zone, ZoneTeam
from bracket_engine.services.bracket_service import generate_bracket
from bracket_engine.services.classification_service import (
    classify_teams_to_elimination_phase,
    force_classify,
    seed_pairings,
)
from bracket_engine.services.errors import StateError
from bracket_engine.services.standings_service import calculate_all_standings

GROUPS = TournamentFormat.GROUP_STAGE_ELIMINATION.value


def play_group_stage(session: Session, category, scores: Optional[Dict[Tuple[int, int], Tuple]] = None) -> None:
    """
    Decide every group match in favour of the lower team id (6-3 6-3).

    scores overrides the sets for a (winner_id, loser_id) pair.
    """
    scores = scores or {}
    group_matches = session.exec(
        select(Match).where(Match.category_id == category.id, Match.zone_id.is_not(None))
    ).all()
    for match in group_matches:
        winner = min(match.team1_id, match.team2_id)
        loser = max(match.team1_id, match.team2_id)
        sets = scores.get((winner, loser), ((6, 3), (6, 3)))
        for number, (winner_games, loser_games) in enumerate(sets, start=1):
            if winner == match.team1_id:
                games = (winner_games, loser_games)
            else:
                games = (loser_games, winner_games)
            session.add(MatchSet(match_id=match.id, set_number=number, team1_games=games[0], team2_games=games[1]))
        match.winner_team_id = winner
        match.status = MatchStatus.COMPLETED.value
        session.add(match)
    session.commit()


def first_round(session: Session, category):
    matches = session.exec(
        select(Match)
        .where(Match.category_id == category.id, Match.round_number == 10)
        .order_by(Match.match_number)
    ).all()
    for match in matches:
        session.refresh(match)
    return matches


def test_seed_pairings():
    assert seed_pairings(2) == [[1, 2]]
    assert seed_pairings(4) == [[1, 4], [2, 3]]
    assert seed_pairings(8) == [[1, 8], [4, 5], [3, 6], [2, 7]]


class TestClassification:
    def test_eight_teams_two_groups(self, session, make_tournament):
        tournament, category, teams = make_tournament(GROUPS, 8, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        calculate_all_standings(session, tournament.id, category.id)
        ids = [t.id for t in teams]

        result = classify_teams_to_elimination_phase(session, tournament.id, category.id)

        # Group A: seeds 1,4,5,8  Group B: seeds 2,3,6,7
        assert [q["team_id"] for q in result["qualifiers"]] == [ids[0], ids[1], ids[3], ids[2]]
        assert not any(q["wildcard"] for q in result["qualifiers"])
        matches = first_round(session, category)
        assert [(m.team1_id, m.team2_id) for m in matches] == [(ids[0], ids[2]), (ids[1], ids[3])]

    def test_wildcard_tied_goes_to_first_group(self, session, make_tournament):
        tournament, category, teams = make_tournament(GROUPS, 9, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        calculate_all_standings(session, tournament.id, category.id)
        ids = [t.id for t in teams]

        result = classify_teams_to_elimination_phase(session, tournament.id, category.id)

        # Runners-up: 6 (A), 5 (B), 4 (C), all level
        qualifiers = result["qualifiers"]
        assert [q["team_id"] for q in qualifiers] == [ids[0], ids[1], ids[2], ids[5]]
        assert qualifiers[3]["wildcard"] is True
        assert qualifiers[3]["zone_name"] == "Group A"

    def test_wildcard_by_game_difference(self, session, make_tournament):
        tournament, category, teams = make_tournament(GROUPS, 9, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        ids = [t.id for t in teams]
        # Seed 4 (Group C runner-up) beats seed 9 without dropping a game
        play_group_stage(session, category, {(ids[3], ids[8]): ((6, 0), (6, 0))})
        calculate_all_standings(session, tournament.id, category.id)

        result = classify_teams_to_elimination_phase(session, tournament.id, category.id)

        assert [q["team_id"] for q in result["qualifiers"]] == [ids[0], ids[1], ids[2], ids[3]]
        matches = first_round(session, category)
        assert [(m.team1_id, m.team2_id) for m in matches] == [(ids[0], ids[3]), (ids[1], ids[2])]

    def test_reclassification_overwrites(self, session, make_tournament):
        tournament, category, teams = make_tournament(GROUPS, 8, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        calculate_all_standings(session, tournament.id, category.id)
        classify_teams_to_elimination_phase(session, tournament.id, category.id)
        before = [(m.team1_id, m.team2_id) for m in first_round(session, category)]

        classify_teams_to_elimination_phase(session, tournament.id, category.id)

        assert [(m.team1_id, m.team2_id) for m in first_round(session, category)] == before

    def test_groups_ordered_by_creation_not_name(self, session, make_tournament):
        tournament, category, teams = make_tournament(GROUPS, 9, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        first_zone = session.exec(select(Zone).where(Zone.category_id == category.id).order_by(Zone.id)).first()
        first_zone.name = "Group Z"
        session.add(first_zone)
        session.commit()
        play_group_stage(session, category)
        calculate_all_standings(session, tournament.id, category.id)
        ids = [t.id for t in teams]

        result = classify_teams_to_elimination_phase(session, tournament.id, category.id)

        qualifiers = result["qualifiers"]
        assert [q["team_id"] for q in qualifiers] == [ids[0], ids[1], ids[2], ids[5]]
        assert [q["zone_name"] for q in qualifiers] == ["Group Z", "Group B", "Group C", "Group Z"]


class TestForceClassify:
    def test_recalculates_missing_standings(self, session, make_tournament):
        tournament, category, teams = make_tournament(GROUPS, 8, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        ids = [t.id for t in teams]
        assert all(zt.position is None for zt in session.exec(select(ZoneTeam)).all())

        result = force_classify(session, tournament.id, category.id)

        assert len(result["qualifiers"]) == 4
        matches = first_round(session, category)
        assert [(m.team1_id, m.team2_id) for m in matches] == [(ids[0], ids[2]), (ids[1], ids[3])]
        positions = session.exec(select(ZoneTeam.position)).all()
        assert sorted(positions) == [1, 1, 2, 2, 3, 3, 4, 4]

    def test_failure_leaves_standings_untouched(self, session, make_tournament):
        tournament, category, _ = make_tournament(GROUPS, 8)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        started = first_round(session, category)[0]
        started.status = MatchStatus.IN_PROGRESS.value
        session.add(started)
        session.commit()

        with pytest.raises(StateError):
            force_classify(session, tournament.id, category.id)

        assert all(zt.position is None for zt in session.exec(select(ZoneTeam)).all())

    def test_api_endpoint(self, client, session, make_tournament):
        tournament, category, teams = make_tournament(GROUPS, 8, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)

        response = client.post(
            f"/api/tournaments/{tournament.id}/force-classify", params={"category_id": category.id}
        )

        assert response.status_code == 200
        data = response.json()
        assert [q["seed"] for q in data["qualifiers"]] == [1, 2, 3, 4]
        assert data["qualifiers"][0]["team_id"] == teams[0].id


class TestClassificationPreconditions:
    def test_no_groups(self, session, make_tournament):
        tournament, category, _ = make_tournament(GROUPS, 8)
        with pytest.raises(StateError):
            classify_teams_to_elimination_phase(session, tournament.id, category.id)

    def test_standings_missing(self, session, make_tournament):
        tournament, category, _ = make_tournament(GROUPS, 8)
        generate_bracket(session, tournament.id, category.id)
        with pytest.raises(StateError):
            classify_teams_to_elimination_phase(session, tournament.id, category.id)

    def test_playoff_skeleton_mismatch(self, session, make_tournament):
        tournament, category, _ = make_tournament(GROUPS, 8)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        calculate_all_standings(session, tournament.id, category.id)
        final = session.exec(select(Match).where(Match.category_id == category.id, Match.round_number == 11)).one()
        stray = first_round(session, category)[1]
        final.team2_from_match_id = None
        session.add(final)
        session.delete(stray)
        session.commit()

        with pytest.raises(StateError):
            classify_teams_to_elimination_phase(session, tournament.id, category.id)

    def test_playoff_started(self, session, make_tournament):
        tournament, category, _ = make_tournament(GROUPS, 8)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        calculate_all_standings(session, tournament.id, category.id)
        started = first_round(session, category)[0]
        started.status = MatchStatus.IN_PROGRESS.value
        session.add(started)
        session.commit()

        with pytest.raises(StateError):
            classify_teams_to_elimination_phase(session, tournament.id, category.id)

    def test_null_position_blocks(self, session, make_tournament):
        tournament, category, _ = make_tournament(GROUPS, 8)
        generate_bracket(session, tournament.id, category.id)
        play_group_stage(session, category)
        calculate_all_standings(session, tournament.id, category.id)
        row = session.exec(select(ZoneTeam)).first()
        row.position = None
        session.add(row)
        session.commit()

        with pytest.raises(StateError):
            classify_teams_to_elimination_phase(session, tournament.id, category.id)

    def test_api_endpoint(self, client, session, make_tournament):
        tournament, category, _ = make_tournament(GROUPS, 8)
        generate_bracket(session, tournament.id, category.id)

        response = client.post(f"/api/tournaments/{tournament.id}/classify", params={"category_id": category.id})

        assert response.status_code == 409

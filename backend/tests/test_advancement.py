"""
Progression engine: winners and losers flow into downstream slots.

Slots are only written when empty; unprogress reverses exactly what
progress wrote.
"""

import logging

import pytest
from sqlmodel import Session, select

from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.tournament import TournamentFormat
from bracket_engine.services.advancement_service import (
    apply_advancement,
    downstream_started,
    progress_winner,
    resolve_all_dependencies,
    unprogress,
)
from bracket_engine.services.bracket_service import generate_bracket
from bracket_engine.services.errors import NotFoundError, StateError

SE = TournamentFormat.SINGLE_ELIMINATION.value
DE = TournamentFormat.DOUBLE_ELIMINATION.value


def match_at(session: Session, category, round_number, match_number) -> Match:
    match = session.exec(
        select(Match).where(
            Match.category_id == category.id,
            Match.round_number == round_number,
            Match.match_number == match_number,
        )
    ).one()
    session.refresh(match)
    return match


def decide(session: Session, match: Match, winner_id: int) -> None:
    """Mark a match completed without going through the result service."""
    match.winner_team_id = winner_id
    match.status = MatchStatus.COMPLETED.value
    session.add(match)
    session.commit()


@pytest.fixture
def four_team_bracket(session, make_tournament):
    tournament, category, teams = make_tournament(SE, 4, seeded=True)
    generate_bracket(session, tournament.id, category.id)
    return tournament, category, teams


class TestProgressWinner:
    def test_winner_fills_next_slot(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)

        filled = progress_winner(session, semi.id, teams[0].id)

        assert filled == 1
        final = match_at(session, category, 2, 1)
        assert final.team1_id == teams[0].id
        assert final.team2_id is None

    def test_second_semi_fills_other_slot(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        progress_winner(session, match_at(session, category, 1, 2).id, teams[3].id)
        final = match_at(session, category, 2, 1)
        assert (final.team1_id, final.team2_id) == (None, teams[3].id)

    def test_filled_slot_is_not_overwritten(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)
        progress_winner(session, semi.id, teams[0].id)

        filled = progress_winner(session, semi.id, teams[1].id)

        assert filled == 0
        assert match_at(session, category, 2, 1).team1_id == teams[0].id

    def test_repeat_is_noop(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)
        progress_winner(session, semi.id, teams[0].id)
        assert progress_winner(session, semi.id, teams[0].id) == 0

    def test_final_has_no_downstream(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        final = match_at(session, category, 2, 1)
        assert progress_winner(session, final.id, teams[0].id) == 0

    def test_missing_match(self, session):
        with pytest.raises(NotFoundError):
            progress_winner(session, 999, 1)


class TestUnprogress:
    def test_unprogress_clears_slot(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)
        progress_winner(session, semi.id, teams[0].id)

        cleared = unprogress(session, semi.id, winner_id=teams[0].id)

        assert cleared == 1
        assert match_at(session, category, 2, 1).team1_id is None

    def test_unprogress_then_progress_restores(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)
        progress_winner(session, semi.id, teams[0].id)
        before = match_at(session, category, 2, 1)
        snapshot = (before.team1_id, before.team2_id, before.status)

        unprogress(session, semi.id, winner_id=teams[0].id)
        progress_winner(session, semi.id, teams[0].id)

        after = match_at(session, category, 2, 1)
        assert (after.team1_id, after.team2_id, after.status) == snapshot

    def test_unprogress_leaves_other_team_alone(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)
        progress_winner(session, semi.id, teams[0].id)

        assert unprogress(session, semi.id, winner_id=teams[1].id) == 0
        assert match_at(session, category, 2, 1).team1_id == teams[0].id


class TestDoubleEliminationProgression:
    def test_upper_loser_drops_to_lower_round_one(self, session, make_tournament):
        tournament, category, teams = make_tournament(DE, 4, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        upper1 = match_at(session, category, 1, 1)

        filled = progress_winner(session, upper1.id, teams[0].id)

        assert filled == 2
        assert match_at(session, category, 2, 1).team1_id == teams[0].id
        lower1 = match_at(session, category, 101, 1)
        assert lower1.team1_id == teams[1].id

    def test_upper_final_loser_meets_lower_winner(self, session, make_tournament):
        tournament, category, teams = make_tournament(DE, 4, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        ids = [t.id for t in teams]

        progress_winner(session, match_at(session, category, 1, 1).id, ids[0])
        progress_winner(session, match_at(session, category, 1, 2).id, ids[2])
        progress_winner(session, match_at(session, category, 2, 1).id, ids[0])
        progress_winner(session, match_at(session, category, 101, 1).id, ids[3])

        lower2 = match_at(session, category, 102, 1)
        assert (lower2.team1_id, lower2.team2_id) == (ids[3], ids[2])
        grand_final = match_at(session, category, 200, 1)
        assert grand_final.team1_id == ids[0]

    def test_unprogress_clears_loser(self, session, make_tournament):
        tournament, category, teams = make_tournament(DE, 4, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        upper1 = match_at(session, category, 1, 1)
        progress_winner(session, upper1.id, teams[0].id)

        assert unprogress(session, upper1.id, winner_id=teams[0].id) == 2
        assert match_at(session, category, 101, 1).team1_id is None
        assert match_at(session, category, 2, 1).team1_id is None

    def test_lower_bye_walks_over_when_filled(self, session, make_tournament):
        tournament, category, teams = make_tournament(DE, 3, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        ids = [t.id for t in teams]

        progress_winner(session, match_at(session, category, 1, 2).id, ids[1])

        lower1 = match_at(session, category, 101, 1)
        assert lower1.team2_id == ids[2]
        assert lower1.status == MatchStatus.WALKOVER.value
        assert lower1.winner_team_id == ids[2]
        assert match_at(session, category, 102, 1).team1_id == ids[2]
        assert match_at(session, category, 2, 1).team2_id == ids[1]

    def test_unprogress_reopens_lower_bye(self, session, make_tournament):
        tournament, category, teams = make_tournament(DE, 3, seeded=True)
        generate_bracket(session, tournament.id, category.id)
        ids = [t.id for t in teams]
        upper2 = match_at(session, category, 1, 2)
        progress_winner(session, upper2.id, ids[1])

        unprogress(session, upper2.id, winner_id=ids[1], loser_id=ids[2])

        lower1 = match_at(session, category, 101, 1)
        assert lower1.status == MatchStatus.SCHEDULED.value
        assert lower1.team2_id is None
        assert lower1.winner_team_id is None
        assert match_at(session, category, 102, 1).team1_id is None

    def test_fallback_without_loser_edge(self, session, make_tournament):
        tournament, category, teams = make_tournament(DE, 2)
        upper = Match(
            tournament_id=tournament.id,
            category_id=category.id,
            round_number=1,
            match_number=1,
            phase_type="SEMIFINALS",
            bracket="UPPER",
            team1_id=teams[0].id,
            team2_id=teams[1].id,
        )
        lower = Match(
            tournament_id=tournament.id,
            category_id=category.id,
            round_number=101,
            match_number=1,
            phase_type="LOWER_BRACKET",
            bracket="LOWER",
        )
        session.add(upper)
        session.add(lower)
        session.commit()

        progress_winner(session, upper.id, teams[0].id)

        session.refresh(lower)
        assert lower.team1_id == teams[1].id

    def test_missing_lower_match_is_logged(self, session, make_tournament, caplog):
        tournament, category, teams = make_tournament(DE, 2)
        upper = Match(
            tournament_id=tournament.id,
            category_id=category.id,
            round_number=1,
            match_number=1,
            phase_type="SEMIFINALS",
            bracket="UPPER",
            team1_id=teams[0].id,
            team2_id=teams[1].id,
        )
        session.add(upper)
        session.commit()

        with caplog.at_level(logging.WARNING):
            assert progress_winner(session, upper.id, teams[0].id) == 0
        assert "No lower-bracket match" in caplog.text


class TestRepairOperations:
    def test_apply_advancement_requires_result(self, session, four_team_bracket):
        _, category, _ = four_team_bracket
        with pytest.raises(StateError):
            apply_advancement(session, match_at(session, category, 1, 1).id)

    def test_apply_advancement(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)
        decide(session, semi, teams[1].id)

        assert apply_advancement(session, semi.id) == 1
        assert match_at(session, category, 2, 1).team1_id == teams[1].id
        assert apply_advancement(session, semi.id) == 0

    def test_resolve_all_dependencies(self, session, four_team_bracket):
        tournament, category, teams = four_team_bracket
        decide(session, match_at(session, category, 1, 1), teams[0].id)
        decide(session, match_at(session, category, 1, 2), teams[3].id)

        result = resolve_all_dependencies(session, tournament.id, category.id)

        assert result == {
            "matches_processed": 2,
            "teams_advanced": 2,
            "unknown_before": 1,
            "unknown_after": 0,
        }
        final = match_at(session, category, 2, 1)
        assert (final.team1_id, final.team2_id) == (teams[0].id, teams[3].id)

    def test_downstream_started(self, session, four_team_bracket):
        _, category, teams = four_team_bracket
        semi = match_at(session, category, 1, 1)
        decide(session, semi, teams[0].id)
        progress_winner(session, semi.id, teams[0].id)
        assert downstream_started(session, semi.id) == []

        final = match_at(session, category, 2, 1)
        final.status = MatchStatus.IN_PROGRESS.value
        session.add(final)
        session.commit()

        assert [m.id for m in downstream_started(session, semi.id)] == [final.id]

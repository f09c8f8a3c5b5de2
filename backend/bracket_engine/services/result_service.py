"""
Match results: record, revert and status transitions.

Recording a result progresses the winner (and, in double elimination, the
loser) in the same transaction. Afterwards, finished group stages are
classified into the playoff and finished tournaments are closed; failures
in those follow-ups are logged, never raised.
"""

import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Sequence

from sqlalchemy import delete
from sqlmodel import Session, select

from bracket_engine.models.match import FINISHED_STATUSES, TERMINAL_STATUSES, Match, MatchStatus
from bracket_engine.models.match_set import MatchSet
from bracket_engine.models.tournament import Tournament, TournamentFormat, TournamentStatus
from bracket_engine.services.advancement_service import downstream_started, progress_winner, unprogress
from bracket_engine.services.classification_service import classify_teams_to_elimination_phase
from bracket_engine.services.errors import NotFoundError, StateError, ValidationError
from bracket_engine.services.score_parser import SetScore, sets_won
from bracket_engine.services.standings_service import calculate_all_standings

logger = logging.getLogger(__name__)

# Manual status transitions; COMPLETED / WALKOVER only through record_match_result
ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    MatchStatus.SCHEDULED.value: frozenset({MatchStatus.IN_PROGRESS.value, MatchStatus.CANCELLED.value}),
    MatchStatus.IN_PROGRESS.value: frozenset({MatchStatus.CANCELLED.value}),
}


def _get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise NotFoundError(f"Match {match_id} not found")
    return match


def _validate_result(match: Match, winner_team_id: int, sets: Sequence[SetScore], status: str) -> None:
    if status not in FINISHED_STATUSES:
        raise ValidationError(f"Result status must be COMPLETED or WALKOVER, got {status}")
    if match.status in TERMINAL_STATUSES:
        raise StateError(f"Match {match.id} is already {match.status}")
    if match.team1_id is None or match.team2_id is None:
        raise StateError(f"Match {match.id} does not have both teams assigned yet")
    if winner_team_id not in (match.team1_id, match.team2_id):
        raise ValidationError(f"Team {winner_team_id} is not playing match {match.id}")
    if status == MatchStatus.COMPLETED.value and not sets:
        raise ValidationError("At least one set is required for a completed match")
    for s in sets:
        if s.team1_games < 0 or s.team2_games < 0:
            raise ValidationError("Games cannot be negative")

    if sets:
        team1_sets, team2_sets = sets_won(list(sets))
        winner_sets, loser_sets = (
            (team1_sets, team2_sets) if winner_team_id == match.team1_id else (team2_sets, team1_sets)
        )
        if status == MatchStatus.COMPLETED.value and winner_sets <= loser_sets:
            raise ValidationError("The winner must have won more sets than the loser")


def record_match_result(
    session: Session,
    match_id: int,
    winner_team_id: int,
    sets: Sequence[SetScore],
    status: str = MatchStatus.COMPLETED.value,
    notes: Optional[str] = None,
    duration_minutes: Optional[int] = None,
) -> Match:
    """
    Store the result of a match and progress its winner.

    Raises:
        NotFoundError: match does not exist
        StateError: match already decided / cancelled, or teams not assigned
        ValidationError: winner not a participant, missing or inconsistent sets
    """
    match = _get_match(session, match_id)
    try:
        status = MatchStatus(status).value
    except ValueError:
        raise ValidationError(f"Invalid match status: {status}")
    _validate_result(match, winner_team_id, sets, status)

    try:
        session.execute(delete(MatchSet).where(MatchSet.match_id == match_id))
        for number, s in enumerate(sets, start=1):
            session.add(
                MatchSet(
                    match_id=match_id,
                    set_number=number,
                    team1_games=s.team1_games,
                    team2_games=s.team2_games,
                    team1_tiebreak=s.team1_tiebreak,
                    team2_tiebreak=s.team2_tiebreak,
                )
            )
        match.team1_sets_won, match.team2_sets_won = sets_won(list(sets))
        match.winner_team_id = winner_team_id
        match.status = status
        match.completed_at = datetime.utcnow()
        if notes is not None:
            match.notes = notes
        if duration_minutes is not None:
            match.duration_minutes = duration_minutes
        session.add(match)
        session.flush()

        progress_winner(session, match_id, winner_team_id, commit=False)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Recorded result for match %s: winner=%s status=%s", match_id, winner_team_id, status)
    session.refresh(match)
    _after_result(session, match)
    session.refresh(match)
    return match


def revert_match_result(session: Session, match_id: int) -> Match:
    """
    Delete a recorded result and undo its progression.

    Raises:
        NotFoundError: match does not exist
        StateError: no result recorded, automatic bye, or a downstream match already started
    """
    match = _get_match(session, match_id)
    if match.status not in FINISHED_STATUSES:
        raise StateError(f"Match {match_id} has no result to revert")
    if match.is_bye:
        raise StateError("Bye walkovers are created by the bracket and cannot be reverted")
    started = downstream_started(session, match_id)
    if started:
        raise StateError(
            f"Cannot revert: downstream match {started[0].id} is already {started[0].status}"
        )

    try:
        unprogress(session, match_id, commit=False)
        session.execute(delete(MatchSet).where(MatchSet.match_id == match_id))
        match.winner_team_id = None
        match.team1_sets_won = 0
        match.team2_sets_won = 0
        match.status = MatchStatus.SCHEDULED.value
        match.completed_at = None
        session.add(match)

        tournament = session.get(Tournament, match.tournament_id)
        if tournament and tournament.status == TournamentStatus.COMPLETED.value:
            tournament.status = TournamentStatus.IN_PROGRESS.value
            session.add(tournament)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Reverted result of match %s", match_id)
    session.refresh(match)
    return match


def update_match_status(session: Session, match_id: int, status: str) -> Match:
    """
    Manual status change (start or cancel a match).

    Raises:
        NotFoundError: match does not exist
        ValidationError: unknown status
        StateError: transition not allowed
    """
    match = _get_match(session, match_id)
    try:
        new_status = MatchStatus(status).value
    except ValueError:
        raise ValidationError(f"Invalid match status: {status}")

    if new_status in FINISHED_STATUSES:
        raise StateError(f"Use the result endpoint to set a match to {new_status}")
    if new_status not in ALLOWED_TRANSITIONS.get(match.status, frozenset()):
        raise StateError(f"Cannot change match status from {match.status} to {new_status}")

    match.status = new_status
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


# ============================================================================
# Follow-ups after a result
# ============================================================================


def _after_result(session: Session, match: Match) -> None:
    try:
        if match.zone_id is not None:
            _classify_if_group_stage_finished(session, match.tournament_id, match.category_id)
        _complete_tournament_if_finished(session, match.tournament_id)
    except Exception:
        session.rollback()
        logger.exception("Post-result processing failed for match %s", match.id)


def _classify_if_group_stage_finished(session: Session, tournament_id: int, category_id: int) -> bool:
    tournament = session.get(Tournament, tournament_id)
    if not tournament or tournament.format != TournamentFormat.GROUP_STAGE_ELIMINATION.value:
        return False

    group_statuses = session.exec(
        select(Match.status).where(
            Match.tournament_id == tournament_id,
            Match.category_id == category_id,
            Match.zone_id.is_not(None),
        )
    ).all()
    if not group_statuses or any(s not in FINISHED_STATUSES for s in group_statuses):
        return False

    calculate_all_standings(session, tournament_id, category_id)
    try:
        classify_teams_to_elimination_phase(session, tournament_id, category_id)
    except StateError as e:
        logger.warning("Automatic classification skipped for category %s: %s", category_id, e)
        return False
    return True


def _complete_tournament_if_finished(session: Session, tournament_id: int) -> bool:
    statuses = session.exec(select(Match.status).where(Match.tournament_id == tournament_id)).all()
    if not statuses or any(s not in TERMINAL_STATUSES for s in statuses):
        return False
    tournament = session.get(Tournament, tournament_id)
    if tournament.status == TournamentStatus.COMPLETED.value:
        return False
    tournament.status = TournamentStatus.COMPLETED.value
    session.add(tournament)
    session.commit()
    logger.info("All matches finished; tournament %s completed", tournament_id)
    return True

"""
Progression Engine: when a match is decided, feed its winner (and, in double
elimination, its loser) into the downstream matches that list it as a source.

Slot writes are single conditional UPDATEs (``... WHERE teamN_id IS NULL``),
so a filled slot is never overwritten and two sibling completions cannot
clobber each other. Internal helpers do not commit; public operations do.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_, update
from sqlmodel import Session, select

from bracket_engine.models.match import FINISHED_STATUSES, Match, MatchStatus, SlotRole
from bracket_engine.services.errors import NotFoundError, StateError
from bracket_engine.utils.rounds import BracketSide, RoundKey, lower_round_for_upper_loser

logger = logging.getLogger(__name__)

# (team column, source column, role column) for each slot
SLOTS: Tuple[Tuple[str, str, str], ...] = (
    ("team1_id", "team1_from_match_id", "team1_from_role"),
    ("team2_id", "team2_from_match_id", "team2_from_role"),
)


# ============================================================================
# Slot primitives
# ============================================================================


def _fill_slot(session: Session, match_id: int, team_column: str, team_id: int) -> bool:
    """Set the slot only if it is still empty. Returns True when the row changed."""
    column = getattr(Match, team_column)
    result = session.execute(
        update(Match).where(Match.id == match_id, column.is_(None)).values({team_column: team_id})
    )
    return result.rowcount == 1


def _clear_slot(session: Session, match_id: int, team_column: str, team_id: int) -> bool:
    """Empty the slot only if it still holds team_id."""
    column = getattr(Match, team_column)
    result = session.execute(
        update(Match).where(Match.id == match_id, column == team_id).values({team_column: None})
    )
    return result.rowcount == 1


def _downstream(session: Session, match_id: int, role: SlotRole) -> List[Tuple[Match, str]]:
    """Matches (and slot column) fed by match_id with the given role."""
    found: List[Tuple[Match, str]] = []
    for team_column, source_column, role_column in SLOTS:
        rows = session.exec(
            select(Match)
            .where(getattr(Match, source_column) == match_id, getattr(Match, role_column) == role.value)
            .order_by(Match.round_number, Match.match_number)
        ).all()
        found.extend((row, team_column) for row in rows)
    return found


def _has_dead_slot(match: Match) -> bool:
    """A bye slot never receives a team: no direct team and no source edge."""
    return any(
        getattr(match, team_column) is None and getattr(match, source_column) is None
        for team_column, source_column, _ in SLOTS
    )


def _fallback_lower_targets(session: Session, source: Match) -> List[Tuple[Match, str]]:
    """
    Lower-bracket slots for an upper-bracket loser when no LOSER edge is wired.

    Target round is lower round 1 for upper round 1 losers, else the lower
    round that takes that upper round's losers. Slots reserved by an edge
    are skipped.
    """
    upper_round = RoundKey.from_round_number(BracketSide.UPPER, source.round_number).index
    target_round = RoundKey(BracketSide.LOWER, lower_round_for_upper_loser(upper_round)).round_number
    candidates = session.exec(
        select(Match)
        .where(
            Match.tournament_id == source.tournament_id,
            Match.category_id == source.category_id,
            Match.round_number == target_round,
        )
        .order_by(Match.match_number)
    ).all()
    targets: List[Tuple[Match, str]] = []
    for candidate in candidates:
        for team_column, source_column, _ in SLOTS:
            if getattr(candidate, source_column) is None:
                targets.append((candidate, team_column))
    return targets


def _loser_targets(session: Session, source: Match) -> List[Tuple[Match, str]]:
    targets = _downstream(session, source.id, SlotRole.LOSER)
    if targets or source.bracket != BracketSide.UPPER.value:
        return targets
    return _fallback_lower_targets(session, source)


# ============================================================================
# Progress / unprogress (non-committing)
# ============================================================================


def _walk_over_bye(session: Session, match: Match) -> int:
    """Complete a one-sided bye match once its live slot is filled, and progress it."""
    session.refresh(match)
    if not match.is_bye or match.status != MatchStatus.SCHEDULED.value:
        return 0
    participants = match.participants()
    if len(participants) != 1 or not _has_dead_slot(match):
        return 0

    match.winner_team_id = participants[0]
    match.status = MatchStatus.WALKOVER.value
    match.completed_at = datetime.utcnow()
    session.add(match)
    session.flush()
    logger.info("Bye match %s walked over by team %s", match.id, participants[0])
    return _progress(session, match, participants[0], None)


def _progress(session: Session, source: Match, winner_id: int, loser_id: Optional[int]) -> int:
    filled = 0

    for down, team_column in _downstream(session, source.id, SlotRole.WINNER):
        if _fill_slot(session, down.id, team_column, winner_id):
            filled += 1
            filled += _walk_over_bye(session, down)
        elif getattr(down, team_column) != winner_id:
            logger.info(
                "Match %s %s already holds team %s; not overwriting with %s",
                down.id,
                team_column,
                getattr(down, team_column),
                winner_id,
            )

    if loser_id is not None:
        targets = _loser_targets(session, source)
        if not targets and source.bracket == BracketSide.UPPER.value:
            logger.warning(
                "No lower-bracket match found for loser %s of match %s (round %s); skipping",
                loser_id,
                source.id,
                source.round_number,
            )
        for down, team_column in targets:
            session.refresh(down)
            if loser_id in down.participants():
                break
            if _fill_slot(session, down.id, team_column, loser_id):
                filled += 1
                filled += _walk_over_bye(session, down)
                break

    return filled


def _reopen_bye(session: Session, match: Match, team_id: int) -> int:
    """Undo an automatic walkover before its live slot is cleared."""
    if not match.is_bye or match.status != MatchStatus.WALKOVER.value or match.winner_team_id != team_id:
        return 0
    cleared = _unprogress(session, match, team_id, None)
    match.winner_team_id = None
    match.status = MatchStatus.SCHEDULED.value
    match.completed_at = None
    session.add(match)
    session.flush()
    return cleared


def _unprogress(session: Session, source: Match, winner_id: Optional[int], loser_id: Optional[int]) -> int:
    cleared = 0

    if winner_id is not None:
        for down, team_column in _downstream(session, source.id, SlotRole.WINNER):
            if getattr(down, team_column) != winner_id:
                continue
            cleared += _reopen_bye(session, down, winner_id)
            if _clear_slot(session, down.id, team_column, winner_id):
                cleared += 1

    if loser_id is not None:
        for down, team_column in _loser_targets(session, source):
            session.refresh(down)
            if getattr(down, team_column) != loser_id:
                continue
            cleared += _reopen_bye(session, down, loser_id)
            if _clear_slot(session, down.id, team_column, loser_id):
                cleared += 1

    return cleared


def _get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise NotFoundError(f"Match {match_id} not found")
    return match


def _other_participant(match: Match, team_id: Optional[int]) -> Optional[int]:
    if team_id is None:
        return None
    if team_id == match.team1_id:
        return match.team2_id
    if team_id == match.team2_id:
        return match.team1_id
    return None


# ============================================================================
# Public operations
# ============================================================================


def progress_winner(
    session: Session, match_id: int, winner_id: int, loser_id: Optional[int] = None, commit: bool = True
) -> int:
    """
    Feed winner_id (and loser_id, for double elimination) into downstream matches.

    Only empty slots are filled. loser_id defaults to the other participant.

    Returns:
        Number of downstream slots filled (including cascaded bye walkovers)

    Raises:
        NotFoundError: match_id does not exist
    """
    source = _get_match(session, match_id)
    if loser_id is None:
        loser_id = _other_participant(source, winner_id)
    filled = _progress(session, source, winner_id, loser_id)
    if commit:
        session.commit()
    logger.debug("Progressed match %s: winner=%s loser=%s filled=%s", match_id, winner_id, loser_id, filled)
    return filled


def unprogress(
    session: Session,
    match_id: int,
    winner_id: Optional[int] = None,
    loser_id: Optional[int] = None,
    commit: bool = True,
) -> int:
    """
    Reverse progress_winner: clear downstream slots that hold this match's winner/loser.

    winner_id defaults to the recorded winner, loser_id to the other participant.

    Returns:
        Number of downstream slots cleared
    """
    source = _get_match(session, match_id)
    if winner_id is None:
        winner_id = source.winner_team_id
    if loser_id is None:
        loser_id = _other_participant(source, winner_id)
    cleared = _unprogress(session, source, winner_id, loser_id)
    if commit:
        session.commit()
    return cleared


def downstream_started(session: Session, match_id: int) -> List[Match]:
    """Downstream matches holding this match's participants that are no longer SCHEDULED."""
    source = _get_match(session, match_id)
    participants = source.participants()
    started: List[Match] = []
    for down, team_column in _downstream(session, match_id, SlotRole.WINNER) + _loser_targets(session, source):
        if getattr(down, team_column) not in participants:
            continue
        if down.is_bye and down.status == MatchStatus.WALKOVER.value:
            started.extend(downstream_started(session, down.id))
        elif down.status != MatchStatus.SCHEDULED.value:
            started.append(down)
    return started


def apply_advancement(session: Session, match_id: int) -> int:
    """
    Re-run progression for an already decided match (manual repair).

    Idempotent: slots already filled are left as they are.

    Raises:
        NotFoundError: match does not exist
        StateError: match has no recorded winner
    """
    match = _get_match(session, match_id)
    if match.status not in FINISHED_STATUSES or match.winner_team_id is None:
        raise StateError(f"Match {match_id} has no recorded result to advance")
    return progress_winner(session, match_id, match.winner_team_id)


def resolve_all_dependencies(session: Session, tournament_id: int, category_id: int) -> Dict:
    """
    Bulk progression for all decided matches of a category, in round order.

    Returns:
        Dict with:
        - matches_processed: number of decided matches processed
        - teams_advanced: total number of downstream slots filled
        - unknown_before / unknown_after: matches with an empty slot and a source edge
    """
    def count_unknown() -> int:
        rows = session.exec(
            select(Match).where(
                Match.tournament_id == tournament_id,
                Match.category_id == category_id,
                or_(
                    Match.team1_id.is_(None) & Match.team1_from_match_id.is_not(None),
                    Match.team2_id.is_(None) & Match.team2_from_match_id.is_not(None),
                ),
            )
        ).all()
        return len(rows)

    unknown_before = count_unknown()
    decided = session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.category_id == category_id,
            Match.status.in_(FINISHED_STATUSES),
            Match.winner_team_id.is_not(None),
        )
        .order_by(Match.round_number, Match.match_number)
    ).all()

    teams_advanced = 0
    for match in decided:
        teams_advanced += _progress(session, match, match.winner_team_id, match.loser_id())
    session.commit()

    return {
        "matches_processed": len(decided),
        "teams_advanced": teams_advanced,
        "unknown_before": unknown_before,
        "unknown_after": count_unknown(),
    }

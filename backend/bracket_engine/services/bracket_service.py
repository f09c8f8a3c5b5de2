"""
Bracket generation service.

Loads eligible teams, plans the topology for the tournament format
(services.topology) and persists it in one transaction, replacing any
previous bracket of the (tournament, category) pair.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from bracket_engine.models.category import Category, TournamentCategory
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.match_set import MatchSet
from bracket_engine.models.registration import CONFIRMED_STATUSES, Registration
from bracket_engine.models.team import Team
from bracket_engine.models.tournament import Tournament, TournamentFormat, TournamentStatus
from bracket_engine.models.zone import Zone, ZoneTeam
from bracket_engine.services import topology
from bracket_engine.services.advancement_service import progress_winner
from bracket_engine.services.errors import InvariantError, NotFoundError, ValidationError
from bracket_engine.utils.bye_distribution import bracket_dimensions
from bracket_engine.utils.group_config import calculate_optimal_group_configuration
from bracket_engine.utils.rounds import BracketSide

logger = logging.getLogger(__name__)

MIN_TEAMS = 2
MIN_TEAMS_BY_FORMAT = {
    TournamentFormat.GROUP_STAGE_ELIMINATION.value: 8,
    TournamentFormat.AMERICANO.value: 4,
}

PLANNERS = {
    TournamentFormat.SINGLE_ELIMINATION.value: topology.plan_single_elimination,
    TournamentFormat.DOUBLE_ELIMINATION.value: topology.plan_double_elimination,
    TournamentFormat.ROUND_ROBIN.value: topology.plan_round_robin,
    TournamentFormat.GROUP_STAGE_ELIMINATION.value: topology.plan_group_stage,
    TournamentFormat.AMERICANO.value: topology.plan_americano,
}


# ============================================================================
# Lookups
# ============================================================================


def get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError(f"Tournament {tournament_id} not found")
    return tournament


def require_tournament_category(session: Session, tournament_id: int, category_id: int) -> Category:
    """Category must exist and be linked to the tournament."""
    category = session.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    link = session.exec(
        select(TournamentCategory).where(
            TournamentCategory.tournament_id == tournament_id,
            TournamentCategory.category_id == category_id,
        )
    ).first()
    if not link:
        raise NotFoundError(f"Category {category_id} is not part of tournament {tournament_id}")
    return category


def get_eligible_teams(session: Session, tournament_id: int, category_id: int) -> List[Team]:
    """
    Teams whose two players both hold a confirmed registration.

    Order:
    1. seed ascending (non-null first)
    2. created_at ascending (registration order)
    3. id ascending
    """
    teams = session.exec(
        select(Team).where(Team.tournament_id == tournament_id, Team.category_id == category_id)
    ).all()
    confirmed_ids = set(
        session.exec(
            select(Registration.id).where(
                Registration.tournament_id == tournament_id,
                Registration.category_id == category_id,
                Registration.status.in_(CONFIRMED_STATUSES),
            )
        ).all()
    )
    eligible = [t for t in teams if t.registration1_id in confirmed_ids and t.registration2_id in confirmed_ids]

    def sort_key(team: Team):
        return (
            (team.seed is None, team.seed if team.seed is not None else 0),
            team.created_at or datetime.max,
            team.id,
        )

    return sorted(eligible, key=sort_key)


# ============================================================================
# Validation
# ============================================================================


def _generation_errors(tournament: Tournament, team_count: int) -> List[str]:
    errors: List[str] = []
    status = tournament.status
    if status == TournamentStatus.DRAFT.value:
        errors.append("Tournament must be published before generating a bracket")
    elif status == TournamentStatus.COMPLETED.value:
        errors.append("Cannot generate a bracket for a completed tournament")
    elif status == TournamentStatus.CANCELLED.value:
        errors.append("Cannot generate a bracket for a cancelled tournament")

    if team_count < MIN_TEAMS:
        errors.append(f"At least {MIN_TEAMS} confirmed teams are required (found {team_count})")
    elif team_count < (tournament.min_participants or 0):
        errors.append(
            f"Tournament requires at least {tournament.min_participants} participants (found {team_count})"
        )

    format_minimum = MIN_TEAMS_BY_FORMAT.get(tournament.format)
    if format_minimum and MIN_TEAMS <= team_count < format_minimum:
        errors.append(f"{tournament.format} requires at least {format_minimum} teams (found {team_count})")
    return errors


def _partial_seeding_error(teams: List[Team]) -> Optional[str]:
    seeded = [t for t in teams if t.seed is not None]
    if seeded and len(seeded) != len(teams):
        return f"Partial seeding: {len(seeded)} of {len(teams)} teams have a seed; seed all teams or none"
    return None


def validate_bracket_generation(session: Session, tournament_id: int, category_id: int) -> Dict:
    """
    Check whether a bracket can be generated, without changing anything.

    Returns:
        Dict with valid (bool), errors (list of messages) and team_count
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        return {"valid": False, "errors": [f"Tournament {tournament_id} not found"], "team_count": 0}
    try:
        require_tournament_category(session, tournament_id, category_id)
    except NotFoundError as e:
        return {"valid": False, "errors": [str(e)], "team_count": 0}

    teams = get_eligible_teams(session, tournament_id, category_id)
    team_count = len(teams)
    errors = _generation_errors(tournament, team_count)
    seeding_error = _partial_seeding_error(teams)
    if seeding_error:
        errors.append(seeding_error)
    return {"valid": not errors, "errors": errors, "team_count": team_count}


def check_existing_matches(session: Session, tournament_id: int, category_id: int) -> Dict:
    """Counts of existing matches by status, used to confirm a destructive regeneration."""
    statuses = session.exec(
        select(Match.status).where(Match.tournament_id == tournament_id, Match.category_id == category_id)
    ).all()
    counts = {status.value: 0 for status in MatchStatus}
    for status in statuses:
        counts[status] = counts.get(status, 0) + 1
    return {
        "has_matches": len(statuses) > 0,
        "total_matches": len(statuses),
        "scheduled_matches": counts[MatchStatus.SCHEDULED.value],
        "in_progress_matches": counts[MatchStatus.IN_PROGRESS.value],
        "completed_matches": counts[MatchStatus.COMPLETED.value],
        "walkover_matches": counts[MatchStatus.WALKOVER.value],
        "cancelled_matches": counts[MatchStatus.CANCELLED.value],
    }


# ============================================================================
# Persistence
# ============================================================================


def delete_bracket(session: Session, tournament_id: int, category_id: int) -> None:
    """Remove all matches, set scores and zones of the category (no commit)."""
    match_ids = select(Match.id).where(Match.tournament_id == tournament_id, Match.category_id == category_id)
    zone_ids = select(Zone.id).where(Zone.tournament_id == tournament_id, Zone.category_id == category_id)

    session.execute(delete(MatchSet).where(MatchSet.match_id.in_(match_ids)))
    session.execute(delete(ZoneTeam).where(ZoneTeam.zone_id.in_(zone_ids)))
    session.execute(delete(Match).where(Match.tournament_id == tournament_id, Match.category_id == category_id))
    session.execute(delete(Zone).where(Zone.tournament_id == tournament_id, Zone.category_id == category_id))
    session.flush()
    session.expire_all()


def persist_plan(
    session: Session, tournament_id: int, category_id: int, plan: topology.BracketPlan
) -> Dict[topology.MatchKey, Match]:
    """
    Insert zones and matches of a plan in round order, resolving edges to ids.

    Rows are flushed round by round so every edge points at an existing id.
    Does not commit.

    Raises:
        InvariantError: an edge points at a match that is not in the plan
    """
    zone_ids: List[int] = []
    for planned_zone in plan.zones:
        zone = Zone(tournament_id=tournament_id, category_id=category_id, name=planned_zone.name)
        session.add(zone)
        session.flush()
        zone_ids.append(zone.id)
        for team_id in planned_zone.team_ids:
            session.add(ZoneTeam(zone_id=zone.id, team_id=team_id))

    created: Dict[topology.MatchKey, Match] = {}

    def resolve(source: Optional[topology.SlotSource]) -> Optional[int]:
        if source is None:
            return None
        if source.key not in created:
            raise InvariantError(f"Unresolved bracket edge to round {source.round_number} match {source.match_number}")
        return created[source.key].id

    current_round: Optional[int] = None
    for planned in plan.in_creation_order():
        if planned.round_number != current_round:
            session.flush()
            current_round = planned.round_number

        walkover_winner = planned.bye_winner_id
        match = Match(
            tournament_id=tournament_id,
            category_id=category_id,
            zone_id=zone_ids[planned.zone_index] if planned.zone_index is not None else None,
            round_number=planned.round_number,
            match_number=planned.match_number,
            phase_type=planned.phase_type.value,
            bracket=planned.round_key.side.value,
            team1_id=planned.team1_id,
            team2_id=planned.team2_id,
            team1_from_match_id=resolve(planned.source1),
            team2_from_match_id=resolve(planned.source2),
            team1_from_role=planned.source1.role.value if planned.source1 else None,
            team2_from_role=planned.source2.role.value if planned.source2 else None,
            is_bye=planned.is_bye,
            status=MatchStatus.WALKOVER.value if walkover_winner is not None else MatchStatus.SCHEDULED.value,
            winner_team_id=walkover_winner,
            completed_at=datetime.utcnow() if walkover_winner is not None else None,
        )
        session.add(match)
        created[planned.key] = match

    session.flush()
    return created


# ============================================================================
# Generation
# ============================================================================


def generate_bracket(session: Session, tournament_id: int, category_id: int) -> Dict:
    """
    Rebuild the bracket of a tournament category from its eligible teams.

    Destructive: previous matches and zones are removed. Everything happens in
    one transaction; on any error nothing is changed.

    Returns:
        Summary dict (format, team_count, matches_created, byes, zones_created, total_rounds)

    Raises:
        NotFoundError: tournament or category missing
        ValidationError: tournament status or team count does not allow generation
        InvariantError: teams are only partially seeded
    """
    tournament = get_tournament(session, tournament_id)
    require_tournament_category(session, tournament_id, category_id)

    teams = get_eligible_teams(session, tournament_id, category_id)
    seeding_error = _partial_seeding_error(teams)
    if seeding_error:
        raise InvariantError(seeding_error)

    errors = _generation_errors(tournament, len(teams))
    if errors:
        raise ValidationError("; ".join(errors), errors)

    planner = PLANNERS.get(tournament.format)
    if planner is None:
        raise ValidationError(f"Unsupported tournament format: {tournament.format}")
    plan = planner([t.id for t in teams])

    try:
        delete_bracket(session, tournament_id, category_id)
        created = persist_plan(session, tournament_id, category_id, plan)
        for planned in plan.in_creation_order():
            if planned.bye_winner_id is not None:
                progress_winner(session, created[planned.key].id, planned.bye_winner_id, commit=False)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Bracket generation failed for tournament %s category %s", tournament_id, category_id)
        raise

    byes = sum(1 for m in plan.matches if m.bye_winner_id is not None)
    rounds = {m.round_number for m in plan.matches}
    logger.info(
        "Generated %s bracket for tournament %s category %s: %s teams, %s matches (%s byes), %s zones",
        tournament.format,
        tournament_id,
        category_id,
        len(teams),
        len(plan.matches),
        byes,
        len(plan.zones),
    )
    return {
        "format": tournament.format,
        "team_count": len(teams),
        "matches_created": len(plan.matches),
        "playable_matches": plan.playable_count(),
        "byes": byes,
        "zones_created": len(plan.zones),
        "total_rounds": len(rounds),
        "group_configuration": plan.group_configuration.to_dict() if plan.group_configuration else None,
    }


# ============================================================================
# Reads
# ============================================================================


def get_bracket(session: Session, tournament_id: int, category_id: int) -> Dict:
    """
    Matches of a category grouped by round number (pure read).

    Returns:
        Dict with matches, rounds_by_number {round_number: [Match]}, total_rounds, total_matches
    """
    matches = session.exec(
        select(Match)
        .where(Match.tournament_id == tournament_id, Match.category_id == category_id)
        .order_by(Match.round_number, Match.match_number)
    ).all()
    rounds_by_number: Dict[int, List[Match]] = {}
    for match in matches:
        rounds_by_number.setdefault(match.round_number, []).append(match)
    return {
        "matches": list(matches),
        "rounds_by_number": rounds_by_number,
        "total_rounds": len(rounds_by_number),
        "total_matches": len(matches),
    }


def preview_bracket(session: Session, tournament_id: int, category_id: int) -> Dict:
    """Shape of the bracket that generate_bracket would build right now."""
    tournament = get_tournament(session, tournament_id)
    require_tournament_category(session, tournament_id, category_id)
    team_count = len(get_eligible_teams(session, tournament_id, category_id))
    errors = _generation_errors(tournament, team_count)
    preview: Dict = {
        "format": tournament.format,
        "team_count": team_count,
        "valid": not errors,
        "errors": errors,
    }
    if team_count < MIN_TEAMS:
        return preview

    fmt = tournament.format
    if fmt in (TournamentFormat.SINGLE_ELIMINATION.value, TournamentFormat.DOUBLE_ELIMINATION.value):
        rounds, bracket_size, byes = bracket_dimensions(team_count)
        preview.update({"rounds": rounds, "bracket_size": bracket_size, "byes": byes})
    elif fmt == TournamentFormat.ROUND_ROBIN.value:
        preview.update({"rounds": 1, "total_matches": team_count * (team_count - 1) // 2})
    elif fmt == TournamentFormat.AMERICANO.value:
        rounds = min(team_count - 1, topology.AMERICANO_MAX_ROUNDS)
        preview.update({"rounds": rounds, "matches_per_round": team_count // 2})
    elif fmt == TournamentFormat.GROUP_STAGE_ELIMINATION.value:
        config = calculate_optimal_group_configuration(team_count)
        elimination_rounds, _, _ = bracket_dimensions(config.total_qualified)
        preview.update({"group_configuration": config.to_dict(), "elimination_rounds": elimination_rounds})
    return preview


def list_zones(session: Session, tournament_id: int, category_id: int) -> List[Dict]:
    """Zones of the category with members in standings order (unranked members last)."""
    zones = session.exec(
        select(Zone).where(Zone.tournament_id == tournament_id, Zone.category_id == category_id).order_by(Zone.id)
    ).all()
    result: List[Dict] = []
    for zone in zones:
        members = session.exec(select(ZoneTeam).where(ZoneTeam.zone_id == zone.id)).all()
        members = sorted(members, key=lambda zt: (zt.position is None, zt.position or 0, zt.team_id))
        result.append(
            {
                "id": zone.id,
                "name": zone.name,
                "phase_type": zone.phase_type,
                "teams": [{"team_id": zt.team_id, "position": zt.position} for zt in members],
            }
        )
    return result


def elimination_matches(session: Session, tournament_id: int, category_id: int) -> List[Match]:
    """Playoff matches of a group-stage category (rounds 10+), in round order."""
    return session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.category_id == category_id,
            Match.bracket == BracketSide.PLAYOFF.value,
        )
        .order_by(Match.round_number, Match.match_number)
    ).all()

"""
Automatic seed assignment from player ranking points.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlmodel import Session, select

from bracket_engine.models.category import TournamentCategory
from bracket_engine.models.registration import Registration
from bracket_engine.models.team import Team
from bracket_engine.models.tournament import TournamentFormat, TournamentStatus
from bracket_engine.services.bracket_service import get_eligible_teams, get_tournament
from bracket_engine.services.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SeedAssignment:
    team_id: int
    category_id: int
    seed: int
    ranking_points: Optional[int]


def team_ranking_points(team: Team, registrations: Dict[int, Registration]) -> Optional[int]:
    """Sum of both players' points; None when neither player has any."""
    points = [
        registrations[reg_id].ranking_points
        for reg_id in (team.registration1_id, team.registration2_id)
        if reg_id in registrations and registrations[reg_id].ranking_points is not None
    ]
    return sum(points) if points else None


def seed_rank_key(team: Team, points: Optional[int]) -> tuple:
    """
    Lower = better seed.

    Order: teams with points first, points descending, created_at, id.
    """
    return (
        points is None,
        -(points or 0),
        team.created_at or datetime.max,
        team.id,
    )


def assign_seeds(session: Session, tournament_id: int, category_id: Optional[int] = None) -> List[SeedAssignment]:
    """
    Seed the eligible teams of each category 1..k by combined ranking points.

    Ineligible teams lose any seed they had.

    Raises:
        NotFoundError: tournament does not exist
        ValidationError: tournament completed, or Americano format (no seeding)
    """
    tournament = get_tournament(session, tournament_id)
    if tournament.status == TournamentStatus.COMPLETED.value:
        raise ValidationError("Cannot assign seeds for a completed tournament")
    if tournament.format == TournamentFormat.AMERICANO.value:
        raise ValidationError("Americano tournaments are not seeded")

    if category_id is not None:
        category_ids = [category_id]
    else:
        category_ids = list(
            session.exec(
                select(TournamentCategory.category_id)
                .where(TournamentCategory.tournament_id == tournament_id)
                .order_by(TournamentCategory.category_id)
            ).all()
        )

    registrations = {
        r.id: r for r in session.exec(select(Registration).where(Registration.tournament_id == tournament_id)).all()
    }

    assignments: List[SeedAssignment] = []
    for cat_id in category_ids:
        all_teams = session.exec(
            select(Team).where(Team.tournament_id == tournament_id, Team.category_id == cat_id)
        ).all()
        # Clear first so reassignment never collides on the unique seed constraint
        for team in all_teams:
            team.seed = None
            session.add(team)
        session.flush()

        eligible = get_eligible_teams(session, tournament_id, cat_id)
        ranked = sorted(
            ((team, team_ranking_points(team, registrations)) for team in eligible),
            key=lambda pair: seed_rank_key(*pair),
        )
        for seed, (team, points) in enumerate(ranked, start=1):
            team.seed = seed
            session.add(team)
            assignments.append(SeedAssignment(team.id, cat_id, seed, points))
        session.flush()

    session.commit()
    logger.info("Assigned %s seeds for tournament %s", len(assignments), tournament_id)
    return assignments

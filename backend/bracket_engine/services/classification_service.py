"""
Classification: move group qualifiers into the first playoff round.

Qualifiers are the top qualified_per_group teams of each group plus the best
next-placed teams as wildcards. They are seeded 1..T (all group winners
first, then runners-up, then wildcards) and paired 1 vs T, 2 vs T-1, ...,
placed in bracket-fold order so seeds 1 and 2 can only meet in the final.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from sqlmodel import Session, select

from bracket_engine.models.match import MatchStatus
from bracket_engine.models.zone import Zone, ZoneTeam
from bracket_engine.services.bracket_service import elimination_matches
from bracket_engine.services.errors import StateError
from bracket_engine.services.standings_service import TeamStanding, calculate_all_standings, compute_zone_standings
from bracket_engine.utils.group_config import bracket_fold_positions, calculate_optimal_group_configuration
from bracket_engine.utils.rounds import PLAYOFF_FIRST_ROUND

logger = logging.getLogger(__name__)


@dataclass
class Qualifier:
    seed: int
    team_id: int
    zone_id: int
    zone_name: str
    position: int
    wildcard: bool = False


def _wildcard_sort_key(standing: TeamStanding, zone_order: int):
    points, set_diff, game_diff, sets_won = standing.ranking_key()
    return (-points, -set_diff, -game_diff, -sets_won, zone_order, standing.team_id)


def seed_pairings(total_qualified: int) -> List[List[int]]:
    """
    First-round seed pairs for a power-of-two playoff, in bracket order.

    Example (8): [[1, 8], [4, 5], [3, 6], [2, 7]]
    """
    fold = bracket_fold_positions(total_qualified)
    return [fold[i:i + 2] for i in range(0, len(fold), 2)]


def classify_teams_to_elimination_phase(session: Session, tournament_id: int, category_id: int) -> Dict:
    """
    Fill the first playoff round of a group-stage category from the group standings.

    Overwrites any earlier classification.

    Returns:
        Dict with configuration, qualifiers (seed order) and the filled matches

    Raises:
        StateError: no groups, standings missing, playoff skeleton does not match
                    the configuration, or the playoff has already started
    """
    zones = session.exec(
        select(Zone).where(Zone.tournament_id == tournament_id, Zone.category_id == category_id).order_by(Zone.id)
    ).all()
    if not zones:
        raise StateError("No groups found for this category; generate the bracket first")

    members_by_zone: Dict[int, List[ZoneTeam]] = {}
    for zone in zones:
        members = session.exec(select(ZoneTeam).where(ZoneTeam.zone_id == zone.id)).all()
        if any(zt.position is None for zt in members):
            raise StateError(f"Standings have not been calculated for {zone.name}")
        members_by_zone[zone.id] = list(members)

    total_teams = sum(len(m) for m in members_by_zone.values())
    config = calculate_optimal_group_configuration(total_teams)

    playoff = elimination_matches(session, tournament_id, category_id)
    first_round = [m for m in playoff if m.round_number == PLAYOFF_FIRST_ROUND]
    if len(first_round) != config.total_qualified // 2:
        raise StateError(
            f"Playoff has {len(first_round)} first-round matches but {config.total_qualified} teams qualify; "
            "regenerate the bracket"
        )
    started = [m for m in playoff if m.status != MatchStatus.SCHEDULED.value]
    if started:
        raise StateError(f"Playoff already started ({len(started)} matches in progress or finished)")

    def team_at(zone_id: int, position: int) -> Optional[ZoneTeam]:
        for zt in members_by_zone[zone_id]:
            if zt.position == position:
                return zt
        return None

    qualifiers: List[Qualifier] = []
    for position in range(1, config.qualified_per_group + 1):
        for zone in zones:
            zt = team_at(zone.id, position)
            if zt is not None:
                qualifiers.append(Qualifier(0, zt.team_id, zone.id, zone.name, position))

    if config.wildcard_slots > 0:
        wildcard_position = config.qualified_per_group + 1
        candidates = []
        for zone_order, zone in enumerate(zones):
            zt = team_at(zone.id, wildcard_position)
            if zt is None:
                continue
            standing = next(s for s in compute_zone_standings(session, zone.id) if s.team_id == zt.team_id)
            candidates.append((_wildcard_sort_key(standing, zone_order), zone, zt))
        candidates.sort(key=lambda c: c[0])
        for _, zone, zt in candidates[: config.wildcard_slots]:
            qualifiers.append(Qualifier(0, zt.team_id, zone.id, zone.name, wildcard_position, wildcard=True))

    if len(qualifiers) != config.total_qualified:
        raise StateError(f"Only {len(qualifiers)} qualifiers found for {config.total_qualified} playoff slots")

    for seed, qualifier in enumerate(qualifiers, start=1):
        qualifier.seed = seed

    filled = []
    first_round.sort(key=lambda m: m.match_number)
    for match, (seed_a, seed_b) in zip(first_round, seed_pairings(config.total_qualified)):
        match.team1_id = qualifiers[seed_a - 1].team_id
        match.team2_id = qualifiers[seed_b - 1].team_id
        session.add(match)
        filled.append({"match_id": match.id, "team1_id": match.team1_id, "team2_id": match.team2_id})

    session.commit()
    logger.info(
        "Classified %s teams into playoff for tournament %s category %s (%s wildcards)",
        len(qualifiers),
        tournament_id,
        category_id,
        config.wildcard_slots,
    )
    return {
        "configuration": config.to_dict(),
        "qualifiers": [asdict(q) for q in qualifiers],
        "matches": filled,
    }


def force_classify(session: Session, tournament_id: int, category_id: int) -> Dict:
    """
    Recalculate every group's standings, then classify, in one transaction.

    Used when the group stage is over but standings were never stored, or to
    repair a classification by hand. Nothing is written if classification fails.
    """
    try:
        standings = calculate_all_standings(session, tournament_id, category_id, commit=False)
        logger.info(
            "Recalculated standings of %s groups for tournament %s category %s",
            len(standings),
            tournament_id,
            category_id,
        )
        return classify_teams_to_elimination_phase(session, tournament_id, category_id)
    except Exception:
        session.rollback()
        raise

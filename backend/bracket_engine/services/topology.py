"""
Bracket Topology Planner

Builds the match graph of a category in memory, before anything touches the
database. Matches are keyed by (round_number, match_number); slots either
hold a team id or point at an upstream match with a WINNER/LOSER role.

This module is pure: no sessions, no I/O. bracket_service persists plans.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from bracket_engine.models.match import PhaseType, SlotRole
from bracket_engine.utils.bye_distribution import bracket_dimensions, distribute_byes
from bracket_engine.utils.group_config import (
    GroupConfiguration,
    calculate_optimal_group_configuration,
    group_name,
    snake_distribute,
)
from bracket_engine.utils.rounds import BracketSide, RoundKey, elimination_phase
from bracket_engine.utils.rr_pairing import circle_pairings

AMERICANO_MAX_ROUNDS = 10

MatchKey = Tuple[int, int]  # (round_number, match_number)


@dataclass(frozen=True)
class SlotSource:
    round_number: int
    match_number: int
    role: SlotRole = SlotRole.WINNER

    @property
    def key(self) -> MatchKey:
        return (self.round_number, self.match_number)


@dataclass
class PlannedMatch:
    round_key: RoundKey
    match_number: int
    phase_type: PhaseType
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    source1: Optional[SlotSource] = None
    source2: Optional[SlotSource] = None
    zone_index: Optional[int] = None
    is_bye: bool = False

    @property
    def round_number(self) -> int:
        return self.round_key.round_number

    @property
    def key(self) -> MatchKey:
        return (self.round_number, self.match_number)

    @property
    def bye_winner_id(self) -> Optional[int]:
        """Team that walks over when this is a round-1 bye with its team known."""
        if not self.is_bye:
            return None
        return self.team1_id if self.team1_id is not None else self.team2_id


@dataclass
class PlannedZone:
    name: str
    team_ids: List[int] = field(default_factory=list)


@dataclass
class BracketPlan:
    matches: List[PlannedMatch] = field(default_factory=list)
    zones: List[PlannedZone] = field(default_factory=list)
    group_configuration: Optional[GroupConfiguration] = None

    def by_key(self) -> Dict[MatchKey, PlannedMatch]:
        return {m.key: m for m in self.matches}

    def in_creation_order(self) -> List[PlannedMatch]:
        """Round-ascending order; every edge points at an earlier match."""
        return sorted(self.matches, key=lambda m: (m.round_number, m.match_number))

    def playable_count(self) -> int:
        return sum(1 for m in self.matches if not m.is_bye)


# ============================================================================
# Elimination brackets
# ============================================================================


def _elimination_rounds(
    slots: Sequence[Optional[int]], side: BracketSide, total_rounds: int, label_rounds: Optional[int] = None
) -> List[PlannedMatch]:
    """
    Round 1 from the filled slots, then winner-fed skeleton rounds up to the final.

    Round r+1 match m is fed by the winners of round r matches 2m-1 and 2m.
    label_rounds counts the rounds up to the match labelled FINAL (default total_rounds).
    """
    label_rounds = label_rounds or total_rounds
    matches: List[PlannedMatch] = []
    for i in range(len(slots) // 2):
        team1, team2 = slots[2 * i], slots[2 * i + 1]
        matches.append(
            PlannedMatch(
                round_key=RoundKey(side, 1),
                match_number=i + 1,
                phase_type=elimination_phase(1, label_rounds),
                team1_id=team1,
                team2_id=team2,
                is_bye=(team1 is None) != (team2 is None),
            )
        )

    for round_index in range(2, total_rounds + 1):
        prev_round = RoundKey(side, round_index - 1).round_number
        for m in range(1, (len(slots) >> round_index) + 1):
            matches.append(
                PlannedMatch(
                    round_key=RoundKey(side, round_index),
                    match_number=m,
                    phase_type=elimination_phase(round_index, label_rounds),
                    source1=SlotSource(prev_round, 2 * m - 1),
                    source2=SlotSource(prev_round, 2 * m),
                )
            )
    return matches


def plan_single_elimination(team_ids: Sequence[int], side: BracketSide = BracketSide.MAIN) -> BracketPlan:
    """
    Single elimination over seed-ordered teams.

    Byes go to the top seeds. Bye matches are flagged is_bye and carry their
    single team; they walk over when persisted.
    """
    total_rounds, bracket_size, _ = bracket_dimensions(len(team_ids))
    slots = distribute_byes(list(team_ids), bracket_size)
    return BracketPlan(matches=_elimination_rounds(slots, side, total_rounds))


def plan_elimination_skeleton(total_teams: int) -> List[PlannedMatch]:
    """
    Empty playoff bracket (rounds 10, 11, ...) for teams that come out of groups.

    First-round slots are left empty for classification.
    """
    total_rounds, bracket_size, _ = bracket_dimensions(total_teams)
    return _elimination_rounds([None] * bracket_size, BracketSide.PLAYOFF, total_rounds)


def _upper_round(index: int) -> int:
    return RoundKey(BracketSide.UPPER, index).round_number


def _lower_round(index: int) -> int:
    return RoundKey(BracketSide.LOWER, index).round_number


def plan_double_elimination(team_ids: Sequence[int]) -> BracketPlan:
    """
    Double elimination: upper bracket, lower bracket (rounds 101...), grand final (200).

    With U upper rounds the lower bracket has 2U-2 rounds:
    - lower round 1 pairs the losers of upper round 1 (matches 2i-1, 2i)
    - lower round 2k: winner of lower round 2k-1 match i vs loser of upper round k+1 match i
    - lower round 2k+1: pairs winners of lower round 2k
    The grand final is the upper champion vs the lower champion. No bracket reset.

    Slots that can never receive a team (the loser of a bye) are dead. A match
    with two dead slots is dropped; one with a single live slot is a bye.
    """
    upper_rounds, bracket_size, _ = bracket_dimensions(len(team_ids))
    slots = distribute_byes(list(team_ids), bracket_size)
    # Upper rounds are labelled by distance to the grand final
    upper = _elimination_rounds(slots, BracketSide.UPPER, upper_rounds, label_rounds=upper_rounds + 1)

    lower: List[PlannedMatch] = []
    lower_rounds = 2 * upper_rounds - 2
    for lr in range(1, lower_rounds + 1):
        # Lower rounds 2k-1 and 2k both have bracket_size / 2^(k+1) matches
        count = bracket_size >> ((lr + 1) // 2 + 1)
        for i in range(1, count + 1):
            if lr == 1:
                source1 = SlotSource(_upper_round(1), 2 * i - 1, SlotRole.LOSER)
                source2 = SlotSource(_upper_round(1), 2 * i, SlotRole.LOSER)
            elif lr % 2 == 0:
                source1 = SlotSource(_lower_round(lr - 1), i)
                source2 = SlotSource(_upper_round(lr // 2 + 1), i, SlotRole.LOSER)
            else:
                source1 = SlotSource(_lower_round(lr - 1), 2 * i - 1)
                source2 = SlotSource(_lower_round(lr - 1), 2 * i)
            lower.append(
                PlannedMatch(
                    round_key=RoundKey(BracketSide.LOWER, lr),
                    match_number=i,
                    phase_type=PhaseType.LOWER_BRACKET,
                    source1=source1,
                    source2=source2,
                )
            )

    if lower_rounds > 0:
        final_source2 = SlotSource(_lower_round(lower_rounds), 1)
    else:
        final_source2 = SlotSource(_upper_round(1), 1, SlotRole.LOSER)
    grand_final = PlannedMatch(
        round_key=RoundKey(BracketSide.GRAND_FINAL),
        match_number=1,
        phase_type=PhaseType.FINAL,
        source1=SlotSource(_upper_round(upper_rounds), 1),
        source2=final_source2,
    )

    return BracketPlan(matches=_prune_dead_slots(upper + lower + [grand_final]))


def _prune_dead_slots(matches: List[PlannedMatch]) -> List[PlannedMatch]:
    """
    Drop matches that can never be played and flag one-sided matches as byes.

    A slot is live when it holds a team, or when its source can produce that
    participant: any non-void match produces a winner; only a match with two
    live slots produces a loser.
    """
    live_slots: Dict[MatchKey, int] = {}
    kept: List[PlannedMatch] = []

    def source_live(source: Optional[SlotSource]) -> bool:
        if source is None or source.key not in live_slots:
            return False
        if source.role == SlotRole.LOSER:
            return live_slots[source.key] == 2
        return live_slots[source.key] >= 1

    for match in sorted(matches, key=lambda m: (m.round_number, m.match_number)):
        if match.source1 is None and match.source2 is None:
            live = int(match.team1_id is not None) + int(match.team2_id is not None)
            live_slots[match.key] = live
            kept.append(match)
            continue

        slot1_live = source_live(match.source1)
        slot2_live = source_live(match.source2)
        if not slot1_live:
            match.source1 = None
        if not slot2_live:
            match.source2 = None
        live = int(slot1_live) + int(slot2_live)
        if live == 0:
            continue
        match.is_bye = live == 1
        live_slots[match.key] = live
        kept.append(match)

    return kept


# ============================================================================
# Round-robin style formats
# ============================================================================


def plan_round_robin(team_ids: Sequence[int]) -> BracketPlan:
    """Every team plays every other team once, all under round 1."""
    matches: List[PlannedMatch] = []
    for pairs in circle_pairings(len(team_ids)):
        for a, b in pairs:
            matches.append(
                PlannedMatch(
                    round_key=RoundKey(BracketSide.GROUP, 1),
                    match_number=len(matches) + 1,
                    phase_type=PhaseType.GROUP_STAGE,
                    team1_id=team_ids[a],
                    team2_id=team_ids[b],
                )
            )
    return BracketPlan(matches=matches)


def plan_americano(team_ids: Sequence[int]) -> BracketPlan:
    """
    Americano rotation: min(n - 1, 10) rounds of circle-method pairings.

    Every round carries the same phase label.
    """
    rounds = min(len(team_ids) - 1, AMERICANO_MAX_ROUNDS)
    matches: List[PlannedMatch] = []
    for round_index, pairs in enumerate(circle_pairings(len(team_ids), rounds), start=1):
        for match_number, (a, b) in enumerate(pairs, start=1):
            matches.append(
                PlannedMatch(
                    round_key=RoundKey(BracketSide.GROUP, round_index),
                    match_number=match_number,
                    phase_type=PhaseType.GROUP_STAGE,
                    team1_id=team_ids[a],
                    team2_id=team_ids[b],
                )
            )
    return BracketPlan(matches=matches)


def plan_group_stage(team_ids: Sequence[int]) -> BracketPlan:
    """
    Group stage + elimination.

    Teams are snake-distributed into groups ("Group A", ...); each group
    plays a round robin tagged with its zone. Match numbers run across
    groups within a round. The playoff skeleton starts at round 10.
    """
    config = calculate_optimal_group_configuration(len(team_ids))
    groups = snake_distribute(list(team_ids), config.group_sizes)
    zones = [PlannedZone(name=group_name(i), team_ids=members) for i, members in enumerate(groups)]

    matches: List[PlannedMatch] = []
    next_number: Dict[int, int] = {}
    for zone_index, zone in enumerate(zones):
        for round_index, pairs in enumerate(circle_pairings(len(zone.team_ids)), start=1):
            for a, b in pairs:
                next_number[round_index] = next_number.get(round_index, 0) + 1
                matches.append(
                    PlannedMatch(
                        round_key=RoundKey(BracketSide.GROUP, round_index),
                        match_number=next_number[round_index],
                        phase_type=PhaseType.GROUP_STAGE,
                        team1_id=zone.team_ids[a],
                        team2_id=zone.team_ids[b],
                        zone_index=zone_index,
                    )
                )

    matches.extend(plan_elimination_skeleton(config.total_qualified))
    return BracketPlan(matches=matches, zones=zones, group_configuration=config)

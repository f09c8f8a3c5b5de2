"""
Group Stage Configuration

Pure helpers for group-stage + elimination categories:
- how many groups, of which sizes
- how many teams qualify (always a power of two)
- snake distribution of seeded teams into groups
- bracket-fold order for seeding the elimination round
"""

from dataclasses import dataclass, field
from math import ceil, floor
from typing import List, Sequence, TypeVar

T = TypeVar("T")

MAX_GROUP_SIZE = 4


@dataclass(frozen=True)
class GroupConfiguration:
    num_groups: int
    group_sizes: List[int] = field(default_factory=list)
    qualified_per_group: int = 1
    wildcard_slots: int = 0
    total_qualified: int = 2

    def to_dict(self) -> dict:
        return {
            "num_groups": self.num_groups,
            "group_sizes": list(self.group_sizes),
            "qualified_per_group": self.qualified_per_group,
            "wildcard_slots": self.wildcard_slots,
            "total_qualified": self.total_qualified,
        }


# ============================================================================
# Groups count and capacities
# ============================================================================


def compute_groups_count(team_count: int) -> int:
    """
    Number of groups: ceil(team_count / 4), at least 1.

    Examples:
    - 8 teams → 2 groups
    - 9 teams → 3 groups
    - 16 teams → 4 groups
    """
    if team_count <= 0:
        return 1
    return max(1, ceil(team_count / MAX_GROUP_SIZE))


def compute_group_capacities(team_count: int, groups_count: int) -> List[int]:
    """
    Size of each group. The remainder goes to the first groups.

    Args:
        team_count: Number of teams to distribute
        groups_count: Number of groups

    Returns:
        List of group sizes, length = groups_count
    """
    if groups_count <= 0:
        return []

    base_size = floor(team_count / groups_count)
    remainder = team_count % groups_count
    return [base_size + 1 if i < remainder else base_size for i in range(groups_count)]


def _largest_power_of_two_at_most(value: int) -> int:
    power = 1
    while power * 2 <= value:
        power *= 2
    return power


def calculate_optimal_group_configuration(team_count: int) -> GroupConfiguration:
    """
    Group configuration for a group-stage + elimination category.

    total_qualified is the largest power of two <= 2 * num_groups, so every
    group sends one or two teams and the remaining slots go to the best
    next-placed teams (wildcards, at most one per group).

    Examples:
    - 8 teams  → 2 groups of 4, 2 per group, 0 wildcards, 4 qualified
    - 9 teams  → 3 groups of 3, 1 per group, 1 wildcard, 4 qualified
    - 20 teams → 5 groups of 4, 1 per group, 3 wildcards, 8 qualified

    Raises:
        ValueError: fewer than 2 teams
    """
    if team_count < 2:
        raise ValueError(f"At least 2 teams are required, got {team_count}")

    num_groups = compute_groups_count(team_count)
    total_qualified = _largest_power_of_two_at_most(2 * num_groups)
    qualified_per_group = total_qualified // num_groups
    wildcard_slots = total_qualified - qualified_per_group * num_groups

    return GroupConfiguration(
        num_groups=num_groups,
        group_sizes=compute_group_capacities(team_count, num_groups),
        qualified_per_group=qualified_per_group,
        wildcard_slots=wildcard_slots,
        total_qualified=total_qualified,
    )


# ============================================================================
# Distribution and naming
# ============================================================================


def group_name(index: int) -> str:
    """0 → "Group A", 25 → "Group Z", 26 → "Group AA"."""
    letters = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return f"Group {letters}"


def snake_distribute(teams: Sequence[T], capacities: Sequence[int]) -> List[List[T]]:
    """
    Boustrophedon distribution of seed-ordered teams into groups.

    Seeds 1..k go to groups A..last, seeds k+1..2k come back from last..A,
    and so on. Groups already at capacity are skipped.
    """
    if sum(capacities) < len(teams):
        raise ValueError(f"{len(teams)} teams do not fit groups of sizes {list(capacities)}")

    groups: List[List[T]] = [[] for _ in capacities]
    k = len(capacities)
    pending = list(teams)
    forward = True
    while pending:
        for g in range(k) if forward else range(k - 1, -1, -1):
            if pending and len(groups[g]) < capacities[g]:
                groups[g].append(pending.pop(0))
        forward = not forward
    return groups


def bracket_fold_positions(n: int) -> List[int]:
    """Standard bracket-fold positions for *n* entries (n a power of two).

    Returns a flat list of seed numbers in bracket position order.
    Consecutive pairs indicate which seeds meet if the favourites win:
      4-entry  -> [1, 4, 2, 3]       -> (1v4), (2v3)
      8-entry  -> [1, 8, 4, 5, ...]   -> (1v8), (4v5), ...
    Seeds 1 and 2 land in opposite halves.
    """
    if n <= 1:
        return [1]
    if n == 2:
        return [1, 2]

    half = bracket_fold_positions(n // 2)

    expanded: List[int] = []
    for s in half:
        expanded.append(s)
        expanded.append(n + 1 - s)

    mid = len(expanded) // 2
    top = expanded[:mid]
    bot = expanded[mid:]
    if len(bot) >= 4:
        bot = bot[:-4] + bot[-2:] + bot[-4:-2]

    return top + bot

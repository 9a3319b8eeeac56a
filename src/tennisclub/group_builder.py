"""Round robin fixtures (circle method) and group stage scheduling."""

import logging
from dataclasses import replace
from typing import Optional

from tennisclub.models import Match, MatchStage, Participant

logger = logging.getLogger(__name__)

DEFAULT_GROUP = 1


def generate_round_robin_matches(
    tournament_id: str,
    participants: list[Participant],
    group_number: Optional[int] = None,
) -> list[Match]:
    """Generate a full round robin using the circle method.

    With an odd number of participants an empty bye position is added, so
    one participant sits out each round. Position 0 stays fixed; after each
    round the last position is moved to index 1.

    For 4 participants (A, B, C, D):
        Round 1: A-D, B-C
        Round 2: A-C, D-B
        Round 3: A-B, C-D

    Args:
        tournament_id: Tournament the matches belong to
        participants: Participants of one group (or the whole field)
        group_number: Group number for group stage matches, None otherwise

    Returns:
        List of unsaved Match objects, N*(N-1)/2 of them
    """
    n = len(participants)
    if n < 2:
        return []

    # None marks the bye position
    positions: list[Optional[Participant]] = list(participants)
    if n % 2 == 1:
        positions.append(None)

    size = len(positions)
    half = size // 2
    stage = MatchStage.GROUP if group_number is not None else MatchStage.KNOCKOUT

    matches = []
    for round_idx in range(size - 1):
        for pairing in range(half):
            home = positions[pairing]
            away = positions[size - 1 - pairing]
            if home is None or away is None:
                continue

            matches.append(
                Match(
                    tournament_id=tournament_id,
                    round=round_idx + 1,
                    match_number=pairing + 1,
                    stage=stage,
                    group_number=group_number,
                    participant1_id=home.id,
                    participant2_id=away.id,
                )
            )

        # Rotate, keeping the first position fixed
        positions.insert(1, positions.pop())

    return matches


def partition_by_group(participants: list[Participant]) -> dict[int, list[Participant]]:
    """Split participants by group number (unset = group 1).

    Keys are in ascending group order; participants keep their input order.
    """
    groups: dict[int, list[Participant]] = {}
    for participant in participants:
        group_num = participant.group_number or DEFAULT_GROUP
        groups.setdefault(group_num, []).append(participant)
    return dict(sorted(groups.items()))


def generate_group_knockout_matches(
    tournament_id: str,
    participants: list[Participant],
    groups_count: int,
) -> list[Match]:
    """Generate the group stage of a group + knockout tournament.

    Each group plays its own round robin. Knockout matches are built later,
    once the top finishers of each group are known.

    Args:
        tournament_id: Tournament the matches belong to
        participants: All participants, with group_number assigned
        groups_count: Number of groups configured for the tournament

    Returns:
        List of unsaved group stage Match objects
    """
    if groups_count < 1:
        raise ValueError(f"Number of groups must be at least 1, got {groups_count}")

    groups = partition_by_group(participants)

    matches = []
    for group_num, group_participants in groups.items():
        if group_num > groups_count:
            logger.warning(
                "Group %d is outside the configured %d groups (%d participants)",
                group_num,
                groups_count,
                len(group_participants),
            )
        group_matches = generate_round_robin_matches(tournament_id, group_participants, group_num)
        logger.debug("Group %d: %d matches", group_num, len(group_matches))
        matches.extend(group_matches)

    return matches


def distribute_seeds_snake(
    participants: list[Participant], num_groups: int
) -> list[list[Participant]]:
    """Distribute seeded participants into groups using the snake method.

    Seeds flow in a serpentine pattern:
    - Group 1: 1, 8, 9, 16
    - Group 2: 2, 7, 10, 15
    - Group 3: 3, 6, 11, 14
    - Group 4: 4, 5, 12, 13

    Args:
        participants: Participants in seed order (best first)
        num_groups: Number of groups to create

    Returns:
        List of lists, each containing the participants of one group
    """
    if not participants:
        raise ValueError("Cannot distribute empty participant list")

    if num_groups < 1:
        raise ValueError(f"Number of groups must be at least 1, got {num_groups}")

    groups: list[list[Participant]] = [[] for _ in range(num_groups)]

    for idx, participant in enumerate(participants):
        row = idx // num_groups
        col = idx % num_groups
        # Left-to-right on even rows, right-to-left on odd rows
        group_idx = col if row % 2 == 0 else num_groups - 1 - col
        groups[group_idx].append(participant)

    return groups


def assign_groups(participants: list[Participant], groups_count: int) -> list[Participant]:
    """Assign group numbers by snake seeding.

    Seeded participants are placed first in seed order, unseeded ones follow
    in their input order.

    Returns:
        Copies of the participants with group_number set (1-based)
    """
    seeded = sorted((p for p in participants if p.seed is not None), key=lambda p: p.seed)
    unseeded = [p for p in participants if p.seed is None]

    assigned = []
    for group_idx, members in enumerate(distribute_seeds_snake(seeded + unseeded, groups_count), start=1):
        assigned.extend(replace(p, group_number=group_idx) for p in members)

    return assigned

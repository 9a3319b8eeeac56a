"""Standings calculator.

Standings are derived from the match list on every call; nothing is cached
or updated incrementally.
"""

import logging
import re
from typing import Optional

from tennisclub.group_builder import partition_by_group
from tennisclub.models import (
    GroupStandings,
    Match,
    MatchStage,
    MatchStatus,
    Participant,
    SetScore,
    Standing,
)

logger = logging.getLogger(__name__)

POINTS_PER_WIN = 3

# "<games>-<games>", ASCII digits only
SET_PATTERN = re.compile(r"\s*(\d+)\s*-\s*(\d+)\s*", re.ASCII)


def parse_set(fragment: str) -> Optional[SetScore]:
    """Parse one "<games>-<games>" fragment, None if it is not one."""
    match = SET_PATTERN.fullmatch(fragment)
    if match is None:
        return None
    return SetScore(int(match.group(1)), int(match.group(2)))


def parse_score(score: Optional[str]) -> list[SetScore]:
    """Parse a score string like "6-4, 3-6, 7-5" into sets.

    Fragments that don't parse (e.g. "Freilos", "6-", "ret.") are skipped.

    Examples:
        >>> parse_score("6-4, 3-6, 7-5")
        [SetScore(games1=6, games2=4), SetScore(games1=3, games2=6), SetScore(games1=7, games2=5)]
        >>> parse_score("6-4, abc")
        [SetScore(games1=6, games2=4)]
    """
    if not score:
        return []

    sets = []
    for fragment in score.split(","):
        set_score = parse_set(fragment)
        if set_score is not None:
            sets.append(set_score)
    return sets


def calculate_standings(participants: list[Participant], matches: list[Match]) -> list[Standing]:
    """Calculate a standings table from match results.

    Scoring:
    - Win: 3 points, loss: 0 points
    - Sets and games are credited per parsed set, whoever won the match

    Only completed matches with a score count. Matches that reference a
    participant outside ``participants`` are skipped entirely.

    Sort order (all descending): points, set difference, game difference.
    Rows tied on all three keep their input order.

    Args:
        participants: Participants to rank (one group, or the whole field)
        matches: Matches of those participants

    Returns:
        One Standing per participant, best first
    """
    standings = {p.id: Standing(participant=p) for p in participants}

    for match in matches:
        if match.status != MatchStatus.COMPLETED or not match.score:
            continue

        p1 = standings.get(match.participant1_id) if match.participant1_id else None
        p2 = standings.get(match.participant2_id) if match.participant2_id else None
        if p1 is None or p2 is None:
            continue

        p1_sets = p2_sets = p1_games = p2_games = 0
        for set_score in parse_score(match.score):
            p1_games += set_score.games1
            p2_games += set_score.games2
            if set_score.winner_side == 1:
                p1_sets += 1
            elif set_score.winner_side == 2:
                p2_sets += 1

        p1.played += 1
        p2.played += 1
        p1.sets_won += p1_sets
        p1.sets_lost += p2_sets
        p2.sets_won += p2_sets
        p2.sets_lost += p1_sets
        p1.games_won += p1_games
        p1.games_lost += p2_games
        p2.games_won += p2_games
        p2.games_lost += p1_games

        if match.winner_id == match.participant1_id:
            winner, loser = p1, p2
        elif match.winner_id == match.participant2_id:
            winner, loser = p2, p1
        else:
            logger.warning("Completed match %s has winner %s outside its slots", match.id, match.winner_id)
            continue

        winner.won += 1
        winner.points += POINTS_PER_WIN
        loser.lost += 1

    # Stable sort keeps input order for full ties
    return sorted(
        standings.values(),
        key=lambda s: (s.points, s.set_difference, s.game_difference),
        reverse=True,
    )


def calculate_group_standings(participants: list[Participant], matches: list[Match]) -> list[GroupStandings]:
    """Calculate one standings table per group.

    Each group sees only its own group stage matches.

    Returns:
        GroupStandings in ascending group order
    """
    result = []
    for group_num, group_participants in partition_by_group(participants).items():
        group_matches = [
            m for m in matches if m.stage == MatchStage.GROUP and m.group_number == group_num
        ]
        result.append(
            GroupStandings(
                group_number=group_num,
                standings=calculate_standings(group_participants, group_matches),
            )
        )
    return result

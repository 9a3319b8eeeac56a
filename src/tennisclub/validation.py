"""Validation rules for scheduling and result entry.

These checks run in the calling layer before the pure engine is invoked.
"""

from typing import Optional

from tennisclub.advancement import can_slot_be_filled
from tennisclub.models import Match, Participant, SlotName
from tennisclub.standings import parse_set

MIN_PARTICIPANTS = 2


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


def validate_participant_count(participants: list[Participant]) -> tuple[bool, str]:
    """Check that a tournament has enough participants to be scheduled."""
    if len(participants) < MIN_PARTICIPANTS:
        return False, f"Need at least {MIN_PARTICIPANTS} participants (current: {len(participants)})"
    return True, ""


def validate_match_result(match: Match, score: Optional[str], winner_id: Optional[str]) -> tuple[bool, str]:
    """Validate a reported result for a match.

    Bye matches have a single participant, who is then the only valid winner.

    Args:
        match: The match being reported
        score: Score string as entered
        winner_id: Participant id of the reported winner

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not score or not score.strip() or not winner_id:
        return False, "Score and winner are required"

    if winner_id not in match.participant_ids:
        return False, "Winner must be a participant in this match"

    return True, ""


def validate_bye(match: Match, matches: list[Match]) -> tuple[bool, str]:
    """Check that a match with one participant really is a bye.

    The empty slot must stay empty: it has no feeder match, or no participant
    can reach it any more. Otherwise the match is still waiting for an opponent.

    Args:
        match: Match with exactly one occupied slot
        matches: All matches of the tournament

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not match.is_bye:
        return False, f"Match {match} is not a bye match"

    empty_slot = SlotName.PARTICIPANT1 if match.participant1_id is None else SlotName.PARTICIPANT2
    if can_slot_be_filled(match, empty_slot, matches):
        return False, f"Match {match} is still waiting for an opponent"

    return True, ""


def validate_score(score: str, sets_to_win: int = 2, winner_side: Optional[int] = None) -> tuple[bool, str]:
    """Strictly validate a score string.

    Rules:
    - Every comma-separated fragment must be "<games>-<games>"
    - No set may be tied
    - Exactly one side reaches ``sets_to_win`` sets, with the last set
    - Optionally, that side must be ``winner_side`` (1 or 2)

    Examples:
        >>> validate_score("6-4, 6-3")
        (True, '')
        >>> validate_score("6-4, 3-6, 7-5", sets_to_win=2, winner_side=1)
        (True, '')
        >>> validate_score("6-4, 6-6")
        (False, 'Set 2: a set cannot be tied')
    """
    if sets_to_win < 1:
        return False, f"sets_to_win must be at least 1, got {sets_to_win}"

    if not score or not score.strip():
        return False, "The score must contain at least one set"

    fragments = score.split(",")
    max_sets = 2 * sets_to_win - 1
    if len(fragments) > max_sets:
        return False, f"Too many sets for best of {max_sets} (entered: {len(fragments)})"

    p1_sets = p2_sets = 0
    for idx, fragment in enumerate(fragments, start=1):
        set_score = parse_set(fragment)
        if set_score is None:
            return False, f"Set {idx}: '{fragment.strip()}' is not a valid set score"
        if set_score.winner_side is None:
            return False, f"Set {idx}: a set cannot be tied"

        if p1_sets == sets_to_win or p2_sets == sets_to_win:
            return False, "The score has sets after the match was decided"

        if set_score.winner_side == 1:
            p1_sets += 1
        else:
            p2_sets += 1

    if p1_sets < sets_to_win and p2_sets < sets_to_win:
        return False, f"Incomplete match: no side has won {sets_to_win} sets"

    decided_side = 1 if p1_sets == sets_to_win else 2
    if winner_side is not None and winner_side != decided_side:
        return False, "The score does not match the reported winner"

    return True, ""

"""Knockout progression: where the winner of a match plays next.

Match m of round r feeds match ceil(m / 2) of round r + 1. Odd match
numbers fill the first slot, even ones the second:

    R1 M1 ─┐
           ├─ R2 M1 (participant1 <- M1, participant2 <- M2)
    R1 M2 ─┘
    R1 M3 ─┐
           ├─ R2 M2
    R1 M4 ─┘
"""

import logging
from typing import Optional

from tennisclub.models import Match, MatchStage, Occupied, SlotName, SlotUpdate

logger = logging.getLogger(__name__)


def next_match_address(match: Match) -> tuple[int, int, SlotName]:
    """Return (round, match_number, slot) the winner of ``match`` moves into."""
    next_round = match.round + 1
    next_match_number = (match.match_number + 1) // 2
    is_first_of_pair = match.match_number % 2 == 1
    slot_name = SlotName.PARTICIPANT1 if is_first_of_pair else SlotName.PARTICIPANT2
    return next_round, next_match_number, slot_name


def find_next_match(match: Match, matches: list[Match]) -> Optional[Match]:
    """Find the knockout match fed by ``match``, None after the final."""
    next_round, next_match_number, _ = next_match_address(match)
    for candidate in matches:
        if (
            candidate.stage == MatchStage.KNOCKOUT
            and candidate.round == next_round
            and candidate.match_number == next_match_number
        ):
            return candidate
    return None


def advance_winner(tournament_id: str, match: Match, matches: list[Match]) -> Optional[SlotUpdate]:
    """Work out the single slot write for the winner of a completed match.

    Group stage matches, matches without a winner and the final produce no
    update. The newly filled match is not inspected any further.

    Args:
        tournament_id: Tournament of the match
        match: The just-completed match
        matches: All matches of the tournament (other tournaments are ignored)

    Returns:
        SlotUpdate for the downstream match, or None
    """
    if match.stage != MatchStage.KNOCKOUT or not match.winner_id:
        return None

    knockout = [m for m in matches if m.tournament_id == tournament_id and m.stage == MatchStage.KNOCKOUT]
    next_match = find_next_match(match, knockout)
    if next_match is None:
        logger.debug("Round %d match %d is the final", match.round, match.match_number)
        return None

    _, _, slot_name = next_match_address(match)
    return SlotUpdate(match_id=next_match.id, slot_name=slot_name, participant_id=match.winner_id)


def apply_slot_update(matches: list[Match], update: SlotUpdate) -> Match:
    """Write a slot update into the in-memory match it addresses.

    Raises:
        KeyError: If no match has the update's match id
    """
    for match in matches:
        if match.id is not None and match.id == update.match_id:
            match.set_slot(update.slot_name, Occupied(update.participant_id))
            return match
    raise KeyError(f"Match {update.match_id} not found")


def find_feeder_match(match: Match, slot_name: SlotName, matches: list[Match]) -> Optional[Match]:
    """Find the knockout match whose winner fills ``slot_name`` of ``match``.

    None for the first knockout round.
    """
    offset = 1 if slot_name == SlotName.PARTICIPANT1 else 0
    feeder_round = match.round - 1
    feeder_number = 2 * match.match_number - offset
    for candidate in matches:
        if (
            candidate.tournament_id == match.tournament_id
            and candidate.stage == MatchStage.KNOCKOUT
            and candidate.round == feeder_round
            and candidate.match_number == feeder_number
        ):
            return candidate
    return None


def can_slot_be_filled(match: Match, slot_name: SlotName, matches: list[Match]) -> bool:
    """Whether a participant can still arrive in an empty slot of ``match``.

    A slot stays empty for good when nothing feeds it, when its feeder is
    already completed, or when no participant can reach the feeder either.
    """
    feeder = find_feeder_match(match, slot_name, matches)
    if feeder is None or feeder.is_completed:
        return False
    if feeder.participant_ids:
        return True
    return any(
        can_slot_be_filled(feeder, feeder_slot, matches)
        for feeder_slot in (SlotName.PARTICIPANT1, SlotName.PARTICIPANT2)
    )

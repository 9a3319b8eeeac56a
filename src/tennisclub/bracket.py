"""Single elimination bracket generator."""

import logging
import math
from typing import Optional, Sequence

from tennisclub.advancement import find_next_match, next_match_address
from tennisclub.i18n import DEFAULT_LANGUAGE, get_string
from tennisclub.models import (
    BYE_SCORE,
    EMPTY,
    ByePolicy,
    Match,
    MatchStage,
    MatchStatus,
    Occupied,
    Participant,
    Slot,
    SlotName,
    slot_to_id,
)
from tennisclub.validation import validate_bye

logger = logging.getLogger(__name__)

Pairing = tuple[Slot, Slot]


def next_power_of_2(n: int) -> int:
    """Return the next power of 2 >= n.

    Examples:
        >>> next_power_of_2(5)
        8
        >>> next_power_of_2(8)
        8
        >>> next_power_of_2(15)
        16
    """
    if n <= 0:
        return 1
    return 2 ** math.ceil(math.log2(n))


def count_rounds(n: int) -> int:
    """Number of rounds needed for a bracket with n entrants."""
    if n < 2:
        return 0
    return math.ceil(math.log2(n))


def sort_by_seed(participants: list[Participant]) -> list[Participant]:
    """Order participants by seed (1 first); unseeded keep their order at the end."""
    return sorted(participants, key=lambda p: (p.seed is None, p.seed or 0))


def seeded_first_round_pairings(participants: list[Participant]) -> list[Pairing]:
    """Standard draw: slot i meets slot bracket_size - 1 - i.

    Participants must already be in seed order. Missing positions are padded
    with empty slots, so the top seeds receive the byes.

    For 5 participants (bracket of 8):
        1 vs bye, 2 vs bye, 3 vs bye, 4 vs 5
    """
    bracket_size = next_power_of_2(len(participants))
    slots: list[Slot] = [Occupied(p.id) for p in participants]
    slots.extend([EMPTY] * (bracket_size - len(participants)))

    return [(slots[i], slots[bracket_size - 1 - i]) for i in range(bracket_size // 2)]


def _validate_pairings(pairings: list[Pairing]) -> None:
    count = len(pairings)
    if count < 1 or count & (count - 1):
        raise ValueError(f"Number of first-round pairings must be a power of 2, got {count}")

    seen = set()
    for slot1, slot2 in pairings:
        for slot in (slot1, slot2):
            if isinstance(slot, Occupied):
                if slot.participant_id in seen:
                    raise ValueError(f"Participant {slot.participant_id} appears twice in the draw")
                seen.add(slot.participant_id)


def generate_single_elimination_matches(
    tournament_id: str,
    participants: list[Participant],
    pairings: Optional[list[Pairing]] = None,
    start_round: int = 1,
    bye_policy: ByePolicy = ByePolicy.CONFIRM,
) -> list[Match]:
    """Generate a single elimination bracket.

    First-round matches come from the seeded draw, or from ``pairings`` when
    an operator built the draw by hand. Every later round is created as empty
    placeholder matches that advancement fills in.

    Args:
        tournament_id: Tournament the matches belong to
        participants: Participants sorted by seed (ignored when pairings given)
        pairings: Optional manual first-round draw
        start_round: Round number of the first round
        bye_policy: Whether bye matches stay pending or are completed at once

    Returns:
        List of unsaved knockout Match objects (bracket_size - 1 of them)

    Raises:
        ValueError: If manual pairings are not a power of 2 or repeat a participant
    """
    if pairings is None:
        if len(participants) < 2:
            return []
        pairings = seeded_first_round_pairings(participants)
    else:
        _validate_pairings(pairings)

    first_round_count = len(pairings)
    rounds = count_rounds(first_round_count * 2)

    matches = []
    for match_number, (slot1, slot2) in enumerate(pairings, start=1):
        matches.append(
            Match(
                tournament_id=tournament_id,
                round=start_round,
                match_number=match_number,
                stage=MatchStage.KNOCKOUT,
                participant1_id=slot_to_id(slot1),
                participant2_id=slot_to_id(slot2),
            )
        )

    # Placeholder rounds, halving down to the final
    matches_in_round = first_round_count // 2
    for round_num in range(start_round + 1, start_round + rounds):
        for i in range(matches_in_round):
            matches.append(
                Match(
                    tournament_id=tournament_id,
                    round=round_num,
                    match_number=i + 1,
                    stage=MatchStage.KNOCKOUT,
                )
            )
        matches_in_round //= 2

    if bye_policy == ByePolicy.AUTO_ADVANCE:
        _auto_advance_byes(matches, start_round)

    return matches


def resolve_bye(match: Match, matches: Sequence[Match] = ()) -> Match:
    """Complete a bye match in place: the lone participant wins.

    Args:
        match: Match with exactly one participant
        matches: The other matches of the tournament, used to check that no
            opponent can still arrive in the empty slot

    Raises:
        ValueError: If the match is not a bye match or still waits for an opponent
    """
    is_valid, error_msg = validate_bye(match, list(matches))
    if not is_valid:
        raise ValueError(error_msg)

    match.winner_id = match.lone_participant_id
    match.score = BYE_SCORE
    match.status = MatchStatus.COMPLETED
    return match


def _auto_advance_byes(matches: list[Match], start_round: int) -> None:
    """Complete first-round byes and move their winners into round 2."""
    for match in matches:
        if match.round != start_round:
            continue

        if not match.participant_ids:
            logger.warning("First-round match %d has no participants", match.match_number)
            continue

        if not match.is_bye:
            continue

        resolve_bye(match, matches)
        next_match = find_next_match(match, matches)
        if next_match is not None:
            _, _, slot_name = next_match_address(match)
            next_match.set_slot(slot_name, Occupied(match.winner_id))
            logger.debug("Bye: %s advances to round %d", match.winner_id, next_match.round)


def get_round_name(round_index: int, total_rounds: int, lang: str = DEFAULT_LANGUAGE) -> str:
    """Display name for a knockout round.

    Args:
        round_index: 0-based index of the round
        total_rounds: Number of rounds in the bracket

    Returns:
        "Final", "Semifinals", "Quarterfinals" or "Round n" (translated)
    """
    rounds_from_end = total_rounds - round_index
    if rounds_from_end == 1:
        return get_string("tournament.final", lang)
    if rounds_from_end == 2:
        return get_string("tournament.semifinals", lang)
    if rounds_from_end == 3:
        return get_string("tournament.quarterfinals", lang)
    return get_string("tournament.round", lang, number=round_index + 1)


# ============================================================================
# Manual draw
# ============================================================================


class BracketDraft:
    """First-round draw being built by hand.

    Holds an explicit mapping from slot address (match index, slot name) to
    participant id. A participant occupies at most one slot: assigning it
    somewhere removes it from wherever it was before.
    """

    def __init__(self, participant_ids: list[str]):
        if len(participant_ids) < 2:
            raise ValueError("A draw needs at least 2 participants")
        if len(set(participant_ids)) != len(participant_ids):
            raise ValueError("Participant ids must be unique")

        self.participant_ids = list(participant_ids)
        self.bracket_size = next_power_of_2(len(participant_ids))
        self.num_matches = self.bracket_size // 2
        self._slots: dict[tuple[int, SlotName], str] = {}

    def _check_index(self, match_index: int) -> None:
        if not 0 <= match_index < self.num_matches:
            raise IndexError(f"Match index {match_index} outside 0..{self.num_matches - 1}")

    def slot(self, match_index: int, slot_name: SlotName) -> Slot:
        self._check_index(match_index)
        participant_id = self._slots.get((match_index, slot_name))
        return Occupied(participant_id) if participant_id is not None else EMPTY

    def assign(self, match_index: int, slot_name: SlotName, participant_id: str) -> None:
        """Place a participant into a slot, replacing the slot's occupant."""
        self._check_index(match_index)
        if participant_id not in self.participant_ids:
            raise ValueError(f"Unknown participant {participant_id}")

        for address, occupant in list(self._slots.items()):
            if occupant == participant_id:
                del self._slots[address]

        self._slots[(match_index, slot_name)] = participant_id

    def clear_slot(self, match_index: int, slot_name: SlotName) -> None:
        """Turn a slot into a bye."""
        self._check_index(match_index)
        self._slots.pop((match_index, slot_name), None)

    def clear(self) -> None:
        self._slots.clear()

    def unassigned(self) -> list[str]:
        placed = set(self._slots.values())
        return [pid for pid in self.participant_ids if pid not in placed]

    def auto_assign(self) -> None:
        """Fill empty first slots, then empty second slots, with unplaced participants."""
        remaining = self.unassigned()
        for slot_name in (SlotName.PARTICIPANT1, SlotName.PARTICIPANT2):
            for match_index in range(self.num_matches):
                if not remaining:
                    return
                if (match_index, slot_name) not in self._slots:
                    self._slots[(match_index, slot_name)] = remaining.pop(0)

    def can_save(self) -> bool:
        return bool(self._slots)

    def pairings(self) -> list[Pairing]:
        return [
            (self.slot(i, SlotName.PARTICIPANT1), self.slot(i, SlotName.PARTICIPANT2))
            for i in range(self.num_matches)
        ]

"""Tournament workflows on top of storage.

Loads participants and matches, runs the pure engine (generators,
advancement, standings) and persists what it derives. Every write that
touches more than one row happens in a single transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from tennisclub.advancement import advance_winner
from tennisclub.bracket import (
    Pairing,
    generate_single_elimination_matches,
    resolve_bye,
    sort_by_seed,
)
from tennisclub.group_builder import generate_group_knockout_matches, generate_round_robin_matches
from tennisclub.models import (
    ByePolicy,
    GroupStandings,
    Match,
    MatchStage,
    MatchStatus,
    Occupied,
    Participant,
    SlotUpdate,
    Standing,
    Tournament,
    TournamentFormat,
)
from tennisclub.standings import calculate_group_standings, calculate_standings
from tennisclub.storage import (
    MatchRepository,
    ParticipantRepository,
    TournamentRepository,
    to_match,
    to_participant,
    to_tournament,
)
from tennisclub.validation import (
    ValidationError,
    validate_bye,
    validate_match_result,
    validate_participant_count,
    validate_score,
)

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Raised when matches cannot be generated for a tournament."""

    pass


@dataclass
class StandingsReport:
    """Standings of a tournament, shaped by its format.

    Round robin fills ``standings``, group + knockout fills ``groups``,
    single elimination has neither.
    """

    tournament: Tournament
    standings: Optional[list[Standing]] = None
    groups: Optional[list[GroupStandings]] = None
    participants: list[Participant] = field(default_factory=list)


def load_tournament(session, tournament_id: str) -> Tournament:
    tournament_orm = TournamentRepository(session).get_by_id(tournament_id)
    if tournament_orm is None:
        raise SchedulingError(f"Tournament {tournament_id} not found")
    return to_tournament(tournament_orm)


def load_participants(session, tournament_id: str) -> list[Participant]:
    return [to_participant(p) for p in ParticipantRepository(session).get_by_tournament(tournament_id)]


def load_matches(session, tournament_id: str) -> list[Match]:
    return [to_match(m) for m in MatchRepository(session).get_by_tournament(tournament_id)]


def generate_matches(
    session,
    tournament_id: str,
    pairings: Optional[list[Pairing]] = None,
    bye_policy: ByePolicy = ByePolicy.CONFIRM,
) -> list[Match]:
    """(Re)generate the whole schedule of a tournament.

    Existing matches are deleted and the new ones inserted in one
    transaction; nothing is merged.

    Args:
        session: Database session
        tournament_id: Tournament to schedule
        pairings: Manual first-round draw (single elimination only)
        bye_policy: Bye handling for single elimination

    Returns:
        The stored matches

    Raises:
        SchedulingError: Unknown tournament, too few participants, or a
            manual draw that is invalid or names unknown participants
    """
    tournament = load_tournament(session, tournament_id)
    participants = load_participants(session, tournament_id)

    is_valid, error_msg = validate_participant_count(participants)
    if not is_valid:
        raise SchedulingError(error_msg)

    if pairings is not None and tournament.format != TournamentFormat.SINGLE_ELIMINATION:
        raise SchedulingError("A manual draw is only possible for single elimination")

    if pairings is not None:
        known = {p.id for p in participants}
        drawn = [slot.participant_id for pair in pairings for slot in pair if isinstance(slot, Occupied)]
        unknown = [pid for pid in drawn if pid not in known]
        if unknown:
            raise SchedulingError(f"Unknown participants: {', '.join(unknown)}")

    if tournament.format == TournamentFormat.ROUND_ROBIN:
        matches = generate_round_robin_matches(tournament_id, participants)
    elif tournament.format == TournamentFormat.SINGLE_ELIMINATION:
        try:
            matches = generate_single_elimination_matches(
                tournament_id,
                sort_by_seed(participants),
                pairings=pairings,
                bye_policy=bye_policy,
            )
        except ValueError as e:
            raise SchedulingError(str(e))
    else:
        matches = generate_group_knockout_matches(
            tournament_id, participants, tournament.settings.groups_count
        )

    stored = MatchRepository(session).replace_matches(tournament_id, matches)
    logger.info("Generated %d matches for tournament %s (%s)", len(stored), tournament.name, tournament.format.value)
    return [to_match(m) for m in stored]


def generate_knockout_stage(
    session,
    tournament_id: str,
    participant_ids: list[str],
    bye_policy: ByePolicy = ByePolicy.CONFIRM,
) -> list[Match]:
    """Build the knockout stage of a group + knockout tournament.

    The caller picks the qualifiers from the group standings and passes them
    in seed order. Only knockout matches are replaced; group matches stay.

    Raises:
        SchedulingError: Wrong format, unknown participants or fewer than 2
    """
    tournament = load_tournament(session, tournament_id)
    if tournament.format != TournamentFormat.GROUP_KNOCKOUT:
        raise SchedulingError("Knockout stage can only be built for group + knockout tournaments")

    by_id = {p.id: p for p in load_participants(session, tournament_id)}
    unknown = [pid for pid in participant_ids if pid not in by_id]
    if unknown:
        raise SchedulingError(f"Unknown participants: {', '.join(unknown)}")

    qualifiers = [by_id[pid] for pid in participant_ids]
    is_valid, error_msg = validate_participant_count(qualifiers)
    if not is_valid:
        raise SchedulingError(error_msg)

    matches = generate_single_elimination_matches(tournament_id, qualifiers, bye_policy=bye_policy)
    stored = MatchRepository(session).replace_matches(tournament_id, matches, stage=MatchStage.KNOCKOUT)
    logger.info("Built knockout stage with %d matches for tournament %s", len(stored), tournament.name)
    return [to_match(m) for m in stored]


def record_result(
    session,
    tournament_id: str,
    match_id: str,
    score: str,
    winner_id: str,
    sets_to_win: Optional[int] = None,
) -> Optional[SlotUpdate]:
    """Store a match result and advance the winner.

    Args:
        session: Database session
        tournament_id: Tournament of the match
        match_id: Match being reported
        score: Score string, e.g. "6-4, 3-6, 7-5"
        winner_id: Winning participant
        sets_to_win: When given, the score is checked strictly against it

    Returns:
        The slot update written for the next round, or None

    Raises:
        ValidationError: Unknown match, invalid result, or a one-sided match
            whose opponent is still to be decided
    """
    match_repo = MatchRepository(session)
    match_orm = match_repo.get_by_id(match_id)
    if match_orm is None or match_orm.tournament_id != tournament_id:
        raise ValidationError(f"Match {match_id} not found")

    match = to_match(match_orm)
    is_valid, error_msg = validate_match_result(match, score, winner_id)
    if not is_valid:
        raise ValidationError(error_msg)

    if match.is_bye:
        is_valid, error_msg = validate_bye(match, load_matches(session, tournament_id))
        if not is_valid:
            raise ValidationError(error_msg)

    if sets_to_win is not None and not match.is_bye:
        winner_side = 1 if winner_id == match.participant1_id else 2
        is_valid, error_msg = validate_score(score, sets_to_win, winner_side)
        if not is_valid:
            raise ValidationError(error_msg)

    return _complete_match(session, tournament_id, match, score.strip(), winner_id)


def confirm_bye(session, tournament_id: str, match_id: str) -> Optional[SlotUpdate]:
    """Confirm a bye match: its lone participant wins and moves on.

    Raises:
        ValidationError: Unknown match, not a bye match, or an opponent can
            still arrive in the empty slot
    """
    match_orm = MatchRepository(session).get_by_id(match_id)
    if match_orm is None or match_orm.tournament_id != tournament_id:
        raise ValidationError(f"Match {match_id} not found")

    match = to_match(match_orm)
    try:
        resolve_bye(match, load_matches(session, tournament_id))
    except ValueError as e:
        raise ValidationError(str(e))

    return _complete_match(session, tournament_id, match, match.score, match.winner_id)


def _complete_match(session, tournament_id: str, match: Match, score: str, winner_id: str) -> Optional[SlotUpdate]:
    # Round robin matches carry the knockout stage but never feed another round
    is_bracket = load_tournament(session, tournament_id).format != TournamentFormat.ROUND_ROBIN
    match_repo = MatchRepository(session)
    update = None
    try:
        match_repo.update_result(match.id, score, winner_id, commit=False)
        match.score = score
        match.winner_id = winner_id
        match.status = MatchStatus.COMPLETED

        if is_bracket:
            update = advance_winner(tournament_id, match, load_matches(session, tournament_id))
        if update is not None:
            match_repo.apply_slot_update(update, commit=False)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Match %s completed (%s), winner %s%s",
        match.id,
        score,
        winner_id,
        f", advanced to {update.match_id}" if update else "",
    )
    return update


def schedule_match(session, match_id: str, scheduled_date: Optional[date]) -> bool:
    """Set or clear the planned date of a match."""
    return MatchRepository(session).update_schedule(match_id, scheduled_date)


def get_standings(session, tournament_id: str) -> StandingsReport:
    """Compute standings for display, according to the tournament format."""
    tournament = load_tournament(session, tournament_id)
    participants = load_participants(session, tournament_id)
    matches = load_matches(session, tournament_id)

    report = StandingsReport(tournament=tournament, participants=participants)
    if tournament.format == TournamentFormat.ROUND_ROBIN:
        report.standings = calculate_standings(participants, matches)
    elif tournament.format == TournamentFormat.GROUP_KNOCKOUT:
        report.groups = calculate_group_standings(participants, matches)

    return report

"""Tests for tournament workflows against a temporary database."""

from datetime import date
from unittest.mock import patch

import pytest

from tennisclub.models import (
    BYE_SCORE,
    EMPTY,
    ByePolicy,
    MatchStage,
    MatchStatus,
    Occupied,
    SlotName,
    TournamentFormat,
    TournamentSettings,
)
from tennisclub.tournament_service import (
    SchedulingError,
    confirm_bye,
    generate_knockout_stage,
    generate_matches,
    get_standings,
    load_matches,
    record_result,
    schedule_match,
)
from tennisclub.validation import ValidationError


def find(matches, round, match_number, stage=MatchStage.KNOCKOUT):
    return next(m for m in matches if m.stage == stage and m.round == round and m.match_number == match_number)


class TestGenerateMatches:
    """Schedule (re)generation per format."""

    def test_round_robin(self, session, round_robin):
        tournament_id, _ = round_robin
        matches = generate_matches(session, tournament_id)

        assert len(matches) == 6
        assert all(m.id is not None for m in matches)
        assert len(load_matches(session, tournament_id)) == 6

    def test_regeneration_replaces_everything(self, session, round_robin):
        tournament_id, ids = round_robin
        matches = generate_matches(session, tournament_id)
        record_result(session, tournament_id, matches[0].id, "6-4, 6-4", matches[0].participant1_id)

        regenerated = generate_matches(session, tournament_id)

        stored = load_matches(session, tournament_id)
        assert len(stored) == 6
        assert {m.id for m in stored} == {m.id for m in regenerated}
        assert all(m.status == MatchStatus.PENDING for m in stored)

    def test_single_elimination_uses_seeds(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 5)
        matches = generate_matches(session, tournament_id)

        assert len(matches) == 7
        assert find(matches, 1, 1).participant_ids == [ids[0]]
        assert find(matches, 1, 4).participant_ids == [ids[3], ids[4]]

    def test_manual_draw(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 3)
        pairings = [(Occupied(ids[2]), Occupied(ids[0])), (EMPTY, Occupied(ids[1]))]

        matches = generate_matches(session, tournament_id, pairings=pairings)

        assert find(matches, 1, 1).participant_ids == [ids[2], ids[0]]
        assert find(matches, 1, 2).participant2_id == ids[1]

    def test_manual_draw_only_for_single_elimination(self, session, round_robin):
        tournament_id, ids = round_robin
        with pytest.raises(SchedulingError, match="manual draw"):
            generate_matches(session, tournament_id, pairings=[(Occupied(ids[0]), Occupied(ids[1]))])

    def test_manual_draw_rejects_unknown_participant(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 2)
        pairings = [(Occupied("ghost"), Occupied(ids[0]))]

        with pytest.raises(SchedulingError, match="Unknown participants: ghost"):
            generate_matches(session, tournament_id, pairings=pairings)
        assert load_matches(session, tournament_id) == []

    def test_manual_draw_errors_are_scheduling_errors(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 3)
        pairings = [(Occupied(ids[0]), Occupied(ids[1])), (Occupied(ids[0]), Occupied(ids[2])), (EMPTY, EMPTY)]

        with pytest.raises(SchedulingError, match="power of 2"):
            generate_matches(session, tournament_id, pairings=pairings)
        with pytest.raises(SchedulingError, match="twice"):
            generate_matches(session, tournament_id, pairings=pairings[:2])

    def test_too_few_participants(self, session, make_tournament):
        tournament_id, _ = make_tournament(TournamentFormat.ROUND_ROBIN, 1)
        with pytest.raises(SchedulingError, match="at least 2"):
            generate_matches(session, tournament_id)
        assert load_matches(session, tournament_id) == []

    def test_unknown_tournament(self, session):
        with pytest.raises(SchedulingError, match="not found"):
            generate_matches(session, "missing")

    def test_failed_insert_keeps_old_matches(self, session, round_robin):
        tournament_id, _ = round_robin
        generate_matches(session, tournament_id)

        with patch("tennisclub.storage.MatchRepository._to_orm", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                generate_matches(session, tournament_id)

        assert len(load_matches(session, tournament_id)) == 6


class TestResults:
    """Result entry and winner advancement."""

    def test_result_advances_winner(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 4)
        matches = generate_matches(session, tournament_id)
        semi = find(matches, 1, 2)

        update = record_result(session, tournament_id, semi.id, "6-4, 3-6, 7-5", ids[2])

        final = find(load_matches(session, tournament_id), 2, 1)
        assert update.match_id == final.id
        assert update.slot_name == SlotName.PARTICIPANT2
        assert final.participant2_id == ids[2]
        assert final.participant1_id is None

        stored_semi = find(load_matches(session, tournament_id), 1, 2)
        assert stored_semi.status == MatchStatus.COMPLETED
        assert stored_semi.score == "6-4, 3-6, 7-5"

    def test_final_result_has_no_update(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 2)
        (final,) = generate_matches(session, tournament_id)

        assert record_result(session, tournament_id, final.id, "6-0, 6-0", ids[1]) is None
        assert load_matches(session, tournament_id)[0].winner_id == ids[1]

    def test_group_result_does_not_advance(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.GROUP_KNOCKOUT, 4, groups=[1, 1, 2, 2])
        matches = generate_matches(session, tournament_id)
        group_match = matches[0]

        update = record_result(session, tournament_id, group_match.id, "6-1, 6-1", group_match.participant1_id)
        assert update is None

    def test_round_robin_result_does_not_advance(self, session, round_robin):
        tournament_id, _ = round_robin
        matches = generate_matches(session, tournament_id)
        before = [(m.participant1_id, m.participant2_id) for m in matches]

        update = record_result(session, tournament_id, matches[0].id, "6-4, 6-4", matches[0].participant1_id)

        assert update is None
        assert [(m.participant1_id, m.participant2_id) for m in load_matches(session, tournament_id)] == before

    def test_invalid_winner(self, session, round_robin):
        tournament_id, _ = round_robin
        match = generate_matches(session, tournament_id)[0]
        outsider = next(m for m in load_matches(session, tournament_id) if match.participant1_id not in m.participant_ids)

        with pytest.raises(ValidationError, match="Winner must be"):
            record_result(session, tournament_id, match.id, "6-4, 6-4", outsider.participant1_id)

    def test_unknown_match(self, session, round_robin):
        tournament_id, _ = round_robin
        with pytest.raises(ValidationError, match="not found"):
            record_result(session, tournament_id, "missing", "6-4, 6-4", "x")

    def test_match_of_other_tournament(self, session, make_tournament):
        first_id, _ = make_tournament(TournamentFormat.ROUND_ROBIN, 2)
        second_id, _ = make_tournament(TournamentFormat.ROUND_ROBIN, 2)
        (match,) = generate_matches(session, first_id)

        with pytest.raises(ValidationError, match="not found"):
            record_result(session, second_id, match.id, "6-4, 6-4", match.participant1_id)

    def test_strict_score_check(self, session, round_robin):
        tournament_id, _ = round_robin
        match = generate_matches(session, tournament_id)[0]

        with pytest.raises(ValidationError, match="does not match the reported winner"):
            record_result(session, tournament_id, match.id, "6-4, 6-4", match.participant2_id, sets_to_win=2)

        # Lenient without sets_to_win
        record_result(session, tournament_id, match.id, "6-4, 6-4", match.participant2_id)

    def test_confirm_bye(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 3)
        matches = generate_matches(session, tournament_id)
        bye = find(matches, 1, 1)

        update = confirm_bye(session, tournament_id, bye.id)

        stored = load_matches(session, tournament_id)
        assert find(stored, 1, 1).score == BYE_SCORE
        assert find(stored, 1, 1).winner_id == ids[0]
        assert find(stored, 2, 1).participant1_id == ids[0]
        assert update.participant_id == ids[0]

    def test_confirm_bye_rejects_full_match(self, session, make_tournament):
        tournament_id, _ = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 3)
        full = find(generate_matches(session, tournament_id), 1, 2)

        with pytest.raises(ValidationError, match="not a bye"):
            confirm_bye(session, tournament_id, full.id)

    def test_confirm_bye_waits_for_pending_feeder(self, session, make_tournament):
        """The final is not a bye while the other semifinal is still open."""
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 4)
        matches = generate_matches(session, tournament_id)
        first_semi, second_semi = find(matches, 1, 1), find(matches, 1, 2)
        record_result(session, tournament_id, first_semi.id, "6-1, 6-1", first_semi.participant1_id)

        final = find(load_matches(session, tournament_id), 2, 1)
        assert final.participant_ids == [first_semi.participant1_id]
        with pytest.raises(ValidationError, match="waiting for an opponent"):
            confirm_bye(session, tournament_id, final.id)
        with pytest.raises(ValidationError, match="waiting for an opponent"):
            record_result(session, tournament_id, final.id, "6-0, 6-0", first_semi.participant1_id)

        final = find(load_matches(session, tournament_id), 2, 1)
        assert final.status == MatchStatus.PENDING
        assert final.winner_id is None

        record_result(session, tournament_id, second_semi.id, "6-2, 6-2", second_semi.participant2_id)
        final = find(load_matches(session, tournament_id), 2, 1)
        assert final.participant_ids == [first_semi.participant1_id, second_semi.participant2_id]
        assert final.status == MatchStatus.PENDING

    def test_confirm_bye_when_feeder_is_empty(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 2)
        pairings = [(Occupied(ids[0]), Occupied(ids[1])), (EMPTY, EMPTY)]
        matches = generate_matches(session, tournament_id, pairings=pairings)
        record_result(session, tournament_id, find(matches, 1, 1).id, "7-5, 6-3", ids[1])

        final = find(load_matches(session, tournament_id), 2, 1)
        assert confirm_bye(session, tournament_id, final.id) is None

        final = find(load_matches(session, tournament_id), 2, 1)
        assert final.winner_id == ids[1]
        assert final.score == BYE_SCORE

    def test_auto_advance_policy(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 5)
        generate_matches(session, tournament_id, bye_policy=ByePolicy.AUTO_ADVANCE)

        stored = load_matches(session, tournament_id)
        assert find(stored, 2, 1).participant_ids == [ids[0], ids[1]]
        assert find(stored, 2, 2).participant_ids == [ids[2]]
        assert find(stored, 1, 4).status == MatchStatus.PENDING

    def test_schedule_match(self, session, round_robin):
        tournament_id, _ = round_robin
        match = generate_matches(session, tournament_id)[0]

        assert schedule_match(session, match.id, date(2026, 6, 1))
        assert load_matches(session, tournament_id)[0].scheduled_date == date(2026, 6, 1)
        assert not schedule_match(session, "missing", None)


class TestGroupKnockout:
    """Group stage followed by a knockout stage."""

    def test_full_flow(self, session, make_tournament):
        groups = [1, 1, 1, 2, 2, 2]
        tournament_id, ids = make_tournament(TournamentFormat.GROUP_KNOCKOUT, 6, groups=groups)
        matches = generate_matches(session, tournament_id)

        assert len(matches) == 6
        assert all(m.stage == MatchStage.GROUP for m in matches)

        # Lower seed number wins every group match
        for match in matches:
            winner = min(match.participant_ids, key=ids.index)
            record_result(session, tournament_id, match.id, "6-3, 6-3", winner)

        report = get_standings(session, tournament_id)
        assert report.standings is None
        assert [g.group_number for g in report.groups] == [1, 2]
        group1, group2 = (g.standings for g in report.groups)
        assert [s.participant_id for s in group1] == ids[:3]
        assert [s.participant_id for s in group2] == ids[3:]

        # Group winners first, so the draw pairs A1-B2 and B1-A2
        qualifiers = [s.participant_id for s in (group1[0], group2[0], group1[1], group2[1])]
        knockout = generate_knockout_stage(session, tournament_id, qualifiers)

        assert len(knockout) == 3
        stored = load_matches(session, tournament_id)
        assert len([m for m in stored if m.stage == MatchStage.GROUP]) == 6
        assert find(stored, 1, 1).participant_ids == [ids[0], ids[4]]
        assert find(stored, 1, 2).participant_ids == [ids[3], ids[1]]

        # Knockout results leave the group tables untouched
        record_result(session, tournament_id, find(stored, 1, 1).id, "6-0, 6-0", ids[0])
        assert get_standings(session, tournament_id).groups[0].standings[0].played == 2

    def test_knockout_stage_needs_group_format(self, session, round_robin):
        tournament_id, ids = round_robin
        with pytest.raises(SchedulingError, match="group \\+ knockout"):
            generate_knockout_stage(session, tournament_id, ids)

    def test_knockout_stage_unknown_participant(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.GROUP_KNOCKOUT, 4, groups=[1, 1, 2, 2])
        with pytest.raises(SchedulingError, match="Unknown participants"):
            generate_knockout_stage(session, tournament_id, [ids[0], "ghost"])

    def test_knockout_stage_needs_two(self, session, make_tournament):
        tournament_id, ids = make_tournament(TournamentFormat.GROUP_KNOCKOUT, 4, groups=[1, 1, 2, 2])
        with pytest.raises(SchedulingError, match="at least 2"):
            generate_knockout_stage(session, tournament_id, ids[:1])

    def test_groups_count_from_settings(self, session, make_tournament, caplog):
        tournament_id, _ = make_tournament(
            TournamentFormat.GROUP_KNOCKOUT, 4, groups=[1, 1, 3, 3], settings=TournamentSettings(groups_count=2)
        )
        matches = generate_matches(session, tournament_id)

        assert {m.group_number for m in matches} == {1, 3}
        assert "outside the configured" in caplog.text


class TestStandingsReport:
    """Format-dependent standings."""

    def test_round_robin_whole_field(self, session, round_robin):
        tournament_id, ids = round_robin
        match = generate_matches(session, tournament_id)[0]
        record_result(session, tournament_id, match.id, "6-4, 3-6, 7-5", match.participant1_id)

        report = get_standings(session, tournament_id)
        assert report.groups is None
        assert len(report.standings) == 4
        leader = report.standings[0]
        assert leader.participant_id == match.participant1_id
        assert (leader.points, leader.games_won, leader.games_lost) == (3, 16, 15)

    def test_single_elimination_has_none(self, session, make_tournament):
        tournament_id, _ = make_tournament(TournamentFormat.SINGLE_ELIMINATION, 4)
        report = get_standings(session, tournament_id)

        assert report.standings is None
        assert report.groups is None
        assert len(report.participants) == 4

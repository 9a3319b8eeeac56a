"""Tests for scheduling and result validation rules."""

import pytest

from tennisclub.models import Match, MatchStage, Participant
from tennisclub.validation import (
    validate_bye,
    validate_match_result,
    validate_participant_count,
    validate_score,
)


@pytest.fixture
def match():
    return Match(
        tournament_id="t1", round=1, match_number=1, stage=MatchStage.KNOCKOUT,
        participant1_id="a", participant2_id="b",
    )


class TestParticipantCount:
    """Minimum field size."""

    def test_two_is_enough(self):
        assert validate_participant_count([Participant(id="a"), Participant(id="b")]) == (True, "")

    def test_one_is_not(self):
        is_valid, msg = validate_participant_count([Participant(id="a")])
        assert is_valid is False
        assert "at least 2" in msg
        assert "current: 1" in msg


class TestValidateMatchResult:
    """Reported result checks."""

    def test_valid(self, match):
        assert validate_match_result(match, "6-4, 6-4", "a") == (True, "")

    def test_missing_score_or_winner(self, match):
        assert validate_match_result(match, "", "a") == (False, "Score and winner are required")
        assert validate_match_result(match, "   ", "a") == (False, "Score and winner are required")
        assert validate_match_result(match, "6-4, 6-4", None) == (False, "Score and winner are required")

    def test_winner_must_play_in_match(self, match):
        is_valid, msg = validate_match_result(match, "6-4, 6-4", "c")
        assert is_valid is False
        assert msg == "Winner must be a participant in this match"

    def test_bye_match_winner_is_lone_participant(self):
        bye = Match(tournament_id="t1", round=1, match_number=1, stage=MatchStage.KNOCKOUT, participant1_id="a")
        assert validate_match_result(bye, "Freilos", "a") == (True, "")
        assert validate_match_result(bye, "Freilos", None)[0] is False


class TestValidateBye:
    """A one-sided match is a bye only when no opponent can arrive."""

    def test_first_round(self):
        bye = Match(tournament_id="t1", round=1, match_number=2, stage=MatchStage.KNOCKOUT, participant2_id="a")
        assert validate_bye(bye, [bye]) == (True, "")

    def test_pending_feeder(self, match):
        waiting = Match(tournament_id="t1", round=2, match_number=1, stage=MatchStage.KNOCKOUT, participant2_id="c")
        is_valid, msg = validate_bye(waiting, [match, waiting])
        assert is_valid is False
        assert "waiting for an opponent" in msg

    def test_full_match(self, match):
        is_valid, msg = validate_bye(match, [match])
        assert is_valid is False
        assert "not a bye match" in msg

class TestValidateScore:
    """Strict score checks."""

    def test_valid_scores(self):
        assert validate_score("6-4, 6-3") == (True, "")
        assert validate_score("6-4, 3-6, 7-5", sets_to_win=2, winner_side=1) == (True, "")
        assert validate_score("4-6, 6-3, 5-7", winner_side=2) == (True, "")
        assert validate_score("6-4", sets_to_win=1) == (True, "")
        assert validate_score("6-4, 4-6, 6-4, 4-6, 6-4", sets_to_win=3) == (True, "")

    def test_tied_set(self):
        assert validate_score("6-4, 6-6") == (False, "Set 2: a set cannot be tied")

    def test_unparseable_set(self):
        is_valid, msg = validate_score("6-4, x-3")
        assert is_valid is False
        assert "Set 2" in msg
        assert "not a valid set score" in msg

    def test_too_many_sets(self):
        is_valid, msg = validate_score("6-4, 4-6, 6-4, 4-6")
        assert is_valid is False
        assert "best of 3" in msg

    def test_sets_after_decision(self):
        assert validate_score("6-4, 6-4, 4-6") == (False, "The score has sets after the match was decided")

    def test_incomplete(self):
        is_valid, msg = validate_score("6-4, 4-6")
        assert is_valid is False
        assert "Incomplete match" in msg

    def test_winner_mismatch(self):
        assert validate_score("6-4, 6-4", winner_side=2) == (False, "The score does not match the reported winner")

    def test_empty(self):
        assert validate_score("") == (False, "The score must contain at least one set")

    def test_invalid_sets_to_win(self):
        assert validate_score("6-4", sets_to_win=0)[0] is False

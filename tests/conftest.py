"""Shared fixtures: temporary SQLite databases and sample tournaments."""

import pytest

from tennisclub.models import Participant, TournamentFormat, TournamentSettings, TournamentType
from tennisclub.storage import DatabaseManager, ParticipantRepository, TournamentRepository


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(str(tmp_path / "tennisclub.sqlite"))
    manager.create_tables()
    return manager


@pytest.fixture
def session(db):
    session = db.get_session()
    yield session
    session.close()


@pytest.fixture
def make_tournament(session):
    """Create a tournament with n seeded participants, returns (tournament_id, participant_ids)."""

    def _make(format, n, groups=None, settings=None):
        tournament = TournamentRepository(session).create(
            "Club Championship", TournamentType.SINGLES, format, settings or TournamentSettings()
        )
        repo = ParticipantRepository(session)
        ids = []
        for i in range(1, n + 1):
            participant = Participant(
                id="",
                first_name=f"Player{i}",
                last_name="Test",
                seed=i,
                group_number=groups[i - 1] if groups else None,
            )
            ids.append(repo.create(participant, tournament.id).id)
        return tournament.id, ids

    return _make


@pytest.fixture
def round_robin(make_tournament):
    return make_tournament(TournamentFormat.ROUND_ROBIN, 4)

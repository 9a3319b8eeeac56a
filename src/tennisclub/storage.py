"""SQLite storage layer for tennisclub.

Provides ORM models and repository pattern for data persistence. The
bracket and standings engine never touches this module; callers load
domain objects here, run the engine and write the results back.
"""

import json
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import NullPool

from tennisclub.models import (
    Match,
    MatchStage,
    MatchStatus,
    Participant,
    SlotUpdate,
    Tournament,
    TournamentFormat,
    TournamentSettings,
    TournamentStatus,
    TournamentType,
)

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ORM Models
# ============================================================================


class TournamentORM(Base):
    """Tournament table."""

    __tablename__ = "tournaments"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(200), nullable=False)
    type = Column(String(20), nullable=False)  # singles, doubles
    format = Column(String(30), nullable=False)  # round_robin, single_elimination, group_knockout
    status = Column(String(20), nullable=False, default=TournamentStatus.DRAFT.value)
    # {"groups_count": 2, "advance_per_group": 2, "sets_to_win": 2}
    settings_json = Column(Text, nullable=False, default=lambda: json.dumps(TournamentSettings().to_dict()))
    created_at = Column(DateTime, default=_utcnow)

    # Relationships
    participants = relationship(
        "ParticipantORM", back_populates="tournament", cascade="all, delete-orphan"
    )
    matches = relationship("MatchORM", back_populates="tournament", cascade="all, delete-orphan")

    @property
    def settings(self) -> dict:
        """Get settings from JSON."""
        return json.loads(self.settings_json)

    @settings.setter
    def settings(self, value: dict):
        """Set settings as JSON."""
        self.settings_json = json.dumps(value)


class ParticipantORM(Base):
    """Tournament participant table (a player, or a player + partner)."""

    __tablename__ = "tournament_participants"
    __table_args__ = (UniqueConstraint("tournament_id", "user_id"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    tournament_id = Column(String(36), ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), nullable=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    partner_first_name = Column(String(100), nullable=True)
    partner_last_name = Column(String(100), nullable=True)
    group_number = Column(Integer, nullable=True)
    seed = Column(Integer, nullable=True)  # 1 = best
    created_at = Column(DateTime, default=_utcnow)

    tournament = relationship("TournamentORM", back_populates="participants")


class MatchORM(Base):
    """Tournament match table."""

    __tablename__ = "tournament_matches"

    id = Column(String(36), primary_key=True, default=_new_id)
    tournament_id = Column(String(36), ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False)
    round = Column(Integer, nullable=False)
    match_number = Column(Integer, nullable=False)
    stage = Column(String(10), nullable=False, default=MatchStage.KNOCKOUT.value)
    group_number = Column(Integer, nullable=True)
    # Nullable: bye or not yet decided
    participant1_id = Column(
        String(36), ForeignKey("tournament_participants.id", ondelete="SET NULL"), nullable=True
    )
    participant2_id = Column(
        String(36), ForeignKey("tournament_participants.id", ondelete="SET NULL"), nullable=True
    )
    score = Column(Text, nullable=True)
    winner_id = Column(
        String(36), ForeignKey("tournament_participants.id", ondelete="SET NULL"), nullable=True
    )
    status = Column(String(20), nullable=False, default=MatchStatus.PENDING.value)
    scheduled_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    tournament = relationship("TournamentORM", back_populates="matches")


# ============================================================================
# ORM -> domain conversion
# ============================================================================


def to_tournament(orm: TournamentORM) -> Tournament:
    return Tournament(
        id=orm.id,
        name=orm.name,
        type=TournamentType(orm.type),
        format=TournamentFormat(orm.format),
        status=TournamentStatus(orm.status),
        settings=TournamentSettings.from_dict(orm.settings),
    )


def to_participant(orm: ParticipantORM) -> Participant:
    return Participant(
        id=orm.id,
        first_name=orm.first_name,
        last_name=orm.last_name,
        partner_first_name=orm.partner_first_name,
        partner_last_name=orm.partner_last_name,
        user_id=orm.user_id,
        group_number=orm.group_number,
        seed=orm.seed,
    )


def to_match(orm: MatchORM) -> Match:
    return Match(
        id=orm.id,
        tournament_id=orm.tournament_id,
        round=orm.round,
        match_number=orm.match_number,
        stage=MatchStage(orm.stage),
        group_number=orm.group_number,
        participant1_id=orm.participant1_id,
        participant2_id=orm.participant2_id,
        score=orm.score,
        winner_id=orm.winner_id,
        status=MatchStatus(orm.status),
        scheduled_date=orm.scheduled_date,
    )


# ============================================================================
# Database Manager
# ============================================================================


class DatabaseManager:
    """Manages SQLite database connection and session."""

    def __init__(self, db_path: str = ".tennisclub/tennisclub.sqlite"):
        """Initialize database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Use NullPool for SQLite to avoid connection pool issues
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create all tables in the database."""
        Base.metadata.create_all(self.engine)

    def get_session(self):
        """Get a new database session."""
        return self.SessionLocal()


# ============================================================================
# Repositories
# ============================================================================


class TournamentRepository:
    """Repository for Tournament operations."""

    def __init__(self, session):
        self.session = session

    def create(
        self,
        name: str,
        type: TournamentType,
        format: TournamentFormat,
        settings: Optional[TournamentSettings] = None,
    ) -> TournamentORM:
        """Create a new tournament (status draft)."""
        tournament = TournamentORM(
            name=name,
            type=TournamentType(type).value,
            format=TournamentFormat(format).value,
            status=TournamentStatus.DRAFT.value,
        )
        tournament.settings = (settings or TournamentSettings()).to_dict()
        self.session.add(tournament)
        self.session.commit()
        self.session.refresh(tournament)
        return tournament

    def get_all(self) -> list[TournamentORM]:
        """Get all tournaments, newest first."""
        return self.session.query(TournamentORM).order_by(TournamentORM.created_at.desc()).all()

    def get_by_id(self, tournament_id: str) -> Optional[TournamentORM]:
        """Get tournament by ID."""
        return self.session.query(TournamentORM).filter(TournamentORM.id == tournament_id).first()

    def update_status(self, tournament_id: str, status: TournamentStatus) -> bool:
        """Update tournament status."""
        result = (
            self.session.query(TournamentORM)
            .filter(TournamentORM.id == tournament_id)
            .update({"status": TournamentStatus(status).value})
        )
        self.session.commit()
        return result > 0

    def update_settings(self, tournament_id: str, settings: TournamentSettings) -> bool:
        """Replace tournament settings."""
        tournament = self.get_by_id(tournament_id)
        if tournament is None:
            return False
        tournament.settings = settings.to_dict()
        self.session.commit()
        return True

    def delete(self, tournament_id: str) -> bool:
        """Delete a tournament with its participants and matches."""
        tournament = self.get_by_id(tournament_id)
        if tournament:
            self.session.delete(tournament)
            self.session.commit()
            return True
        return False

    def count_participants(self, tournament_id: str) -> int:
        return (
            self.session.query(ParticipantORM)
            .filter(ParticipantORM.tournament_id == tournament_id)
            .count()
        )


class ParticipantRepository:
    """Repository for Participant operations."""

    def __init__(self, session):
        self.session = session

    def create(self, participant: Participant, tournament_id: str) -> ParticipantORM:
        """Create a new participant.

        Args:
            participant: Participant domain model (its id is ignored)
            tournament_id: Tournament to register for

        Returns:
            Created ParticipantORM with generated ID
        """
        participant_orm = ParticipantORM(
            tournament_id=tournament_id,
            user_id=participant.user_id,
            first_name=participant.first_name,
            last_name=participant.last_name,
            partner_first_name=participant.partner_first_name,
            partner_last_name=participant.partner_last_name,
            group_number=participant.group_number,
            seed=participant.seed,
        )
        self.session.add(participant_orm)
        self.session.commit()
        self.session.refresh(participant_orm)
        return participant_orm

    def get_by_id(self, participant_id: str) -> Optional[ParticipantORM]:
        return (
            self.session.query(ParticipantORM).filter(ParticipantORM.id == participant_id).first()
        )

    def get_by_tournament(self, tournament_id: str) -> list[ParticipantORM]:
        """Get participants ordered by group number, then seed (nulls last)."""
        return (
            self.session.query(ParticipantORM)
            .filter(ParticipantORM.tournament_id == tournament_id)
            .order_by(
                ParticipantORM.group_number.is_(None),
                ParticipantORM.group_number,
                ParticipantORM.seed.is_(None),
                ParticipantORM.seed,
                ParticipantORM.created_at,
            )
            .all()
        )

    def update(
        self,
        participant_id: str,
        group_number: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> bool:
        """Update group number and seed of a participant."""
        participant = self.get_by_id(participant_id)
        if participant is None:
            return False
        participant.group_number = group_number
        participant.seed = seed
        self.session.commit()
        return True

    def delete(self, participant_id: str) -> bool:
        participant = self.get_by_id(participant_id)
        if participant:
            self.session.delete(participant)
            self.session.commit()
            return True
        return False


class MatchRepository:
    """Repository for Match operations."""

    def __init__(self, session):
        self.session = session

    @staticmethod
    def _to_orm(match: Match) -> MatchORM:
        match_orm = MatchORM(
            tournament_id=match.tournament_id,
            round=match.round,
            match_number=match.match_number,
            stage=MatchStage(match.stage).value,
            group_number=match.group_number,
            participant1_id=match.participant1_id,
            participant2_id=match.participant2_id,
            score=match.score,
            winner_id=match.winner_id,
            status=MatchStatus(match.status).value,
            scheduled_date=match.scheduled_date,
        )
        if match.id is not None:
            match_orm.id = match.id
        return match_orm

    def get_by_id(self, match_id: str) -> Optional[MatchORM]:
        return self.session.query(MatchORM).filter(MatchORM.id == match_id).first()

    def get_by_tournament(self, tournament_id: str) -> list[MatchORM]:
        """Get matches ordered by stage, group, round and match number."""
        return (
            self.session.query(MatchORM)
            .filter(MatchORM.tournament_id == tournament_id)
            .order_by(
                MatchORM.stage,
                MatchORM.group_number.is_(None),
                MatchORM.group_number,
                MatchORM.round,
                MatchORM.match_number,
            )
            .all()
        )

    def replace_matches(
        self,
        tournament_id: str,
        matches: list[Match],
        stage: Optional[MatchStage] = None,
    ) -> list[MatchORM]:
        """Delete the tournament's matches and insert new ones in one transaction.

        Args:
            tournament_id: Tournament whose matches are replaced
            matches: New matches (unsaved)
            stage: Only replace matches of this stage, all when None

        Returns:
            Created MatchORM instances
        """
        query = self.session.query(MatchORM).filter(MatchORM.tournament_id == tournament_id)
        if stage is not None:
            query = query.filter(MatchORM.stage == MatchStage(stage).value)

        try:
            query.delete(synchronize_session=False)
            match_orms = [self._to_orm(m) for m in matches]
            self.session.add_all(match_orms)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        for match_orm in match_orms:
            self.session.refresh(match_orm)
        return match_orms

    def update_result(
        self,
        match_id: str,
        score: str,
        winner_id: str,
        status: MatchStatus = MatchStatus.COMPLETED,
        commit: bool = True,
    ) -> Optional[MatchORM]:
        """Store score, winner and status of a match."""
        match = self.get_by_id(match_id)
        if match:
            match.score = score
            match.winner_id = winner_id
            match.status = MatchStatus(status).value
            if commit:
                self.session.commit()
                self.session.refresh(match)
        return match

    def update_schedule(self, match_id: str, scheduled_date: Optional[date]) -> bool:
        match = self.get_by_id(match_id)
        if match is None:
            return False
        match.scheduled_date = scheduled_date
        self.session.commit()
        return True

    def apply_slot_update(self, update: SlotUpdate, commit: bool = True) -> bool:
        """Write one advancement slot update."""
        match = self.get_by_id(update.match_id)
        if match is None:
            return False
        setattr(match, update.slot_name.value, update.participant_id)
        if commit:
            self.session.commit()
        return True

    def delete_by_tournament(self, tournament_id: str) -> int:
        count = (
            self.session.query(MatchORM)
            .filter(MatchORM.tournament_id == tournament_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return count

"""Data models for tennisclub.

Domain model hierarchy:
- Tournament contains Participants and Matches
- Participant is a single player or a player + partner pair (doubles)
- Match holds two participant slots, a score string and a winner
- Standing is derived from matches and never stored
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Union


class TournamentType(str, Enum):
    """Tournament type."""

    SINGLES = "singles"
    DOUBLES = "doubles"


class TournamentFormat(str, Enum):
    """How the schedule of a tournament is built."""

    ROUND_ROBIN = "round_robin"
    SINGLE_ELIMINATION = "single_elimination"
    GROUP_KNOCKOUT = "group_knockout"


class TournamentStatus(str, Enum):
    """Tournament lifecycle status."""

    DRAFT = "draft"
    REGISTRATION = "registration"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MatchStage(str, Enum):
    """Stage a match belongs to."""

    GROUP = "group"
    KNOCKOUT = "knockout"


class MatchStatus(str, Enum):
    """Match status."""

    PENDING = "pending"  # Not yet played
    IN_PROGRESS = "in_progress"  # Currently being played
    COMPLETED = "completed"  # Score and winner recorded


class SlotName(str, Enum):
    """Address of one of the two participant slots of a match."""

    PARTICIPANT1 = "participant1_id"
    PARTICIPANT2 = "participant2_id"


class ByePolicy(str, Enum):
    """What happens to first-round matches that have only one participant."""

    CONFIRM = "confirm"  # Stay pending until an operator confirms the bye
    AUTO_ADVANCE = "auto_advance"  # Completed at creation, winner moved on


# Score stored on matches decided by a bye
BYE_SCORE = "Freilos"


# ============================================================================
# Slots
# ============================================================================


@dataclass(frozen=True)
class Empty:
    """An empty participant slot (bye or not yet decided)."""

    def __str__(self) -> str:
        return "empty"


@dataclass(frozen=True)
class Occupied:
    """A participant slot holding a real participant."""

    participant_id: str

    def __str__(self) -> str:
        return self.participant_id


Slot = Union[Empty, Occupied]

EMPTY = Empty()


def slot_from_id(participant_id: Optional[str]) -> Slot:
    """Build a slot from a nullable participant id."""
    if participant_id is None:
        return EMPTY
    return Occupied(participant_id)


def slot_to_id(slot: Slot) -> Optional[str]:
    """Return the participant id held by a slot, None when empty."""
    if isinstance(slot, Occupied):
        return slot.participant_id
    return None


# ============================================================================
# Core Domain Models
# ============================================================================


@dataclass
class TournamentSettings:
    """Per-tournament settings."""

    groups_count: int = 2
    advance_per_group: int = 2
    sets_to_win: int = 2

    def to_dict(self) -> dict:
        return {
            "groups_count": self.groups_count,
            "advance_per_group": self.advance_per_group,
            "sets_to_win": self.sets_to_win,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TournamentSettings":
        """Build settings from a (possibly partial) dictionary."""
        defaults = cls()
        data = data or {}
        return cls(
            groups_count=data.get("groups_count", defaults.groups_count),
            advance_per_group=data.get("advance_per_group", defaults.advance_per_group),
            sets_to_win=data.get("sets_to_win", defaults.sets_to_win),
        )


@dataclass
class Tournament:
    """A club tournament."""

    id: str
    name: str
    type: TournamentType
    format: TournamentFormat
    status: TournamentStatus = TournamentStatus.DRAFT
    settings: TournamentSettings = field(default_factory=TournamentSettings)

    def __str__(self) -> str:
        return f"{self.name} ({self.type.value}, {self.format.value})"


@dataclass
class Participant:
    """An entrant in a tournament.

    A single player for singles, a player + partner pair for doubles.
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    partner_first_name: Optional[str] = None
    partner_last_name: Optional[str] = None
    user_id: Optional[str] = None
    group_number: Optional[int] = None  # 1..N, group + knockout only
    seed: Optional[int] = None  # 1 = best

    @property
    def is_doubles(self) -> bool:
        return bool(self.partner_first_name)

    @property
    def display_name(self) -> str:
        """Return "First Last", or "First Last / Partner Last" for doubles."""
        name = f"{self.first_name} {self.last_name}".strip()
        if self.partner_first_name:
            partner = f"{self.partner_first_name} {self.partner_last_name or ''}".strip()
            return f"{name} / {partner}"
        return name or "Unknown"

    def __str__(self) -> str:
        seed_str = f"[{self.seed}] " if self.seed else ""
        return f"{seed_str}{self.display_name}"


@dataclass
class SetScore:
    """Games won by each side in one set."""

    games1: int
    games2: int

    @property
    def winner_side(self) -> Optional[int]:
        """Return 1 or 2 for the side with more games, None if tied."""
        if self.games1 > self.games2:
            return 1
        elif self.games2 > self.games1:
            return 2
        return None

    def __str__(self) -> str:
        return f"{self.games1}-{self.games2}"


@dataclass
class Match:
    """One scheduled contest between two participant slots.

    ``id`` stays None until the match has been stored.
    """

    tournament_id: str
    round: int  # 1-based, increasing toward the final
    match_number: int  # 1-based within its round
    stage: MatchStage
    group_number: Optional[int] = None
    participant1_id: Optional[str] = None
    participant2_id: Optional[str] = None
    score: Optional[str] = None
    winner_id: Optional[str] = None
    status: MatchStatus = MatchStatus.PENDING
    scheduled_date: Optional[date] = None
    id: Optional[str] = None

    @property
    def slot1(self) -> Slot:
        return slot_from_id(self.participant1_id)

    @property
    def slot2(self) -> Slot:
        return slot_from_id(self.participant2_id)

    def set_slot(self, slot_name: SlotName, slot: Slot) -> None:
        setattr(self, slot_name.value, slot_to_id(slot))

    @property
    def participant_ids(self) -> list[str]:
        """Ids of the occupied slots, slot order."""
        return [pid for pid in (self.participant1_id, self.participant2_id) if pid is not None]

    @property
    def is_completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    @property
    def is_bye(self) -> bool:
        """Exactly one slot is occupied."""
        return len(self.participant_ids) == 1

    @property
    def lone_participant_id(self) -> Optional[str]:
        """The occupant of a bye match, None otherwise."""
        if self.is_bye:
            return self.participant_ids[0]
        return None

    def __str__(self) -> str:
        p1 = self.participant1_id or "-"
        p2 = self.participant2_id or "-"
        score = self.score or "vs"
        return f"R{self.round} M{self.match_number}: {p1} {score} {p2}"


# ============================================================================
# Result Models
# ============================================================================


@dataclass
class Standing:
    """Derived ranking row for one participant.

    Recomputed from the match list on every request, never stored.
    """

    participant: Participant
    played: int = 0
    won: int = 0
    lost: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    points: int = 0  # 3 per win

    @property
    def participant_id(self) -> str:
        return self.participant.id

    @property
    def set_difference(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def game_difference(self) -> int:
        return self.games_won - self.games_lost

    def __str__(self) -> str:
        return f"{self.participant.display_name}: {self.points}pts {self.won}W-{self.lost}L"


@dataclass
class GroupStandings:
    """Standings of one group of a group + knockout tournament."""

    group_number: int
    standings: list[Standing] = field(default_factory=list)


@dataclass(frozen=True)
class SlotUpdate:
    """Instruction to write a participant into one slot of a stored match."""

    match_id: Optional[str]
    slot_name: SlotName
    participant_id: str

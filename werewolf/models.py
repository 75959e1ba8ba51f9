"""Data models for the Werewolf game."""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from .roles import ActionType, RoleType


class Phase(str, Enum):
    """Game phases."""
    LOBBY = "Lobby"
    NIGHT = "Night"
    DAY = "Day"
    VOTING = "Voting"
    GAME_OVER = "GameOver"


class PlayerStatus(str, Enum):
    """Player status. Alive -> Dead is one-way."""
    ALIVE = "Alive"
    DEAD = "Dead"
    SPECTATING = "Spectating"


class AIDifficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    EXPERT = "Expert"


class EliminationMethod(str, Enum):
    VOTE = "vote"
    WEREWOLF = "werewolf"
    HUNTER = "hunter"
    POISON = "poison"


class EventType(str, Enum):
    DEATH = "death"
    ELIMINATION = "elimination"
    ROLE_REVEAL = "roleReveal"
    INVESTIGATION = "investigation"
    PROTECTION = "protection"
    VOTE = "vote"
    NARRATION = "narration"


AI_PERSONALITIES = ("Aggressive", "Cautious", "Analytical", "Chaotic")


def _enum_or_none(enum_cls, value):
    return enum_cls(value) if value is not None else None


def _value_or_none(value):
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class NightAction:
    """Represents a single night action submission."""
    player_id: str
    role_type: RoleType
    action_type: ActionType
    target_id: Optional[str]  # None means abstain
    timestamp: float
    result: Optional[str] = None  # Seer reading, filled after resolution

    def to_dict(self) -> Dict:
        return {
            "player_id": self.player_id,
            "role_type": self.role_type.value,
            "action_type": self.action_type.value,
            "target_id": self.target_id,
            "timestamp": self.timestamp,
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "NightAction":
        return cls(
            player_id=data["player_id"],
            role_type=RoleType(data["role_type"]),
            action_type=ActionType(data["action_type"]),
            target_id=data.get("target_id"),
            timestamp=data["timestamp"],
            result=data.get("result"),
        )


@dataclass(frozen=True)
class DayVote:
    """Represents a vote cast during the Voting phase."""
    voter_id: str
    target_id: Optional[str]  # None is an explicit skip
    timestamp: float

    def to_dict(self) -> Dict:
        return {
            "voter_id": self.voter_id,
            "target_id": self.target_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DayVote":
        return cls(
            voter_id=data["voter_id"],
            target_id=data.get("target_id"),
            timestamp=data["timestamp"],
        )


@dataclass(frozen=True)
class GameEvent:
    """Append-only log entry. Observational only; rules never read it."""
    id: str
    type: EventType
    phase: Phase
    message: str
    involved_players: Tuple[str, ...] = ()
    is_public: bool = True
    day_number: Optional[int] = None
    night_number: Optional[int] = None
    timestamp: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "phase": self.phase.value,
            "day_number": self.day_number,
            "night_number": self.night_number,
            "message": self.message,
            "involved_players": list(self.involved_players),
            "timestamp": self.timestamp,
            "is_public": self.is_public,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GameEvent":
        return cls(
            id=data["id"],
            type=EventType(data["type"]),
            phase=Phase(data["phase"]),
            message=data["message"],
            involved_players=tuple(data.get("involved_players", [])),
            is_public=data.get("is_public", True),
            day_number=data.get("day_number"),
            night_number=data.get("night_number"),
            timestamp=data.get("timestamp", 0.0),
        )


@dataclass(frozen=True)
class EliminationRecord:
    """One entry per dead player, captured the moment they die."""
    player_id: str
    role: RoleType
    day: int
    method: EliminationMethod

    def to_dict(self) -> Dict:
        return {
            "player_id": self.player_id,
            "role": self.role.value,
            "day": self.day,
            "method": self.method.value,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "EliminationRecord":
        return cls(
            player_id=data["player_id"],
            role=RoleType(data["role"]),
            day=data["day"],
            method=EliminationMethod(data["method"]),
        )


@dataclass(frozen=True)
class InvestigationRecord:
    """A Seer reading, kept for the whole game."""
    seer_id: str
    target_id: str
    result: str
    night: int

    def to_dict(self) -> Dict:
        return {
            "seer_id": self.seer_id,
            "target_id": self.target_id,
            "result": self.result,
            "night": self.night,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "InvestigationRecord":
        return cls(**data)


@dataclass(frozen=True)
class GameSettings:
    """Lobby-level settings carried into the game."""
    min_players: int = 5
    max_players: int = 12
    ai_player_fill: bool = True
    ai_difficulty: AIDifficulty = AIDifficulty.INTERMEDIATE

    # Time limits (seconds)
    night_phase_time: int = 60
    day_discussion_time: int = 180
    voting_phase_time: int = 60

    # Communication
    text_chat_enabled: bool = True
    whisper_enabled: bool = False
    dead_can_speak: bool = False

    # Advanced features
    advanced_roles: bool = False
    suspicion_tracker: bool = True

    # Spectators
    spectator_mode: bool = True
    spectator_delay: int = 30

    def time_limit_for(self, phase: Phase) -> int:
        """Phase time limit in seconds; 0 means no limit."""
        if phase == Phase.NIGHT:
            return self.night_phase_time
        if phase == Phase.DAY:
            return self.day_discussion_time
        if phase == Phase.VOTING:
            return self.voting_phase_time
        if phase == Phase.LOBBY:
            return self.day_discussion_time
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_players": self.min_players,
            "max_players": self.max_players,
            "ai_player_fill": self.ai_player_fill,
            "ai_difficulty": self.ai_difficulty.value,
            "night_phase_time": self.night_phase_time,
            "day_discussion_time": self.day_discussion_time,
            "voting_phase_time": self.voting_phase_time,
            "text_chat_enabled": self.text_chat_enabled,
            "whisper_enabled": self.whisper_enabled,
            "dead_can_speak": self.dead_can_speak,
            "advanced_roles": self.advanced_roles,
            "suspicion_tracker": self.suspicion_tracker,
            "spectator_mode": self.spectator_mode,
            "spectator_delay": self.spectator_delay,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameSettings":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if "ai_difficulty" in known:
            known["ai_difficulty"] = AIDifficulty(known["ai_difficulty"])
        return cls(**known)


@dataclass(frozen=True)
class Player:
    """
    A player in the game.

    Frozen: every change produces a new Player through dataclasses.replace.
    """
    id: str
    name: str
    is_ai: bool = False
    ai_difficulty: Optional[AIDifficulty] = None
    ai_personality: Optional[str] = None
    role: Optional[RoleType] = None
    status: PlayerStatus = PlayerStatus.ALIVE
    voted_for: Optional[str] = None
    suspicion_level: int = 0
    is_host: bool = False
    character_name: Optional[str] = None

    @property
    def is_human(self) -> bool:
        return not self.is_ai

    def is_alive(self) -> bool:
        return self.status == PlayerStatus.ALIVE

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_ai": self.is_ai,
            "ai_difficulty": _value_or_none(self.ai_difficulty),
            "ai_personality": self.ai_personality,
            "role": _value_or_none(self.role),
            "status": self.status.value,
            "voted_for": self.voted_for,
            "suspicion_level": self.suspicion_level,
            "is_host": self.is_host,
            "character_name": self.character_name,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Player":
        return cls(
            id=data["id"],
            name=data["name"],
            is_ai=data.get("is_ai", False),
            ai_difficulty=_enum_or_none(AIDifficulty, data.get("ai_difficulty")),
            ai_personality=data.get("ai_personality"),
            role=_enum_or_none(RoleType, data.get("role")),
            status=PlayerStatus(data.get("status", PlayerStatus.ALIVE.value)),
            voted_for=data.get("voted_for"),
            suspicion_level=data.get("suspicion_level", 0),
            is_host=data.get("is_host", False),
            character_name=data.get("character_name"),
        )

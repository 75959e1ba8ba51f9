"""
Target selection for AI-controlled players.

Heuristic and advisory: the only guarantee is that the chosen target comes
from the role's valid target set, or is None when that set is empty. The
decision is submitted through the same path as human input.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .game_state import GameState
from .models import AIDifficulty, Player
from .roles import ActionType, RoleType
from .rules import DEFAULT_RULES, GameRules, can_witch_use


class DecisionKind(str, Enum):
    NIGHT_ACTION = "nightAction"
    DAY_VOTE = "dayVote"
    HUNTER_SHOT = "hunterShot"


# Base confidence per difficulty tier
TIER_CONFIDENCE: Dict[AIDifficulty, float] = {
    AIDifficulty.BEGINNER: 0.3,
    AIDifficulty.INTERMEDIATE: 0.6,
    AIDifficulty.EXPERT: 0.8,
}

# Expert witches only poison a suspect this suspicious
WITCH_POISON_THRESHOLD = 60


@dataclass(frozen=True)
class AIDecision:
    player_id: str
    decision_kind: DecisionKind
    target_id: Optional[str]
    confidence: float
    reasoning: str
    action_type: Optional[ActionType] = None

    def to_dict(self) -> Dict:
        return {
            "player_id": self.player_id,
            "decision_kind": self.decision_kind.value,
            "target_id": self.target_id,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "action_type": self.action_type.value if self.action_type else None,
        }


# =============================================================================
# SCORING
# =============================================================================

def recent_activity(state: GameState, player_id: str) -> int:
    """Events involving the player during the current and previous day."""
    since = state.day_number - 1
    return sum(
        1 for e in state.events
        if player_id in e.involved_players and (e.day_number or 0) >= since
    )


def _pick_highest(candidates: List[Player], score: Callable[[Player], float],
                  rng: random.Random) -> Player:
    top = max(score(p) for p in candidates)
    tied = [p for p in candidates if score(p) == top]
    return rng.choice(tied)


def pick_target(state: GameState, candidates: List[Player], difficulty: AIDifficulty,
                rng: random.Random) -> Optional[Player]:
    """Tiered choice among already-valid candidates."""
    if not candidates:
        return None
    if difficulty == AIDifficulty.BEGINNER:
        return rng.choice(candidates)
    if difficulty == AIDifficulty.INTERMEDIATE:
        return _pick_highest(candidates, lambda p: p.suspicion_level, rng)
    return _pick_highest(
        candidates, lambda p: p.suspicion_level + recent_activity(state, p.id), rng
    )


# =============================================================================
# VALID TARGET SETS
# =============================================================================

def _others_alive(state: GameState, player: Player) -> List[Player]:
    return [p for p in state.get_alive_players() if p.id != player.id]


def werewolf_targets(state: GameState, player: Player) -> List[Player]:
    """Excludes self and packmates."""
    return [p for p in _others_alive(state, player) if p.role != RoleType.WEREWOLF]


def seer_targets(state: GameState, player: Player) -> List[Player]:
    """Excludes self; prefers players not yet investigated."""
    candidates = _others_alive(state, player)
    seen = {r.target_id for r in state.investigation_log if r.seer_id == player.id}
    fresh = [p for p in candidates if p.id not in seen]
    return fresh or candidates


def doctor_targets(state: GameState, player: Player,
                   rules: GameRules = DEFAULT_RULES) -> List[Player]:
    """Excludes last night's protectee (and self when self-protection is off)."""
    last = state.last_protected.get(player.id)
    candidates = []
    for p in state.get_alive_players():
        if p.id == player.id and not rules.doctor_can_self_protect:
            continue
        if p.id == last and not rules.doctor_can_protect_same_twice:
            continue
        candidates.append(p)
    return candidates


def vote_targets(state: GameState, player: Player) -> List[Player]:
    """Voters skip themselves; werewolves also spare the pack."""
    candidates = _others_alive(state, player)
    if player.role == RoleType.WEREWOLF:
        candidates = [p for p in candidates if p.role != RoleType.WEREWOLF]
    return candidates


# =============================================================================
# DECISIONS
# =============================================================================

def _difficulty(player: Player) -> AIDifficulty:
    return AIDifficulty(player.ai_difficulty or AIDifficulty.BEGINNER)


def _decision(player: Player, kind: DecisionKind, target: Optional[Player],
              difficulty: AIDifficulty, reasoning: str,
              action_type: Optional[ActionType] = None) -> AIDecision:
    if target is None:
        return AIDecision(
            player_id=player.id,
            decision_kind=kind,
            target_id=None,
            confidence=0.0,
            reasoning="No valid targets",
            action_type=action_type,
        )
    return AIDecision(
        player_id=player.id,
        decision_kind=kind,
        target_id=target.id,
        confidence=TIER_CONFIDENCE[difficulty],
        reasoning=reasoning.format(name=target.name),
        action_type=action_type,
    )


def decide_night_action(state: GameState, player: Player, rules: GameRules,
                        rng: random.Random) -> AIDecision:
    difficulty = _difficulty(player)
    kind = DecisionKind.NIGHT_ACTION

    if player.role == RoleType.WEREWOLF:
        target = pick_target(state, werewolf_targets(state, player), difficulty, rng)
        return _decision(player, kind, target, difficulty,
                         "Pack hunts {name}", ActionType.KILL)

    if player.role == RoleType.SEER:
        target = pick_target(state, seer_targets(state, player), difficulty, rng)
        return _decision(player, kind, target, difficulty,
                         "Investigating {name}", ActionType.INVESTIGATE)

    if player.role == RoleType.DOCTOR:
        target = pick_target(state, doctor_targets(state, player, rules), difficulty, rng)
        return _decision(player, kind, target, difficulty,
                         "Protecting {name}", ActionType.PROTECT)

    if player.role == RoleType.WITCH:
        allowed, _ = can_witch_use(rules, player.id, ActionType.POISON, state.used_potions)
        if allowed and difficulty == AIDifficulty.EXPERT:
            suspects = [
                p for p in _others_alive(state, player)
                if p.suspicion_level >= WITCH_POISON_THRESHOLD
            ]
            target = pick_target(state, suspects, difficulty, rng)
            if target is not None:
                return _decision(player, kind, target, difficulty,
                                 "Poisoning prime suspect {name}", ActionType.POISON)
        return AIDecision(
            player_id=player.id,
            decision_kind=kind,
            target_id=None,
            confidence=0.6,
            reasoning="Witch saves potions for critical moments",
        )

    return AIDecision(
        player_id=player.id,
        decision_kind=kind,
        target_id=None,
        confidence=1.0,
        reasoning="No night action available",
    )


def decide(
    state: GameState,
    ai_player: Player,
    decision_kind: DecisionKind,
    rules: GameRules = DEFAULT_RULES,
    rng: random.Random = None,
) -> AIDecision:
    """Choose a target for one AI player at one decision point."""
    rng = rng or random.Random()
    decision_kind = DecisionKind(decision_kind)

    if decision_kind == DecisionKind.NIGHT_ACTION:
        return decide_night_action(state, ai_player, rules, rng)

    difficulty = _difficulty(ai_player)
    target = pick_target(state, vote_targets(state, ai_player), difficulty, rng)
    if decision_kind == DecisionKind.HUNTER_SHOT:
        return _decision(ai_player, decision_kind, target, difficulty,
                         "Taking {name} down too")
    return _decision(ai_player, decision_kind, target, difficulty,
                     "Voting for {name}")

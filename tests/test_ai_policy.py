import random
from dataclasses import replace

import pytest

from conftest import make_state
from werewolf.ai_policy import (
    DecisionKind,
    decide,
    doctor_targets,
    pick_target,
    seer_targets,
    vote_targets,
    werewolf_targets,
)
from werewolf.game_state import kill_player, update_player
from werewolf.models import AIDifficulty, EliminationMethod, InvestigationRecord, Phase
from werewolf.roles import ActionType, RoleType
from werewolf.rules import GameRules


def ids(players):
    return sorted(p.id for p in players)


def as_ai(state, player_id, difficulty=AIDifficulty.BEGINNER):
    return update_player(state, player_id, is_ai=True, ai_difficulty=difficulty)


def test_werewolves_never_target_the_pack(night_state):
    wolf = night_state.get_player_by_id("wolf1")
    assert ids(werewolf_targets(night_state, wolf)) == ["doc", "hunter", "seer", "vil1", "vil2"]


def test_seer_prefers_uninvestigated(night_state):
    state = replace(night_state, investigation_log=(
        InvestigationRecord("seer", "wolf1", "Werewolf", 1),
        InvestigationRecord("seer", "vil1", "Innocent", 1),
    ))
    seer = state.get_player_by_id("seer")
    assert ids(seer_targets(state, seer)) == ["doc", "hunter", "vil2", "wolf2"]


def test_doctor_skips_last_protectee(night_state):
    state = replace(night_state, last_protected={"doc": "vil1"})
    doc = state.get_player_by_id("doc")
    assert "vil1" not in ids(doctor_targets(state, doc))
    assert "doc" in ids(doctor_targets(state, doc))
    no_self = GameRules(doctor_can_self_protect=False)
    assert "doc" not in ids(doctor_targets(state, doc, no_self))


def test_voters_skip_themselves(voting_state):
    vil = voting_state.get_player_by_id("vil1")
    wolf = voting_state.get_player_by_id("wolf1")
    assert "vil1" not in ids(vote_targets(voting_state, vil))
    assert ids(vote_targets(voting_state, wolf)) == ["doc", "hunter", "seer", "vil1", "vil2"]


def test_intermediate_picks_most_suspicious(night_state):
    state = update_player(night_state, "vil2", suspicion_level=60)
    wolf = state.get_player_by_id("wolf1")
    for seed in range(5):
        target = pick_target(state, werewolf_targets(state, wolf), AIDifficulty.INTERMEDIATE,
                             random.Random(seed))
        assert target.id == "vil2"


def test_empty_target_set_gives_none():
    state = make_state({"wolf1": RoleType.WEREWOLF, "wolf2": RoleType.WEREWOLF}, Phase.NIGHT)
    state = as_ai(state, "wolf1")
    decision = decide(state, state.get_player_by_id("wolf1"), DecisionKind.NIGHT_ACTION,
                      rng=random.Random(0))
    assert decision.target_id is None
    assert decision.confidence == 0.0


@pytest.mark.parametrize("difficulty", list(AIDifficulty))
def test_night_decision_targets_are_valid(night_state, difficulty):
    state = as_ai(night_state, "wolf1", difficulty)
    rng = random.Random(7)
    for _ in range(20):
        decision = decide(state, state.get_player_by_id("wolf1"), DecisionKind.NIGHT_ACTION, rng=rng)
        assert decision.action_type == ActionType.KILL
        assert decision.target_id in {"seer", "doc", "hunter", "vil1", "vil2"}


def test_vote_decision_ignores_dead(voting_state):
    state = kill_player(voting_state, "vil2", EliminationMethod.WEREWOLF)
    state = as_ai(state, "vil1")
    rng = random.Random(3)
    for _ in range(20):
        decision = decide(state, state.get_player_by_id("vil1"), DecisionKind.DAY_VOTE, rng=rng)
        assert decision.target_id not in ("vil1", "vil2")


def test_villager_has_no_night_decision(night_state):
    state = as_ai(night_state, "vil1")
    decision = decide(state, state.get_player_by_id("vil1"), "nightAction", rng=random.Random(0))
    assert decision.target_id is None
    assert decision.action_type is None


def test_expert_witch_poisons_prime_suspect():
    state = make_state({
        "wolf1": RoleType.WEREWOLF,
        "witch": RoleType.WITCH,
        "vil1": RoleType.VILLAGER,
        "vil2": RoleType.VILLAGER,
    }, Phase.NIGHT)
    state = as_ai(state, "witch", AIDifficulty.EXPERT)
    state = update_player(state, "wolf1", suspicion_level=80)
    decision = decide(state, state.get_player_by_id("witch"), DecisionKind.NIGHT_ACTION,
                      rng=random.Random(0))
    assert decision.action_type == ActionType.POISON
    assert decision.target_id == "wolf1"

    spent = replace(state, used_potions={"witch": ("poison",)})
    decision = decide(spent, spent.get_player_by_id("witch"), DecisionKind.NIGHT_ACTION,
                      rng=random.Random(0))
    assert decision.target_id is None


def test_hunter_shot_decision(voting_state):
    state = as_ai(voting_state, "hunter", AIDifficulty.INTERMEDIATE)
    state = update_player(state, "wolf2", suspicion_level=100)
    decision = decide(state, state.get_player_by_id("hunter"), DecisionKind.HUNTER_SHOT,
                      rng=random.Random(0))
    assert decision.target_id == "wolf2"
    assert decision.confidence == 0.6

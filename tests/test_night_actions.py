import random

import pytest

from conftest import make_state
from werewolf.errors import InvalidActionError
from werewolf.game_state import kill_player
from werewolf.models import EliminationMethod, Phase
from werewolf.night_actions import (
    night_actions_complete,
    record_investigations,
    remember_night_choices,
    resolve_night_actions,
    submit_night_action,
)
from werewolf.roles import ActionType, RoleType
from werewolf.rules import GameRules, TIE_BREAK_LOWEST_ID


def submit_all(state, actions):
    """actions: iterable of (player_id, target_id[, action_type]); timestamps increase."""
    for ts, action in enumerate(actions, start=1):
        player_id, target_id = action[:2]
        action_type = action[2] if len(action) > 2 else None
        state = submit_night_action(state, player_id, target_id, float(ts), action_type)
    return state


class TestKillResolution:

    def test_unprotected_target_dies(self, night_state):
        state = submit_all(night_state, [("wolf1", "vil1"), ("wolf2", "vil1"), ("doc", "vil2")])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.deaths == ("vil1",)
        assert result.causes["vil1"] == EliminationMethod.WEREWOLF
        assert result.kill_tally == {"vil1": 2}

    def test_protected_target_survives(self, night_state):
        state = submit_all(night_state, [("wolf1", "vil1"), ("wolf2", "vil1"), ("doc", "vil1")])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.deaths == ()
        assert result.saved == ("vil1",)

    def test_plurality_picks_victim(self, classic_roles):
        roles = dict(classic_roles, wolf3=RoleType.WEREWOLF)
        state = make_state(roles)
        state = submit_all(state, [("wolf1", "vil1"), ("wolf2", "vil2"), ("wolf3", "vil2")])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.deaths == ("vil2",)

    def test_no_kill_actions_is_an_empty_night(self, night_state):
        result = resolve_night_actions(night_state, rng=random.Random(0))
        assert result.deaths == ()
        assert result.pack_target is None

    def test_tie_with_lowest_id_policy(self, night_state):
        state = submit_all(night_state, [("wolf1", "vil2"), ("wolf2", "seer")])
        rules = GameRules(tie_break=TIE_BREAK_LOWEST_ID)
        for seed in range(5):
            result = resolve_night_actions(state, rules, random.Random(seed))
            assert result.deaths == ("seer",)

    def test_random_tie_picks_one_of_the_tied(self, night_state):
        state = submit_all(night_state, [("wolf1", "vil2"), ("wolf2", "seer")])
        victims = set()
        for seed in range(30):
            result = resolve_night_actions(state, rng=random.Random(seed))
            assert len(result.deaths) == 1
            victims.add(result.deaths[0])
        assert victims == {"vil2", "seer"}

    def test_latest_kill_submission_wins(self, night_state):
        state = submit_all(night_state, [("wolf1", "vil1"), ("wolf1", "vil2"), ("wolf2", "vil2")])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.kill_tally == {"vil2": 2}
        assert result.deaths == ("vil2",)

    def test_dead_wolf_vote_is_ignored(self, night_state):
        state = submit_all(night_state, [("wolf1", "vil1"), ("wolf2", "vil2")])
        state = kill_player(state, "wolf2", EliminationMethod.VOTE)
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.kill_tally == {"vil1": 1}

    def test_protecting_a_dead_player_is_inert(self, night_state):
        state = submit_all(night_state, [("wolf1", "vil1"), ("doc", "vil2")])
        state = kill_player(state, "vil2", EliminationMethod.VOTE)
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.deaths == ("vil1",)
        assert result.saved == ()


class TestInvestigation:

    def test_seer_reads_werewolf(self, night_state):
        state = submit_all(night_state, [("seer", "wolf1")])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert [(i.target_id, i.result) for i in result.investigations] == [("wolf1", "Werewolf")]

    def test_fool_reads_as_werewolf_but_is_villager(self):
        state = make_state({
            "wolf1": RoleType.WEREWOLF,
            "seer": RoleType.SEER,
            "fool": RoleType.FOOL,
            "vil1": RoleType.VILLAGER,
            "vil2": RoleType.VILLAGER,
        })
        state = submit_all(state, [("seer", "fool")])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.investigations[0].result == "Werewolf"

    def test_results_recorded_on_action_and_log(self, night_state):
        state = submit_all(night_state, [("seer", "vil1")])
        result = resolve_night_actions(state, rng=random.Random(0))
        state = record_investigations(state, result.investigations)
        assert state.night_actions[-1].result == "Innocent"
        assert state.investigation_log[0].night == 1
        assert state.investigation_log[0].target_id == "vil1"


class TestWitch:

    @pytest.fixture
    def witch_state(self):
        return make_state({
            "wolf1": RoleType.WEREWOLF,
            "wolf2": RoleType.WEREWOLF,
            "witch": RoleType.WITCH,
            "vil1": RoleType.VILLAGER,
            "vil2": RoleType.VILLAGER,
            "vil3": RoleType.VILLAGER,
        })

    def test_heal_saves_the_victim(self, witch_state):
        state = submit_all(witch_state, [
            ("wolf1", "vil1"), ("wolf2", "vil1"), ("witch", "vil1", ActionType.HEAL),
        ])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.deaths == ()
        assert result.saved == ("vil1",)

    def test_poison_kills_regardless_of_protection(self, witch_state):
        state = submit_all(witch_state, [
            ("wolf1", "vil1"), ("wolf2", "vil1"), ("witch", "wolf1", ActionType.POISON),
        ])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.deaths == ("vil1", "wolf1")
        assert result.causes["wolf1"] == EliminationMethod.POISON

    def test_poisoned_victim_is_not_reported_saved(self):
        state = make_state({
            "wolf1": RoleType.WEREWOLF,
            "doc": RoleType.DOCTOR,
            "witch": RoleType.WITCH,
            "vil1": RoleType.VILLAGER,
            "vil2": RoleType.VILLAGER,
        })
        state = submit_all(state, [
            ("wolf1", "vil1"), ("doc", "vil1"), ("witch", "vil1", ActionType.POISON),
        ])
        result = resolve_night_actions(state, rng=random.Random(0))
        assert result.deaths == ("vil1",)
        assert result.saved == ()
        assert result.causes["vil1"] == EliminationMethod.POISON

    def test_potion_cannot_be_reused(self, witch_state):
        state = submit_all(witch_state, [("witch", "vil1", ActionType.HEAL)])
        state = remember_night_choices(state)
        assert state.used_potions == {"witch": ("heal",)}
        with pytest.raises(InvalidActionError):
            submit_night_action(state, "witch", "vil2", 9.0, ActionType.HEAL)

    def test_witch_must_name_a_potion(self, witch_state):
        with pytest.raises(InvalidActionError):
            submit_night_action(witch_state, "witch", "vil1", 1.0)


class TestSubmissionValidation:

    def test_wrong_phase(self, voting_state):
        with pytest.raises(InvalidActionError):
            submit_night_action(voting_state, "wolf1", "vil1", 1.0)

    def test_dead_actor(self, night_state):
        state = kill_player(night_state, "wolf1", EliminationMethod.VOTE)
        with pytest.raises(InvalidActionError):
            submit_night_action(state, "wolf1", "vil1", 1.0)

    def test_dead_target(self, night_state):
        state = kill_player(night_state, "vil1", EliminationMethod.VOTE)
        with pytest.raises(InvalidActionError):
            submit_night_action(state, "wolf1", "vil1", 1.0)

    def test_wolves_cannot_target_pack(self, night_state):
        with pytest.raises(InvalidActionError):
            submit_night_action(night_state, "wolf1", "wolf2", 1.0)

    def test_villager_has_no_night_action(self, night_state):
        with pytest.raises(InvalidActionError):
            submit_night_action(night_state, "vil1", "wolf1", 1.0)

    def test_role_cannot_use_foreign_action(self, night_state):
        with pytest.raises(InvalidActionError):
            submit_night_action(night_state, "seer", "vil1", 1.0, ActionType.KILL)

    def test_action_type_accepts_wire_strings(self, night_state):
        state = submit_night_action(night_state, "doc", "vil1", 1.0, "protect")
        assert state.night_actions[0].action_type == ActionType.PROTECT
        with pytest.raises(InvalidActionError):
            submit_night_action(night_state, "doc", "vil1", 1.0, "resurrect")

    def test_seer_cannot_investigate_self(self, night_state):
        with pytest.raises(InvalidActionError):
            submit_night_action(night_state, "seer", "seer", 1.0)

    def test_doctor_repeat_rejected_next_night(self, night_state):
        state = submit_all(night_state, [("doc", "vil1")])
        state = remember_night_choices(state)
        with pytest.raises(InvalidActionError):
            submit_night_action(state, "doc", "vil1", 5.0)

    def test_abstaining_doctor_forgets_last_target(self, night_state):
        state = submit_all(night_state, [("doc", "vil1")])
        state = remember_night_choices(state)
        state = submit_all(state, [("doc", None)])
        state = remember_night_choices(state)
        assert state.last_protected == {}

    def test_rejection_leaves_state_untouched(self, night_state):
        with pytest.raises(InvalidActionError):
            submit_night_action(night_state, "ghost", "vil1", 1.0)
        assert night_state.night_actions == ()

    def test_abstain_is_accepted(self, night_state):
        state = submit_night_action(night_state, "seer", None, 1.0)
        assert state.night_actions[0].target_id is None
        assert state.night_actions[0].action_type == ActionType.INVESTIGATE


def test_night_complete_once_core_roles_acted(night_state):
    assert not night_actions_complete(night_state)
    state = submit_all(night_state, [("wolf1", "vil1"), ("wolf2", "vil1"), ("seer", "vil2")])
    assert not night_actions_complete(state)
    state = submit_all(state, [("doc", None)])
    assert night_actions_complete(state)


def test_resolution_is_pure(night_state):
    state = submit_all(night_state, [("wolf1", "vil1")])
    resolve_night_actions(state, rng=random.Random(0))
    assert state.is_alive("vil1")
    assert state.phase == Phase.NIGHT

import json
from dataclasses import replace

import pytest

from conftest import make_state
from werewolf.errors import GameOverError, InvariantViolation
from werewolf.game_state import GameState, add_event, kill_player, replace_players
from werewolf.models import EliminationMethod, EventType, Phase, PlayerStatus
from werewolf.night_actions import submit_night_action
from werewolf.roles import RoleType


def test_kill_player_updates_indices_and_records(night_state):
    state = kill_player(night_state, "vil1", EliminationMethod.WEREWOLF)
    assert state.get_player_by_id("vil1").status == PlayerStatus.DEAD
    assert "vil1" not in state.alive_players
    assert state.dead_players == ("vil1",)
    record = state.elimination_records[0]
    assert (record.player_id, record.role, record.method) == (
        "vil1", RoleType.VILLAGER, EliminationMethod.WEREWOLF
    )
    assert night_state.is_alive("vil1")


def test_kill_player_is_idempotent(night_state):
    once = kill_player(night_state, "vil1", EliminationMethod.WEREWOLF)
    twice = kill_player(once, "vil1", EliminationMethod.VOTE)
    assert twice is once
    assert len(twice.elimination_records) == 1


def test_killing_unknown_player_is_a_no_op(night_state):
    assert kill_player(night_state, "ghost", EliminationMethod.VOTE) is night_state


def test_dead_player_without_role_is_a_defect():
    state = make_state({"p1": None, "p2": None}, Phase.NIGHT)
    with pytest.raises(InvariantViolation):
        kill_player(state, "p1", EliminationMethod.WEREWOLF)


def test_duplicate_player_ids_rejected(night_state):
    with pytest.raises(InvariantViolation):
        replace_players(night_state, night_state.players + night_state.players[:1])


def test_alive_and_dead_partition_roster(night_state):
    state = kill_player(night_state, "vil1", EliminationMethod.WEREWOLF)
    state = kill_player(state, "wolf2", EliminationMethod.VOTE)
    ids = {p.id for p in state.players}
    assert set(state.alive_players) | set(state.dead_players) == ids
    assert not set(state.alive_players) & set(state.dead_players)


def test_events_take_phase_and_counters(night_state):
    state = add_event(night_state, EventType.DEATH, "Vil1 died", ["vil1"], timestamp=3.0)
    event = state.events[0]
    assert event.id == "evt-1"
    assert event.phase == Phase.NIGHT
    assert event.night_number == 1
    assert event.involved_players == ("vil1",)


def test_event_log_closed_after_game_over(night_state):
    finished = replace(night_state, game_over=True)
    with pytest.raises(GameOverError):
        add_event(finished, EventType.NARRATION, "Too late")


def test_state_round_trips_through_json(night_state):
    state = submit_night_action(night_state, "wolf1", "vil1", 1.0)
    state = kill_player(state, "vil2", EliminationMethod.POISON)
    state = add_event(state, EventType.NARRATION, "Night falls")

    payload = json.dumps(state.to_dict())
    restored = GameState.from_dict(json.loads(payload))

    assert restored == state
    assert restored.to_dict() == state.to_dict()


class TestViewFor:

    def test_living_roles_hidden_from_villager(self, night_state):
        view = night_state.view_for("vil1")
        roles = {p["id"]: p["role"] for p in view["players"]}
        assert roles["vil1"] == "Villager"
        assert roles["wolf1"] is None
        assert roles["seer"] is None

    def test_wolves_see_the_pack(self, night_state):
        view = night_state.view_for("wolf1")
        roles = {p["id"]: p["role"] for p in view["players"]}
        assert roles["wolf2"] == "Werewolf"
        assert roles["seer"] is None

    def test_dead_roles_are_revealed(self, night_state):
        state = kill_player(night_state, "seer", EliminationMethod.WEREWOLF)
        roles = {p["id"]: p["role"] for p in state.view_for("vil1")["players"]}
        assert roles["seer"] == "Seer"

    def test_private_events_and_actions_hidden(self, night_state):
        state = submit_night_action(night_state, "seer", "wolf1", 1.0)
        state = add_event(state, EventType.INVESTIGATION, "Wolf1 is Werewolf", ["seer"], is_public=False)

        seer_view = state.view_for("seer")
        other_view = state.view_for("vil1")
        assert len(seer_view["events"]) == 1
        assert len(seer_view["night_actions"]) == 1
        assert other_view["events"] == []
        assert other_view["night_actions"] == []

    def test_everything_visible_after_game_over(self, night_state):
        state = replace(night_state, game_over=True)
        roles = {p["id"]: p["role"] for p in state.view_for("vil1")["players"]}
        assert None not in roles.values()

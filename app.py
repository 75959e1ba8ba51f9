"""Flask application for the Werewolf game server."""

# CRITICAL: gevent.monkey_patch() MUST be called before any other imports
from gevent import monkey
monkey.patch_all()

import gevent
from gevent.lock import RLock

from flask import Flask, request, jsonify
from flask_socketio import SocketIO, emit, join_room
from werewolf.engine import GameEngine
from werewolf.error_logger import (
    initialize_logging,
    set_game_context,
    clear_game_context,
    log_exception,
    log_info,
)
from werewolf.errors import GameOverError, IllegalTransitionError, InvalidActionError
from werewolf.lobby import (
    LOBBY_FINISHED,
    LOBBY_IN_PROGRESS,
    add_ai_players,
    create_lobby,
    fill_with_ai,
    initialize_game,
    join_lobby,
    mark_lobby,
)
from werewolf.models import GameSettings, Phase
from werewolf.narration import TemplateNarrator
from werewolf.storage import GameRepository, JsonFileStore
import config
import sys
import time
from dataclasses import replace
from gevent.hub import Hub

# =============================================================================
# UNIFIED EXCEPTION LOGGING - Catches ALL exceptions automatically
# =============================================================================

_original_hub_handle_error = Hub.handle_error
_original_sys_excepthook = sys.excepthook

def unified_greenlet_exception_handler(self, context, type, value, tb):
    """Log every greenlet exception before gevent's own handler runs."""
    log_exception(value, f"Greenlet exception in {context}")
    _original_hub_handle_error(self, context, type, value, tb)

def unified_thread_exception_handler(exc_type, exc_value, exc_traceback):
    """Log uncaught main-thread exceptions."""
    log_exception(exc_value, "Uncaught exception in main thread")
    _original_sys_excepthook(exc_type, exc_value, exc_traceback)

Hub.handle_error = unified_greenlet_exception_handler
sys.excepthook = unified_thread_exception_handler

# =============================================================================

app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='gevent')

initialize_logging(log_dir=config.LOG_DIR, log_level=config.LOG_LEVEL)

repository = GameRepository(JsonFileStore(config.DATA_DIR))
rules = config.load_rules_from_env()
narrator = TemplateNarrator()

engines = {}
game_locks = {}
watchers = {}
lobby_lock = RLock()


def get_lock(game_id):
    if game_id not in game_locks:
        game_locks[game_id] = RLock()
    return game_locks[game_id]


def get_engine(game_id):
    """
    Engine for a game, reloading it from storage after a restart.

    Finished games are served from storage and not kept in memory.
    """
    if game_id not in engines:
        state = repository.load_game(game_id)
        if state is None:
            return None
        engine = GameEngine(state, rules=rules, narrator=narrator)
        if state.game_over:
            return engine
        engines[game_id] = engine
        start_watcher(game_id)
    return engines[game_id]


def cleanup_game(game_id):
    """Drop a game's in-memory engine, lock and watcher; storage keeps the record."""
    engines.pop(game_id, None)
    game_locks.pop(game_id, None)
    watcher = watchers.pop(game_id, None)
    if watcher is not None and watcher is not gevent.getcurrent() and not watcher.dead:
        watcher.kill(block=False)


def emit_game_state_update(game_id, engine):
    """Emit the public view of the game to everyone watching it."""
    socketio.emit('game_state_update', engine.state.view_for(None), room=game_id)


def commit(game_id, engine):
    repository.save_game(engine.state)
    emit_game_state_update(game_id, engine)
    if engine.state.game_over:
        with lobby_lock:
            lobby = repository.get_lobby_by_code(engine.state.lobby_code)
            if lobby is not None and lobby.status != LOBBY_FINISHED:
                repository.save_lobby(mark_lobby(lobby, LOBBY_FINISHED))
        cleanup_game(game_id)
        log_info(f"Game {game_id} finished and released")


def watch_step(game_id: str) -> bool:
    """
    One watcher poll. Returns False once there is nothing left to watch.

    A failed tick rolls the engine back to its last committed state and
    tells the room; the next poll tries again.
    """
    engine = engines.get(game_id)
    if engine is None or engine.state.game_over:
        return False
    with get_lock(game_id):
        before = engine.state
        try:
            if engine.tick():
                commit(game_id, engine)
        except Exception as e:
            log_exception(e, "Error in phase watcher", extra_context={
                "phase": before.phase.value,
            })
            engine.state = before
            socketio.emit('game_error', {'error': str(e)}, room=game_id)
    return True


def phase_watcher(game_id: str):
    """
    Per-game greenlet: lets AI players act and enforces phase timers.

    Polls once per PHASE_POLL_INTERVAL until the game is over.
    """
    set_game_context(game_id=game_id)
    try:
        while True:
            gevent.sleep(config.PHASE_POLL_INTERVAL)
            if not watch_step(game_id):
                break
    finally:
        if watchers.get(game_id) is gevent.getcurrent():
            del watchers[game_id]
        clear_game_context()


def start_watcher(game_id):
    if game_id not in watchers:
        watchers[game_id] = gevent.spawn(phase_watcher, game_id)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.errorhandler(InvalidActionError)
def handle_invalid_action(error):
    return jsonify({"error": str(error)}), 400


@app.errorhandler(IllegalTransitionError)
@app.errorhandler(GameOverError)
def handle_conflict(error):
    return jsonify({"error": str(error)}), 409


def _json():
    return request.get_json(silent=True) or {}


# =============================================================================
# LOBBY ROUTES
# =============================================================================

@app.route("/lobbies", methods=["POST"])
def create_lobby_route():
    """Create a lobby; the caller becomes its host."""
    data = _json()
    settings = GameSettings.from_dict({
        **config.load_settings_from_env().to_dict(),
        **data.get("settings", {}),
    })
    with lobby_lock:
        lobby = create_lobby(data.get("host_name", ""), settings)
        lobby = replace(lobby, is_public=bool(data.get("is_public", False)))
        repository.save_lobby(lobby)
    log_info(f"Lobby {lobby.lobby_code} created")
    return jsonify({"lobby": lobby.to_dict(), "player_id": lobby.host_player_id})


@app.route("/lobbies")
def list_lobbies_route():
    """Public lobbies still waiting for players."""
    return jsonify([lobby.to_dict() for lobby in repository.public_lobbies()])


@app.route("/lobbies/<code>")
def get_lobby_route(code):
    lobby = repository.get_lobby_by_code(code)
    if lobby is None:
        return jsonify({"error": "Lobby not found"}), 404
    return jsonify(lobby.to_dict())


@app.route("/lobbies/<code>/join", methods=["POST"])
def join_lobby_route(code):
    with lobby_lock:
        lobby = repository.get_lobby_by_code(code)
        if lobby is None:
            return jsonify({"error": "Lobby not found"}), 404
        lobby, player = join_lobby(lobby, _json().get("player_name", ""))
        repository.save_lobby(lobby)
    return jsonify({"lobby": lobby.to_dict(), "player_id": player.id})


@app.route("/lobbies/<code>/ai", methods=["POST"])
def add_ai_route(code):
    with lobby_lock:
        lobby = repository.get_lobby_by_code(code)
        if lobby is None:
            return jsonify({"error": "Lobby not found"}), 404
        lobby, _ = add_ai_players(lobby, int(_json().get("count", 1)))
        repository.save_lobby(lobby)
    return jsonify({"lobby": lobby.to_dict()})


@app.route("/lobbies/<code>/start", methods=["POST"])
def start_game_route(code):
    """Fill with AI if allowed, deal roles, and start the first night."""
    with lobby_lock:
        lobby = repository.get_lobby_by_code(code)
        if lobby is None:
            return jsonify({"error": "Lobby not found"}), 404
        if _json().get("player_id") != lobby.host_player_id:
            return jsonify({"error": "Only the host can start the game"}), 403

        lobby = fill_with_ai(lobby)
        state = initialize_game(lobby, now=time.time())
        engine = GameEngine(state, rules=rules, narrator=narrator)
        engine.start_game()

        engines[state.id] = engine
        repository.save_lobby(mark_lobby(lobby, LOBBY_IN_PROGRESS))
        commit(state.id, engine)
        start_watcher(state.id)

    return jsonify({"game_id": state.id})


# =============================================================================
# GAME ROUTES
# =============================================================================

@app.route("/games/<game_id>/state")
def get_game_state(game_id):
    """Game state as seen by ?viewer=<player_id> (public view without it)."""
    engine = get_engine(game_id)
    if engine is None:
        return jsonify({"error": "Game not found"}), 404
    with get_lock(game_id):
        return jsonify(engine.state.view_for(request.args.get("viewer")))


@app.route("/games/<game_id>/night_action", methods=["POST"])
def night_action_route(game_id):
    engine = get_engine(game_id)
    if engine is None:
        return jsonify({"error": "Game not found"}), 404
    data = _json()
    with get_lock(game_id):
        engine.submit_night_action(
            data.get("player_id"), data.get("target_id"), data.get("action_type")
        )
        commit(game_id, engine)
    return jsonify({"accepted": True})


@app.route("/games/<game_id>/start_voting", methods=["POST"])
def start_voting_route(game_id):
    """Host ends the day discussion early."""
    engine = get_engine(game_id)
    if engine is None:
        return jsonify({"error": "Game not found"}), 404
    with get_lock(game_id):
        if _json().get("player_id") != engine.state.host_player_id:
            return jsonify({"error": "Only the host can start voting"}), 403
        if engine.state.phase != Phase.DAY:
            raise InvalidActionError("Voting can only start during the Day phase")
        engine.start_voting()
        commit(game_id, engine)
    return jsonify({"phase": engine.state.phase.value})


@app.route("/games/<game_id>/vote", methods=["POST"])
def vote_route(game_id):
    engine = get_engine(game_id)
    if engine is None:
        return jsonify({"error": "Game not found"}), 404
    data = _json()
    with get_lock(game_id):
        engine.submit_vote(data.get("player_id"), data.get("target_id"))
        commit(game_id, engine)
    return jsonify({"accepted": True})


@app.route("/games/<game_id>/hunter_shot", methods=["POST"])
def hunter_shot_route(game_id):
    engine = get_engine(game_id)
    if engine is None:
        return jsonify({"error": "Game not found"}), 404
    data = _json()
    with get_lock(game_id):
        engine.hunter_shoot(data.get("player_id"), data.get("target_id"))
        commit(game_id, engine)
    return jsonify({"phase": engine.state.phase.value})


# =============================================================================
# SOCKETS
# =============================================================================

@socketio.on('join_game')
def handle_join_game(data):
    """Handle client joining a game room."""
    game_id = data.get('game_id')
    engine = get_engine(game_id)
    if engine is not None:
        join_room(game_id)
        emit('joined_game', {'game_id': game_id})
        emit('game_state_update', engine.state.view_for(data.get('player_id')))


if __name__ == "__main__":
    socketio.run(app, debug=True, port=config.PORT)

"""
Persistence for games and lobbies.

The engine itself never touches storage. Drivers save a GameState after
each operation through GameRepository, which works against any key-value
store with get/put/delete over plain JSON-compatible dicts.
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from .game_state import GameState
from .lobby import LOBBY_WAITING, Lobby

logger = logging.getLogger("werewolf")

GAME_PREFIX = "game:"
LOBBY_PREFIX = "lobby:"
LOBBY_CODE_PREFIX = "lobby-code:"


class KeyValueStore:
    """Interface for the storage backends."""

    def get(self, key: str) -> Optional[Dict]:
        raise NotImplementedError

    def put(self, key: str, value: Dict):
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError

    def keys(self, prefix: str = "") -> List[str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Process-local store. Values are copied through JSON so callers never share dicts."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Dict]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def put(self, key: str, value: Dict):
        self._data[key] = json.dumps(value)

    def delete(self, key: str):
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class JsonFileStore(KeyValueStore):
    """One JSON file per key under a directory."""

    _UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / (self._UNSAFE.sub("_", key) + ".json")

    def get(self, key: str) -> Optional[Dict]:
        path = self._path(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def put(self, key: str, value: Dict):
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(value, f, indent=2)
        tmp_path.replace(path)

    def delete(self, key: str):
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self, prefix: str = "") -> List[str]:
        safe_prefix = self._UNSAFE.sub("_", prefix)
        return sorted(
            p.stem for p in self.directory.glob("*.json") if p.stem.startswith(safe_prefix)
        )


class GameRepository:
    """Saves and loads games and lobbies through a KeyValueStore."""

    def __init__(self, store: KeyValueStore = None):
        self.store = store or MemoryStore()

    # Games

    def save_game(self, state: GameState):
        self.store.put(GAME_PREFIX + state.id, state.to_dict())
        logger.debug("Saved game %s (%s)", state.id, state.phase.value)

    def load_game(self, game_id: str) -> Optional[GameState]:
        data = self.store.get(GAME_PREFIX + game_id)
        return GameState.from_dict(data) if data is not None else None

    def delete_game(self, game_id: str):
        self.store.delete(GAME_PREFIX + game_id)

    def list_game_ids(self) -> List[str]:
        return [k[len(GAME_PREFIX):] for k in self.store.keys(GAME_PREFIX)]

    # Lobbies

    def save_lobby(self, lobby: Lobby):
        self.store.put(LOBBY_PREFIX + lobby.id, lobby.to_dict())
        self.store.put(LOBBY_CODE_PREFIX + lobby.lobby_code, {"lobby_id": lobby.id})

    def get_lobby(self, lobby_id: str) -> Optional[Lobby]:
        data = self.store.get(LOBBY_PREFIX + lobby_id)
        return Lobby.from_dict(data) if data is not None else None

    def get_lobby_by_code(self, lobby_code: str) -> Optional[Lobby]:
        ref = self.store.get(LOBBY_CODE_PREFIX + lobby_code.upper())
        if ref is None:
            return None
        return self.get_lobby(ref["lobby_id"])

    def delete_lobby(self, lobby_id: str):
        lobby = self.get_lobby(lobby_id)
        if lobby is not None:
            self.store.delete(LOBBY_CODE_PREFIX + lobby.lobby_code)
        self.store.delete(LOBBY_PREFIX + lobby_id)

    def public_lobbies(self) -> List[Lobby]:
        """Public lobbies still waiting for players."""
        lobbies = []
        for key in self.store.keys(LOBBY_PREFIX):
            lobby = self.get_lobby(key[len(LOBBY_PREFIX):])
            if lobby is not None and lobby.is_public and lobby.status == LOBBY_WAITING:
                lobbies.append(lobby)
        return lobbies

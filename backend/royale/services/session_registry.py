"""In-memory registry of active game sessions."""

import asyncio
import logging
from typing import Optional

from royale.core.game import GameSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Active sessions keyed by id and by room code.

    Locks: one per room serializing game starts, one per session guarding
    its state transitions, and one per (session, player) pair guarding that
    player's entry while a pipeline run reads and overwrites it.
    """

    def __init__(self):
        self._sessions: dict[str, GameSession] = {}
        self._by_room: dict[str, str] = {}  # room_code -> game_id
        self._session_locks: dict[str, asyncio.Lock] = {}
        self._player_locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}

    def register(self, session: GameSession) -> None:
        self._sessions[session.id] = session
        self._by_room[session.room_code] = session.id
        self._session_locks.setdefault(session.id, asyncio.Lock())
        logger.info(f"Registered game {session.id} for room {session.room_code}")

    def unregister(self, game_id: str) -> None:
        session = self._sessions.pop(game_id, None)
        if session and self._by_room.get(session.room_code) == game_id:
            del self._by_room[session.room_code]
        self._session_locks.pop(game_id, None)
        for key in [key for key in self._player_locks if key[0] == game_id]:
            del self._player_locks[key]
        logger.info(f"Unregistered game {game_id}")

    def get(self, game_id: str) -> Optional[GameSession]:
        return self._sessions.get(game_id)

    def get_by_room(self, room_code: str) -> Optional[GameSession]:
        game_id = self._by_room.get(room_code)
        return self._sessions.get(game_id) if game_id else None

    def session_lock(self, game_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(game_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[game_id] = lock
        return lock

    def room_lock(self, room_code: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_code)
        if lock is None:
            lock = asyncio.Lock()
            self._room_locks[room_code] = lock
        return lock

    def release_room(self, room_code: str) -> None:
        self._room_locks.pop(room_code, None)

    def player_lock(self, game_id: str, player_id: str) -> asyncio.Lock:
        key = (game_id, player_id)
        lock = self._player_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._player_locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, game_id: str) -> bool:
        return game_id in self._sessions

"""Room service for gathering players before a game."""

import logging
import re
import secrets
import string
from typing import Optional

from royale.config import get_settings
from royale.core.errors import (
    GameError,
    PlayerNotFoundError,
    RoomFullError,
    RoomNotFoundError,
    RoomStateError,
)
from royale.core.game import GameState
from royale.core.room import Room, RoomPlayer

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 100


def generate_room_code(length: int = 6) -> str:
    """Random code of uppercase letters and digits."""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def is_valid_room_code(code: Optional[str], length: int = 6) -> bool:
    return bool(code) and len(code) == length and re.fullmatch(r"[A-Z0-9]+", code) is not None


class RoomService:
    """
    In-memory rooms and the player-to-room index.

    All methods are synchronous, so each runs to completion on the event
    loop without interleaving with other room operations.
    """

    def __init__(self, max_players: Optional[int] = None, code_length: Optional[int] = None):
        settings = get_settings()
        self.max_players = max_players or settings.max_players_per_room
        self.code_length = code_length or settings.room_code_length
        self._rooms: dict[str, Room] = {}
        self._player_rooms: dict[str, str] = {}  # player_id -> room code

    def _unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_room_code(self.code_length)
            if code not in self._rooms:
                return code
        raise GameError("Unable to generate unique room code")

    def _ensure_free(self, player_id: str) -> None:
        if player_id in self._player_rooms:
            raise RoomStateError(f"Player is already in room {self._player_rooms[player_id]}")

    def create_room(self, host_id: str, host_name: str = "Host") -> Room:
        """Open a room with the caller seated as host."""
        self._ensure_free(host_id)

        room = Room(code=self._unique_code(), host_id=host_id, max_players=self.max_players)
        room.players.append(RoomPlayer(player_id=host_id, name=host_name, is_host=True))

        self._rooms[room.code] = room
        self._player_rooms[host_id] = room.code
        logger.info(f"Room {room.code} created by {host_id}")
        return room

    def join_room(self, player_id: str, room_code: str, name: str = "Player") -> Room:
        if not is_valid_room_code(room_code, self.code_length):
            raise GameError("Invalid room code format")
        self._ensure_free(player_id)

        room = self.get_room(room_code)
        if room.is_full:
            raise RoomFullError("Room is full")
        if room.game_state != GameState.WAITING:
            raise RoomStateError("Game has already started")

        room.players.append(RoomPlayer(player_id=player_id, name=name))
        self._player_rooms[player_id] = room_code
        logger.info(f"Player {player_id} joined room {room_code}")
        return room

    def leave_room(self, player_id: str) -> Optional[Room]:
        """
        Remove a player from their room.

        Returns:
            The room after the change, or None when the room emptied and
            was deleted
        """
        room_code = self._player_rooms.pop(player_id, None)
        if room_code is None:
            raise PlayerNotFoundError("Player is not in any room")

        room = self._rooms.get(room_code)
        if room is None:
            raise RoomNotFoundError("Room not found")

        room.players = [p for p in room.players if p.player_id != player_id]
        if not room.players:
            del self._rooms[room_code]
            logger.info(f"Room {room_code} deleted after last player left")
            return None

        if room.host_id == player_id:
            new_host = room.players[0]
            new_host.is_host = True
            room.host_id = new_host.player_id
            logger.info(f"Room {room_code} host passed to {new_host.player_id}")

        return room

    def set_ready(self, player_id: str, is_ready: bool) -> Room:
        room = self.get_player_room(player_id)
        player = room.find_player(player_id)
        if player is None:
            raise PlayerNotFoundError("Player is not in this room")
        player.is_ready = is_ready
        return room

    def get_room(self, room_code: str) -> Room:
        room = self._rooms.get(room_code)
        if room is None:
            raise RoomNotFoundError("Room not found")
        return room

    def get_player_room(self, player_id: str) -> Room:
        room_code = self._player_rooms.get(player_id)
        if room_code is None:
            raise RoomNotFoundError("Player is not in any room")
        return self.get_room(room_code)

    def mark_playing(self, room_code: str, game_id: str) -> None:
        room = self.get_room(room_code)
        room.game_state = GameState.PLAYING
        room.game_id = game_id

    def delete_room(self, room_code: str) -> None:
        """Drop a room and release all of its players."""
        room = self._rooms.pop(room_code, None)
        if room is None:
            return
        for player in room.players:
            if self._player_rooms.get(player.player_id) == room_code:
                del self._player_rooms[player.player_id]
        logger.info(f"Room {room_code} deleted")

    def list_rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def stats(self) -> dict:
        by_state = {state.value: 0 for state in GameState}
        for room in self._rooms.values():
            by_state[room.game_state.value] += 1
        return {
            "total_rooms": len(self._rooms),
            "total_players": len(self._player_rooms),
            "rooms_by_state": by_state,
        }


# Singleton instance
_room_service: Optional[RoomService] = None


def get_room_service() -> RoomService:
    """Get singleton room service."""
    global _room_service
    if _room_service is None:
        _room_service = RoomService()
    return _room_service

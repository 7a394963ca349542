"""API dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends

from royale.services.game_service import GameService, get_game_service
from royale.services.room_service import RoomService, get_room_service


# Type aliases for cleaner route signatures
Games = Annotated[GameService, Depends(get_game_service)]
Rooms = Annotated[RoomService, Depends(get_room_service)]

"""Multiplayer race rooms.

A room moves through waiting -> (ready) -> playing -> finished and can be
reset to waiting for another race, or closed once everyone has left.
Each operation below runs as one transaction on the room's rows.
"""
from .codes import allocate_room_code, generate_room_code
from .readiness import set_ready, start_game
from .registry import create_room, get_room_by_code, join_room, leave_room
from .settlement import get_multiplayer_history, record_finish, reset_room

__all__ = [
    'allocate_room_code',
    'create_room',
    'generate_room_code',
    'get_multiplayer_history',
    'get_room_by_code',
    'join_room',
    'leave_room',
    'record_finish',
    'reset_room',
    'set_ready',
    'start_game',
]

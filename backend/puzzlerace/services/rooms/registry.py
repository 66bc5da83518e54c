from flask import current_app

from puzzlerace import db
from puzzlerace.errors import Conflict, NotFound, ValidationError
from puzzlerace.models import Player, PlayerStatus, Room, RoomStatus, User
from puzzlerace.puzzles import PuzzleConfig
from puzzlerace.storage import transaction
from .codes import allocate_room_code, generate_room_code
from .guards import (
    code_in_use, find_active_room, find_room, get_member_room, get_room, hand_over_host, normalize_code,
    refresh_ready_aggregate,
)
from .settlement import all_finished, settle


def create_room(host_user_id, name, puzzle_config, max_players=2):
    """Open a new waiting room with the caller as host and only player."""
    name = (name or '').strip()
    if not 1 <= len(name) <= 100:
        raise ValidationError('Room name must be 1-100 characters', field='name')
    if isinstance(max_players, bool) or not isinstance(max_players, int) or not 2 <= max_players <= 4:
        raise ValidationError('max_players must be between 2 and 4', field='max_players')
    if not isinstance(puzzle_config, PuzzleConfig):
        puzzle_config = PuzzleConfig.from_dict(puzzle_config, room=True)

    cfg = current_app.config
    with transaction():
        host = db.session.get(User, host_user_id)
        if host is None:
            raise NotFound('User not found', user_id=host_user_id)
        code = allocate_room_code(
            code_in_use,
            max_attempts=cfg.get('ROOM_CODE_MAX_ATTEMPTS', 10),
            generate=lambda: generate_room_code(),
        )
        room = Room(
            code=code,
            name=name,
            host_user_id=host.id,
            max_players=max_players,
            current_players=1,
            status=RoomStatus.WAITING,
            puzzle_config=puzzle_config,
        )
        room.players.append(Player(
            user_id=host.id, username=host.username, status=PlayerStatus.JOINED, is_host=True,
        ))
        db.session.add(room)
        db.session.flush()
        view = room.to_dict()
    current_app.logger.info(f"[room-create] room={view['id']} code={code} host={host_user_id} max={max_players}")
    return view


def join_room(code, user_id, username):
    with transaction():
        active = find_active_room(user_id)
        if active is not None:
            raise Conflict(
                'User already in another active room',
                current_room={'code': active.code, 'status': active.status.value},
            )
        room = find_room(code, statuses=[RoomStatus.WAITING])
        if room is None:
            raise NotFound('Room not found or not available', room_code=normalize_code(code))
        if room.current_players >= room.max_players:
            raise Conflict('Room is full', room_code=room.code)
        if room.player_for(user_id) is not None:
            raise Conflict('User already in this room', room_code=room.code)

        room.players.append(Player(user_id=user_id, username=username, status=PlayerStatus.JOINED))
        room.current_players += 1
        db.session.flush()
        view = room.to_dict()
    current_app.logger.info(f"[room-join] code={view['code']} user={user_id} players={view['current_players']}")
    return view


def leave_room(code, user_id):
    """Remove the caller from the room, handing over host or closing the room."""
    with transaction():
        room = get_member_room(code, user_id)
        player = room.player_for(user_id)
        was_host = player.is_host
        room.players.remove(player)
        room.current_players -= 1
        db.session.flush()

        remaining = list(room.players)
        new_host_id = None
        if not remaining:
            room.transition_to(RoomStatus.CLOSED)
        else:
            if was_host:
                new_host_id = hand_over_host(room)
            if room.status == RoomStatus.PLAYING and all_finished(room):
                settle(room)
            else:
                refresh_ready_aggregate(room, current_app.config.get('MIN_PLAYERS', 2))
        status = room.status.value
        room_code = room.code

    current_app.logger.info(
        f"[room-leave] code={room_code} user={user_id} status={status}"
        + (f" new_host={new_host_id}" if new_host_id is not None else '')
    )
    return {'room_code': room_code, 'status': status, 'new_host_user_id': new_host_id}


def get_room_by_code(code):
    return get_room(code, lock=False).to_dict()

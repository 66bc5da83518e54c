from flask import current_app

from puzzlerace import db
from puzzlerace.errors import HostRequired, PreconditionFailed
from puzzlerace.models import PlayerStatus, RoomStatus
from puzzlerace.storage import transaction, utcnow
from .guards import get_room, refresh_ready_aggregate, require_member, require_status


def set_ready(code, user_id):
    with transaction():
        room = get_room(code)
        require_status(room, [RoomStatus.WAITING, RoomStatus.READY], 'ready up')
        player = require_member(room, user_id)
        player.status = PlayerStatus.READY
        player.ready_at = utcnow()
        refresh_ready_aggregate(room, current_app.config.get('MIN_PLAYERS', 2))
        db.session.flush()
        view = room.to_dict()
    current_app.logger.info(f"[room-ready] code={view['code']} user={user_id} room_status={view['status']}")
    return view


def start_game(code, host_user_id):
    """Host starts the race once every other player is ready.

    The host does not have to ready up. ``ready`` is only a display
    aggregate, so a room showing it can be started like a waiting one.
    """
    min_players = current_app.config.get('MIN_PLAYERS', 2)
    with transaction():
        room = get_room(code)
        if room.host_user_id != host_user_id:
            raise HostRequired('Only the host can start the game', room_code=room.code)
        require_status(room, [RoomStatus.WAITING, RoomStatus.READY], 'start the game')
        players = list(room.players)
        if len(players) < min_players:
            raise PreconditionFailed(f'At least {min_players} players are required to start', players=len(players))
        unready = [p.user_id for p in players if not p.is_host and p.status != PlayerStatus.READY]
        if unready:
            raise PreconditionFailed('Not all players are ready', unready_user_ids=unready)

        room.transition_to(RoomStatus.PLAYING)
        room.game_started_at = utcnow()
        for p in players:
            p.status = PlayerStatus.PLAYING
        db.session.flush()
        view = room.to_dict()
    current_app.logger.info(f"[room-start] code={view['code']} host={host_user_id} players={len(players)}")
    return view

"""Room lookups and precondition checks shared by the room services."""
from puzzlerace.errors import NotFound, PreconditionFailed
from puzzlerace.models import ACTIVE_ROOM_STATUSES, Player, PlayerStatus, Room, RoomStatus
from puzzlerace.storage import locked


def normalize_code(code):
    return (code or '').strip().upper()


def find_room(code, statuses=None, lock=True):
    """Most recent room holding ``code``, optionally limited to ``statuses``.

    Codes are reused only after a room ends, so the newest room with a code
    is the live one if any is live.
    """
    query = Room.query.filter(Room.code == normalize_code(code))
    if statuses:
        query = query.filter(Room.status.in_(statuses))
    query = query.order_by(Room.created_at.desc())
    if lock:
        query = locked(query)
    return query.first()


def get_room(code, lock=True):
    room = find_room(code, lock=lock)
    if room is None:
        raise NotFound('Room not found', room_code=normalize_code(code))
    return room


def require_status(room, allowed, action):
    if room.status not in allowed:
        expected = '/'.join(s.value for s in allowed)
        raise PreconditionFailed(
            f'Cannot {action} while room is {room.status.value} (expected {expected})',
            room_code=room.code, status=room.status.value,
        )


def require_member(room, user_id):
    player = room.player_for(user_id)
    if player is None:
        raise NotFound('Player not found in room', room_code=room.code, user_id=user_id)
    return player


def refresh_ready_aggregate(room, min_players):
    """Keep the display-only ``ready`` status in line with the players' flags."""
    if room.status not in (RoomStatus.WAITING, RoomStatus.READY):
        return
    all_ready = len(room.players) >= min_players and all(p.status == PlayerStatus.READY for p in room.players)
    target = RoomStatus.READY if all_ready else RoomStatus.WAITING
    if room.status != target:
        room.transition_to(target)


def code_in_use(code, exclude_room_id=None):
    """Whether a live (non-terminal) room currently holds ``code``."""
    query = Room.query.filter(
        Room.code == code,
        Room.status.notin_([RoomStatus.FINISHED, RoomStatus.CLOSED]),
    )
    if exclude_room_id is not None:
        query = query.filter(Room.id != exclude_room_id)
    return query.first() is not None


def get_member_room(code, user_id):
    """Newest room under ``code`` that ``user_id`` sits in, row-locked.

    Differs from ``get_room`` once a code has been reused: a player of the
    old finished room still reaches that room, not the new one.
    """
    room = locked(
        Room.query.join(Player)
        .filter(Room.code == normalize_code(code), Player.user_id == user_id)
        .order_by(Room.created_at.desc())
    ).first()
    if room is None:
        get_room(code, lock=False)
        raise NotFound('Player not found in room', room_code=normalize_code(code), user_id=user_id)
    return room


def find_active_room(user_id, exclude_room_id=None):
    """A waiting/ready/playing room ``user_id`` sits in, other than ``exclude_room_id``."""
    query = Room.query.join(Player).filter(
        Player.user_id == user_id,
        Room.status.in_(ACTIVE_ROOM_STATUSES),
    )
    if exclude_room_id is not None:
        query = query.filter(Room.id != exclude_room_id)
    return query.first()


def hand_over_host(room):
    """Give host to the earliest joined remaining player. Returns the new host's user id."""
    successor = min(room.players, key=lambda p: (p.joined_at, p.id))
    successor.is_host = True
    room.host_user_id = successor.user_id
    return successor.user_id

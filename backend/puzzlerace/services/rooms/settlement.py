"""Finishing a race.

Each player reports their own finish. The call that brings the finished
count up to the player count closes the room: it ranks everyone, names the
winner and writes the immutable game record. Closure only ever runs on a
``playing`` room, so a repeated trigger cannot settle a room twice.
"""
import math

from flask import current_app

from puzzlerace import db
from puzzlerace.errors import Conflict, InvariantViolation, PreconditionFailed, ValidationError
from puzzlerace.models import GameRecord, GameRecordPlayer, PlayerStatus, RoomStatus
from puzzlerace.services.economy import compute_rewards, compute_score, record_completed_game
from puzzlerace.storage import transaction, utcnow
from .guards import (
    code_in_use, find_active_room, get_member_room, get_room, hand_over_host, require_member, require_status,
)


def all_finished(room):
    return bool(room.players) and all(p.status == PlayerStatus.FINISHED for p in room.players)


def assign_ranks(players):
    """Rank = 1 + number of players strictly ahead.

    Ahead means lower (completion_time, moves_count, finished_at,
    finish_order); finish_order is unique per room, so ranks never tie.
    """
    keys = {id(p): p.settlement_key() for p in players}
    for player in players:
        own = keys[id(player)]
        player.rank = 1 + sum(1 for other in players if other is not player and keys[id(other)] < own)
    return sorted(players, key=lambda p: p.rank)


def settle(room, now=None):
    """Close a ``playing`` room whose players have all finished. No-op otherwise."""
    if room.status != RoomStatus.PLAYING:
        return None
    if room.game_started_at is None:
        raise InvariantViolation('Playing room has no start time', room_code=room.code)
    now = now or utcnow()
    room.transition_to(RoomStatus.FINISHED)
    room.game_finished_at = now

    standings = assign_ranks(list(room.players))
    winner = standings[0]
    config = room.puzzle_config
    record = GameRecord(
        room_id=room.id,
        room_code=room.code,
        total_players=len(standings),
        winner_user_id=winner.user_id,
        game_duration_seconds=int((now - room.game_started_at).total_seconds()),
        puzzle_difficulty=config.difficulty.value,
        puzzle_grid_size=config.grid_size,
        puzzle_piece_shape=config.piece_shape.value,
        started_at=room.game_started_at,
        finished_at=now,
    )
    for p in standings:
        record.participants.append(GameRecordPlayer(
            user_id=p.user_id,
            username=p.username,
            completion_time=p.completion_time,
            moves_count=p.moves_count,
            rank=p.rank,
        ))
    db.session.add(record)
    current_app.logger.info(
        f"[room-settle] code={room.code} players={len(standings)} winner={winner.user_id} "
        f"duration={record.game_duration_seconds}s"
    )
    return record


def _check_result(completion_time, moves_count):
    if isinstance(completion_time, bool) or not isinstance(completion_time, int) or completion_time < 1:
        raise ValidationError('completion_time must be a positive integer', field='completion_time')
    if isinstance(moves_count, bool) or not isinstance(moves_count, int) or moves_count < 0:
        raise ValidationError('moves_count must be a non-negative integer', field='moves_count')


def record_finish(code, user_id, completion_time, moves_count):
    _check_result(completion_time, moves_count)
    with transaction():
        room = get_room(code)
        require_status(room, [RoomStatus.PLAYING], 'record a finish')
        player = require_member(room, user_id)
        if player.status != PlayerStatus.PLAYING:
            raise PreconditionFailed('Player is not currently playing', status=player.status.value)

        now = utcnow()
        player.status = PlayerStatus.FINISHED
        player.completion_time = completion_time
        player.moves_count = moves_count
        player.finished_at = now
        # Players who finished and then left no longer count, so take max + 1
        player.finish_order = 1 + max(
            (p.finish_order for p in room.players if p.finish_order is not None), default=0
        )

        config = room.puzzle_config
        reward = compute_rewards(config.difficulty, config.total_pieces, completion_time, moves_count)
        score = compute_score(config.difficulty, config.total_pieces, completion_time, moves_count)
        change = record_completed_game(user_id, reward, score, completion_time)

        game_ended = False
        if all_finished(room):
            game_ended = settle(room, now) is not None
        db.session.flush()
        view = room.to_dict()

    current_app.logger.info(
        f"[room-finish] code={view['code']} user={user_id} time={completion_time}s moves={moves_count} "
        f"ended={game_ended}"
    )
    return {
        'game_ended': game_ended,
        'room': view,
        'score': score,
        'rewards': reward.to_dict(),
        'level_info': change.to_dict(),
    }


def reset_room(code, user_id):
    """Put a finished room back into ``waiting`` so the same group can race again.

    Members who have meanwhile joined another active room are dropped from
    this one, so nobody ends up in two active rooms.
    """
    with transaction():
        room = get_member_room(code, user_id)
        require_status(room, [RoomStatus.FINISHED], 'reset the room')
        if code_in_use(room.code, exclude_room_id=room.id):
            raise Conflict('Room code has been taken by a new room', room_code=room.code)
        elsewhere = find_active_room(user_id, exclude_room_id=room.id)
        if elsewhere is not None:
            raise Conflict(
                'User already in another active room',
                current_room={'code': elsewhere.code, 'status': elsewhere.status.value},
            )

        dropped = [p for p in room.players if find_active_room(p.user_id, exclude_room_id=room.id) is not None]
        dropped_ids = [p.user_id for p in dropped]
        for p in dropped:
            room.players.remove(p)
            room.current_players -= 1
        if any(p.is_host for p in dropped):
            hand_over_host(room)
        for p in room.players:
            p.clear_game_fields()
            p.status = PlayerStatus.JOINED
        room.transition_to(RoomStatus.WAITING)
        room.game_started_at = None
        room.game_finished_at = None
        db.session.flush()
        view = room.to_dict()
    current_app.logger.info(
        f"[room-reset] code={view['code']} by={user_id}"
        + (f" dropped={dropped_ids}" if dropped_ids else '')
    )
    return view


def get_multiplayer_history(user_id, page=1, limit=10):
    page = max(1, page)
    query = (db.session.query(GameRecord, GameRecordPlayer)
             .join(GameRecordPlayer, GameRecordPlayer.record_id == GameRecord.id)
             .filter(GameRecordPlayer.user_id == user_id))
    total = query.count()
    rows = (query.order_by(GameRecord.finished_at.desc(), GameRecord.id)
            .offset((page - 1) * limit).limit(limit).all())

    records = []
    for record, mine in rows:
        winner = next((p for p in record.participants if p.user_id == record.winner_user_id), None)
        records.append({
            'id': record.id,
            'room_code': record.room_code,
            'total_players': record.total_players,
            'winner_username': winner.username if winner else None,
            'is_winner': record.winner_user_id == user_id,
            'game_duration_seconds': record.game_duration_seconds,
            'puzzle_difficulty': record.puzzle_difficulty,
            'puzzle_grid_size': record.puzzle_grid_size,
            'my_completion_time': mine.completion_time,
            'my_moves_count': mine.moves_count,
            'my_rank': mine.rank,
            'finished_at': record.finished_at.isoformat(),
        })
    return {
        'records': records,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': math.ceil(total / limit),
        },
    }

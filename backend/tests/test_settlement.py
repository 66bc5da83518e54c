import pytest

from puzzlerace.errors import Conflict, InvariantViolation, NotFound, PreconditionFailed
from puzzlerace import db
from puzzlerace.models import ACTIVE_ROOM_STATUSES, GameRecord, Player, PlayerStatus, Room, RoomStatus
from puzzlerace.services.rooms import (
    create_room, get_multiplayer_history, join_room, leave_room, record_finish, reset_room, set_ready, start_game,
)
from puzzlerace.services.rooms import registry

PUZZLE = {'difficulty': 'easy', 'grid_size': '3x3'}


def _racing_room(make_user, names=('alice', 'bob'), max_players=2):
    ids = [make_user(name) for name in names]
    code = create_room(ids[0], 'Race', PUZZLE, max_players=max_players)['code']
    for user_id, name in zip(ids[1:], names[1:]):
        join_room(code, user_id, name)
        set_ready(code, user_id)
    start_game(code, ids[0])
    return code, ids


def test_two_player_race_settles_once_everyone_finishes(app_ctx, make_user):
    code, (alice, bob) = _racing_room(make_user)

    first = record_finish(code, alice, 120, 45)
    assert first['game_ended'] is False
    assert first['room']['status'] == 'playing'
    # easy 3x3: 100 base + 45 size + 88 speed - 72 extra moves
    assert first['score'] == 161
    assert first['rewards'] == {'coins': 13, 'experience': 18}

    second = record_finish(code, bob, 150, 52)
    assert second['game_ended'] is True
    room = second['room']
    assert room['status'] == 'finished'
    assert room['game_finished_at'] is not None
    assert {p['user_id']: p['rank'] for p in room['players']} == {alice: 1, bob: 2}

    record = GameRecord.query.one()
    assert record.winner_user_id == alice
    assert record.total_players == 2
    assert record.room_code == code
    assert record.puzzle_grid_size == '3x3'
    assert record.game_duration_seconds >= 0
    assert [(p.user_id, p.rank) for p in record.participants] == [(alice, 1), (bob, 2)]


def test_finish_credits_the_economy(app_ctx, make_user, stats_for):
    code, (alice, bob) = _racing_room(make_user)
    record_finish(code, alice, 120, 45)

    stats = stats_for(alice)
    assert stats.coins == 513
    assert stats.experience == 18
    assert stats.total_score == 161
    assert stats.games_completed == 1
    assert stats.total_play_time == 120
    assert stats_for(bob).games_completed == 0


def test_fewer_moves_wins_a_time_tie(app_ctx, make_user):
    code, (alice, bob) = _racing_room(make_user)
    record_finish(code, alice, 100, 40)
    result = record_finish(code, bob, 100, 38)
    ranks = {p['user_id']: p['rank'] for p in result['room']['players']}
    assert ranks == {bob: 1, alice: 2}


def test_identical_results_rank_by_finish_order(app_ctx, make_user):
    code, (alice, bob, cara) = _racing_room(make_user, ('alice', 'bob', 'cara'), max_players=3)
    record_finish(code, cara, 90, 20)
    record_finish(code, alice, 90, 20)
    result = record_finish(code, bob, 90, 20)
    ranks = {p['user_id']: p['rank'] for p in result['room']['players']}
    assert ranks == {cara: 1, alice: 2, bob: 3}
    assert GameRecord.query.one().winner_user_id == cara


def test_finish_preconditions(app_ctx, make_user):
    code, (alice, bob) = _racing_room(make_user)
    outsider = make_user('mallory')
    record_finish(code, alice, 120, 45)

    with pytest.raises(PreconditionFailed):
        record_finish(code, alice, 110, 40)
    with pytest.raises(NotFound):
        record_finish(code, outsider, 110, 40)
    with pytest.raises(NotFound):
        record_finish('NOPE1234', alice, 110, 40)

    record_finish(code, bob, 150, 52)
    with pytest.raises(PreconditionFailed):
        record_finish(code, bob, 100, 40)
    assert GameRecord.query.count() == 1


def test_reset_and_race_again(app_ctx, make_user):
    code, (alice, bob) = _racing_room(make_user)
    with pytest.raises(PreconditionFailed):
        reset_room(code, alice)
    record_finish(code, alice, 120, 45)
    record_finish(code, bob, 150, 52)

    room = reset_room(code, alice)
    assert room['status'] == 'waiting'
    assert room['game_started_at'] is None
    assert all(p['completion_time'] is None and p['rank'] is None for p in room['players'])

    set_ready(code, bob)
    start_game(code, alice)
    record_finish(code, bob, 80, 30)
    record_finish(code, alice, 95, 30)

    # History survives the reset and is newest first
    history = get_multiplayer_history(alice)
    assert history['pagination']['total'] == 2
    latest, earlier = history['records']
    assert latest['is_winner'] is False and latest['my_rank'] == 2
    assert earlier['is_winner'] is True and earlier['winner_username'] == 'alice'
    assert earlier['my_completion_time'] == 120


def test_reset_refuses_when_code_was_reused(app_ctx, make_user, monkeypatch):
    code, (alice, bob) = _racing_room(make_user)
    record_finish(code, alice, 120, 45)
    record_finish(code, bob, 150, 52)

    # A finished room frees its code for the next room
    cara = make_user('cara')
    monkeypatch.setattr(registry, 'generate_room_code', lambda length=8: code)
    assert create_room(cara, 'Rematch', PUZZLE)['code'] == code

    with pytest.raises(Conflict):
        reset_room(code, alice)


def test_leaving_mid_race_settles_when_rest_are_done(app_ctx, make_user):
    code, (alice, bob) = _racing_room(make_user)
    record_finish(code, alice, 120, 45)

    result = leave_room(code, bob)
    assert result['status'] == 'finished'
    record = GameRecord.query.one()
    assert record.total_players == 1
    assert record.winner_user_id == alice


def test_finish_order_stays_unique_after_a_finisher_leaves(app_ctx, make_user):
    code, (alice, bob, cara) = _racing_room(make_user, ('alice', 'bob', 'cara'), max_players=3)
    record_finish(code, alice, 90, 20)
    record_finish(code, cara, 90, 20)
    leave_room(code, alice)
    result = record_finish(code, bob, 90, 20)
    assert result['game_ended'] is True
    ranks = {p['user_id']: p['rank'] for p in result['room']['players']}
    assert ranks == {cara: 1, bob: 2}


def test_illegal_transition_is_an_invariant_violation(app_ctx):
    room = Room(code='ABCD1234', status=RoomStatus.CLOSED)
    with pytest.raises(InvariantViolation):
        room.transition_to(RoomStatus.WAITING)
    room = Room(code='ABCD1234', status=RoomStatus.WAITING)
    with pytest.raises(InvariantViolation):
        room.transition_to(RoomStatus.FINISHED)


def _active_rooms(user_id):
    return (Room.query.join(Player)
            .filter(Player.user_id == user_id, Room.status.in_(ACTIVE_ROOM_STATUSES)).count())


def _finished_race(make_user):
    code, ids = _racing_room(make_user)
    for user_id in ids:
        record_finish(code, user_id, 120, 45)
    return code, ids


def test_reset_drops_members_who_moved_to_another_room(app_ctx, make_user):
    code, (alice, bob) = _finished_race(make_user)
    cara = make_user('cara')
    other = create_room(cara, 'Elsewhere', PUZZLE)['code']
    join_room(other, bob, 'bob')

    room = reset_room(code, alice)
    assert room['status'] == 'waiting'
    assert room['current_players'] == 1
    assert [p['user_id'] for p in room['players']] == [alice]
    assert _active_rooms(bob) == 1
    assert _active_rooms(alice) == 1


def test_reset_hands_over_host_when_host_moved_on(app_ctx, make_user):
    code, (alice, bob) = _finished_race(make_user)
    cara = make_user('cara')
    other = create_room(cara, 'Elsewhere', PUZZLE)['code']
    join_room(other, alice, 'alice')

    room = reset_room(code, bob)
    assert room['host_user_id'] == bob
    assert [(p['user_id'], p['is_host']) for p in room['players']] == [(bob, True)]
    assert _active_rooms(alice) == 1


def test_reset_refused_for_a_caller_in_another_room(app_ctx, make_user):
    code, (alice, bob) = _finished_race(make_user)
    cara = make_user('cara')
    other = create_room(cara, 'Elsewhere', PUZZLE)['code']
    join_room(other, bob, 'bob')

    with pytest.raises(Conflict):
        reset_room(code, bob)
    assert Room.query.filter_by(code=code).one().status == RoomStatus.FINISHED
    assert _active_rooms(bob) == 1


def test_disconnected_player_counts_as_not_ready(app_ctx, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    code = create_room(alice, 'Race', PUZZLE)['code']
    join_room(code, bob, 'bob')
    Player.query.filter_by(user_id=bob).one().status = PlayerStatus.DISCONNECTED
    db.session.commit()

    with pytest.raises(PreconditionFailed) as exc:
        start_game(code, alice)
    assert exc.value.details['unready_user_ids'] == [bob]
    assert Player.query.filter_by(user_id=bob).one().status == PlayerStatus.DISCONNECTED

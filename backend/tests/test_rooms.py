from conftest import auth

PUZZLE = {'difficulty': 'easy', 'grid_size': '3x3', 'piece_shape': 'square'}


def _create(client, user_id, **extra):
    body = {'name': 'Friday race', 'puzzle_config': PUZZLE}
    body.update(extra)
    return client.post('/api/multiplayer/rooms', json=body, headers=auth(user_id))


def test_requires_identity(client):
    res = client.post('/api/multiplayer/rooms', json={'name': 'x', 'puzzle_config': PUZZLE})
    assert res.status_code == 401
    assert res.get_json()['code'] == 'UNAUTHORIZED'
    # Unknown ids are treated like missing ones
    res = client.get('/api/multiplayer/history', headers=auth(999))
    assert res.status_code == 401


def test_create_room(client, make_user):
    alice = make_user('alice')
    res = _create(client, alice)
    assert res.status_code == 201
    room = res.get_json()['room']
    assert len(room['code']) == 8
    assert room['code'].isalnum() and room['code'].upper() == room['code']
    assert room['status'] == 'waiting'
    assert room['host_user_id'] == alice
    assert room['current_players'] == 1
    assert room['puzzle_config']['grid_size'] == '3x3'
    assert [p['is_host'] for p in room['players']] == [True]


def test_create_room_validates_input(client, make_user):
    alice = make_user('alice')
    res = _create(client, alice, puzzle_config={'difficulty': 'easy', 'grid_size': '7x7'})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'VALIDATION_ERROR'
    res = _create(client, alice, max_players=5)
    assert res.status_code == 400
    res = _create(client, alice, name='   ')
    assert res.status_code == 400


def test_join_and_fetch(client, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    code = _create(client, alice).get_json()['room']['code']

    # Codes are matched case-insensitively
    res = client.post('/api/multiplayer/rooms/join', json={'room_code': code.lower()}, headers=auth(bob))
    assert res.status_code == 200
    room = res.get_json()['room']
    assert room['current_players'] == 2
    assert [p['username'] for p in room['players']] == ['alice', 'bob']

    res = client.get(f'/api/multiplayer/rooms/{code}', headers=auth(alice))
    assert res.status_code == 200
    assert res.get_json()['room']['current_players'] == 2


def test_join_rejections(client, make_user):
    alice, bob, cara = make_user('alice'), make_user('bob'), make_user('cara')
    code = _create(client, alice).get_json()['room']['code']
    client.post('/api/multiplayer/rooms/join', json={'room_code': code}, headers=auth(bob))

    res = client.post('/api/multiplayer/rooms/join', json={'room_code': code}, headers=auth(cara))
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Room is full'

    res = client.post('/api/multiplayer/rooms/join', json={'room_code': 'ZZZZZZZZ'}, headers=auth(cara))
    assert res.status_code == 404

    # bob is already sitting in an active room
    other = _create(client, cara).get_json()['room']['code']
    res = client.post('/api/multiplayer/rooms/join', json={'room_code': other}, headers=auth(bob))
    assert res.status_code == 409
    assert res.get_json()['details']['current_room']['code'] == code

    res = client.post('/api/multiplayer/rooms/join', json={}, headers=auth(cara))
    assert res.status_code == 400


def test_ready_and_start(client, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    code = _create(client, alice).get_json()['room']['code']

    # Host alone cannot start
    res = client.post(f'/api/multiplayer/rooms/{code}/start', headers=auth(alice))
    assert res.status_code == 400
    assert res.get_json()['code'] == 'PRECONDITION_FAILED'

    client.post('/api/multiplayer/rooms/join', json={'room_code': code}, headers=auth(bob))
    res = client.post(f'/api/multiplayer/rooms/{code}/start', headers=auth(alice))
    assert res.status_code == 400
    assert res.get_json()['details']['unready_user_ids'] == [bob]

    res = client.post(f'/api/multiplayer/rooms/{code}/ready', headers=auth(bob))
    assert res.status_code == 200
    room = res.get_json()['room']
    assert room['status'] == 'waiting'
    assert room['players'][1]['status'] == 'ready'

    res = client.post(f'/api/multiplayer/rooms/{code}/start', headers=auth(bob))
    assert res.status_code == 403
    assert res.get_json()['code'] == 'HOST_REQUIRED'

    res = client.post(f'/api/multiplayer/rooms/{code}/start', headers=auth(alice))
    assert res.status_code == 200
    room = res.get_json()['room']
    assert room['status'] == 'playing'
    assert room['game_started_at'] is not None
    assert {p['status'] for p in room['players']} == {'playing'}

    # No joining or readying once the race is on
    res = client.post(f'/api/multiplayer/rooms/{code}/ready', headers=auth(bob))
    assert res.status_code == 400


def test_everyone_ready_shows_ready_and_can_still_start(client, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    code = _create(client, alice).get_json()['room']['code']
    client.post('/api/multiplayer/rooms/join', json={'room_code': code}, headers=auth(bob))
    client.post(f'/api/multiplayer/rooms/{code}/ready', headers=auth(bob))
    res = client.post(f'/api/multiplayer/rooms/{code}/ready', headers=auth(alice))
    assert res.get_json()['room']['status'] == 'ready'

    res = client.post(f'/api/multiplayer/rooms/{code}/start', headers=auth(alice))
    assert res.status_code == 200
    assert res.get_json()['room']['status'] == 'playing'


def test_full_race_over_http(client, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    code = _create(client, alice).get_json()['room']['code']
    client.post('/api/multiplayer/rooms/join', json={'room_code': code}, headers=auth(bob))
    client.post(f'/api/multiplayer/rooms/{code}/ready', headers=auth(bob))
    client.post(f'/api/multiplayer/rooms/{code}/start', headers=auth(alice))

    res = client.post(f'/api/multiplayer/rooms/{code}/finish',
                      json={'completion_time': 120, 'moves_count': 45}, headers=auth(alice))
    assert res.status_code == 200
    assert res.get_json()['game_ended'] is False

    res = client.post(f'/api/multiplayer/rooms/{code}/finish',
                      json={'completionTime': 150, 'movesCount': 52}, headers=auth(bob))
    body = res.get_json()
    assert body['game_ended'] is True
    assert body['room']['status'] == 'finished'
    ranks = {p['username']: p['rank'] for p in body['room']['players']}
    assert ranks == {'alice': 1, 'bob': 2}

    res = client.get('/api/multiplayer/history', headers=auth(bob))
    records = res.get_json()['records']
    assert len(records) == 1
    assert records[0]['winner_username'] == 'alice'
    assert records[0]['my_rank'] == 2
    assert records[0]['is_winner'] is False

    res = client.post(f'/api/multiplayer/rooms/{code}/reset', headers=auth(bob))
    assert res.status_code == 200
    room = res.get_json()['room']
    assert room['status'] == 'waiting'
    assert all(p['status'] == 'joined' and p['rank'] is None for p in room['players'])


def test_finish_validates_result(client, make_user):
    alice = make_user('alice')
    code = _create(client, alice).get_json()['room']['code']
    res = client.post(f'/api/multiplayer/rooms/{code}/finish',
                      json={'completion_time': 'soon', 'moves_count': 4}, headers=auth(alice))
    assert res.status_code == 400
    res = client.post(f'/api/multiplayer/rooms/{code}/finish',
                      json={'completion_time': 10, 'moves_count': 4}, headers=auth(alice))
    assert res.status_code == 400
    assert res.get_json()['code'] == 'PRECONDITION_FAILED'


def test_leave_hands_over_host_then_closes(client, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    code = _create(client, alice).get_json()['room']['code']
    client.post('/api/multiplayer/rooms/join', json={'room_code': code}, headers=auth(bob))

    res = client.post(f'/api/multiplayer/rooms/{code}/leave', headers=auth(alice))
    assert res.status_code == 200
    body = res.get_json()
    assert body['new_host_user_id'] == bob
    assert body['status'] == 'waiting'

    room = client.get(f'/api/multiplayer/rooms/{code}', headers=auth(bob)).get_json()['room']
    assert room['host_user_id'] == bob
    assert room['current_players'] == 1
    assert room['players'][0]['is_host'] is True

    res = client.post(f'/api/multiplayer/rooms/{code}/leave', headers=auth(alice))
    assert res.status_code == 404

    res = client.post(f'/api/multiplayer/rooms/{code}/leave', headers=auth(bob))
    assert res.get_json()['status'] == 'closed'

    # A closed room can no longer be joined
    res = client.post('/api/multiplayer/rooms/join', json={'room_code': code}, headers=auth(alice))
    assert res.status_code == 404


def test_history_pagination_is_capped(client, make_user):
    alice = make_user('alice')
    res = client.get('/api/multiplayer/history?limit=500', headers=auth(alice))
    assert res.status_code == 200
    assert res.get_json()['pagination']['limit'] == 100
    res = client.get('/api/multiplayer/history?page=zero', headers=auth(alice))
    assert res.status_code == 400

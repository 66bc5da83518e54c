import pytest

from conftest import auth
from puzzlerace.errors import Conflict, InsufficientCoins, ValidationError
from puzzlerace.models import OwnedItem
from puzzlerace.services.economy.wallet import acquire_item, grant_rewards, list_owned_items


def test_each_request_acts_as_its_own_user(client, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    for user_id, name in [(alice, 'alice'), (bob, 'bob'), (alice, 'alice')]:
        res = client.get('/api/users/profile', headers=auth(user_id))
        assert res.status_code == 200
        assert res.get_json()['user']['username'] == name


def test_grant_rewards_levels_up(app_ctx, make_user, stats_for):
    alice = make_user('alice')
    result = grant_rewards(alice, 50, 300)
    assert result['old_coins'] == 500 and result['new_coins'] == 550
    assert result['old_experience'] == 0 and result['new_experience'] == 300
    assert result['old_level'] == 1
    assert result['leveled_up'] is True
    assert result['new_level'] == 2 and result['levels_gained'] == 1
    assert stats_for(alice).coins == 550


def test_grant_rewards_never_leaves_a_negative_balance(client, make_user, stats_for):
    alice = make_user('alice')
    res = client.post('/api/users/rewards', json={'coins': -600}, headers=auth(alice))
    assert res.status_code == 400
    assert res.get_json()['code'] == 'INSUFFICIENT_COINS'
    assert stats_for(alice).coins == 500

    res = client.post('/api/users/rewards', json={'coins': -500, 'experience': 5}, headers=auth(alice))
    assert res.status_code == 200
    assert res.get_json()['new_coins'] == 0
    assert stats_for(alice).experience == 5


def test_grant_rewards_validation(app_ctx, make_user):
    alice = make_user('alice')
    with pytest.raises(ValidationError):
        grant_rewards(alice, '10', 0)
    with pytest.raises(ValidationError):
        grant_rewards(alice, 0, -1)
    with pytest.raises(ValidationError):
        grant_rewards(alice, 1000000, 0)


def test_acquire_item_debits_once(app_ctx, make_user, stats_for):
    alice = make_user('alice')
    result = acquire_item(alice, 'avatar', 'fox', cost=120)
    assert result == {'item_type': 'avatar', 'item_id': 'fox', 'cost': 120, 'coins': 380}

    with pytest.raises(Conflict):
        acquire_item(alice, 'avatar', 'fox', cost=120)
    assert stats_for(alice).coins == 380

    # Free items leave the balance alone
    assert acquire_item(alice, 'theme', 'night')['coins'] is None
    assert OwnedItem.query.filter_by(user_id=alice).count() == 2


def test_acquire_item_refuses_when_short(app_ctx, make_user, stats_for):
    alice = make_user('alice')
    with pytest.raises(InsufficientCoins) as exc:
        acquire_item(alice, 'avatar_frame', 'gold', cost=501)
    assert exc.value.details == {'balance': 500, 'required': 501}
    assert stats_for(alice).coins == 500
    assert OwnedItem.query.count() == 0

    with pytest.raises(ValidationError):
        acquire_item(alice, 'spaceship', 'x')
    with pytest.raises(ValidationError):
        acquire_item(alice, 'avatar', '')
    with pytest.raises(ValidationError):
        acquire_item(alice, 'avatar', 'fox', cost=-5)


def test_owned_items_are_grouped_by_type(app_ctx, make_user):
    alice, bob = make_user('alice'), make_user('bob')
    acquire_item(alice, 'avatar', 'fox')
    acquire_item(alice, 'avatar', 'owl')
    acquire_item(alice, 'decoration', 'lamp')
    acquire_item(bob, 'avatar', 'fox')

    owned = list_owned_items(alice)
    assert owned['owned_items'] == ['decoration_lamp', 'avatar_owl', 'avatar_fox']
    assert [i['id'] for i in owned['items_by_type']['avatar']] == ['owl', 'fox']
    assert list(owned['items_by_type']) == ['decoration', 'avatar']
    assert list_owned_items(make_user('cara')) == {'owned_items': [], 'items_by_type': {}}


def test_shop_endpoints(client, make_user, stats_for):
    alice = make_user('alice')
    res = client.post('/api/users/acquire-item', json={'itemType': 'theme', 'itemId': 'forest', 'cost': 200},
                      headers=auth(alice))
    assert res.status_code == 201
    assert res.get_json()['coins'] == 300

    res = client.post('/api/users/acquire-item', json={'item_type': 'theme', 'item_id': 'forest'},
                      headers=auth(alice))
    assert res.status_code == 409

    res = client.post('/api/users/acquire-item', json={'item_type': 'theme', 'item_id': 'desert', 'cost': 400},
                      headers=auth(alice))
    assert res.status_code == 400
    assert res.get_json()['code'] == 'INSUFFICIENT_COINS'
    assert stats_for(alice).coins == 300

    owned = client.get('/api/users/owned-items', headers=auth(alice)).get_json()
    assert owned['owned_items'] == ['theme_forest']
    assert client.get('/api/users/owned-items').status_code == 401

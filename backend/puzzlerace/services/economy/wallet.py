"""Coin spending and direct reward grants."""
from collections import OrderedDict

from flask import current_app

from puzzlerace import db
from puzzlerace.errors import Conflict, ValidationError
from puzzlerace.models import ItemType, OwnedItem
from puzzlerace.puzzles import parse_enum
from puzzlerace.storage import transaction
from .stats import adjust_balance, debit

MAX_REWARD = 999999


def _int_in_range(value, field, low, high):
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ValidationError(f'{field} must be an integer between {low} and {high}', field=field)
    return value


def grant_rewards(user_id, coins, experience):
    """Credit (or, for negative ``coins``, charge) a user outside of a game."""
    coins = _int_in_range(coins, 'coins', -MAX_REWARD, MAX_REWARD)
    experience = _int_in_range(experience, 'experience', 0, MAX_REWARD)
    with transaction():
        before, stats, change = adjust_balance(user_id, coins, experience)
        result = {
            'old_level': change.old_level,
            'new_level': change.new_level,
            'old_experience': before['experience'],
            'new_experience': stats.experience,
            'old_coins': before['coins'],
            'new_coins': stats.coins,
            'leveled_up': change.leveled_up,
            'levels_gained': change.levels_gained,
            'coins_gained': coins,
            'experience_gained': experience,
        }
    current_app.logger.info(f"[rewards-grant] user={user_id} coins={coins} exp={experience}")
    return result


def acquire_item(user_id, item_type, item_id, cost=0):
    item_type = parse_enum(ItemType, item_type, 'item_type')
    if not isinstance(item_id, str) or not 1 <= len(item_id) <= 50:
        raise ValidationError('item_id must be 1-50 characters', field='item_id')
    cost = _int_in_range(cost, 'cost', 0, MAX_REWARD)

    with transaction():
        owned = OwnedItem.query.filter_by(user_id=user_id, item_type=item_type, item_id=item_id).first()
        if owned is not None:
            raise Conflict('Item already owned', item_type=item_type.value, item_id=item_id)
        balance = debit(user_id, cost) if cost > 0 else None
        db.session.add(OwnedItem(user_id=user_id, item_type=item_type, item_id=item_id))
    current_app.logger.info(f"[item-acquire] user={user_id} item={item_type.value}:{item_id} cost={cost}")
    return {'item_type': item_type.value, 'item_id': item_id, 'cost': cost, 'coins': balance}


def list_owned_items(user_id):
    items = (OwnedItem.query.filter_by(user_id=user_id)
             .order_by(OwnedItem.acquired_at.desc(), OwnedItem.id.desc()).all())
    by_type = OrderedDict()
    for item in items:
        by_type.setdefault(item.item_type.value, []).append(
            {'id': item.item_id, 'acquired_at': item.to_dict()['acquired_at']}
        )
    return {
        'owned_items': [f'{item.item_type.value}_{item.item_id}' for item in items],
        'items_by_type': by_type,
    }

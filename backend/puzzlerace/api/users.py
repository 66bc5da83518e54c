from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from puzzlerace.api import json_body
from puzzlerace.services.economy.completions import get_profile
from puzzlerace.services.economy.wallet import acquire_item, grant_rewards, list_owned_items


users = Blueprint('users', __name__)


@users.route('/profile')
@login_required
def profile():
    return jsonify({'user': get_profile(current_user.id)})


@users.route('/rewards', methods=['POST'])
@login_required
def rewards():
    data = json_body()
    return jsonify(grant_rewards(current_user.id, data.get('coins', 0), data.get('experience', 0)))


@users.route('/owned-items')
@login_required
def owned_items():
    return jsonify(list_owned_items(current_user.id))


@users.route('/acquire-item', methods=['POST'])
@login_required
def acquire():
    data = json_body()
    result = acquire_item(
        current_user.id,
        data.get('item_type') or data.get('itemType'),
        data.get('item_id') or data.get('itemId'),
        cost=data.get('cost', 0),
    )
    return jsonify(result), 201

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from puzzlerace.api import json_body
from puzzlerace.errors import ValidationError
from puzzlerace.services.achievements import (
    achievement_stats, apply_progress, apply_progress_batch, list_achievements,
)


achievements = Blueprint('achievements', __name__)


@achievements.route('/', methods=['GET'])
def get_achievements():
    user_id = current_user.id if current_user.is_authenticated else None
    return jsonify(list_achievements(user_id))


@achievements.route('/unlock', methods=['POST'])
@login_required
def unlock():
    data = json_body()
    achievement_id = data.get('achievement_id') or data.get('achievementId')
    if not achievement_id or not isinstance(achievement_id, str):
        raise ValidationError('achievement_id is required', field='achievement_id')
    return jsonify(apply_progress(current_user.id, achievement_id, data.get('progress', 1)))


@achievements.route('/batch-update', methods=['POST'])
@login_required
def batch_update():
    data = json_body()
    items = data.get('achievements')
    if not isinstance(items, list):
        raise ValidationError('achievements must be a list', field='achievements')
    updates = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError('Each achievement update must be an object', field='achievements')
        achievement_id = item.get('id') or item.get('achievement_id')
        if not achievement_id or not isinstance(achievement_id, str):
            raise ValidationError('Each achievement update needs an id', field='achievements')
        updates.append((achievement_id, item.get('progress', 1)))
    return jsonify(apply_progress_batch(current_user.id, updates))


@achievements.route('/stats')
@login_required
def stats():
    return jsonify(achievement_stats(current_user.id))

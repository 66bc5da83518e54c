from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from puzzlerace.api import json_body, page_args
from puzzlerace.puzzles import SoloCompletion
from puzzlerace.services import leaderboard
from puzzlerace.services.economy.completions import (
    complete_solo_game, delete_solo_game, get_solo_history, get_solo_stats,
)


games = Blueprint('games', __name__)


@games.route('/complete', methods=['POST'])
@login_required
def complete_game():
    completion = SoloCompletion.from_dict(json_body())
    result = complete_solo_game(current_user.id, current_user.username, completion)
    return jsonify(result), 201


@games.route('/history')
@login_required
def history():
    page, limit = page_args(current_app.config.get('HISTORY_PAGE_LIMIT', 20))
    return jsonify(get_solo_history(
        current_user.id,
        page=page,
        limit=limit,
        difficulty=request.args.get('difficulty'),
        piece_shape=request.args.get('piece_shape'),
    ))


@games.route('/leaderboard')
def get_leaderboard():
    # Anonymous callers get the board without their own rank
    page, limit = page_args(current_app.config.get('LEADERBOARD_PAGE_LIMIT', 50))
    user_id = current_user.id if current_user.is_authenticated else None
    return jsonify(leaderboard.get_leaderboard(
        sort_by=request.args.get('sort_by', 'completion_time'),
        difficulty=request.args.get('difficulty'),
        piece_shape=request.args.get('piece_shape'),
        page=page,
        limit=limit,
        user_id=user_id,
    ))


@games.route('/stats')
@login_required
def stats():
    return jsonify(get_solo_stats(current_user.id))


@games.route('/<game_id>', methods=['DELETE'])
@login_required
def delete_game(game_id):
    delete_solo_game(current_user.id, game_id)
    return jsonify({'message': 'Game record deleted'})

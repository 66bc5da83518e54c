from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from puzzlerace.api import json_body, page_args
from puzzlerace.errors import ValidationError
from puzzlerace.puzzles import PuzzleConfig
from puzzlerace.services import rooms as svc


rooms = Blueprint('rooms', __name__)


@rooms.route('/rooms', methods=['POST'])
@login_required
def create_room():
    data = json_body()
    config = PuzzleConfig.from_dict(data.get('puzzle_config') or data.get('puzzleConfig'), room=True)
    max_players = data.get('max_players', data.get('maxPlayers', 2))
    room = svc.create_room(current_user.id, data.get('name'), config, max_players=max_players)
    return jsonify({'message': 'Room created', 'room': room}), 201


@rooms.route('/rooms/join', methods=['POST'])
@login_required
def join_room():
    data = json_body()
    code = data.get('room_code') or data.get('roomCode')
    if not code or not isinstance(code, str):
        raise ValidationError('room_code is required', field='room_code')
    room = svc.join_room(code, current_user.id, current_user.username)
    return jsonify({'message': 'Joined room', 'room': room})


@rooms.route('/rooms/<code>')
@login_required
def get_room(code):
    return jsonify({'room': svc.get_room_by_code(code)})


@rooms.route('/rooms/<code>/ready', methods=['POST'])
@login_required
def set_ready(code):
    return jsonify({'room': svc.set_ready(code, current_user.id)})


@rooms.route('/rooms/<code>/start', methods=['POST'])
@login_required
def start_game(code):
    return jsonify({'message': 'Game started', 'room': svc.start_game(code, current_user.id)})


@rooms.route('/rooms/<code>/finish', methods=['POST'])
@login_required
def finish_game(code):
    data = json_body()
    completion_time = data.get('completion_time', data.get('completionTime'))
    moves_count = data.get('moves_count', data.get('movesCount'))
    result = svc.record_finish(code, current_user.id, completion_time, moves_count)
    return jsonify(result)


@rooms.route('/rooms/<code>/reset', methods=['POST'])
@login_required
def reset_room(code):
    return jsonify({'message': 'Room reset', 'room': svc.reset_room(code, current_user.id)})


@rooms.route('/rooms/<code>/leave', methods=['POST'])
@login_required
def leave_room(code):
    result = svc.leave_room(code, current_user.id)
    return jsonify({'message': 'Left room', **result})


@rooms.route('/history')
@login_required
def history():
    page, limit = page_args(10)
    return jsonify(svc.get_multiplayer_history(current_user.id, page=page, limit=limit))

"""Sparse solo leaderboard.

Only completions that set a personal record, or score above the configured
threshold, are appended. Entries are never updated or removed.
"""
import math

from flask import current_app

from puzzlerace import db
from puzzlerace.errors import ValidationError
from puzzlerace.models import LeaderboardEntry
from puzzlerace.puzzles import Difficulty, PieceShape, parse_enum


SORT_KEYS = {
    'completion_time': lambda: [LeaderboardEntry.completion_time.asc(), LeaderboardEntry.id.asc()],
    'moves': lambda: [LeaderboardEntry.moves.asc(), LeaderboardEntry.id.asc()],
    'score': lambda: [LeaderboardEntry.score.desc(), LeaderboardEntry.id.asc()],
}


def qualifies(new_record: bool, score: int) -> bool:
    return new_record or score > current_app.config.get('LEADERBOARD_SCORE_THRESHOLD', 1000)


def append_entry(user_id, username, completion, score):
    entry = LeaderboardEntry(
        user_id=user_id,
        username=username,
        puzzle_name=completion.puzzle_name,
        difficulty=completion.difficulty.value,
        piece_shape=completion.piece_shape.value,
        grid_size=completion.grid_size,
        completion_time=completion.completion_time,
        moves=completion.moves,
        score=score,
    )
    db.session.add(entry)
    return entry


def _filters(difficulty, piece_shape):
    filters = []
    if difficulty:
        filters.append(LeaderboardEntry.difficulty == parse_enum(Difficulty, difficulty, 'difficulty').value)
    if piece_shape:
        filters.append(LeaderboardEntry.piece_shape == parse_enum(PieceShape, piece_shape, 'piece_shape').value)
    return filters


def get_leaderboard(sort_by='completion_time', difficulty=None, piece_shape=None,
                    page=1, limit=None, user_id=None):
    if sort_by not in SORT_KEYS:
        raise ValidationError(f'sort_by must be one of: {", ".join(SORT_KEYS)}', field='sort_by')
    limit = limit or current_app.config.get('LEADERBOARD_PAGE_LIMIT', 50)
    page = max(1, page)
    offset = (page - 1) * limit
    order = SORT_KEYS[sort_by]()
    filters = _filters(difficulty, piece_shape)

    rows = (LeaderboardEntry.query.filter(*filters)
            .order_by(*order).offset(offset).limit(limit).all())
    total = LeaderboardEntry.query.filter(*filters).count()

    user_rank = None
    if user_id is not None:
        ranked = (db.session.query(
            LeaderboardEntry.user_id.label('user_id'),
            db.func.row_number().over(order_by=order).label('rank'),
        ).filter(*filters).subquery())
        user_rank = db.session.query(db.func.min(ranked.c.rank)).filter(ranked.c.user_id == user_id).scalar()

    entries = []
    for position, row in enumerate(rows, start=offset + 1):
        entry = row.to_dict()
        entry['rank'] = position
        entries.append(entry)

    return {
        'leaderboard': entries,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': math.ceil(total / limit) if limit else 0,
        },
        'user_rank': user_rank,
        'filters': {'difficulty': difficulty, 'piece_shape': piece_shape, 'sort_by': sort_by},
    }

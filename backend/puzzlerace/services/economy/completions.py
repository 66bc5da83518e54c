import math
from collections import OrderedDict
from datetime import datetime, time, timedelta

from flask import current_app

from puzzlerace import db
from puzzlerace.errors import NotFound
from puzzlerace.models import BestTime, RecentGame, SoloGameRecord, User, UserStats
from puzzlerace.puzzles import Difficulty, PieceShape, parse_enum
from puzzlerace.services import leaderboard
from puzzlerace.storage import locked, transaction, utcnow
from .leveling import level_progress
from .rewards import compute_rewards, compute_score, is_new_record
from .stats import record_completed_game


def complete_solo_game(user_id, username, completion):
    """Record one finished single-player puzzle and pay out its rewards."""
    with transaction():
        reward = compute_rewards(completion.difficulty, completion.total_pieces,
                                 completion.completion_time, completion.moves)
        score = compute_score(completion.difficulty, completion.total_pieces,
                              completion.completion_time, completion.moves)

        record = SoloGameRecord(
            user_id=user_id,
            puzzle_name=completion.puzzle_name,
            difficulty=completion.difficulty.value,
            piece_shape=completion.piece_shape.value,
            grid_size=completion.grid_size,
            total_pieces=completion.total_pieces,
            completion_time=completion.completion_time,
            moves=completion.moves,
            score=score,
            coins_earned=reward.coins,
            experience_earned=reward.experience,
        )
        db.session.add(record)

        best = locked(BestTime.query.filter_by(
            user_id=user_id,
            difficulty=completion.difficulty.value,
            piece_shape=completion.piece_shape.value,
            grid_size=completion.grid_size,
        )).first()
        new_record = is_new_record(completion.completion_time, completion.moves, best)
        if new_record:
            _store_best(best, user_id, completion)

        change = record_completed_game(user_id, reward, score, completion.completion_time)
        _remember_recent(user_id, completion)

        added = leaderboard.qualifies(new_record, score)
        if added:
            leaderboard.append_entry(user_id, username, completion, score)
        db.session.flush()
        game_id = record.id

    current_app.logger.info(
        f"[solo-complete] user={user_id} difficulty={completion.difficulty.value} grid={completion.grid_size} "
        f"time={completion.completion_time}s moves={completion.moves} score={score}"
    )
    return {
        'game_id': game_id,
        'score': score,
        'rewards': reward.to_dict(),
        'is_new_record': new_record,
        'leveled_up': change.leveled_up,
        'level_info': change.to_dict() if change.leveled_up else None,
        'added_to_leaderboard': added,
    }


def _store_best(best, user_id, completion):
    if best is None:
        db.session.add(BestTime(
            user_id=user_id,
            difficulty=completion.difficulty.value,
            piece_shape=completion.piece_shape.value,
            grid_size=completion.grid_size,
            best_time=completion.completion_time,
            best_moves=completion.moves,
        ))
        return
    # Only reached for a strictly better (time, moves) pair
    best.best_time = completion.completion_time
    best.best_moves = completion.moves


def _remember_recent(user_id, completion):
    db.session.add(RecentGame(
        user_id=user_id,
        moves=completion.moves,
        total_pieces=completion.total_pieces,
        completion_time=completion.completion_time,
    ))
    db.session.flush()
    keep = current_app.config.get('RECENT_GAMES_KEPT', 10)
    stale = (RecentGame.query.filter_by(user_id=user_id)
             .order_by(RecentGame.played_at.desc(), RecentGame.id.desc())
             .offset(keep).all())
    for row in stale:
        db.session.delete(row)


def get_solo_history(user_id, page=1, limit=None, difficulty=None, piece_shape=None):
    limit = limit or current_app.config.get('HISTORY_PAGE_LIMIT', 20)
    page = max(1, page)
    query = SoloGameRecord.query.filter_by(user_id=user_id)
    if difficulty:
        query = query.filter_by(difficulty=parse_enum(Difficulty, difficulty, 'difficulty').value)
    if piece_shape:
        query = query.filter_by(piece_shape=parse_enum(PieceShape, piece_shape, 'piece_shape').value)
    total = query.count()
    games = (query.order_by(SoloGameRecord.completed_at.desc())
             .offset((page - 1) * limit).limit(limit).all())
    return {
        'games': [g.to_dict() for g in games],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': math.ceil(total / limit),
        },
    }


def get_profile(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')
    stats = UserStats.query.filter_by(user_id=user_id).first()
    if stats is None:
        raise NotFound('User stats not found')
    recent = (RecentGame.query.filter_by(user_id=user_id)
              .order_by(RecentGame.played_at.desc(), RecentGame.id.desc()).all())
    profile = user.to_dict()
    profile.update(stats.to_dict())
    profile['level_progress'] = level_progress(stats.level, stats.experience)
    profile['recent_games'] = [
        {'moves': r.moves, 'total_pieces': r.total_pieces, 'completion_time': r.completion_time}
        for r in recent
    ]
    return profile


def _rounded(value):
    # Averages come back as float or Decimal depending on the dialect
    return int(float(value) + 0.5) if value is not None else 0


def get_solo_stats(user_id):
    """Aggregates over a user's solo games: overall, per difficulty and shape, last 7 days."""
    g = SoloGameRecord
    basic = (db.session.query(
        db.func.count(g.id), db.func.avg(g.completion_time), db.func.min(g.completion_time),
        db.func.avg(g.moves), db.func.min(g.moves), db.func.max(g.score),
        db.func.sum(g.coins_earned), db.func.sum(g.experience_earned),
    ).filter(g.user_id == user_id).one())

    per_difficulty = (db.session.query(
        g.difficulty, db.func.count(g.id), db.func.avg(g.completion_time), db.func.min(g.completion_time),
        db.func.avg(g.moves), db.func.min(g.moves), db.func.max(g.score),
    ).filter(g.user_id == user_id).group_by(g.difficulty).all())
    order = [d.value for d in Difficulty]
    per_difficulty.sort(key=lambda row: order.index(row[0]) if row[0] in order else len(order))

    per_shape = (db.session.query(
        g.piece_shape, db.func.count(g.id), db.func.avg(g.completion_time), db.func.min(g.completion_time),
    ).filter(g.user_id == user_id).group_by(g.piece_shape).order_by(g.piece_shape).all())

    since = datetime.combine(utcnow().date() - timedelta(days=7), time.min)
    day = db.func.date(g.completed_at)
    activity = (db.session.query(
        day, db.func.count(g.id), db.func.sum(g.coins_earned), db.func.sum(g.experience_earned),
    ).filter(g.user_id == user_id, g.completed_at >= since).group_by(day).order_by(day.desc()).all())

    bests = BestTime.query.filter_by(user_id=user_id).all()

    return {
        'basic': {
            'total_games': basic[0] or 0,
            'avg_completion_time': _rounded(basic[1]),
            'best_time': basic[2] or 0,
            'avg_moves': _rounded(basic[3]),
            'best_moves': basic[4] or 0,
            'best_score': basic[5] or 0,
            'total_coins_earned': int(basic[6] or 0),
            'total_experience_earned': int(basic[7] or 0),
        },
        'by_difficulty': OrderedDict(
            (difficulty, {
                'count': count,
                'avg_time': _rounded(avg_time),
                'best_time': best_time,
                'avg_moves': _rounded(avg_moves),
                'best_moves': best_moves,
                'best_score': best_score,
            })
            for difficulty, count, avg_time, best_time, avg_moves, best_moves, best_score in per_difficulty
        ),
        'by_shape': OrderedDict(
            (shape, {'count': count, 'avg_time': _rounded(avg_time), 'best_time': best_time})
            for shape, count, avg_time, best_time in per_shape
        ),
        'recent_activity': [
            {'date': str(date), 'games_count': count, 'coins_earned': int(coins or 0),
             'experience_earned': int(exp or 0)}
            for date, count, coins, exp in activity
        ],
        'best_records': {
            f'{b.difficulty}_{b.piece_shape}_{b.grid_size}': {'time': b.best_time, 'moves': b.best_moves}
            for b in bests
        },
    }


def delete_solo_game(user_id, game_id):
    """Remove one of the caller's own solo records. Stats and best times are left as they are."""
    with transaction():
        record = SoloGameRecord.query.filter_by(id=game_id, user_id=user_id).first()
        if record is None:
            raise NotFound('Game record not found', game_id=game_id)
        db.session.delete(record)
    current_app.logger.info(f"[solo-delete] user={user_id} game={game_id}")

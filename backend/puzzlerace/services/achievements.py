"""Achievement progress.

Progress only ever grows and is capped at the achievement's ``max_progress``.
Reaching the cap unlocks the achievement and pays its reward exactly once;
further progress on an unlocked achievement is a no-op.
"""
from collections import OrderedDict
from typing import Iterable, Tuple

from flask import current_app

from puzzlerace import db
from puzzlerace.catalog import ACHIEVEMENTS
from puzzlerace.errors import NotFound, ValidationError
from puzzlerace.models import Achievement, UserAchievement
from puzzlerace.services.economy import credit
from puzzlerace.storage import locked, transaction, utcnow


def _progress_view(achievement, progress, unlocked, unlocked_at=None):
    view = achievement.to_dict()
    view.update({
        'progress': progress,
        'is_unlocked': unlocked,
        'unlocked_at': unlocked_at.isoformat() if unlocked_at else None,
    })
    return view


def _advance(user_id, achievement, delta):
    """Apply ``delta`` to one achievement. Returns (row, newly_unlocked) or None if already unlocked."""
    row = locked(UserAchievement.query.filter_by(user_id=user_id, achievement_id=achievement.id)).first()
    if row is None:
        row = UserAchievement(user_id=user_id, achievement_id=achievement.id, progress=0, is_unlocked=False)
        db.session.add(row)
    elif row.is_unlocked:
        return None

    row.progress = min(row.progress + delta, achievement.max_progress)
    newly_unlocked = row.progress >= achievement.max_progress
    if newly_unlocked:
        row.is_unlocked = True
        row.unlocked_at = utcnow()
        if achievement.reward_coins or achievement.reward_experience:
            credit(user_id, achievement.reward_coins, achievement.reward_experience)
    return row, newly_unlocked


def _check_delta(delta):
    if isinstance(delta, bool) or not isinstance(delta, int) or delta < 1:
        raise ValidationError('progress must be a positive integer', field='progress')


def apply_progress(user_id, achievement_id, delta=1):
    _check_delta(delta)
    with transaction():
        achievement = db.session.get(Achievement, achievement_id)
        if achievement is None:
            raise NotFound('Achievement not found', achievement_id=achievement_id)
        result = _advance(user_id, achievement, delta)
        if result is None:
            row = UserAchievement.query.filter_by(user_id=user_id, achievement_id=achievement_id).first()
            outcome = {
                'already_unlocked': True,
                'unlocked': False,
                'rewards_given': False,
                'achievement': _progress_view(achievement, row.progress, True, row.unlocked_at),
            }
        else:
            row, newly_unlocked = result
            outcome = {
                'already_unlocked': False,
                'unlocked': newly_unlocked,
                'rewards_given': newly_unlocked and bool(achievement.reward_coins or achievement.reward_experience),
                'achievement': _progress_view(achievement, row.progress, row.is_unlocked, row.unlocked_at),
            }
    if outcome['unlocked']:
        current_app.logger.info(f"[achievement-unlock] user={user_id} achievement={achievement_id}")
    return outcome


def apply_progress_batch(user_id, updates: Iterable[Tuple[str, int]]):
    """Apply several ``(achievement_id, delta)`` pairs in one transaction.

    Unknown and already unlocked achievements are skipped.
    """
    updates = list(updates)
    for _, delta in updates:
        _check_delta(delta)
    unlocked, updated = [], []
    with transaction():
        for achievement_id, delta in updates:
            achievement = db.session.get(Achievement, achievement_id)
            if achievement is None:
                continue
            result = _advance(user_id, achievement, delta)
            if result is None:
                continue
            row, newly_unlocked = result
            view = _progress_view(achievement, row.progress, row.is_unlocked, row.unlocked_at)
            (unlocked if newly_unlocked else updated).append(view)
            db.session.flush()
    if unlocked:
        current_app.logger.info(f"[achievement-batch] user={user_id} unlocked={len(unlocked)}")
    return {'unlocked': unlocked, 'updated': updated}


def list_achievements(user_id=None):
    catalog = Achievement.query.order_by(Achievement.category, Achievement.rarity, Achievement.id).all()
    progress = {}
    if user_id is not None:
        progress = {ua.achievement_id: ua for ua in UserAchievement.query.filter_by(user_id=user_id)}

    items = []
    by_category = OrderedDict()
    for achievement in catalog:
        ua = progress.get(achievement.id)
        view = _progress_view(
            achievement,
            ua.progress if ua else 0,
            bool(ua and ua.is_unlocked),
            ua.unlocked_at if ua else None,
        )
        items.append(view)
        by_category.setdefault(achievement.category, []).append(view)
    return {
        'achievements': items,
        'achievements_by_category': by_category,
        'total': len(catalog),
        'unlocked': sum(1 for ua in progress.values() if ua.is_unlocked),
    }


def seed_achievements(definitions=ACHIEVEMENTS):
    """Insert or refresh catalog entries; user progress is left alone."""
    with transaction():
        for data in definitions:
            achievement = db.session.get(Achievement, data['id'])
            if achievement is None:
                db.session.add(Achievement(**data))
            else:
                for key, value in data.items():
                    setattr(achievement, key, value)
    return len(definitions)


RARITY_ORDER = ('common', 'rare', 'epic', 'legendary')


def _percent(part, whole):
    return int(part / whole * 100 + 0.5) if whole else 0


def achievement_stats(user_id):
    catalog = Achievement.query.all()
    unlocked = {ua.achievement_id: ua for ua in UserAchievement.query.filter_by(user_id=user_id, is_unlocked=True)}
    earned = [a for a in catalog if a.id in unlocked]

    def breakdown(key, order=()):
        position = {name: i for i, name in enumerate(order)}
        groups = OrderedDict()
        names = sorted({key(a) for a in catalog}, key=lambda n: (position.get(n, len(position)), n))
        for name in names:
            members = [a for a in catalog if key(a) == name]
            done = sum(1 for a in members if a.id in unlocked)
            groups[name] = {'total': len(members), 'unlocked': done, 'percentage': _percent(done, len(members))}
        return groups

    recent = sorted(earned, key=lambda a: unlocked[a.id].unlocked_at, reverse=True)[:10]
    return {
        'total': {
            'total_achievements': len(catalog),
            'unlocked_achievements': len(earned),
            'total_reward_coins': sum(a.reward_coins for a in earned),
            'total_reward_experience': sum(a.reward_experience for a in earned),
        },
        'by_category': breakdown(lambda a: a.category),
        'by_rarity': breakdown(lambda a: a.rarity, RARITY_ORDER),
        'recent_unlocked': [
            _progress_view(a, unlocked[a.id].progress, True, unlocked[a.id].unlocked_at) for a in recent
        ],
        'completion_percentage': _percent(len(earned), len(catalog)),
    }

from typing import NamedTuple

from flask import current_app

from puzzlerace.errors import InsufficientCoins, InvariantViolation
from puzzlerace.models import UserStats
from puzzlerace.storage import locked
from .leveling import level_from_exp


class LevelChange(NamedTuple):
    old_level: int
    new_level: int

    @property
    def leveled_up(self):
        return self.new_level > self.old_level

    @property
    def levels_gained(self):
        return max(0, self.new_level - self.old_level)

    def to_dict(self):
        return {
            'old_level': self.old_level,
            'new_level': self.new_level,
            'leveled_up': self.leveled_up,
            'levels_gained': self.levels_gained,
        }


def _locked_stats(user_id):
    stats = locked(UserStats.query.filter_by(user_id=user_id)).first()
    if stats is None:
        raise InvariantViolation(f'No stats row for user {user_id}', user_id=user_id)
    return stats


def _add_reward(stats, coins, experience):
    old_level = stats.level
    stats.coins += coins
    stats.experience += experience
    stats.level = level_from_exp(stats.experience)
    change = LevelChange(old_level, stats.level)
    if change.leveled_up:
        current_app.logger.info(f"[level-up] user={stats.user_id} {change.old_level} -> {change.new_level}")
    return change


def credit(user_id, coins, experience):
    """Add coins and experience and re-derive the level.

    Used for achievement rewards. Must run inside a transaction.
    """
    return _add_reward(_locked_stats(user_id), coins, experience)


def record_completed_game(user_id, reward, score, play_time):
    """Credit one completed game: reward, score, games played and play time."""
    stats = _locked_stats(user_id)
    change = _add_reward(stats, reward.coins, reward.experience)
    stats.total_score += score
    stats.games_completed += 1
    stats.total_play_time += play_time
    return change


def debit(user_id, coins):
    """Take ``coins`` from the balance and return what is left. Must run inside a transaction."""
    stats = _locked_stats(user_id)
    if stats.coins < coins:
        raise InsufficientCoins('Not enough coins', balance=stats.coins, required=coins)
    stats.coins -= coins
    return stats.coins


def adjust_balance(user_id, coins, experience):
    """Apply a signed coin change plus an experience gain.

    Returns the balance before the change, the stats row and the level change.
    The coin balance may never go below zero.
    """
    stats = _locked_stats(user_id)
    if stats.coins + coins < 0:
        raise InsufficientCoins('Coin balance cannot go negative', balance=stats.coins, change=coins)
    before = {'coins': stats.coins, 'experience': stats.experience}
    change = _add_reward(stats, coins, experience)
    return before, stats, change

"""Coins, experience, levels and score.

``leveling`` and ``rewards`` are pure formulas; ``stats`` applies them to a
user's stats row inside the caller's transaction; ``completions`` records
single-player results end to end; ``wallet`` spends coins and grants
rewards outside of games.
"""
from .leveling import level_from_exp, level_progress, required_exp
from .rewards import Reward, compute_rewards, compute_score, is_new_record
from .stats import LevelChange, credit, record_completed_game

__all__ = [
    'LevelChange',
    'Reward',
    'compute_rewards',
    'compute_score',
    'credit',
    'is_new_record',
    'level_from_exp',
    'level_progress',
    'record_completed_game',
    'required_exp',
]

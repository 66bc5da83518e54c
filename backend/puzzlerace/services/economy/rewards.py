from typing import NamedTuple, Optional

from puzzlerace.puzzles import Difficulty


class Reward(NamedTuple):
    coins: int
    experience: int

    def to_dict(self):
        return {'coins': self.coins, 'experience': self.experience}


BASE_REWARDS = {
    Difficulty.EASY: Reward(10, 15),
    Difficulty.MEDIUM: Reward(20, 25),
    Difficulty.HARD: Reward(35, 40),
    Difficulty.EXPERT: Reward(50, 60),
}

# Finishing at or under these many seconds earns the speed bonus
SPEED_THRESHOLDS = {
    Difficulty.EASY: 180,
    Difficulty.MEDIUM: 300,
    Difficulty.HARD: 600,
    Difficulty.EXPERT: 900,
}

BASE_SCORES = {
    Difficulty.EASY: 100,
    Difficulty.MEDIUM: 200,
    Difficulty.HARD: 350,
    Difficulty.EXPERT: 500,
}


def compute_rewards(difficulty, total_pieces: int, completion_time: int, moves: int) -> Reward:
    """Coins and experience for one completed puzzle.

    Efficiency and speed bonuses are percentages of the base reward, each
    floored and added on their own; the size bonus is a flat amount.
    """
    difficulty = Difficulty(difficulty)
    base = BASE_REWARDS[difficulty]
    coins, experience = base

    if moves <= total_pieces * 1.5:
        coins += int(base.coins * 0.5)
        experience += int(base.experience * 0.3)

    if completion_time <= SPEED_THRESHOLDS[difficulty]:
        coins += int(base.coins * 0.3)
        experience += int(base.experience * 0.2)

    if total_pieces >= 25:
        coins += 10
        experience += 15
    elif total_pieces >= 16:
        coins += 5
        experience += 8

    return Reward(coins, experience)


def compute_score(difficulty, total_pieces: int, completion_time: int, moves: int) -> int:
    score = BASE_SCORES[Difficulty(difficulty)]
    score += total_pieces * 5
    # Faster solves score higher, nothing extra past 1000 seconds
    score += max(0, 1000 - completion_time) // 10
    score -= max(0, moves - total_pieces) * 2
    return max(score, 0)


def is_new_record(completion_time: int, moves: int, best: Optional[object]) -> bool:
    """``best`` is anything with ``best_time``/``best_moves``, or None."""
    if best is None:
        return True
    if completion_time < best.best_time:
        return True
    return completion_time == best.best_time and moves < best.best_moves

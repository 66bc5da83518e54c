"""Level curve.

Reaching level L (L >= 2) takes ``200 * L - 100`` cumulative experience:
300 for level 2, 500 for level 3, and so on. Level 1 needs nothing.
"""


def required_exp(level: int) -> int:
    if level <= 1:
        return 0
    return 200 * level - 100


def level_from_exp(exp: int) -> int:
    if exp <= 0:
        return 1
    level = 1
    while required_exp(level + 1) <= exp:
        level += 1
    return level


def level_progress(level: int, exp: int) -> dict:
    current_level_exp = required_exp(level)
    next_level_exp = required_exp(level + 1)
    exp_in_level = exp - current_level_exp
    exp_needed = next_level_exp - current_level_exp
    return {
        'level': level,
        'current_level_exp': current_level_exp,
        'next_level_exp': next_level_exp,
        'exp_in_current_level': exp_in_level,
        'exp_needed_for_next_level': exp_needed,
        'exp_to_next': next_level_exp - exp,
        'progress_percentage': min(100.0, exp_in_level / exp_needed * 100),
    }

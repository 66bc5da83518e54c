import random
import string
from typing import Callable

from puzzlerace.errors import CodeAllocationExhausted
from puzzlerace.models import ROOM_CODE_LENGTH

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_room_code(length=ROOM_CODE_LENGTH, rng=random):
    """Generate a short public room code from ``[A-Z0-9]``."""
    return ''.join(rng.choices(ROOM_CODE_ALPHABET, k=length))


def allocate_room_code(is_taken: Callable[[str], bool], max_attempts=10,
                       generate: Callable[[], str] = generate_room_code) -> str:
    """Draw codes until one is free, at most ``max_attempts`` times.

    ``is_taken`` answers whether a live room already holds the code. The
    check and the later insert are not atomic; the partial unique index on
    active room codes is what finally rejects a collision.
    """
    for _ in range(max_attempts):
        code = generate()
        if not is_taken(code):
            return code
    raise CodeAllocationExhausted(
        f'Could not allocate a unique room code after {max_attempts} attempts',
        attempts=max_attempts,
    )

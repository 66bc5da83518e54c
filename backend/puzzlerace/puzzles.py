"""Typed puzzle parameters, parsed once at the API boundary."""
import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from puzzlerace.errors import ValidationError


class Difficulty(str, enum.Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'
    EXPERT = 'expert'


class PieceShape(str, enum.Enum):
    SQUARE = 'square'
    TRIANGLE = 'triangle'
    IRREGULAR = 'irregular'


GRID_SIZE_RE = re.compile(r'^(\d+)x(\d+)$')
# Multiplayer rooms only offer 3x3 through 6x6 boards
ROOM_GRID_SIZE_RE = re.compile(r'^[3-6]x[3-6]$')


def parse_enum(enum_cls, value, field):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(m.value for m in enum_cls)
        raise ValidationError(f'{field} must be one of: {allowed}', field=field)


def total_pieces(grid_size: str) -> int:
    match = GRID_SIZE_RE.match(grid_size or '')
    if not match:
        raise ValidationError('grid_size must look like "4x4"', field='grid_size')
    return int(match.group(1)) * int(match.group(2))


def difficulty_for_pieces(pieces: int) -> Difficulty:
    if pieces <= 9:
        return Difficulty.EASY
    if pieces <= 16:
        return Difficulty.MEDIUM
    if pieces <= 25:
        return Difficulty.HARD
    return Difficulty.EXPERT


_ESTIMATE_BASE_SEC = {
    Difficulty.EASY: 30,
    Difficulty.MEDIUM: 60,
    Difficulty.HARD: 120,
    Difficulty.EXPERT: 300,
}


def estimated_time(pieces: int, difficulty: Difficulty) -> int:
    """Rough solve time in seconds, shown to players before they start."""
    return _ESTIMATE_BASE_SEC.get(Difficulty(difficulty), 60) + pieces * 10


@dataclass(frozen=True)
class PuzzleConfig:
    difficulty: Difficulty
    grid_size: str
    piece_shape: PieceShape = PieceShape.SQUARE
    image_reference: Optional[str] = None

    @property
    def total_pieces(self) -> int:
        return total_pieces(self.grid_size)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], room: bool = False) -> 'PuzzleConfig':
        if not isinstance(data, dict):
            raise ValidationError('puzzle_config must be an object', field='puzzle_config')
        difficulty = parse_enum(Difficulty, data.get('difficulty'), 'difficulty')
        grid_size = data.get('grid_size') or data.get('gridSize')
        pattern = ROOM_GRID_SIZE_RE if room else GRID_SIZE_RE
        if not isinstance(grid_size, str) or not pattern.match(grid_size):
            raise ValidationError('grid_size is invalid', field='grid_size')
        shape = parse_enum(PieceShape, data.get('piece_shape') or data.get('pieceShape') or 'square', 'piece_shape')
        image = data.get('image_reference') or data.get('imageName')
        if image is not None and not isinstance(image, str):
            raise ValidationError('image_reference must be a string', field='image_reference')
        return cls(difficulty=difficulty, grid_size=grid_size, piece_shape=shape, image_reference=image)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'difficulty': self.difficulty.value,
            'grid_size': self.grid_size,
            'piece_shape': self.piece_shape.value,
            'image_reference': self.image_reference,
        }


@dataclass(frozen=True)
class SoloCompletion:
    """One finished single-player puzzle as reported by the client."""
    difficulty: Difficulty
    piece_shape: PieceShape
    grid_size: str
    total_pieces: int
    completion_time: int
    moves: int
    puzzle_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SoloCompletion':
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        config = PuzzleConfig.from_dict(data)
        pieces = _positive_int(data.get('total_pieces', config.total_pieces), 'total_pieces')
        if pieces > 1000:
            raise ValidationError('total_pieces must be between 1 and 1000', field='total_pieces')
        name = data.get('puzzle_name')
        return cls(
            difficulty=config.difficulty,
            piece_shape=config.piece_shape,
            grid_size=config.grid_size,
            total_pieces=pieces,
            completion_time=_positive_int(data.get('completion_time'), 'completion_time'),
            moves=_positive_int(data.get('moves'), 'moves'),
            puzzle_name=str(name)[:100] if name else None,
        )


def _positive_int(value, field):
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a positive integer', field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a positive integer', field=field)
    if number < 1:
        raise ValidationError(f'{field} must be a positive integer', field=field)
    return number

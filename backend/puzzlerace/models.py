from puzzlerace import db
from puzzlerace.errors import InvariantViolation
from puzzlerace.puzzles import PuzzleConfig
from puzzlerace.storage import utcnow
from flask_login import UserMixin
import enum
import uuid


def _new_id():
    return str(uuid.uuid4())


def _enum_column(enum_cls, name, **kwargs):
    # Store the lowercase values, so raw SQL filters read naturally
    return db.Column(
        db.Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e], validate_strings=True),
        **kwargs
    )


class RoomStatus(str, enum.Enum):
    WAITING = 'waiting'
    READY = 'ready'
    PLAYING = 'playing'
    FINISHED = 'finished'
    CLOSED = 'closed'

    @property
    def is_terminal(self):
        return self in (RoomStatus.FINISHED, RoomStatus.CLOSED)

    @property
    def is_active(self):
        return self in ACTIVE_ROOM_STATUSES


ACTIVE_ROOM_STATUSES = (RoomStatus.WAITING, RoomStatus.READY, RoomStatus.PLAYING)

# Width of the room.code and multiplayer_game_record.room_code columns
ROOM_CODE_LENGTH = 8

# Allowed room status changes. Anything else is a programming error.
ROOM_TRANSITIONS = {
    RoomStatus.WAITING: {RoomStatus.READY, RoomStatus.PLAYING, RoomStatus.CLOSED},
    RoomStatus.READY: {RoomStatus.WAITING, RoomStatus.PLAYING, RoomStatus.CLOSED},
    RoomStatus.PLAYING: {RoomStatus.FINISHED, RoomStatus.CLOSED},
    RoomStatus.FINISHED: {RoomStatus.WAITING, RoomStatus.CLOSED},
    RoomStatus.CLOSED: set(),
}


class PlayerStatus(str, enum.Enum):
    JOINED = 'joined'
    READY = 'ready'
    PLAYING = 'playing'
    FINISHED = 'finished'
    # Stored value only; no service assigns it. A disconnected player is
    # treated as not ready and is removed through leave_room.
    DISCONNECTED = 'disconnected'


class ItemType(str, enum.Enum):
    AVATAR = 'avatar'
    AVATAR_FRAME = 'avatar_frame'
    DECORATION = 'decoration'
    THEME = 'theme'


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    stats = db.relationship('UserStats', back_populates='user', uselist=False,
                            cascade='all, delete-orphan', passive_deletes=True)
    achievements = db.relationship('UserAchievement', back_populates='user',
                                   cascade='all, delete-orphan', passive_deletes=True)
    memberships = db.relationship('Player', back_populates='user',
                                  cascade='all, delete-orphan', passive_deletes=True)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class UserStats(db.Model):
    __tablename__ = 'user_stats'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), unique=True, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    experience = db.Column(db.Integer, default=0, nullable=False)
    coins = db.Column(db.Integer, default=0, nullable=False)
    total_score = db.Column(db.Integer, default=0, nullable=False)
    games_completed = db.Column(db.Integer, default=0, nullable=False)
    total_play_time = db.Column(db.Integer, default=0, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    user = db.relationship('User', back_populates='stats')

    def to_dict(self):
        return {
            'level': self.level,
            'experience': self.experience,
            'coins': self.coins,
            'total_score': self.total_score,
            'games_completed': self.games_completed,
            'total_play_time': self.total_play_time,
        }


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    code = db.Column(db.String(ROOM_CODE_LENGTH), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    host_user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    max_players = db.Column(db.Integer, default=2, nullable=False)
    current_players = db.Column(db.Integer, default=0, nullable=False)
    status = _enum_column(RoomStatus, 'room_status', default=RoomStatus.WAITING, nullable=False, index=True)
    puzzle_config_data = db.Column('puzzle_config', db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    game_started_at = db.Column(db.DateTime, nullable=True)
    game_finished_at = db.Column(db.DateTime, nullable=True)
    players = db.relationship('Player', back_populates='room', cascade='all, delete-orphan',
                              passive_deletes=True, order_by=lambda: [Player.joined_at, Player.id])

    __table_args__ = (
        # Codes may be reused once a room reaches a terminal state
        db.Index(
            'uq_room_active_code', 'code', unique=True,
            sqlite_where=db.text("status NOT IN ('finished', 'closed')"),
            postgresql_where=db.text("status NOT IN ('finished', 'closed')"),
        ),
        db.CheckConstraint('max_players BETWEEN 2 AND 4', name='ck_room_max_players'),
    )

    @property
    def puzzle_config(self):
        return PuzzleConfig.from_dict(self.puzzle_config_data)

    @puzzle_config.setter
    def puzzle_config(self, config):
        self.puzzle_config_data = config.to_dict()

    @property
    def host(self):
        return next((p for p in self.players if p.is_host), None)

    def player_for(self, user_id):
        return next((p for p in self.players if p.user_id == user_id), None)

    def transition_to(self, new_status):
        if new_status not in ROOM_TRANSITIONS[self.status]:
            raise InvariantViolation(
                f'Illegal room transition {self.status.value} -> {new_status.value}',
                room_code=self.code,
            )
        self.status = new_status

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'host_user_id': self.host_user_id,
            'max_players': self.max_players,
            'current_players': self.current_players,
            'status': self.status.value,
            'puzzle_config': self.puzzle_config.to_dict(),
            'created_at': _iso(self.created_at),
            'game_started_at': _iso(self.game_started_at),
            'game_finished_at': _iso(self.game_finished_at),
            'players': [p.to_dict() for p in self.players],
        }


class Player(db.Model):
    __tablename__ = 'room_player'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(36), db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    status = _enum_column(PlayerStatus, 'player_status', default=PlayerStatus.JOINED, nullable=False)
    is_host = db.Column(db.Boolean, default=False, nullable=False)
    completion_time = db.Column(db.Integer, nullable=True)
    moves_count = db.Column(db.Integer, nullable=True)
    rank = db.Column(db.Integer, nullable=True)
    # 1-based order in which players reported their finish; final tiebreaker
    finish_order = db.Column(db.Integer, nullable=True)
    joined_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    ready_at = db.Column(db.DateTime, nullable=True)
    finished_at = db.Column(db.DateTime, nullable=True)
    room = db.relationship('Room', back_populates='players')
    user = db.relationship('User', back_populates='memberships')

    __table_args__ = (
        db.UniqueConstraint('room_id', 'user_id', name='uq_room_player_user'),
    )

    def settlement_key(self):
        return (self.completion_time, self.moves_count, self.finished_at, self.finish_order)

    def clear_game_fields(self):
        self.completion_time = None
        self.moves_count = None
        self.rank = None
        self.finish_order = None
        self.ready_at = None
        self.finished_at = None

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.username,
            'status': self.status.value,
            'is_host': bool(self.is_host),
            'completion_time': self.completion_time,
            'moves_count': self.moves_count,
            'rank': self.rank,
            'joined_at': _iso(self.joined_at),
            'ready_at': _iso(self.ready_at),
            'finished_at': _iso(self.finished_at),
        }


class GameRecord(db.Model):
    """Summary of one finished multiplayer race. Written once, never updated."""
    __tablename__ = 'multiplayer_game_record'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    room_id = db.Column(db.String(36), db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False, index=True)
    room_code = db.Column(db.String(ROOM_CODE_LENGTH), nullable=False)
    total_players = db.Column(db.Integer, nullable=False)
    winner_user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'), nullable=True, index=True)
    game_duration_seconds = db.Column(db.Integer, nullable=False)
    puzzle_difficulty = db.Column(db.String(16), nullable=False)
    puzzle_grid_size = db.Column(db.String(10), nullable=False)
    puzzle_piece_shape = db.Column(db.String(16), nullable=False)
    started_at = db.Column(db.DateTime, nullable=False)
    finished_at = db.Column(db.DateTime, nullable=False, index=True)
    winner = db.relationship('User', foreign_keys=[winner_user_id])
    participants = db.relationship('GameRecordPlayer', back_populates='record',
                                   cascade='all, delete-orphan', passive_deletes=True,
                                   order_by='GameRecordPlayer.rank')

    def to_dict(self):
        return {
            'id': self.id,
            'room_code': self.room_code,
            'total_players': self.total_players,
            'winner_user_id': self.winner_user_id,
            'game_duration_seconds': self.game_duration_seconds,
            'puzzle_difficulty': self.puzzle_difficulty,
            'puzzle_grid_size': self.puzzle_grid_size,
            'puzzle_piece_shape': self.puzzle_piece_shape,
            'started_at': _iso(self.started_at),
            'finished_at': _iso(self.finished_at),
            'participants': [p.to_dict() for p in self.participants],
        }


class GameRecordPlayer(db.Model):
    __tablename__ = 'multiplayer_game_player'
    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.String(36), db.ForeignKey('multiplayer_game_record.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    completion_time = db.Column(db.Integer, nullable=False)
    moves_count = db.Column(db.Integer, nullable=False)
    rank = db.Column(db.Integer, nullable=False)
    record = db.relationship('GameRecord', back_populates='participants')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.username,
            'completion_time': self.completion_time,
            'moves_count': self.moves_count,
            'rank': self.rank,
        }


class Achievement(db.Model):
    __tablename__ = 'achievement'
    id = db.Column(db.String(50), primary_key=True)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(50), nullable=False)
    category = db.Column(db.String(20), nullable=False, index=True)
    rarity = db.Column(db.String(20), default='common', nullable=False)
    max_progress = db.Column(db.Integer, default=1, nullable=False)
    reward_coins = db.Column(db.Integer, default=0, nullable=False)
    reward_experience = db.Column(db.Integer, default=0, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
            'category': self.category,
            'rarity': self.rarity,
            'max_progress': self.max_progress,
            'reward_coins': self.reward_coins,
            'reward_experience': self.reward_experience,
        }


class UserAchievement(db.Model):
    __tablename__ = 'user_achievement'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    achievement_id = db.Column(db.String(50), db.ForeignKey('achievement.id', ondelete='CASCADE'),
                               nullable=False, index=True)
    progress = db.Column(db.Integer, default=0, nullable=False)
    is_unlocked = db.Column(db.Boolean, default=False, nullable=False)
    unlocked_at = db.Column(db.DateTime, nullable=True)
    user = db.relationship('User', back_populates='achievements')
    achievement = db.relationship('Achievement')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),
    )


class SoloGameRecord(db.Model):
    __tablename__ = 'game_record'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    puzzle_name = db.Column(db.String(100), nullable=True)
    difficulty = db.Column(db.String(16), nullable=False, index=True)
    piece_shape = db.Column(db.String(16), nullable=False)
    grid_size = db.Column(db.String(10), nullable=False)
    total_pieces = db.Column(db.Integer, nullable=False)
    completion_time = db.Column(db.Integer, nullable=False)
    moves = db.Column(db.Integer, nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    coins_earned = db.Column(db.Integer, default=0, nullable=False)
    experience_earned = db.Column(db.Integer, default=0, nullable=False)
    completed_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'puzzle_name': self.puzzle_name,
            'difficulty': self.difficulty,
            'piece_shape': self.piece_shape,
            'grid_size': self.grid_size,
            'total_pieces': self.total_pieces,
            'completion_time': self.completion_time,
            'moves': self.moves,
            'score': self.score,
            'coins_earned': self.coins_earned,
            'experience_earned': self.experience_earned,
            'completed_at': _iso(self.completed_at),
        }


class BestTime(db.Model):
    __tablename__ = 'user_best_time'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    difficulty = db.Column(db.String(16), nullable=False)
    piece_shape = db.Column(db.String(16), nullable=False)
    grid_size = db.Column(db.String(10), nullable=False)
    best_time = db.Column(db.Integer, nullable=False)
    best_moves = db.Column(db.Integer, nullable=False)
    achieved_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'difficulty', 'piece_shape', 'grid_size', name='uq_user_best_time'),
    )


class RecentGame(db.Model):
    __tablename__ = 'user_recent_game'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    moves = db.Column(db.Integer, nullable=False)
    total_pieces = db.Column(db.Integer, nullable=False)
    completion_time = db.Column(db.Integer, nullable=False)
    played_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class OwnedItem(db.Model):
    """A cosmetic the user bought or unlocked. Each item is owned at most once."""
    __tablename__ = 'user_owned_items'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    item_type = _enum_column(ItemType, 'item_type', nullable=False, index=True)
    item_id = db.Column(db.String(50), nullable=False)
    acquired_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'item_type', 'item_id', name='uq_user_owned_item'),
    )

    def to_dict(self):
        return {
            'item_type': self.item_type.value,
            'item_id': self.item_id,
            'acquired_at': _iso(self.acquired_at),
        }


class LeaderboardEntry(db.Model):
    """Append-only. Only qualifying solo completions end up here."""
    __tablename__ = 'leaderboard_entry'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    puzzle_name = db.Column(db.String(100), nullable=True)
    difficulty = db.Column(db.String(16), nullable=False)
    piece_shape = db.Column(db.String(16), nullable=False)
    grid_size = db.Column(db.String(10), nullable=False)
    completion_time = db.Column(db.Integer, nullable=False)
    moves = db.Column(db.Integer, nullable=False)
    score = db.Column(db.Integer, nullable=False)
    completed_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.Index('ix_leaderboard_difficulty_time', 'difficulty', 'completion_time'),
        db.Index('ix_leaderboard_score', 'score'),
    )

    def to_dict(self):
        return {
            'username': self.username,
            'puzzle_name': self.puzzle_name,
            'difficulty': self.difficulty,
            'piece_shape': self.piece_shape,
            'grid_size': self.grid_size,
            'completion_time': self.completion_time,
            'moves': self.moves,
            'score': self.score,
            'completed_at': _iso(self.completed_at),
        }


def _iso(value):
    return value.isoformat() if value else None

"""initial puzzlerace schema: users, economy, rooms, race records, achievements, leaderboard

Revision ID: 5c2a9e7d41b0
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e7d41b0'
down_revision = None
branch_labels = None
depends_on = None


ROOM_STATUSES = ('waiting', 'ready', 'playing', 'finished', 'closed')
PLAYER_STATUSES = ('joined', 'ready', 'playing', 'finished', 'disconnected')
LIVE_ROOM = "status NOT IN ('finished', 'closed')"


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'user_stats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('experience', sa.Integer(), nullable=False),
        sa.Column('coins', sa.Integer(), nullable=False),
        sa.Column('total_score', sa.Integer(), nullable=False),
        sa.Column('games_completed', sa.Integer(), nullable=False),
        sa.Column('total_play_time', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'room',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('code', sa.String(length=8), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('host_user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('max_players', sa.Integer(), nullable=False),
        sa.Column('current_players', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum(*ROOM_STATUSES, name='room_status'), nullable=False),
        sa.Column('puzzle_config', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('game_started_at', sa.DateTime(), nullable=True),
        sa.Column('game_finished_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('max_players BETWEEN 2 AND 4', name='ck_room_max_players'),
    )
    op.create_index('ix_room_code', 'room', ['code'])
    op.create_index('ix_room_status', 'room', ['status'])
    op.create_index(
        'uq_room_active_code', 'room', ['code'], unique=True,
        sqlite_where=sa.text(LIVE_ROOM),
        postgresql_where=sa.text(LIVE_ROOM),
    )

    op.create_table(
        'room_player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.String(length=36), sa.ForeignKey('room.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('status', sa.Enum(*PLAYER_STATUSES, name='player_status'), nullable=False),
        sa.Column('is_host', sa.Boolean(), nullable=False),
        sa.Column('completion_time', sa.Integer(), nullable=True),
        sa.Column('moves_count', sa.Integer(), nullable=True),
        sa.Column('rank', sa.Integer(), nullable=True),
        sa.Column('finish_order', sa.Integer(), nullable=True),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('ready_at', sa.DateTime(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('room_id', 'user_id', name='uq_room_player_user'),
    )
    op.create_index('ix_room_player_room_id', 'room_player', ['room_id'])
    op.create_index('ix_room_player_user_id', 'room_player', ['user_id'])

    op.create_table(
        'multiplayer_game_record',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('room_id', sa.String(length=36), sa.ForeignKey('room.id', ondelete='CASCADE'), nullable=False),
        sa.Column('room_code', sa.String(length=8), nullable=False),
        sa.Column('total_players', sa.Integer(), nullable=False),
        sa.Column('winner_user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='SET NULL'), nullable=True),
        sa.Column('game_duration_seconds', sa.Integer(), nullable=False),
        sa.Column('puzzle_difficulty', sa.String(length=16), nullable=False),
        sa.Column('puzzle_grid_size', sa.String(length=10), nullable=False),
        sa.Column('puzzle_piece_shape', sa.String(length=16), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('finished_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_multiplayer_game_record_room_id', 'multiplayer_game_record', ['room_id'])
    op.create_index('ix_multiplayer_game_record_winner_user_id', 'multiplayer_game_record', ['winner_user_id'])
    op.create_index('ix_multiplayer_game_record_finished_at', 'multiplayer_game_record', ['finished_at'])

    op.create_table(
        'multiplayer_game_player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('record_id', sa.String(length=36),
                  sa.ForeignKey('multiplayer_game_record.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('completion_time', sa.Integer(), nullable=False),
        sa.Column('moves_count', sa.Integer(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
    )
    op.create_index('ix_multiplayer_game_player_record_id', 'multiplayer_game_player', ['record_id'])
    op.create_index('ix_multiplayer_game_player_user_id', 'multiplayer_game_player', ['user_id'])

    op.create_table(
        'achievement',
        sa.Column('id', sa.String(length=50), primary_key=True),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('icon', sa.String(length=50), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('rarity', sa.String(length=20), nullable=False),
        sa.Column('max_progress', sa.Integer(), nullable=False),
        sa.Column('reward_coins', sa.Integer(), nullable=False),
        sa.Column('reward_experience', sa.Integer(), nullable=False),
    )
    op.create_index('ix_achievement_category', 'achievement', ['category'])

    op.create_table(
        'user_achievement',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('achievement_id', sa.String(length=50),
                  sa.ForeignKey('achievement.id', ondelete='CASCADE'), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('is_unlocked', sa.Boolean(), nullable=False),
        sa.Column('unlocked_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),
    )
    op.create_index('ix_user_achievement_user_id', 'user_achievement', ['user_id'])
    op.create_index('ix_user_achievement_achievement_id', 'user_achievement', ['achievement_id'])

    op.create_table(
        'game_record',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('puzzle_name', sa.String(length=100), nullable=True),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('piece_shape', sa.String(length=16), nullable=False),
        sa.Column('grid_size', sa.String(length=10), nullable=False),
        sa.Column('total_pieces', sa.Integer(), nullable=False),
        sa.Column('completion_time', sa.Integer(), nullable=False),
        sa.Column('moves', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('coins_earned', sa.Integer(), nullable=False),
        sa.Column('experience_earned', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_game_record_user_id', 'game_record', ['user_id'])
    op.create_index('ix_game_record_difficulty', 'game_record', ['difficulty'])
    op.create_index('ix_game_record_completed_at', 'game_record', ['completed_at'])

    op.create_table(
        'user_best_time',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('piece_shape', sa.String(length=16), nullable=False),
        sa.Column('grid_size', sa.String(length=10), nullable=False),
        sa.Column('best_time', sa.Integer(), nullable=False),
        sa.Column('best_moves', sa.Integer(), nullable=False),
        sa.Column('achieved_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'difficulty', 'piece_shape', 'grid_size', name='uq_user_best_time'),
    )
    op.create_index('ix_user_best_time_user_id', 'user_best_time', ['user_id'])

    op.create_table(
        'user_recent_game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('moves', sa.Integer(), nullable=False),
        sa.Column('total_pieces', sa.Integer(), nullable=False),
        sa.Column('completion_time', sa.Integer(), nullable=False),
        sa.Column('played_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_recent_game_user_id', 'user_recent_game', ['user_id'])

    op.create_table(
        'leaderboard_entry',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('puzzle_name', sa.String(length=100), nullable=True),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('piece_shape', sa.String(length=16), nullable=False),
        sa.Column('grid_size', sa.String(length=10), nullable=False),
        sa.Column('completion_time', sa.Integer(), nullable=False),
        sa.Column('moves', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_leaderboard_entry_user_id', 'leaderboard_entry', ['user_id'])
    op.create_index('ix_leaderboard_difficulty_time', 'leaderboard_entry', ['difficulty', 'completion_time'])
    op.create_index('ix_leaderboard_score', 'leaderboard_entry', ['score'])


def downgrade():
    op.drop_table('leaderboard_entry')
    op.drop_table('user_recent_game')
    op.drop_table('user_best_time')
    op.drop_table('game_record')
    op.drop_table('user_achievement')
    op.drop_table('achievement')
    op.drop_table('multiplayer_game_player')
    op.drop_table('multiplayer_game_record')
    op.drop_table('room_player')
    op.drop_index('uq_room_active_code', table_name='room')
    op.drop_table('room')
    op.drop_table('user_stats')
    op.drop_table('user')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        sa.Enum(name='player_status').drop(bind, checkfirst=True)
        sa.Enum(name='room_status').drop(bind, checkfirst=True)

"""add user_owned_items for the item shop

Revision ID: 8e13f4b0c927
Revises: 5c2a9e7d41b0
Create Date: 2026-10-18 16:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8e13f4b0c927'
down_revision = '5c2a9e7d41b0'
branch_labels = None
depends_on = None


ITEM_TYPES = ('avatar', 'avatar_frame', 'decoration', 'theme')


def upgrade():
    op.create_table(
        'user_owned_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_type', sa.Enum(*ITEM_TYPES, name='item_type'), nullable=False),
        sa.Column('item_id', sa.String(length=50), nullable=False),
        sa.Column('acquired_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'item_type', 'item_id', name='uq_user_owned_item'),
    )
    op.create_index('ix_user_owned_items_user_id', 'user_owned_items', ['user_id'])
    op.create_index('ix_user_owned_items_item_type', 'user_owned_items', ['item_type'])


def downgrade():
    op.drop_index('ix_user_owned_items_item_type', table_name='user_owned_items')
    op.drop_index('ix_user_owned_items_user_id', table_name='user_owned_items')
    op.drop_table('user_owned_items')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        sa.Enum(name='item_type').drop(bind, checkfirst=True)

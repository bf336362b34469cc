"""Create habit, day, fire time and notification tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

habit_color = sa.Enum(
    'midnight_blue', 'alizarin', 'amethyst', 'emerald',
    'orange', 'belize_hole', 'sun_flower', 'pomegranate',
    name='habitcolor',
)


def upgrade() -> None:
    op.create_table(
        'habit',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('color', habit_color, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_habit_name', 'habit', ['name'])

    op.create_table(
        'habitday',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('habit_id', sa.String(length=36), sa.ForeignKey('habit.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('was_executed', sa.Boolean(), nullable=False),
        sa.UniqueConstraint('habit_id', 'day'),
    )
    op.create_index('ix_habitday_habit_id', 'habitday', ['habit_id'])

    op.create_table(
        'firetime',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('habit_id', sa.String(length=36), sa.ForeignKey('habit.id', ondelete='CASCADE'), nullable=False),
        sa.Column('hour', sa.Integer(), nullable=False),
        sa.Column('minute', sa.Integer(), nullable=False),
        sa.CheckConstraint('hour >= 0 AND hour <= 23', name='ck_firetime_hour'),
        sa.CheckConstraint('minute >= 0 AND minute <= 59', name='ck_firetime_minute'),
    )
    op.create_index('ix_firetime_habit_id', 'firetime', ['habit_id'])

    op.create_table(
        'notification',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('habit_id', sa.String(length=36), sa.ForeignKey('habit.id', ondelete='CASCADE'), nullable=False),
        sa.Column('fire_time_id', sa.Integer(), sa.ForeignKey('firetime.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_notification_id', sa.String(length=36), nullable=True, unique=True),
        sa.Column('fire_date', sa.DateTime(), nullable=False),
        sa.Column('was_executed', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_notification_habit_id', 'notification', ['habit_id'])
    op.create_index('ix_notification_fire_time_id', 'notification', ['fire_time_id'])


def downgrade() -> None:
    # Children first
    op.drop_table('notification')
    op.drop_table('firetime')
    op.drop_table('habitday')
    op.drop_index('ix_habit_name', table_name='habit')
    op.drop_table('habit')
    habit_color.drop(op.get_bind(), checkfirst=True)

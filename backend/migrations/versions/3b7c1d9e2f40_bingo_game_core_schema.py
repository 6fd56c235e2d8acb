"""bingo game core schema: sessions, games, game states, winners, snowball pots

Revision ID: 3b7c1d9e2f40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7c1d9e2f40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=True),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'snowball_pot',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('base_max_calls', sa.Integer(), nullable=False),
        sa.Column('base_jackpot_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('calls_increment', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('jackpot_increment', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('current_max_calls', sa.Integer(), nullable=False),
        sa.Column('current_jackpot_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('last_awarded_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'bingo_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('is_test_session', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('active_game_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('bingo_session.id'), nullable=False),
        sa.Column('game_index', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='standard'),
        sa.Column('stage_sequence', sa.Text(), nullable=False),
        sa.Column('prizes', sa.Text(), nullable=True),
        sa.Column('snowball_pot_id', sa.Integer(), sa.ForeignKey('snowball_pot.id'), nullable=True),
    )

    with op.batch_alter_table('bingo_session') as batch_op:
        batch_op.create_foreign_key('fk_session_active_game_id', 'game', ['active_game_id'], ['id'])

    op.create_table(
        'game_state',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False, unique=True),
        sa.Column('number_sequence', sa.Text(), nullable=True),
        sa.Column('called_numbers', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('numbers_called_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_stage_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='not_started'),
        sa.Column('call_delay_seconds', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('on_break', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paused_for_validation', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_win_type', sa.String(length=32), nullable=True),
        sa.Column('display_win_text', sa.String(length=64), nullable=True),
        sa.Column('display_winner_name', sa.String(length=128), nullable=True),
        sa.Column('controlling_host_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('controller_last_seen_at', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('last_call_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'winner',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('bingo_session.id'), nullable=False),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
        sa.Column('stage', sa.String(length=16), nullable=False),
        sa.Column('winner_name', sa.String(length=128), nullable=False),
        sa.Column('prize_description', sa.String(length=256), nullable=True),
        sa.Column('prize_given', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('call_count_at_win', sa.Integer(), nullable=False),
        sa.Column('is_jackpot', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_winner_game_id', 'winner', ['game_id'])

    op.create_table(
        'snowball_pot_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('snowball_pot_id', sa.Integer(), sa.ForeignKey('snowball_pot.id'), nullable=False),
        sa.Column('change_type', sa.String(length=32), nullable=False),
        sa.Column('old_val_max', sa.Integer(), nullable=True),
        sa.Column('new_val_max', sa.Integer(), nullable=True),
        sa.Column('old_val_jackpot', sa.Numeric(10, 2), nullable=True),
        sa.Column('new_val_jackpot', sa.Numeric(10, 2), nullable=True),
        sa.Column('changed_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('game_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_snowball_pot_history_snowball_pot_id', 'snowball_pot_history', ['snowball_pot_id'])


def downgrade():
    op.drop_index('ix_snowball_pot_history_snowball_pot_id', table_name='snowball_pot_history')
    op.drop_table('snowball_pot_history')
    op.drop_index('ix_winner_game_id', table_name='winner')
    op.drop_table('winner')
    op.drop_table('game_state')
    with op.batch_alter_table('bingo_session') as batch_op:
        batch_op.drop_constraint('fk_session_active_game_id', type_='foreignkey')
    op.drop_table('game')
    op.drop_table('bingo_session')
    op.drop_table('snowball_pot')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')

"""initial game schema: players, games, memberships, rounds, answers, votes, results

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('display_name', sa.String(64), nullable=False),
        sa.Column('guest_token', sa.String(64), nullable=False),
        sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('games_won', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.Float(), nullable=False),
    )
    op.create_index('ix_player_guest_token', 'player', ['guest_token'], unique=True)

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(6), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('host_player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
        sa.Column('current_round', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_rounds', sa.Integer(), nullable=False),
        sa.Column('settings_json', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.String(128), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('active_round_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.Column('started_at', sa.Float(), nullable=True),
        sa.Column('finished_at', sa.Float(), nullable=True),
    )
    op.create_index('ix_game_code', 'game', ['code'])

    op.create_table(
        'game_player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_co_host', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('joined_at', sa.Float(), nullable=False),
        sa.UniqueConstraint('game_id', 'player_id', name='uq_game_player'),
    )
    op.create_index('ix_game_player_game_id', 'game_player', ['game_id'])

    op.create_table(
        'round',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('acronym', sa.String(16), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('answer_deadline', sa.Float(), nullable=True),
        sa.Column('vote_deadline', sa.Float(), nullable=True),
        sa.Column('grace_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_at', sa.Float(), nullable=True),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.UniqueConstraint('game_id', 'round_number', name='uq_round_game_number'),
    )
    op.create_index('ix_round_game_id', 'round', ['game_id'])

    bind = op.get_bind()
    if bind.dialect.name != 'sqlite':
        op.create_foreign_key('fk_game_active_round_id', 'game', 'round', ['active_round_id'], ['id'])

    op.create_table(
        'answer',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('round_id', sa.Integer(), sa.ForeignKey('round.id'), nullable=False),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('text', sa.String(255), nullable=False),
        sa.Column('author_nickname', sa.String(64), nullable=True),
        sa.Column('votes_count', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('round_id', 'player_id', name='uq_answer_round_player'),
    )
    op.create_index('ix_answer_round_id', 'answer', ['round_id'])

    op.create_table(
        'vote',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('round_id', sa.Integer(), sa.ForeignKey('round.id'), nullable=False),
        sa.Column('answer_id', sa.Integer(), sa.ForeignKey('answer.id'), nullable=False),
        sa.Column('voter_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.UniqueConstraint('round_id', 'voter_id', name='uq_vote_round_voter'),
    )
    op.create_index('ix_vote_round_id', 'vote', ['round_id'])

    op.create_table(
        'game_result',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False, unique=True),
        sa.Column('winner_player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
        sa.Column('winner_nickname', sa.String(64), nullable=True),
        sa.Column('final_scores_json', sa.Text(), nullable=False),
        sa.Column('rounds_played', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.Float(), nullable=False),
    )


def downgrade():
    op.drop_table('game_result')
    op.drop_table('vote')
    op.drop_table('answer')
    bind = op.get_bind()
    if bind.dialect.name != 'sqlite':
        op.drop_constraint('fk_game_active_round_id', 'game', type_='foreignkey')
    op.drop_table('round')
    op.drop_table('game_player')
    op.drop_table('game')
    op.drop_table('player')

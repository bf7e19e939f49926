"""initial competition schema: user, round, fixture, prediction

Revision ID: 3a7c9e1f2b40
Revises:
Create Date: 2025-08-01 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c9e1f2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('team_name', sa.String(length=64), nullable=True),
        sa.Column('avatar_url', sa.String(length=256), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index(op.f('ix_user_name'), 'user', ['name'], unique=True)

    op.create_table(
        'round',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('joker_limit', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'fixture',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('round_id', sa.Integer(), nullable=False),
        sa.Column('home_team', sa.String(length=120), nullable=False),
        sa.Column('away_team', sa.String(length=120), nullable=False),
        sa.Column('match_time', sa.DateTime(), nullable=False),
        sa.Column('home_score', sa.Integer(), nullable=True),
        sa.Column('away_score', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('external_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['round_id'], ['round.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_fixture_round_id'), 'fixture', ['round_id'], unique=False)

    op.create_table(
        'prediction',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('fixture_id', sa.Integer(), nullable=False),
        sa.Column('round_id', sa.Integer(), nullable=False),
        sa.Column('predicted_home_goals', sa.Integer(), nullable=True),
        sa.Column('predicted_away_goals', sa.Integer(), nullable=True),
        sa.Column('is_joker', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('points_awarded', sa.Integer(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['fixture_id'], ['fixture.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['round_id'], ['round.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'fixture_id', name='uix_prediction_user_fixture'),
    )
    op.create_index(op.f('ix_prediction_user_id'), 'prediction', ['user_id'], unique=False)
    op.create_index(op.f('ix_prediction_round_id'), 'prediction', ['round_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_prediction_round_id'), table_name='prediction')
    op.drop_index(op.f('ix_prediction_user_id'), table_name='prediction')
    op.drop_table('prediction')
    op.drop_index(op.f('ix_fixture_round_id'), table_name='fixture')
    op.drop_table('fixture')
    op.drop_table('round')
    op.drop_index(op.f('ix_user_name'), table_name='user')
    op.drop_table('user')

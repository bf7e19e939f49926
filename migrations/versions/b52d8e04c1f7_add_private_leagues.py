"""add league and league_membership

Revision ID: b52d8e04c1f7
Revises: 3a7c9e1f2b40
Create Date: 2025-08-20 18:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b52d8e04c1f7'
down_revision = '3a7c9e1f2b40'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    # Databases bootstrapped with db.create_all() already have these tables.
    if 'league' not in existing_tables:
        op.create_table(
            'league',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=120), nullable=False),
            sa.Column('invite_code', sa.String(length=6), nullable=True),
            sa.Column('creator_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['creator_id'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_league_invite_code'), 'league', ['invite_code'], unique=True)

    if 'league_membership' not in existing_tables:
        op.create_table(
            'league_membership',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('league_id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('joined_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['league_id'], ['league.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('league_id', 'user_id', name='uix_league_member'),
        )


def downgrade():
    existing_tables = set(sa.inspect(op.get_bind()).get_table_names())
    if 'league_membership' in existing_tables:
        op.drop_table('league_membership')
    if 'league' in existing_tables:
        op.drop_index(op.f('ix_league_invite_code'), table_name='league')
        op.drop_table('league')

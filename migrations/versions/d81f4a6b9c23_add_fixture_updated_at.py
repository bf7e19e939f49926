"""add updated_at to fixture

Revision ID: d81f4a6b9c23
Revises: b52d8e04c1f7
Create Date: 2025-09-02 09:15:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'd81f4a6b9c23'
down_revision = 'b52d8e04c1f7'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    cols = {c['name'] for c in sa.inspect(bind).get_columns('fixture')}
    if 'updated_at' in cols:
        return
    with op.batch_alter_table('fixture') as batch_op:
        batch_op.add_column(sa.Column('updated_at', sa.DateTime(), nullable=True))
    # Backfill from created_at before tightening the column
    op.execute("UPDATE fixture SET updated_at = created_at WHERE updated_at IS NULL")
    with op.batch_alter_table('fixture') as batch_op:
        batch_op.alter_column('updated_at', existing_type=sa.DateTime(), nullable=False)


def downgrade():
    bind = op.get_bind()
    cols = {c['name'] for c in sa.inspect(bind).get_columns('fixture')}
    if 'updated_at' in cols:
        with op.batch_alter_table('fixture') as batch_op:
            batch_op.drop_column('updated_at')

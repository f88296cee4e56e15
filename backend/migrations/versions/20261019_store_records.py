"""Store records: durable key-value backing for the entity store

Revision ID: 20261019_store_records
Revises:
Create Date: 2026-10-19

One row per collection namespace ("scrapyard.companies", ...). value holds
the JSON-encoded list, version the optimistic write stamp.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_store_records'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('store_records',
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade():
    op.drop_table('store_records')

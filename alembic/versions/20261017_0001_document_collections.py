"""document collections

Revision ID: 20261017_0001
Revises: 
Create Date: 2026-10-17 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261017_0001'
down_revision = None
branch_labels = None
depends_on = None

COLLECTIONS = ('students', 'classes', 'payments')


def upgrade() -> None:
    for table in COLLECTIONS:
        op.create_table(
            table,
            sa.Column('id', sa.String(length=32), primary_key=True),
            sa.Column('data_json', sa.Text(), nullable=False, server_default='{}'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )
        op.create_index(f'ix_{table}_created_at', table, ['created_at'])


def downgrade() -> None:
    for table in reversed(COLLECTIONS):
        op.drop_index(f'ix_{table}_created_at', table_name=table)
        op.drop_table(table)

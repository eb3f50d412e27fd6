"""Create events table

Revision ID: 3f9c2a7d1b64
Revises: 
Create Date: 2024-10-14 09:12:41.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1b64'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the append-only events table."""
    op.create_table(
        'events',
        sa.Column('event_id', sa.Uuid(), nullable=False),
        sa.Column('test_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('domain', sa.Text(), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False, comment='Browser event serialized as JSON'),
        sa.Column('body', sa.LargeBinary(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('event_id')
    )
    op.create_index(op.f('ix_events_test_id'), 'events', ['test_id'])


def downgrade() -> None:
    """Drop the events table."""
    op.drop_index(op.f('ix_events_test_id'), table_name='events')
    op.drop_table('events')

"""create appointments table

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-19 09:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'appointments',
        sa.Column('id', sa.BigInteger().with_variant(sa.Integer(), 'sqlite'), autoincrement=True, nullable=False),
        sa.Column('hash', sa.String(length=32), nullable=False),
        sa.Column('issuer_id', sa.String(length=64), nullable=True),
        sa.Column('contact_id', sa.String(length=64), nullable=True),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('service_id', sa.String(length=64), nullable=True),
        sa.Column('vacancy_id', sa.String(length=64), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finish_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=1), server_default='R', nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('hash', name='uq_appointments_hash'),
    )
    op.create_index('ix_appointments_business_id_start_at', 'appointments', ['business_id', 'start_at'], unique=False)
    op.create_index('ix_appointments_business_id_ends_at', 'appointments', ['business_id', 'ends_at'], unique=False)
    op.create_index('ix_appointments_status', 'appointments', ['status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_appointments_status', table_name='appointments')
    op.drop_index('ix_appointments_business_id_ends_at', table_name='appointments')
    op.drop_index('ix_appointments_business_id_start_at', table_name='appointments')
    op.drop_table('appointments')

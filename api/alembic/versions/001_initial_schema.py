"""initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-12 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Crea stores, shipments y sync_runs (idempotente si ya existen)."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('stores'):
        op.create_table('stores',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('place_id', sa.String(length=255), nullable=True),
        sa.Column('formatted_address', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
        )

    if not inspector.has_table('shipments'):
        op.create_table('shipments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_type', sa.String(length=50), nullable=False),
        sa.Column('shipment_date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.String(length=50), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'product_type', 'shipment_date', name='uq_shipments_store_product_date')
        )
        op.create_index('ix_shipments_shipment_date', 'shipments', ['shipment_date'], unique=False)

    if not inspector.has_table('sync_runs'):
        op.create_table('sync_runs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('mode', sa.String(length=20), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_sync_runs_status'), 'sync_runs', ['status'], unique=False)
        op.create_index('ix_sync_runs_start_time', 'sync_runs', ['start_time'], unique=False)


def downgrade() -> None:
    """Elimina las tablas en orden inverso de dependencias."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('sync_runs'):
        op.drop_index('ix_sync_runs_start_time', table_name='sync_runs')
        op.drop_index(op.f('ix_sync_runs_status'), table_name='sync_runs')
        op.drop_table('sync_runs')
    if inspector.has_table('shipments'):
        op.drop_index('ix_shipments_shipment_date', table_name='shipments')
        op.drop_table('shipments')
    if inspector.has_table('stores'):
        op.drop_table('stores')

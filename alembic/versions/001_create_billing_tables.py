"""create_billing_tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:12:41.218377

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('sync_state'):
        op.create_table('sync_state',
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('watermark', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('category')
        )

    if not inspector.has_table('sync_runs'):
        op.create_table('sync_runs',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('mode', sa.String(length=32), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('watermark_before', sa.BigInteger(), nullable=True),
        sa.Column('watermark_after', sa.BigInteger(), nullable=True),
        sa.Column('records_written', sa.Integer(), nullable=True),
        sa.Column('records_failed', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_sync_runs_category'), 'sync_runs', ['category'], unique=False)

    if not inspector.has_table('customers'):
        op.create_table('customers',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_customers_email'), 'customers', ['email'], unique=False)

    if not inspector.has_table('invoices'):
        op.create_table('invoices',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('owner_id', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('number', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('amount_due', sa.BigInteger(), nullable=True),
        sa.Column('amount_paid', sa.BigInteger(), nullable=True),
        sa.Column('amount_remaining', sa.BigInteger(), nullable=True),
        sa.Column('paid', sa.Boolean(), nullable=True),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('linked_secondary_id', sa.String(length=255), nullable=True),
        sa.Column('payment_intent', sa.String(length=255), nullable=True),
        sa.Column('subscription', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_invoices_owner_id'), 'invoices', ['owner_id'], unique=False)
        op.create_index(op.f('ix_invoices_created_at'), 'invoices', ['created_at'], unique=False)
        op.create_index(op.f('ix_invoices_linked_secondary_id'), 'invoices', ['linked_secondary_id'], unique=False)

    if not inspector.has_table('charges'):
        op.create_table('charges',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('primary_ref', sa.String(length=255), nullable=True),
        sa.Column('owner_id', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('card_brand', sa.String(length=32), nullable=True),
        sa.Column('card_last4', sa.String(length=4), nullable=True),
        sa.Column('card_exp_month', sa.Integer(), nullable=True),
        sa.Column('card_exp_year', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_charges_primary_ref'), 'charges', ['primary_ref'], unique=False)
        op.create_index(op.f('ix_charges_owner_id'), 'charges', ['owner_id'], unique=False)
        op.create_index(op.f('ix_charges_created_at'), 'charges', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('charges', 'invoices', 'customers', 'sync_runs', 'sync_state'):
        if inspector.has_table(table):
            op.drop_table(table)

"""initial consolidated schema

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('profiles',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='USER'),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('bridge_customer_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('bridge_customer_id')
    )

    op.create_table('wallets',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('profile_id', sa.String(), nullable=False),
        sa.Column('wallet_tag', sa.String(), nullable=False, server_default='general_use'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('bridge_wallet_id', sa.String(), nullable=False),
        sa.Column('chain', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=False),
        sa.Column('bridge_tags', postgresql.ARRAY(sa.String()), nullable=False, server_default='{}'),
        sa.Column('bridge_created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('bridge_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bridge_wallet_id')
    )
    op.create_index('ix_wallets_profile_id', 'wallets', ['profile_id'])

    # Insert-only; bridge_transaction_id is the de-duplication key
    op.create_table('transactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('bridge_transaction_id', sa.String(), nullable=False),
        sa.Column('wallet_id', sa.String(), nullable=False),
        sa.Column('amount', sa.Text(), nullable=False),
        sa.Column('developer_fee', sa.Text(), nullable=True),
        sa.Column('customer_id', sa.String(), nullable=False),
        sa.Column('source_payment_rail', sa.String(), nullable=True),
        sa.Column('source_currency', sa.String(), nullable=True),
        sa.Column('destination_payment_rail', sa.String(), nullable=True),
        sa.Column('destination_currency', sa.String(), nullable=True),
        sa.Column('bridge_created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('bridge_updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('bridge_raw_data', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['wallet_id'], ['wallets.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bridge_transaction_id')
    )
    op.create_index('ix_transactions_wallet_created', 'transactions', ['wallet_id', 'bridge_created_at'])

    # Append-only audit of reconciliation attempts
    op.create_table('transaction_syncs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('wallet_id', sa.String(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_sync_transaction_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('new_transactions_found', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sync_status', sa.String(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('last_processed_bridge_created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['wallet_id'], ['wallets.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transaction_syncs_wallet_last_sync', 'transaction_syncs', ['wallet_id', 'last_sync_at'])

    op.create_table('events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('module', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('profile_id', sa.String(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('events')
    op.drop_index('ix_transaction_syncs_wallet_last_sync', table_name='transaction_syncs')
    op.drop_table('transaction_syncs')
    op.drop_index('ix_transactions_wallet_created', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_wallets_profile_id', table_name='wallets')
    op.drop_table('wallets')
    op.drop_table('profiles')

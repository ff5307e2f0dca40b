"""initial_schema

Revision ID: 2026_10_19_120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '2026_10_19_120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'blocks',
        sa.Column('height', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('hash', sa.Text(), nullable=False),
        sa.Column('parent_hash', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('miner', sa.Text(), nullable=True),
        sa.Column('difficulty', sa.Text(), nullable=False),
        sa.Column('gas_limit', sa.Text(), nullable=False),
        sa.Column('gas_used', sa.Text(), nullable=False),
        sa.Column('tx_count', sa.Integer(), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('nonce', sa.Text(), nullable=False),
        sa.Column('is_pos', sa.SmallInteger(), nullable=False),
        sa.Column('block_reward', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('height', name=op.f('pk_blocks')),
        sa.UniqueConstraint('hash', name=op.f('uq_blocks_hash')),
    )
    op.create_index('ix_blocks_timestamp', 'blocks', ['timestamp'], unique=False)

    op.create_table(
        'transactions',
        sa.Column('hash', sa.Text(), nullable=False),
        sa.Column('block_height', sa.BigInteger(), nullable=False),
        sa.Column('block_hash', sa.Text(), nullable=False),
        sa.Column('tx_index', sa.Integer(), nullable=False),
        sa.Column('from_address', sa.Text(), nullable=True),
        sa.Column('to_address', sa.Text(), nullable=True),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('gas', sa.Text(), nullable=False),
        sa.Column('gas_price', sa.Text(), nullable=False),
        sa.Column('gas_used', sa.Text(), nullable=False),
        sa.Column('nonce', sa.Integer(), nullable=False),
        sa.Column('input', sa.Text(), nullable=False),
        sa.Column('status', sa.SmallInteger(), nullable=False),
        sa.Column('contract_address', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['block_height'], ['blocks.height'], name=op.f('fk_transactions_block_height_blocks')),
        sa.PrimaryKeyConstraint('hash', name=op.f('pk_transactions')),
    )
    op.create_index('ix_transactions_block', 'transactions', ['block_height', 'tx_index'], unique=False)
    op.create_index('ix_transactions_from', 'transactions', ['from_address', 'block_height', 'tx_index'], unique=False)
    op.create_index('ix_transactions_to', 'transactions', ['to_address', 'block_height', 'tx_index'], unique=False)
    op.create_index('ix_transactions_contract', 'transactions', ['contract_address'], unique=False)

    op.create_table(
        'event_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tx_hash', sa.Text(), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('topic0', sa.Text(), nullable=True),
        sa.Column('topic1', sa.Text(), nullable=True),
        sa.Column('topic2', sa.Text(), nullable=True),
        sa.Column('topic3', sa.Text(), nullable=True),
        sa.Column('data', sa.Text(), nullable=False),
        sa.Column('block_height', sa.BigInteger(), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('decoded_name', sa.Text(), nullable=True),
        sa.Column('decoded_args', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['tx_hash'], ['transactions.hash'], name=op.f('fk_event_logs_tx_hash_transactions')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_event_logs')),
        sa.UniqueConstraint('tx_hash', 'log_index', name=op.f('uq_event_logs_tx_hash')),
    )
    op.create_index('ix_event_logs_address_block', 'event_logs', ['address', 'block_height', 'log_index'], unique=False)
    op.create_index('ix_event_logs_topic0', 'event_logs', ['topic0'], unique=False)

    op.create_table(
        'tokens',
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('symbol', sa.Text(), nullable=False),
        sa.Column('decimals', sa.Integer(), nullable=False),
        sa.Column('total_supply', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('address', name=op.f('pk_tokens')),
    )
    op.create_index('ix_tokens_symbol', 'tokens', ['symbol'], unique=False)

    op.create_table(
        'token_transfers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tx_hash', sa.Text(), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('token_address', sa.Text(), nullable=False),
        sa.Column('from_address', sa.Text(), nullable=False),
        sa.Column('to_address', sa.Text(), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('block_height', sa.BigInteger(), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['token_address'], ['tokens.address'], name=op.f('fk_token_transfers_token_address_tokens')),
        sa.ForeignKeyConstraint(['tx_hash'], ['transactions.hash'], name=op.f('fk_token_transfers_tx_hash_transactions')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_token_transfers')),
        sa.UniqueConstraint('tx_hash', 'log_index', name=op.f('uq_token_transfers_tx_hash')),
    )
    op.create_index('ix_token_transfers_token_block', 'token_transfers', ['token_address', 'block_height', 'log_index'], unique=False)
    op.create_index('ix_token_transfers_from', 'token_transfers', ['from_address'], unique=False)
    op.create_index('ix_token_transfers_to', 'token_transfers', ['to_address'], unique=False)

    op.create_table(
        'token_balances',
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('token_address', sa.Text(), nullable=False),
        sa.Column('balance', sa.Text(), nullable=False),
        sa.Column('last_updated', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('address', 'token_address', name=op.f('pk_token_balances')),
    )
    op.create_index('ix_token_balances_token', 'token_balances', ['token_address'], unique=False)

    op.create_table(
        'contracts',
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('source_code', sa.Text(), nullable=True),
        sa.Column('abi', sa.Text(), nullable=True),
        sa.Column('compiler_version', sa.Text(), nullable=True),
        sa.Column('optimization', sa.Boolean(), nullable=False),
        sa.Column('constructor_args', sa.Text(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('address', name=op.f('pk_contracts')),
    )

    op.create_table(
        'indexer_state',
        sa.Column('key', sa.Text(), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('key', name=op.f('pk_indexer_state')),
    )


def downgrade() -> None:
    op.drop_table('indexer_state')
    op.drop_table('contracts')
    op.drop_index('ix_token_balances_token', table_name='token_balances')
    op.drop_table('token_balances')
    op.drop_index('ix_token_transfers_to', table_name='token_transfers')
    op.drop_index('ix_token_transfers_from', table_name='token_transfers')
    op.drop_index('ix_token_transfers_token_block', table_name='token_transfers')
    op.drop_table('token_transfers')
    op.drop_index('ix_tokens_symbol', table_name='tokens')
    op.drop_table('tokens')
    op.drop_index('ix_event_logs_topic0', table_name='event_logs')
    op.drop_index('ix_event_logs_address_block', table_name='event_logs')
    op.drop_table('event_logs')
    op.drop_index('ix_transactions_contract', table_name='transactions')
    op.drop_index('ix_transactions_to', table_name='transactions')
    op.drop_index('ix_transactions_from', table_name='transactions')
    op.drop_index('ix_transactions_block', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_blocks_timestamp', table_name='blocks')
    op.drop_table('blocks')

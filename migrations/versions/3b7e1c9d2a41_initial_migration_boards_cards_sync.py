"""Initial migration: boards, cards and Google Tasks sync tables

Revision ID: 3b7e1c9d2a41
Revises: 
Create Date: 2026-10-19 10:12:04.118305

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7e1c9d2a41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Create boards table
    op.create_table(
        'boards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )

    # Create board_columns table
    op.create_table(
        'board_columns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('board_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('wip_limit', sa.Integer(), nullable=True),
        sa.Column('is_done_column', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['board_id'], ['boards.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    # Create cards table
    # Enums are stored as strings holding the member name (PENDING, HIGH, ...)
    op.create_table(
        'cards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('board_id', sa.Integer(), nullable=False),
        sa.Column('column_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=9), nullable=False, server_default='PENDING'),
        sa.Column('priority', sa.String(length=8), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['board_id'], ['boards.id'], ),
        sa.ForeignKeyConstraint(['column_id'], ['board_columns.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    # Create card_sync_mappings table
    op.create_table(
        'card_sync_mappings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('remote_task_id', sa.String(length=200), nullable=False),
        sa.Column('remote_list_id', sa.String(length=200), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(), nullable=False),
        sa.Column('last_remote_updated_at', sa.DateTime(), nullable=True),
        sa.Column('last_local_updated_at', sa.DateTime(), nullable=True),
        sa.Column('sync_status', sa.String(length=8), nullable=False, server_default='SYNCED'),
        sa.Column('sync_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('card_id', 'remote_list_id', name='uq_card_sync_mappings_card_list'),
        sa.UniqueConstraint(
            'remote_task_id', 'remote_list_id', name='uq_card_sync_mappings_task_list'
        )
    )
    op.create_index(
        op.f('ix_card_sync_mappings_card_id'), 'card_sync_mappings', ['card_id'], unique=False
    )
    op.create_index(
        op.f('ix_card_sync_mappings_remote_list_id'),
        'card_sync_mappings',
        ['remote_list_id'],
        unique=False,
    )

    # Create task_list_mappings table
    op.create_table(
        'task_list_mappings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('principal_id', sa.String(length=200), nullable=False),
        sa.Column('board_id', sa.Integer(), nullable=False),
        sa.Column('remote_list_id', sa.String(length=200), nullable=False),
        sa.Column('remote_list_title', sa.String(length=500), nullable=False),
        sa.Column('sync_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['board_id'], ['boards.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'principal_id', 'board_id', name='uq_task_list_mappings_principal_board'
        )
    )
    op.create_index(
        op.f('ix_task_list_mappings_principal_id'),
        'task_list_mappings',
        ['principal_id'],
        unique=False,
    )

    # Create sync_audit_log table (append-only)
    op.create_table(
        'sync_audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('mapping_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=13), nullable=False),
        sa.Column('remote_task_id', sa.String(length=200), nullable=False),
        sa.Column('local_snapshot', sa.JSON(), nullable=False),
        sa.Column('remote_snapshot', sa.JSON(), nullable=False),
        sa.Column('winner', sa.String(length=6), nullable=False),
        sa.Column('resolution', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ),
        sa.ForeignKeyConstraint(['mapping_id'], ['card_sync_mappings.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sync_audit_log_card_id'), 'sync_audit_log', ['card_id'], unique=False)
    op.create_index(
        op.f('ix_sync_audit_log_mapping_id'), 'sync_audit_log', ['mapping_id'], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_sync_audit_log_mapping_id'), table_name='sync_audit_log')
    op.drop_index(op.f('ix_sync_audit_log_card_id'), table_name='sync_audit_log')
    op.drop_table('sync_audit_log')
    op.drop_index(op.f('ix_task_list_mappings_principal_id'), table_name='task_list_mappings')
    op.drop_table('task_list_mappings')
    op.drop_index(op.f('ix_card_sync_mappings_remote_list_id'), table_name='card_sync_mappings')
    op.drop_index(op.f('ix_card_sync_mappings_card_id'), table_name='card_sync_mappings')
    op.drop_table('card_sync_mappings')
    op.drop_table('cards')
    op.drop_table('board_columns')
    op.drop_table('boards')

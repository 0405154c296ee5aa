"""Initial migration

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create trades table
    op.create_table('trades',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ticker', sa.String(length=16), nullable=False),
        sa.Column('strategy', sa.String(length=50), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('expiration_date', sa.Date(), nullable=True),
        sa.Column('close_date', sa.Date(), nullable=True),
        sa.Column('share_count', sa.Integer(), nullable=False),
        sa.Column('strike_price', sa.Float(), nullable=False),
        sa.Column('premium_received', sa.Float(), nullable=False),
        sa.Column('total_premium', sa.Float(), nullable=True),
        sa.Column('commission', sa.Float(), nullable=False),
        sa.Column('closing_cost', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('close_price', sa.Float(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_trades_id'), 'trades', ['id'], unique=False)
    op.create_index(op.f('ix_trades_ticker'), 'trades', ['ticker'], unique=False)

    # Create trade_history table
    op.create_table('trade_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('event_type', sa.String(length=16), nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=True),
        sa.Column('ticker', sa.String(length=16), nullable=False),
        sa.Column('premium', sa.Float(), nullable=False),
        sa.Column('commission', sa.Float(), nullable=False),
        sa.Column('closing_cost', sa.Float(), nullable=False),
        sa.Column('strike_price', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_trade_history_id'), 'trade_history', ['id'], unique=False)
    op.create_index(op.f('ix_trade_history_occurred_at'), 'trade_history', ['occurred_at'], unique=False)
    op.create_index(op.f('ix_trade_history_trade_id'), 'trade_history', ['trade_id'], unique=False)
    op.create_index(op.f('ix_trade_history_ticker'), 'trade_history', ['ticker'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_trade_history_ticker'), table_name='trade_history')
    op.drop_index(op.f('ix_trade_history_trade_id'), table_name='trade_history')
    op.drop_index(op.f('ix_trade_history_occurred_at'), table_name='trade_history')
    op.drop_index(op.f('ix_trade_history_id'), table_name='trade_history')
    op.drop_table('trade_history')
    op.drop_index(op.f('ix_trades_ticker'), table_name='trades')
    op.drop_index(op.f('ix_trades_id'), table_name='trades')
    op.drop_table('trades')

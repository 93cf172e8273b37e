# migrations/versions/001_initial_schema.py

"""Initial wallet schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'),
                  nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table('users',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('name', sa.String(), nullable=True),
                    sa.Column('role', sa.String(), server_default='user', nullable=False),
                    sa.Column('wallet_balance', sa.Numeric(18, 2), server_default='0', nullable=False),
                    sa.Column('referral_code', sa.String(), nullable=False),
                    # referrer's user id, no FK
                    sa.Column('referred_by', sa.String(), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('referral_code'),
                    )
    op.create_index('ix_users_referred_by', 'users', ['referred_by'])

    op.create_table('wallet_transactions',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('user_id', sa.String(), nullable=False),
                    sa.Column('type', sa.String(16), nullable=False),
                    sa.Column('amount', sa.Numeric(18, 2), nullable=False),
                    sa.Column('source', sa.String(32), nullable=False),
                    sa.Column('reference_id', sa.String(), nullable=True),
                    sa.Column('status', sa.String(16), server_default='SUCCESS', nullable=False),
                    sa.Column('balance_after', sa.Numeric(18, 2), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.CheckConstraint('amount > 0', name='ck_wallet_transactions_amount_positive'),
                    )
    op.create_index('ix_wallet_transactions_user_id', 'wallet_transactions', ['user_id'])
    op.create_index('ix_wallet_transactions_reference_id', 'wallet_transactions', ['reference_id'])
    op.create_index('ix_wallet_transactions_user_created', 'wallet_transactions',
                    ['user_id', 'created_at'])

    op.create_table('plans',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('name', sa.String(), nullable=False),
                    sa.Column('description', sa.String(), nullable=True),
                    sa.Column('price', sa.Numeric(18, 2), nullable=False),
                    sa.Column('validity', sa.Integer(), nullable=False),
                    sa.Column('daily_return', sa.Numeric(18, 2), server_default='0', nullable=False),
                    sa.Column('status', sa.String(16), server_default='ACTIVE', nullable=False),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.CheckConstraint('price > 0', name='ck_plans_price_positive'),
                    sa.CheckConstraint('validity > 0', name='ck_plans_validity_positive'),
                    )
    op.create_index('ix_plans_status', 'plans', ['status'])

    op.create_table('subscriptions',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('user_id', sa.String(), nullable=False),
                    sa.Column('plan_id', sa.String(), nullable=False),
                    sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
                    sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
                    sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_user_active', 'subscriptions', ['user_id', 'is_active'])
    op.create_index('ix_subscriptions_end_active', 'subscriptions', ['end_date', 'is_active'])

    op.create_table('daily_return_logs',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('subscription_id', sa.String(), nullable=False),
                    sa.Column('user_id', sa.String(), nullable=False),
                    sa.Column('plan_id', sa.String(), nullable=False),
                    sa.Column('amount', sa.Numeric(18, 2), nullable=False),
                    sa.Column('credited_for_date', sa.Date(), nullable=False),
                    sa.Column('wallet_transaction_id', sa.String(), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('subscription_id', 'credited_for_date',
                                        name='uq_daily_return_subscription_date'),
                    )
    op.create_index('ix_daily_return_logs_user_id', 'daily_return_logs', ['user_id'])
    op.create_index('ix_daily_return_logs_credited_for_date', 'daily_return_logs',
                    ['credited_for_date'])

    op.create_table('daily_return_summaries',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('user_id', sa.String(), nullable=False),
                    sa.Column('period_type', sa.String(8), nullable=False),
                    sa.Column('period_key', sa.String(20), nullable=False),
                    sa.Column('total_amount', sa.Numeric(18, 2), server_default='0', nullable=False),
                    sa.Column('count', sa.Integer(), server_default='0', nullable=False),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'period_type', 'period_key',
                                        name='uq_summary_user_period'),
                    )
    op.create_index('ix_summary_user_period_type', 'daily_return_summaries',
                    ['user_id', 'period_type'])

    op.create_table('recharge_requests',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('user_id', sa.String(), nullable=False),
                    sa.Column('amount', sa.Numeric(18, 2), nullable=False),
                    sa.Column('chain_name', sa.String(), nullable=False),
                    sa.Column('blockchain_address', sa.String(), nullable=True),
                    sa.Column('transaction_id', sa.String(), nullable=False),
                    sa.Column('proof_key', sa.String(), nullable=True),
                    sa.Column('status', sa.String(16), server_default='PENDING', nullable=False),
                    sa.Column('approved_by_id', sa.String(), nullable=True),
                    sa.Column('admin_remark', sa.Text(), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('transaction_id'),
                    sa.CheckConstraint('amount > 0', name='ck_recharge_requests_amount_positive'),
                    )
    op.create_index('ix_recharge_requests_user_id', 'recharge_requests', ['user_id'])
    op.create_index('ix_recharge_requests_status_created', 'recharge_requests',
                    ['status', 'created_at'])

    op.create_table('withdrawal_requests',
                    sa.Column('id', sa.String(), nullable=False),
                    sa.Column('user_id', sa.String(), nullable=False),
                    sa.Column('amount', sa.Numeric(18, 2), nullable=False),
                    sa.Column('fee', sa.Numeric(18, 2), nullable=False),
                    sa.Column('net_amount', sa.Numeric(18, 2), nullable=False),
                    sa.Column('chain_name', sa.String(), nullable=False),
                    sa.Column('blockchain_address', sa.String(), nullable=False),
                    sa.Column('status', sa.String(16), server_default='PENDING', nullable=False),
                    sa.Column('approved_by_id', sa.String(), nullable=True),
                    sa.Column('admin_remark', sa.Text(), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.CheckConstraint('amount > 0', name='ck_withdrawal_requests_amount_positive'),
                    sa.CheckConstraint('fee >= 0', name='ck_withdrawal_requests_fee_non_negative'),
                    sa.CheckConstraint('net_amount >= 0',
                                       name='ck_withdrawal_requests_net_non_negative'),
                    )
    op.create_index('ix_withdrawal_requests_user_id', 'withdrawal_requests', ['user_id'])
    op.create_index('ix_withdrawal_requests_status_created', 'withdrawal_requests',
                    ['status', 'created_at'])

    op.create_table('system_settings',
                    sa.Column('key', sa.String(), nullable=False),
                    sa.Column('value', sa.JSON(), nullable=False),
                    sa.Column('description', sa.String(), nullable=True),
                    sa.Column('is_public', sa.Boolean(), server_default='false', nullable=False),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('key'),
                    )


def downgrade() -> None:
    op.drop_table('system_settings')
    op.drop_table('withdrawal_requests')
    op.drop_table('recharge_requests')
    op.drop_table('daily_return_summaries')
    op.drop_table('daily_return_logs')
    op.drop_table('subscriptions')
    op.drop_table('plans')
    op.drop_table('wallet_transactions')
    op.drop_table('users')

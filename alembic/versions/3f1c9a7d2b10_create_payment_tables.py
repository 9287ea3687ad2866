"""create payment tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


bookingstatus_enum = sa.Enum('PENDING', 'PAID', 'FAILED', name='bookingstatus')
commissionstatus_enum = sa.Enum('COLLECTED', name='commissionstatus')
transactiontype_enum = sa.Enum('CREDIT', 'DEBIT', name='transactiontype')
referralstatus_enum = sa.Enum('SIGNED_UP', 'REWARDED', name='referralstatus')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=True),
        sa.Column('package_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='INR'),
        sa.Column('gateway_order_id', sa.String(64), nullable=False),
        sa.Column('gateway_payment_id', sa.String(64), nullable=True),
        sa.Column('status', bookingstatus_enum, nullable=False, server_default='PENDING'),
        sa.Column('paid_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'])
    op.create_index('ix_bookings_gateway_order_id', 'bookings', ['gateway_order_id'], unique=True)

    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False, unique=True),
        sa.Column('property_id', sa.Integer(), nullable=True),
        sa.Column('package_id', sa.Integer(), nullable=True),
        sa.Column('gross_amount', sa.BigInteger(), nullable=False),
        sa.Column('host_share', sa.BigInteger(), nullable=False),
        sa.Column('platform_commission', sa.BigInteger(), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('tax_on_commission', sa.BigInteger(), nullable=False),
        sa.Column('net_commission', sa.BigInteger(), nullable=False),
        sa.Column('gateway_payment_id', sa.String(64), nullable=True),
        sa.Column('gateway_order_id', sa.String(64), nullable=True),
        sa.Column('status', commissionstatus_enum, nullable=False, server_default='COLLECTED'),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_commissions_id', 'commissions', ['id'])

    op.create_table(
        'wallets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('balance', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_credited', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(), nullable=True),
        sa.CheckConstraint('balance >= 0', name='ck_wallets_balance_non_negative'),
    )
    op.create_index('ix_wallets_id', 'wallets', ['id'])
    op.create_index('ix_wallets_user_id', 'wallets', ['user_id'], unique=True)

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_user_id', sa.Integer(), nullable=False),
        sa.Column('referrer_reward', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('referred_reward', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', referralstatus_enum, nullable=False, server_default='SIGNED_UP'),
        sa.Column('first_booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=True),
        sa.Column('referrer_rewarded_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('referred_rewarded_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_referrals_id', 'referrals', ['id'])
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_referred_user_status', 'referrals', ['referred_user_id', 'status'])

    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('wallet_id', sa.Integer(), sa.ForeignKey('wallets.id'), nullable=False),
        sa.Column('type', transactiontype_enum, nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('balance_before', sa.BigInteger(), nullable=False),
        sa.Column('balance_after', sa.BigInteger(), nullable=False),
        sa.Column('source', sa.String(50), nullable=False),
        sa.Column('referral_id', sa.Integer(), sa.ForeignKey('referrals.id'), nullable=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=True),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_wallet_transactions_amount_positive'),
    )
    op.create_index('ix_wallet_transactions_id', 'wallet_transactions', ['id'])
    op.create_index('ix_wallet_transactions_wallet_id', 'wallet_transactions', ['wallet_id'])

    op.create_table(
        'admin_notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String(255), nullable=True),
        sa.Column('priority', sa.String(20), nullable=False, server_default='normal'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_admin_notifications_id', 'admin_notifications', ['id'])

    op.create_table(
        'outbox_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('topic', sa.String(255), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('ix_outbox_events_id', 'outbox_events', ['id'])
    op.create_index('ix_outbox_events_status', 'outbox_events', ['status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('outbox_events')
    op.drop_table('admin_notifications')
    op.drop_table('wallet_transactions')
    op.drop_table('referrals')
    op.drop_table('wallets')
    op.drop_table('commissions')
    op.drop_table('bookings')

    # --- Then, drop the ENUM types ---
    bind = op.get_bind()
    referralstatus_enum.drop(bind, checkfirst=True)
    transactiontype_enum.drop(bind, checkfirst=True)
    commissionstatus_enum.drop(bind, checkfirst=True)
    bookingstatus_enum.drop(bind, checkfirst=True)

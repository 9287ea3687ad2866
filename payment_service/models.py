from enum import Enum as PyEnum
import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
)
from sqlalchemy import Enum as SQLEnum

from .config import settings
from .database import Base


class BookingStatus(PyEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class CommissionStatus(PyEnum):
    COLLECTED = "collected"


class TransactionType(PyEnum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionSource(str, PyEnum):
    REFERRAL_BONUS = "referral_bonus"
    WALLET_REDEMPTION = "wallet_redemption"


class ReferralStatus(PyEnum):
    SIGNED_UP = "signed_up"
    REWARDED = "rewarded"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    # IDs owned by other services, no FK enforced
    user_id = Column(Integer, index=True, nullable=False)
    property_id = Column(Integer, nullable=True)
    package_id = Column(Integer, nullable=True)

    # Gross amount in minor units (paise)
    amount = Column(BigInteger, nullable=True)
    currency = Column(String(3), default=settings.DEFAULT_CURRENCY, nullable=False)

    gateway_order_id = Column(String(64), unique=True, index=True, nullable=False)
    gateway_payment_id = Column(String(64), nullable=True)

    status = Column(SQLEnum(BookingStatus), default=BookingStatus.PENDING, nullable=False)
    paid_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)


class Commission(Base):
    __tablename__ = "commissions"

    id = Column(Integer, primary_key=True, index=True)

    # Unique: at most one commission per booking
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    property_id = Column(Integer, nullable=True)
    package_id = Column(Integer, nullable=True)

    gross_amount = Column(BigInteger, nullable=False)
    host_share = Column(BigInteger, nullable=False)
    platform_commission = Column(BigInteger, nullable=False)
    commission_rate = Column(Numeric(5, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False)
    tax_on_commission = Column(BigInteger, nullable=False)
    net_commission = Column(BigInteger, nullable=False)

    gateway_payment_id = Column(String(64), nullable=True)
    gateway_order_id = Column(String(64), nullable=True)
    status = Column(SQLEnum(CommissionStatus), default=CommissionStatus.COLLECTED, nullable=False)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, unique=True, index=True, nullable=False)

    balance = Column(BigInteger, default=0, nullable=False)
    total_credited = Column(BigInteger, default=0, nullable=False)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
    )


class WalletTransaction(Base):
    """Append-only ledger entry. Rows are never updated."""
    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), index=True, nullable=False)

    type = Column(SQLEnum(TransactionType), nullable=False)
    amount = Column(BigInteger, nullable=False)
    balance_before = Column(BigInteger, nullable=False)
    balance_after = Column(BigInteger, nullable=False)

    source = Column(String(50), nullable=False)
    referral_id = Column(Integer, ForeignKey("referrals.id"), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    description = Column(String(255), nullable=True)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
    )


class Referral(Base):
    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, index=True)
    referrer_id = Column(Integer, index=True, nullable=False)
    referred_user_id = Column(Integer, nullable=False)

    referrer_reward = Column(BigInteger, default=0, nullable=False)
    referred_reward = Column(BigInteger, default=0, nullable=False)

    status = Column(SQLEnum(ReferralStatus), default=ReferralStatus.SIGNED_UP, nullable=False)
    first_booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)

    referrer_rewarded_at = Column(TIMESTAMP, nullable=True)
    referred_rewarded_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)

    # The reward lookup is always "referred user + status"
    __table_args__ = (
        Index('ix_referrals_referred_user_status', 'referred_user_id', 'status'),
    )


class AdminNotification(Base):
    __tablename__ = "admin_notifications"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(255), nullable=True)
    priority = Column(String(20), default="normal", nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)


class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True)

    # Status to track if the event has been sent
    status = Column(String(20), default="PENDING", nullable=False)

    # The Kafka topic to send the message to
    topic = Column(String(255), nullable=False)

    # The full JSON payload to be sent
    payload = Column(Text, nullable=False)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)

    # An index on 'status' will make the poller's query much faster
    __table_args__ = (
        Index('ix_outbox_events_status', 'status'),
    )

import datetime
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from . import ledger, models

logger = logging.getLogger("payment_service")


def find_pending_referral(db: Session, user_id: int) -> Optional[models.Referral]:
    """Oldest referral for this user that has not paid out yet."""
    stmt = (
        select(models.Referral)
        .where(
            models.Referral.referred_user_id == user_id,
            models.Referral.status == models.ReferralStatus.SIGNED_UP,
        )
        .order_by(models.Referral.id)
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def _claim(db: Session, referral: models.Referral, booking_id: int) -> bool:
    # Conditional flip signed_up -> rewarded; only one caller can win it
    now = datetime.datetime.utcnow()
    stmt = (
        update(models.Referral)
        .where(
            models.Referral.id == referral.id,
            models.Referral.status == models.ReferralStatus.SIGNED_UP,
        )
        .values(
            status=models.ReferralStatus.REWARDED,
            first_booking_id=booking_id,
            referrer_rewarded_at=now,
            referred_rewarded_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    claimed = db.execute(stmt).rowcount == 1
    db.refresh(referral)
    return claimed


def reward_first_booking(db: Session, booking: models.Booking, wallet: models.Wallet) -> Optional[models.Referral]:
    """
    Pays out the referral bonus for a user's first paid booking.

    Call this only when the booking user's wallet was just created. Both
    parties are credited and the referral is marked rewarded in the caller's
    transaction. Returns the rewarded referral, or None when there was nothing
    to pay. Does NOT commit.
    """
    referral = find_pending_referral(db, booking.user_id)
    if referral is None:
        return None

    if not _claim(db, referral, booking.id):
        logger.warning(f"Referral {referral.id} was already rewarded. Skipping.")
        return None

    if referral.referred_reward > 0:
        ledger.credit(
            db,
            wallet.id,
            referral.referred_reward,
            models.TransactionSource.REFERRAL_BONUS,
            referral_id=referral.id,
            description="Welcome referral bonus",
        )

    if referral.referrer_reward > 0:
        referrer_wallet, _ = ledger.ensure_wallet(db, referral.referrer_id)
        ledger.credit(
            db,
            referrer_wallet.id,
            referral.referrer_reward,
            models.TransactionSource.REFERRAL_BONUS,
            referral_id=referral.id,
            booking_id=booking.id,
            description="Referral reward for friend's booking",
        )

    logger.info(f"Referral rewards credited for booking {booking.id} (referral {referral.id})")
    return referral

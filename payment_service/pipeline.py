import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud, ledger, models, notifications, referrals
from .commission import record_commission
from .config import settings
from .errors import BookingNotFound, LedgerUnavailable, PaymentServiceError

logger = logging.getLogger("payment_service")


@dataclass
class PipelineResult:
    booking: models.Booking
    transitioned: bool
    commission: Optional[models.Commission] = None
    referral: Optional[models.Referral] = None


def process_order_paid(
        db: Session,
        order_ref: str,
        payment_ref: Optional[str],
        payment_amount: Optional[int] = None,
) -> PipelineResult:
    """
    The order.paid branch: state machine -> commission -> wallet -> referral,
    committed as one unit of work, then notification fan-out.

    Only the delivery that wins the pending->paid swap does any downstream
    work; every later delivery for the same order returns transitioned=False.
    Raises BookingNotFound (nothing written) or LedgerUnavailable (rolled
    back, safe to redeliver).
    """
    try:
        booking, transitioned = crud.apply_paid(db, order_ref, payment_ref)
        if not transitioned:
            if booking.status is models.BookingStatus.PAID:
                logger.info(f"Booking {booking.id} already paid. Ignoring redelivery for order {order_ref}.")
            else:
                logger.warning(
                    f"Booking {booking.id} is {booking.status.value}; refusing order.paid for order {order_ref}."
                )
            return PipelineResult(booking=booking, transitioned=False)

        commission, _ = record_commission(
            db,
            booking,
            settings.COMMISSION_RATE,
            settings.TAX_RATE,
            payment_amount=payment_amount,
        )

        wallet, created = ledger.ensure_wallet(db, booking.user_id)
        referral = None
        if created:
            referral = referrals.reward_first_booking(db, booking, wallet)

        db.commit()
    except BookingNotFound:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Database error while processing order {order_ref}: {e}")
        db.rollback()
        raise LedgerUnavailable("Database error, please retry") from e
    except PaymentServiceError:
        db.rollback()
        raise

    logger.info(f"Booking {booking.id} marked as PAID for order {order_ref}.")
    notifications.fan_out_booking_paid(db, booking, commission)
    return PipelineResult(booking=booking, transitioned=True, commission=commission, referral=referral)


def process_payment_failed(db: Session, order_ref: str) -> PipelineResult:
    """The payment.failed branch: state machine only."""
    try:
        booking, transitioned = crud.apply_failed(db, order_ref)
        if transitioned:
            db.commit()
    except BookingNotFound:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Database error while failing order {order_ref}: {e}")
        db.rollback()
        raise LedgerUnavailable("Database error, please retry") from e

    if transitioned:
        logger.info(f"Booking {booking.id} for order {order_ref} marked as FAILED.")
    else:
        logger.info(f"Booking {booking.id} is {booking.status.value}; payment.failed leaves it unchanged.")
    return PipelineResult(booking=booking, transitioned=transitioned)

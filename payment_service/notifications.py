import json
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .config import settings

logger = logging.getLogger("payment_service")


def _format_amount(amount: Optional[int], currency: str) -> str:
    return f"{currency} {(amount or 0) / 100:,.2f}"


def queue_booking_notifications(db: Session, booking: models.Booking, commission: Optional[models.Commission]):
    """
    Adds one outbox event per channel plus the admin notification.
    Note: Does NOT commit.
    """
    for channel in settings.NOTIFICATION_CHANNELS:
        db.add(models.OutboxEvent(
            topic=settings.KAFKA_NOTIFICATION_TOPIC,
            payload=json.dumps({"channel": channel, "booking_id": booking.id}),
            status="PENDING"
        ))

    message = f"{_format_amount(booking.amount, booking.currency)} payment received."
    if commission is not None:
        message += f" Commission: {_format_amount(commission.platform_commission, booking.currency)}"

    db.add(models.AdminNotification(
        type="booking",
        title="New Booking Paid",
        message=message,
        link="/admin/bookings",
        priority="high",
    ))


def fan_out_booking_paid(db: Session, booking: models.Booking, commission: Optional[models.Commission]) -> bool:
    """
    Best-effort hand-off to the email/WhatsApp senders. Runs after the ledger
    commit, in its own transaction; a failure here is logged and never touches
    the booking, commission or wallets.
    """
    try:
        queue_booking_notifications(db, booking, commission)
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to queue notifications for booking {booking.id}: {e}")
        db.rollback()
        return False
    logger.info(f"Queued {len(settings.NOTIFICATION_CHANNELS)} notifications for booking {booking.id}")
    return True

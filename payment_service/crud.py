import datetime
from typing import Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from . import models
from .errors import BookingNotFound, ConfigurationError

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_if_absent(db: Session, model, values: dict, conflict_columns: Sequence[str]) -> bool:
    """
    INSERT ... ON CONFLICT (<conflict_columns>) DO NOTHING.

    Returns True if this call inserted the row. The unique constraint is the
    tie-breaker, so two concurrent callers can never both get True.
    """
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise ConfigurationError(f"Unsupported database dialect: {dialect}")

    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = db.execute(stmt)
    return result.rowcount == 1


def get_booking_by_order(db: Session, order_ref: str) -> Optional[models.Booking]:
    return (
        db.query(models.Booking)
        .populate_existing()
        .filter(models.Booking.gateway_order_id == order_ref)
        .first()
    )


def _transition(db: Session, order_ref: str, new_status: models.BookingStatus, **values) -> Tuple[models.Booking, bool]:
    """
    Moves a booking out of PENDING with a single conditional UPDATE.

    The WHERE clause on status is the compare-and-swap: of several concurrent
    deliveries exactly one sees rowcount == 1. Does NOT commit.
    """
    now = datetime.datetime.utcnow()
    stmt = (
        update(models.Booking)
        .where(
            models.Booking.gateway_order_id == order_ref,
            models.Booking.status == models.BookingStatus.PENDING,
        )
        .values(status=new_status, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)

    booking = get_booking_by_order(db, order_ref)
    if booking is None:
        raise BookingNotFound(order_ref)
    return booking, result.rowcount == 1


def apply_paid(db: Session, order_ref: str, payment_ref: Optional[str]) -> Tuple[models.Booking, bool]:
    """
    pending -> paid. Returns (booking, transitioned).

    A booking that is already paid (gateway redelivery) or failed comes back
    unchanged with transitioned=False.
    """
    now = datetime.datetime.utcnow()
    return _transition(
        db,
        order_ref,
        models.BookingStatus.PAID,
        gateway_payment_id=payment_ref,
        paid_at=now,
    )


def apply_failed(db: Session, order_ref: str) -> Tuple[models.Booking, bool]:
    """pending -> failed. A paid booking is never un-paid by a later failure."""
    return _transition(db, order_ref, models.BookingStatus.FAILED)


def get_booking_for_user(db: Session, order_ref: str, user_id: int) -> Optional[models.Booking]:
    return db.query(models.Booking).filter(
        models.Booking.gateway_order_id == order_ref,
        models.Booking.user_id == user_id,
    ).first()

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from . import pipeline, schemas
from .errors import BookingNotFound, PayloadInvalid

logger = logging.getLogger("payment_service")

ORDER_PAID = "order.paid"
PAYMENT_FAILED = "payment.failed"

# Acknowledgement outcomes
PROCESSED = "processed"
DUPLICATE = "duplicate"
IGNORED = "ignored"
BOOKING_NOT_FOUND = "booking_not_found"


def parse_event(raw_body: bytes) -> schemas.WebhookEnvelope:
    """Decodes an authenticated body once into the typed envelope."""
    try:
        return schemas.WebhookEnvelope.model_validate_json(raw_body)
    except ValidationError as e:
        raise PayloadInvalid(f"Malformed webhook payload: {e.errors()[0]['msg']}")


def payment_entity(envelope: schemas.WebhookEnvelope) -> Optional[schemas.PaymentEntity]:
    """
    Types the payment entity of an event we act on. A missing entity is None;
    an entity with mistyped fields is rejected.
    """
    entity = envelope.raw_payment_entity()
    if entity is None:
        return None
    try:
        return schemas.PaymentEntity.model_validate(entity)
    except ValidationError as e:
        raise PayloadInvalid(f"Malformed payment entity in '{envelope.event}': {e.errors()[0]['msg']}")


def _handle_order_paid(db: Session, payment: schemas.PaymentEntity) -> str:
    result = pipeline.process_order_paid(db, payment.order_id, payment.id, payment.amount)
    return PROCESSED if result.transitioned else DUPLICATE


def _handle_payment_failed(db: Session, payment: schemas.PaymentEntity) -> str:
    result = pipeline.process_payment_failed(db, payment.order_id)
    return PROCESSED if result.transitioned else DUPLICATE


HANDLERS = {
    ORDER_PAID: _handle_order_paid,
    PAYMENT_FAILED: _handle_payment_failed,
}


def dispatch_event(db: Session, envelope: schemas.WebhookEnvelope) -> schemas.WebhookAck:
    """
    Routes an envelope to its branch. Events we do not handle, and events
    without an order reference, are acknowledged so the gateway stops
    retrying them.
    """
    handler = HANDLERS.get(envelope.event)
    if handler is None:
        logger.info(f"Ignoring unhandled event type '{envelope.event}'.")
        return schemas.WebhookAck(event=envelope.event, outcome=IGNORED)

    payment = payment_entity(envelope)
    if payment is None or not payment.order_id:
        logger.info(f"No order ID found in '{envelope.event}' payload, ignoring.")
        return schemas.WebhookAck(event=envelope.event, outcome=IGNORED)

    try:
        outcome = handler(db, payment)
    except BookingNotFound as e:
        logger.warning(f"{e.message}. Acknowledging '{envelope.event}' without changes.")
        outcome = BOOKING_NOT_FOUND
    return schemas.WebhookAck(event=envelope.event, outcome=outcome)

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi_limiter.depends import RateLimiter
from sqlalchemy.orm import Session

from .. import crud, pipeline, schemas
from ..auth import get_current_user_id_from_token, get_key_by_user_id_or_ip
from ..config import settings
from ..database import get_db
from ..signature import SignatureVerifier

router = APIRouter(prefix="/payments", tags=["Payments"])

verify_rate_limit = RateLimiter(times=10, minutes=1, identifier=get_key_by_user_id_or_ip)


def get_checkout_verifier() -> SignatureVerifier:
    return SignatureVerifier(settings.RAZORPAY_KEY_SECRET)


@router.post("/verify", response_model=schemas.BookingRead)
def verify_payment(
        body: schemas.PaymentVerify,
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        verifier: SignatureVerifier = Depends(get_checkout_verifier),
        db: Session = Depends(get_db),
        limit: None = Depends(verify_rate_limit)
):
    """
    Confirms a checkout from the browser's success callback.

    Runs the same paid pipeline as the webhook, so whichever of the two
    arrives first books the commission and rewards, and the other is a no-op.
    """
    verifier.verify_checkout(body.razorpay_order_id, body.razorpay_payment_id, body.razorpay_signature)

    if crud.get_booking_for_user(db, body.razorpay_order_id, user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )

    result = pipeline.process_order_paid(db, body.razorpay_order_id, body.razorpay_payment_id)
    return result.booking

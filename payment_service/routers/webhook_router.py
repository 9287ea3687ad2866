from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from .. import events, schemas
from ..config import settings
from ..database import get_db
from ..signature import SignatureVerifier

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def get_webhook_verifier() -> SignatureVerifier:
    # Raises ConfigurationError (500) when the secret is missing
    return SignatureVerifier(settings.RAZORPAY_WEBHOOK_SECRET)


@router.post("/razorpay", response_model=schemas.WebhookAck)
async def razorpay_webhook(
        request: Request,
        x_razorpay_signature: Annotated[Optional[str], Header()] = None,
        verifier: SignatureVerifier = Depends(get_webhook_verifier),
        db: Session = Depends(get_db),
):
    """
    Gateway callback. The signature is checked against the raw bytes before
    anything is parsed; every authentic, parseable event gets a 200 so the
    gateway stops redelivering it.
    """
    raw_body = await request.body()
    verifier.verify(raw_body, x_razorpay_signature)

    envelope = events.parse_event(raw_body)
    return await run_in_threadpool(events.dispatch_event, db, envelope)

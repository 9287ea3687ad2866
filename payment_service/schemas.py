from pydantic import BaseModel
from typing import Any, Dict, List, Optional
import datetime

from .models import BookingStatus, TransactionType


# --- Inbound gateway webhook envelope ---

class PaymentEntity(BaseModel):
    id: Optional[str] = None  # gateway payment reference
    order_id: Optional[str] = None
    amount: Optional[int] = None  # minor units
    currency: Optional[str] = None
    status: Optional[str] = None
    error_description: Optional[str] = None


class WebhookEnvelope(BaseModel):
    event: str
    # Left untyped; the payment entity is validated only for events we act on
    payload: Any = None

    def raw_payment_entity(self) -> Optional[Dict[str, Any]]:
        """Returns payload.payment.entity when every level is an object."""
        payment = self.payload.get("payment") if isinstance(self.payload, dict) else None
        entity = payment.get("entity") if isinstance(payment, dict) else None
        return entity if isinstance(entity, dict) else None


class WebhookAck(BaseModel):
    received: bool = True
    event: str
    outcome: str


# --- Client-side checkout confirmation ---

class PaymentVerify(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class BookingRead(BaseModel):
    id: int
    user_id: int
    property_id: Optional[int] = None
    package_id: Optional[int] = None
    amount: Optional[int] = None
    currency: str
    gateway_order_id: str
    gateway_payment_id: Optional[str] = None
    status: BookingStatus
    paid_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


# --- Wallet ---

class WalletTransactionRead(BaseModel):
    id: int
    type: TransactionType
    amount: int
    balance_before: int
    balance_after: int
    source: str
    referral_id: Optional[int] = None
    booking_id: Optional[int] = None
    description: Optional[str] = None
    created_at: datetime.datetime

    class Config:
        from_attributes = True


class WalletRead(BaseModel):
    id: int
    user_id: int
    balance: int
    total_credited: int
    transactions: List[WalletTransactionRead] = []

    class Config:
        from_attributes = True

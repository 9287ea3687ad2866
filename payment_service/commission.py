import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from . import crud, models

logger = logging.getLogger("payment_service")

HUNDRED = Decimal(100)


def _round_minor(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CommissionBreakdown:
    gross_amount: int
    commission_rate: Decimal
    tax_rate: Decimal
    platform_commission: int
    host_share: int
    tax_on_commission: int
    net_commission: int


def calculate_commission(gross_amount: int, commission_rate: Decimal, tax_rate: Decimal) -> CommissionBreakdown:
    """
    Splits a gross amount (minor units) into platform, host and tax shares.

    The platform share is rounded half-up once from the exact product. Tax is
    charged on that stored platform figure and rounded half-up once. Host
    share and net commission are derived by subtraction, so on the stored
    integers host + platform == gross, net == platform - tax, and net is
    within half a minor unit of platform * (1 - tax_rate).
    """
    if gross_amount < 0:
        raise ValueError("gross_amount must not be negative")

    rate = Decimal(commission_rate)
    tax = Decimal(tax_rate)

    platform_commission = _round_minor(Decimal(gross_amount) * rate / HUNDRED)
    tax_on_commission = _round_minor(Decimal(platform_commission) * tax / HUNDRED)

    return CommissionBreakdown(
        gross_amount=gross_amount,
        commission_rate=rate,
        tax_rate=tax,
        platform_commission=platform_commission,
        host_share=gross_amount - platform_commission,
        tax_on_commission=tax_on_commission,
        net_commission=platform_commission - tax_on_commission,
    )


def record_commission(
        db: Session,
        booking: models.Booking,
        commission_rate: Decimal,
        tax_rate: Decimal,
        payment_amount: Optional[int] = None,
) -> Tuple[models.Commission, bool]:
    """
    Writes the single commission row for a newly paid booking.
    Returns (commission, created). A replay leaves the existing row untouched.
    Does NOT commit.
    """
    gross = booking.amount or payment_amount or 0
    if booking.amount and payment_amount is not None and payment_amount != booking.amount:
        logger.warning(
            f"Booking {booking.id}: gateway amount {payment_amount} differs from booking amount {booking.amount}. "
            f"Using booking amount."
        )

    breakdown = calculate_commission(gross, commission_rate, tax_rate)

    created = crud.insert_if_absent(
        db,
        models.Commission,
        {
            "booking_id": booking.id,
            "property_id": booking.property_id,
            "package_id": booking.package_id,
            "gross_amount": breakdown.gross_amount,
            "host_share": breakdown.host_share,
            "platform_commission": breakdown.platform_commission,
            "commission_rate": breakdown.commission_rate,
            "tax_rate": breakdown.tax_rate,
            "tax_on_commission": breakdown.tax_on_commission,
            "net_commission": breakdown.net_commission,
            "gateway_payment_id": booking.gateway_payment_id,
            "gateway_order_id": booking.gateway_order_id,
            "status": models.CommissionStatus.COLLECTED,
        },
        conflict_columns=["booking_id"],
    )

    commission = db.query(models.Commission).filter(models.Commission.booking_id == booking.id).one()
    if created:
        logger.info(
            f"Commission recorded for booking {booking.id}: platform {breakdown.platform_commission} "
            f"(net {breakdown.net_commission}), host {breakdown.host_share}"
        )
    else:
        logger.warning(f"Commission for booking {booking.id} already exists. Skipping.")
    return commission, created

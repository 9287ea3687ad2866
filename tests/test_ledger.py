import pytest
from sqlalchemy.orm import Session

from payment_service import ledger, models
from payment_service.errors import InsufficientBalance, InvalidAmount


def test_ensure_wallet_creates_once(db_session: Session):
    wallet, created = ledger.ensure_wallet(db_session, 10)
    assert created is True
    assert wallet.balance == 0
    assert wallet.total_credited == 0

    same, created_again = ledger.ensure_wallet(db_session, 10)
    assert created_again is False
    assert same.id == wallet.id


def test_credits_conserve_balance(db_session: Session):
    """Final balance is the sum of the entries and every entry chains from the previous one."""
    wallet, _ = ledger.ensure_wallet(db_session, 11)
    amounts = [50, 100, 1, 2499, 7]

    for amount in amounts:
        ledger.credit(db_session, wallet.id, amount, models.TransactionSource.REFERRAL_BONUS)

    db_session.refresh(wallet)
    assert wallet.balance == sum(amounts)
    assert wallet.total_credited == sum(amounts)

    txns = list(reversed(ledger.list_transactions(db_session, wallet.id)))
    assert [t.amount for t in txns] == amounts
    running = 0
    for txn in txns:
        assert txn.type == models.TransactionType.CREDIT
        assert txn.balance_before == running
        assert txn.balance_after == txn.balance_before + txn.amount
        running = txn.balance_after


def test_credit_records_references(db_session: Session, make_booking):
    booking = make_booking(user_id=12)
    wallet, _ = ledger.ensure_wallet(db_session, 12)

    txn = ledger.credit(
        db_session, wallet.id, 100, models.TransactionSource.REFERRAL_BONUS,
        booking_id=booking.id, description="Referral reward for friend's booking",
    )

    assert txn.source == "referral_bonus"
    assert txn.booking_id == booking.id
    assert txn.referral_id is None


@pytest.mark.parametrize("amount", [0, -1, None])
def test_non_positive_credit_is_rejected(db_session: Session, amount):
    wallet, _ = ledger.ensure_wallet(db_session, 13)
    with pytest.raises(InvalidAmount):
        ledger.credit(db_session, wallet.id, amount, models.TransactionSource.REFERRAL_BONUS)
    db_session.refresh(wallet)
    assert wallet.balance == 0


def test_debit_cannot_overdraw(db_session: Session):
    wallet, _ = ledger.ensure_wallet(db_session, 14)
    ledger.credit(db_session, wallet.id, 100, models.TransactionSource.REFERRAL_BONUS)

    with pytest.raises(InsufficientBalance):
        ledger.debit(db_session, wallet.id, 101, models.TransactionSource.WALLET_REDEMPTION)

    txn = ledger.debit(db_session, wallet.id, 60, models.TransactionSource.WALLET_REDEMPTION)
    assert txn.type == models.TransactionType.DEBIT
    assert txn.balance_before == 100
    assert txn.balance_after == 40

    db_session.refresh(wallet)
    assert wallet.balance == 40
    # Debits never reduce the running credit total
    assert wallet.total_credited == 100

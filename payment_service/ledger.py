import datetime
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import crud, models
from .errors import InsufficientBalance, InvalidAmount

logger = logging.getLogger("payment_service")


def get_wallet_by_user(db: Session, user_id: int) -> Optional[models.Wallet]:
    return db.query(models.Wallet).filter(models.Wallet.user_id == user_id).first()


def ensure_wallet(db: Session, user_id: int) -> Tuple[models.Wallet, bool]:
    """
    Returns (wallet, created). Exactly one caller ever sees created=True for
    a given user, even under concurrent delivery. Does NOT commit.
    """
    now = datetime.datetime.utcnow()
    created = crud.insert_if_absent(
        db,
        models.Wallet,
        {"user_id": user_id, "balance": 0, "total_credited": 0, "created_at": now, "updated_at": now},
        conflict_columns=["user_id"],
    )
    wallet = db.execute(
        select(models.Wallet).where(models.Wallet.user_id == user_id)
    ).scalar_one()
    if created:
        logger.info(f"Created wallet {wallet.id} for user {user_id}")
    return wallet, created


def _lock_wallet(db: Session, wallet_id: int) -> models.Wallet:
    # Row lock serializes concurrent read-modify-write on the same wallet
    stmt = (
        select(models.Wallet)
        .where(models.Wallet.id == wallet_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one()


def _post(
        db: Session,
        wallet_id: int,
        txn_type: models.TransactionType,
        amount: int,
        source: str,
        referral_id: Optional[int],
        booking_id: Optional[int],
        description: Optional[str],
) -> models.WalletTransaction:
    if amount is None or amount <= 0:
        raise InvalidAmount(f"Ledger amount must be positive, got {amount}")

    wallet = _lock_wallet(db, wallet_id)
    balance_before = wallet.balance

    if txn_type is models.TransactionType.CREDIT:
        balance_after = balance_before + amount
        wallet.total_credited = wallet.total_credited + amount
    else:
        balance_after = balance_before - amount
        if balance_after < 0:
            raise InsufficientBalance(
                f"Wallet {wallet_id} balance {balance_before} cannot cover debit of {amount}"
            )

    txn = models.WalletTransaction(
        wallet_id=wallet.id,
        type=txn_type,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        source=str(getattr(source, "value", source)),
        referral_id=referral_id,
        booking_id=booking_id,
        description=description,
    )
    wallet.balance = balance_after
    wallet.updated_at = datetime.datetime.utcnow()

    db.add(txn)
    db.flush()
    return txn


def credit(
        db: Session,
        wallet_id: int,
        amount: int,
        source: str,
        referral_id: Optional[int] = None,
        booking_id: Optional[int] = None,
        description: Optional[str] = None,
) -> models.WalletTransaction:
    """Appends a credit entry and raises the balance. Does NOT commit."""
    txn = _post(db, wallet_id, models.TransactionType.CREDIT, amount, source, referral_id, booking_id, description)
    logger.info(f"Credited {amount} to wallet {wallet_id} ({txn.source}), balance now {txn.balance_after}")
    return txn


def debit(
        db: Session,
        wallet_id: int,
        amount: int,
        source: str,
        booking_id: Optional[int] = None,
        description: Optional[str] = None,
) -> models.WalletTransaction:
    """Appends a debit entry. Raises InsufficientBalance instead of going below zero. Does NOT commit."""
    txn = _post(db, wallet_id, models.TransactionType.DEBIT, amount, source, None, booking_id, description)
    logger.info(f"Debited {amount} from wallet {wallet_id} ({txn.source}), balance now {txn.balance_after}")
    return txn


def list_transactions(db: Session, wallet_id: int, skip: int = 0, limit: int = 50) -> List[models.WalletTransaction]:
    return (
        db.query(models.WalletTransaction)
        .filter(models.WalletTransaction.wallet_id == wallet_id)
        .order_by(models.WalletTransaction.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

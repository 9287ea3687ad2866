from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import ledger, schemas
from ..auth import get_current_user_id_from_token
from ..database import get_db

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("/", response_model=schemas.WalletRead)
def read_wallet(
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        db: Session = Depends(get_db),
        skip: int = 0,
        limit: int = 50,
):
    """
    Balance and most recent ledger entries for the authenticated user.
    """
    wallet = ledger.get_wallet_by_user(db, user_id)
    if wallet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wallet not found")

    return schemas.WalletRead(
        id=wallet.id,
        user_id=wallet.user_id,
        balance=wallet.balance,
        total_credited=wallet.total_credited,
        transactions=[
            schemas.WalletTransactionRead.model_validate(t)
            for t in ledger.list_transactions(db, wallet.id, skip=skip, limit=limit)
        ],
    )

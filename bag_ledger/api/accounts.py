"""
Account endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends

from .deps import get_caller, get_exchange, http_error
from ..errors import BagLedgerError
from ..exchange import BagExchange


router = APIRouter()


@router.get("/{account}")
async def get_account(account: str, exchange: BagExchange = Depends(get_exchange)):
    """Bags held by an account and any credit owed to it"""
    return {
        "account": account,
        "balance": exchange.balance_of(account),
        "bags": exchange.bags_of(account),
        "credit": str(exchange.credit_of(account))
    }


@router.post("/withdraw-credit")
async def withdraw_credit(
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    """Collect the caller's outstanding credit (pull settlement)"""
    try:
        amount = exchange.withdraw_credit(caller)
    except BagLedgerError as e:
        raise http_error(e)
    return {"account": caller, "amount": str(amount)}

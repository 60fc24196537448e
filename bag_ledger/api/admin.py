"""
Administrator endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends

from .deps import get_caller, get_exchange, http_error
from .schemas import SetAdministratorRequest, WithdrawRequest
from ..errors import BagLedgerError
from ..exchange import BagExchange
from ..ownership import Holder


router = APIRouter()


@router.get("")
async def get_admin_info(exchange: BagExchange = Depends(get_exchange)):
    """Administrator and treasury overview"""
    treasury = exchange.treasury.snapshot()
    return {
        "administrator": exchange.administrator,
        "settlement_mode": exchange.treasury.mode.value,
        "treasury": {k: str(v) for k, v in treasury.items()},
        "withdrawable": str(exchange.treasury.withdrawable()),
        "ledger_inventory": exchange.balance_of(Holder.ledger())
    }


@router.put("/administrator")
async def set_administrator(
    request: SetAdministratorRequest,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    try:
        exchange.set_administrator(caller, request.account)
    except BagLedgerError as e:
        raise http_error(e)
    return {"administrator": request.account}


@router.post("/withdraw")
async def withdraw(
    request: WithdrawRequest,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    """Send the ledger's retained balance out"""
    try:
        amount = exchange.withdraw(caller, request.to)
    except BagLedgerError as e:
        raise http_error(e)
    return {"amount": str(amount), "to": request.to or exchange.administrator}


@router.get("/audit/verify")
async def verify_audit(exchange: BagExchange = Depends(get_exchange)):
    """Check the audit hash chain"""
    return exchange.audit_trail.verify_integrity()

"""
Bag endpoints: creation, queries, purchase and the transfer protocol
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .deps import get_caller, get_exchange, http_error
from .schemas import (
    ApproveRequest, CreateBagRequest, PurchaseRequest,
    TransferFromRequest, TransferRequest
)
from ..errors import BagLedgerError
from ..exchange import BagExchange


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bag(
    request: CreateBagRequest,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    """Create a new bag (administrator only)"""
    try:
        bag = exchange.create_bag(
            caller,
            request.name,
            owner=request.owner,
            price=int(request.price) if request.price is not None else None
        )
    except BagLedgerError as e:
        raise http_error(e)

    return {
        "bag_id": bag.bag_id,
        "message": "Bag created successfully"
    }


@router.get("")
async def list_bags(
    offset: int = 0,
    limit: int = 50,
    exchange: BagExchange = Depends(get_exchange)
):
    """List bags by identifier"""
    total = exchange.total_supply()
    start = max(offset, 0)
    end = min(start + max(limit, 0), total)
    return {
        "total_supply": total,
        "bags": [exchange.get_bag(bag_id).to_dict() for bag_id in range(start, end)]
    }


@router.get("/{bag_id}")
async def get_bag(bag_id: int, exchange: BagExchange = Depends(get_exchange)):
    """Get bag details"""
    try:
        return exchange.get_bag(bag_id).to_dict()
    except BagLedgerError as e:
        raise http_error(e)


@router.get("/{bag_id}/owner")
async def get_owner(bag_id: int, exchange: BagExchange = Depends(get_exchange)):
    try:
        owner = exchange.owner_of(bag_id)
    except BagLedgerError as e:
        raise http_error(e)
    return {"bag_id": bag_id, "owner": owner.account, "held_by_ledger": owner.is_ledger}


@router.get("/{bag_id}/price")
async def get_price(bag_id: int, exchange: BagExchange = Depends(get_exchange)):
    try:
        price = exchange.price_of(bag_id)
    except BagLedgerError as e:
        raise http_error(e)
    return {"bag_id": bag_id, "price": str(price)}


@router.get("/{bag_id}/approval")
async def get_approval(bag_id: int, exchange: BagExchange = Depends(get_exchange)):
    try:
        exchange.owner_of(bag_id)
    except BagLedgerError as e:
        raise http_error(e)
    return {"bag_id": bag_id, "approved": exchange.approved_for(bag_id)}


@router.post("/{bag_id}/purchase")
async def purchase_bag(
    bag_id: int,
    request: PurchaseRequest,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    """Buy a bag at its current price or more"""
    try:
        receipt = exchange.purchase(caller, bag_id, int(request.amount))
    except BagLedgerError as e:
        raise http_error(e)
    return receipt.to_dict()


@router.post("/{bag_id}/approve")
async def approve(
    bag_id: int,
    request: ApproveRequest,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    try:
        exchange.approve(caller, request.to, bag_id)
    except BagLedgerError as e:
        raise http_error(e)
    return {"bag_id": bag_id, "approved": request.to}


@router.post("/{bag_id}/transfer")
async def transfer(
    bag_id: int,
    request: TransferRequest,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    try:
        exchange.transfer(caller, request.to, bag_id)
    except BagLedgerError as e:
        raise http_error(e)
    return {"bag_id": bag_id, "owner": request.to}


@router.post("/{bag_id}/take-ownership")
async def take_ownership(
    bag_id: int,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    try:
        exchange.take_ownership(caller, bag_id)
    except BagLedgerError as e:
        raise http_error(e)
    return {"bag_id": bag_id, "owner": caller}


@router.post("/{bag_id}/transfer-from")
async def transfer_from(
    bag_id: int,
    request: TransferFromRequest,
    caller: Optional[str] = Depends(get_caller),
    exchange: BagExchange = Depends(get_exchange)
):
    try:
        exchange.transfer_from(caller, request.from_account, request.to, bag_id)
    except BagLedgerError as e:
        raise http_error(e)
    return {"bag_id": bag_id, "owner": request.to}

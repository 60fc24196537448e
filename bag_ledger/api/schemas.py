"""
Pydantic schemas for API requests

Amounts are decimal strings: 256-bit values do not fit a JSON number.
"""

from typing import Optional
from pydantic import BaseModel, Field

AMOUNT_PATTERN = r"^[0-9]+$"


class CreateBagRequest(BaseModel):
    name: str = Field(..., description="Display name of the bag")
    owner: Optional[str] = Field(None, description="Initial owner; held by the ledger when omitted")
    price: Optional[str] = Field(None, pattern=AMOUNT_PATTERN, description="Initial price")


class PurchaseRequest(BaseModel):
    amount: str = Field(..., pattern=AMOUNT_PATTERN, description="Amount paid")


class ApproveRequest(BaseModel):
    to: Optional[str] = Field(None, description="Approved account; omit to revoke")


class TransferRequest(BaseModel):
    to: str


class TransferFromRequest(BaseModel):
    from_account: str
    to: str


class SetAdministratorRequest(BaseModel):
    account: str


class WithdrawRequest(BaseModel):
    to: Optional[str] = Field(None, description="Destination; the administrator when omitted")

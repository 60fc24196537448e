"""
Shared API dependencies: the exchange instance, caller identity and
error translation
"""

from typing import Optional
from fastapi import Header, HTTPException

from ..exchange import BagExchange, create_exchange
from ..errors import BagLedgerError, NoOwner, NotFound, Unauthorized


_exchange: Optional[BagExchange] = None


def get_exchange() -> BagExchange:
    """Lazily build the process-wide exchange from configuration"""
    global _exchange
    if _exchange is None:
        _exchange = create_exchange()
    return _exchange


def set_exchange(exchange: Optional[BagExchange]) -> None:
    global _exchange
    _exchange = exchange


def get_caller(x_account: Optional[str] = Header(None, alias="X-Account")) -> Optional[str]:
    """Account submitting the call, from the X-Account header"""
    return x_account or None


def http_error(error: BagLedgerError) -> HTTPException:
    """Translate a ledger error into an HTTP error"""
    if isinstance(error, (NotFound, NoOwner)):
        status_code = 404
    elif isinstance(error, Unauthorized):
        status_code = 403
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=error.to_dict())

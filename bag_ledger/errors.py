"""
Error Taxonomy

Every failure aborts the enclosing ledger operation with no partial state
change. All errors derive from BagLedgerError, which subclasses ValueError
so callers written against plain ValueError keep working.
"""

from typing import Any, Dict, Optional


class BagLedgerError(ValueError):
    """Root of all ledger failures, with a stable machine-readable code"""
    
    code = "LEDGER/ERROR"
    
    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation for logs and API responses"""
        result = {"code": self.code, "message": self.message}
        if self.data:
            result["data"] = {k: str(v) if type(v) is int else v for k, v in self.data.items()}
        return result


class ArithmeticSafetyError(BagLedgerError):
    code = "MATH/ERROR"


class ArithmeticOverflow(ArithmeticSafetyError):
    code = "MATH/OVERFLOW"


class ArithmeticUnderflow(ArithmeticSafetyError):
    code = "MATH/UNDERFLOW"


class DivisionByZero(ArithmeticSafetyError):
    code = "MATH/DIV0"


class Unauthorized(BagLedgerError):
    """Caller lacks the required role, ownership or approval"""
    code = "AUTH/UNAUTHORIZED"


class InvalidRecipient(BagLedgerError):
    """Missing account where one is required"""
    code = "TRANSFER/INVALID_RECIPIENT"


class InsufficientPayment(BagLedgerError):
    code = "SALE/INSUFFICIENT_PAYMENT"


class SelfPurchase(BagLedgerError):
    code = "SALE/SELF_PURCHASE"


class NotFound(BagLedgerError):
    code = "REGISTRY/NOT_FOUND"


class NoOwner(BagLedgerError):
    code = "OWNERSHIP/NO_OWNER"


class IdentifierSpaceExhausted(BagLedgerError):
    code = "REGISTRY/ID_EXHAUSTED"


class PaymentDeliveryError(BagLedgerError):
    """The receiving account could not accept funds"""
    code = "FUNDS/DELIVERY_FAILED"


class InsufficientFunds(BagLedgerError):
    code = "FUNDS/INSUFFICIENT"

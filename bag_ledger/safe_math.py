"""
Checked Unsigned Arithmetic

All monetary values in the ledger are unsigned 256-bit integers, the width
of the native value-transfer unit. These helpers fail the whole operation
instead of wrapping, clamping or going negative. Never uses float.
"""

from .errors import ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero

UINT256_MAX = 2**256 - 1


def require_uint(*values: int) -> None:
    """Reject values outside [0, UINT256_MAX]"""
    for value in values:
        if value < 0:
            raise ArithmeticUnderflow(f"{value} is below zero", {"value": value})
        if value > UINT256_MAX:
            raise ArithmeticOverflow(f"{value} exceeds 256 bits", {"value": value})


def add(a: int, b: int) -> int:
    """Checked add: raises ArithmeticOverflow when the sum exceeds 256 bits"""
    require_uint(a, b)
    c = a + b
    if c > UINT256_MAX:
        raise ArithmeticOverflow("addition overflow", {"a": a, "b": b})
    return c


def sub(a: int, b: int) -> int:
    """Checked subtract: raises ArithmeticUnderflow when b > a"""
    require_uint(a, b)
    if b > a:
        raise ArithmeticUnderflow("subtraction underflow", {"a": a, "b": b})
    return a - b


def mul(a: int, b: int) -> int:
    """Checked multiply: raises ArithmeticOverflow when the product exceeds 256 bits"""
    require_uint(a, b)
    if a == 0:
        return 0
    # Truncate to the word width, then divide back out to detect the wrap
    c = (a * b) & UINT256_MAX
    if c // a != b:
        raise ArithmeticOverflow("multiplication overflow", {"a": a, "b": b})
    return c


def div(a: int, b: int) -> int:
    """Truncating division: raises DivisionByZero when b == 0"""
    require_uint(a, b)
    if b == 0:
        raise DivisionByZero("division by zero", {"a": a})
    return a // b


def mul_div(a: int, b: int, d: int) -> int:
    """floor(a * b / d) with every step checked"""
    return div(mul(a, b), d)

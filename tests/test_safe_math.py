"""
Tests for checked unsigned 256-bit arithmetic
"""

import pytest

from bag_ledger import safe_math
from bag_ledger.safe_math import UINT256_MAX
from bag_ledger.errors import (
    ArithmeticOverflow, ArithmeticUnderflow, ArithmeticSafetyError, DivisionByZero
)


class TestAdd:

    def test_add(self):
        assert safe_math.add(2, 3) == 5

    def test_add_up_to_max(self):
        assert safe_math.add(UINT256_MAX - 1, 1) == UINT256_MAX

    def test_add_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            safe_math.add(UINT256_MAX, 1)


class TestSub:

    def test_sub(self):
        assert safe_math.sub(10, 4) == 6
        assert safe_math.sub(7, 7) == 0

    def test_sub_underflow(self):
        with pytest.raises(ArithmeticUnderflow):
            safe_math.sub(3, 4)


class TestMul:

    def test_mul(self):
        assert safe_math.mul(1000, 200) == 200000

    def test_mul_by_zero(self):
        assert safe_math.mul(0, UINT256_MAX) == 0
        assert safe_math.mul(UINT256_MAX, 0) == 0

    def test_mul_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            safe_math.mul(2**128, 2**128)

    def test_mul_largest_fitting_product(self):
        assert safe_math.mul(2**128, 2**127) == 2**255


class TestDiv:

    def test_div_truncates(self):
        assert safe_math.div(7, 2) == 3
        assert safe_math.div(1, 3) == 0

    def test_div_by_zero(self):
        with pytest.raises(DivisionByZero):
            safe_math.div(5, 0)

    def test_mul_div(self):
        assert safe_math.mul_div(100000, 130, 100) == 130000
        assert safe_math.mul_div(999, 85, 100) == 849


class TestRangeChecks:

    def test_negative_input_rejected(self):
        with pytest.raises(ArithmeticUnderflow):
            safe_math.add(-1, 1)

    def test_input_above_width_rejected(self):
        with pytest.raises(ArithmeticOverflow):
            safe_math.sub(UINT256_MAX + 1, 1)

    def test_errors_share_a_base(self):
        with pytest.raises(ArithmeticSafetyError):
            safe_math.div(1, 0)

    def test_error_serialization_keeps_big_values_exact(self):
        with pytest.raises(ArithmeticOverflow) as exc_info:
            safe_math.add(UINT256_MAX, 1)
        data = exc_info.value.to_dict()
        assert data["code"] == "MATH/OVERFLOW"
        assert data["data"]["a"] == str(UINT256_MAX)

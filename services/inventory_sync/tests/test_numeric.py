from decimal import Decimal

import pytest

from app.utils.numeric import minor_to_major, to_float, to_int


class TestCoercion:
    @pytest.mark.parametrize("value", [None, "", "n/a", float("nan"), float("inf"), True, [1]])
    def test_malformed_values_become_zero(self, value):
        assert to_float(value) == 0.0
        assert to_int(value) == 0

    def test_numeric_strings(self):
        assert to_float("2.5") == 2.5
        assert to_int("7") == 7
        assert to_int("3.9") == 3
        assert to_int("-2") == -2


class TestMinorToMajor:
    def test_cents_to_dollars(self):
        assert minor_to_major(1299) == Decimal("12.99")
        assert minor_to_major(5) == Decimal("0.05")
        assert minor_to_major(0) == Decimal("0.00")

    def test_malformed_amount(self):
        assert minor_to_major("abc") == Decimal("0.00")

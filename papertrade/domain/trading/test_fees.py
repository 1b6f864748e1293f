from decimal import Decimal

import pytest

from papertrade.domain.trading.fees import calculate_fees, stamp_duty


# ==================== TESTS DE COMISIONES ====================

@pytest.mark.parametrize(
    "notional, expected",
    [
        (Decimal("1000.00"), Decimal("1.6200")),
        (Decimal("1200.00"), Decimal("2.6440")),
        (Decimal("0"), Decimal("0.5000")),
        (Decimal("1"), Decimal("1.5001")),
        (Decimal("123456.78"), Decimal("139.3148")),
    ],
)
def test_calculate_fees_known_values(notional, expected):
    """Importes de referencia calculados a mano."""
    assert calculate_fees(notional) == expected


def test_fees_have_four_decimal_places():
    fees = calculate_fees(Decimal("987.654321"))
    assert fees.as_tuple().exponent == -4


def test_flat_tariff_is_the_minimum_fee():
    for notional in ["0", "0.01", "0.5", "10", "999.99"]:
        assert calculate_fees(Decimal(notional)) >= Decimal("0.5")


def test_stamp_duty_rounds_up_to_whole_unit():
    assert stamp_duty(Decimal("1000")) == Decimal("1")
    assert stamp_duty(Decimal("1000.01")) == Decimal("2")
    assert stamp_duty(Decimal("0")) == Decimal("0")


def test_calculate_fees_accepts_int_and_str():
    assert calculate_fees(1000) == Decimal("1.6200")
    assert calculate_fees("1200") == Decimal("2.6440")


def test_negative_cost_raises():
    with pytest.raises(ValueError):
        calculate_fees(Decimal("-0.01"))

from decimal import Decimal

import pytest

from photocommerce.domain.errors import ValidationError
from photocommerce.domain.types import PricingPolicy
from photocommerce.pricing.engine import default_policy, quote


def _policy(price="5.00", threshold=20, percent="15"):
    return PricingPolicy(
        studio_id="s1",
        price_per_unit=Decimal(price),
        bulk_discount_threshold=threshold,
        bulk_discount_percent=Decimal(percent),
    )


def test_bulk_discount_applies_above_threshold():
    q = quote(_policy(), 25)
    assert q.total_amount == Decimal("125.00")
    assert q.discount == Decimal("18.75")
    assert q.final_amount == Decimal("106.25")


def test_no_discount_below_threshold():
    q = quote(_policy(), 10)
    assert q.total_amount == Decimal("50.00")
    assert q.discount == Decimal("0.00")
    assert q.final_amount == Decimal("50.00")


def test_discount_applies_exactly_at_threshold():
    q = quote(_policy(), 20)
    assert q.total_amount == Decimal("100.00")
    assert q.discount == Decimal("15.00")
    assert q.final_amount == Decimal("85.00")


def test_zero_threshold_discounts_every_selection():
    q = quote(_policy(threshold=0, percent="15"), 10)
    assert q.discount == Decimal("7.50")
    assert q.final_amount == Decimal("42.50")


def test_default_policy_gives_no_discount():
    q = quote(None, 100)
    assert q.discount == Decimal("0.00")
    assert q.final_amount == q.total_amount


def test_half_up_rounding_keeps_invariant():
    # 3 x 3.33 = 9.99, remise 12.5% = 1.24875 -> 1.25
    q = quote(_policy(price="3.33", threshold=2, percent="12.5"), 3)
    assert q.discount == Decimal("1.25")
    assert q.final_amount == Decimal("8.74")
    assert q.final_amount == q.total_amount - q.discount


def test_full_discount_gives_zero_final():
    q = quote(_policy(percent="100", threshold=1), 4)
    assert q.final_amount == Decimal("0.00")


@pytest.mark.parametrize("count", [0, -1])
def test_empty_selection_rejected(count):
    with pytest.raises(ValidationError):
        quote(_policy(), count)


def test_invalid_policy_rejected():
    with pytest.raises(ValidationError):
        quote(_policy(percent="120"), 3)


def test_missing_policy_uses_platform_default():
    q = quote(None, 3)
    assert q.price_per_unit == Decimal("5.00")
    assert q.final_amount == Decimal("15.00")
    assert q.currency == "RUB"
    assert default_policy("s9").studio_id == "s9"


def test_quote_is_deterministic():
    assert quote(_policy(), 25) == quote(_policy(), 25)


def test_quote_to_dict_uses_strings_for_amounts():
    body = quote(_policy(), 25).to_dict()
    assert body["finalAmount"] == "106.25"
    assert body["itemCount"] == 25

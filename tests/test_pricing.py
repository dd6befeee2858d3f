from decimal import Decimal
from types import SimpleNamespace

import pytest

from shared.errors import InvalidInput
from services.order_service.pricing import compute_totals, items_total, money, promotion_cap


def line(price, quantity):
    return SimpleNamespace(price=Decimal(price), quantity=quantity)


def promo(discount, is_fixed=False):
    return SimpleNamespace(discount=Decimal(discount), is_fixed=is_fixed)


def test_money_rounds_half_up():
    assert money("2.345") == Decimal("2.35")
    assert money("2.344") == Decimal("2.34")


def test_items_total():
    assert items_total([line("19.99", 2), line("5.00", 3)]) == Decimal("54.98")
    assert items_total([]) == Decimal("0.00")


def test_no_promotions_means_no_discount():
    totals = compute_totals([line("100.00", 1)], {"email": 10, "coupon": 20}, {})
    assert totals.final_amount == Decimal("100.00")
    assert totals.discount_amount == Decimal("0")


def test_channels_add_up_on_the_undiscounted_total():
    promotions = {"email": [promo(10)], "customer": [promo(5)], "coupon": [promo(20)]}
    totals = compute_totals([line("50.00", 2)], {"email": 10, "customer": 5, "coupon": 20}, promotions)
    assert totals.total_amount == Decimal("100.00")
    assert (totals.email_discount, totals.customer_discount, totals.coupon_discount) == (
        Decimal("10.00"), Decimal("5.00"), Decimal("20.00"),
    )
    assert totals.final_amount == Decimal("65.00")


def test_requested_percentage_is_capped_by_best_promotion():
    promotions = {"coupon": [promo(5), promo(15)]}
    totals = compute_totals([line("200.00", 1)], {"coupon": 50}, promotions)
    assert totals.coupon_discount == Decimal("30.00")


def test_fixed_promotion_caps_in_currency():
    totals = compute_totals([line("80.00", 1)], {"email": 50}, {"email": [promo("12.50", is_fixed=True)]})
    assert totals.email_discount == Decimal("12.50")
    assert totals.final_amount == Decimal("67.50")


def test_final_amount_never_goes_negative():
    promotions = {
        "email": [promo("60", is_fixed=True)],
        "coupon": [promo("60", is_fixed=True)],
    }
    totals = compute_totals([line("100.00", 1)], {"email": 60, "coupon": 60}, promotions)
    assert totals.discount_amount == Decimal("120.00")
    assert totals.final_amount == Decimal("0.00")


@pytest.mark.parametrize("value", [-1, 101])
def test_percentage_out_of_range(value):
    with pytest.raises(InvalidInput):
        compute_totals([line("10.00", 1)], {"email": value}, {"email": [promo(10)]})


def test_promotion_cap_without_promotions():
    assert promotion_cap([], Decimal("10")) is None

import pytest

from cancelflow.core.pricing import discounted_price


def test_variant_a_keeps_full_price() -> None:
    assert discounted_price("A", 2500) == 2500
    assert discounted_price("A", 2900) == 2900
    assert discounted_price("A", 999) == 999


def test_variant_b_uses_fixed_price_points() -> None:
    assert discounted_price("B", 2500) == 1500
    assert discounted_price("B", 2900) == 1900


@pytest.mark.parametrize("price,expected", [(4900, 3900), (1000, 0), (500, 0), (0, 0), (1001, 1)])
def test_variant_b_generic_discount_is_floored_at_zero(price: int, expected: int) -> None:
    assert discounted_price("B", price) == expected


def test_unknown_variant_is_rejected() -> None:
    with pytest.raises(ValueError):
        discounted_price("C", 2500)  # type: ignore[arg-type]


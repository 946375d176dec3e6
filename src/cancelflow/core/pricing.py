from __future__ import annotations

from cancelflow.types import Variant

# Variant B fixed price points, in cents.
VARIANT_B_PRICE_TABLE: dict[int, int] = {2500: 1500, 2900: 1900}
VARIANT_B_GENERIC_DISCOUNT = 1000


def discounted_price(variant: Variant, monthly_price: int) -> int:
    if variant == "A":
        return monthly_price
    if variant == "B":
        if monthly_price in VARIANT_B_PRICE_TABLE:
            return VARIANT_B_PRICE_TABLE[monthly_price]
        return max(0, monthly_price - VARIANT_B_GENERIC_DISCOUNT)
    raise ValueError(f"unsupported variant '{variant}'")


from __future__ import annotations

import logging
import random
from typing import Protocol

from cancelflow.types import Variant

logger = logging.getLogger(__name__)

VARIANTS: tuple[Variant, Variant] = ("A", "B")


class CancellationHistory(Protocol):
    def get_latest_cancellation(self, user_id: int): ...


def default_rng() -> random.Random:
    return random.SystemRandom()


def assign_variant(previous_variant: str | None, rng: random.Random) -> Variant:
    if previous_variant in VARIANTS:
        return previous_variant  # type: ignore[return-value]
    return rng.choice(VARIANTS)


class VariantAssignor:
    def __init__(self, history: CancellationHistory, rng: random.Random | None = None):
        self.history = history
        self.rng = rng or default_rng()

    def assign(self, user_id: int) -> Variant:
        latest = self.history.get_latest_cancellation(user_id)
        previous = latest.downsell_variant if latest else None
        variant = assign_variant(previous, self.rng)
        if previous in VARIANTS:
            logger.debug("Reusing variant %s for user_id=%s", variant, user_id)
        else:
            logger.info("Assigned variant %s to user_id=%s", variant, user_id)
        return variant

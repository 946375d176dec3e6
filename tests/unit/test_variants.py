import random
from types import SimpleNamespace

from cancelflow.core.variants import VariantAssignor, assign_variant


class FakeHistory:
    def __init__(self, latest=None):
        self.latest = latest
        self.calls: list[int] = []

    def get_latest_cancellation(self, user_id: int):
        self.calls.append(user_id)
        return self.latest


def test_previous_variant_is_reused() -> None:
    rng = random.Random(0)
    for _ in range(20):
        assert assign_variant("B", rng) == "B"
        assert assign_variant("A", rng) == "A"


def test_missing_or_invalid_previous_variant_draws_from_rng() -> None:
    rng = random.Random(7)
    drawn = {assign_variant(None, rng) for _ in range(50)}
    assert drawn == {"A", "B"}
    assert assign_variant("Z", random.Random(1)) in {"A", "B"}


def test_assignor_is_deterministic_with_seeded_rng() -> None:
    first = [VariantAssignor(FakeHistory(), random.Random(42)).assign(1) for _ in range(5)]
    second = [VariantAssignor(FakeHistory(), random.Random(42)).assign(1) for _ in range(5)]
    assert first == second


def test_assignor_reads_latest_cancellation_for_user() -> None:
    history = FakeHistory(latest=SimpleNamespace(downsell_variant="A"))
    assignor = VariantAssignor(history, random.Random(3))
    assert all(assignor.assign(9) == "A" for _ in range(10))
    assert history.calls == [9] * 10

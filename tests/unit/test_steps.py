import random
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from cancelflow.core.steps import compute_current_step, decide_flow, determine_final_step, next_actions


def _cancellation(**overrides):
    values = {"flow_type": "standard", "current_step": "start", "resolved_at": None}
    values.update(overrides)
    return SimpleNamespace(**values)


def _survey(**overrides):
    values = {
        "via_migrate_mate": "Yes",
        "roles_applied": "1-5",
        "companies_emailed": "6-20",
        "companies_interviewed": "1-2",
        "feedback": "Found a role through a referral from a former colleague.",
        "visa_lawyer": "Yes",
        "visa_type": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_no_cancellation_starts_over() -> None:
    assert compute_current_step(None, None) == "start"


def test_resolved_cancellation_starts_over() -> None:
    resolved = _cancellation(resolved_at=datetime.now(UTC), current_step="offerAccepted")
    assert compute_current_step(resolved, None) == "start"


def test_standard_flow_returns_stored_step() -> None:
    assert compute_current_step(_cancellation(current_step="reason"), None) == "reason"
    assert compute_current_step(_cancellation(current_step=None), None) == "start"


def test_found_job_without_survey_goes_to_first_survey_step() -> None:
    assert compute_current_step(_cancellation(flow_type="found_job"), None) == "foundJobStep1"


@pytest.mark.parametrize(
    "overrides,expected",
    [
        ({"via_migrate_mate": None}, "foundJobStep1"),
        ({"companies_interviewed": None}, "foundJobStep1"),
        ({"feedback": None}, "foundJobStep2"),
        ({"visa_lawyer": None}, "foundJobStep3VariantA"),
        ({"visa_lawyer": None, "via_migrate_mate": "No"}, "foundJobStep3VariantB"),
        ({"visa_lawyer": "No", "visa_type": None}, "foundJobStep3VariantA"),
        ({"visa_lawyer": "No", "visa_type": "H-1B"}, "foundJobCancelledWithHelp"),
        ({"visa_lawyer": "Yes"}, "foundJobCancelledNoHelp"),
    ],
)
def test_survey_progress_maps_to_step(overrides: dict, expected: str) -> None:
    cancellation = _cancellation(flow_type="found_job")
    assert compute_current_step(cancellation, _survey(**overrides)) == expected


def test_final_step_mapping() -> None:
    assert determine_final_step("No") == "foundJobCancelledWithHelp"
    assert determine_final_step("Yes") == "foundJobCancelledNoHelp"


def test_next_actions_for_final_steps() -> None:
    assert "Schedule visa consultation call" in next_actions("foundJobCancelledWithHelp")
    assert "Schedule visa consultation call" not in next_actions("foundJobCancelledNoHelp")
    assert next_actions("subscriptionCancelled") == ["Close modal"]


def test_standard_flow_decision_is_never_randomized() -> None:
    rng = random.Random(11)
    assert {decide_flow("standard", rng) for _ in range(100)} == {"step1Offer"}


def test_found_job_flow_decision_splits_roughly_evenly() -> None:
    rng = random.Random(2024)
    decisions = [decide_flow("found_job", rng) for _ in range(200)]
    offers = decisions.count("step1Offer")
    assert set(decisions) == {"step1Offer", "subscriptionCancelled"}
    assert 70 <= offers <= 130


def test_found_job_offer_rate_bounds() -> None:
    rng = random.Random(5)
    assert {decide_flow("found_job", rng, offer_rate=1.0) for _ in range(20)} == {"step1Offer"}
    assert {decide_flow("found_job", rng, offer_rate=0.0) for _ in range(20)} == {"subscriptionCancelled"}

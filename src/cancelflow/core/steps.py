from __future__ import annotations

import random
from typing import Any

from cancelflow.types import StepName

STEP1_FIELDS = ("via_migrate_mate", "roles_applied", "companies_emailed", "companies_interviewed")
TERMINAL_STEPS: frozenset[str] = frozenset(
    {
        "subscriptionCancelled",
        "offerAccepted",
        "foundJobCancelledNoHelp",
        "foundJobCancelledWithHelp",
    }
)


def decide_flow(flow_type: str, rng: random.Random, offer_rate: float = 0.5) -> StepName:
    """Pick the first step after the flow starts.

    Found-job users skip the retention offer part of the time and land directly
    on the cancelled screen.
    """
    if flow_type == "found_job":
        return "step1Offer" if rng.random() < offer_rate else "subscriptionCancelled"
    return "step1Offer"


def determine_final_step(visa_lawyer: str) -> StepName:
    if visa_lawyer == "No":
        return "foundJobCancelledWithHelp"
    return "foundJobCancelledNoHelp"


def next_actions(final_step: str) -> list[str]:
    if final_step == "foundJobCancelledNoHelp":
        return ["Close modal", "Send confirmation email"]
    if final_step == "foundJobCancelledWithHelp":
        return ["Close modal", "Send confirmation email", "Schedule visa consultation call"]
    return ["Close modal"]


def _step3_variant(via_migrate_mate: str | None) -> StepName:
    return "foundJobStep3VariantA" if via_migrate_mate == "Yes" else "foundJobStep3VariantB"


def compute_current_step(cancellation: Any | None, survey: Any | None) -> StepName:
    if cancellation is None or getattr(cancellation, "resolved_at", None) is not None:
        return "start"

    if survey is None:
        if cancellation.flow_type == "found_job":
            return "foundJobStep1"
        return cancellation.current_step or "start"

    if any(not getattr(survey, name, None) for name in STEP1_FIELDS):
        return "foundJobStep1"
    if not survey.feedback:
        return "foundJobStep2"
    if not survey.visa_lawyer:
        return _step3_variant(survey.via_migrate_mate)
    if survey.visa_lawyer == "No" and not survey.visa_type:
        return _step3_variant(survey.via_migrate_mate)
    return determine_final_step(survey.visa_lawyer)

from __future__ import annotations

import logging
import random
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cancelflow.config import Settings, get_settings
from cancelflow.core.analytics import calculate_analytics
from cancelflow.core.pricing import discounted_price
from cancelflow.core.steps import (
    TERMINAL_STEPS,
    compute_current_step,
    decide_flow,
    determine_final_step,
    next_actions,
)
from cancelflow.core.validation import validate_found_job_survey, validate_reason
from cancelflow.core.variants import VariantAssignor, default_rng
from cancelflow.db.models import Cancellation
from cancelflow.db.repositories import Repository
from cancelflow.errors import (
    ConflictError,
    FlowValidationError,
    already_resolved,
    cancellation_not_found,
    subscription_not_found,
)
from cancelflow.types import (
    CancellationAnalytics,
    CancellationPatch,
    FoundJobCompletion,
    StartResult,
)

logger = logging.getLogger(__name__)

ELIGIBLE_STATUSES = ("active", "pending_cancellation")


class CancellationService:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.rng = rng or default_rng()
        self.variants = VariantAssignor(self.repo, self.rng)

    def start_cancellation(self, *, user_id: int, flow_type: str = "standard") -> StartResult:
        existing = self.repo.get_unresolved_cancellation(user_id)
        if existing:
            logger.info("Returning in-flight cancellation_id=%s user_id=%s", existing.id, user_id)
            return self._start_result(existing, existing=True)

        subscription = self.repo.get_subscription_for_user(user_id, ELIGIBLE_STATUSES)
        if subscription is None:
            raise subscription_not_found(user_id)

        variant = self.variants.assign(user_id)
        flow_decision = decide_flow(flow_type, self.rng, self.settings.found_job_offer_rate)

        try:
            with self.repo.atomic():
                self.repo.set_subscription_status(subscription.id, "pending_cancellation")
                cancellation = self.repo.create_cancellation(
                    user_id=user_id,
                    subscription_id=subscription.id,
                    downsell_variant=variant,
                    flow_type=flow_type,
                    flow_decision=flow_decision,
                )
        except ConflictError as exc:
            if not isinstance(exc.__cause__, IntegrityError):
                raise
            winner = self.repo.get_unresolved_cancellation(user_id)
            if winner is None:
                raise ConflictError(
                    "a cancellation is already in progress for this user",
                    code="CANCELLATION_IN_PROGRESS",
                ) from exc
            logger.info("Concurrent start resolved to cancellation_id=%s", winner.id)
            return self._start_result(winner, existing=True)

        logger.info(
            "Started cancellation_id=%s user_id=%s flow_type=%s variant=%s decision=%s",
            cancellation.id,
            user_id,
            flow_type,
            variant,
            flow_decision,
        )
        return self._start_result(cancellation, existing=False)

    def update_step(self, cancellation_id: int, current_step: str) -> dict[str, Any]:
        if current_step in TERMINAL_STEPS:
            # Terminal steps are only reached through the resolving transitions.
            raise FlowValidationError(
                "Invalid step update",
                details=[
                    {"field": "current_step", "message": f"{current_step} ends the flow and cannot be set directly"}
                ],
            )
        self._get_open(cancellation_id)
        with self.repo.atomic():
            cancellation = self.repo.update_cancellation(cancellation_id, current_step=current_step)
        return self.serialize_cancellation(cancellation)

    def update_cancellation(self, cancellation_id: int, patch: CancellationPatch) -> dict[str, Any]:
        if patch.flow_type == "offer_accepted":
            return self.accept_downsell(cancellation_id)

        cancellation = self._get_open(cancellation_id)
        values: dict[str, Any] = {}
        if patch.reason is not None:
            values["reason"], values["details"] = validate_reason(patch.reason, patch.details)
        elif patch.details is not None:
            if not cancellation.reason:
                raise FlowValidationError(
                    "details require a reason",
                    details=[{"field": "reason", "message": "reason is required when details are sent"}],
                )
            values["reason"], values["details"] = validate_reason(cancellation.reason, patch.details)
        if patch.accepted_downsell is not None:
            values["accepted_downsell"] = patch.accepted_downsell
        if patch.flow_type is not None:
            values["flow_type"] = patch.flow_type
        if patch.found_job_data is not None:
            values["flow_type"] = "found_job"

        with self.repo.atomic():
            cancellation = self.repo.update_cancellation(cancellation_id, **values)
            if patch.found_job_data is not None:
                self.repo.upsert_survey(cancellation_id, patch.found_job_data.model_dump(exclude_unset=True))
        return self.serialize_cancellation(cancellation)

    def record_downsell_decision(self, cancellation_id: int, accepted: bool) -> dict[str, Any]:
        if accepted:
            return self.accept_downsell(cancellation_id)

        self._get_open(cancellation_id)
        with self.repo.atomic():
            cancellation = self.repo.update_cancellation(
                cancellation_id, accepted_downsell=False, current_step="reason"
            )
        logger.info("Downsell declined cancellation_id=%s", cancellation_id)
        return self.serialize_cancellation(cancellation)

    def accept_downsell(self, cancellation_id: int) -> dict[str, Any]:
        cancellation = self._get_open(cancellation_id)
        with self.repo.atomic():
            self.repo.resolve_cancellation(
                cancellation_id,
                resolution="offer_accepted",
                accepted_downsell=True,
                flow_type="offer_accepted",
                current_step="offerAccepted",
            )
            self.repo.set_subscription_status(cancellation.subscription_id, "active")
        logger.info("Downsell accepted cancellation_id=%s", cancellation_id)
        return self.serialize_cancellation(cancellation)

    def decline_to_standard_reason(
        self,
        cancellation_id: int,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        cancellation = self._get_open(cancellation_id)
        reason, stored_details = validate_reason(reason, details)
        with self.repo.atomic():
            self.repo.resolve_cancellation(
                cancellation_id,
                resolution="cancelled",
                accepted_downsell=False,
                reason=reason,
                details=stored_details,
                current_step="subscriptionCancelled",
            )
            self.repo.set_subscription_status(cancellation.subscription_id, "cancelled")
        logger.info("Cancelled with reason cancellation_id=%s reason=%s", cancellation_id, reason)
        return self.serialize_cancellation(cancellation)

    def complete_cancellation(self, cancellation_id: int) -> dict[str, Any]:
        cancellation = self._get_open(cancellation_id)
        with self.repo.atomic():
            self.repo.resolve_cancellation(
                cancellation_id,
                resolution="cancelled",
                current_step="subscriptionCancelled",
            )
            self.repo.set_subscription_status(cancellation.subscription_id, "cancelled")
        logger.info("Completed cancellation_id=%s", cancellation_id)
        return self.serialize_cancellation(cancellation)

    def complete_found_job(self, cancellation_id: int, survey: Any) -> FoundJobCompletion:
        cancellation = self._get_open(cancellation_id)
        data = validate_found_job_survey(survey)
        final_step = determine_final_step(data.visa_lawyer)

        with self.repo.atomic():
            self.repo.upsert_survey(cancellation_id, data.model_dump())
            self.repo.resolve_cancellation(
                cancellation_id,
                resolution="cancelled",
                flow_type="found_job",
                reason="Found a job",
                current_step=final_step,
            )
            self.repo.set_subscription_status(cancellation.subscription_id, "cancelled")

        logger.info("Found-job cancellation completed cancellation_id=%s final_step=%s", cancellation_id, final_step)
        return FoundJobCompletion(
            cancellation_id=cancellation_id,
            flow_type="found_job",
            final_step=final_step,
            next_actions=next_actions(final_step),
        )

    def renew_subscription(self, user_id: int) -> dict[str, Any]:
        subscription = self.repo.get_subscription_for_user(user_id)
        if subscription is None:
            raise subscription_not_found(user_id)

        open_cancellation = self.repo.get_unresolved_cancellation(user_id)
        with self.repo.atomic():
            if open_cancellation is not None:
                self.repo.resolve_cancellation(open_cancellation.id, resolution="renewed")
            if subscription.status != "active":
                self.repo.set_subscription_status(subscription.id, "active")

        logger.info("Renewed subscription_id=%s user_id=%s", subscription.id, user_id)
        return {
            "status": "active",
            "cancellation_id": open_cancellation.id if open_cancellation else None,
        }

    def reset_modal_state(self, user_id: int) -> int | None:
        open_cancellation = self.repo.get_unresolved_cancellation(user_id)
        if open_cancellation is None:
            return None

        with self.repo.atomic():
            self.repo.resolve_cancellation(open_cancellation.id, resolution="reset")
            subscription = self.repo.get_subscription(open_cancellation.subscription_id)
            if subscription is not None and subscription.status == "pending_cancellation":
                self.repo.set_subscription_status(subscription.id, "active")

        logger.info("Reset modal state user_id=%s cancellation_id=%s", user_id, open_cancellation.id)
        return open_cancellation.id

    def get_state(self, user_id: int) -> dict[str, Any]:
        cancellation = self.repo.get_unresolved_cancellation(user_id)
        if cancellation is None:
            return {"has_active_cancellation": False, "current_step": "start"}

        survey = self.repo.get_survey(cancellation.id)
        return {
            "has_active_cancellation": True,
            "current_step": compute_current_step(cancellation, survey),
            "cancellation_id": cancellation.id,
            "downsell_variant": cancellation.downsell_variant,
            "flow_type": cancellation.flow_type,
            "flow_decision": cancellation.flow_decision,
            "reason": cancellation.reason,
            "accepted_downsell": cancellation.accepted_downsell,
            "details": cancellation.details or {},
            "found_job_data": (
                {
                    "via_migrate_mate": survey.via_migrate_mate,
                    "roles_applied": survey.roles_applied,
                    "companies_emailed": survey.companies_emailed,
                    "companies_interviewed": survey.companies_interviewed,
                    "feedback": survey.feedback,
                    "visa_lawyer": survey.visa_lawyer,
                    "visa_type": survey.visa_type,
                }
                if survey
                else None
            ),
        }

    def subscription_status(self, user_id: int) -> dict[str, Any]:
        subscription = self.repo.get_subscription_for_user(user_id)
        if subscription is None:
            raise subscription_not_found(user_id)

        status = subscription.status
        if status == "active" and self.repo.get_unresolved_cancellation(user_id) is not None:
            status = "pending_cancellation"

        offer = self.repo.get_latest_accepted_offer(user_id)
        return {
            "status": status,
            "monthly_price": subscription.monthly_price,
            "accepted_offer": (
                {"has_accepted_offer": True, "accepted_downsell": bool(offer.accepted_downsell)}
                if offer
                else None
            ),
        }

    def analytics(self) -> CancellationAnalytics:
        return calculate_analytics(self.repo.list_cancellations(), self.repo.list_surveys())

    def serialize_cancellation(self, cancellation: Cancellation) -> dict[str, Any]:
        return {
            "id": cancellation.id,
            "user_id": cancellation.user_id,
            "subscription_id": cancellation.subscription_id,
            "downsell_variant": cancellation.downsell_variant,
            "flow_type": cancellation.flow_type,
            "flow_decision": cancellation.flow_decision,
            "current_step": cancellation.current_step,
            "reason": cancellation.reason,
            "accepted_downsell": cancellation.accepted_downsell,
            "details": cancellation.details or {},
            "resolution": cancellation.resolution,
            "resolved_at": cancellation.resolved_at.isoformat() if cancellation.resolved_at else None,
        }

    def _get_open(self, cancellation_id: int) -> Cancellation:
        cancellation = self.repo.get_cancellation(cancellation_id)
        if cancellation is None:
            raise cancellation_not_found(cancellation_id)
        if cancellation.resolved_at is not None:
            raise already_resolved(cancellation_id)
        return cancellation

    def _start_result(self, cancellation: Cancellation, *, existing: bool) -> StartResult:
        subscription = self.repo.get_subscription(cancellation.subscription_id)
        monthly_price = subscription.monthly_price if subscription else self.settings.default_monthly_price
        return StartResult(
            cancellation_id=cancellation.id,
            variant=cancellation.downsell_variant,
            monthly_price=monthly_price,
            discounted_price=discounted_price(cancellation.downsell_variant, monthly_price),
            flow_type=cancellation.flow_type,
            flow_decision=cancellation.flow_decision,
            existing=existing,
        )

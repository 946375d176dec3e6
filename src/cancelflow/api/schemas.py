from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from cancelflow.types import StartFlowType, StepName


class StartRequest(BaseModel):
    user_id: int = Field(gt=0)
    flow_type: StartFlowType = "standard"


class StepUpdateRequest(BaseModel):
    cancellation_id: int
    current_step: StepName


class DownsellDecisionRequest(BaseModel):
    cancellation_id: int
    accepted: bool


class DeclineRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)
    details: dict[str, Any] | None = None


class CompleteRequest(BaseModel):
    cancellation_id: int


class FoundJobCompleteRequest(BaseModel):
    cancellation_id: int
    # Validated by the service so every failing field is reported at once.
    found_job_data: dict[str, Any]


class UserRequest(BaseModel):
    user_id: int = Field(gt=0)


class CancellationResponse(BaseModel):
    id: int
    user_id: int
    subscription_id: int
    downsell_variant: str
    flow_type: str
    flow_decision: str
    current_step: str
    reason: str | None = None
    accepted_downsell: bool | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    resolution: str | None = None
    resolved_at: str | None = None


class CancellationStateResponse(BaseModel):
    has_active_cancellation: bool
    current_step: str
    cancellation_id: int | None = None
    downsell_variant: str | None = None
    flow_type: str | None = None
    flow_decision: str | None = None
    reason: str | None = None
    accepted_downsell: bool | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    found_job_data: dict[str, Any] | None = None


class ResetResponse(BaseModel):
    success: bool = True
    cancellation_id: int | None = None


class RenewResponse(BaseModel):
    success: bool = True
    status: str
    cancellation_id: int | None = None


class AcceptedOfferResponse(BaseModel):
    has_accepted_offer: bool
    accepted_downsell: bool


class SubscriptionStatusResponse(BaseModel):
    success: bool = True
    status: str
    monthly_price: int
    accepted_offer: AcceptedOfferResponse | None = None

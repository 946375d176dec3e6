from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from cancelflow.api.deps import get_service
from cancelflow.api.schemas import (
    CancellationResponse,
    CancellationStateResponse,
    CompleteRequest,
    DeclineRequest,
    DownsellDecisionRequest,
    FoundJobCompleteRequest,
    RenewResponse,
    ResetResponse,
    StartRequest,
    StepUpdateRequest,
    SubscriptionStatusResponse,
    UserRequest,
)
from cancelflow.core.service import CancellationService
from cancelflow.types import CancellationAnalytics, CancellationPatch, FoundJobCompletion, StartResult

router = APIRouter(prefix="/api", tags=["api"])


@router.post("/cancellations/start", response_model=StartResult)
def start_cancellation(
    payload: StartRequest, service: CancellationService = Depends(get_service)
) -> StartResult:
    return service.start_cancellation(user_id=payload.user_id, flow_type=payload.flow_type)


@router.get("/cancellations/state", response_model=CancellationStateResponse)
def get_cancellation_state(
    user_id: int = Query(..., gt=0), service: CancellationService = Depends(get_service)
) -> CancellationStateResponse:
    return CancellationStateResponse.model_validate(service.get_state(user_id))


@router.get("/cancellations/analytics", response_model=CancellationAnalytics)
def get_analytics(service: CancellationService = Depends(get_service)) -> CancellationAnalytics:
    return service.analytics()


@router.post("/cancellations/step", response_model=CancellationResponse)
def update_step(
    payload: StepUpdateRequest, service: CancellationService = Depends(get_service)
) -> CancellationResponse:
    data = service.update_step(payload.cancellation_id, payload.current_step)
    return CancellationResponse.model_validate(data)


@router.post("/cancellations/downsell", response_model=CancellationResponse)
def record_downsell_decision(
    payload: DownsellDecisionRequest, service: CancellationService = Depends(get_service)
) -> CancellationResponse:
    data = service.record_downsell_decision(payload.cancellation_id, payload.accepted)
    return CancellationResponse.model_validate(data)


@router.post("/cancellations/complete", response_model=CancellationResponse)
def complete_cancellation(
    payload: CompleteRequest, service: CancellationService = Depends(get_service)
) -> CancellationResponse:
    return CancellationResponse.model_validate(service.complete_cancellation(payload.cancellation_id))


@router.post("/cancellations/found-job/complete", response_model=FoundJobCompletion)
def complete_found_job(
    payload: FoundJobCompleteRequest, service: CancellationService = Depends(get_service)
) -> FoundJobCompletion:
    return service.complete_found_job(payload.cancellation_id, payload.found_job_data)


@router.post("/cancellations/reset", response_model=ResetResponse)
def reset_modal_state(
    payload: UserRequest, service: CancellationService = Depends(get_service)
) -> ResetResponse:
    return ResetResponse(cancellation_id=service.reset_modal_state(payload.user_id))


@router.patch("/cancellations/{cancellation_id}", response_model=CancellationResponse)
def update_cancellation(
    cancellation_id: int,
    payload: CancellationPatch,
    service: CancellationService = Depends(get_service),
) -> CancellationResponse:
    return CancellationResponse.model_validate(service.update_cancellation(cancellation_id, payload))


@router.post("/cancellations/{cancellation_id}/accept-downsell", response_model=CancellationResponse)
def accept_downsell(
    cancellation_id: int, service: CancellationService = Depends(get_service)
) -> CancellationResponse:
    return CancellationResponse.model_validate(service.accept_downsell(cancellation_id))


@router.post("/cancellations/{cancellation_id}/decline", response_model=CancellationResponse)
def decline_to_standard_reason(
    cancellation_id: int,
    payload: DeclineRequest,
    service: CancellationService = Depends(get_service),
) -> CancellationResponse:
    data = service.decline_to_standard_reason(cancellation_id, payload.reason, payload.details)
    return CancellationResponse.model_validate(data)


@router.post("/subscriptions/renew", response_model=RenewResponse)
def renew_subscription(
    payload: UserRequest, service: CancellationService = Depends(get_service)
) -> RenewResponse:
    return RenewResponse.model_validate(service.renew_subscription(payload.user_id))


@router.get("/subscriptions/status", response_model=SubscriptionStatusResponse)
def subscription_status(
    user_id: int = Query(..., gt=0), service: CancellationService = Depends(get_service)
) -> SubscriptionStatusResponse:
    return SubscriptionStatusResponse.model_validate(service.subscription_status(user_id))

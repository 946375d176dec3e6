from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo, field_validator

Variant = Literal["A", "B"]
FlowType = Literal["standard", "found_job", "offer_accepted"]
StartFlowType = Literal["standard", "found_job"]
SubscriptionStatus = Literal["active", "pending_cancellation", "cancelled"]
Resolution = Literal["cancelled", "offer_accepted", "renewed", "reset"]
YesNo = Literal["Yes", "No"]
ApplicationVolume = Literal["0", "1-5", "6-20", "20+"]
InterviewVolume = Literal["0", "1-2", "3-5", "5+"]
StepName = Literal[
    "start",
    "step1Offer",
    "step2OfferVariantA",
    "offer",
    "reason",
    "foundDetails",
    "subscriptionCancelled",
    "offerAccepted",
    "foundJobStep1",
    "foundJobStep2",
    "foundJobStep3VariantA",
    "foundJobStep3VariantB",
    "foundJobCancelledNoHelp",
    "foundJobCancelledWithHelp",
    "downsell",
]

VISA_TYPE_REQUIRED = 'visa_type is required when visa_lawyer is "No"'


class FoundJobSurveyData(BaseModel):
    via_migrate_mate: YesNo
    roles_applied: ApplicationVolume
    companies_emailed: ApplicationVolume
    companies_interviewed: InterviewVolume
    feedback: str = Field(min_length=25, max_length=1000)
    visa_lawyer: YesNo
    visa_type: str | None = Field(default=None, max_length=100, validate_default=True)

    @field_validator("visa_type")
    @classmethod
    def require_visa_type(cls, value: str | None, info: ValidationInfo) -> str | None:
        cleaned = value.strip() if value else ""
        if info.data.get("visa_lawyer") == "No" and not cleaned:
            raise ValueError(VISA_TYPE_REQUIRED)
        return cleaned or None


class FoundJobSurveyDraft(BaseModel):
    """Answers saved while the found-job steps are still being filled in."""

    via_migrate_mate: YesNo | None = None
    roles_applied: ApplicationVolume | None = None
    companies_emailed: ApplicationVolume | None = None
    companies_interviewed: InterviewVolume | None = None
    feedback: str | None = Field(default=None, min_length=25, max_length=1000)
    visa_lawyer: YesNo | None = None
    visa_type: str | None = Field(default=None, max_length=100)


class _ReasonBase(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class TooExpensiveReason(_ReasonBase):
    reason: Literal["Too expensive"]
    willing_price_cents: int | None = Field(default=None, ge=0)


class OtherReason(_ReasonBase):
    reason: Literal["Other"]
    other: str | None = Field(default=None, max_length=500)


class FoundJobReason(_ReasonBase):
    reason: Literal["Found a job"]
    found_via_us: YesNo | None = None
    visa_type: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=500)


class PlainReason(_ReasonBase):
    reason: Literal["Platform not helpful", "Not enough relevant jobs", "Decided not to move"]


ReasonRecord = Annotated[
    Union[TooExpensiveReason, OtherReason, FoundJobReason, PlainReason],
    Field(discriminator="reason"),
]
REASON_ADAPTER: TypeAdapter[Any] = TypeAdapter(ReasonRecord)


class CancellationPatch(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
    accepted_downsell: bool | None = None
    details: dict[str, Any] | None = None
    flow_type: FlowType | None = None
    found_job_data: FoundJobSurveyDraft | None = None


class StartResult(BaseModel):
    cancellation_id: int
    variant: Variant
    monthly_price: int
    discounted_price: int
    flow_type: FlowType
    flow_decision: StepName
    existing: bool = False


class FoundJobCompletion(BaseModel):
    cancellation_id: int
    flow_type: FlowType = "found_job"
    final_step: StepName
    next_actions: list[str] = Field(default_factory=list)


class FoundJobStats(BaseModel):
    total: int = 0
    via_migrate_mate: dict[str, int] = Field(default_factory=lambda: {"Yes": 0, "No": 0})
    visa_lawyer: dict[str, int] = Field(default_factory=lambda: {"Yes": 0, "No": 0})
    average_feedback_length: int = 0


class ConversionRates(BaseModel):
    offer_accepted: float = 0.0
    direct_cancellation: float = 0.0
    found_job_cancellation: float = 0.0


class RecentTrends(BaseModel):
    last_7_days: int = 0
    last_30_days: int = 0
    last_90_days: int = 0


class CancellationAnalytics(BaseModel):
    total_cancellations: int = 0
    by_flow_type: dict[str, int] = Field(default_factory=dict)
    by_variant: dict[str, int] = Field(default_factory=dict)
    by_resolution: dict[str, int] = Field(default_factory=dict)
    found_job_stats: FoundJobStats = Field(default_factory=FoundJobStats)
    conversion_rates: ConversionRates = Field(default_factory=ConversionRates)
    recent_trends: RecentTrends = Field(default_factory=RecentTrends)

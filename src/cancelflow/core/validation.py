from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from cancelflow.errors import FlowValidationError
from cancelflow.types import REASON_ADAPTER, FoundJobSurveyData


def field_errors(exc: ValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        errors.append({"field": field, "message": error["msg"]})
    return errors


def validate_found_job_survey(payload: Mapping[str, Any] | BaseModel) -> FoundJobSurveyData:
    data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
    try:
        return FoundJobSurveyData.model_validate(data)
    except ValidationError as exc:
        raise FlowValidationError("Invalid found-job survey", details=field_errors(exc)) from exc


def sanitize_text(value: str, limit: int = 1000) -> str:
    return value.strip().replace("<", "").replace(">", "")[:limit]


def validate_reason(reason: str, details: Mapping[str, Any] | None) -> tuple[str, dict[str, Any]]:
    """Validate a cancellation reason against the detail fields it allows.

    Returns the reason and the details bag to store.
    """
    payload = {key: value for key, value in (details or {}).items() if key != "reason"}
    payload["reason"] = reason
    try:
        record = REASON_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise FlowValidationError("Invalid cancellation reason", details=field_errors(exc)) from exc

    stored = record.model_dump(exclude={"reason"}, exclude_none=True)
    for key in ("other", "notes"):
        if isinstance(stored.get(key), str):
            stored[key] = sanitize_text(stored[key], limit=500)
    return record.reason, stored

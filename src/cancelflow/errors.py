from __future__ import annotations

from typing import Any


class CancellationFlowError(Exception):
    """Base class for business outcomes surfaced to callers with a stable code."""

    code = "UNEXPECTED_ERROR"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}


class FlowValidationError(CancellationFlowError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(CancellationFlowError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(CancellationFlowError):
    code = "CONFLICT"
    status_code = 409


class TransactionError(CancellationFlowError):
    code = "TRANSACTION_ERROR"
    status_code = 500


class UnexpectedError(CancellationFlowError):
    code = "UNEXPECTED_ERROR"
    status_code = 500


def cancellation_not_found(cancellation_id: int) -> NotFoundError:
    return NotFoundError(f"cancellation {cancellation_id} not found", code="CANCELLATION_NOT_FOUND")


def subscription_not_found(user_id: int) -> NotFoundError:
    return NotFoundError(
        f"no eligible subscription for user {user_id}", code="SUBSCRIPTION_NOT_FOUND"
    )


def already_resolved(cancellation_id: int) -> ConflictError:
    return ConflictError(
        f"cancellation {cancellation_id} is already resolved",
        code="CANCELLATION_ALREADY_RESOLVED",
    )

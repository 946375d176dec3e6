from __future__ import annotations

from fastapi.testclient import TestClient

from cancelflow.api.app import create_app

SURVEY = {
    "via_migrate_mate": "No",
    "roles_applied": "6-20",
    "companies_emailed": "20+",
    "companies_interviewed": "1-2",
    "feedback": "More filters for visa-sponsoring companies would have helped.",
    "visa_lawyer": "No",
    "visa_type": "O-1",
}


def test_health_endpoint() -> None:
    client = TestClient(create_app())
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_start_and_state_api(make_account) -> None:
    user_id = make_account(monthly_price=2500)
    client = TestClient(create_app())

    start_resp = client.post("/api/cancellations/start", json={"user_id": user_id})
    assert start_resp.status_code == 200
    body = start_resp.json()
    assert body["variant"] in {"A", "B"}
    assert body["monthly_price"] == 2500
    assert body["discounted_price"] == (1500 if body["variant"] == "B" else 2500)
    assert body["existing"] is False

    again = client.post("/api/cancellations/start", json={"user_id": user_id})
    assert again.json()["cancellation_id"] == body["cancellation_id"]
    assert again.json()["existing"] is True

    state = client.get("/api/cancellations/state", params={"user_id": user_id}).json()
    assert state["has_active_cancellation"] is True
    assert state["cancellation_id"] == body["cancellation_id"]

    status = client.get("/api/subscriptions/status", params={"user_id": user_id}).json()
    assert status["status"] == "pending_cancellation"


def test_found_job_completion_api(make_account) -> None:
    user_id = make_account()
    client = TestClient(create_app())
    cancellation_id = client.post(
        "/api/cancellations/start", json={"user_id": user_id, "flow_type": "found_job"}
    ).json()["cancellation_id"]

    resp = client.post(
        "/api/cancellations/found-job/complete",
        json={"cancellation_id": cancellation_id, "found_job_data": SURVEY},
    )
    assert resp.status_code == 200
    assert resp.json()["final_step"] == "foundJobCancelledWithHelp"

    repeat = client.post(
        "/api/cancellations/found-job/complete",
        json={"cancellation_id": cancellation_id, "found_job_data": SURVEY},
    )
    assert repeat.status_code == 409
    assert repeat.json() == {
        "success": False,
        "error": {
            "code": "CANCELLATION_ALREADY_RESOLVED",
            "message": f"cancellation {cancellation_id} is already resolved",
        },
    }


def test_invalid_survey_reports_every_field(make_account) -> None:
    user_id = make_account()
    client = TestClient(create_app())
    cancellation_id = client.post(
        "/api/cancellations/start", json={"user_id": user_id, "flow_type": "found_job"}
    ).json()["cancellation_id"]

    resp = client.post(
        "/api/cancellations/found-job/complete",
        json={
            "cancellation_id": cancellation_id,
            "found_job_data": {**SURVEY, "feedback": "short", "visa_type": ""},
        },
    )
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert {item["field"] for item in error["details"]} == {"feedback", "visa_type"}


def test_malformed_request_is_a_validation_error() -> None:
    client = TestClient(create_app())
    resp = client.post("/api/cancellations/start", json={"user_id": "abc"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"][0]["field"] == "user_id"


def test_unknown_records_are_not_found() -> None:
    client = TestClient(create_app())

    start = client.post("/api/cancellations/start", json={"user_id": 77})
    assert start.status_code == 404
    assert start.json()["error"]["code"] == "SUBSCRIPTION_NOT_FOUND"

    accept = client.post("/api/cancellations/9999/accept-downsell")
    assert accept.status_code == 404
    assert accept.json()["error"]["code"] == "CANCELLATION_NOT_FOUND"


def test_downsell_and_renew_api(make_account) -> None:
    user_id = make_account(monthly_price=2900)
    client = TestClient(create_app())
    cancellation_id = client.post("/api/cancellations/start", json={"user_id": user_id}).json()[
        "cancellation_id"
    ]

    accepted = client.post("/api/cancellations/downsell", json={"cancellation_id": cancellation_id, "accepted": True})
    assert accepted.status_code == 200
    assert accepted.json()["resolution"] == "offer_accepted"

    status = client.get("/api/subscriptions/status", params={"user_id": user_id}).json()
    assert status["status"] == "active"
    assert status["accepted_offer"] == {"has_accepted_offer": True, "accepted_downsell": True}

    renew = client.post("/api/subscriptions/renew", json={"user_id": user_id})
    assert renew.status_code == 200
    assert renew.json() == {"success": True, "status": "active", "cancellation_id": None}


def test_decline_with_reason_and_reset(make_account) -> None:
    user_id = make_account()
    client = TestClient(create_app())
    cancellation_id = client.post("/api/cancellations/start", json={"user_id": user_id}).json()[
        "cancellation_id"
    ]

    step = client.post(
        "/api/cancellations/downsell", json={"cancellation_id": cancellation_id, "accepted": False}
    )
    assert step.json()["current_step"] == "reason"

    bad = client.post(f"/api/cancellations/{cancellation_id}/decline", json={"reason": "Bored"})
    assert bad.status_code == 400

    declined = client.post(
        f"/api/cancellations/{cancellation_id}/decline",
        json={"reason": "Other", "details": {"other": "Moving to a company-provided tool"}},
    )
    assert declined.status_code == 200
    assert declined.json()["details"] == {"other": "Moving to a company-provided tool"}

    reset = client.post("/api/cancellations/reset", json={"user_id": user_id})
    assert reset.json() == {"success": True, "cancellation_id": None}


def test_unhandled_errors_are_opaque(make_account, monkeypatch) -> None:
    from cancelflow.core.service import CancellationService

    def explode(self, user_id: int):
        raise RuntimeError("connection string postgres://secret")

    monkeypatch.setattr(CancellationService, "get_state", explode)
    client = TestClient(create_app(), raise_server_exceptions=False)

    resp = client.get("/api/cancellations/state", params={"user_id": 1})
    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": {"code": "UNEXPECTED_ERROR", "message": "Unexpected error occurred"},
    }


def test_step_update_rejects_terminal_steps(make_account) -> None:
    user_id = make_account()
    client = TestClient(create_app())
    cancellation_id = client.post("/api/cancellations/start", json={"user_id": user_id}).json()[
        "cancellation_id"
    ]

    resp = client.post(
        "/api/cancellations/step", json={"cancellation_id": cancellation_id, "current_step": "offerAccepted"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    state = client.get("/api/cancellations/state", params={"user_id": user_id}).json()
    assert state["has_active_cancellation"] is True
    assert state["current_step"] == "start"

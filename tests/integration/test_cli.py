from __future__ import annotations

import json

from typer.testing import CliRunner

from cancelflow.cli.app import app

runner = CliRunner()


def test_seed_start_and_renew_from_cli() -> None:
    seeded = runner.invoke(app, ["seed"])
    assert seeded.exit_code == 0
    assert json.loads(seeded.stdout) == {"seeded_accounts": 3}
    assert json.loads(runner.invoke(app, ["seed"]).stdout) == {"seeded_accounts": 0}

    started = runner.invoke(app, ["cancellation", "start", "--user-id", "2"])
    assert started.exit_code == 0
    body = json.loads(started.stdout)
    assert body["monthly_price"] == 2900
    assert body["discounted_price"] in {1900, 2900}

    status = json.loads(runner.invoke(app, ["subscription", "status", "--user-id", "2"]).stdout)
    assert status["status"] == "pending_cancellation"

    renewed = json.loads(runner.invoke(app, ["subscription", "renew", "--user-id", "2"]).stdout)
    assert renewed == {"status": "active", "cancellation_id": body["cancellation_id"]}


def test_cli_reports_flow_errors_with_exit_code() -> None:
    result = runner.invoke(app, ["cancellation", "accept", "--cancellation-id", "404"])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["error"]["code"] == "CANCELLATION_NOT_FOUND"

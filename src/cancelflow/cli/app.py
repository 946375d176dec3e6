from __future__ import annotations

import json

import typer
import uvicorn

from cancelflow.api.app import create_app
from cancelflow.config import get_settings
from cancelflow.core.service import CancellationService
from cancelflow.db.init import init_database
from cancelflow.db.seed import seed_demo_accounts
from cancelflow.db.session import SessionLocal
from cancelflow.errors import CancellationFlowError
from cancelflow.logging_config import configure_logging

app = typer.Typer(help="Cancelflow CLI")
cancellation_app = typer.Typer(help="Inspect and drive cancellation flows")
subscription_app = typer.Typer(help="Subscription status and renewal")

app.add_typer(cancellation_app, name="cancellation")
app.add_typer(subscription_app, name="subscription")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(exc: CancellationFlowError) -> None:
    _echo(exc.to_payload())
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd(seed: bool = typer.Option(False, "--seed", help="Also create the demo accounts")) -> None:
    """Create the schema and optionally the demo accounts."""
    configure_logging()
    result = init_database(seed=seed)
    _echo({"ok": True, **result})


@app.command("seed")
def seed_cmd() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo({"seeded_accounts": seed_demo_accounts(db)})


@cancellation_app.command("start")
def cancellation_start(
    user_id: int = typer.Option(..., "--user-id"),
    flow_type: str = typer.Option("standard", "--flow-type"),
) -> None:
    configure_logging()
    ensure_initialized()
    if flow_type not in {"standard", "found_job"}:
        raise typer.BadParameter("flow type must be 'standard' or 'found_job'")
    with SessionLocal() as db:
        try:
            result = CancellationService(db).start_cancellation(user_id=user_id, flow_type=flow_type)
            _echo(result.model_dump())
        except CancellationFlowError as exc:
            _fail(exc)


@cancellation_app.command("state")
def cancellation_state(user_id: int = typer.Option(..., "--user-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo(CancellationService(db).get_state(user_id))


@cancellation_app.command("accept")
def cancellation_accept(cancellation_id: int = typer.Option(..., "--cancellation-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            _echo(CancellationService(db).accept_downsell(cancellation_id))
        except CancellationFlowError as exc:
            _fail(exc)


@cancellation_app.command("complete")
def cancellation_complete(cancellation_id: int = typer.Option(..., "--cancellation-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            _echo(CancellationService(db).complete_cancellation(cancellation_id))
        except CancellationFlowError as exc:
            _fail(exc)


@cancellation_app.command("reset")
def cancellation_reset(user_id: int = typer.Option(..., "--user-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo({"cancellation_id": CancellationService(db).reset_modal_state(user_id)})


@subscription_app.command("status")
def subscription_status(user_id: int = typer.Option(..., "--user-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            _echo(CancellationService(db).subscription_status(user_id))
        except CancellationFlowError as exc:
            _fail(exc)


@subscription_app.command("renew")
def subscription_renew(user_id: int = typer.Option(..., "--user-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            _echo(CancellationService(db).renew_subscription(user_id))
        except CancellationFlowError as exc:
            _fail(exc)


@app.command("analytics")
def analytics_cmd() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo(CancellationService(db).analytics().model_dump())


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    configure_logging(log_level)
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)

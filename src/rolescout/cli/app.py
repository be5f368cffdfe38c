from __future__ import annotations

import json
from typing import Any

import typer
import uvicorn

from rolescout.api.app import create_app
from rolescout.api.schemas import RoleDetailResponse, RoleResponse
from rolescout.config import get_settings
from rolescout.core.orchestrator import RunOrchestrator
from rolescout.db.init import init_database
from rolescout.db.repositories import EventLog, RoleLedger
from rolescout.db.session import SessionLocal
from rolescout.errors import ConfigurationError
from rolescout.logging_config import configure_logging
from rolescout.types import StageSummary

app = typer.Typer(help="RoleScout CLI")
discover_app = typer.Typer(help="Discover roles from one source")
maintain_app = typer.Typer(help="Ledger repair operations")
roles_app = typer.Typer(help="Inspect the role ledger")

app.add_typer(discover_app, name="discover")
app.add_typer(maintain_app, name="maintain")
app.add_typer(roles_app, name="roles")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo_summaries(summaries: list[StageSummary]) -> None:
    payload: Any = [summary.model_dump() for summary in summaries]
    typer.echo(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2, default=str))


def _discover(source: str, **options: Any) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            summary = RunOrchestrator(db).discover(source, **options)
        except ConfigurationError as exc:
            typer.echo(f"Configuration error: {exc}", err=True)
            raise typer.Exit(code=2) from exc
        _echo_summaries([summary])


@app.command("init")
def init_cmd() -> None:
    """Create the data directory and the ledger tables, adding any missing columns."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@discover_app.command("email")
def discover_email(platform: str | None = typer.Option(None, "--platform")) -> None:
    """Alert emails: every posting link, optionally limited to one ATS host."""
    _discover("email", platform=platform)


@discover_app.command("linkedin")
def discover_linkedin() -> None:
    _discover("linkedin")


@discover_app.command("search")
def discover_search(
    platform: str | None = typer.Option(None, "--platform"),
    pages: int | None = typer.Option(None, "--pages"),
    freshness: str | None = typer.Option(None, "--freshness"),
    all_queries: bool = typer.Option(False, "--all-queries"),
) -> None:
    _discover("search", platform=platform, pages=pages, freshness=freshness, all_queries=all_queries)


@discover_app.command("ats-feeds")
def discover_ats_feeds(
    platform: str | None = typer.Option(None, "--platform"),
    max_companies: int | None = typer.Option(None, "--max-companies"),
    offset: int = typer.Option(0, "--offset"),
) -> None:
    _discover("ats-feeds", platform=platform, max_companies=max_companies, offset=offset)


@discover_app.command("aggregator")
def discover_aggregator(
    query: str | None = typer.Option(None, "--query"),
    after_date: str | None = typer.Option(None, "--after"),
    max_pages: int | None = typer.Option(None, "--max-pages"),
) -> None:
    _discover("aggregator", query=query, after_date=after_date, max_pages=max_pages)


@app.command("enrich")
def enrich_cmd(limit: int | None = typer.Option(None, "--limit")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo_summaries([RunOrchestrator(db).run_enrichment(limit=limit)])


@app.command("score")
def score_cmd() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo_summaries([RunOrchestrator(db).run_scoring()])


@app.command("run")
def run_cmd(source: list[str] | None = typer.Option(None, "--source")) -> None:
    """Discover from every configured source (or --source ...), then enrich and score."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            summaries = RunOrchestrator(db).run_all(source or None)
        except ConfigurationError as exc:
            typer.echo(f"Configuration error: {exc}", err=True)
            raise typer.Exit(code=2) from exc
        _echo_summaries(summaries)


@maintain_app.command("reset-bad-content")
def maintain_reset_bad_content(source: str | None = typer.Option(None, "--source")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo_summaries([RunOrchestrator(db).reset_bad_content(source=source)])


@maintain_app.command("reset-text-too-short")
def maintain_reset_text_too_short() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo_summaries([RunOrchestrator(db).reset_text_too_short()])


@maintain_app.command("normalize-dead")
def maintain_normalize_dead() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        _echo_summaries([RunOrchestrator(db).normalize_dead()])


@roles_app.command("list")
def roles_list(
    limit: int = typer.Option(20, "--limit"),
    status: str | None = typer.Option(None, "--status"),
    include_dealbreakers: bool = typer.Option(False, "--include-dealbreakers"),
) -> None:
    """Scored roles, best first."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = RoleLedger(db).ranked(limit=limit, status=status, include_dealbreakers=include_dealbreakers)
        typer.echo(
            json.dumps(
                [RoleResponse.model_validate(row).model_dump(mode="json") for row in rows],
                indent=2,
            )
        )


@roles_app.command("show")
def roles_show(url: str = typer.Option(..., "--url")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        role = RoleLedger(db).get(url)
        if role is None:
            typer.echo(f"No role for {url}", err=True)
            raise typer.Exit(code=1)
        typer.echo(json.dumps(RoleDetailResponse.model_validate(role).model_dump(mode="json"), indent=2))


@roles_app.command("stats")
def roles_stats() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        ledger = RoleLedger(db)
        typer.echo(json.dumps({"total": ledger.count(), "by_status": ledger.status_counts()}, indent=2))


@app.command("logs")
def logs_cmd(
    limit: int = typer.Option(20, "--limit"),
    stage: str | None = typer.Option(None, "--stage"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        entries = EventLog(db).recent(limit=limit, stage=stage)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": entry.id,
                        "stage": entry.stage,
                        "message": entry.message,
                        "created_at": entry.created_at.isoformat() if entry.created_at else None,
                    }
                    for entry in entries
                ],
                indent=2,
            )
        )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from rolescout.cli.app import app
from rolescout.config import get_settings
from rolescout.db.repositories import RoleLedger
from rolescout.db.session import SessionLocal
from rolescout.types import Candidate

runner = CliRunner()


def test_roles_stats_and_show() -> None:
    with SessionLocal() as db:
        RoleLedger(db).insert(
            Candidate(url="https://jobs.ashbyhq.com/acme/5d1f", source="ats_feed", ats="ashby", title="Chief of Staff")
        )

    stats = runner.invoke(app, ["roles", "stats"])
    assert stats.exit_code == 0
    assert json.loads(stats.stdout) == {"total": 1, "by_status": {"New": 1}}

    shown = runner.invoke(app, ["roles", "show", "--url", "https://jobs.ashbyhq.com/acme/5d1f/?utm_source=x"])
    assert shown.exit_code == 0
    assert json.loads(shown.stdout)["job_title"] == "Chief of Staff"


def test_roles_show_unknown_url_exits_nonzero() -> None:
    result = runner.invoke(app, ["roles", "show", "--url", "https://jobs.ashbyhq.com/acme/missing"])
    assert result.exit_code == 1


def test_missing_credentials_exit_with_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(get_settings(), "serpapi_key", "")
    result = runner.invoke(app, ["discover", "aggregator", "--query", "chief of staff"])
    assert result.exit_code == 2

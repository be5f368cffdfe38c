from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from rolescout.db.repositories import EventLog, RoleLedger
from rolescout.db.session import SessionLocal
from rolescout.errors import LedgerError
from rolescout.types import Candidate

LEVER_URL = "https://jobs.lever.co/acme/0a1b2c3d-1111-2222-3333-444455556666"


def _candidate(url: str, source: str = "search_provider", **fields) -> Candidate:
    return Candidate(url=url, source=source, **fields)


def test_insert_dedupes_on_canonical_url(db_session: Session) -> None:
    ledger = RoleLedger(db_session)

    first = ledger.insert(_candidate(f"{LEVER_URL}?utm_source=brave", title="Chief of Staff", company="Acme"))
    second = ledger.insert(_candidate(f"{LEVER_URL}/", source="ats_feed"))

    assert first is not None
    assert first.canonical_url == LEVER_URL
    assert first.status == "New"
    assert first.ats == "unknown"
    assert second is None
    assert ledger.count() == 1
    assert ledger.get(LEVER_URL).source == "search_provider"
    assert ledger.has(f"{LEVER_URL}#apply")


def test_invalid_urls_are_not_inserted(db_session: Session) -> None:
    ledger = RoleLedger(db_session)
    assert ledger.insert(_candidate("not a url")) is None
    assert ledger.count() == 0


def test_concurrent_writer_is_treated_as_duplicate(db_session: Session) -> None:
    stale = RoleLedger(db_session)
    stale.snapshot()

    with SessionLocal() as other:
        assert RoleLedger(other).insert(_candidate(LEVER_URL)) is not None

    assert stale.insert(_candidate(LEVER_URL, source="ats_feed")) is None
    assert stale.count() == 1


def test_update_rejects_identity_fields_and_unknown_rows(db_session: Session) -> None:
    ledger = RoleLedger(db_session)
    ledger.insert(_candidate(LEVER_URL))

    with pytest.raises(LedgerError):
        ledger.update(LEVER_URL, source="ats_feed")
    with pytest.raises(LedgerError):
        ledger.update(LEVER_URL, canonical_url="https://example.com/x")
    with pytest.raises(LedgerError):
        ledger.update("https://jobs.lever.co/acme/missing", status="Enriched")
    with pytest.raises(LedgerError):
        ledger.update(LEVER_URL, not_a_column="x")

    updated = ledger.update(LEVER_URL, status="Enriched", jd_text="About the role")
    assert updated.status == "Enriched"
    assert updated.jd_text == "About the role"


def test_reset_clears_enrichment_and_scoring(db_session: Session) -> None:
    ledger = RoleLedger(db_session)
    ledger.insert(_candidate(LEVER_URL))
    ledger.update(
        LEVER_URL,
        status="Enriched",
        jd_text="Sorry, page not found",
        http_status="200",
        fit_score=40,
        rank_key="040-acme-ops",
    )

    assert ledger.reset(lambda role: "not found" in role.jd_text, statuses=["Enriched"]) == 1

    role = ledger.get(LEVER_URL)
    assert role.status == "New"
    assert role.jd_text == ""
    assert role.http_status == ""
    assert role.fit_score is None
    assert role.rank_key is None
    assert ledger.reset(lambda role: True, statuses=["Enriched"]) == 0


def test_mark_dead_skips_rows_already_dead(db_session: Session) -> None:
    ledger = RoleLedger(db_session)
    ledger.insert(_candidate(LEVER_URL))
    ledger.update(LEVER_URL, status="FetchError", failure_reason="HTTP_404")

    assert ledger.mark_dead(lambda role: role.failure_reason == "HTTP_404") == 1
    assert ledger.mark_dead(lambda role: role.failure_reason == "HTTP_404") == 0
    assert ledger.get(LEVER_URL).status == "Dead"


def test_ats_companies_in_discovery_order(db_session: Session) -> None:
    ledger = RoleLedger(db_session)
    ledger.insert(_candidate("https://jobs.ashbyhq.com/northwind/abc", ats="ashby"))
    ledger.insert(_candidate(LEVER_URL, ats="lever"))
    ledger.insert(_candidate("https://jobs.ashbyhq.com/northwind/def", ats="ashby"))
    ledger.insert(_candidate("https://www.linkedin.com/jobs/view/3812345678", ats="linkedin"))

    assert ledger.ats_companies() == [("ashby", "northwind"), ("lever", "acme")]
    assert ledger.ats_companies(platform="lever") == [("lever", "acme")]


def test_ranked_orders_by_rank_key_and_hides_dealbreakers(db_session: Session) -> None:
    ledger = RoleLedger(db_session)
    urls = [f"https://boards.greenhouse.io/acme/jobs/{i}" for i in range(3)]
    for url in urls:
        ledger.insert(_candidate(url))
    ledger.update(urls[0], status="Enriched", rank_key="060-acme-ops", dealbreaker_flag=False)
    ledger.update(urls[1], status="Enriched", rank_key="085-acme-bizops", dealbreaker_flag=False)
    ledger.update(urls[2], status="Enriched", rank_key="090-acme-london", dealbreaker_flag=True)

    assert [role.rank_key for role in ledger.ranked()] == ["090-acme-london", "085-acme-bizops", "060-acme-ops"]
    assert [role.rank_key for role in ledger.ranked(include_dealbreakers=False)] == ["085-acme-bizops", "060-acme-ops"]
    assert ledger.status_counts() == {"Enriched": 3}


def test_event_log_returns_newest_first(db_session: Session) -> None:
    events = EventLog(db_session)
    events.append("discover:search", "attempted=3")
    events.append("enrich", "attempted=2")
    events.append("score", "attempted=1")

    assert [entry.stage for entry in events.recent(limit=2)] == ["score", "enrich"]
    assert [entry.message for entry in events.recent(stage="enrich")] == ["attempted=2"]

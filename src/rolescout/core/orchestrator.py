from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from rolescout.config import Settings, get_settings
from rolescout.core import maintenance
from rolescout.core.fetcher import EnrichmentFetcher
from rolescout.core.scoring import ScoringConfig, is_scorable, score_role
from rolescout.db.repositories import EventLog, RoleLedger
from rolescout.errors import ConfigurationError
from rolescout.sources.aggregator import AGGREGATOR_QUERIES, AggregatorAdapter
from rolescout.sources.ats_feeds import AtsFeedAdapter
from rolescout.sources.base import SourceAdapter
from rolescout.sources.email_alerts import EmailAlertAdapter, ImapInbox, Inbox, LinkedInAlertAdapter
from rolescout.sources.platforms import PLATFORMS, get_platform
from rolescout.sources.web_search import WebSearchAdapter
from rolescout.types import StageSummary

logger = logging.getLogger(__name__)

DISCOVERY_SOURCES = ("email", "linkedin", "search", "ats-feeds", "aggregator")


class RunOrchestrator:
    """Runs the discover -> enrich -> score stages against one ledger session."""

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        http: Any | None = None,
        inbox: Inbox | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.http = http
        self._inbox = inbox
        self.ledger = RoleLedger(session)
        self.events = EventLog(session)

    @property
    def inbox(self) -> Inbox:
        if self._inbox is None:
            self._inbox = ImapInbox(self.settings)
        return self._inbox

    def _record(self, summary: StageSummary) -> StageSummary:
        line = summary.line()
        logger.info("Stage %s finished: %s", summary.stage, line)
        self.events.append(summary.stage, line)
        return summary

    def build_adapters(self, source: str, **options: Any) -> list[SourceAdapter]:
        common: dict[str, Any] = {"settings": self.settings, "http": self.http}
        if source == "email":
            return [EmailAlertAdapter(self.inbox, platform=options.get("platform"), **common)]
        if source == "linkedin":
            return [LinkedInAlertAdapter(self.inbox, **common)]
        if source == "search":
            names = [options["platform"]] if options.get("platform") else list(PLATFORMS)
            adapters: list[SourceAdapter] = []
            for name in names:
                platform = get_platform(name)
                queries = platform.queries if options.get("all_queries") else platform.queries[:1]
                adapters.extend(
                    WebSearchAdapter(
                        platform,
                        query,
                        pages=options.get("pages"),
                        freshness=options.get("freshness"),
                        **common,
                    )
                    for query in queries
                )
            return adapters
        if source == "ats-feeds":
            return [
                AtsFeedAdapter(
                    self.ledger.ats_companies(),
                    platform=options.get("platform"),
                    max_companies=options.get("max_companies"),
                    offset=options.get("offset") or 0,
                    **common,
                )
            ]
        if source == "aggregator":
            queries = [options["query"]] if options.get("query") else list(AGGREGATOR_QUERIES)
            return [
                AggregatorAdapter(
                    query,
                    after_date=options.get("after_date"),
                    max_pages=options.get("max_pages"),
                    **common,
                )
                for query in queries
            ]
        raise ValueError(f"unknown discovery source: {source}")

    def ingest(self, adapter: SourceAdapter, summary: StageSummary) -> None:
        candidates = adapter.discover()
        inserted = duplicates = 0
        for candidate in candidates:
            if self.ledger.insert(candidate) is None:
                duplicates += 1
            else:
                inserted += 1

        summary.attempted += len(candidates)
        summary.succeeded += inserted
        summary.skipped += duplicates
        logger.info(
            "Adapter %s: candidates=%s inserted=%s duplicates=%s stats=%s",
            adapter.name,
            len(candidates),
            inserted,
            duplicates,
            adapter.stats,
        )

    def run_discovery(self, adapters: Sequence[SourceAdapter], stage: str = "discover") -> StageSummary:
        summary = StageSummary(stage=stage)
        adapter_errors: list[str] = []
        for adapter in adapters:
            try:
                self.ingest(adapter, summary)
            except ConfigurationError:
                raise
            except Exception as exc:
                logger.exception("Discovery adapter %s failed", adapter.name)
                adapter_errors.append(f"{adapter.name}: {exc}")
                summary.failed += 1

        summary.details["adapters"] = len(adapters)
        if adapter_errors:
            summary.details["errors"] = "; ".join(adapter_errors)
        return self._record(summary)

    def discover(self, source: str, **options: Any) -> StageSummary:
        adapters = self.build_adapters(source, **options)
        return self.run_discovery(adapters, stage=f"discover:{source}")

    def run_enrichment(self, limit: int | None = None) -> StageSummary:
        fetcher = EnrichmentFetcher(self.settings, http=self.http)
        return self._record(fetcher.run(self.ledger, limit=limit))

    def run_scoring(self) -> StageSummary:
        config = ScoringConfig(
            baseline=self.settings.score_baseline,
            comp_floor_k=self.settings.comp_floor_k,
            notes_limit=self.settings.fit_notes_limit,
        )
        summary = StageSummary(stage="score")
        dealbreakers = 0
        for role in self.ledger.get_batch(statuses=["Enriched", "FetchError"]):
            if not is_scorable(role.status, role.failure_reason):
                continue
            summary.attempted += 1
            result = score_role(
                role.job_title,
                role.company,
                role.jd_text,
                role.location_raw,
                role.work_mode_hint,
                config,
            )
            self.ledger.update(
                role.canonical_url,
                scored_at=datetime.now(UTC),
                **result.model_dump(),
            )
            summary.succeeded += 1
            dealbreakers += result.dealbreaker_flag

        summary.details["dealbreakers"] = dealbreakers
        return self._record(summary)

    def configured_sources(self) -> list[str]:
        sources: list[str] = []
        if self._inbox is not None or (self.settings.imap_user and self.settings.imap_password):
            sources.extend(["email", "linkedin"])
        if self.settings.brave_subscription_token:
            sources.append("search")
        sources.append("ats-feeds")
        if self.settings.serpapi_key:
            sources.append("aggregator")
        return sources

    def run_all(self, sources: Sequence[str] | None = None) -> list[StageSummary]:
        """One full pass. Without explicit sources only those with credentials are discovered."""
        selected = list(sources) if sources is not None else self.configured_sources()
        summaries = [self.discover(source) for source in selected]
        summaries.append(self.run_enrichment())
        summaries.append(self.run_scoring())
        return summaries

    def reset_bad_content(self, source: str | None = None) -> StageSummary:
        count = maintenance.reset_bad_content(self.ledger, source=source)
        return self._record(StageSummary(stage="maintain:reset-bad-content", succeeded=count))

    def reset_text_too_short(self) -> StageSummary:
        count = maintenance.reset_text_too_short(self.ledger)
        return self._record(StageSummary(stage="maintain:reset-text-too-short", succeeded=count))

    def normalize_dead(self) -> StageSummary:
        count = maintenance.normalize_dead(self.ledger)
        return self._record(StageSummary(stage="maintain:normalize-dead", succeeded=count))

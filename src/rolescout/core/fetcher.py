from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote, urlsplit

import requests

from rolescout.config import Settings, get_settings
from rolescout.core.heuristics import (
    extract_location_hint,
    extract_work_mode_hint,
    html_to_text,
    looks_demo_board,
    looks_not_found,
    truncate_noise,
)
from rolescout.core.urls import detect_ats
from rolescout.db.models import Role
from rolescout.db.repositories import RoleLedger
from rolescout.types import FetchOutcome, StageSummary

logger = logging.getLogger(__name__)


USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
ASHBY_BOARD_URL = "https://api.ashbyhq.com/posting-api/job-board/{board}"
DEAD_REASONS = frozenset({"HTTP_404", "HTTP_410"})


def is_dead_reason(reason: str | None) -> bool:
    return bool(reason) and (reason in DEAD_REASONS or reason.endswith("_404_PAGE"))


def _path_and_segments(url: str) -> tuple[str, list[str]]:
    path = urlsplit(url.split("#", 1)[0].rstrip("/").lower()).path or "/"
    return path, [segment for segment in path.split("/") if segment]


def match_posting_url(target: str, candidate: str) -> bool:
    """Whether a board listing's jobUrl refers to the same posting as `target`."""
    if not candidate:
        return False
    target_norm = target.split("#", 1)[0].rstrip("/").lower()
    candidate_norm = candidate.rstrip("/").lower()
    target_path, target_segments = _path_and_segments(target_norm)
    candidate_path, candidate_segments = _path_and_segments(candidate_norm)
    if not candidate_segments:
        return False

    if (
        target_path == candidate_path
        or target_norm == candidate_norm
        or target_path.endswith(candidate_path)
        or candidate_path.endswith(target_path)
        or candidate_norm in target_norm
        or target_norm in candidate_norm
    ):
        return True
    return (
        len(target_segments) >= 2
        and bool(candidate_segments)
        and target_segments[0] == candidate_segments[0]
        and target_segments[-1] == candidate_segments[-1]
    )


def classify_content(http_status: int, text: str, ats: str, min_chars: int) -> str:
    """Failure reason for a fetched page, or "" when the content is usable."""
    if http_status != 200:
        return f"HTTP_{http_status}"
    if looks_not_found(text):
        platform = ats if ats in {"lever", "ashby", "greenhouse", "linkedin"} else "page"
        return f"{platform.upper()}_404_PAGE"
    if len(text) < min_chars:
        return "TEXT_TOO_SHORT"
    if looks_demo_board(text):
        return "DEMO_BOARD"
    return ""


class EnrichmentFetcher:
    """Fetch posting content for New ledger rows and move them along New -> Enriched/FetchError/Dead."""

    def __init__(self, settings: Settings | None = None, http: Any | None = None):
        self.settings = settings or get_settings()
        self.http = http or requests.Session()

    def fetch_structured(self, url: str) -> FetchOutcome | None:
        """Ashby's posting API carries the full description; other platforms return None."""
        segments = [segment for segment in urlsplit(url).path.split("/") if segment]
        if detect_ats(url) != "ashby" or not segments:
            return None

        response = self.http.get(
            ASHBY_BOARD_URL.format(board=quote(segments[0])),
            headers={"Accept": "application/json"},
            timeout=self.settings.http_timeout_sec,
        )
        if response.status_code != 200:
            logger.warning("Ashby posting API returned %s for %s", response.status_code, url)
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning("Ashby posting API returned malformed JSON for %s", url)
            return None
        jobs = data.get("jobs") if isinstance(data, dict) else None
        if not isinstance(jobs, list):
            logger.warning("Ashby posting API returned an unexpected payload for %s", url)
            return None

        for job in jobs:
            if not isinstance(job, dict) or not match_posting_url(url, str(job.get("jobUrl") or "")):
                continue
            text = str(job.get("descriptionPlain") or "").strip()
            if not text and job.get("descriptionHtml"):
                text = html_to_text(job["descriptionHtml"])
            if len(text) < self.settings.structured_min_chars:
                return None

            work_mode = str(job.get("workplaceType") or "").strip()
            if job.get("isRemote") and work_mode.lower() != "remote":
                work_mode = f"{work_mode}, remote" if work_mode else "remote"
            return FetchOutcome(
                http_status="200",
                text=text,
                location_raw=str(job.get("location") or "").strip()
                or extract_location_hint(text[: self.settings.location_hint_window]),
                work_mode_hint=work_mode or extract_work_mode_hint(text),
            )
        return None

    def fetch_html(self, url: str, ats: str) -> FetchOutcome:
        response = self.http.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=self.settings.http_timeout_sec,
            allow_redirects=True,
        )
        text = truncate_noise(html_to_text(response.text))
        reason = classify_content(response.status_code, text, ats, self.settings.min_content_chars)
        if reason:
            return FetchOutcome(http_status=str(response.status_code), failure_reason=reason)

        return FetchOutcome(
            http_status=str(response.status_code),
            text=text,
            location_raw=extract_location_hint(text[: self.settings.location_hint_window]),
            work_mode_hint=extract_work_mode_hint(text),
        )

    def fetch(self, url: str, ats: str | None = None) -> FetchOutcome:
        ats = ats if ats and ats != "unknown" else detect_ats(url)
        try:
            structured = self.fetch_structured(url)
            if structured is not None:
                return structured
            return self.fetch_html(url, ats)
        except Exception as exc:
            logger.warning("Failed to fetch posting %s: %s", url, exc)
            return FetchOutcome(http_status="ERR", failure_reason="EXCEPTION")

    def eligible(self, ledger: RoleLedger) -> list[Role]:
        rows = ledger.get_batch(statuses=["New"], sources=sorted(self.settings.fetch_source_set))
        return [row for row in rows if len((row.jd_text or "").strip()) <= self.settings.real_content_min_chars]

    def run(self, ledger: RoleLedger, limit: int | None = None) -> StageSummary:
        cap = limit if limit is not None else self.settings.max_fetch_per_run
        summary = StageSummary(stage="enrich")
        rows = self.eligible(ledger)
        summary.skipped = max(0, len(rows) - cap)
        dead = 0

        for row in rows[:cap]:
            summary.attempted += 1
            outcome = self.fetch(row.canonical_url, row.ats)
            now = datetime.now(UTC)
            if outcome.ok:
                ledger.update(
                    row.canonical_url,
                    jd_text=outcome.text,
                    location_raw=outcome.location_raw or row.location_raw,
                    work_mode_hint=outcome.work_mode_hint,
                    http_status=outcome.http_status,
                    failure_reason="",
                    status="Enriched",
                    fetched_at=now,
                    enriched_at=now,
                )
                summary.succeeded += 1
                continue

            status = "Dead" if is_dead_reason(outcome.failure_reason) else "FetchError"
            dead += status == "Dead"
            ledger.update(
                row.canonical_url,
                jd_text="",
                location_raw="",
                work_mode_hint="",
                http_status=outcome.http_status,
                failure_reason=outcome.failure_reason,
                status=status,
                fetched_at=now,
            )
            summary.failed += 1

        summary.details["dead"] = dead
        return summary

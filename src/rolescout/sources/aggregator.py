from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from rolescout.config import Settings
from rolescout.core.urls import ats_url_matches_company, detect_ats, strip_tracking_params
from rolescout.errors import ProviderError
from rolescout.sources.base import SourceAdapter
from rolescout.types import AtsName, Candidate

logger = logging.getLogger(__name__)

SERPAPI_SEARCH_URL = "https://serpapi.com/search"

AGGREGATOR_QUERIES: tuple[str, ...] = (
    '"strategy & operations" OR "strategy operations" OR "strategic operations" OR "strategy & ops"',
    '"business operations" OR "bizops" OR "biz ops"',
    '"strategic finance" OR "chief of staff"',
    '"head of operations" OR "director of operations" OR "VP operations" OR "head of business operations"',
)

_ATS_PRIORITY: tuple[AtsName, ...] = ("lever", "ashby", "greenhouse")


@dataclass(frozen=True, slots=True)
class ApplyChoice:
    url: str | None
    ats: AtsName


def _clean_link(link: Any) -> str:
    return strip_tracking_params(str(link or "")).rstrip("/")


def pick_best_apply_url(apply_options: list[dict[str, Any]] | None, company_name: str | None) -> ApplyChoice:
    """Choose the apply link to use as a posting's identity.

    Google Jobs lists several apply links per result, sometimes for other
    companies. An ATS link whose slug matches the company wins (lever, then
    ashby, then greenhouse), then a LinkedIn job link, then the first link.
    """
    if not isinstance(apply_options, list):
        return ApplyChoice(url=None, ats="unknown")
    apply_options = [option for option in apply_options if isinstance(option, dict)]
    if not apply_options:
        return ApplyChoice(url=None, ats="unknown")

    matched: dict[str, str] = {}
    linkedin_url: str | None = None
    for option in apply_options:
        clean = _clean_link(option.get("link"))
        if not clean:
            continue
        ats = detect_ats(clean)
        if ats in _ATS_PRIORITY and ats not in matched and ats_url_matches_company(clean, company_name):
            matched[ats] = clean
        if linkedin_url is None and ats == "linkedin":
            linkedin_url = clean

    for ats in _ATS_PRIORITY:
        if ats in matched:
            return ApplyChoice(url=matched[ats], ats=ats)
    if linkedin_url:
        return ApplyChoice(url=linkedin_url, ats="linkedin")

    fallback = _clean_link(apply_options[0].get("link"))
    return ApplyChoice(url=fallback or None, ats="other")


def _posted_at(job: dict[str, Any]) -> Any:
    extensions = job.get("detected_extensions")
    return extensions.get("posted_at") if isinstance(extensions, dict) else None


class AggregatorAdapter(SourceAdapter):
    """SerpAPI Google Jobs search, following `next_page_token` up to a page cap."""

    source = "aggregator_api"
    name = "aggregator"

    def __init__(
        self,
        query: str | None = None,
        *,
        after_date: date | str | None = None,
        max_pages: int | None = None,
        settings: Settings | None = None,
        http: Any | None = None,
    ):
        super().__init__(settings=settings, http=http)
        self.query = query or AGGREGATOR_QUERIES[0]
        if after_date:
            self.query = f"{self.query} after:{after_date}"
        self.max_pages = max(1, max_pages or self.settings.aggregator_max_pages)

    def discover(self) -> list[Candidate]:
        api_key = self.settings.require("serpapi_key")
        self.stats = {"pages_fetched": 0, "results": 0, "candidates": 0, "posted_at_sample": [], "error": ""}

        candidates: list[Candidate] = []
        next_page_token: str | None = None
        for page in range(self.max_pages):
            params: dict[str, Any] = {
                "engine": "google_jobs",
                "q": self.query,
                "gl": "us",
                "hl": "en",
                "api_key": api_key,
            }
            if next_page_token:
                params["next_page_token"] = next_page_token

            try:
                data = self.get_json(SERPAPI_SEARCH_URL, provider="serpapi", params=params)
                if not isinstance(data, dict):
                    raise ProviderError("serpapi", f"unexpected payload: {type(data).__name__}")
            except ProviderError as exc:
                logger.warning("SerpAPI stopped on page %s: %s", page, exc)
                self.stats["error"] = str(exc)
                break

            self.stats["pages_fetched"] += 1
            jobs = data.get("jobs_results") or []
            if not isinstance(jobs, list):
                jobs = []
            jobs = [job for job in jobs if isinstance(job, dict)]
            self.stats["results"] += len(jobs)
            self.stats["posted_at_sample"] = [posted for posted in map(_posted_at, jobs) if posted][:3]

            for job in jobs:
                choice = pick_best_apply_url(job.get("apply_options"), job.get("company_name"))
                if not choice.url:
                    continue
                candidates.append(
                    Candidate(
                        url=choice.url,
                        title=str(job.get("title") or ""),
                        company=str(job.get("company_name") or ""),
                        location=str(job.get("location") or ""),
                        ats=choice.ats,
                        source=self.source,
                        query=self.query,
                    )
                )

            pagination = data.get("serpapi_pagination")
            next_page_token = pagination.get("next_page_token") if isinstance(pagination, dict) else None
            if not next_page_token:
                break
            self.pause()

        self.stats["candidates"] = len(candidates)
        return candidates

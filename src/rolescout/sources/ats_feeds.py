from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from rolescout.config import Settings
from rolescout.errors import ProviderError
from rolescout.sources.base import SourceAdapter
from rolescout.sources.platforms import PLATFORMS, is_banned
from rolescout.types import Candidate

logger = logging.getLogger(__name__)

LEVER_POSTINGS_URL = "https://api.lever.co/v0/postings/{site}"
ASHBY_BOARD_URL = "https://api.ashbyhq.com/posting-api/job-board/{board}"
GREENHOUSE_JOBS_URL = "https://boards-api.greenhouse.io/v1/boards/{token}/jobs"
LEVER_PAGE_SIZE = 100
SNIPPET_CHARS = 300

TARGET_ROLE_RE = re.compile(
    r"strategy|operations|bizops|business operations|strategic finance|chief of staff|\bgm\b"
    r"|general manager|head of operations|head of business",
    re.IGNORECASE,
)


@dataclass(slots=True)
class FeedPosting:
    url: str
    title: str
    company: str
    description: str = ""
    location: str = ""


def title_matches(title: str | None, description_snippet: str | None = None) -> bool:
    combined = f"{title or ''} {description_snippet or ''}"
    return bool(TARGET_ROLE_RE.search(combined))


def _board_jobs(provider: str, data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        raise ProviderError(provider, f"unexpected board payload: {type(data).__name__}")
    jobs = data.get("jobs") or []
    if not isinstance(jobs, list):
        raise ProviderError(provider, f"unexpected jobs field: {type(jobs).__name__}")
    return [job for job in jobs if isinstance(job, dict)]


def _ashby_location(job: dict[str, Any]) -> str:
    location = str(job.get("location") or "").strip()
    workplace = str(job.get("workplaceType") or "").strip()
    if job.get("isRemote") and "remote" not in location.lower():
        workplace = workplace or "Remote"
    if workplace and workplace.lower() not in location.lower():
        return f"{location} ({workplace})" if location else workplace
    return location


def _lever_location(job: dict[str, Any]) -> str:
    categories = job.get("categories")
    if isinstance(categories, dict):
        return str(categories.get("location") or "")
    return ""


def _greenhouse_location(job: dict[str, Any]) -> str:
    location = job.get("location")
    if isinstance(location, dict):
        return str(location.get("name") or "")
    return str(location or "")


class AtsFeedAdapter(SourceAdapter):
    """Crawl public ATS job boards for companies already present in the ledger."""

    source = "ats_feed"
    name = "ats_feed"

    def __init__(
        self,
        companies: list[tuple[str, str]],
        *,
        platform: str | None = None,
        max_companies: int | None = None,
        offset: int = 0,
        match_descriptions: bool = False,
        settings: Settings | None = None,
        http: Any | None = None,
    ):
        super().__init__(settings=settings, http=http)
        if platform is not None and platform not in PLATFORMS:
            raise ValueError(f"unknown ATS platform: {platform}")
        self.platform = platform
        self.max_companies = max(1, max_companies or self.settings.ats_feed_max_companies)
        self.offset = max(0, offset)
        self.match_descriptions = match_descriptions
        self.companies = companies
        if platform:
            self.name = f"ats_feed:{platform}"

    def selected_companies(self) -> list[tuple[str, str]]:
        pairs = [pair for pair in self.companies if not self.platform or pair[0] == self.platform]
        return pairs[self.offset : self.offset + self.max_companies]

    def fetch_lever(self, site: str) -> list[FeedPosting]:
        postings: list[FeedPosting] = []
        skip = 0
        while True:
            try:
                data = self.get_json(
                    LEVER_POSTINGS_URL.format(site=quote(site)),
                    provider="lever",
                    params={"mode": "json", "limit": LEVER_PAGE_SIZE, "skip": skip},
                )
            except ProviderError as exc:
                if not skip:
                    raise
                logger.warning("Lever feed %s stopped at skip=%d: %s", site, skip, exc)
                break
            if not isinstance(data, list) or not data:
                break
            for job in data:
                if not isinstance(job, dict):
                    continue
                url = str(job.get("hostedUrl") or "").rstrip("/")
                if "jobs.lever.co/" not in url:
                    continue
                postings.append(
                    FeedPosting(
                        url=url,
                        title=str(job.get("text") or "").strip(),
                        company=site,
                        description=str(job.get("descriptionPlain") or ""),
                        location=_lever_location(job),
                    )
                )
            if len(data) < LEVER_PAGE_SIZE:
                break
            skip += LEVER_PAGE_SIZE
        return postings

    def fetch_ashby(self, board: str) -> list[FeedPosting]:
        data = self.get_json(ASHBY_BOARD_URL.format(board=quote(board)), provider="ashby")
        postings: list[FeedPosting] = []
        for job in _board_jobs("ashby", data):
            url = str(job.get("jobUrl") or "").rstrip("/")
            if "jobs.ashbyhq.com/" not in url:
                continue
            postings.append(
                FeedPosting(
                    url=url,
                    title=str(job.get("title") or "").strip(),
                    company=board,
                    description=str(job.get("descriptionPlain") or ""),
                    location=_ashby_location(job),
                )
            )
        return postings

    def fetch_greenhouse(self, token: str) -> list[FeedPosting]:
        data = self.get_json(GREENHOUSE_JOBS_URL.format(token=quote(token)), provider="greenhouse")
        postings: list[FeedPosting] = []
        for job in _board_jobs("greenhouse", data):
            url = str(job.get("absolute_url") or job.get("url") or "").rstrip("/")
            if "greenhouse.io/" not in url:
                continue
            postings.append(
                FeedPosting(
                    url=url,
                    title=str(job.get("title") or "").strip(),
                    company=token,
                    location=_greenhouse_location(job),
                )
            )
        return postings

    def fetch_board(self, platform: str, slug: str) -> list[FeedPosting]:
        fetchers = {
            "lever": self.fetch_lever,
            "ashby": self.fetch_ashby,
            "greenhouse": self.fetch_greenhouse,
        }
        return fetchers[platform](slug)

    def discover(self) -> list[Candidate]:
        selected = self.selected_companies()
        self.stats = {"companies": len(selected), "offset": self.offset, "fetched": 0, "matched": 0, "errors": 0}

        candidates: list[Candidate] = []
        for index, (platform, slug) in enumerate(selected):
            if is_banned(platform, slug) or platform not in PLATFORMS:
                continue
            if index:
                self.pause()
            try:
                postings = self.fetch_board(platform, slug)
            except ProviderError as exc:
                logger.warning("ATS feed %s/%s unavailable: %s", platform, slug, exc)
                self.stats["errors"] += 1
                continue

            self.stats["fetched"] += len(postings)
            for posting in postings:
                snippet = posting.description[:SNIPPET_CHARS] if self.match_descriptions else ""
                if not title_matches(posting.title, snippet):
                    continue
                self.stats["matched"] += 1
                candidates.append(
                    Candidate(
                        url=posting.url,
                        title=posting.title,
                        company=posting.company,
                        location=posting.location,
                        ats=platform,
                        source=self.source,
                    )
                )
        return candidates

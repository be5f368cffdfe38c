from __future__ import annotations

import logging
from typing import Any

from rolescout.config import Settings
from rolescout.core.heuristics import parse_title_company
from rolescout.errors import ProviderError
from rolescout.sources.base import SourceAdapter
from rolescout.sources.platforms import AtsPlatform
from rolescout.types import Candidate

logger = logging.getLogger(__name__)

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
FRESHNESS_VALUES = {"pd", "pw", "pm", "py"}


class WebSearchAdapter(SourceAdapter):
    """Paged Brave web search restricted to one ATS platform's posting URLs.

    Brave's `offset` is a page index (0-9), not a result offset, so a query can
    reach at most 10 pages of up to 20 results.
    """

    source = "search_provider"
    name = "web_search"

    def __init__(
        self,
        platform: AtsPlatform,
        query: str | None = None,
        *,
        pages: int | None = None,
        count: int | None = None,
        freshness: str | None = None,
        banned_hosts: tuple[str, ...] = (),
        settings: Settings | None = None,
        http: Any | None = None,
    ):
        super().__init__(settings=settings, http=http)
        self.platform = platform
        self.query = query or (platform.queries[0] if platform.queries else "")
        self.count = min(20, max(1, count if count is not None else self.settings.search_count))
        self.pages = min(10, max(0, pages if pages is not None else self.settings.search_pages))
        self.freshness = freshness if freshness in FRESHNESS_VALUES else None
        self.banned_hosts = banned_hosts
        self.name = f"web_search:{platform.name}"

    def _params(self, page: int) -> dict[str, Any]:
        params: dict[str, Any] = {
            "q": self.query,
            "count": self.count,
            "offset": page,
            "country": "us",
            "search_lang": "en",
        }
        if self.freshness:
            params["freshness"] = self.freshness
        return params

    def discover(self) -> list[Candidate]:
        token = self.settings.require("brave_subscription_token")
        self.stats = {
            "pages_fetched": 0,
            "results": 0,
            "accepted": 0,
            "more_results_available": None,
            "error": "",
        }

        candidates: list[Candidate] = []
        for page in range(self.pages):
            if page:
                self.pause()
            try:
                data = self.get_json(
                    BRAVE_SEARCH_URL,
                    provider="brave",
                    params=self._params(page),
                    headers={"X-Subscription-Token": token},
                )
                web = data.get("web") or {}
                results = web.get("results") or []
            except (ProviderError, AttributeError) as exc:
                logger.warning("Brave search stopped for %s on page %s: %s", self.platform.name, page, exc)
                self.stats["error"] = str(exc)
                break

            more = (web.get("query") or {}).get("more_results_available")
            if isinstance(more, bool):
                self.stats["more_results_available"] = more
            self.stats["pages_fetched"] += 1
            self.stats["results"] += len(results)
            if not results:
                break

            for result in results:
                candidate = self._to_candidate(result)
                if candidate is not None:
                    candidates.append(candidate)

        self.stats["accepted"] = len(candidates)
        return candidates

    def _to_candidate(self, result: Any) -> Candidate | None:
        if not isinstance(result, dict) or not result.get("url"):
            return None

        url = str(result["url"])
        if any(host in url for host in self.banned_hosts):
            return None

        matched = self.platform.match(url)
        if matched is None:
            return None

        raw_title = str(result.get("title") or "").strip()
        company, title = parse_title_company(raw_title)
        return Candidate(
            url=matched.canonical,
            title=title or raw_title,
            company=company or matched.slug,
            ats=self.platform.name,
            source=self.source,
            query=self.query,
        )

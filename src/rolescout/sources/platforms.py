from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from rolescout.core.urls import canonicalize_url

_LEVER_POSTING_ID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class PlatformMatch:
    platform: str
    slug: str
    canonical: str


@dataclass(frozen=True, slots=True)
class AtsPlatform:
    """Posting-URL acceptance rules for one applicant tracking system."""

    name: str
    hosts: tuple[str, ...]
    banned_slugs: frozenset[str]
    accepts: Callable[[list[str]], bool]
    queries: tuple[str, ...] = field(default=())

    def _segments(self, url: str) -> list[str] | None:
        try:
            parts = urlsplit(url)
        except ValueError:
            return None
        if parts.scheme != "https" or parts.netloc.lower() not in self.hosts:
            return None
        return [segment for segment in parts.path.split("/") if segment]

    def match(self, url: str) -> PlatformMatch | None:
        canonical = canonicalize_url(url)
        if not canonical:
            return None
        # Posting identity is the path alone.
        canonical = canonical.split("?", 1)[0]
        segments = self._segments(canonical)
        if not segments or not self.accepts(segments):
            return None

        slug = segments[0].lower()
        if slug in self.banned_slugs:
            return None
        return PlatformMatch(platform=self.name, slug=slug, canonical=canonical)


def _lever_posting(segments: list[str]) -> bool:
    return len(segments) == 2 and bool(_LEVER_POSTING_ID_RE.fullmatch(segments[1]))


def _ashby_posting(segments: list[str]) -> bool:
    return len(segments) >= 2


def _greenhouse_posting(segments: list[str]) -> bool:
    return len(segments) >= 3 and segments[1].lower() in {"jobs", "job"} and segments[2].isdigit()


LEVER = AtsPlatform(
    name="lever",
    hosts=("jobs.lever.co",),
    banned_slugs=frozenset({"lever", "democorp"}),
    accepts=_lever_posting,
    queries=(
        'site:jobs.lever.co ("Strategy Operations" OR "BizOps" OR "Business Operations" OR "Strategic Finance" '
        'OR "Strategy" OR "Operations") -democorp',
        'site:jobs.lever.co ("Strategic Finance" OR "Chief of Staff" OR "GM" OR "General Manager" '
        'OR "Head of Business Operations") -democorp',
        'site:jobs.lever.co ("BizOps" OR "Business Operations" OR "Operations Manager" OR "Head of Operations") -democorp',
    ),
)

ASHBY = AtsPlatform(
    name="ashby",
    hosts=("jobs.ashbyhq.com",),
    banned_slugs=frozenset({"ashby", "demo", "democorp"}),
    accepts=_ashby_posting,
    queries=(
        'site:jobs.ashbyhq.com ("Strategy Operations" OR "BizOps" OR "Business Operations" OR "Strategic Finance" '
        'OR "Strategy" OR "Operations") -democorp',
        'site:jobs.ashbyhq.com ("Strategic Finance" OR "Chief of Staff" OR "BizOps" OR "Head of Operations") -democorp',
    ),
)

GREENHOUSE = AtsPlatform(
    name="greenhouse",
    hosts=("boards.greenhouse.io", "job-boards.greenhouse.io"),
    banned_slugs=frozenset({"democorp", "example"}),
    accepts=_greenhouse_posting,
    queries=(
        'site:boards.greenhouse.io (job OR jobs) ("Strategy Operations" OR "BizOps" OR "Business Operations" '
        'OR "Strategic Finance" OR "Strategy" OR "Operations") -democorp',
        'site:boards.greenhouse.io (job OR jobs) ("Strategic Finance" OR "Chief of Staff" OR "BizOps" '
        'OR "Head of Operations") -democorp',
    ),
)

PLATFORMS: dict[str, AtsPlatform] = {platform.name: platform for platform in (LEVER, ASHBY, GREENHOUSE)}


def get_platform(name: str) -> AtsPlatform:
    try:
        return PLATFORMS[name.lower()]
    except KeyError as exc:
        raise ValueError(f"unknown ATS platform: {name}") from exc


def is_banned(platform: str, slug: str) -> bool:
    selected = PLATFORMS.get(platform)
    return bool(selected and slug.lower() in selected.banned_slugs)

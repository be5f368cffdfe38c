from __future__ import annotations

import re
from urllib.parse import urlsplit

from rolescout.types import AtsName

TRACKING_KEYS = {
    "gclid",
    "fbclid",
    "msclkid",
    "dclid",
    "yclid",
    "mc_cid",
    "mc_eid",
    "_hsenc",
    "_hsmi",
    "igshid",
    "trk",
    "trackingid",
    "refid",
}

_TRAILING_PUNCT_RE = re.compile(r"[)\]\.,;:'\">]+$")
_HREF_RE = re.compile(r"href\s*=\s*(['\"])(https?://[^'\"]+)\1", re.IGNORECASE)
_RAW_URL_RE = re.compile(r"https?://[^\s\"'<>]+")
_LINKEDIN_JOB_RE = re.compile(r"linkedin\.com/(?:comm/)?jobs/view/(?:.*[-/])?(\d{8,})")
_COMPANY_SUFFIX_RE = re.compile(
    r"\s*(inc\.?|llc\.?|ltd\.?|corp\.?|corporation|company|co\.?|group)\s*$", re.IGNORECASE
)

ATS_HOSTS: dict[str, str] = {
    "jobs.lever.co": "lever",
    "jobs.ashbyhq.com": "ashby",
    "boards.greenhouse.io": "greenhouse",
    "job-boards.greenhouse.io": "greenhouse",
}


def is_tracking_param(key: str) -> bool:
    lowered = key.lower()
    return lowered.startswith("utm_") or lowered in TRACKING_KEYS


def _filter_query(query: str, *, drop_google_jobs_source: bool = False) -> str:
    kept: list[str] = []
    for pair in query.split("&"):
        if not pair:
            continue
        key = pair.split("=", 1)[0]
        if is_tracking_param(key):
            continue
        if drop_google_jobs_source and key.lower() == "source" and "google_jobs" in pair.lower():
            continue
        kept.append(pair)
    return "&".join(kept)


def _strip_once(url: str) -> str:
    url = _TRAILING_PUNCT_RE.sub("", url.strip())
    url = url.split("#", 1)[0]

    base, sep, query = url.partition("?")
    if base.endswith("/") and base.count("/") > 2:
        base = base[:-1]
    query = _filter_query(query) if sep else ""
    return f"{base}?{query}" if query else base


def canonicalize_url(raw: str | None) -> str | None:
    """Normalize a posting URL into the ledger identity key.

    Returns None when the input is not an absolute http(s) URL.
    """
    if not raw:
        return None

    candidate = str(raw)
    previous = None
    # Stripping can expose new trailing punctuation; repeat until stable.
    while candidate != previous:
        previous = candidate
        candidate = _strip_once(candidate)

    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme not in {"http", "https"} or not parts.netloc:
        return None

    base = f"{scheme}://{parts.netloc.lower()}{parts.path}"
    return f"{base}?{parts.query}" if parts.query else base


def strip_tracking_params(url: str) -> str:
    base, sep, query = (url or "").partition("?")
    if not sep:
        return base
    kept = _filter_query(query, drop_google_jobs_source=True)
    return f"{base}?{kept}" if kept else base


def extract_urls(text: str | None) -> list[str]:
    """Every href target and raw http(s) URL in a blob of HTML or text, first-seen order."""
    if not text:
        return []

    found: dict[str, None] = {}
    for match in _HREF_RE.finditer(text):
        found.setdefault(match.group(2), None)
    for match in _RAW_URL_RE.finditer(text):
        found.setdefault(match.group(0), None)
    return list(found)


def canonicalize_linkedin_job_url(url: str | None) -> str | None:
    if not url:
        return None
    match = _LINKEDIN_JOB_RE.search(str(url))
    if not match:
        return None
    return f"https://www.linkedin.com/jobs/view/{match.group(1)}"


def url_host(url: str) -> str:
    try:
        return urlsplit(url).netloc.lower()
    except ValueError:
        return ""


def detect_ats(url: str) -> AtsName:
    host = url_host(url)
    if not host:
        return "unknown"
    if host in ATS_HOSTS:
        return ATS_HOSTS[host]  # type: ignore[return-value]
    if host.endswith("linkedin.com") and "/jobs/" in url:
        return "linkedin"
    return "other"


def ats_company_slug(url: str) -> tuple[AtsName, str]:
    """Platform and company slug (first path segment) for an ATS posting URL."""
    ats = detect_ats(url)
    if ats not in {"lever", "ashby", "greenhouse"}:
        return ats, ""
    try:
        path = urlsplit(url).path
    except ValueError:
        return ats, ""
    segments = [seg for seg in path.split("/") if seg]
    return ats, (segments[0].lower() if segments else "")


def company_to_slug(name: str | None) -> str:
    """'The MITRE Corporation' -> 'mitre', 'Tonic AI' -> 'tonicai'."""
    if not name:
        return ""
    value = re.sub(r"^the\s+", "", name.lower().strip())
    value = _COMPANY_SUFFIX_RE.sub("", value)
    return re.sub(r"[^a-z0-9]", "", value)


def ats_url_matches_company(url: str, company_name: str | None) -> bool:
    _, slug = ats_company_slug(url)
    slug = re.sub(r"[^a-z0-9]", "", slug)
    company = company_to_slug(company_name)
    if not slug or not company:
        return False
    return company in slug or slug in company

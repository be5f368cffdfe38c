"""Best-effort text heuristics for posting content.

Everything here is a pure function over strings so the rules can be tuned and
tested without touching fetching or persistence.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

US_STATE_CODES = (
    "AL|AK|AZ|AR|CA|CO|CT|DE|FL|GA|HI|ID|IL|IN|IA|KS|KY|LA|ME|MD|MA|MI|MN|MS|MO|MT|NE|NV|NH|NJ|"
    "NM|NY|NC|ND|OH|OK|OR|PA|RI|SC|SD|TN|TX|UT|VT|VA|WA|WV|WI|WY|DC"
)
CITY_STATE_RE = re.compile(rf"\b([A-Z][a-z]+(?:\s[A-Z][a-z]+)*)\s*,\s*({US_STATE_CODES})\b")

# Lines that start the sidebar / footer of aggregator and LinkedIn pages.
NOISE_MARKERS: tuple[str, ...] = (
    "seniority level",
    "similar jobs",
    "people also viewed",
    "similar searches",
    "referrals increase your chances",
    "show more jobs like this",
    "more searches",
    "explore collaborative articles",
)

NOT_FOUND_PHRASES: tuple[str, ...] = (
    "404 error",
    "not found",
    "couldn't find anything here",
    "the job posting you're looking for might have closed",
)

DEMO_BOARD_MARKERS: tuple[str, ...] = ("democorp", "jobs at democorp")


def html_to_text(html: str | None) -> str:
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()

    text = soup.get_text("\n")
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def truncate_noise(text: str | None, markers: tuple[str, ...] = NOISE_MARKERS) -> str:
    """Cut the text at the first line that opens a known boilerplate block."""
    if not text:
        return ""

    lines = text.split("\n")
    for index, line in enumerate(lines):
        lowered = line.strip().lower()
        if any(lowered.startswith(marker) for marker in markers):
            return "\n".join(lines[:index]).strip()
    return text.strip()


def looks_not_found(text: str | None) -> bool:
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in NOT_FOUND_PHRASES)


def looks_demo_board(text: str | None) -> bool:
    lowered = (text or "").lower()
    return any(marker in lowered for marker in DEMO_BOARD_MARKERS)


def extract_location_hint(top_text: str | None) -> str:
    value = " ".join((top_text or "").split())
    if re.search(r"remote", value, re.IGNORECASE):
        return "Remote (mentioned)"
    match = CITY_STATE_RE.search(value)
    return match.group(0) if match else ""


def extract_work_mode_hint(text: str | None) -> str:
    lowered = (text or "").lower()
    hits: list[str] = []
    if "remote" in lowered:
        hits.append("remote")
    if "hybrid" in lowered:
        hits.append("hybrid")
    if any(token in lowered for token in ("in-office", "in office", "onsite", "on-site")):
        hits.append("in_person")
    return ", ".join(hits)


def parse_title_company(raw_title: str | None) -> tuple[str, str]:
    """Split search titles shaped like 'Company - Role Title' into (company, title)."""
    if not raw_title:
        return "", ""
    parts = [part.strip() for part in raw_title.split(" - ") if part.strip()]
    if len(parts) >= 2:
        return parts[0], " - ".join(parts[1:])
    return "", raw_title.strip()

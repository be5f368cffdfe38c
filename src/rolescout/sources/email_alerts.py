from __future__ import annotations

import email
import imaplib
import logging
import re
from datetime import UTC, datetime, timedelta
from email.message import Message
from email.utils import parsedate_to_datetime
from typing import Any, Protocol

from bs4 import BeautifulSoup

from rolescout.config import Settings
from rolescout.core.heuristics import CITY_STATE_RE
from rolescout.core.urls import canonicalize_linkedin_job_url, canonicalize_url, detect_ats, extract_urls
from rolescout.errors import ConfigurationError, ProviderError
from rolescout.sources.base import SourceAdapter
from rolescout.sources.platforms import get_platform
from rolescout.types import Candidate, InboxMessage, InboxThread

logger = logging.getLogger(__name__)

ALERT_QUERY = 'label:"JobDiscovery/Alerts" newer_than:{days}d'
ALERT_FALLBACK_QUERY = 'newer_than:{days}d (from:googlealerts-noreply@google.com OR subject:"Google Alert")'
LINKEDIN_ALERT_QUERY = "from:jobs-noreply@linkedin.com newer_than:{days}d"

_LINKEDIN_ANCHOR_SKIP_RE = re.compile(r"^(jobs similar|new jobs|apply to|apply now)", re.IGNORECASE)
_CARD_SEPARATOR_RE = re.compile(r"\s*[·•–—|]\s*")
_NEWER_THAN_RE = re.compile(r"newer_than:(\d+)d")
_FROM_RE = re.compile(r"from:(\S+)")


class Inbox(Protocol):
    def search(self, query: str, max_results: int) -> list[InboxThread]: ...


def _decode_part(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if payload is None:
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def parse_message(raw: bytes) -> InboxMessage:
    message = email.message_from_bytes(raw)
    html_parts: list[str] = []
    plain_parts: list[str] = []
    for part in message.walk():
        if part.is_multipart() or part.get_filename():
            continue
        content_type = part.get_content_type()
        if content_type == "text/html":
            html_parts.append(_decode_part(part))
        elif content_type == "text/plain":
            plain_parts.append(_decode_part(part))

    received_at = None
    if message.get("Date"):
        try:
            received_at = parsedate_to_datetime(message["Date"])
        except (TypeError, ValueError):
            received_at = None

    return InboxMessage(
        subject=str(message.get("Subject") or ""),
        html_body="\n".join(html_parts),
        plain_body="\n".join(plain_parts),
        received_at=received_at,
    )


def imap_criteria(query: str, now: datetime | None = None) -> list[str]:
    """Translate the small Gmail query subset we use into plain IMAP SEARCH terms."""
    now = now or datetime.now(UTC)
    criteria: list[str] = []
    window = _NEWER_THAN_RE.search(query)
    if window:
        since = now - timedelta(days=int(window.group(1)))
        criteria.extend(["SINCE", since.strftime("%d-%b-%Y")])
    sender = _FROM_RE.search(query)
    if sender and not sender.group(1).startswith("("):
        criteria.extend(["FROM", f'"{sender.group(1)}"'])
    return criteria or ["ALL"]


class ImapInbox:
    """Read-only IMAP inbox. Uses Gmail's X-GM-RAW search when enabled."""

    def __init__(self, settings: Settings):
        if not settings.imap_user or not settings.imap_password:
            raise ConfigurationError("missing required setting IMAP_USER / IMAP_PASSWORD")
        self.settings = settings

    def search(self, query: str, max_results: int) -> list[InboxThread]:
        try:
            client = imaplib.IMAP4_SSL(self.settings.imap_host, self.settings.imap_port)
        except OSError as exc:
            raise ProviderError("imap", f"connect failed: {exc}") from exc

        try:
            client.login(self.settings.imap_user, self.settings.imap_password)
            client.select(self.settings.imap_mailbox, readonly=True)
            if self.settings.imap_gmail_search:
                status, data = client.uid("SEARCH", "X-GM-RAW", f'"{query}"')
            else:
                status, data = client.uid("SEARCH", *imap_criteria(query))
            if status != "OK":
                raise ProviderError("imap", f"search failed: {status}")

            uids = (data[0] or b"").split()
            threads: list[InboxThread] = []
            # Newest first, like a mail client.
            for uid in reversed(uids[-max_results:]):
                status, fetched = client.uid("FETCH", uid, "(RFC822)")
                if status != "OK" or not fetched or not isinstance(fetched[0], tuple):
                    continue
                threads.append(InboxThread(messages=[parse_message(fetched[0][1])]))
            return threads
        except imaplib.IMAP4.error as exc:
            raise ProviderError("imap", str(exc)) from exc
        finally:
            try:
                client.logout()
            except (imaplib.IMAP4.error, OSError):
                logger.debug("IMAP logout failed", exc_info=True)


class EmailAlertAdapter(SourceAdapter):
    """Pull posting links out of alert emails (Google Alerts and similar)."""

    source = "email_alert"
    name = "email_alert"

    def __init__(
        self,
        inbox: Inbox,
        *,
        query: str | None = None,
        fallback_query: str | None = None,
        platform: str | None = None,
        max_threads: int | None = None,
        settings: Settings | None = None,
        http: Any | None = None,
    ):
        super().__init__(settings=settings, http=http)
        days = self.settings.email_window_days
        self.inbox = inbox
        self.query = query or ALERT_QUERY.format(days=days)
        self.fallback_query = fallback_query if fallback_query is not None else ALERT_FALLBACK_QUERY.format(days=days)
        self.platform = get_platform(platform) if platform else None
        self.max_threads = max_threads or self.settings.email_max_threads

    def fetch_threads(self) -> tuple[str, list[InboxThread]]:
        threads = self.inbox.search(self.query, self.max_threads)
        if threads or not self.fallback_query:
            return self.query, threads
        return self.fallback_query, self.inbox.search(self.fallback_query, self.max_threads)

    def _accepts(self, url: str) -> bool:
        if self.platform is None:
            return True
        host = url.split("/")[2] if url.count("/") >= 2 else ""
        return host in self.platform.hosts

    def parse_message(self, message: InboxMessage, query: str) -> list[Candidate]:
        found: dict[str, None] = {}
        for raw in extract_urls(f"{message.html_body}\n{message.plain_body}"):
            url = canonicalize_url(raw)
            if url and self._accepts(url):
                found.setdefault(url, None)
        return [Candidate(url=url, ats=detect_ats(url), source=self.source, query=query) for url in found]

    def discover(self) -> list[Candidate]:
        query, threads = self.fetch_threads()
        self.stats = {"query": query, "threads": len(threads), "messages": 0, "urls": 0}

        candidates: list[Candidate] = []
        for thread in threads:
            for message in thread.messages:
                self.stats["messages"] += 1
                parsed = self.parse_message(message, query)
                self.stats["urls"] += len(parsed)
                candidates.extend(parsed)
        return candidates


def _card_location(lines: list[str]) -> tuple[str, str]:
    """(company, location) from the text lines that follow a LinkedIn job card link."""
    for line in lines[:5]:
        parts = _CARD_SEPARATOR_RE.split(line)
        if len(parts) >= 2 and len(parts[1]) > 1:
            return parts[0].strip(), parts[1].strip()
        match = CITY_STATE_RE.search(line)
        if match:
            return "", match.group(0)
    return "", ""


def parse_linkedin_alert(html: str | None) -> list[dict[str, str]]:
    """Job cards from a LinkedIn job alert email as {url, title, company, location}.

    A single card wraps several anchors (logo, title, wrapper) around the same
    job id; they are merged by canonical URL in first-seen order.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    jobs: dict[str, dict[str, Any]] = {}
    for anchor in soup.find_all("a", href=True):
        url = canonicalize_linkedin_job_url(anchor["href"])
        if not url:
            continue
        job = jobs.setdefault(url, {"url": url, "title": "", "company": "", "location": "", "anchor": anchor})
        job["anchor"] = anchor

        image = anchor.find("img", alt=True)
        if image is not None and not job["company"]:
            alt = image["alt"].strip()
            if 1 < len(alt) < 120:
                job["company"] = alt

        text = " ".join(anchor.get_text(" ").split())
        if len(text) > 2 and not job["title"] and not _LINKEDIN_ANCHOR_SKIP_RE.match(text):
            job["title"] = text

    cards: list[dict[str, str]] = []
    for job in jobs.values():
        # Header links carry neither.
        if not job["title"] and not job["company"]:
            continue

        anchor = job["anchor"]
        inside = {id(node) for node in anchor.find_all(string=True)}
        lines: list[str] = []
        for node in anchor.find_all_next(string=True, limit=30):
            if id(node) in inside:
                continue
            line = " ".join(str(node).split())
            if len(line) > 1:
                lines.append(line)
        company, location = _card_location(lines)
        if company and not job["company"]:
            job["company"] = company
        job["location"] = location
        cards.append({key: job[key] for key in ("url", "title", "company", "location")})
    return cards


class LinkedInAlertAdapter(EmailAlertAdapter):
    name = "linkedin_alert"

    def __init__(
        self,
        inbox: Inbox,
        *,
        query: str | None = None,
        max_threads: int | None = None,
        settings: Settings | None = None,
        http: Any | None = None,
    ):
        super().__init__(
            inbox,
            query=query,
            fallback_query="",
            max_threads=max_threads,
            settings=settings,
            http=http,
        )
        if query is None:
            self.query = LINKEDIN_ALERT_QUERY.format(days=self.settings.email_window_days)

    def parse_message(self, message: InboxMessage, query: str) -> list[Candidate]:
        return [
            Candidate(
                url=card["url"],
                title=card["title"],
                company=card["company"],
                location=card["location"],
                ats="linkedin",
                source=self.source,
                query=query,
            )
            for card in parse_linkedin_alert(message.html_body)
        ]

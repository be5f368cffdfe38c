"""Explicit ledger repairs. Each operation is idempotent: a second run changes nothing."""

from __future__ import annotations

import logging

from rolescout.core.fetcher import is_dead_reason
from rolescout.core.heuristics import looks_demo_board, looks_not_found
from rolescout.db.models import Role
from rolescout.db.repositories import RoleLedger

logger = logging.getLogger(__name__)

BAD_HTTP_STATUSES = frozenset({"404", "ERR"})


def has_bad_content(role: Role) -> bool:
    text = role.jd_text or ""
    return (
        not text.strip()
        or looks_not_found(text)
        or looks_demo_board(text)
        or (role.http_status or "") in BAD_HTTP_STATUSES
    )


def reset_bad_content(ledger: RoleLedger, source: str | None = None) -> int:
    """Enriched rows whose stored content is boilerplate go back to New."""

    def predicate(role: Role) -> bool:
        return (source is None or role.source == source) and has_bad_content(role)

    count = ledger.reset(predicate, statuses=["Enriched"])
    logger.info("Reset %s enriched rows with bad content", count)
    return count


def reset_text_too_short(ledger: RoleLedger) -> int:
    count = ledger.reset(lambda role: role.failure_reason == "TEXT_TOO_SHORT", statuses=["FetchError"])
    logger.info("Reset %s TEXT_TOO_SHORT rows for retry", count)
    return count


def normalize_dead(ledger: RoleLedger) -> int:
    count = ledger.mark_dead(lambda role: is_dead_reason(role.failure_reason))
    logger.info("Marked %s rows Dead from their failure reason", count)
    return count

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rolescout.core.urls import ats_company_slug, canonicalize_url
from rolescout.db.models import ENRICHMENT_FIELDS, IMMUTABLE_FIELDS, SCORING_FIELDS, Role, RunLogEntry
from rolescout.errors import LedgerError
from rolescout.types import Candidate

RolePredicate = Callable[[Role], bool]


class RoleLedger:
    """Deduplicated store of discovered roles keyed by canonical URL."""

    def __init__(self, session: Session):
        self.session = session
        self._known: set[str] | None = None

    def snapshot(self) -> set[str]:
        self._known = set(self.session.scalars(select(Role.canonical_url)).all())
        return self._known

    def _known_urls(self) -> set[str]:
        if self._known is None:
            return self.snapshot()
        return self._known

    def has(self, url: str) -> bool:
        key = canonicalize_url(url)
        return bool(key) and key in self._known_urls()

    def insert(self, candidate: Candidate) -> Role | None:
        key = canonicalize_url(candidate.url)
        if not key or key in self._known_urls():
            return None

        role = Role(
            canonical_url=key,
            company=candidate.company,
            job_title=candidate.title,
            source=candidate.source,
            ats=candidate.ats,
            query=candidate.query,
            location_raw=candidate.location,
            discovered_date=datetime.now(UTC),
            status="New",
        )
        self.session.add(role)
        try:
            self.session.commit()
        except IntegrityError:
            # Another writer got there first.
            self.session.rollback()
            self._known_urls().add(key)
            return None

        self.session.refresh(role)
        self._known_urls().add(key)
        return role

    def get(self, url: str) -> Role | None:
        key = canonicalize_url(url)
        if not key:
            return None
        return self.session.scalar(select(Role).where(Role.canonical_url == key))

    def get_batch(
        self,
        statuses: Iterable[str] | None = None,
        sources: Iterable[str] | None = None,
        failure_reason: str | None = None,
        limit: int | None = None,
    ) -> list[Role]:
        stmt = select(Role)
        if statuses is not None:
            stmt = stmt.where(Role.status.in_(list(statuses)))
        if sources is not None:
            stmt = stmt.where(Role.source.in_(list(sources)))
        if failure_reason is not None:
            stmt = stmt.where(Role.failure_reason == failure_reason)
        stmt = stmt.order_by(Role.id.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt).all())

    def update(self, url: str, **fields: Any) -> Role:
        blocked = IMMUTABLE_FIELDS.intersection(fields)
        if blocked:
            raise LedgerError(f"cannot update immutable fields: {', '.join(sorted(blocked))}")

        role = self.get(url)
        if role is None:
            raise LedgerError(f"unknown role url: {url}")

        for key, value in fields.items():
            if not hasattr(Role, key):
                raise LedgerError(f"unknown role field: {key}")
            setattr(role, key, value)

        self.session.commit()
        self.session.refresh(role)
        return role

    def reset(self, predicate: RolePredicate, statuses: Iterable[str] | None = None) -> int:
        """Send matching rows back to New, clearing enrichment and scoring output."""
        count = 0
        for role in self.get_batch(statuses=statuses):
            if not predicate(role):
                continue
            role.status = "New"
            for field in ENRICHMENT_FIELDS:
                setattr(role, field, "")
            role.http_status = ""
            role.failure_reason = ""
            role.fetched_at = None
            role.enriched_at = None
            for field in SCORING_FIELDS:
                setattr(role, field, None)
            count += 1

        if count:
            self.session.commit()
        return count

    def mark_dead(self, predicate: RolePredicate, statuses: Iterable[str] | None = None) -> int:
        count = 0
        for role in self.get_batch(statuses=statuses):
            if role.status == "Dead" or not predicate(role):
                continue
            role.status = "Dead"
            count += 1

        if count:
            self.session.commit()
        return count

    def ats_companies(self, platform: str | None = None) -> list[tuple[str, str]]:
        """Distinct (ats, company slug) pairs seen on ATS posting URLs, in discovery order."""
        pairs: dict[tuple[str, str], None] = {}
        stmt = select(Role.canonical_url).where(Role.ats.in_(["lever", "ashby", "greenhouse"])).order_by(Role.id)
        for url in self.session.scalars(stmt).all():
            ats, slug = ats_company_slug(url)
            if not slug or (platform and ats != platform):
                continue
            pairs.setdefault((ats, slug), None)
        return list(pairs)

    def ranked(
        self,
        limit: int = 50,
        status: str | None = None,
        include_dealbreakers: bool = True,
    ) -> list[Role]:
        stmt = select(Role).where(Role.rank_key.is_not(None))
        if status:
            stmt = stmt.where(Role.status == status)
        if not include_dealbreakers:
            stmt = stmt.where(Role.dealbreaker_flag.is_not(True))
        stmt = stmt.order_by(Role.rank_key.desc()).limit(limit)
        return list(self.session.scalars(stmt).all())

    def status_counts(self) -> dict[str, int]:
        rows = self.session.execute(select(Role.status, func.count(Role.id)).group_by(Role.status)).all()
        return {status: count for status, count in rows}

    def count(self) -> int:
        return int(self.session.scalar(select(func.count(Role.id))) or 0)


class EventLog:
    """Append-only run log table."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, stage: str, message: str) -> RunLogEntry:
        entry = RunLogEntry(stage=stage, message=message)
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def recent(self, limit: int = 50, stage: str | None = None) -> list[RunLogEntry]:
        stmt = select(RunLogEntry)
        if stage:
            stmt = stmt.where(RunLogEntry.stage == stage)
        stmt = stmt.order_by(RunLogEntry.id.desc()).limit(limit)
        return list(self.session.scalars(stmt).all())

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rolescout.db.base import Base, TimestampMixin

ENRICHMENT_FIELDS = ("jd_text", "location_raw", "work_mode_hint")
TELEMETRY_FIELDS = ("http_status", "failure_reason", "fetched_at", "enriched_at")
SCORING_FIELDS = (
    "fit_score",
    "fit_notes",
    "dealbreaker_flag",
    "location_us_ok",
    "comp_ok",
    "work_mode_final",
    "rank_key",
    "scored_at",
)
IMMUTABLE_FIELDS = frozenset({"id", "canonical_url", "source", "discovered_date"})


class Role(TimestampMixin, Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    canonical_url: Mapped[str] = mapped_column(String(800), unique=True, index=True, nullable=False)
    company: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    job_title: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    source: Mapped[str] = mapped_column(String(40), nullable=False)
    discovered_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="New", index=True, nullable=False)
    query: Mapped[str] = mapped_column(Text, default="", nullable=False)
    ats: Mapped[str] = mapped_column(String(20), default="unknown", nullable=False)

    jd_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    location_raw: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    work_mode_hint: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    http_status: Mapped[str] = mapped_column(String(10), default="", nullable=False)
    failure_reason: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    fetched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    enriched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    fit_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fit_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    dealbreaker_flag: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    location_us_ok: Mapped[str | None] = mapped_column(String(10), nullable=True)
    comp_ok: Mapped[str | None] = mapped_column(String(10), nullable=True)
    work_mode_final: Mapped[str | None] = mapped_column(String(20), nullable=True)
    rank_key: Mapped[str | None] = mapped_column(String(800), index=True, nullable=True)
    scored_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class RunLogEntry(TimestampMixin, Base):
    __tablename__ = "run_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    stage: Mapped[str] = mapped_column(String(120), nullable=False)
    message: Mapped[str] = mapped_column(Text, default="", nullable=False)

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

RoleStatus = Literal["New", "Enriched", "FetchError", "Dead"]
SourceName = Literal["email_alert", "search_provider", "ats_feed", "aggregator_api"]
AtsName = Literal["lever", "ashby", "greenhouse", "linkedin", "other", "unknown"]
TriState = Literal["TRUE", "FALSE", "UNKNOWN"]
WorkMode = Literal["REMOTE", "HYBRID", "REMOTE_OR_HYBRID", "IN_PERSON", "UNKNOWN"]

ROLE_STATUSES: tuple[str, ...] = ("New", "Enriched", "FetchError", "Dead")


class Candidate(BaseModel):
    url: str
    title: str = ""
    company: str = ""
    location: str = ""
    ats: AtsName = "unknown"
    source: SourceName
    query: str = ""

    @field_validator("title", "company", "location", "query")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return (value or "").strip()


class FetchOutcome(BaseModel):
    http_status: str = ""
    text: str = ""
    location_raw: str = ""
    work_mode_hint: str = ""
    failure_reason: str = ""

    @property
    def ok(self) -> bool:
        return not self.failure_reason


class ScoreResult(BaseModel):
    fit_score: int
    fit_notes: str = ""
    dealbreaker_flag: bool = False
    location_us_ok: TriState = "TRUE"
    comp_ok: TriState = "UNKNOWN"
    work_mode_final: WorkMode = "UNKNOWN"
    rank_key: str = ""

    @field_validator("fit_score")
    @classmethod
    def validate_score(cls, value: int) -> int:
        if value < 0 or value > 100:
            raise ValueError("fit_score must be between 0 and 100")
        return value


class StageSummary(BaseModel):
    stage: str
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    details: dict[str, Any] = Field(default_factory=dict)

    def line(self) -> str:
        parts = [
            f"attempted={self.attempted}",
            f"succeeded={self.succeeded}",
            f"failed={self.failed}",
            f"skipped={self.skipped}",
        ]
        parts.extend(f"{key}={value}" for key, value in self.details.items())
        return ", ".join(parts)


class InboxMessage(BaseModel):
    subject: str = ""
    html_body: str = ""
    plain_body: str = ""
    received_at: datetime | None = None


class InboxThread(BaseModel):
    messages: list[InboxMessage] = Field(default_factory=list)

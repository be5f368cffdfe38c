from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    canonical_url: str
    company: str
    job_title: str
    source: str
    ats: str
    status: str
    location_raw: str
    work_mode_hint: str
    discovered_date: datetime
    fit_score: int | None = None
    dealbreaker_flag: bool | None = None
    location_us_ok: str | None = None
    comp_ok: str | None = None
    work_mode_final: str | None = None
    rank_key: str | None = None


class RoleDetailResponse(RoleResponse):
    query: str
    jd_text: str
    http_status: str
    failure_reason: str
    fit_notes: str | None = None
    fetched_at: datetime | None = None
    enriched_at: datetime | None = None
    scored_at: datetime | None = None


class RoleStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]


class RunLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stage: str
    message: str
    created_at: datetime


class StageResponse(BaseModel):
    stage: str
    attempted: int
    succeeded: int
    failed: int
    skipped: int
    details: dict[str, Any] = Field(default_factory=dict)


StageName = Literal["enrich", "score"]

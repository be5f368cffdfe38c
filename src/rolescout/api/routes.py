from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from rolescout.api.deps import get_db
from rolescout.api.schemas import (
    RoleDetailResponse,
    RoleResponse,
    RoleStatsResponse,
    RunLogResponse,
    StageName,
    StageResponse,
)
from rolescout.core.orchestrator import RunOrchestrator
from rolescout.db.repositories import EventLog, RoleLedger
from rolescout.errors import ConfigurationError
from rolescout.types import ROLE_STATUSES

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/roles", response_model=list[RoleResponse])
def list_roles(
    limit: int = Query(50, ge=1, le=500),
    status: str | None = Query(None),
    include_dealbreakers: bool = Query(False),
    db: Session = Depends(get_db),
) -> list[RoleResponse]:
    if status is not None and status not in ROLE_STATUSES:
        raise HTTPException(status_code=400, detail=f"status must be one of {list(ROLE_STATUSES)}")
    rows = RoleLedger(db).ranked(limit=limit, status=status, include_dealbreakers=include_dealbreakers)
    return [RoleResponse.model_validate(row) for row in rows]


@router.get("/roles/stats", response_model=RoleStatsResponse)
def role_stats(db: Session = Depends(get_db)) -> RoleStatsResponse:
    ledger = RoleLedger(db)
    return RoleStatsResponse(total=ledger.count(), by_status=ledger.status_counts())


@router.get("/roles/lookup", response_model=RoleDetailResponse)
def lookup_role(url: str = Query(..., min_length=1), db: Session = Depends(get_db)) -> RoleDetailResponse:
    role = RoleLedger(db).get(url)
    if role is None:
        raise HTTPException(status_code=404, detail="Role not found")
    return RoleDetailResponse.model_validate(role)


@router.get("/logs", response_model=list[RunLogResponse])
def list_logs(
    limit: int = Query(50, ge=1, le=500),
    stage: str | None = Query(None),
    db: Session = Depends(get_db),
) -> list[RunLogResponse]:
    return [RunLogResponse.model_validate(row) for row in EventLog(db).recent(limit=limit, stage=stage)]


@router.post("/stages/{stage}", response_model=StageResponse)
def run_stage(
    stage: StageName,
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> StageResponse:
    orchestrator = RunOrchestrator(db)
    try:
        summary = orchestrator.run_enrichment(limit=limit) if stage == "enrich" else orchestrator.run_scoring()
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return StageResponse(**summary.model_dump())

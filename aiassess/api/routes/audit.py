from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query

from aiassess import crud
from aiassess.api.deps import AuditLoggerDep, CurrentUser, SessionDep
from aiassess.models import AuditEvent, AuditLogPublic, AuditLogStats

router = APIRouter()


@router.post("/")
def record_audit_event(event: AuditEvent, audit_logger: AuditLoggerDep) -> Any:
    """
    Record one change-log row.

    Authenticated callers get the privileged write with the request metadata
    captured here; anonymous callers get the bare fallback row.
    """
    result = audit_logger.log_event(event)
    return result.model_dump(by_alias=True, exclude_none=True)


@router.get("/", response_model=list[AuditLogPublic])
def read_audit_logs(
    session: SessionDep,
    current_user: CurrentUser,
    limit: int = Query(default=100, ge=1, le=1000),
    entity_type: str | None = None,
    action: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    only_mine: bool = False,
) -> Any:
    return crud.list_audit_logs(
        session=session,
        limit=limit,
        entity_type=entity_type,
        action=action,
        start_date=start_date,
        end_date=end_date,
        user_id=current_user.id if only_mine else None,
    )


@router.get("/stats", response_model=AuditLogStats)
def read_audit_log_stats(
    session: SessionDep,
    current_user: CurrentUser,
    days: int = Query(default=30, ge=1, le=365),
) -> Any:
    return crud.get_audit_log_stats(session=session, days=days)

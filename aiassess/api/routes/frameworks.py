from typing import Any

from fastapi import APIRouter, HTTPException

from aiassess import crud
from aiassess.api.deps import AuditLoggerDep, CurrentUser, SessionDep
from aiassess.frameworks import unknown_framework_ids
from aiassess.models import FrameworkPublic, FrameworkSelection

router = APIRouter()


@router.get("/", response_model=list[FrameworkPublic])
def read_frameworks(session: SessionDep, category: str | None = None, audience: str | None = None) -> Any:
    return crud.list_frameworks(session=session, category=category, audience=audience)


@router.get("/selection", response_model=FrameworkSelection)
def read_framework_selection(session: SessionDep, current_user: CurrentUser) -> Any:
    meta = crud.get_or_create_assessment_meta(session=session, user_id=current_user.id)
    return FrameworkSelection(
        enabled_frameworks=meta.enabled_frameworks,
        selected_frameworks=meta.selected_frameworks,
    )


@router.put("/selection", response_model=FrameworkSelection)
def update_framework_selection(
    selection: FrameworkSelection,
    session: SessionDep,
    current_user: CurrentUser,
    audit_logger: AuditLoggerDep,
) -> Any:
    known = [f.framework_id for f in crud.list_frameworks(session=session)]
    unknown = unknown_framework_ids([*selection.enabled_frameworks, *selection.selected_frameworks], known)
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown framework ids: {', '.join(unknown)}")

    previous = crud.get_or_create_assessment_meta(session=session, user_id=current_user.id)
    changes = {
        "enabled_frameworks": {"from": list(previous.enabled_frameworks), "to": selection.enabled_frameworks},
        "selected_frameworks": {"from": list(previous.selected_frameworks), "to": selection.selected_frameworks},
    }
    meta = crud.update_framework_selection(session=session, user_id=current_user.id, selection=selection)
    audit_logger.log("setting", "framework_selection", "update", changes)
    return FrameworkSelection(
        enabled_frameworks=meta.enabled_frameworks,
        selected_frameworks=meta.selected_frameworks,
    )


@router.get("/{framework_id}", response_model=FrameworkPublic)
def read_framework(framework_id: str, session: SessionDep) -> Any:
    framework = crud.get_framework(session=session, framework_id=framework_id)
    if not framework:
        raise HTTPException(status_code=404, detail="Framework not found")
    return framework

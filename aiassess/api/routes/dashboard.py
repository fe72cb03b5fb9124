from typing import Any

from fastapi import APIRouter, Query
from sqlmodel import Session

from aiassess import crud
from aiassess.api.deps import CurrentUser, SessionDep
from aiassess.assistant.prompts import AssistantContext, build_assistant_context
from aiassess.frameworks import question_belongs_to_frameworks
from aiassess.models import Answer, AuthUser, MaturitySnapshotPublic, SnapshotType
from aiassess.scoring import (
    CriticalGap,
    FrameworkCoverage,
    OverallMetrics,
    Taxonomy,
    build_snapshot,
    calculate_overall_metrics,
    get_critical_gaps,
    get_framework_coverage,
)

router = APIRouter()


def _active_framework_ids(session: Session, user: AuthUser, frameworks: list[str] | None) -> list[str]:
    if frameworks:
        return frameworks
    meta = crud.get_or_create_assessment_meta(session=session, user_id=user.id)
    return list(meta.selected_frameworks or meta.enabled_frameworks)


def _load_assessment(
    session: Session, user: AuthUser, frameworks: list[str] | None
) -> tuple[Taxonomy, dict[str, Answer], list[str]]:
    """Taxonomy restricted to the active frameworks plus the user's answers by question id."""
    taxonomy = Taxonomy.from_session(session)
    framework_ids = _active_framework_ids(session, user, frameworks)
    if framework_ids:
        taxonomy.questions = [
            q for q in taxonomy.questions if question_belongs_to_frameworks(q.frameworks or [], framework_ids)
        ]
    answers = {a.question_id: a for a in crud.list_answers(session=session, user_id=user.id)}
    return taxonomy, answers, framework_ids


@router.get("/metrics", response_model=OverallMetrics)
def read_metrics(
    session: SessionDep,
    current_user: CurrentUser,
    frameworks: list[str] | None = Query(default=None),
) -> Any:
    taxonomy, answers, _ = _load_assessment(session, current_user, frameworks)
    return calculate_overall_metrics(taxonomy, answers)


@router.get("/gaps", response_model=list[CriticalGap])
def read_critical_gaps(
    session: SessionDep,
    current_user: CurrentUser,
    frameworks: list[str] | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
) -> Any:
    taxonomy, answers, _ = _load_assessment(session, current_user, frameworks)
    return get_critical_gaps(taxonomy, answers)[:limit]


@router.get("/framework-coverage", response_model=list[FrameworkCoverage])
def read_framework_coverage(
    session: SessionDep,
    current_user: CurrentUser,
    frameworks: list[str] | None = Query(default=None),
) -> Any:
    taxonomy, answers, _ = _load_assessment(session, current_user, frameworks)
    return get_framework_coverage(taxonomy, answers)


@router.get("/assistant-context", response_model=AssistantContext)
def read_assistant_context(
    session: SessionDep,
    current_user: CurrentUser,
    frameworks: list[str] | None = Query(default=None),
) -> Any:
    taxonomy, answers, framework_ids = _load_assessment(session, current_user, frameworks)
    names = []
    for framework_id in framework_ids:
        framework = crud.get_framework(session=session, framework_id=framework_id)
        names.append(framework.short_name if framework else framework_id)
    return build_assistant_context(
        calculate_overall_metrics(taxonomy, answers),
        get_critical_gaps(taxonomy, answers),
        names,
    )


@router.post("/snapshots", response_model=MaturitySnapshotPublic)
def save_snapshot(
    session: SessionDep,
    current_user: CurrentUser,
    snapshot_type: SnapshotType = "manual",
) -> Any:
    """Record today's scores; a second snapshot of the same type today replaces the first."""
    taxonomy, answers, _ = _load_assessment(session, current_user, None)
    snapshot = build_snapshot(
        calculate_overall_metrics(taxonomy, answers),
        get_framework_coverage(taxonomy, answers),
        snapshot_type=snapshot_type,
    )
    return crud.upsert_maturity_snapshot(session=session, user_id=current_user.id, snapshot_in=snapshot)


@router.get("/snapshots", response_model=list[MaturitySnapshotPublic])
def read_snapshots(
    session: SessionDep,
    current_user: CurrentUser,
    days: int = Query(default=90, ge=1, le=730),
) -> Any:
    return crud.list_maturity_snapshots(session=session, user_id=current_user.id, days=days)

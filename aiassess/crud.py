import uuid
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any, TypeVar

from sqlalchemy import func
from sqlmodel import Session, SQLModel, col, select

from aiassess.models import (
    Answer,
    AnswerUpsert,
    AssessmentMeta,
    AuditEvent,
    AuditLog,
    AuditLogStats,
    Domain,
    Framework,
    FrameworkSelection,
    MaturitySnapshot,
    MaturitySnapshotBase,
    Question,
    Subcategory,
    get_date_utc,
    get_datetime_utc,
)

T = TypeVar("T", bound=SQLModel)


def _first_by_key(rows: Iterable[T], key: Callable[[T], str]) -> list[T]:
    # Seeded tables may hold duplicate natural keys; the oldest row wins.
    seen: set[str] = set()
    unique: list[T] = []
    for row in rows:
        k = key(row)
        if k in seen:
            continue
        seen.add(k)
        unique.append(row)
    return unique


# Audit trail

def create_audit_log(
    *,
    session: Session,
    event: AuditEvent,
    user_id: uuid.UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    db_obj = AuditLog.model_validate(event, update={"user_id": user_id, **(metadata or {})})
    session.add(db_obj)
    session.commit()
    # No refresh: once the commit succeeds the row counts as written.
    return db_obj


def list_audit_logs(
    *,
    session: Session,
    limit: int = 100,
    entity_type: str | None = None,
    action: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    user_id: uuid.UUID | None = None,
) -> list[AuditLog]:
    statement = select(AuditLog)
    if entity_type:
        statement = statement.where(AuditLog.entity_type == entity_type)
    if action:
        statement = statement.where(AuditLog.action == action)
    if start_date:
        statement = statement.where(col(AuditLog.created_at) >= start_date)
    if end_date:
        statement = statement.where(col(AuditLog.created_at) <= end_date)
    if user_id:
        statement = statement.where(AuditLog.user_id == user_id)
    statement = statement.order_by(col(AuditLog.created_at).desc(), col(AuditLog.id).desc()).limit(limit)
    return list(session.exec(statement).all())


def get_audit_log_stats(*, session: Session, days: int = 30) -> AuditLogStats:
    since = get_datetime_utc() - timedelta(days=days)
    rows = session.exec(select(AuditLog).where(col(AuditLog.created_at) >= since)).all()

    by_action = Counter(row.action for row in rows)
    by_entity_type = Counter(row.entity_type for row in rows)
    by_device = Counter(row.device_type or "unknown" for row in rows)
    return AuditLogStats(
        total_logs=len(rows),
        by_action=dict(by_action),
        by_entity_type=dict(by_entity_type),
        by_device=dict(by_device),
        unique_users=len({row.user_id for row in rows if row.user_id}),
        unique_ips=len({row.ip_address for row in rows if row.ip_address}),
    )


# Reference data

def count_rows(*, session: Session, model: type[SQLModel]) -> int:
    return session.exec(select(func.count()).select_from(model)).one()


def list_frameworks(
    *,
    session: Session,
    category: str | None = None,
    audience: str | None = None,
) -> list[Framework]:
    statement = select(Framework).order_by(col(Framework.framework_id), col(Framework.id))
    frameworks = _first_by_key(session.exec(statement).all(), lambda f: f.framework_id)
    if category:
        frameworks = [f for f in frameworks if f.category == category]
    if audience:
        frameworks = [f for f in frameworks if audience in (f.target_audience or [])]
    return frameworks


def get_framework(*, session: Session, framework_id: str) -> Framework | None:
    statement = select(Framework).where(Framework.framework_id == framework_id).order_by(col(Framework.id))
    return session.exec(statement).first()


def list_domains(*, session: Session) -> list[Domain]:
    statement = select(Domain).order_by(col(Domain.display_order), col(Domain.id))
    return _first_by_key(session.exec(statement).all(), lambda d: d.domain_id)


def list_subcategories(*, session: Session) -> list[Subcategory]:
    statement = select(Subcategory).order_by(col(Subcategory.id))
    return _first_by_key(session.exec(statement).all(), lambda s: s.subcat_id)


def list_questions(*, session: Session, domain_id: str | None = None) -> list[Question]:
    statement = select(Question).order_by(col(Question.id))
    if domain_id:
        statement = statement.where(Question.domain_id == domain_id)
    return _first_by_key(session.exec(statement).all(), lambda q: q.question_id)


def get_question(*, session: Session, question_id: str) -> Question | None:
    statement = select(Question).where(Question.question_id == question_id).order_by(col(Question.id))
    return session.exec(statement).first()


# Per-user assessment state

def get_or_create_assessment_meta(*, session: Session, user_id: uuid.UUID) -> AssessmentMeta:
    meta = session.exec(select(AssessmentMeta).where(AssessmentMeta.user_id == user_id)).first()
    if meta:
        return meta
    defaults = [f.framework_id for f in list_frameworks(session=session) if f.default_enabled]
    meta = AssessmentMeta(user_id=user_id, enabled_frameworks=defaults, selected_frameworks=[])
    session.add(meta)
    session.commit()
    session.refresh(meta)
    return meta


def update_framework_selection(
    *, session: Session, user_id: uuid.UUID, selection: FrameworkSelection
) -> AssessmentMeta:
    meta = get_or_create_assessment_meta(session=session, user_id=user_id)
    meta.enabled_frameworks = list(selection.enabled_frameworks)
    meta.selected_frameworks = list(selection.selected_frameworks)
    meta.updated_at = get_datetime_utc()
    session.add(meta)
    session.commit()
    session.refresh(meta)
    return meta


def list_answers(*, session: Session, user_id: uuid.UUID) -> list[Answer]:
    statement = select(Answer).where(Answer.user_id == user_id).order_by(col(Answer.question_id))
    return list(session.exec(statement).all())


def upsert_answer(
    *, session: Session, user_id: uuid.UUID, question_id: str, answer_in: AnswerUpsert
) -> tuple[Answer, bool]:
    db_answer = session.exec(
        select(Answer).where(Answer.user_id == user_id, Answer.question_id == question_id)
    ).first()
    created = db_answer is None
    if created:
        db_answer = Answer.model_validate(answer_in, update={"user_id": user_id, "question_id": question_id})
    else:
        db_answer.sqlmodel_update(answer_in.model_dump(exclude_unset=True), update={"updated_at": get_datetime_utc()})
    session.add(db_answer)
    session.commit()
    session.refresh(db_answer)
    return db_answer, created


def clear_answers(*, session: Session, user_id: uuid.UUID) -> int:
    answers = list_answers(session=session, user_id=user_id)
    for answer in answers:
        session.delete(answer)
    session.commit()
    return len(answers)


def upsert_maturity_snapshot(
    *, session: Session, user_id: uuid.UUID, snapshot_in: MaturitySnapshotBase
) -> MaturitySnapshot:
    db_snapshot = session.exec(
        select(MaturitySnapshot).where(
            MaturitySnapshot.user_id == user_id,
            MaturitySnapshot.snapshot_date == snapshot_in.snapshot_date,
            MaturitySnapshot.snapshot_type == snapshot_in.snapshot_type,
        )
    ).first()
    if db_snapshot is None:
        db_snapshot = MaturitySnapshot.model_validate(snapshot_in, update={"user_id": user_id})
    else:
        db_snapshot.sqlmodel_update(snapshot_in.model_dump())
    session.add(db_snapshot)
    session.commit()
    session.refresh(db_snapshot)
    return db_snapshot


def list_maturity_snapshots(*, session: Session, user_id: uuid.UUID, days: int = 90) -> list[MaturitySnapshot]:
    since = get_date_utc() - timedelta(days=days)
    statement = (
        select(MaturitySnapshot)
        .where(MaturitySnapshot.user_id == user_id, col(MaturitySnapshot.snapshot_date) >= since)
        .order_by(col(MaturitySnapshot.snapshot_date))
    )
    return list(session.exec(statement).all())

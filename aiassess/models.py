import uuid
from datetime import date, datetime, timezone
from typing import Literal

from sqlalchemy import JSON, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_date_utc() -> date:
    return get_datetime_utc().date()


Audience = Literal["Executive", "GRC", "Engineering"]
FrameworkCategory = Literal["core", "high-value", "tech-focused", "custom"]
Criticality = Literal["Low", "Medium", "High", "Critical"]
AnswerValue = Literal["Sim", "Parcial", "Não", "NA"]
EntityType = Literal["framework", "question", "setting", "answer"]
AuditAction = Literal["create", "update", "delete", "disable", "enable"]
SnapshotType = Literal["automatic", "manual"]


# Generic message
class Message(SQLModel):
    message: str


# Claims of a bearer token issued by the hosted auth service
class TokenPayload(SQLModel):
    sub: str | None = None
    email: str | None = None
    role: str | None = None


class AuthUser(SQLModel):
    id: uuid.UUID
    email: str | None = None
    role: str = "authenticated"


# Reference data. Natural keys are indexed but not unique: seeding is a plain
# insert and running it twice leaves duplicate rows behind.

class FrameworkBase(SQLModel):
    framework_id: str = Field(index=True, max_length=100)
    framework_name: str = Field(max_length=200)
    short_name: str = Field(max_length=50)
    description: str | None = Field(default=None, max_length=2000)
    target_audience: list[str] = Field(default_factory=list, sa_type=JSON)
    assessment_scope: str | None = Field(default=None, max_length=1000)
    default_enabled: bool = False
    version: str = Field(default="1.0", max_length=20)
    category: str = Field(default="core", max_length=50)
    reference_links: list[str] = Field(default_factory=list, sa_type=JSON)


class FrameworkCreate(FrameworkBase):
    target_audience: list[Audience] = Field(default_factory=list)  # type: ignore
    category: FrameworkCategory = "core"  # type: ignore


class Framework(FrameworkBase, table=True):
    __tablename__ = "default_frameworks"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class FrameworkPublic(FrameworkBase):
    pass


class DomainBase(SQLModel):
    domain_id: str = Field(index=True, max_length=50)
    domain_name: str = Field(max_length=200)
    display_order: int = 1
    nist_ai_rmf_function: str | None = Field(default=None, max_length=20)
    strategic_question: str | None = None
    description: str | None = None
    banking_relevance: str | None = None


class DomainCreate(DomainBase):
    pass


class Domain(DomainBase, table=True):
    __tablename__ = "domains"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class SubcategoryBase(SQLModel):
    subcat_id: str = Field(index=True, max_length=50)
    domain_id: str = Field(index=True, max_length=50)
    subcat_name: str = Field(max_length=200)
    definition: str | None = None
    objective: str | None = None
    security_outcome: str | None = None
    criticality: str = Field(default="Medium", max_length=20)
    weight: float = 1.0
    ownership_type: str | None = Field(default=None, max_length=50)
    risk_summary: str | None = None
    framework_refs: list[str] = Field(default_factory=list, sa_type=JSON)


class SubcategoryCreate(SubcategoryBase):
    criticality: Criticality = "Medium"  # type: ignore


class Subcategory(SubcategoryBase, table=True):
    __tablename__ = "subcategories"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class QuestionBase(SQLModel):
    question_id: str = Field(index=True, max_length=100)
    subcat_id: str = Field(index=True, max_length=50)
    domain_id: str = Field(index=True, max_length=50)
    question_text: str = Field(max_length=2000)
    expected_evidence: str | None = Field(default=None, max_length=2000)
    imperative_checks: str | None = Field(default=None, max_length=2000)
    risk_summary: str | None = Field(default=None, max_length=1000)
    frameworks: list[str] = Field(default_factory=list, sa_type=JSON)
    ownership_type: str | None = Field(default=None, max_length=50)


class QuestionCreate(QuestionBase):
    ownership_type: Audience | None = None  # type: ignore


class Question(QuestionBase, table=True):
    __tablename__ = "default_questions"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class QuestionPublic(QuestionBase):
    pass


# Audit trail

class AuditEvent(SQLModel):
    entity_type: EntityType
    entity_id: str = Field(min_length=1, max_length=100)
    action: AuditAction
    changes: dict = Field(default_factory=dict)


class AuditLogBase(SQLModel):
    entity_type: str = Field(max_length=50, index=True)
    entity_id: str = Field(max_length=100, index=True)
    action: str = Field(max_length=50)
    changes: dict = Field(default_factory=dict, sa_type=JSON)


class AuditLog(AuditLogBase, table=True):
    __tablename__ = "change_logs"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID | None = Field(default=None, index=True)
    ip_address: str | None = Field(default=None, max_length=64)
    user_agent: str | None = Field(default=None, max_length=1000)
    request_id: str | None = Field(default=None, max_length=64)
    session_id: str | None = Field(default=None, max_length=64)
    geo_country: str | None = Field(default=None, max_length=64)
    geo_city: str | None = Field(default=None, max_length=128)
    device_type: str | None = Field(default=None, max_length=20)
    browser_name: str | None = Field(default=None, max_length=50)
    os_name: str | None = Field(default=None, max_length=50)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        index=True,
    )


class AuditLogPublic(AuditLogBase):
    id: int
    user_id: uuid.UUID | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    session_id: str | None = None
    geo_country: str | None = None
    geo_city: str | None = None
    device_type: str | None = None
    browser_name: str | None = None
    os_name: str | None = None
    created_at: datetime | None = None


class AuditLogStats(SQLModel):
    total_logs: int = 0
    by_action: dict[str, int] = Field(default_factory=dict)
    by_entity_type: dict[str, int] = Field(default_factory=dict)
    by_device: dict[str, int] = Field(default_factory=dict)
    unique_users: int = 0
    unique_ips: int = 0


# Questionnaire state

class AnswerBase(SQLModel):
    response: str | None = Field(default=None, max_length=20)
    evidence_ok: str | None = Field(default=None, max_length=20)
    notes: str = Field(default="", max_length=5000)
    evidence_links: list[str] = Field(default_factory=list, sa_type=JSON)


class AnswerUpsert(AnswerBase):
    response: AnswerValue | None = None  # type: ignore
    evidence_ok: AnswerValue | None = None  # type: ignore
    framework_id: str | None = Field(default=None, max_length=100)


class Answer(AnswerBase, table=True):
    __tablename__ = "answers"
    __table_args__ = (UniqueConstraint("user_id", "question_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    question_id: str = Field(index=True, max_length=100)
    framework_id: str | None = Field(default=None, max_length=100)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class AnswerPublic(AnswerBase):
    question_id: str
    framework_id: str | None = None
    updated_at: datetime | None = None


class AssessmentMeta(SQLModel, table=True):
    __tablename__ = "assessment_meta"

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(index=True, unique=True)
    name: str = Field(default="Avaliação de Maturidade em Segurança de IA", max_length=200)
    enabled_frameworks: list[str] = Field(default_factory=list, sa_type=JSON)
    selected_frameworks: list[str] = Field(default_factory=list, sa_type=JSON)
    version: str = Field(default="2.0.0", max_length=20)
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class FrameworkSelection(SQLModel):
    enabled_frameworks: list[str] = Field(default_factory=list)
    selected_frameworks: list[str] = Field(default_factory=list)


# Historical maturity scores for trend charts

class MaturitySnapshotBase(SQLModel):
    snapshot_date: date = Field(default_factory=get_date_utc, index=True)
    snapshot_type: str = Field(default="automatic", max_length=20)
    overall_score: float
    overall_coverage: float
    evidence_readiness: float
    maturity_level: int
    total_questions: int
    answered_questions: int
    critical_gaps: int
    domain_metrics: list[dict] = Field(default_factory=list, sa_type=JSON)
    framework_metrics: list[dict] = Field(default_factory=list, sa_type=JSON)


class MaturitySnapshot(MaturitySnapshotBase, table=True):
    __tablename__ = "maturity_snapshots"
    __table_args__ = (UniqueConstraint("user_id", "snapshot_date", "snapshot_type"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MaturitySnapshotPublic(MaturitySnapshotBase):
    id: uuid.UUID
    created_at: datetime | None = None

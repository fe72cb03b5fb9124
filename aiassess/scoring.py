"""
Maturity scoring for questionnaire answers.

A question's effective score is its response score times the evidence
multiplier. Subcategory scores average the effective scores of applicable
questions, domain scores are weight-averaged subcategory scores and the
overall score averages domains by their mean subcategory weight.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from pydantic import BaseModel
from sqlmodel import Session

from aiassess import crud
from aiassess.frameworks import AUTHORITATIVE_FRAMEWORKS, normalize_framework_name
from aiassess.models import Answer, Domain, MaturitySnapshotBase, Question, Subcategory

RESPONSE_SCORES: dict[str, float] = {"Sim": 1.0, "Parcial": 0.5, "Não": 0.0}
EVIDENCE_MULTIPLIERS: dict[str, float] = {"Sim": 1.0, "Parcial": 0.85, "Não": 0.7}
# Missing or NA evidence is scored like "Não".
DEFAULT_EVIDENCE_MULTIPLIER = 0.7
CRITICAL_GAP_THRESHOLD = 0.5
HIGH_CRITICALITY = ("High", "Critical")

NIST_FUNCTIONS = ("GOVERN", "MAP", "MEASURE", "MANAGE")
OWNERSHIP_TYPES = ("Executive", "GRC", "Engineering")


class MaturityLevel(BaseModel):
    level: int
    name: str
    min_score: float
    max_score: float


MATURITY_LEVELS: list[MaturityLevel] = [
    MaturityLevel(level=1, name="Initial", min_score=0.0, max_score=0.2),
    MaturityLevel(level=2, name="Developing", min_score=0.2, max_score=0.4),
    MaturityLevel(level=3, name="Defined", min_score=0.4, max_score=0.6),
    MaturityLevel(level=4, name="Managed", min_score=0.6, max_score=0.8),
    MaturityLevel(level=5, name="Optimized", min_score=0.8, max_score=1.0),
]


def get_maturity_level(score: float) -> MaturityLevel:
    for level in reversed(MATURITY_LEVELS):
        if score >= level.min_score:
            return level
    return MATURITY_LEVELS[0]


class QuestionScore(BaseModel):
    question_id: str
    response_score: float | None = None
    evidence_multiplier: float | None = None
    effective_score: float | None = None
    is_applicable: bool = True


def score_answer(question_id: str, answer: Answer | None) -> QuestionScore:
    if answer is None or not answer.response:
        return QuestionScore(question_id=question_id)
    if answer.response == "NA":
        return QuestionScore(question_id=question_id, is_applicable=False)

    response_score = RESPONSE_SCORES.get(answer.response)
    multiplier = EVIDENCE_MULTIPLIERS.get(answer.evidence_ok or "", DEFAULT_EVIDENCE_MULTIPLIER)
    return QuestionScore(
        question_id=question_id,
        response_score=response_score,
        evidence_multiplier=multiplier,
        effective_score=response_score * multiplier if response_score is not None else None,
    )


@dataclass
class Taxonomy:
    """Domains, subcategories and questions indexed by their natural keys."""

    domains: list[Domain] = field(default_factory=list)
    subcategories: list[Subcategory] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)

    @classmethod
    def from_session(cls, session: Session) -> "Taxonomy":
        return cls(
            domains=crud.list_domains(session=session),
            subcategories=crud.list_subcategories(session=session),
            questions=crud.list_questions(session=session),
        )

    def subcategory(self, subcat_id: str) -> Subcategory | None:
        return next((s for s in self.subcategories if s.subcat_id == subcat_id), None)

    def domain(self, domain_id: str) -> Domain | None:
        return next((d for d in self.domains if d.domain_id == domain_id), None)

    def subcategories_for(self, domain_id: str) -> list[Subcategory]:
        return [s for s in self.subcategories if s.domain_id == domain_id]

    def questions_for_subcategory(self, subcat_id: str) -> list[Question]:
        return [q for q in self.questions if q.subcat_id == subcat_id]

    def questions_for_domain(self, domain_id: str) -> list[Question]:
        return [q for q in self.questions if q.domain_id == domain_id]

    def framework_tags(self, question: Question) -> list[str]:
        # Subcategory references apply to every question beneath them.
        subcat = self.subcategory(question.subcat_id)
        tags: list[str] = []
        for reference in [*(question.frameworks or []), *((subcat.framework_refs or []) if subcat else [])]:
            if reference and reference not in tags:
                tags.append(reference)
        return tags


class SubcategoryMetrics(BaseModel):
    subcat_id: str
    subcat_name: str
    domain_id: str
    score: float
    maturity_level: MaturityLevel
    total_questions: int
    answered_questions: int
    applicable_questions: int
    coverage: float
    criticality: str
    weight: float
    critical_gaps: int
    ownership_type: str | None = None


class DomainMetrics(BaseModel):
    domain_id: str
    domain_name: str
    nist_function: str | None = None
    score: float
    maturity_level: MaturityLevel
    total_questions: int
    answered_questions: int
    applicable_questions: int
    coverage: float
    critical_gaps: int
    subcategory_metrics: list[SubcategoryMetrics]


class NistFunctionMetrics(BaseModel):
    function: str
    score: float
    maturity_level: MaturityLevel
    total_questions: int
    answered_questions: int
    coverage: float
    domain_count: int


class OwnershipMetrics(BaseModel):
    ownership_type: str
    score: float
    maturity_level: MaturityLevel
    total_questions: int
    answered_questions: int
    coverage: float


class OverallMetrics(BaseModel):
    overall_score: float
    maturity_level: MaturityLevel
    total_questions: int
    answered_questions: int
    applicable_questions: int
    coverage: float
    evidence_readiness: float
    critical_gaps: int
    domain_metrics: list[DomainMetrics]
    nist_function_metrics: list[NistFunctionMetrics]
    ownership_metrics: list[OwnershipMetrics]


class CriticalGap(BaseModel):
    question_id: str
    question_text: str
    subcat_id: str
    subcat_name: str
    domain_id: str
    domain_name: str
    criticality: str
    effective_score: float
    response: str
    evidence_ok: str
    ownership_type: str | None = None
    nist_function: str | None = None


class FrameworkCoverage(BaseModel):
    framework: str
    total_questions: int
    answered_questions: int
    average_score: float
    coverage: float


def calculate_subcategory_metrics(
    taxonomy: Taxonomy, subcat: Subcategory, answers: Mapping[str, Answer]
) -> SubcategoryMetrics:
    questions = taxonomy.questions_for_subcategory(subcat.subcat_id)
    total_effective = 0.0
    applicable = 0
    answered = 0
    critical_gaps = 0

    for question in questions:
        answer = answers.get(question.question_id)
        scored = score_answer(question.question_id, answer)
        if answer is not None and answer.response:
            answered += 1
        if not scored.is_applicable:
            continue
        applicable += 1
        if scored.effective_score is None:
            continue
        total_effective += scored.effective_score
        if scored.effective_score < CRITICAL_GAP_THRESHOLD and subcat.criticality in HIGH_CRITICALITY:
            critical_gaps += 1

    score = total_effective / applicable if applicable and answered else 0.0
    return SubcategoryMetrics(
        subcat_id=subcat.subcat_id,
        subcat_name=subcat.subcat_name,
        domain_id=subcat.domain_id,
        score=score,
        maturity_level=get_maturity_level(score),
        total_questions=len(questions),
        answered_questions=answered,
        applicable_questions=applicable,
        coverage=answered / applicable if applicable else 0.0,
        criticality=subcat.criticality,
        weight=subcat.weight,
        critical_gaps=critical_gaps,
        ownership_type=subcat.ownership_type,
    )


def calculate_domain_metrics(taxonomy: Taxonomy, domain: Domain, answers: Mapping[str, Answer]) -> DomainMetrics:
    subcategory_metrics = [
        calculate_subcategory_metrics(taxonomy, subcat, answers)
        for subcat in taxonomy.subcategories_for(domain.domain_id)
    ]

    weighted_score = 0.0
    total_weight = 0.0
    for sm in subcategory_metrics:
        if sm.applicable_questions and sm.answered_questions:
            weighted_score += sm.score * sm.weight
            total_weight += sm.weight
    answered = sum(sm.answered_questions for sm in subcategory_metrics)
    applicable = sum(sm.applicable_questions for sm in subcategory_metrics)

    score = weighted_score / total_weight if total_weight else 0.0
    return DomainMetrics(
        domain_id=domain.domain_id,
        domain_name=domain.domain_name,
        nist_function=domain.nist_ai_rmf_function,
        score=score,
        maturity_level=get_maturity_level(score),
        total_questions=len(taxonomy.questions_for_domain(domain.domain_id)),
        answered_questions=answered,
        applicable_questions=applicable,
        coverage=answered / applicable if applicable else 0.0,
        critical_gaps=sum(sm.critical_gaps for sm in subcategory_metrics),
        subcategory_metrics=subcategory_metrics,
    )


def calculate_nist_function_metrics(domain_metrics: list[DomainMetrics]) -> list[NistFunctionMetrics]:
    results: list[NistFunctionMetrics] = []
    for function in NIST_FUNCTIONS:
        function_domains = [dm for dm in domain_metrics if dm.nist_function == function]
        scored = [dm.score for dm in function_domains if dm.answered_questions]
        answered = sum(dm.answered_questions for dm in function_domains)
        total = sum(dm.total_questions for dm in function_domains)
        score = sum(scored) / len(scored) if scored else 0.0
        results.append(
            NistFunctionMetrics(
                function=function,
                score=score,
                maturity_level=get_maturity_level(score),
                total_questions=total,
                answered_questions=answered,
                coverage=answered / total if total else 0.0,
                domain_count=len(function_domains),
            )
        )
    return results


def calculate_ownership_metrics(taxonomy: Taxonomy, answers: Mapping[str, Answer]) -> list[OwnershipMetrics]:
    results: list[OwnershipMetrics] = []
    for ownership_type in OWNERSHIP_TYPES:
        questions = [q for q in taxonomy.questions if q.ownership_type == ownership_type]
        total_score = 0.0
        answered = 0
        applicable = 0
        for question in questions:
            scored = score_answer(question.question_id, answers.get(question.question_id))
            if not scored.is_applicable:
                continue
            applicable += 1
            if scored.effective_score is not None:
                total_score += scored.effective_score
                answered += 1

        score = total_score / answered if answered else 0.0
        results.append(
            OwnershipMetrics(
                ownership_type=ownership_type,
                score=score,
                maturity_level=get_maturity_level(score),
                total_questions=len(questions),
                answered_questions=answered,
                coverage=answered / applicable if applicable else 0.0,
            )
        )
    return results


def calculate_overall_metrics(
    taxonomy: Taxonomy,
    answers: Mapping[str, Answer],
    active_questions_count: int | None = None,
) -> OverallMetrics:
    domain_metrics = [calculate_domain_metrics(taxonomy, domain, answers) for domain in taxonomy.domains]

    weighted_score = 0.0
    total_weight = 0.0
    for dm in domain_metrics:
        weights = [sm.weight for sm in dm.subcategory_metrics]
        avg_weight = sum(weights) / (len(weights) or 1)
        if dm.applicable_questions and dm.answered_questions:
            weighted_score += dm.score * avg_weight
            total_weight += avg_weight
    answered = sum(dm.answered_questions for dm in domain_metrics)
    applicable = sum(dm.applicable_questions for dm in domain_metrics)

    multipliers = [
        scored.evidence_multiplier
        for scored in (score_answer(q.question_id, answers.get(q.question_id)) for q in taxonomy.questions)
        if scored.evidence_multiplier is not None
    ]

    overall_score = weighted_score / total_weight if total_weight else 0.0
    coverage_base = active_questions_count if active_questions_count is not None else applicable
    coverage = answered / coverage_base if coverage_base else 0.0
    return OverallMetrics(
        overall_score=overall_score,
        maturity_level=get_maturity_level(overall_score),
        total_questions=active_questions_count if active_questions_count is not None else len(taxonomy.questions),
        answered_questions=answered,
        applicable_questions=applicable,
        coverage=min(coverage, 1.0),
        evidence_readiness=sum(multipliers) / len(multipliers) if multipliers else 0.0,
        critical_gaps=sum(dm.critical_gaps for dm in domain_metrics),
        domain_metrics=domain_metrics,
        nist_function_metrics=calculate_nist_function_metrics(domain_metrics),
        ownership_metrics=calculate_ownership_metrics(taxonomy, answers),
    )


def get_critical_gaps(
    taxonomy: Taxonomy,
    answers: Mapping[str, Answer],
    threshold: float = CRITICAL_GAP_THRESHOLD,
) -> list[CriticalGap]:
    """Unanswered or low-scoring questions in High/Critical subcategories, Critical first."""
    gaps: list[CriticalGap] = []
    for question in taxonomy.questions:
        subcat = taxonomy.subcategory(question.subcat_id)
        domain = taxonomy.domain(question.domain_id)
        if subcat is None or domain is None or subcat.criticality not in HIGH_CRITICALITY:
            continue

        answer = answers.get(question.question_id)
        scored = score_answer(question.question_id, answer)
        if not scored.is_applicable:
            continue
        if scored.effective_score is not None and scored.effective_score >= threshold:
            continue

        gaps.append(
            CriticalGap(
                question_id=question.question_id,
                question_text=question.question_text,
                subcat_id=question.subcat_id,
                subcat_name=subcat.subcat_name,
                domain_id=question.domain_id,
                domain_name=domain.domain_name,
                criticality=subcat.criticality,
                effective_score=scored.effective_score or 0.0,
                response=(answer.response if answer else None) or "Não respondido",
                evidence_ok=(answer.evidence_ok if answer else None) or "N/A",
                ownership_type=question.ownership_type,
                nist_function=domain.nist_ai_rmf_function,
            )
        )

    gaps.sort(key=lambda gap: (gap.criticality != "Critical", gap.effective_score))
    return gaps


def get_framework_coverage(
    taxonomy: Taxonomy,
    answers: Mapping[str, Answer],
) -> list[FrameworkCoverage]:
    totals: dict[str, int] = {}
    answered: dict[str, int] = {}
    scores: dict[str, list[float]] = {}

    for question in taxonomy.questions:
        answer = answers.get(question.question_id)
        for reference in taxonomy.framework_tags(question):
            framework = normalize_framework_name(reference)
            if framework is None:
                continue
            totals[framework] = totals.get(framework, 0) + 1
            answered.setdefault(framework, 0)
            scores.setdefault(framework, [])
            if answer is None or not answer.response or answer.response == "NA":
                continue
            answered[framework] += 1
            effective = score_answer(question.question_id, answer).effective_score
            if effective is not None:
                scores[framework].append(effective)

    coverage = [
        FrameworkCoverage(
            framework=framework,
            total_questions=total,
            answered_questions=answered[framework],
            average_score=sum(scores[framework]) / len(scores[framework]) if scores[framework] else 0.0,
            coverage=answered[framework] / total if total else 0.0,
        )
        for framework, total in totals.items()
        if framework in AUTHORITATIVE_FRAMEWORKS
    ]
    coverage.sort(key=lambda item: item.total_questions, reverse=True)
    return coverage


def build_snapshot(
    metrics: OverallMetrics,
    framework_coverage: list[FrameworkCoverage],
    snapshot_type: str = "automatic",
) -> MaturitySnapshotBase:
    return MaturitySnapshotBase(
        snapshot_type=snapshot_type,
        overall_score=metrics.overall_score,
        overall_coverage=metrics.coverage,
        evidence_readiness=metrics.evidence_readiness,
        maturity_level=metrics.maturity_level.level,
        total_questions=metrics.total_questions,
        answered_questions=metrics.answered_questions,
        critical_gaps=metrics.critical_gaps,
        domain_metrics=[
            {
                "domain_id": dm.domain_id,
                "domain_name": dm.domain_name,
                "score": dm.score,
                "coverage": dm.coverage,
                "critical_gaps": dm.critical_gaps,
            }
            for dm in metrics.domain_metrics
        ],
        framework_metrics=[item.model_dump() for item in framework_coverage],
    )

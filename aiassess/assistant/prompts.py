from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from aiassess.scoring import CriticalGap, OverallMetrics

ASSISTANT_SYSTEM_PROMPT = """You are an expert AI Security, Cloud Security, and DevSecOps assistant for a governance assessment platform. You help security professionals analyze their organization's security posture.

Your capabilities:
- Analyze maturity scores and identify improvement areas
- Explain security frameworks (NIST AI RMF, ISO 27001, CSA CCM, OWASP, etc.)
- Provide actionable recommendations for security gaps
- Answer questions about security best practices
- Help interpret assessment results and trends

When given assessment context:
- Focus on the most critical gaps and quick wins
- Prioritize recommendations by risk impact
- Reference specific frameworks and controls when applicable
- Be concise but thorough

Always be professional, accurate, and security-focused. If you don't know something, say so."""

MAX_CONTEXT_GAPS = 5


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(BaseModel):
    role: str
    content: str


class DomainScore(_CamelModel):
    domain_name: str
    score: float | None = None
    critical_gaps: int = 0


class GapSummary(_CamelModel):
    question: str
    domain: str


class AssistantContext(_CamelModel):
    """Dashboard figures the assistant is told about. Scores are percentages."""

    overall_score: float | None = None
    maturity_level: str | int | None = None
    coverage: float | None = None
    evidence_readiness: float | None = None
    critical_gaps: int | None = None
    security_domain: str | None = None
    frameworks: list[str] = Field(default_factory=list)
    domain_metrics: list[DomainScore] = Field(default_factory=list)
    top_gaps: list[GapSummary] = Field(default_factory=list)


class ChatRequest(BaseModel):
    messages: list[ChatMessage]
    context: AssistantContext | None = None


def _percent(value: float | None) -> str:
    return f"{value:.1f}" if value is not None else "N/A"


def build_system_prompt(context: AssistantContext | None) -> str:
    if context is None:
        return ASSISTANT_SYSTEM_PROMPT

    domain_lines = "\n".join(
        f"- {d.domain_name}: {_percent(d.score)}% ({d.critical_gaps} gaps)" for d in context.domain_metrics
    )
    gap_lines = "\n".join(f"- [{g.domain}] {g.question}" for g in context.top_gaps[:MAX_CONTEXT_GAPS])

    return f"""{ASSISTANT_SYSTEM_PROMPT}

Current Assessment Context:
- Overall Security Score: {_percent(context.overall_score)}%
- Maturity Level: {context.maturity_level or 'N/A'}
- Coverage: {_percent(context.coverage)}%
- Evidence Readiness: {_percent(context.evidence_readiness)}%
- Critical Gaps: {context.critical_gaps or 0}
- Security Domain: {context.security_domain or 'AI Security'}
- Active Frameworks: {', '.join(context.frameworks) or 'None selected'}

Domain Breakdown:
{domain_lines or 'No domain data available'}

Top Critical Gaps:
{gap_lines or 'No gaps identified'}"""


def build_assistant_context(
    metrics: OverallMetrics,
    gaps: list[CriticalGap],
    frameworks: list[str],
) -> AssistantContext:
    """Summarize dashboard metrics in the shape the chat client sends."""
    return AssistantContext(
        overall_score=metrics.overall_score * 100,
        maturity_level=metrics.maturity_level.name,
        coverage=metrics.coverage * 100,
        evidence_readiness=metrics.evidence_readiness * 100,
        critical_gaps=metrics.critical_gaps,
        frameworks=frameworks,
        domain_metrics=[
            DomainScore(domain_name=dm.domain_name, score=dm.score * 100, critical_gaps=dm.critical_gaps)
            for dm in metrics.domain_metrics
        ],
        top_gaps=[GapSummary(question=gap.question_text, domain=gap.domain_name) for gap in gaps[:MAX_CONTEXT_GAPS]],
    )

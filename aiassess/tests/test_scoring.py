import uuid
from datetime import datetime, timezone

import pytest

from aiassess.models import Answer, Domain, Question, Subcategory
from aiassess.scoring import (
    Taxonomy,
    build_snapshot,
    calculate_overall_metrics,
    get_critical_gaps,
    get_framework_coverage,
    get_maturity_level,
    score_answer,
)

USER_ID = uuid.uuid4()


def _answer(question_id: str, response: str | None, evidence_ok: str | None = None) -> Answer:
    return Answer(user_id=USER_ID, question_id=question_id, response=response, evidence_ok=evidence_ok)


@pytest.fixture
def taxonomy() -> Taxonomy:
    return Taxonomy(
        domains=[
            Domain(domain_id="GOV", domain_name="Governança", display_order=1, nist_ai_rmf_function="GOVERN"),
            Domain(domain_id="MAN", domain_name="Gestão", display_order=2, nist_ai_rmf_function="MANAGE"),
        ],
        subcategories=[
            Subcategory(
                subcat_id="GOV.1",
                domain_id="GOV",
                subcat_name="Políticas",
                criticality="Critical",
                weight=2.0,
                framework_refs=["NIST AI RMF"],
            ),
            Subcategory(subcat_id="GOV.2", domain_id="GOV", subcat_name="Papéis", criticality="Medium", weight=1.0),
            Subcategory(subcat_id="MAN.1", domain_id="MAN", subcat_name="Resposta", criticality="High", weight=1.2),
        ],
        questions=[
            Question(
                question_id="Q1",
                subcat_id="GOV.1",
                domain_id="GOV",
                question_text="Política formal?",
                frameworks=["ISO 27001 A.5.1"],
                ownership_type="Executive",
            ),
            Question(
                question_id="Q2",
                subcat_id="GOV.1",
                domain_id="GOV",
                question_text="Revisão periódica?",
                frameworks=["LGPD Art. 46"],
                ownership_type="GRC",
            ),
            Question(
                question_id="Q3",
                subcat_id="GOV.2",
                domain_id="GOV",
                question_text="RACI definido?",
                frameworks=["MITRE ATLAS"],
                ownership_type="Engineering",
            ),
            Question(
                question_id="Q4",
                subcat_id="MAN.1",
                domain_id="MAN",
                question_text="Plano de resposta?",
                frameworks=["OWASP Top 10 for LLM"],
                ownership_type="Engineering",
            ),
        ],
    )


@pytest.fixture
def answers() -> dict[str, Answer]:
    return {
        "Q1": _answer("Q1", "Sim", "Sim"),
        "Q2": _answer("Q2", "Parcial"),
        "Q3": _answer("Q3", "Não"),
    }


@pytest.mark.parametrize(
    ("score", "level", "name"),
    [(0.0, 1, "Initial"), (0.19, 1, "Initial"), (0.2, 2, "Developing"), (0.45, 3, "Defined"), (0.79, 4, "Managed"), (1.0, 5, "Optimized")],
)
def test_maturity_levels(score, level, name):
    maturity = get_maturity_level(score)

    assert maturity.level == level
    assert maturity.name == name


def test_question_scores_apply_evidence_multiplier():
    assert score_answer("Q", _answer("Q", "Sim", "Parcial")).effective_score == pytest.approx(0.85)
    assert score_answer("Q", _answer("Q", "Parcial", "NA")).effective_score == pytest.approx(0.35)
    assert score_answer("Q", _answer("Q", "Não", "Sim")).effective_score == 0.0

    unanswered = score_answer("Q", None)
    assert unanswered.effective_score is None
    assert unanswered.is_applicable is True

    not_applicable = score_answer("Q", _answer("Q", "NA", "Sim"))
    assert not_applicable.is_applicable is False
    assert not_applicable.evidence_multiplier is None


def test_overall_metrics(taxonomy, answers):
    metrics = calculate_overall_metrics(taxonomy, answers)

    gov, man = metrics.domain_metrics
    gov_policies = gov.subcategory_metrics[0]
    assert gov_policies.score == pytest.approx(0.675)
    assert gov_policies.critical_gaps == 1
    assert gov.score == pytest.approx(0.45)
    assert gov.maturity_level.name == "Defined"
    assert man.score == 0.0
    assert man.answered_questions == 0

    assert metrics.overall_score == pytest.approx(0.45)
    assert metrics.total_questions == 4
    assert metrics.answered_questions == 3
    assert metrics.coverage == pytest.approx(0.75)
    assert metrics.evidence_readiness == pytest.approx(0.8)
    assert metrics.critical_gaps == 1


def test_not_applicable_answers_leave_the_denominator(taxonomy, answers):
    answers["Q3"] = _answer("Q3", "NA")

    metrics = calculate_overall_metrics(taxonomy, answers)

    gov = metrics.domain_metrics[0]
    assert gov.subcategory_metrics[1].applicable_questions == 0
    assert gov.score == pytest.approx(0.675)
    assert metrics.applicable_questions == 3


def test_nist_and_ownership_breakdowns(taxonomy, answers):
    metrics = calculate_overall_metrics(taxonomy, answers)

    by_function = {m.function: m for m in metrics.nist_function_metrics}
    assert list(by_function) == ["GOVERN", "MAP", "MEASURE", "MANAGE"]
    assert by_function["GOVERN"].score == pytest.approx(0.45)
    assert by_function["GOVERN"].domain_count == 1
    assert by_function["MANAGE"].coverage == 0.0
    assert by_function["MAP"].total_questions == 0

    by_owner = {m.ownership_type: m for m in metrics.ownership_metrics}
    assert by_owner["Executive"].score == pytest.approx(1.0)
    assert by_owner["GRC"].score == pytest.approx(0.35)
    assert by_owner["Engineering"].coverage == pytest.approx(0.5)


def test_coverage_is_capped(taxonomy, answers):
    metrics = calculate_overall_metrics(taxonomy, answers, active_questions_count=2)

    assert metrics.coverage == 1.0
    assert metrics.total_questions == 2


def test_critical_gaps_sorted_critical_first(taxonomy, answers):
    gaps = get_critical_gaps(taxonomy, answers)

    assert [g.question_id for g in gaps] == ["Q2", "Q4"]
    assert gaps[0].criticality == "Critical"
    assert gaps[0].effective_score == pytest.approx(0.35)
    assert gaps[1].response == "Não respondido"
    assert gaps[1].evidence_ok == "N/A"
    assert gaps[1].nist_function == "MANAGE"


def test_framework_coverage_uses_authoritative_names(taxonomy, answers):
    coverage = {c.framework: c for c in get_framework_coverage(taxonomy, answers)}

    assert set(coverage) == {
        "NIST AI RMF",
        "ISO/IEC 27001 / 27002",
        "LGPD",
        "OWASP Top 10 for LLM Applications",
    }
    nist = coverage["NIST AI RMF"]
    assert nist.total_questions == 2
    assert nist.answered_questions == 2
    assert nist.average_score == pytest.approx(0.675)
    assert coverage["OWASP Top 10 for LLM Applications"].coverage == 0.0
    assert next(iter(coverage)) == "NIST AI RMF"


def test_snapshot_captures_headline_figures(taxonomy, answers):
    metrics = calculate_overall_metrics(taxonomy, answers)

    snapshot = build_snapshot(metrics, get_framework_coverage(taxonomy, answers), snapshot_type="manual")

    assert snapshot.snapshot_type == "manual"
    assert snapshot.snapshot_date == datetime.now(timezone.utc).date()
    assert snapshot.maturity_level == 3
    assert snapshot.answered_questions == 3
    assert [d["domain_id"] for d in snapshot.domain_metrics] == ["GOV", "MAN"]
    assert snapshot.framework_metrics[0]["framework"] == "NIST AI RMF"

import re
from collections.abc import Iterable

# Ordered: the first matching pattern decides the framework id.
FRAMEWORK_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"NIST\s*AI\s*RMF", re.IGNORECASE), "NIST_AI_RMF"),
    (re.compile(r"ISO\s*/?\s*IEC?\s*27001", re.IGNORECASE), "ISO_27001_27002"),
    (re.compile(r"ISO\s*27001", re.IGNORECASE), "ISO_27001_27002"),
    (re.compile(r"ISO\s*27002", re.IGNORECASE), "ISO_27001_27002"),
    # 42001 has no framework of its own yet and is tracked with 27001.
    (re.compile(r"ISO\s*/?\s*IEC?\s*42001", re.IGNORECASE), "ISO_27001_27002"),
    (re.compile(r"ISO\s*/?\s*IEC?\s*23894", re.IGNORECASE), "ISO_23894"),
    (re.compile(r"ISO\s*23894", re.IGNORECASE), "ISO_23894"),
    (re.compile(r"LGPD", re.IGNORECASE), "LGPD"),
    (re.compile(r"NIST\s*SSDF", re.IGNORECASE), "NIST_SSDF"),
    (re.compile(r"CSA", re.IGNORECASE), "CSA_AI"),
    (re.compile(r"OWASP\s*(Top\s*10\s*(for\s*)?)?LLM", re.IGNORECASE), "OWASP_LLM"),
    (re.compile(r"OWASP\s*(Top\s*10\s*)?(for\s*)?API", re.IGNORECASE), "OWASP_API"),
    (re.compile(r"OWASP\s*API", re.IGNORECASE), "OWASP_API"),
]

# The only framework names exposed as analysis dimensions.
AUTHORITATIVE_FRAMEWORKS: tuple[str, ...] = (
    "NIST AI RMF",
    "ISO/IEC 27001 / 27002",
    "LGPD",
    "ISO/IEC 23894",
    "NIST SSDF",
    "CSA AI Security",
    "OWASP Top 10 for LLM Applications",
    "OWASP API Security Top 10",
)


def map_question_framework_to_id(reference: str) -> str | None:
    """Map a free-text reference such as "NIST AI RMF GOVERN 1.1" to a framework id."""
    for pattern, framework_id in FRAMEWORK_PATTERNS:
        if pattern.search(reference):
            return framework_id
    return None


def question_belongs_to_frameworks(question_frameworks: Iterable[str], selected_ids: Iterable[str]) -> bool:
    selected = set(selected_ids)
    if not selected:
        return False
    return any(map_question_framework_to_id(reference) in selected for reference in question_frameworks)


def normalize_framework_name(reference: str) -> str | None:
    """
    Group a free-text reference under one of AUTHORITATIVE_FRAMEWORKS.

    Returns None for everything else (MITRE ATLAS, SOC 2, EU AI Act,
    ISO/IEC 42001, BACEN/CMN, ...), which stays out of coverage reports.
    """
    lower = reference.lower()

    if "nist ai rmf" in lower or "ai rmf" in lower:
        return "NIST AI RMF"
    if any(name in lower for name in ("iso 27001", "iso/iec 27001", "iso 27002", "iso/iec 27002")):
        return "ISO/IEC 27001 / 27002"
    if "lgpd" in lower:
        return "LGPD"
    if "iso/iec 23894" in lower or "iso 23894" in lower:
        return "ISO/IEC 23894"
    if "ssdf" in lower:
        return "NIST SSDF"
    if "csa" in lower:
        return "CSA AI Security"
    if "owasp" in lower and "llm" in lower:
        return "OWASP Top 10 for LLM Applications"
    if "owasp" in lower and "api" in lower:
        return "OWASP API Security Top 10"
    return None


def unknown_framework_ids(requested: Iterable[str], known: Iterable[str]) -> list[str]:
    known_ids = set(known)
    return sorted({framework_id for framework_id in requested if framework_id not in known_ids})

"""Lightweight rollups of a processed document for the Streamlit app.

Import-light on purpose; works on ProcessResult or its dict form.
"""
from typing import Any, Dict, List

from .contracts import Issue, ProcessResult

# longest prefix wins, so "long-contribution" beats "long"
RULE_FAMILIES = (
    "critical-format-error",
    "max-products-per-contribution",
    "long-contribution",
    "exact-mismatch",
    "max-entries",
    "duplicate",
    "missing",
    "unknown",
    "order",
    "short",
    "long",
    "pii",
)


def rule_family(issue_id: str) -> str:
    for family in sorted(RULE_FAMILIES, key=len, reverse=True):
        if issue_id == family or issue_id.startswith(family + "-"):
            return family
    return "other"


def summarize_issues(issues: List[Issue]) -> Dict[str, Any]:
    """Counts per severity and per rule family."""
    severities = {"red": 0, "yellow": 0}
    families: Dict[str, int] = {}
    for issue in issues:
        severities[issue.severity] = severities.get(issue.severity, 0) + 1
        fam = rule_family(issue.id)
        families[fam] = families.get(fam, 0) + 1
    return {"total": len(issues), "by_severity": severities, "by_rule": families}


def summarize_run(result: ProcessResult) -> Dict[str, Any]:
    sections = [s.id for s in result.detected_sections]
    unknown = sum(1 for i in result.issues if rule_family(i.id) == "unknown")
    low_conf = [p for p in result.publications if p.confidence < 0.7]
    timings = result.meta.get("t_ms", {}) if isinstance(result.meta.get("t_ms"), dict) else {}
    return {
        "status": result.overall_status,
        "sections_detected": len(sections),
        "distinct_sections": len(set(sections)),
        "unknown_headings": unknown,
        "publications": len(result.publications),
        "publications_low_confidence": len(low_conf),
        "low_confidence_text": result.low_confidence,
        "issues": summarize_issues(result.issues),
        "t_ms": dict(timings),
    }

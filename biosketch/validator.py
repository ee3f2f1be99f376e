"""
Biosketch compliance validator.

Segments raw document text against a template, extracts structured entities per
section, and evaluates the template rules. Findings are returned in discovery
order; severity is fixed where each finding is raised.

Public API:
    validate_template(text: str, template: TemplateConfig) -> ValidationOutcome

Pure and deterministic. No I/O.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from .contracts import (
    BiosketchData,
    DetectedSection,
    Issue,
    SectionKind,
    TemplateConfig,
    TemplateSection,
    ValidationOutcome,
)
from .extractors import Extraction, extract_section
from .headings import HeadingResolver
from .segmenter import detect_sections

SNIPPET_CHARS = 140
EXACT_SNIPPET_CHARS = 200
MIN_ANCHORS = 3

# Each group counts once toward the pre-flight check.
ANCHOR_GROUPS: Tuple[Tuple[SectionKind, ...], ...] = (
    (SectionKind.PROFESSIONAL_PREPARATION,),
    (SectionKind.APPOINTMENTS,),
    (SectionKind.PRODUCTS_RELATED, SectionKind.OTHER_PRODUCTS),
    (SectionKind.CONTRIBUTIONS,),
)

# ---------------- PII patterns ----------------
_PII_PATTERNS = [
    ("pii-email", "Personal Email", re.compile(r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b")),
    ("pii-phone", "Phone Number", re.compile(r"(?:\(\d{3}\)\s*|\b\d{3}-)\d{3}-\d{4}\b")),
    (
        "pii-address",
        "Home Address",
        re.compile(
            r"\b\d{1,6}\s+(?:[A-Za-z]+\s+){1,4}(?:street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|court|ct|lane|ln)\b",
            re.IGNORECASE,
        ),
    ),
    ("pii-marital", "Marital Status", re.compile(r"\b(?:married|single|divorced|widowed)\b", re.IGNORECASE)),
    ("pii-hobbies", "Hobbies", re.compile(r"\b(?:hobbies|hobby|interests|pastimes)\b", re.IGNORECASE)),
]

_RE_WS = re.compile(r"\s+")


def _collapse(s: str) -> str:
    return _RE_WS.sub(" ", s or "").strip()


# ---------------- Rules ----------------
def pre_flight_check(sections: List[DetectedSection]) -> Optional[Issue]:
    found = {SectionKind.from_id(s.id) for s in sections}
    count = sum(1 for group in ANCHOR_GROUPS if any(kind in found for kind in group))
    if count >= MIN_ANCHORS:
        return None
    return Issue(
        id="critical-format-error",
        severity="red",
        title="Critical Format Error",
        description=(
            "This document does not appear to use the NIH Biographical Sketch Common Form template. "
            "Validation cannot proceed."
        ),
        recommendation=(
            "Rebuild this CV using the standard template. The official SciENcv tool "
            "(https://www.ncbi.nlm.nih.gov/sciencv/) is the recommended way to generate a compliant file."
        ),
    )


def check_pii(text: str) -> List[Issue]:
    issues: List[Issue] = []
    for pii_id, name, pattern in _PII_PATTERNS:
        for m in pattern.finditer(text or ""):
            issues.append(Issue(
                id=pii_id,
                severity="red",
                title="Critical Error: Potential PII Detected",
                description=f"The document may contain prohibited personal information: {name}.",
                evidence_snippet=m.group(0),
                recommendation=(
                    "Remove all personal contact information, such as home address, "
                    "personal email, or phone numbers, from the document."
                ),
            ))
    return issues


def check_missing(template: TemplateConfig, by_id: Dict[str, List[DetectedSection]]) -> List[Issue]:
    return [
        Issue(
            id=f"missing-{rule.id}",
            severity="red",
            title=f"Missing required section: {rule.canonical_heading}",
            description="This required NIH biosketch section was not detected.",
            section=rule.canonical_heading,
            recommendation=f'Add the section "{rule.canonical_heading}" and include the required content.',
        )
        for rule in template.required_sections
        if rule.id not in by_id
    ]


def check_duplicates(template: TemplateConfig, by_id: Dict[str, List[DetectedSection]]) -> List[Issue]:
    issues: List[Issue] = []
    for section_id, matches in by_id.items():
        rule = template.section(section_id)
        if len(matches) < 2 or (rule is not None and rule.allow_duplicates):
            continue
        canonical = matches[0].canonical_heading or section_id
        issues.append(Issue(
            id=f"duplicate-{section_id}",
            severity="yellow",
            title=f"Duplicate section: {canonical}",
            description="This section appears more than once.",
            section=canonical,
            evidence_snippet=" | ".join(m.original_heading for m in matches),
            recommendation="Merge or remove duplicate sections.",
        ))
    return issues


def check_order(template: TemplateConfig, sections: List[DetectedSection]) -> List[Issue]:
    order_index = {sid: idx for idx, sid in enumerate(template.order)}
    exempt = {s.id for s in template.all_sections if s.order_exempt}
    issues: List[Issue] = []
    last = -1
    for section in sections:
        idx = order_index.get(section.id)
        if idx is None or section.id in exempt:
            continue
        if idx < last:
            issues.append(Issue(
                id=f"order-{section.id}-{idx}",
                severity="yellow",
                title=f"Out-of-order section: {section.canonical_heading}",
                description="This section appears before an expected earlier section.",
                section=section.canonical_heading,
                recommendation="Reorder sections to match the NIH biosketch template.",
            ))
        last = max(last, idx)
    return issues


def check_lengths(section: DetectedSection, rule: TemplateSection) -> List[Issue]:
    issues: List[Issue] = []
    length = len(section.content.strip())
    if rule.min_chars and length < rule.min_chars:
        issues.append(Issue(
            id=f"short-{section.id}-{section.start_line}",
            severity="yellow",
            title=f"Suspiciously short section: {section.canonical_heading}",
            description=(
                f"Content length of {length} characters appears shorter than the recommended minimum "
                f'of {rule.min_chars} for "{section.canonical_heading}".'
            ),
            section=section.canonical_heading,
            evidence_snippet=section.content[:SNIPPET_CHARS] or None,
            recommendation="Confirm the section is complete and add missing detail.",
        ))
    if rule.max_chars and length > rule.max_chars:
        issues.append(Issue(
            id=f"long-{section.id}-{section.start_line}",
            severity="yellow",
            title=f"Section may be too long: {section.canonical_heading}",
            description=(
                f"Content length of {length} characters exceeds the maximum of {rule.max_chars} "
                f'for "{section.canonical_heading}".'
            ),
            section=section.canonical_heading,
            evidence_snippet=section.content[:SNIPPET_CHARS] or None,
            recommendation="Revise and shorten the content to meet the NIH guideline.",
        ))
    return issues


def contains_exact_text(content: str, exact_text: str) -> bool:
    return _collapse(exact_text) in _collapse(content)


def check_exact_text(section: DetectedSection, rule: TemplateSection) -> List[Issue]:
    if not rule.exact_text or contains_exact_text(section.content, rule.exact_text):
        return []
    return [Issue(
        id=f"exact-mismatch-{section.id}-{section.start_line}",
        severity="red",
        title=f"Incorrect statement: {section.canonical_heading}",
        description=f'The content for "{section.canonical_heading}" does not match the required statement.',
        section=section.canonical_heading,
        evidence_snippet=section.content[:EXACT_SNIPPET_CHARS] or None,
        recommendation=f'Replace the content with the exact required text: "{rule.exact_text}"',
    )]


def check_unknown_headings(unknown: List[str]) -> List[Issue]:
    return [
        Issue(
            id=f"unknown-{heading}",
            severity="yellow",
            title="Unknown heading detected",
            description="Heading was not recognized in the NIH template.",
            evidence_snippet=heading,
            recommendation="Verify the heading or map it to a template section.",
        )
        for heading in unknown
    ]


def _apply(data: BiosketchData, ex: Extraction) -> None:
    if ex.kind is SectionKind.PERSONAL_STATEMENT:
        data.personal_statement = ex.value
    elif ex.kind is SectionKind.PROFESSIONAL_PREPARATION:
        data.professional_preparation = ex.value
    elif ex.kind is SectionKind.CONTRIBUTIONS:
        data.contributions_to_science = ex.value
    elif ex.kind is SectionKind.PRODUCTS_RELATED:
        data.products_related_to_project = ex.value
    elif ex.kind is SectionKind.OTHER_PRODUCTS:
        data.other_significant_products = ex.value


# ---------------- Core API ----------------
def validate_template(text: str, template: TemplateConfig, resolver: Optional[HeadingResolver] = None) -> ValidationOutcome:
    seg = detect_sections(text or "", template, resolver)
    sections = seg.sections

    critical = pre_flight_check(sections)
    if critical is not None:
        return ValidationOutcome(
            issues=[critical],
            detected_sections=sections,
            biosketch_data=BiosketchData(),
            unknown_headings=seg.unknown_headings,
        )

    by_id: Dict[str, List[DetectedSection]] = {}
    for section in sections:
        by_id.setdefault(section.id, []).append(section)
    ruled = [(s, template.section(s.id)) for s in sections]
    ruled = [(s, r) for s, r in ruled if r is not None]

    issues: List[Issue] = []
    issues.extend(check_pii(text))
    issues.extend(check_missing(template, by_id))
    issues.extend(check_duplicates(template, by_id))
    issues.extend(check_order(template, sections))
    for section, rule in ruled:
        issues.extend(check_lengths(section, rule))
    for section, rule in ruled:
        issues.extend(check_exact_text(section, rule))

    # entry-count bounds come from the extractors of list-like sections
    data = BiosketchData()
    for section, rule in ruled:
        ex = extract_section(section, rule)
        issues.extend(ex.issues)
        _apply(data, ex)

    issues.extend(check_unknown_headings(seg.unknown_headings))

    cert_rule = next((r for r in template.all_sections if r.kind is SectionKind.CERTIFICATION), None)
    if cert_rule is not None and cert_rule.exact_text:
        data.certification = any(
            contains_exact_text(s.content, cert_rule.exact_text) for s in by_id.get(cert_rule.id, [])
        )

    return ValidationOutcome(
        issues=issues,
        detected_sections=sections,
        biosketch_data=data,
        unknown_headings=seg.unknown_headings,
    )

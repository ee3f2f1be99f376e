"""Per-section structured entity extraction.

Every parser here is total: unparseable input yields an empty result, never an
exception. ``EXTRACTORS`` binds each ``SectionKind`` to its parser; kinds without
structured data (and GENERIC template ids) map to ``_raw_only``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .contracts import (
    ContributionToScience,
    DetectedSection,
    Issue,
    ProfessionalPreparation,
    Publication,
    SectionKind,
    TemplateSection,
)
from .publications import extract_publications

MAX_PRODUCTS_PER_CONTRIBUTION = 4
SNIPPET_CHARS = 140

# ---------------- Patterns ----------------
_RE_DATE_RANGE = re.compile(r"(\d{2}/\d{4})\s*[-–]\s*(\d{2}/\d{4})")
_RE_DATE_RANGE_FULL = re.compile(r"^\s*(\d{2}/\d{4})\s*[-–]\s*(\d{2}/\d{4})\s*$")
_RE_DATE_FULL = re.compile(r"^\s*(\d{2}/\d{4})\s*$")
_RE_SPACE_COLUMNS = re.compile(r"\s{2,}")
_RE_TRAILING_SEP = re.compile(r"[\s,;:|–-]+$")
_RE_LEADING_SEP = re.compile(r"^[\s,;:|–-]+")
_RE_ENTRY_SPLIT = re.compile(r"\n\s*(?=\d+\.\s)")
_RE_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_RE_LEADING_NUMBER = re.compile(r"^\d+\.\s*")
_RE_LIST_MARK = re.compile(r"^(?:\d+[).]|[-*•])\s+")
_RE_YEAR_RANGE = re.compile(r"(\d{4})\s*[-–]\s*(\d{4}|Present|Current)", re.IGNORECASE)
_RE_HONOR_YEAR = re.compile(r"^(\d{4})\b\s*(?:[-–:]\s*)?(.*)$")
_RE_WS = re.compile(r"\s+")

_HEADER_LABELS = {
    "name": re.compile(r"^name\b", re.IGNORECASE),
    "pid": re.compile(r"^(?:pid|era commons user name|era commons|orcid)\b", re.IGNORECASE),
    "position_title": re.compile(r"^(?:position title|title)\b", re.IGNORECASE),
    "organization": re.compile(r"^(?:organization|organization/location|location)\b", re.IGNORECASE),
}


def _lines(content: str) -> List[str]:
    return [ln.strip() for ln in (content or "").splitlines() if ln.strip()]


# ---------------- Professional preparation ----------------
def _split_columns(line: str) -> List[str]:
    if "\t" in line:
        cols = line.split("\t")
    elif line.strip().startswith("|"):
        cols = line.strip().strip("|").split("|")
    else:
        cols = _RE_SPACE_COLUMNS.split(line)
    return [c.strip() for c in cols if c.strip()]


def _from_columns(line: str) -> Optional[ProfessionalPreparation]:
    cols = _split_columns(line)
    if len(cols) < 4:
        return None
    date_idx = -1
    start = end = ""
    after: List[str] = []
    for i, col in enumerate(cols):
        m = _RE_DATE_RANGE_FULL.match(col)
        if m:
            date_idx, start, end = i, m.group(1), m.group(2)
            after = cols[i + 1:]
            break
    if date_idx < 0:
        # start and completion dates in adjacent columns
        for i in range(len(cols) - 1):
            a, b = _RE_DATE_FULL.match(cols[i]), _RE_DATE_FULL.match(cols[i + 1])
            if a and b:
                date_idx, start, end = i, a.group(1), b.group(1)
                after = cols[i + 2:]
                break
    if date_idx < 2:
        return None
    institution = cols[0]
    degree = cols[date_idx - 1]
    location = ", ".join(cols[1:date_idx - 1])
    if not location and "," in institution:
        institution, _, location = institution.partition(",")
    return ProfessionalPreparation(
        institution=institution.strip(),
        location=location.strip(),
        degree=degree,
        start_date=start,
        completion_date=end,
        field_of_study=" ".join(after),
    )


def _from_commas(line: str) -> Optional[ProfessionalPreparation]:
    m = _RE_DATE_RANGE.search(line)
    if not m:
        return None
    before = _RE_TRAILING_SEP.sub("", line[: m.start()])
    parts = [p.strip() for p in before.split(",") if p.strip()]
    if len(parts) < 2:
        return None
    return ProfessionalPreparation(
        institution=parts[0],
        location=", ".join(parts[1:-1]),
        degree=parts[-1],
        start_date=m.group(1),
        completion_date=m.group(2),
        field_of_study=_RE_LEADING_SEP.sub("", line[m.end():]).strip(),
    )


def _start_key(record: ProfessionalPreparation) -> Tuple[int, int]:
    month, _, year = record.start_date.partition("/")
    try:
        return int(year), int(month)
    except ValueError:
        return 0, 0


def parse_professional_preparation(content: str) -> List[ProfessionalPreparation]:
    """Education/training rows, most recent start date first.

    Each line is read as columns (tab, pipe, or runs of two or more spaces) and
    otherwise as comma-separated text around an ``MM/YYYY - MM/YYYY`` range. Rows
    missing institution, degree or either date are dropped. The sort is stable, so
    rows with the same start month keep their document order.
    """
    records: List[ProfessionalPreparation] = []
    for line in _lines(content):
        rec = _from_columns(line) or _from_commas(line)
        if rec and rec.institution and rec.degree and rec.start_date and rec.completion_date:
            records.append(rec)
    return sorted(records, key=_start_key, reverse=True)


# ---------------- Contributions ----------------
def split_contribution_entries(content: str) -> List[Tuple[str, str]]:
    """Numbered entries as ``(description, products_text)``.

    The first blank-line paragraph of an entry, minus its number, is the
    description; the remaining paragraphs hold its citations.
    """
    out: List[Tuple[str, str]] = []
    for entry in (e.strip() for e in _RE_ENTRY_SPLIT.split(content or "")):
        if not entry:
            continue
        parts = _RE_PARAGRAPH_SPLIT.split(entry)
        description = _RE_WS.sub(" ", _RE_LEADING_NUMBER.sub("", parts[0])).strip()
        out.append((description, "\n\n".join(parts[1:])))
    return out


def parse_contributions(content: str, rules: TemplateSection) -> Tuple[List[ContributionToScience], List[Issue]]:
    contributions: List[ContributionToScience] = []
    issues: List[Issue] = []
    entries = split_contribution_entries(content)

    if rules.max_entries and len(entries) > rules.max_entries:
        issues.append(Issue(
            id=f"max-entries-{rules.id}",
            severity="yellow",
            title=f"Too many entries in {rules.canonical_heading}",
            description=(
                f"Found {len(entries)} entries, but the maximum is {rules.max_entries}. "
                f"Only the first {rules.max_entries} will be processed."
            ),
            section=rules.canonical_heading,
            recommendation=f"Reduce the number of entries to {rules.max_entries}.",
        ))
        entries = entries[: rules.max_entries]

    for description, products_text in entries:
        n = len(contributions)

        if rules.max_chars_per_entry and len(description) > rules.max_chars_per_entry:
            issues.append(Issue(
                id=f"long-contribution-{rules.id}-{n}",
                severity="yellow",
                title="Contribution description may be too long",
                description=(
                    f"The description for contribution {n + 1} has {len(description)} characters, "
                    f"exceeding the limit of {rules.max_chars_per_entry}."
                ),
                section=rules.canonical_heading,
                evidence_snippet=description[:SNIPPET_CHARS] + "...",
                recommendation="Shorten the contribution description.",
            ))

        products = extract_publications(products_text)
        if len(products) > MAX_PRODUCTS_PER_CONTRIBUTION:
            issues.append(Issue(
                id=f"max-products-per-contribution-{rules.id}-{n}",
                severity="yellow",
                title="Too many products for contribution",
                description=(
                    f"Contribution {n + 1} has {len(products)} products, "
                    f"but the maximum is {MAX_PRODUCTS_PER_CONTRIBUTION}."
                ),
                section=rules.canonical_heading,
                recommendation=f"Reduce the number of products for this contribution to {MAX_PRODUCTS_PER_CONTRIBUTION}.",
            ))
        contributions.append(ContributionToScience(
            description=description,
            products=tuple(products[:MAX_PRODUCTS_PER_CONTRIBUTION]),
        ))
    return contributions, issues


# ---------------- Products ----------------
def parse_products(content: str, rules: TemplateSection) -> Tuple[List[Publication], List[Issue]]:
    pubs = extract_publications(content)
    issues: List[Issue] = []
    if rules.max_entries and len(pubs) > rules.max_entries:
        issues.append(Issue(
            id=f"max-entries-{rules.id}",
            severity="yellow",
            title=f"Too many products in {rules.canonical_heading}",
            description=f"Found {len(pubs)} products, but the maximum is {rules.max_entries}.",
            section=rules.canonical_heading,
            recommendation=f"Reduce the number of products to {rules.max_entries}.",
        ))
        pubs = pubs[: rules.max_entries]
    return pubs, issues


# ---------------- Dispatch ----------------
@dataclass
class Extraction:
    kind: SectionKind
    value: Any = None
    issues: List[Issue] = field(default_factory=list)


def _personal_statement(section: DetectedSection, rules: TemplateSection) -> Extraction:
    return Extraction(SectionKind.PERSONAL_STATEMENT, section.content.strip())


def _professional_preparation(section: DetectedSection, rules: TemplateSection) -> Extraction:
    return Extraction(SectionKind.PROFESSIONAL_PREPARATION, parse_professional_preparation(section.content))


def _contributions(section: DetectedSection, rules: TemplateSection) -> Extraction:
    value, issues = parse_contributions(section.content, rules)
    return Extraction(SectionKind.CONTRIBUTIONS, value, issues)


def _products(section: DetectedSection, rules: TemplateSection) -> Extraction:
    value, issues = parse_products(section.content, rules)
    return Extraction(rules.kind, value, issues)


def _raw_only(section: DetectedSection, rules: TemplateSection) -> Extraction:
    return Extraction(rules.kind)


EXTRACTORS: Dict[SectionKind, Callable[[DetectedSection, TemplateSection], Extraction]] = {
    SectionKind.FORM_HEADER: _raw_only,
    SectionKind.SUPPLEMENT_HEADER: _raw_only,
    SectionKind.PROFESSIONAL_PREPARATION: _professional_preparation,
    SectionKind.APPOINTMENTS: _raw_only,
    SectionKind.PRODUCTS_RELATED: _products,
    SectionKind.OTHER_PRODUCTS: _products,
    SectionKind.CERTIFICATION: _raw_only,
    SectionKind.PERSONAL_STATEMENT: _personal_statement,
    SectionKind.HONORS: _raw_only,
    SectionKind.CONTRIBUTIONS: _contributions,
    SectionKind.GENERIC: _raw_only,
}


def extract_section(section: DetectedSection, rules: TemplateSection) -> Extraction:
    return EXTRACTORS[rules.kind](section, rules)


# ---------------- Draft helpers: appointments, honors, header ----------------
def parse_appointments(content: str) -> List[Dict[str, str]]:
    """Appointment rows ``{"timeframe", "position"}``, most recent first."""
    lines = [_RE_LIST_MARK.sub("", ln) for ln in _lines(content)]
    entries: List[str] = []
    current = ""
    for line in lines:
        if _RE_YEAR_RANGE.search(line) and current:
            entries.append(current.strip())
            current = line
            continue
        current = f"{current} {line}" if current else line
    if current:
        entries.append(current.strip())

    def _end(value: str) -> int:
        if value.lower() in ("present", "current"):
            return 9999
        return int(value) if value.isdigit() else 0

    parsed = []
    for index, entry in enumerate(entries):
        m = _RE_YEAR_RANGE.search(entry)
        start, end = (m.group(1), m.group(2)) if m else ("", "")
        rest = _RE_WS.sub(" ", entry.replace(m.group(0), "", 1)).strip() if m else entry
        parsed.append((start, end, rest, index))
    parsed.sort(key=lambda p: (-_end(p[1]), -(int(p[0]) if p[0] else 0), p[3]))
    return [
        {"timeframe": f"{start} - {end}" if start and end else "", "position": rest}
        for start, end, rest, _ in parsed
    ]


def parse_honors(content: str) -> List[Dict[str, str]]:
    """Honor rows ``{"year", "honor"}`` in document order."""
    entries: List[Dict[str, str]] = []
    year = honor = ""
    for line in (_RE_LIST_MARK.sub("", ln) for ln in _lines(content)):
        m = _RE_HONOR_YEAR.match(line)
        if m:
            if year or honor:
                entries.append({"year": year.strip(), "honor": honor.strip()})
            year, honor = m.group(1), m.group(2).strip()
            continue
        honor = f"{honor} {line}" if honor else line
    if year or honor:
        entries.append({"year": year.strip(), "honor": honor.strip()})
    return entries


def extract_header_info(content: str) -> Dict[str, str]:
    """Label:value lookup (Name, PID, Position Title, Organization) in a header block."""
    info = {key: "" for key in _HEADER_LABELS}
    for line in _lines(content):
        for key, label in _HEADER_LABELS.items():
            if info[key] or not label.match(line):
                continue
            _, sep, value = line.partition(":")
            if not sep:
                _, sep, value = line.partition(" - ")
            info[key] = value.strip() if sep else ""
            break
    return info

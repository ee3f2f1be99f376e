"""
Corrected-draft reconstruction.

Section inclusion, order and the structured-versus-raw fallback are decided once,
in ``plan_draft``, as a list of typed blocks per section. The plan is rendered
twice: ``render_markdown`` (plain structured text that re-segments to the same
section ids) and ``render_html`` (rich markup ready to paste into SciENcv).

Source preference per section:
- header: enhancer payload, then Name/PID/Title/Organization label lines
- professional preparation: parsed records, then rows recovered from raw text
- products / contributions: parsed records (payload first for contributions)
- honors: parsed year rows, then payload rows
- everything: raw paragraphs, then a "TODO: Add <Section>" placeholder

Public API:
    generate_corrected_draft(sections, template, biosketch_data=None, llm_structured_data=None) -> CorrectedDraft

Pure and deterministic. No I/O.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .contracts import (
    BiosketchData,
    ContributionToScience,
    CorrectedDraft,
    DetectedSection,
    ProfessionalPreparation,
    Publication,
    SectionKind,
    TemplateConfig,
)
from .extractors import (
    MAX_PRODUCTS_PER_CONTRIBUTION,
    extract_header_info,
    extract_section,
    parse_appointments,
    parse_honors,
)
from .publications import format_citation, parse_citation
from .validator import contains_exact_text

COMMON_FORM_TITLE = "NIH Biographical Sketch Common Form"
SUPPLEMENT_TITLE = "NIH Biographical Sketch Supplement"
COMMON_FORM_OMB = "OMB No. 3145-0279"
SUPPLEMENT_OMB = "OMB No. 0925-0001"
SIGNATURE_DATE = "[Date]"
CORE_CERTIFICATION = "I certify that the information provided is current, accurate, and complete."

PREP_COLUMNS = (
    "INSTITUTION AND LOCATION",
    "DEGREE",
    "Start Date (MM/YYYY)",
    "Completion Date (MM/YYYY)",
    "FIELD OF STUDY",
)

# (key in header info, label, placeholder)
HEADER_FIELDS = (
    ("name", "Name", "[Name]"),
    ("pid", "PID (ORCID)", "[PID]"),
    ("position_title", "Position Title", "[Position Title]"),
    ("organization", "Organization/Location", "[Organization/Location]"),
)

DEFAULT_TITLES = {
    SectionKind.PROFESSIONAL_PREPARATION: "Professional Preparation",
    SectionKind.APPOINTMENTS: "Appointments and Positions",
    SectionKind.PRODUCTS_RELATED: "Products Closely Related to the Proposed Project",
    SectionKind.OTHER_PRODUCTS: "Other Significant Products",
    SectionKind.CERTIFICATION: "Certification",
    SectionKind.PERSONAL_STATEMENT: "Personal Statement",
    SectionKind.HONORS: "Honors",
    SectionKind.CONTRIBUTIONS: "Contributions to Science",
}

# ---------------- Patterns ----------------
_RE_WS = re.compile(r"\s+")
_RE_PARAGRAPHS = re.compile(r"\n{2,}")
_RE_SPACE_COLUMNS = re.compile(r"\s{2,}")
_RE_NOT_DATE = re.compile(r"[^0-9/]")
_RE_NOT_DATE_TEXT = re.compile(r"[^0-9/\s-]")
_RE_PREP_RANGE = re.compile(r"(\d{2}/\d{4})\s*-\s*(\d{2}/\d{4})")
_RE_PREP_LOOSE = re.compile(r"(\d{2}/\d{4}).*?(\d{2}/\d{4})")
_RE_FIELD_JUNK = re.compile(r"[^A-Za-z0-9,.;:/() -]+")
_RE_DEGREE_WORD = re.compile(
    r"\b(?:phd|dphil|md|dds|dmd|dvm|mph|ms|msc|ma|mba|bs|ba|bsc|bfa|beng|jd|pharmd|"
    r"postdoc|postdoctoral|fellowship|doctor|master|bachelor)\b",
    re.IGNORECASE,
)
_RE_INSTITUTION_WORD = re.compile(r"\b(?:university|college|institute|school|center|centre|hospital)\b", re.IGNORECASE)
_RE_CERT_NOISE = re.compile(r"^(?:certified by\b|nih biographical sketch\b|omb no\.)", re.IGNORECASE)
_RE_INLINE_STOP = re.compile(
    r"^(?:personal statement|contributions? to science|products|appointments and positions|"
    r"professional preparation|certification|honors)\b",
    re.IGNORECASE,
)


# ---------------- Plan blocks ----------------
@dataclass(frozen=True)
class Paragraphs:
    text: str


@dataclass(frozen=True)
class Placeholder:
    text: str


@dataclass(frozen=True)
class Table:
    columns: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]


@dataclass(frozen=True)
class TimeframeRows:
    rows: Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class ItemList:
    items: Tuple[str, ...]
    numbered: bool = True


@dataclass(frozen=True)
class Contributions:
    entries: Tuple[Tuple[str, Tuple[str, ...]], ...]


@dataclass(frozen=True)
class Footer:
    text: str


Block = Union[Paragraphs, Placeholder, Table, TimeframeRows, ItemList, Contributions, Footer]


@dataclass
class DraftSection:
    title: str
    blocks: List[Block] = field(default_factory=list)


@dataclass
class DraftPart:
    key: str
    title: str
    omb: str
    sections: List[DraftSection] = field(default_factory=list)


@dataclass
class DraftPlan:
    header: List[Tuple[str, str]]
    parts: List[DraftPart]


# ---------------- Small helpers ----------------
def _lines(content: str) -> List[str]:
    return [ln.strip() for ln in (content or "").splitlines() if ln.strip()]


def _collapse(s: str) -> str:
    return _RE_WS.sub(" ", s or "").strip()


def _placeholder(title: str) -> Placeholder:
    return Placeholder(f"TODO: Add {title}")


def _raw_or_placeholder(content: str, title: str) -> Block:
    return Paragraphs(content) if content.strip() else _placeholder(title)


def _title(template: TemplateConfig, kind: SectionKind) -> str:
    rule = template.section(kind.value)
    return rule.canonical_heading if rule is not None else DEFAULT_TITLES[kind]


def normalize_certification_text(content: str, exact_text: Optional[str] = None) -> str:
    """Clean a certification block for the draft.

    The exact statement wins when it is present (or when there is no content at
    all). Otherwise signature, form-title and OMB lines are dropped, a statement
    pasted twice is cut back to its first copy and repeated lines are removed.
    """
    trimmed = (content or "").strip()
    if exact_text and (not trimmed or contains_exact_text(trimmed, exact_text)):
        return exact_text
    if not trimmed:
        return ""
    lines = [ln for ln in _lines(trimmed) if not _RE_CERT_NOISE.match(ln)]
    normalized = "\n".join(lines)
    first = normalized.find(CORE_CERTIFICATION)
    if first != -1:
        second = normalized.find(CORE_CERTIFICATION, first + len(CORE_CERTIFICATION))
        if second != -1:
            return normalized[first:second].strip()
    seen = set()
    unique: List[str] = []
    for line in lines:
        if line not in seen:
            seen.add(line)
            unique.append(line)
    return "\n".join(unique)


def split_inline_section(content: str, heading: str) -> Tuple[str, str]:
    """Cut an embedded ``heading`` block (e.g. Honors inside a personal statement).

    Returns ``(main, extracted)``; ``extracted`` runs up to the next known heading.
    When the heading line is absent the content comes back untouched.
    """
    if not (content or "").strip():
        return content, ""
    lines = content.splitlines()
    target = heading.strip().lower()
    index = next((i for i, ln in enumerate(lines) if ln.strip().lower() == target), -1)
    if index == -1:
        return content, ""
    end = next((i for i in range(index + 1, len(lines)) if _RE_INLINE_STOP.match(lines[i].strip())), len(lines))
    main = "\n".join(lines[:index]).strip()
    extracted = "\n".join(lines[index + 1:end]).strip()
    return main, extracted


# ---------------- Professional preparation rows from raw text ----------------
def _find_dates(text: str) -> Optional[Tuple[str, str]]:
    cleaned = _RE_NOT_DATE_TEXT.sub("", text)
    m = _RE_PREP_RANGE.search(cleaned) or _RE_PREP_LOOSE.search(cleaned)
    return (m.group(1), m.group(2)) if m else None


def _is_column_header(line: str) -> bool:
    lower = line.lower()
    return "institution" in lower and "degree" in lower and "field" in lower


def _rows_from_columns(lines: Sequence[str]) -> List[Tuple[str, ...]]:
    rows: List[Tuple[str, ...]] = []
    for line in lines:
        raw = line.split("\t") if "\t" in line else _RE_SPACE_COLUMNS.split(line)
        cols = [c.strip() for c in raw if c.strip()]
        if len(cols) < 5 or _is_column_header(line):
            continue
        rows.append((
            cols[0],
            cols[1],
            _RE_NOT_DATE.sub("", cols[2]),
            _RE_NOT_DATE.sub("", cols[3]),
            " ".join(cols[4:]),
        ))
    return rows


def _group_entries(lines: Sequence[str]) -> List[List[str]]:
    # a new entry starts at an institution-looking line once the current one has dates
    groups: List[List[str]] = []
    current: List[str] = []
    has_dates = False
    for line in lines:
        if current and has_dates and _RE_INSTITUTION_WORD.search(line):
            groups.append(current)
            current, has_dates = [], False
        current.append(line)
        has_dates = has_dates or _find_dates(line) is not None
    if current:
        groups.append(current)
    return groups


def _row_from_group(group: List[str]) -> Optional[Tuple[str, ...]]:
    date_idx = next((i for i, ln in enumerate(group) if _find_dates(ln)), -1)
    if date_idx < 0:
        return None
    start, end = _find_dates(group[date_idx])
    date_line = group[date_idx]
    degree_idx = next((i for i, ln in enumerate(group) if _RE_DEGREE_WORD.search(ln)), -1)

    institution_lines = group[:degree_idx] if degree_idx > -1 else group[:date_idx]
    if -1 < degree_idx < date_idx:
        degree = " ".join(group[degree_idx:date_idx])
    elif degree_idx == date_idx:
        degree = date_line[: date_line.find(start)].strip(" ,;:-") if start in date_line else ""
        date_line = date_line[date_line.find(start):] if start in date_line else date_line
    else:
        degree = ""

    remainder = date_line.replace(start, "", 1).replace(end, "", 1).replace("-", "", 1)
    remainder = _RE_FIELD_JUNK.sub("", remainder).strip()
    field_of_study = " ".join(x for x in [remainder] + group[date_idx + 1:] if x).strip()
    return (" ".join(institution_lines).strip(), degree, start, end, field_of_study)


def prep_rows_from_content(content: str) -> List[Tuple[str, ...]]:
    """Best-effort table rows from unparsed preparation text.

    Five or more columns per line are read directly. Otherwise lines are grouped
    into entries and each entry is split into institution, degree, dates and field
    around the first line carrying an ``MM/YYYY`` pair.
    """
    lines = _lines(content)
    if not lines:
        return []
    rows = _rows_from_columns(lines)
    if rows:
        return rows
    groups = _group_entries([ln for ln in lines if not _is_column_header(ln)])
    return [row for row in (_row_from_group(g) for g in groups) if row is not None]


# ---------------- Enhancer payload ----------------
def _payload_node(payload: Any, *keys: str) -> Any:
    node = payload
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def llm_header(payload: Any) -> Optional[Dict[str, str]]:
    header = _payload_node(payload, "common_form", "header")
    if not isinstance(header, dict):
        return None
    info = {
        "name": _text(header.get("name")),
        "pid": _text(header.get("pid_orcid")),
        "position_title": _text(header.get("position_title")),
        "organization": _text(header.get("organization_location")),
    }
    return info if any(info.values()) else None


def llm_honors(payload: Any) -> List[Dict[str, str]]:
    honors = _payload_node(payload, "supplement", "honors")
    if not isinstance(honors, list):
        return []
    rows = []
    for item in honors:
        if not isinstance(item, dict):
            continue
        year, honor = _text(item.get("year")), _text(item.get("honor_name"))
        if year or honor:
            rows.append({"year": year, "honor": honor})
    return rows


def llm_contributions(payload: Any, max_entries: Optional[int] = None) -> List[ContributionToScience]:
    items = _payload_node(payload, "supplement", "contributions")
    if not isinstance(items, list):
        return []
    out: List[ContributionToScience] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        description = _collapse(_text(item.get("description")))
        if not description:
            continue
        raw_products = item.get("products")
        products = [
            parse_citation(_collapse(p))
            for p in (raw_products if isinstance(raw_products, list) else [])
            if isinstance(p, str) and p.strip()
        ]
        out.append(ContributionToScience(description, tuple(products[:MAX_PRODUCTS_PER_CONTRIBUTION])))
    return out[:max_entries] if max_entries else out


# ---------------- Planning ----------------
class _Sections:
    def __init__(self, sections: Sequence[DetectedSection]):
        self.by_id: Dict[str, List[DetectedSection]] = {}
        for section in sections:
            self.by_id.setdefault(section.id, []).append(section)

    def content(self, section_id: str) -> str:
        return "\n\n".join(s.content for s in self.by_id.get(section_id, [])).strip()

    def records(self, template: TemplateConfig, kind: SectionKind, parsed: Any) -> Any:
        """Structured list for a section, re-extracted over every occurrence when it repeats."""
        occurrences = self.by_id.get(kind.value, [])
        rules = template.section(kind.value)
        if len(occurrences) < 2 or rules is None:
            return parsed
        merged = replace(occurrences[0], content=self.content(kind.value))
        return extract_section(merged, rules).value


def _header_info(found: _Sections, payload: Any) -> Dict[str, str]:
    from_payload = llm_header(payload)
    if from_payload is not None:
        return from_payload
    content = found.content(SectionKind.FORM_HEADER.value) or found.content(SectionKind.SUPPLEMENT_HEADER.value)
    return extract_header_info(content)


def _preparation(title: str, records: Optional[List[ProfessionalPreparation]], content: str) -> DraftSection:
    if records:
        rows = tuple(
            (", ".join(x for x in (r.institution, r.location) if x), r.degree, r.start_date, r.completion_date, r.field_of_study)
            for r in records
        )
        return DraftSection(title, [Table(PREP_COLUMNS, rows)])
    fallback = prep_rows_from_content(content)
    if fallback:
        return DraftSection(title, [Table(PREP_COLUMNS, tuple(fallback))])
    return DraftSection(title, [_raw_or_placeholder(content, title)])


def _appointments(title: str, content: str) -> DraftSection:
    rows = parse_appointments(content)
    if rows:
        return DraftSection(title, [TimeframeRows(tuple((r["timeframe"], r["position"]) for r in rows))])
    return DraftSection(title, [_raw_or_placeholder(content, title)])


def _publications(title: str, pubs: Optional[List[Publication]], content: str) -> DraftSection:
    if pubs:
        return DraftSection(title, [ItemList(tuple(format_citation(p) for p in pubs))])
    return DraftSection(title, [_raw_or_placeholder(content, title)])


def _honors(title: str, content: str, payload: Any) -> DraftSection:
    rows = parse_honors(content) or llm_honors(payload)
    if rows:
        items = tuple(
            f"{r['year']} - {r['honor']}".strip(" -") if r["year"] else r["honor"]
            for r in rows
        )
        return DraftSection(title, [ItemList(items, numbered=False)])
    return DraftSection(title, [_raw_or_placeholder(content, title)])


def _contributions(title: str, entries: List[ContributionToScience], content: str) -> DraftSection:
    if entries:
        return DraftSection(title, [Contributions(tuple(
            (c.description, tuple(format_citation(p) for p in c.products)) for c in entries
        ))])
    return DraftSection(title, [_raw_or_placeholder(content, title)])


def plan_draft(
    sections: Sequence[DetectedSection],
    template: TemplateConfig,
    biosketch_data: Optional[BiosketchData] = None,
    llm_structured_data: Any = None,
) -> DraftPlan:
    data = biosketch_data or BiosketchData()
    found = _Sections(sections)
    info = _header_info(found, llm_structured_data)
    header = [(label, info.get(key, "").strip() or placeholder) for key, label, placeholder in HEADER_FIELDS]

    def title(kind: SectionKind) -> str:
        return _title(template, kind)

    def content(kind: SectionKind) -> str:
        return found.content(kind.value)

    # certification appears in both parts with the same text
    cert_title = title(SectionKind.CERTIFICATION)
    cert_rule = template.section(SectionKind.CERTIFICATION.value)
    cert_text = normalize_certification_text(
        content(SectionKind.CERTIFICATION), cert_rule.exact_text if cert_rule is not None else None
    )
    signer = info.get("name", "").strip() or "[Name]"
    cert_blocks: List[Block] = [
        Paragraphs(cert_text) if cert_text else _placeholder(cert_title),
        Footer(f"Certified by {signer} in SciENcv on {SIGNATURE_DATE}"),
    ]

    common = DraftPart("common-form", COMMON_FORM_TITLE, COMMON_FORM_OMB, [
        _preparation(
            title(SectionKind.PROFESSIONAL_PREPARATION),
            found.records(template, SectionKind.PROFESSIONAL_PREPARATION, data.professional_preparation),
            content(SectionKind.PROFESSIONAL_PREPARATION),
        ),
        _appointments(title(SectionKind.APPOINTMENTS), content(SectionKind.APPOINTMENTS)),
        _publications(
            title(SectionKind.PRODUCTS_RELATED),
            found.records(template, SectionKind.PRODUCTS_RELATED, data.products_related_to_project),
            content(SectionKind.PRODUCTS_RELATED),
        ),
        _publications(
            title(SectionKind.OTHER_PRODUCTS),
            found.records(template, SectionKind.OTHER_PRODUCTS, data.other_significant_products),
            content(SectionKind.OTHER_PRODUCTS),
        ),
        DraftSection(cert_title, list(cert_blocks)),
    ])

    ps_title = title(SectionKind.PERSONAL_STATEMENT)
    ps_main, inline_honors = split_inline_section(content(SectionKind.PERSONAL_STATEMENT), "Honors")
    personal = _collapse(ps_main)

    honors_content = content(SectionKind.HONORS) or inline_honors
    contrib_rule = template.section(SectionKind.CONTRIBUTIONS.value)
    contributions = (
        llm_contributions(llm_structured_data, contrib_rule.max_entries if contrib_rule is not None else None)
        or found.records(template, SectionKind.CONTRIBUTIONS, data.contributions_to_science)
        or []
    )

    supplement = DraftPart("supplement", SUPPLEMENT_TITLE, SUPPLEMENT_OMB, [
        DraftSection(ps_title, [Paragraphs(personal) if personal else _placeholder(ps_title)]),
        _honors(title(SectionKind.HONORS), honors_content, llm_structured_data),
        _contributions(title(SectionKind.CONTRIBUTIONS), contributions, content(SectionKind.CONTRIBUTIONS)),
    ])
    for rule in template.all_sections:
        if rule.kind is SectionKind.GENERIC and found.content(rule.id):
            supplement.sections.append(DraftSection(rule.canonical_heading, [Paragraphs(found.content(rule.id))]))
    supplement.sections.append(DraftSection(cert_title, list(cert_blocks)))

    return DraftPlan(header=header, parts=[common, supplement])


# ---------------- Markdown ----------------
def _paragraphs(text: str) -> List[str]:
    return [p.strip() for p in _RE_PARAGRAPHS.split(text or "") if p.strip()]


def _md_block(block: Block) -> str:
    if isinstance(block, Paragraphs):
        return "\n\n".join(_paragraphs(block.text))
    if isinstance(block, Placeholder):
        return f"*{block.text}*"
    if isinstance(block, Table):
        lines = [
            "| " + " | ".join(block.columns) + " |",
            "| " + " | ".join("---" for _ in block.columns) + " |",
        ]
        lines.extend("| " + " | ".join(row) + " |" for row in block.rows)
        return "\n".join(lines)
    if isinstance(block, TimeframeRows):
        return "\n".join(f"{timeframe}  {position}".strip() for timeframe, position in block.rows)
    if isinstance(block, ItemList):
        if block.numbered:
            return "\n".join(f"{i}. {item}" for i, item in enumerate(block.items, 1))
        return "\n".join(block.items)
    if isinstance(block, Contributions):
        entries = []
        for i, (description, products) in enumerate(block.entries, 1):
            entry = f"{i}. {description}"
            if products:
                entry += "\n\n" + "\n".join(f"- {p}" for p in products)
            entries.append(entry)
        return "\n\n".join(entries)
    if isinstance(block, Footer):
        return block.text
    raise TypeError(f"unknown draft block: {type(block).__name__}")


def render_markdown(plan: DraftPlan) -> str:
    chunks: List[str] = []
    for part in plan.parts:
        chunks.append(f"# {part.title}")
        chunks.append("\n".join([f"{label}: {value}" for label, value in plan.header] + [part.omb]))
        for section in part.sections:
            chunks.append(f"## {section.title}")
            chunks.extend(md for md in (_md_block(b) for b in section.blocks) if md)
    return "\n\n".join(chunks) + "\n"


# ---------------- HTML ----------------
_CSS = """<style>
  .nih-biosketch { background: #ffffff; color: #000000; font-family: Arial, Helvetica, sans-serif; font-size: 11pt; line-height: 1.2; padding: 24px; }
  .nih-biosketch .header { display: flex; justify-content: space-between; align-items: flex-start; gap: 16px; margin-bottom: 12px; }
  .nih-biosketch .header-list { display: grid; gap: 4px; }
  .nih-biosketch .omb { text-align: right; font-size: 9pt; }
  .nih-biosketch .section { margin-bottom: 14px; }
  .nih-biosketch .instruction-label { font-size: 8pt; color: #555555; }
  .nih-biosketch h1 { font-size: 12pt; font-weight: bold; text-align: center; margin: 0 0 10px; }
  .nih-biosketch h2 { font-size: 11pt; font-weight: bold; text-transform: uppercase; background: #e6e6e6; padding: 4px 6px; margin: 0 0 6px; }
  .nih-biosketch h3 { font-size: 11pt; font-weight: bold; margin: 8px 0 4px; }
  .nih-biosketch table { width: 100%; border-collapse: collapse; margin: 6px 0 10px; }
  .nih-biosketch th, .nih-biosketch td { border: 1px solid #000000; padding: 8px; vertical-align: top; text-align: left; }
  .nih-biosketch .appointments-table td { border: none; padding: 4px 6px; }
  .nih-biosketch .appointments-table .timeframe { width: 150px; white-space: nowrap; }
  .nih-biosketch ol { margin: 0 0 6px 18px; padding: 0; }
  .nih-biosketch li { margin: 0 0 4px; }
  .nih-biosketch .placeholder { font-style: italic; }
  .nih-biosketch .cert-footer { font-size: 9.5pt; margin-top: 6px; border-top: 1px solid #000000; padding-top: 4px; }
  #supplement { page-break-before: always; break-before: page; }
</style>"""


def _esc(s: str) -> str:
    return html.escape(s or "")


def _html_list(items: Sequence[str]) -> str:
    return "<ol>" + "".join(f"<li>{_esc(item)}</li>" for item in items) + "</ol>"


def _html_block(block: Block) -> str:
    if isinstance(block, Paragraphs):
        return "".join(f"<p>{_esc(p).replace(chr(10), '<br />')}</p>" for p in _paragraphs(block.text))
    if isinstance(block, Placeholder):
        return f'<p class="placeholder">{_esc(block.text)}</p>'
    if isinstance(block, Table):
        head = "".join(f"<th>{_esc(c)}</th>" for c in block.columns)
        body = "".join("<tr>" + "".join(f"<td>{_esc(v)}</td>" for v in row) + "</tr>" for row in block.rows)
        return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"
    if isinstance(block, TimeframeRows):
        body = "".join(
            f'<tr><td class="timeframe">{_esc(timeframe)}</td><td>{_esc(position)}</td></tr>'
            for timeframe, position in block.rows
        )
        return f'<table class="appointments-table"><tbody>{body}</tbody></table>'
    if isinstance(block, ItemList):
        return _html_list(block.items)
    if isinstance(block, Contributions):
        return "".join(
            f'<div class="section"><h3>Contribution {i}</h3><p>{_esc(description)}</p>'
            f"{_html_list(products) if products else ''}</div>"
            for i, (description, products) in enumerate(block.entries, 1)
        )
    if isinstance(block, Footer):
        return f'<div class="cert-footer">{_esc(block.text)}</div>'
    raise TypeError(f"unknown draft block: {type(block).__name__}")


def _html_header(header: Sequence[Tuple[str, str]], omb: str) -> str:
    items = "".join(f"<div>{_esc(label)}: {_esc(value)}</div>" for label, value in header)
    return (
        f'<div class="header"><div class="header-list">{items}</div>'
        f'<div class="omb">{_esc(omb)}<br />Expiration Date: [MM/DD/YYYY]</div></div>'
    )


def render_html(plan: DraftPlan) -> str:
    parts: List[str] = []
    for part in plan.parts:
        body = [f"<h1>{_esc(part.title.upper())}</h1>", _html_header(plan.header, part.omb)]
        for section in part.sections:
            label = f"[COPY INTO SCIENCV: {section.title.upper()}]"
            body.append(
                f'<div class="section"><div class="instruction-label">{_esc(label)}</div>'
                f"<h2>{_esc(section.title)}</h2>{''.join(_html_block(b) for b in section.blocks)}</div>"
            )
        parts.append(f'<div id="{part.key}">{"".join(body)}</div>')
    return f'{_CSS}<div class="nih-biosketch">{"".join(parts)}</div>'


# ---------------- Core API ----------------
def generate_corrected_draft(
    sections: Sequence[DetectedSection],
    template: TemplateConfig,
    biosketch_data: Optional[BiosketchData] = None,
    llm_structured_data: Any = None,
) -> CorrectedDraft:
    plan = plan_draft(sections, template, biosketch_data, llm_structured_data)
    return CorrectedDraft(markdown=render_markdown(plan), html=render_html(plan))

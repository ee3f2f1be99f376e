from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Dict, List, Any, Optional, Tuple

Severity = Literal["red", "yellow", "green"]

ErrorCode = Literal[
    "BAD_MIME",
    "FILE_TOO_LARGE",
    "UNSUPPORTED_PDF",
    "UNSUPPORTED_DOCX",
    "EMPTY_DOCUMENT",
    "TEMPLATE_INVALID",
    "UNKNOWN",
]


def error(code: ErrorCode) -> Dict[str, str]:
    return {"error": code}


class SectionKind(Enum):
    """Section kinds the engine has dedicated behavior for.

    Template ids outside this set resolve to GENERIC: they take part in the
    generic rules (required, duplicate, order, length, exact text) and are
    rendered from raw text, but no structured extractor runs for them.
    """

    FORM_HEADER = "nih_biosketch_form"
    SUPPLEMENT_HEADER = "nih_biosketch_supplement"
    PROFESSIONAL_PREPARATION = "professional_preparation"
    APPOINTMENTS = "appointments_and_positions"
    PRODUCTS_RELATED = "products_related_to_project"
    OTHER_PRODUCTS = "other_significant_products"
    CERTIFICATION = "certification_statement"
    PERSONAL_STATEMENT = "personal_statement"
    HONORS = "honors"
    CONTRIBUTIONS = "contributions_to_science"
    GENERIC = ""

    @classmethod
    def from_id(cls, section_id: str) -> "SectionKind":
        for kind in cls:
            if kind.value and kind.value == section_id:
                return kind
        return cls.GENERIC


# ---------------- Template ----------------
@dataclass(frozen=True)
class TemplateSection:
    id: str
    canonical_heading: str
    variants: Tuple[str, ...] = ()
    min_chars: Optional[int] = None
    max_chars: Optional[int] = None
    max_entries: Optional[int] = None
    max_chars_per_entry: Optional[int] = None
    exact_text: Optional[str] = None
    allow_duplicates: bool = False
    order_exempt: bool = False

    @property
    def kind(self) -> SectionKind:
        return SectionKind.from_id(self.id)


@dataclass(frozen=True)
class UnknownHeadingHeuristic:
    max_heading_length: int = 80
    allow_all_caps: bool = True


@dataclass(frozen=True)
class TemplateConfig:
    name: str
    version: str
    required_sections: Tuple[TemplateSection, ...]
    optional_sections: Tuple[TemplateSection, ...] = ()
    order: Tuple[str, ...] = ()
    unknown_heading_heuristic: UnknownHeadingHeuristic = field(default_factory=UnknownHeadingHeuristic)

    @property
    def all_sections(self) -> Tuple[TemplateSection, ...]:
        return self.required_sections + self.optional_sections

    def section(self, section_id: str) -> Optional[TemplateSection]:
        for sec in self.all_sections:
            if sec.id == section_id:
                return sec
        return None


# ---------------- Segmentation & findings ----------------
@dataclass(frozen=True)
class DetectedSection:
    id: str
    canonical_heading: str
    original_heading: str
    content: str
    start_line: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "canonicalHeading": self.canonical_heading,
            "originalHeading": self.original_heading,
            "content": self.content,
            "startLine": self.start_line,
        }


@dataclass(frozen=True)
class Issue:
    id: str
    severity: Severity
    title: str
    description: str
    section: Optional[str] = None
    evidence_snippet: Optional[str] = None
    recommendation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "section": self.section,
            "evidenceSnippet": self.evidence_snippet,
            "recommendation": self.recommendation,
        }


def overall_status(issues: List[Issue]) -> Severity:
    if any(i.severity == "red" for i in issues):
        return "red"
    if any(i.severity == "yellow" for i in issues):
        return "yellow"
    return "green"


# ---------------- Extracted entities ----------------
@dataclass(frozen=True)
class Publication:
    authors: str
    year: Optional[int]
    title: str
    journal_or_source: Optional[str]
    doi_or_pmid: Optional[str]
    raw_citation: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authors": self.authors,
            "year": self.year,
            "title": self.title,
            "journal_or_source": self.journal_or_source,
            "doi_or_pmid": self.doi_or_pmid,
            "raw_citation": self.raw_citation,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ProfessionalPreparation:
    institution: str
    location: str
    degree: str
    start_date: str  # MM/YYYY
    completion_date: str  # MM/YYYY
    field_of_study: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "institution": self.institution,
            "location": self.location,
            "degree": self.degree,
            "startDate": self.start_date,
            "completionDate": self.completion_date,
            "fieldOfStudy": self.field_of_study,
        }


@dataclass(frozen=True)
class ContributionToScience:
    description: str
    products: Tuple[Publication, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"description": self.description, "products": [p.to_dict() for p in self.products]}


@dataclass
class BiosketchData:
    """Partial extraction bundle; a field stays None when its section was not found."""

    personal_statement: Optional[str] = None
    professional_preparation: Optional[List[ProfessionalPreparation]] = None
    contributions_to_science: Optional[List[ContributionToScience]] = None
    products_related_to_project: Optional[List[Publication]] = None
    other_significant_products: Optional[List[Publication]] = None
    certification: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.personal_statement is not None:
            out["personalStatement"] = self.personal_statement
        if self.professional_preparation is not None:
            out["professionalPreparation"] = [p.to_dict() for p in self.professional_preparation]
        if self.contributions_to_science is not None:
            out["contributionsToScience"] = [c.to_dict() for c in self.contributions_to_science]
        if self.products_related_to_project is not None:
            out["products_related_to_project"] = [p.to_dict() for p in self.products_related_to_project]
        if self.other_significant_products is not None:
            out["other_significant_products"] = [p.to_dict() for p in self.other_significant_products]
        if self.certification is not None:
            out["certification"] = self.certification
        return out


# ---------------- Pipeline results ----------------
@dataclass
class OcrResult:
    text: str
    confidences: List[float]
    meta: Dict[str, Any]


@dataclass
class ParseResult:
    text: str
    low_confidence: bool
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationOutcome:
    issues: List[Issue]
    detected_sections: List[DetectedSection]
    biosketch_data: BiosketchData
    unknown_headings: List[str] = field(default_factory=list)


@dataclass
class CorrectedDraft:
    markdown: str  # plain structured-text form
    html: str  # rich-markup form


@dataclass
class ProcessResult:
    overall_status: Severity
    issues: List[Issue]
    detected_sections: List[DetectedSection]
    biosketch_data: BiosketchData
    draft: CorrectedDraft
    publications: List[Publication]
    low_confidence: bool
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallStatus": self.overall_status,
            "issues": [i.to_dict() for i in self.issues],
            "detectedSections": [s.to_dict() for s in self.detected_sections],
            "biosketchData": self.biosketch_data.to_dict(),
            "correctedDraftMarkdown": self.draft.markdown,
            "correctedDraftHtml": self.draft.html,
            "publications": [p.to_dict() for p in self.publications],
            "lowConfidence": self.low_confidence,
            "meta": self.meta,
        }

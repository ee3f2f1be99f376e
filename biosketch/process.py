"""
End-to-end biosketch processing.

extract text -> (enhance headings) -> validate -> (enhance citations) -> flat
publication list -> (structured payload) -> corrected draft -> ProcessResult.

Public API:
    process_text(raw_text, template, enhancer=None, low_confidence=False) -> ProcessResult
    process_file(data, mime, filename="", template=None, enhancer=None) -> ProcessResult | {"error": CODE}
"""
from __future__ import annotations

import time
from typing import Dict, List, Optional, Union

from .contracts import (
    DetectedSection,
    ParseResult,
    ProcessResult,
    SectionKind,
    TemplateConfig,
    overall_status,
)
from .draft import generate_corrected_draft
from .enhancer import TextEnhancer, create_enhancer
from .extract import extract_text
from .extractors import split_contribution_entries
from .publications import parse_citation, split_citation_blocks
from .template import load_template
from .validator import validate_template

PUBLICATION_KINDS = (SectionKind.PRODUCTS_RELATED, SectionKind.OTHER_PRODUCTS)


def _ms(t0: float) -> int:
    return int((time.time() - t0) * 1000)


def citation_blocks(sections: List[DetectedSection]) -> List[str]:
    """Citation blocks from product sections and contribution product lists, in document order."""
    blocks: List[str] = []
    for section in sections:
        kind = SectionKind.from_id(section.id)
        if kind in PUBLICATION_KINDS:
            blocks.extend(split_citation_blocks(section.content))
        elif kind is SectionKind.CONTRIBUTIONS:
            for _, products_text in split_contribution_entries(section.content):
                blocks.extend(split_citation_blocks(products_text))
    return blocks


def process_text(
    raw_text: str,
    template: TemplateConfig,
    enhancer: Optional[TextEnhancer] = None,
    low_confidence: bool = False,
) -> ProcessResult:
    enhancer = enhancer or TextEnhancer()
    timings: Dict[str, int] = {}
    t_all = time.time()

    t0 = time.time()
    text = enhancer.enhance_headings(raw_text or "")
    timings["enhance_headings"] = _ms(t0)

    t0 = time.time()
    outcome = validate_template(text, template)
    timings["validate"] = _ms(t0)

    t0 = time.time()
    blocks = enhancer.enhance_citations(citation_blocks(outcome.detected_sections))
    publications = [parse_citation(b) for b in blocks]
    timings["publications"] = _ms(t0)

    t0 = time.time()
    structured = enhancer.extract_structured_data(text) if enhancer.enabled else None
    timings["structured"] = _ms(t0)

    t0 = time.time()
    draft = generate_corrected_draft(outcome.detected_sections, template, outcome.biosketch_data, structured)
    timings["draft"] = _ms(t0)
    timings["total"] = _ms(t_all)

    return ProcessResult(
        overall_status=overall_status(outcome.issues),
        issues=outcome.issues,
        detected_sections=outcome.detected_sections,
        biosketch_data=outcome.biosketch_data,
        draft=draft,
        publications=publications,
        low_confidence=low_confidence,
        meta={
            "template": {"name": template.name, "version": template.version},
            "unknown_headings": list(outcome.unknown_headings),
            "enhancer": {"enabled": enhancer.enabled, **enhancer.audit},
            "structured_payload": structured is not None,
            "t_ms": timings,
        },
    )


def process_file(
    data: bytes,
    mime: str,
    filename: str = "",
    template: Optional[TemplateConfig] = None,
    enhancer: Optional[TextEnhancer] = None,
) -> Union[ProcessResult, Dict[str, str]]:
    parsed = extract_text(data, mime, filename)
    if not isinstance(parsed, ParseResult):
        return parsed
    result = process_text(
        parsed.text,
        template or load_template(),
        enhancer if enhancer is not None else create_enhancer(),
        low_confidence=parsed.low_confidence,
    )
    result.meta["extraction"] = parsed.meta
    return result

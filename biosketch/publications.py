"""Citation block splitting and field extraction.

Deterministic heuristics only: a year anchors the authors/title split, DOI and
PMID are matched independently, and a confidence score reports how much of the
citation was recognized. Nothing is filtered on confidence.
"""
from __future__ import annotations

import re
from typing import List, Optional

from .contracts import Publication

_RE_DOI = re.compile(r"(10\.\d{4,9}/[-._;()/:A-Z0-9]+)", re.IGNORECASE)
_RE_PMID = re.compile(r"\bPMID[:\s]*([0-9]{5,})", re.IGNORECASE)
_RE_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")
_RE_ENUM = re.compile(r"^(?:\d+[).]|[-*•])\s+")
_RE_WS = re.compile(r"\s+")
_RE_NEWLINE = re.compile(r"\r?\n")
_RE_AUTHORS_TAIL = re.compile(r"\s*\($")
_RE_TRAILING_PUNCT = re.compile(r"[.;,]+$")
_RE_AFTER_YEAR_LEAD = re.compile(r"^[).,;:\s]+")

MIN_BLOCK_CHARS = 11


def split_citation_blocks(text: str) -> List[str]:
    """Group lines into one block per citation.

    An enumerated line ("1.", "2)", "-", "*", "•") starts a new block, a blank line
    ends the current one, anything else continues it.
    """
    blocks: List[str] = []
    current: List[str] = []

    def flush() -> None:
        if current:
            blocks.append(_RE_WS.sub(" ", " ".join(current)).strip())
            current.clear()

    for raw in _RE_NEWLINE.split(text or ""):
        line = raw.strip()
        if not line:
            flush()
            continue
        if _RE_ENUM.match(line):
            flush()
            current.append(_RE_ENUM.sub("", line))
            continue
        current.append(line)
    flush()
    return [b for b in blocks if len(b) >= MIN_BLOCK_CHARS]


def _split_rest(rest: str):
    head, sep, tail = rest.partition(".")
    journal = tail.strip().lstrip(". ").strip() if sep else ""
    return head.strip(), (journal or None)


def parse_citation(raw: str) -> Publication:
    year_match = _RE_YEAR.search(raw)
    year = int(year_match.group(0)) if year_match else None

    doi = _RE_DOI.search(raw)
    pmid = _RE_PMID.search(raw)
    doi_or_pmid: Optional[str] = doi.group(1) if doi else (pmid.group(1) if pmid else None)

    authors = ""
    title = ""
    journal: Optional[str] = None
    if year_match:
        authors = raw[: year_match.start()].strip()
        authors = _RE_TRAILING_PUNCT.sub("", _RE_AUTHORS_TAIL.sub("", authors)).strip()
        after = _RE_AFTER_YEAR_LEAD.sub("", raw[year_match.end():])
        title, journal = _split_rest(after)
    else:
        first = raw.find(".")
        if first > 0:
            authors = raw[:first].strip()
            title, journal = _split_rest(raw[first + 1:])
        else:
            title = raw.strip()

    confidence = 0.55 if year is not None else 0.40
    if doi_or_pmid:
        confidence += 0.25
    if title:
        confidence += 0.15

    return Publication(
        authors=authors,
        year=year,
        title=title,
        journal_or_source=journal,
        doi_or_pmid=doi_or_pmid,
        raw_citation=raw,
        confidence=min(1.0, round(confidence, 2)),
    )


def extract_publications(text: str) -> List[Publication]:
    return [parse_citation(block) for block in split_citation_blocks(text)]


def format_citation(pub: Publication) -> str:
    year = f" ({pub.year})" if pub.year else ""
    title = f"{pub.title}. " if pub.title else ""
    journal = f"{pub.journal_or_source.rstrip('.')}." if pub.journal_or_source else ""
    # parsed citations usually keep the identifier inside the source text
    doi = f" {pub.doi_or_pmid}" if pub.doi_or_pmid and pub.doi_or_pmid not in f"{title}{journal}" else ""
    return _RE_WS.sub(" ", f"{pub.authors}{year}. {title}{journal}{doi}").strip()

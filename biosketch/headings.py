"""Heading normalization and template heading resolution."""
from __future__ import annotations

import re
from typing import Dict, List, Optional

from .contracts import TemplateConfig, TemplateSection


# ---------------- Patterns ----------------
_RE_MARKER = re.compile(r"^(?:[A-Z]|[IVX]+|\d+)[.)\s-]+", re.IGNORECASE)
_RE_COLON_DASH = re.compile(r"[:\-]+")
_RE_WS = re.compile(r"\s+")
_RE_TRAILING_PAREN = re.compile(r"\s*\(.*$")
_RE_HAS_LETTER = re.compile(r"[A-Za-z]")
_RE_TITLE_OR_SENTENCE = re.compile(r"[A-Z][a-z]")
_RE_IGNORABLE = re.compile(r"^omb\s+no\b", re.IGNORECASE)


def normalize_heading(line: str) -> str:
    """Canonical comparison key for a heading-like line.

    Drops a leading enumerator ("A.", "III.", "2)"), lower-cases, turns colons and
    dashes into spaces, collapses whitespace and folds an accidentally doubled
    heading ("honorshonors") to its single half.
    """
    s = _RE_MARKER.sub("", line or "").lower()
    s = _RE_COLON_DASH.sub(" ", s)
    s = _RE_WS.sub(" ", s).strip()
    half, rem = divmod(len(s), 2)
    if s and not rem and s[:half] == s[half:]:
        first = s[:half].strip()
        if first:
            s = first
    return s


def strip_trailing_parenthetical(line: str) -> str:
    return _RE_TRAILING_PAREN.sub("", line or "")


def is_heading_candidate(line: str, max_heading_length: int, allow_all_caps: bool) -> bool:
    """Shape test: short, lettered, low-punctuation, ALL-CAPS or Title/Sentence case."""
    if not line:
        return False
    candidate = strip_trailing_parenthetical(line).strip()
    if not candidate or len(candidate) > max_heading_length:
        return False
    if not _RE_HAS_LETTER.search(candidate):
        return False
    if len(candidate.split()) > 10:
        return False
    if candidate.count(",") >= 2:
        return False
    all_caps = candidate == candidate.upper()
    if all_caps and not allow_all_caps:
        return False
    return all_caps or bool(_RE_TITLE_OR_SENTENCE.search(candidate))


def is_ignorable_heading(line: str) -> bool:
    t = (line or "").strip()
    return not t or bool(_RE_IGNORABLE.match(t))


class HeadingResolver:
    """Maps lines to template sections: exact key, then prefix, then substring.

    The key map is built once per template; on a key collision the section listed
    last in the template wins.
    """

    def __init__(self, template: TemplateConfig):
        self.template = template
        heur = template.unknown_heading_heuristic
        self.max_heading_length = heur.max_heading_length
        self.allow_all_caps = heur.allow_all_caps
        self.by_key: Dict[str, TemplateSection] = {}
        for section in template.all_sections:
            for raw in (section.canonical_heading,) + tuple(section.variants):
                key = normalize_heading(raw)
                if key:
                    self.by_key[key] = section
        # longest first; ties keep insertion order
        self.keys: List[str] = sorted(self.by_key, key=len, reverse=True)

    def is_candidate(self, line: str) -> bool:
        return is_heading_candidate(line, self.max_heading_length, self.allow_all_caps)

    def resolve(self, line: str) -> Optional[TemplateSection]:
        trimmed = (line or "").strip()
        if not trimmed:
            return None
        normalized = normalize_heading(trimmed)
        stripped = normalize_heading(strip_trailing_parenthetical(trimmed))
        matched = self.by_key.get(normalized) or self.by_key.get(stripped)
        if matched is not None:
            return matched
        if not self.is_candidate(trimmed):
            return None
        candidate = stripped or normalized
        for key in self.keys:
            if candidate.startswith(key):
                return self.by_key[key]
        for key in self.keys:
            if key in candidate:
                return self.by_key[key]
        return None

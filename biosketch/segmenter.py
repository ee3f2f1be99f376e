"""Single-pass section segmentation over document lines.

State is one open-section slot: a recognized heading finalizes the open section
and opens the next one; other lines are appended to the open section, or, when no
section is open, recorded as unknown headings if they are heading-shaped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

from .contracts import DetectedSection, TemplateConfig, TemplateSection
from .headings import HeadingResolver, is_ignorable_heading

_RE_NEWLINE = re.compile(r"\r?\n")


@dataclass
class Segmentation:
    sections: List[DetectedSection] = field(default_factory=list)
    unknown_headings: List[str] = field(default_factory=list)


class _OpenSection:
    __slots__ = ("rule", "heading", "start_line", "content")

    def __init__(self, rule: TemplateSection, heading: str, start_line: int):
        self.rule = rule
        self.heading = heading
        self.start_line = start_line
        self.content = ""

    def add_blank(self) -> None:
        self.content += "\n"

    def add_line(self, line: str) -> None:
        self.content += ("\n" if self.content else "") + line

    def close(self) -> DetectedSection:
        return DetectedSection(
            id=self.rule.id,
            canonical_heading=self.rule.canonical_heading,
            original_heading=self.heading,
            content=self.content,
            start_line=self.start_line,
        )


def detect_sections(
    text: str,
    template: TemplateConfig,
    resolver: Optional[HeadingResolver] = None,
) -> Segmentation:
    resolver = resolver or HeadingResolver(template)
    out = Segmentation()
    current: Optional[_OpenSection] = None

    for index, line in enumerate(_RE_NEWLINE.split(text or "")):
        trimmed = line.strip()
        if not trimmed:
            if current is not None:
                current.add_blank()
            continue

        matched = resolver.resolve(trimmed)
        if matched is not None:
            if current is not None:
                out.sections.append(current.close())
            current = _OpenSection(matched, trimmed, index + 1)
            continue

        if current is None:
            if resolver.is_candidate(trimmed) and not is_ignorable_heading(trimmed):
                out.unknown_headings.append(trimmed)
            continue

        current.add_line(trimmed)

    if current is not None:
        out.sections.append(current.close())
    return out

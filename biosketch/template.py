"""Template loading for the biosketch compliance engine.

A template is a versioned JSON document describing the section catalog, the
expected order and the unknown-heading heuristic. It is validated against a
JSON Schema and turned into an immutable ``TemplateConfig``; malformed templates
raise ``TemplateError`` and are never repaired.
"""
from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jsonschema import Draft202012Validator

from .contracts import TemplateConfig, TemplateSection, UnknownHeadingHeuristic

DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "config" / "nih-biosketch-template-2026.json"

_POS_INT = {"type": "integer", "minimum": 0}

_SECTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "canonicalHeading"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "canonicalHeading": {"type": "string", "minLength": 1},
        "variants": {"type": "array", "items": {"type": "string"}},
        "minChars": _POS_INT,
        "maxChars": _POS_INT,
        "maxEntries": _POS_INT,
        "maxCharsPerEntry": _POS_INT,
        "exactText": {"type": "string"},
        "allowDuplicates": {"type": "boolean"},
        "orderExempt": {"type": "boolean"},
    },
}

TEMPLATE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["name", "version", "requiredSections", "order", "unknownHeadingHeuristic"],
    "properties": {
        "name": {"type": "string"},
        "version": {"type": "string"},
        "requiredSections": {"type": "array", "items": _SECTION_SCHEMA},
        "optionalSections": {"type": "array", "items": _SECTION_SCHEMA},
        "order": {"type": "array", "items": {"type": "string"}},
        "unknownHeadingHeuristic": {
            "type": "object",
            "required": ["maxHeadingLength", "allowAllCaps"],
            "properties": {
                "maxHeadingLength": {"type": "integer", "minimum": 1},
                "allowAllCaps": {"type": "boolean"},
            },
        },
    },
}


class TemplateError(ValueError):
    """Raised when a template document is missing, unreadable or malformed."""


def _section_from_dict(raw: Dict[str, Any]) -> TemplateSection:
    return TemplateSection(
        id=raw["id"],
        canonical_heading=raw["canonicalHeading"],
        variants=tuple(raw.get("variants", [])),
        min_chars=raw.get("minChars"),
        max_chars=raw.get("maxChars"),
        max_entries=raw.get("maxEntries"),
        max_chars_per_entry=raw.get("maxCharsPerEntry"),
        exact_text=raw.get("exactText"),
        allow_duplicates=bool(raw.get("allowDuplicates", False)),
        order_exempt=bool(raw.get("orderExempt", False)),
    )


def template_from_dict(data: Dict[str, Any]) -> TemplateConfig:
    errors = sorted(Draft202012Validator(TEMPLATE_SCHEMA).iter_errors(data), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = "/".join(str(p) for p in first.path) or "<root>"
        raise TemplateError(f"Invalid template at {where}: {first.message}")

    required = tuple(_section_from_dict(s) for s in data["requiredSections"])
    optional = tuple(_section_from_dict(s) for s in data.get("optionalSections", []))
    known = {s.id for s in required + optional}
    unknown_order = [sid for sid in data["order"] if sid not in known]
    if unknown_order:
        raise TemplateError(f"Template order references unknown section ids: {', '.join(unknown_order)}")

    heur = data["unknownHeadingHeuristic"]
    return TemplateConfig(
        name=data["name"],
        version=data["version"],
        required_sections=required,
        optional_sections=optional,
        order=tuple(data["order"]),
        unknown_heading_heuristic=UnknownHeadingHeuristic(
            max_heading_length=int(heur["maxHeadingLength"]),
            allow_all_caps=bool(heur["allowAllCaps"]),
        ),
    )


# ---------------- Cached loading ----------------
_CACHE: Dict[str, TemplateConfig] = {}
_LOCK = threading.Lock()


def _resolve_path(path: Optional[Union[str, Path]]) -> Path:
    if path:
        return Path(path).expanduser().resolve()
    env = os.getenv("BIOSKETCH_TEMPLATE_PATH", "")
    if env:
        return Path(env).expanduser().resolve()
    return DEFAULT_TEMPLATE_PATH


def _read_template(p: Path) -> TemplateConfig:
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateError(f"Cannot read template {p}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise TemplateError(f"Template {p} is not valid JSON: {exc}") from exc
    return template_from_dict(data)


def load_template(path: Optional[Union[str, Path]] = None) -> TemplateConfig:
    """Load a template once per resolved path and reuse it afterwards."""
    key = str(_resolve_path(path))
    cached = _CACHE.get(key)
    if cached is not None:
        return cached
    with _LOCK:
        cached = _CACHE.get(key)
        if cached is None:
            cached = _read_template(Path(key))
            _CACHE[key] = cached
    return cached


def clear_template_cache() -> None:
    with _LOCK:
        _CACHE.clear()

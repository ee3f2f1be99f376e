import json

import pytest

from biosketch.contracts import SectionKind
from biosketch.template import (
    DEFAULT_TEMPLATE_PATH,
    TemplateError,
    clear_template_cache,
    load_template,
    template_from_dict,
)


def _raw():
    return json.loads(DEFAULT_TEMPLATE_PATH.read_text(encoding="utf-8"))


def test_default_template(template):
    assert template.version == "2026.1"
    assert [s.id for s in template.required_sections] == [
        "professional_preparation",
        "appointments_and_positions",
        "products_related_to_project",
        "certification_statement",
        "personal_statement",
        "contributions_to_science",
    ]
    cert = template.section("certification_statement")
    assert cert.allow_duplicates and cert.order_exempt
    assert cert.exact_text.startswith("I certify that the information provided")
    assert template.section("honors").kind is SectionKind.HONORS
    assert template.section("nope") is None
    assert template.unknown_heading_heuristic.max_heading_length == 80


def test_template_is_cached():
    clear_template_cache()
    assert load_template() is load_template()
    assert load_template() is load_template(DEFAULT_TEMPLATE_PATH)


def test_template_path_from_env(tmp_path, monkeypatch):
    raw = _raw()
    raw["version"] = "test-1"
    path = tmp_path / "template.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    monkeypatch.setenv("BIOSKETCH_TEMPLATE_PATH", str(path))
    clear_template_cache()
    try:
        assert load_template().version == "test-1"
    finally:
        clear_template_cache()


def test_schema_violation_is_rejected():
    raw = _raw()
    del raw["requiredSections"][0]["canonicalHeading"]
    with pytest.raises(TemplateError, match="requiredSections/0"):
        template_from_dict(raw)


def test_negative_bound_is_rejected():
    raw = _raw()
    raw["requiredSections"][0]["minChars"] = -1
    with pytest.raises(TemplateError):
        template_from_dict(raw)


def test_order_with_unknown_id_is_rejected():
    raw = _raw()
    raw["order"].append("research_support")
    with pytest.raises(TemplateError, match="research_support"):
        template_from_dict(raw)


def test_bad_json_and_missing_file(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(TemplateError, match="not valid JSON"):
        load_template(bad)
    with pytest.raises(TemplateError, match="Cannot read"):
        load_template(tmp_path / "missing.json")

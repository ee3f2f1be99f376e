from biosketch.segmenter import detect_sections
from utils_text import biosketch_text


def test_sections_in_document_order(template):
    seg = detect_sections(biosketch_text(), template)
    assert [s.id for s in seg.sections] == [
        "nih_biosketch_form",
        "professional_preparation",
        "appointments_and_positions",
        "products_related_to_project",
        "other_significant_products",
        "certification_statement",
        "nih_biosketch_supplement",
        "personal_statement",
        "honors",
        "contributions_to_science",
    ]
    assert seg.unknown_headings == []


def test_section_fields_and_start_line(template):
    text = "Intro line\nPersonal Statement\nFirst line.\n\nSecond paragraph.\n"
    seg = detect_sections(text, template)
    (ps,) = seg.sections
    assert ps.id == "personal_statement"
    assert ps.canonical_heading == "Personal Statement"
    assert ps.original_heading == "Personal Statement"
    assert ps.start_line == 2
    assert ps.content == "First line.\n\nSecond paragraph.\n"


def test_unknown_headings_only_outside_sections(template):
    text = "\n".join([
        "RESEARCH SUPPORT",
        "OMB No. 0925-0001",
        "just some lower case prose",
        "Honors",
        "Grant Review Panels",
    ])
    seg = detect_sections(text, template)
    assert seg.unknown_headings == ["RESEARCH SUPPORT"]
    assert seg.sections[0].content == "Grant Review Panels"


def test_duplicate_headings_produce_two_sections(template):
    text = "Honors\n2019 - Prize\n\nHonors and Awards\n2018 - Medal\n"
    seg = detect_sections(text, template)
    assert [s.id for s in seg.sections] == ["honors", "honors"]
    assert [s.original_heading for s in seg.sections] == ["Honors", "Honors and Awards"]


def test_empty_and_crlf_input(template):
    assert detect_sections("", template).sections == []
    seg = detect_sections("Honors\r\n2019 - Prize\r\n", template)
    assert seg.sections[0].content == "2019 - Prize\n"

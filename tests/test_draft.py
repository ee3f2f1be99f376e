import dataclasses

from biosketch.contracts import DetectedSection, TemplateSection
from biosketch.draft import (
    CORE_CERTIFICATION,
    generate_corrected_draft,
    normalize_certification_text,
    plan_draft,
    prep_rows_from_content,
    split_inline_section,
)
from biosketch.segmenter import detect_sections
from biosketch.validator import validate_template
from utils_text import CERTIFICATION, PERSONAL_STATEMENT, biosketch_text

PAYLOAD = {
    "common_form": {"header": {"name": "Dr. Payload", "pid_orcid": "0000-0001-0000-0001"}},
    "supplement": {
        "honors": [{"year": "2020", "honor_name": "Payload Medal"}, "not a dict"],
        "contributions": [
            {"description": "Payload   contribution\nwith wrapped text", "products": ["Doe A (2019). On things. Science."]},
            {"description": ""},
        ],
    },
}


def _section(section_id, content, line=1):
    return DetectedSection(section_id, section_id, section_id, content, line)


def _draft(template, text=None, payload=None):
    outcome = validate_template(text if text is not None else biosketch_text(), template)
    return generate_corrected_draft(outcome.detected_sections, template, outcome.biosketch_data, payload)


def test_plan_section_order(template):
    outcome = validate_template(biosketch_text(), template)
    plan = plan_draft(outcome.detected_sections, template, outcome.biosketch_data)
    assert [p.key for p in plan.parts] == ["common-form", "supplement"]
    assert [s.title for s in plan.parts[0].sections] == [
        "Professional Preparation",
        "Appointments and Positions",
        "Products Closely Related to the Proposed Project",
        "Other Significant Products",
        "Certification",
    ]
    assert [s.title for s in plan.parts[1].sections] == [
        "Personal Statement",
        "Honors",
        "Contributions to Science",
        "Certification",
    ]


def test_markdown_from_compliant_biosketch(template):
    md = _draft(template).markdown
    assert md.startswith("# NIH Biographical Sketch Common Form\n\nName: Jane Q. Researcher\n")
    assert "OMB No. 3145-0279" in md and "OMB No. 0925-0001" in md
    assert "| Lakeside University, Boston MA | PhD | 09/2005 | 06/2010 | Molecular Biology |" in md
    assert "2018 - Present  Professor, Lakeside University" in md
    assert "1. Researcher JQ, Lee K (2020). Enzyme kinetics in yeast." in md
    assert "2019 - Young Investigator Prize, Biophysical Society" in md
    assert "1. We established the first kinetic model" in md
    assert "- Researcher JQ, Chen L (2016). Cotranslational folding of transporters." in md
    assert md.count(CERTIFICATION) == 2
    assert md.count("Certified by Jane Q. Researcher in SciENcv on [Date]") == 2
    assert md.endswith("\n")


def test_markdown_re_segments_to_same_sections(template):
    outcome = validate_template(biosketch_text(), template)
    md = generate_corrected_draft(outcome.detected_sections, template, outcome.biosketch_data).markdown
    original = {s.id for s in outcome.detected_sections}
    again = {s.id for s in detect_sections(md, template).sections}
    assert original <= again
    assert not [i for i in validate_template(md, template).issues if i.id.startswith("missing-")]


def test_placeholders_for_empty_input(template):
    md = generate_corrected_draft([], template).markdown
    for title in ("Professional Preparation", "Appointments and Positions", "Personal Statement",
                  "Honors", "Contributions to Science"):
        assert f"*TODO: Add {title}*" in md
    assert "Name: [Name]" in md and "PID (ORCID): [PID]" in md
    assert CERTIFICATION in md
    assert "Certified by [Name] in SciENcv on [Date]" in md


def test_payload_header_and_contributions_preferred(template):
    md = _draft(template, payload=PAYLOAD).markdown
    assert "Name: Dr. Payload" in md
    assert "Position Title: [Position Title]" in md
    assert "1. Payload contribution with wrapped text" in md
    assert "- Doe A (2019). On things. Science." in md
    assert "We established the first kinetic model" not in md
    # parsed honors still win over the payload
    assert "Payload Medal" not in md


def test_payload_honors_used_when_section_missing(template):
    md = _draft(template, biosketch_text(drop=("Honors",)), PAYLOAD).markdown
    assert "2020 - Payload Medal" in md


def test_payload_of_wrong_shape_is_ignored(template):
    assert _draft(template, payload=["unexpected"]).markdown == _draft(template).markdown


def test_preparation_rows_recovered_from_raw_text():
    rows = prep_rows_from_content("\n".join([
        "Northfield College, Albany NY",
        "BS in Chemistry",
        "09/2001 - 05/2005",
        "Lakeside University",
        "PhD",
        "09/2005 - 06/2010 Molecular Biology",
    ]))
    assert rows == [
        ("Northfield College, Albany NY", "BS in Chemistry", "09/2001", "05/2005", ""),
        ("Lakeside University", "PhD", "09/2005", "06/2010", "Molecular Biology"),
    ]
    assert prep_rows_from_content("") == []


def test_preparation_fallback_table_in_draft(template):
    content = "Lakeside University\nPhD\n09/2005 - 06/2010 Molecular Biology"
    md = generate_corrected_draft([_section("professional_preparation", content)], template).markdown
    assert "| Lakeside University | PhD | 09/2005 | 06/2010 | Molecular Biology |" in md


def test_certification_normalization():
    assert normalize_certification_text("Certified by X\n" + CERTIFICATION, CERTIFICATION) == CERTIFICATION
    assert normalize_certification_text("", CERTIFICATION) == CERTIFICATION
    assert normalize_certification_text("") == ""
    doubled = "\n".join([
        CORE_CERTIFICATION,
        "OMB No. 0925-0001",
        "Certified by Jane in SciENcv on 01/01/2026",
        CORE_CERTIFICATION,
    ])
    assert normalize_certification_text(doubled) == CORE_CERTIFICATION
    assert normalize_certification_text("Line A\nLine A\nLine B") == "Line A\nLine B"


def test_split_inline_section():
    content = "My statement.\nHonors\n2019 - Prize\nContributions to Science\nMore text"
    assert split_inline_section(content, "Honors") == ("My statement.", "2019 - Prize")
    assert split_inline_section("No inline block", "Honors") == ("No inline block", "")


def test_inline_honors_moved_out_of_personal_statement(template):
    sections = [_section("personal_statement", PERSONAL_STATEMENT + "\nHonors\n2019 - Prize")]
    plan = plan_draft(sections, template)
    personal, honors = plan.parts[1].sections[:2]
    assert personal.blocks[0].text == PERSONAL_STATEMENT
    assert honors.blocks[0].items == ("2019 - Prize",)


def test_generic_sections_rendered_raw(template):
    extra = TemplateSection(id="research_support", canonical_heading="Research Support")
    custom = dataclasses.replace(template, optional_sections=template.optional_sections + (extra,))
    plan = plan_draft([_section("research_support", "R01 GM000000 active through 2027")], custom)
    titles = [s.title for s in plan.parts[1].sections]
    assert titles[-2:] == ["Research Support", "Certification"]


def test_html_structure_and_escaping(template):
    text = biosketch_text({"Personal Statement": PERSONAL_STATEMENT + " Using <b>tags</b> & symbols."})
    page = _draft(template, text).html
    assert page.startswith("<style>")
    assert '<div id="common-form">' in page and '<div id="supplement">' in page
    assert "<h1>NIH BIOGRAPHICAL SKETCH COMMON FORM</h1>" in page
    assert "[COPY INTO SCIENCV: PERSONAL STATEMENT]" in page
    assert "<h3>Contribution 2</h3>" in page
    assert "&lt;b&gt;tags&lt;/b&gt; &amp; symbols." in page
    assert "<b>tags</b>" not in page


def test_draft_is_deterministic(template):
    assert _draft(template, payload=PAYLOAD) == _draft(template, payload=PAYLOAD)


def test_repeated_products_section_keeps_every_citation(template):
    extra = "1. Researcher JQ, Kim H. (2021). Chaperone capture of folding intermediates. Cell. PMID: 33456789"
    text = biosketch_text().replace(
        "\n\nOther Significant Products\n",
        f"\n\nRelated Products\n{extra}\n\nOther Significant Products\n",
    )
    outcome = validate_template(text, template)
    assert [s.id for s in outcome.detected_sections].count("products_related_to_project") == 2
    md = generate_corrected_draft(outcome.detected_sections, template, outcome.biosketch_data).markdown
    assert "1. Researcher JQ, Lee K (2020). Enzyme kinetics in yeast." in md
    assert "2. Researcher JQ, Park S (2019). Protein folding dynamics." in md
    assert "3. Researcher JQ, Kim H (2021). Chaperone capture of folding intermediates." in md


def test_repeated_contributions_section_keeps_every_entry(template):
    extra = "3. We showed that lipid packing sets the rate at which transporters leave the folding pathway in yeast."
    text = biosketch_text() + "\nContributions to Science\n" + extra + "\n"
    outcome = validate_template(text, template)
    assert len(outcome.biosketch_data.contributions_to_science) == 1
    plan = plan_draft(outcome.detected_sections, template, outcome.biosketch_data)
    contributions = plan.parts[1].sections[2].blocks[0]
    assert [d.split(" ")[1] for d, _ in contributions.entries] == ["established", "developed", "showed"]

import pytest

from biosketch.headings import HeadingResolver, is_heading_candidate, is_ignorable_heading, normalize_heading


@pytest.mark.parametrize("raw, key", [
    ("A. Personal Statement", "personal statement"),
    ("III. Contributions to Science", "contributions to science"),
    ("2) Honors:", "honors"),
    ("Personal   Statement -", "personal statement"),
    ("honorshonors", "honors"),
    ("", ""),
])
def test_normalize_heading(raw, key):
    assert normalize_heading(raw) == key


def test_normalize_keeps_non_doubled_text():
    assert normalize_heading("Positions and Appointments") == "positions and appointments"


def test_heading_candidate_shape():
    assert is_heading_candidate("RESEARCH SUPPORT", 80, True)
    assert not is_heading_candidate("RESEARCH SUPPORT", 80, False)
    assert is_heading_candidate("Research Support (ongoing)", 80, True)
    assert not is_heading_candidate("x" * 81, 80, True)
    assert not is_heading_candidate("2019 2020", 80, True)
    assert not is_heading_candidate("Boston, MA, USA", 80, True)
    assert not is_heading_candidate("this line is plain lower case prose", 80, True)
    assert not is_heading_candidate(" ".join(["Word"] * 11), 80, True)


def test_ignorable_headings():
    assert is_ignorable_heading("OMB No. 0925-0001")
    assert is_ignorable_heading("   ")
    assert not is_ignorable_heading("Research Support")


def test_resolver_exact_and_variant(template):
    r = HeadingResolver(template)
    assert r.resolve("Personal Statement").id == "personal_statement"
    assert r.resolve("C. Positions and Appointments").id == "appointments_and_positions"
    assert r.resolve("Education/Training").id == "professional_preparation"
    assert r.resolve("Honors (optional)").id == "honors"


def test_resolver_prefix_then_substring(template):
    r = HeadingResolver(template)
    # prefix: known key followed by extra words
    assert r.resolve("Contributions to Science and Impact").id == "contributions_to_science"
    # substring: known key inside a heading-shaped line
    assert r.resolve("Selected Honors").id == "honors"


def test_resolver_gates_fuzzy_match_on_shape(template):
    r = HeadingResolver(template)
    prose = "our honors program trained many students over the last decade in the lab"
    assert r.resolve(prose) is None
    assert r.resolve("") is None


def test_resolver_prefers_longest_key(template):
    r = HeadingResolver(template)
    assert r.resolve("Selected Other Significant Products").id == "other_significant_products"
    assert r.keys == sorted(r.keys, key=len, reverse=True)

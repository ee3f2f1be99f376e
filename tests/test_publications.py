import pytest

from biosketch.contracts import Publication
from biosketch.publications import (
    extract_publications,
    format_citation,
    parse_citation,
    split_citation_blocks,
)

DOI_CITATION = "Researcher JQ, Lee K. (2020). Enzyme kinetics in yeast. J Mol Biol. doi:10.1016/j.jmb.2020.01.001"
PMID_CITATION = "Researcher JQ, Park S. (2019). Protein folding dynamics. Nature. PMID: 31234567"


def test_split_blocks_on_enumerators_and_blank_lines():
    text = "\n".join([
        "1. Smith J (2020). A title here. J Chem.",
        "2) Doe A. Another one. Science 2019.",
        "continued on the next line",
        "",
        "short",
        "• Roe B. Bulleted citation. Cell.",
    ])
    assert split_citation_blocks(text) == [
        "Smith J (2020). A title here. J Chem.",
        "Doe A. Another one. Science 2019. continued on the next line",
        "Roe B. Bulleted citation. Cell.",
    ]


def test_blocks_under_eleven_chars_are_dropped():
    assert split_citation_blocks("1. Ten chars\n2. 0123456789") == []
    assert split_citation_blocks("- abcdefghij\n- abcdefghijk") == ["abcdefghijk"]
    assert split_citation_blocks("") == []


def test_parse_doi_citation():
    pub = parse_citation(DOI_CITATION)
    assert pub.year == 2020
    assert pub.authors == "Researcher JQ, Lee K"
    assert pub.title == "Enzyme kinetics in yeast"
    assert pub.journal_or_source.startswith("J Mol Biol")
    assert pub.doi_or_pmid == "10.1016/j.jmb.2020.01.001"
    assert pub.raw_citation == DOI_CITATION
    assert pub.confidence == pytest.approx(0.95)


def test_parse_pmid_citation():
    pub = parse_citation(PMID_CITATION)
    assert pub.year == 2019
    assert pub.doi_or_pmid == "31234567"
    assert pub.title == "Protein folding dynamics"


def test_doi_preferred_over_pmid():
    pub = parse_citation("Roe B (2018). Both ids. Cell. doi:10.1000/xyz123 PMID: 29876543")
    assert pub.doi_or_pmid == "10.1000/xyz123"


def test_parse_without_year():
    pub = parse_citation("Smith J. A study of things. Journal X.")
    assert pub.year is None
    assert pub.authors == "Smith J"
    assert pub.title == "A study of things"
    assert pub.journal_or_source == "Journal X."
    assert pub.confidence == pytest.approx(0.55)


def test_parse_is_deterministic():
    assert parse_citation(DOI_CITATION) == parse_citation(DOI_CITATION)


def test_low_confidence_publications_are_kept():
    pubs = extract_publications("1. an unstructured reference with nothing to anchor on")
    assert len(pubs) == 1
    assert pubs[0].year is None and pubs[0].doi_or_pmid is None
    assert pubs[0].confidence < 0.7


def test_format_citation():
    pub = Publication(
        authors="Doe A",
        year=2019,
        title="On things",
        journal_or_source="Science.",
        doi_or_pmid="12345678",
        raw_citation="",
        confidence=1.0,
    )
    assert format_citation(pub) == "Doe A (2019). On things. Science. 12345678"


@pytest.mark.parametrize("raw, identifier", [
    (DOI_CITATION, "10.1016/j.jmb.2020.01.001"),
    (PMID_CITATION, "31234567"),
])
def test_format_citation_prints_identifier_once(raw, identifier):
    formatted = format_citation(parse_citation(raw))
    assert formatted.count(identifier) == 1
    assert formatted.startswith("Researcher JQ")
    assert not formatted.endswith(f". {identifier}")

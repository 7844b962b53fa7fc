"""Tests for the conversion entry points."""

import pytest

from normamd.parser import (
    ParseError,
    SectionType,
    from_xml,
    xml_to_markdown,
)

LATIN1_AKN = (
    '<?xml version="1.0" encoding="ISO-8859-1"?>'
    "<akomaNtoso><act><preface><docTitle>Città di Roma</docTitle>"
    "</preface></act></akomaNtoso>"
)


def test_parse_error_is_value_error() -> None:
    assert issubclass(ParseError, ValueError)


@pytest.mark.parametrize("data", [b"plain text", ""])
def test_unparseable_input(data: bytes | str) -> None:
    with pytest.raises(ParseError):
        from_xml(data)


def test_declared_encoding_is_honoured() -> None:
    document = from_xml(LATIN1_AKN.encode("latin-1"))
    assert document.title == "Città di Roma"


def test_metadata_is_kept() -> None:
    document = from_xml(
        LATIN1_AKN,
        code="C1",
        name="Roma",
        publication_date="2020-01-01",
        vigenza="2024-01-01",
    )
    assert (document.code, document.name) == ("C1", "Roma")
    assert document.publication_date == "2020-01-01"
    assert document.vigenza == "2024-01-01"


def test_self_closing_elements_are_tolerated() -> None:
    markup = (
        "<akomaNtoso><act><preface><docTitle>Legge</docTitle></preface>"
        '<body><article eId="art_1"><num>Art. 1</num>'
        "<heading>Uno<br/></heading><paragraph><num>1.</num><content>"
        "<p>Prima riga<eol/>seconda riga</p></content></paragraph>"
        "</article></body></act></akomaNtoso>"
    )
    document = from_xml(markup)
    body = document.sections[-1]

    assert body.section_type is SectionType.BODY
    assert body.children[0].content == [
        "1\\. Prima riga",
        "seconda riga",
    ]


def test_unknown_markup_is_read_as_akn() -> None:
    markdown = xml_to_markdown("<documento><p>Testo</p></documento>")
    assert markdown == ""

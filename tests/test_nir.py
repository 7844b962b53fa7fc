"""Tests for the NormeInRete tree builder."""

from __future__ import annotations

import pytest

from normamd.parser import (
    Document,
    DocumentSection,
    SectionType,
    from_xml,
)
from normamd.parser.nir import comma_number, indent_prefix, strip_token

NIR_HEAD = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<NIR xmlns="http://www.normeinrete.it/nir/2.2/"'
    ' xmlns:h="http://www.w3.org/HTML/1999/xhtml"'
    ' xmlns:xlink="http://www.w3.org/1999/xlink">'
)


def _nir(articolato: str, before: str = "", after: str = "") -> str:
    return (
        f"{NIR_HEAD}<Legge>"
        "<intestazione><titoloDoc>LEGGE 1 gennaio 2020, n. 1</titoloDoc>"
        f"</intestazione>{before}"
        f"<articolato>{articolato}</articolato>{after}</Legge></NIR>"
    )


def _body(document: Document) -> DocumentSection:
    return next(
        section
        for section in document.sections
        if section.section_type is SectionType.BODY
    )


SWALLOWED_PREAMBLE = """
<articolo id="1">
  <num>Art. 1.</num>
  <comma id="1">
    <corpo>
      <h:p>IL PRESIDENTE DELLA REPUBBLICA</h:p>
      <h:p>Promulga la seguente legge:</h:p>
      <h:p h:style="text-align: center;">Art. 1</h:p>
      <h:p>Oggetto</h:p>
      <h:p>1. La presente legge disciplina la materia.</h:p>
    </corpo>
  </comma>
</articolo>
"""

FALLBACK_RUBRICA = """
<articolo id="2">
  <num>Art. 2</num>
  <comma id="1">
    <corpo>
      <h:p h:style="text-align: center;">Definizioni</h:p>
      <h:p>1. Ai fini della presente legge si intende per ente
        un soggetto.</h:p>
    </corpo>
  </comma>
</articolo>
"""

REPEATED_NUMBER_RUBRICA = """
<articolo id="5">
  <num>Art. 5</num>
  <comma id="1">
    <corpo>
      <h:p>Art. 5</h:p>
      <h:p>Disposizioni finanziarie</h:p>
      <h:p>1. Agli oneri si provvede con le risorse disponibili.</h:p>
    </corpo>
  </comma>
</articolo>
"""

MERGED_COMMAS = """
<articolo id="3">
  <num>Art. 3</num>
  <rubrica>Procedure</rubrica>
  <comma id="1">
    <corpo>
      <h:p>1. Primo comma, come previsto dal</h:p>
      <h:p>2. Secondo comma.</h:p>
      <h:p>1. riferimento al comma precedente.</h:p>
      <h:p>3. Terzo comma.</h:p>
    </corpo>
  </comma>
</articolo>
"""

NUMBERED_COMMAS = """
<articolo id="4">
  <num>Art. 4</num>
  <rubrica>Termini</rubrica>
  <comma id="1"><num>1.</num><corpo>Il termine e' fissato.</corpo></comma>
  <comma id="2"><num>2.</num><corpo>2. Resta fermo il termine.</corpo></comma>
</articolo>
"""

CONTAINERS = """
<libro id="1">
  <num>Libro I</num>
  <capo id="1">
    <num>Capo I</num>
    <rubrica>Principi generali</rubrica>
    <articolo id="6">
      <num>Art. 6 bis</num>
      <rubrica>Finalita'</rubrica>
      <comma id="1"><corpo>1. La legge persegue finalita' pubbliche.</corpo>
      </comma>
    </articolo>
  </capo>
</libro>
"""

FORMULA = """
<formulainiziale>
  <h:p>LA CAMERA DEI DEPUTATI ED IL SENATO DELLA REPUBBLICA</h:p>
  <h:p>hanno approvato;</h:p>
</formulainiziale>
"""

ANNEXES = """
<annessi>
  <annesso id="all1">
    <testata>
      <denAnnesso>Allegato 1</denAnnesso>
      <titAnnesso>Tabella dei valori</titAnnesso>
    </testata>
    <rifesterno xlink:href="https://example.org/all1.pdf"/>
  </annesso>
  <annesso id="all2">
    <testata><denAnnesso>Allegato 2</denAnnesso></testata>
    <h:p>Elenco delle sedi.</h:p>
  </annesso>
</annessi>
"""


def test_title_from_intestazione() -> None:
    document = from_xml(_nir(""))
    assert document.title == "LEGGE 1 gennaio 2020, n. 1"


def test_swallowed_preamble_is_promoted() -> None:
    document = from_xml(_nir(SWALLOWED_PREAMBLE).encode())

    preamble = document.sections[0]
    assert preamble.section_type is SectionType.PREAMBLE
    assert preamble.content == [
        "IL PRESIDENTE DELLA REPUBBLICA",
        "Promulga la seguente legge:",
    ]

    article = _body(document).children[0]
    assert article.title == "Art. 1 - Oggetto"
    assert article.section_id == "art_1"
    assert article.content == ["1\\. La presente legge disciplina la materia."]

    markdown = document.to_markdown()
    assert markdown.index("IL PRESIDENTE") < markdown.index(
        "### Art. 1 - Oggetto"
    )


def test_fallback_rubrica_from_centered_paragraph() -> None:
    document = from_xml(_nir(FALLBACK_RUBRICA))
    article = _body(document).children[0]

    assert article.title == "Art. 2 - Definizioni"
    assert article.content == [
        "1\\. Ai fini della presente legge si intende per ente un soggetto."
    ]


def test_fallback_rubrica_after_repeated_number() -> None:
    document = from_xml(_nir(REPEATED_NUMBER_RUBRICA))
    article = _body(document).children[0]

    assert article.title == "Art. 5 - Disposizioni finanziarie"
    assert article.content == [
        "1\\. Agli oneri si provvede con le risorse disponibili."
    ]


def test_clause_numbering_is_non_decreasing() -> None:
    document = from_xml(_nir(MERGED_COMMAS))
    article = _body(document).children[0]

    assert article.title == "Art. 3 - Procedure"
    assert article.content == [
        "1\\. Primo comma, come previsto dal",
        "2\\. Secondo comma.\n\n1\\. riferimento al comma precedente.",
        "3\\. Terzo comma.",
    ]


def test_comma_number_is_prepended_once() -> None:
    document = from_xml(_nir(NUMBERED_COMMAS))
    article = _body(document).children[0]

    assert article.content == [
        "1\\. Il termine è fissato.",
        "2. Resta fermo il termine.",
    ]
    markdown = document.to_markdown()
    assert "**1\\.** Il termine è fissato." in markdown
    assert "**2.** Resta fermo il termine." in markdown


def test_containers_and_anchors() -> None:
    document = from_xml(_nir(CONTAINERS))
    book = _body(document).children[0]

    assert book.section_type is SectionType.PART
    assert book.title == "Libro I"
    assert book.section_id == "libro_1"

    chapter = book.children[0]
    assert chapter.section_type is SectionType.CHAPTER
    assert chapter.title == "Capo I - Principi generali"
    assert chapter.section_id == "capo_1"

    article = chapter.children[0]
    assert article.title == "Art. 6-bis - Finalità"
    assert article.section_id == "art_6-bis"
    assert article.content == ["1. La legge persegue finalità pubbliche."]


def test_formula_becomes_preamble() -> None:
    document = from_xml(_nir(CONTAINERS, before=FORMULA))
    preamble = document.sections[0]

    assert preamble.section_type is SectionType.PREAMBLE
    assert preamble.content == [
        "LA CAMERA DEI DEPUTATI ED IL SENATO DELLA REPUBBLICA",
        "hanno approvato;",
    ]


def test_empty_formula_adds_no_preamble() -> None:
    document = from_xml(_nir(CONTAINERS))
    assert [section.section_type for section in document.sections] == [
        SectionType.BODY
    ]


def test_annexes() -> None:
    document = from_xml(_nir("", after=ANNEXES))
    annexes = document.sections[-1]

    assert annexes.title == "Allegati"
    first, second = annexes.children
    assert first.title == "Allegato 1 - Tabella dei valori"
    assert first.section_id == "all1"
    assert first.content == ["[Vedi Allegato](https://example.org/all1.pdf)"]
    assert second.title == "Allegato 2"
    assert second.content == ["Elenco delle sedi."]


def test_indent_prefix() -> None:
    assert indent_prefix("padding-left: 4px;") == "> "
    assert indent_prefix("color: red; padding-left:8px") == "> > >  "
    assert indent_prefix("padding-left: 2px") == ""
    assert indent_prefix("") == ""


def test_indented_paragraph_and_ndr() -> None:
    articolato = (
        '<articolo id="7"><num>Art. 7</num><rubrica>Rinvii</rubrica>'
        '<comma id="1"><corpo><h:p>1. Si applicano:</h:p>'
        '<h:p h:style="padding-left: 4px;">a) le norme vigenti'
        '<ndr num="1" value="(1)">nota</ndr></h:p></corpo></comma>'
        "</articolo>"
    )
    document = from_xml(_nir(articolato))
    article = _body(document).children[0]

    assert article.content == [
        "1\\. Si applicano:\n\n> a) le norme vigenti (1)"
    ]


def test_comma_number() -> None:
    assert comma_number("12. ") == 12
    assert comma_number("((3-bis\\. ") == 3
    assert comma_number("") == 0


def _marked_article(num: str, marker: str, style: str) -> str:
    return (
        f'<articolo id="1"><num>{num}</num><comma id="1"><corpo>'
        "<h:p>IL PRESIDENTE DELLA REPUBBLICA</h:p>"
        f"<h:p{style}>{marker}</h:p>"
        "<h:p>1. Testo.</h:p></corpo></comma></articolo>"
    )


@pytest.mark.parametrize(
    ("num", "style"),
    [
        ("Art. 2", ' h:style="text-align: center;"'),
        ("Art. 1", ""),
    ],
)
def test_preamble_split_needs_centered_first_article(
    num: str, style: str
) -> None:
    document = from_xml(_nir(_marked_article(num, num, style)))

    assert [section.section_type for section in document.sections] == [
        SectionType.BODY
    ]
    article = _body(document).children[0]
    assert article.title == num
    assert article.content[0].startswith("IL PRESIDENTE DELLA REPUBBLICA")


ZH2_MARKER = """
<articolo id="1">
  <num>Art. 1.</num>
  <comma id="1">
    <corpo>
      <h:p>IL PRESIDENTE DELLA REPUBBLICA</h:p>
      <h:p h:class="zh2">ART. 1.</h:p>
      <h:p h:class="zh2">Finalita'</h:p>
      <h:p>1. Testo.</h:p>
    </corpo>
  </comma>
</articolo>
"""


def test_preamble_split_on_zh2_class() -> None:
    document = from_xml(_nir(ZH2_MARKER))

    preamble, body = document.sections
    assert preamble.section_type is SectionType.PREAMBLE
    assert preamble.content == ["IL PRESIDENTE DELLA REPUBBLICA"]

    article = body.children[0]
    assert article.title == "Art. 1 - Finalità"
    assert article.content == ["1\\. Testo."]


CLAUSE_TABLE = """
<articolo id="8">
  <num>Art. 8</num>
  <rubrica>Importi</rubrica>
  <comma id="1">
    <num>1.</num>
    <corpo>
      <h:p>Gli importi sono i seguenti:</h:p>
      <h:table>
        <h:tr><h:td>A</h:td><h:td>B</h:td></h:tr>
        <h:tr><h:td>1</h:td><h:td>2</h:td></h:tr>
      </h:table>
    </corpo>
  </comma>
</articolo>
"""


def test_table_in_clause_keeps_rows() -> None:
    document = from_xml(_nir(CLAUSE_TABLE))
    article = _body(document).children[0]

    assert article.content == [
        "1\\. Gli importi sono i seguenti:\n\n"
        "| A | B |\n| --- | --- |\n| 1 | 2 |"
    ]


def test_html_link_in_clause() -> None:
    articolato = (
        '<articolo id="9"><num>Art. 9</num><rubrica>Rinvii</rubrica>'
        '<comma id="1"><corpo><h:p>1. Vedi il <h:a '
        'href="https://example.org/x">sito</h:a> ufficiale.</h:p>'
        "</corpo></comma></articolo>"
    )
    document = from_xml(_nir(articolato))
    article = _body(document).children[0]

    assert article.content == [
        "1\\. Vedi il [sito](https://example.org/x) ufficiale."
    ]


def test_cdata_is_plain_text() -> None:
    articolato = (
        '<articolo id="9"><num>Art. 9</num><rubrica>Testo</rubrica>'
        '<comma id="1"><corpo><h:p>1. Testo <![CDATA[citato]]></h:p>'
        "</corpo></comma></articolo>"
    )
    document = from_xml(_nir(articolato))
    article = _body(document).children[0]

    assert article.content == ["1\\. Testo citato"]


REPEATED_PREFIXES = """
<articolo id="1">
  <num>Art. 1</num>
  <rubrica>Modifiche</rubrica>
  <comma id="1">
    <corpo>
      <h:p>Modifiche</h:p>
      <h:p>1. Le modifiche decorrono dal 2021.</h:p>
    </corpo>
  </comma>
  <comma id="2">
    <corpo><h:p>Modifiche al decreto n. 5 sono abrogate.</h:p></corpo>
  </comma>
  <comma id="3">
    <corpo><h:p>Art. 12 del decreto citato e' abrogato.</h:p></corpo>
  </comma>
</articolo>
"""


def test_article_number_and_heading_stripped_as_whole_words() -> None:
    document = from_xml(_nir(REPEATED_PREFIXES))
    article = _body(document).children[0]

    assert article.title == "Art. 1 - Modifiche"
    assert article.content == [
        "1\\. Le modifiche decorrono dal 2021.",
        "Modifiche al decreto n. 5 sono abrogate.",
        "Art. 12 del decreto citato è abrogato.",
    ]


def test_strip_token() -> None:
    assert strip_token("Art. 1 Oggetto", "Art. 1") == " Oggetto"
    assert strip_token("Art. 12 Oggetto", "Art. 1") == "Art. 12 Oggetto"
    assert strip_token("Art. 1-bis", "Art. 1") == "Art. 1-bis"
    assert strip_token("Oggetto", "Oggetto", heading=True) == ""
    assert (
        strip_token("Oggetto del decreto", "Oggetto", heading=True)
        == "Oggetto del decreto"
    )
    assert strip_token("testo", "") == "testo"

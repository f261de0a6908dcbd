"""
Tests for the heading scraper.
"""
import pytest
import requests
from unittest.mock import Mock

from tweet_search.headings import (
    Heading,
    clean_heading_text,
    decode_html_entities,
    extract_headings,
    scrape_headings,
)

PAGE = """
<html><body>
<h2 class="title"><a href="/nota/1">Suba de <b>tasas</b></a></h2>
<h1>Portada &amp; noticias</h1>
<h3>   Dólar
    blue   </h3>
<h2></h2>
<h2>Cristina &quot;habló&quot;</h2>
</body></html>
"""


def test_extract_headings_grouped_by_level():
    headings = extract_headings(PAGE)

    assert headings == [
        Heading(level=1, text="Portada & noticias"),
        Heading(level=2, text="Suba de tasas"),
        Heading(level=2, text='Cristina "habló"'),
        Heading(level=3, text="Dólar blue"),
    ]


def test_decode_unknown_entity_kept():
    assert decode_html_entities("a &nbsp;b &foo;") == "a  b &foo;"


def test_clean_heading_text():
    assert clean_heading_text("<h1> <span>Hola</span>\n mundo </h1>") == "Hola mundo"


def test_scrape_headings_decodes_latin1():
    response = Mock()
    response.raise_for_status = Mock()
    response.content = "<h1>Econom\xeda</h1>".encode("iso-8859-1")
    session = Mock()
    session.get.return_value = response

    headings = scrape_headings("https://example.test/", session=session)

    assert headings == [Heading(level=1, text="Economía")]


def test_scrape_headings_failure():
    session = Mock()
    session.get.side_effect = requests.ConnectionError("refused")

    with pytest.raises(RuntimeError):
        scrape_headings("https://example.test/", session=session)

"""
Heading scraper used to seed example queries in the search UI.
"""
import re
from typing import List

import requests
from pydantic import BaseModel

HEADING_PATTERNS = [
    re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<h2[^>]*>(.*?)</h2>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<h3[^>]*>(.*?)</h3>", re.IGNORECASE | re.DOTALL),
]

HTML_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&apos;": "'",
    "&nbsp;": " ",
    "&copy;": "©",
    "&reg;": "®",
    "&trade;": "™",
}

_ENTITY_RE = re.compile(r"&[a-zA-Z0-9#]+;")
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


class Heading(BaseModel):
    level: int
    text: str


def decode_html_entities(text: str) -> str:
    """Decode the common named entities; unknown ones are left as-is."""
    return _ENTITY_RE.sub(lambda m: HTML_ENTITIES.get(m.group(0), m.group(0)), text)


def clean_heading_text(text: str) -> str:
    return _WS_RE.sub(" ", _TAG_RE.sub("", text)).strip()


def extract_headings(html: str) -> List[Heading]:
    """
    Extract h1, h2 and h3 headings from HTML.

    Headings are grouped by level (all h1 first), in document order within a level.
    """
    headings = []
    for level, pattern in enumerate(HEADING_PATTERNS, start=1):
        for match in pattern.finditer(html):
            text = decode_html_entities(clean_heading_text(match.group(0)))
            if text:
                headings.append(Heading(level=level, text=text))
    return headings


def scrape_headings(url: str, timeout: float = 15, session=None) -> List[Heading]:
    """
    Download a page and extract its headings.

    Raises:
        RuntimeError: If the page cannot be fetched
    """
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise RuntimeError(f"Failed to scrape headings from {url}: {e}") from e

    html = response.content.decode("iso-8859-1", errors="replace")
    return extract_headings(html)

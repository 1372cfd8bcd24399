"""Small BeautifulSoup helpers shared by the markup-based extractors."""

from __future__ import annotations

from typing import Union

from bs4 import BeautifulSoup, Tag

PARSER = "html.parser"


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, PARSER)


def element_text(el: Tag) -> str:
    """Visible text of an element with whitespace collapsed."""
    return " ".join(el.get_text(" ", strip=True).split())


def block_text(el: Tag) -> Union[str, list[str]]:
    """Text of a block that may hold several steps.

    List items or paragraphs become an explicit list; otherwise the text is
    returned as one blob with <br> turned into line breaks.
    """
    items = el.find_all("li")
    if items:
        return [t for t in (element_text(li) for li in items) if t]
    paragraphs = el.find_all("p")
    if len(paragraphs) > 1:
        return [t for t in (element_text(p) for p in paragraphs) if t]
    for br in el.find_all("br"):
        br.replace_with("\n")
    text = el.get_text(" ", strip=False)
    return "\n".join(" ".join(line.split()) for line in text.splitlines()).strip()

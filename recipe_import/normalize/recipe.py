"""Map an extraction candidate onto the canonical Recipe."""

from __future__ import annotations

import html
import logging
import math
import re
from typing import Any, List, Optional
from urllib.parse import urljoin, urlparse

from recipe_import.errors import MalformedStructuredDataError
from recipe_import.models.recipe_schema import ExtractionCandidate, Ingredient, Recipe
from recipe_import.normalize.durations import to_minutes
from recipe_import.normalize.ingredients import normalize_ingredient

logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]+>")
_BREAK = re.compile(r"<br\s*/?>|</p\s*>|</li\s*>|</div\s*>", re.I)
_STEP_NUMBER = re.compile(r"^\s*(?:schritt\s+|step\s+)?\d+\s*[.):]\s+", re.I)
_INLINE_STEP = re.compile(r"\s+(?=\d+[.)]\s)")
_SENTENCE_END = re.compile(r"[.!?]+[\"”»)]?\s+(?=[A-ZÄÖÜ])")
_INT = re.compile(r"\d+")
_AUTHOR_SUFFIX = re.compile(r"\s+von\s+\S+$", re.I)

# words ending in a dot that do not end a sentence
ABBREVIATIONS = {
    "z.b.", "ca.", "bzw.", "evtl.", "ggf.", "usw.", "etc.", "d.h.", "u.a.",
    "inkl.", "ggfs.", "e.g.", "i.e.", "approx.", "vs.", "nr.",
}


def clean_text(value: Any) -> str:
    """Unescape entities, drop tags and collapse whitespace."""
    if value is None:
        return ""
    text = html.unescape(_TAG.sub(" ", str(value)))
    # entities such as &lt;b&gt; only turn into tags after unescaping
    text = _TAG.sub(" ", text)
    return " ".join(text.split())


def clean_title(title: str) -> str:
    """Drop a trailing ' von <author>' as appended by community recipe sites."""
    return _AUTHOR_SUFFIX.sub("", title).strip()


def _clean_block(value: str) -> str:
    """Like clean_text but keeps line breaks from <br>, </p> and newlines."""
    text = _BREAK.sub("\n", value)
    text = html.unescape(_TAG.sub(" ", text))
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return "\n".join(lines).strip()


def _split_sentences(text: str) -> List[str]:
    steps: List[str] = []
    start = 0
    for m in _SENTENCE_END.finditer(text):
        words = text[start : m.end()].split()
        if words and words[-1].lower() in ABBREVIATIONS:
            continue
        steps.append(text[start : m.end()].strip())
        start = m.end()
    tail = text[start:].strip()
    if tail:
        steps.append(tail)
    return steps


def split_instructions(value: Any) -> List[str]:
    """Return ordered steps.

    Explicit lists keep their entries as given (only cleaned). A text blob is
    split on line breaks, or on sentence ends when it is a single paragraph.
    """
    if value is None:
        return []
    if isinstance(value, list):
        return [s for s in (clean_text(item) for item in value) if s]
    blob = _clean_block(str(value))
    if not blob:
        return []
    lines = [line for line in blob.splitlines() if line.strip()]
    if len(lines) > 1:
        steps = [_STEP_NUMBER.sub("", line).strip() for line in lines]
        return [s for s in steps if s]
    line = lines[0]
    if _STEP_NUMBER.match(line):
        # '1. Mehl sieben. 2. Eier unterrühren.' keeps its own numbering
        parts = _INLINE_STEP.split(line)
    else:
        parts = _split_sentences(line)
    return [s for s in (_STEP_NUMBER.sub("", p).strip() for p in parts) if s]


def resolve_images(raw_images: List[Any], base_url: str) -> List[str]:
    """Absolute http(s) image urls, first occurrence wins."""
    images: List[str] = []
    for raw in raw_images:
        if not isinstance(raw, str) or not raw.strip():
            continue
        try:
            url = urljoin(base_url, html.unescape(raw.strip()))
            scheme = urlparse(url).scheme
        except ValueError:
            logger.debug("Dropping unparsable image url: %s", raw)
            continue
        if scheme not in ("http", "https"):
            logger.debug("Dropping image with unsupported scheme: %s", raw)
            continue
        if url not in images:
            images.append(url)
    return images


def first_int(value: Any) -> Optional[int]:
    """First whole number in a yield or nutrition value ('4 Portionen' -> 4)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if math.isinf(value) or math.isnan(value):
            return None
        return int(value) if value > 0 else None
    m = _INT.search(clean_text(value))
    if not m:
        return None
    number = int(m.group(0))
    return number if number > 0 else None


def _ingredients(raw: List[Any]) -> List[Ingredient]:
    found = []
    for item in raw:
        ing = normalize_ingredient(item, clean_text)
        if ing is not None:
            found.append(ing)
    return found


def _derive_rest_time(total: Optional[int], prep: Optional[int], cook: Optional[int]) -> Optional[int]:
    if total is None or prep is None or cook is None:
        return None
    rest = total - prep - cook
    return rest if rest > 0 else None


def normalize_candidate(candidate: ExtractionCandidate, *, base_url: str, source_url: str) -> Recipe:
    """Build a Recipe from a candidate.

    Raises MalformedStructuredDataError when the title is empty so the caller
    can move on to the next extractor. Everything else is best effort.
    """
    title = clean_title(clean_text(candidate.title))
    if not title:
        raise MalformedStructuredDataError(f"{candidate.extractor} yielded an empty title")

    prep = to_minutes(candidate.prep_time)
    cook = to_minutes(candidate.cook_time)
    total = to_minutes(candidate.total_time)
    rest = to_minutes(candidate.rest_time)
    if rest is None:
        rest = _derive_rest_time(total, prep, cook)
    if total is None and prep is not None and cook is not None:
        total = prep + cook + (rest or 0)

    return Recipe(
        title=title,
        images=resolve_images(candidate.images, base_url),
        ingredients=_ingredients(candidate.ingredients),
        instructions=split_instructions(candidate.instructions),
        prep_time=prep,
        cook_time=cook,
        rest_time=rest,
        total_time=total,
        calories=first_int(candidate.calories),
        servings=first_int(candidate.servings),
        source_url=source_url,
    )

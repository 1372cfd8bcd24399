"""Read schema.org Recipe microdata (itemscope/itemprop attributes)."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Optional

from bs4 import Tag

from recipe_import.ingest.markup import block_text, element_text, make_soup
from recipe_import.models.recipe_schema import ExtractionCandidate, FetchedDocument

logger = logging.getLogger(__name__)

NAME = "microdata"

_RECIPE_TYPE = re.compile(r"schema\.org/Recipe\b", re.I)
_SRC_TAGS = ("img", "audio", "video", "source", "embed", "iframe", "track")
_HREF_TAGS = ("a", "area", "link")


def _prop_names(el: Tag) -> list[str]:
    return (el.get("itemprop") or "").split()


def _iter_props(scope: Tag) -> Iterator[Tag]:
    """Yield elements carrying itemprop that belong to this scope.

    Properties inside a nested itemscope belong to the nested item.
    """
    for child in scope.children:
        if not isinstance(child, Tag):
            continue
        if child.has_attr("itemprop"):
            yield child
        if child.has_attr("itemscope"):
            continue
        yield from _iter_props(child)


def _props(scope: Tag) -> dict[str, list[Tag]]:
    props: dict[str, list[Tag]] = {}
    for el in _iter_props(scope):
        for name in _prop_names(el):
            props.setdefault(name, []).append(el)
    return props


def _prop_value(el: Tag) -> str:
    tag = el.name
    if tag == "meta":
        return el.get("content", "")
    if tag in _SRC_TAGS:
        return el.get("src") or el.get("data-src") or ""
    if tag in _HREF_TAGS:
        return el.get("href", "")
    if tag == "object":
        return el.get("data", "")
    if tag in ("data", "meter"):
        return el.get("value", "")
    if tag == "time" and el.has_attr("datetime"):
        return el["datetime"]
    if el.has_attr("content"):
        return el["content"]
    return element_text(el)


def _first_value(props: dict[str, list[Tag]], *names: str) -> Optional[str]:
    for name in names:
        for el in props.get(name, []):
            value = _prop_value(el).strip()
            if value:
                return value
    return None


def _image_value(el: Tag) -> Optional[str]:
    if el.has_attr("itemscope"):
        nested = _props(el)
        return _first_value(nested, "url", "contentUrl")
    return _prop_value(el) or None


def _instructions(elements: list[Tag]) -> Any:
    if not elements:
        return None
    if len(elements) == 1 and not elements[0].has_attr("itemscope"):
        return block_text(elements[0])
    steps: list[str] = []
    for el in elements:
        if el.has_attr("itemscope"):
            nested = _props(el)
            text = _first_value(nested, "text", "name") or element_text(el)
        else:
            text = _prop_value(el)
        if text and text.strip():
            steps.append(text)
    return steps


def _calories(props: dict[str, list[Tag]]) -> Optional[str]:
    for el in props.get("nutrition", []):
        if el.has_attr("itemscope"):
            value = _first_value(_props(el), "calories")
            if value:
                return value
    return _first_value(props, "calories")


def extract_microdata(doc: FetchedDocument) -> Optional[ExtractionCandidate]:
    """Return the first Recipe item scope on the page as a candidate, or None."""
    soup = make_soup(doc.text)
    scope = soup.find(attrs={"itemtype": _RECIPE_TYPE})
    if scope is None:
        return None

    props = _props(scope)
    ingredients = [
        _prop_value(el) for el in props.get("recipeIngredient", []) + props.get("ingredients", [])
    ]
    ingredients = [i for i in ingredients if i.strip()]
    instructions = _instructions(props.get("recipeInstructions", []))
    title = _first_value(props, "name")

    if not title and not ingredients and not instructions:
        logger.debug("Recipe microdata scope on %s has no usable properties", doc.final_url)
        return None

    images = [img for img in (_image_value(el) for el in props.get("image", [])) if img]
    extras = {}
    description = _first_value(props, "description")
    if description:
        extras["description"] = description
    return ExtractionCandidate(
        extractor=NAME,
        title=title,
        images=images,
        ingredients=ingredients,
        instructions=instructions,
        prep_time=_first_value(props, "prepTime"),
        cook_time=_first_value(props, "cookTime"),
        total_time=_first_value(props, "totalTime"),
        servings=_first_value(props, "recipeYield", "yield"),
        calories=_calories(props),
        **extras,
    )

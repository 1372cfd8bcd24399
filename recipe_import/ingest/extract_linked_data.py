"""Find schema.org Recipe objects in JSON-LD script blocks."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Optional

from recipe_import.models.recipe_schema import ExtractionCandidate, FetchedDocument

logger = logging.getLogger(__name__)

NAME = "json-ld"

_JSON_LD_SCRIPT = re.compile(
    r'<script[^>]+type=["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    flags=re.S | re.I,
)

PASSTHROUGH_FIELDS = ("description", "keywords", "recipeCategory", "recipeCuisine", "author")


def _extract_json_ld_blocks(html_text: str) -> tuple[list[Any], int]:
    """Return (parsed blocks, number of blocks that could not be parsed)."""
    blocks: list[Any] = []
    failed = 0
    for m in _JSON_LD_SCRIPT.finditer(html_text):
        body = m.group(1).strip()
        if not body:
            continue
        # some CMSs wrap the payload in CDATA or html comments
        body = re.sub(r"^\s*(?://\s*)?(<!\[CDATA\[|<!--)", "", body)
        body = re.sub(r"(\]\]>|-->)\s*$", "", body).strip()
        try:
            parsed = json.loads(body, strict=False)
        except ValueError:
            # sometimes pages include junk around the object; try the outermost {..}
            start = body.find("{")
            end = body.rfind("}")
            if start == -1 or end == -1:
                failed += 1
                continue
            try:
                parsed = json.loads(body[start : end + 1], strict=False)
            except ValueError:
                failed += 1
                continue
        if isinstance(parsed, list):
            blocks.extend(parsed)
        else:
            blocks.append(parsed)
    return blocks, failed


def _is_recipe(obj: dict) -> bool:
    t = obj.get("@type") or obj.get("type")
    if isinstance(t, list):
        return any(isinstance(x, str) and x.lower().rsplit("/", 1)[-1] == "recipe" for x in t)
    if isinstance(t, str):
        return t.lower().rsplit("/", 1)[-1] == "recipe"
    return False


def _find_recipe_objects(node: Any, depth: int = 0) -> list[dict]:
    if depth > 6:
        return []
    found: list[dict] = []
    if isinstance(node, list):
        for item in node:
            found.extend(_find_recipe_objects(item, depth + 1))
    elif isinstance(node, dict):
        if _is_recipe(node):
            found.append(node)
            return found
        # recipes nest under @graph, mainEntity and friends
        for key in ("@graph", "mainEntity", "mainEntityOfPage", "itemListElement", "item"):
            if key in node:
                found.extend(_find_recipe_objects(node[key], depth + 1))
    return found


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _instruction_texts(item: Any) -> list[str]:
    """Flatten strings, HowToStep and nested HowToSection items into step texts."""
    if isinstance(item, str):
        return [item]
    if isinstance(item, list):
        texts: list[str] = []
        for sub in item:
            texts.extend(_instruction_texts(sub))
        return texts
    if not isinstance(item, dict):
        return []
    if "itemListElement" in item:
        return _instruction_texts(item["itemListElement"])
    for key in ("text", "name", "description"):
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return [value]
    return []


def _image_urls(value: Any) -> list[str]:
    urls: list[str] = []
    for img in _as_list(value):
        if isinstance(img, str):
            urls.append(img)
        elif isinstance(img, dict):
            for key in ("url", "contentUrl", "@id"):
                if isinstance(img.get(key), str):
                    urls.append(img[key])
                    break
    return urls


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _to_candidate(obj: dict) -> ExtractionCandidate:
    ingredients = obj.get("recipeIngredient")
    if ingredients is None:
        ingredients = obj.get("ingredients")
    ingredients = [i if isinstance(i, str) else str(i) for i in _as_list(ingredients) if i]

    raw_instructions = obj.get("recipeInstructions")
    if isinstance(raw_instructions, str):
        instructions: Any = raw_instructions
    elif raw_instructions is None:
        instructions = None
    else:
        instructions = [t for t in _instruction_texts(raw_instructions) if t.strip()]

    images = _image_urls(obj.get("image")) + _image_urls(obj.get("thumbnailUrl"))

    nutrition = obj.get("nutrition")
    calories = nutrition.get("calories") if isinstance(nutrition, dict) else None

    extras = {k: obj[k] for k in PASSTHROUGH_FIELDS if k in obj}
    return ExtractionCandidate(
        extractor=NAME,
        title=obj.get("name") if isinstance(obj.get("name"), str) else None,
        images=images,
        ingredients=ingredients,
        instructions=instructions,
        prep_time=_first(obj.get("prepTime")),
        cook_time=_first(obj.get("cookTime")),
        total_time=_first(obj.get("totalTime")),
        servings=_first(obj.get("recipeYield")),
        calories=calories,
        **extras,
    )


def _completeness(candidate: ExtractionCandidate) -> int:
    instructions = candidate.instructions or ""
    if isinstance(instructions, list):
        text_len = sum(len(s) for s in instructions if isinstance(s, str))
    else:
        text_len = len(instructions)
    return len(candidate.ingredients) * 100 + text_len


def extract_linked_data(doc: FetchedDocument) -> Optional[ExtractionCandidate]:
    """Return the most complete JSON-LD Recipe on the page, or None."""
    blocks, failed = _extract_json_ld_blocks(doc.text)
    if failed:
        logger.debug("Skipped %d unparsable JSON-LD block(s) on %s", failed, doc.final_url)
    recipes: list[dict] = []
    for block in blocks:
        recipes.extend(_find_recipe_objects(block))
    if not recipes:
        return None

    candidates = [_to_candidate(r) for r in recipes]
    # the page may carry teaser recipes next to the main one
    best = max(candidates, key=_completeness)
    logger.debug(
        "Found %d JSON-LD recipe(s), selected one with %d ingredients",
        len(candidates),
        len(best.ingredients),
    )
    return best


def iter_blocks(html_text: str) -> Iterable[Any]:
    """Yield every parsable JSON-LD block (used by scripts/inspect_page.py)."""
    blocks, _ = _extract_json_ld_blocks(html_text)
    return iter(blocks)

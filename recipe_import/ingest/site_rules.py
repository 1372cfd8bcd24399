"""Per-site scraping rules for pages without standard recipe markup.

Rules are data: each entry in schemas/site_rules.json names the domains it
applies to and CSS selectors for the recipe parts. A selector may end in
``@attr`` to read an attribute instead of the element text.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from recipe_import.ingest.markup import block_text, element_text, make_soup
from recipe_import.models.recipe_schema import ExtractionCandidate, FetchedDocument
from recipe_import.normalize.durations import parse_time_text
from recipe_import.normalize.recipe import clean_title
from recipe_import.settings import load_site_rules_file

logger = logging.getLogger(__name__)

NAME_PREFIX = "site"

# rows whose name cell is a table header rather than an ingredient
_HEADER_NAMES = {"zutat", "zutaten", "ingredient", "ingredients"}


class IngredientRows(BaseModel):
    rows: str
    amount: str
    name: str

class IngredientGroups(IngredientRows):
    container: str
    label: Optional[str] = None

class ImageRule(BaseModel):
    selectors: List[str] = Field(default_factory=lambda: ["img"])
    attributes: List[str] = Field(default_factory=lambda: ["src"])
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)

class SiteRule(BaseModel):
    name: str
    domains: List[str]
    title: List[str] = Field(default_factory=lambda: ["h1"])
    ingredients: List[str] = Field(default_factory=list)
    ingredient_rows: Optional[IngredientRows] = None
    ingredient_groups: Optional[IngredientGroups] = None
    instructions: List[str] = Field(default_factory=list)
    images: Optional[ImageRule] = None
    times: Dict[str, List[str]] = Field(default_factory=dict)
    servings: List[str] = Field(default_factory=list)

    def matches(self, host: str) -> bool:
        host = host.lower().rstrip(".")
        return any(host == d or host.endswith("." + d) for d in self.domains)

@lru_cache()
def load_site_rules() -> tuple[SiteRule, ...]:
    """Return the registered rules; loaded once and never mutated."""
    rules = tuple(SiteRule.model_validate(r) for r in load_site_rules_file())
    logger.debug("Loaded %d site rules", len(rules))
    return rules

def rule_for_url(url: str, rules: Optional[tuple[SiteRule, ...]] = None) -> Optional[SiteRule]:
    host = urlparse(url).hostname or ""
    for rule in rules if rules is not None else load_site_rules():
        if rule.matches(host):
            return rule
    return None

def _select_values(soup: BeautifulSoup, selector: str) -> list[str]:
    css, _, attr = selector.partition("@")
    values = []
    for el in soup.select(css):
        value = el.get(attr, "") if attr else element_text(el)
        if isinstance(value, list):
            value = " ".join(value)
        value = value.strip()
        if value:
            values.append(value)
    return values

def _first_value(soup: BeautifulSoup, selectors: List[str]) -> Optional[str]:
    for selector in selectors:
        values = _select_values(soup, selector)
        if values:
            return values[0]
    return None

def _row_ingredients(rows, cells: IngredientRows, group: Optional[str]) -> list[dict]:
    found = []
    for row in rows:
        name_el = row.select_one(cells.name)
        if name_el is None:
            continue
        name = element_text(name_el)
        if not name or name.lower() in _HEADER_NAMES:
            continue
        amount_el = row.select_one(cells.amount)
        amount = element_text(amount_el) if amount_el is not None else ""
        found.append({"amount": amount or None, "name": name, "group": group})
    return found

def _ingredients(soup: BeautifulSoup, rule: SiteRule) -> list[Any]:
    found: list[Any] = []
    if rule.ingredient_groups:
        groups = rule.ingredient_groups
        for container in soup.select(groups.container):
            label_el = container.select_one(groups.label) if groups.label else None
            label = element_text(label_el) if label_el is not None else None
            found.extend(_row_ingredients(container.select(groups.rows), groups, label or None))
    if not found and rule.ingredient_rows:
        found.extend(_row_ingredients(soup.select(rule.ingredient_rows.rows), rule.ingredient_rows, None))
    for selector in rule.ingredients:
        lines = _select_values(soup, selector)
        if lines:
            found.extend(lines)
            break
    return found

def _instructions(soup: BeautifulSoup, rule: SiteRule) -> Any:
    for selector in rule.instructions:
        elements = soup.select(selector)
        if not elements:
            continue
        if len(elements) == 1:
            text = block_text(elements[0])
        else:
            text = [t for t in (element_text(el) for el in elements) if t]
        if text:
            return text
    return None

def _srcset_urls(value: str) -> list[str]:
    return [part.strip().split()[0] for part in value.split(",") if part.strip()]

def _images(soup: BeautifulSoup, html: str, image_rule: Optional[ImageRule]) -> list[str]:
    if image_rule is None:
        return []
    urls: list[str] = []

    def _add(src: str) -> None:
        src = src.replace("\\u002F", "/").replace("\\/", "/").strip()
        if not src or src in urls:
            return
        if image_rule.include and not any(s in src for s in image_rule.include):
            return
        if any(s in src for s in image_rule.exclude):
            return
        urls.append(src)

    for selector in image_rule.selectors:
        for el in soup.select(selector):
            for attr in image_rule.attributes:
                value = el.get(attr)
                if not value:
                    continue
                if attr.endswith("srcset"):
                    for src in _srcset_urls(value):
                        _add(src)
                else:
                    _add(value)
    for pattern in image_rule.patterns:
        for m in re.finditer(pattern, html, flags=re.I):
            _add(m.group(0))
    return urls

def _times(soup: BeautifulSoup, rule: SiteRule) -> dict[str, Optional[int]]:
    times: dict[str, Optional[int]] = {}
    for key in ("prep", "cook", "rest", "total"):
        selectors = rule.times.get(key)
        if not selectors:
            continue
        text = _first_value(soup, selectors)
        times[key] = parse_time_text(text) if text else None
    return times

def apply_rule(rule: SiteRule, doc: FetchedDocument) -> Optional[ExtractionCandidate]:
    """Run one rule against the document; None when it yields no recipe body."""
    soup = make_soup(doc.text)
    ingredients = _ingredients(soup, rule)
    instructions = _instructions(soup, rule)
    if not ingredients and not instructions:
        logger.debug("Site rule %s matched %s but found no ingredients or steps", rule.name, doc.final_url)
        return None
    title = _first_value(soup, rule.title)
    times = _times(soup, rule)
    return ExtractionCandidate(
        extractor=f"{NAME_PREFIX}:{rule.name}",
        title=clean_title(title) if title else None,
        images=_images(soup, doc.text, rule.images),
        ingredients=ingredients,
        instructions=instructions,
        prep_time=times.get("prep"),
        cook_time=times.get("cook"),
        rest_time=times.get("rest"),
        total_time=times.get("total"),
        servings=_first_value(soup, rule.servings),
    )

def extract_site_rules(doc: FetchedDocument) -> Optional[ExtractionCandidate]:
    """Apply the rule registered for the page's domain, if any."""
    rule = rule_for_url(doc.final_url)
    if rule is None:
        return None
    logger.debug("Applying site rule %s to %s", rule.name, doc.final_url)
    return apply_rule(rule, doc)

"""Split ingredient lines into amount, unit and name."""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple, Union

from recipe_import.models.recipe_schema import Ingredient

Amount = Union[int, float, str]

UNITS = {
    # weight / volume
    "g", "gr", "gramm", "kg", "kilo", "kilogramm", "mg",
    "ml", "milliliter", "cl", "dl", "l", "liter",
    # spoons and pinches
    "el", "tl", "esslöffel", "teelöffel", "msp", "messerspitze", "prise", "prisen",
    # pieces and packages
    "stück", "stk", "bund", "dose", "dosen", "zehe", "zehen", "tasse", "tassen",
    "becher", "packung", "pkg", "pck", "päckchen", "scheibe", "scheiben",
    "würfel", "handvoll", "glas", "gläser", "blatt", "zweig", "zweige",
    # english
    "tbsp", "tsp", "tablespoon", "tablespoons", "teaspoon", "teaspoons",
    "cup", "cups", "oz", "ounce", "ounces", "lb", "lbs", "pound", "pounds",
    "pinch", "clove", "cloves", "can", "cans", "slice", "slices",
}

_FRACTIONS = {
    "½": 0.5, "⅓": 1 / 3, "⅔": 2 / 3, "¼": 0.25, "¾": 0.75, "⅕": 0.2,
    "⅖": 0.4, "⅗": 0.6, "⅘": 0.8, "⅙": 1 / 6, "⅚": 5 / 6, "⅛": 0.125,
    "⅜": 0.375, "⅝": 0.625, "⅞": 0.875,
}
_FRACTION_CLASS = "[" + "".join(_FRACTIONS) + "]"
_NUMBER = (
    r"(?:\d+\s+\d+/\d+"
    r"|\d+\s*" + _FRACTION_CLASS +
    r"|\d+/\d+"
    r"|\d+(?:[.,]\d+)?"
    r"|" + _FRACTION_CLASS + r")"
)
_QUANTITY = re.compile(
    r"^\s*(?P<low>" + _NUMBER + r")"
    r"(?:\s*(?:-|–|bis)\s*(?P<high>" + _NUMBER + r"))?"
    r"(?=\s|$|[^\W\d_])"
)
_UNIT_TOKEN = re.compile(r"^(?P<unit>[^\W\d_]+)(?P<dot>\.)?(?=[\s,]|$)")


def _number_value(token: str) -> float:
    token = token.strip()
    if " " in token and "/" in token:
        whole, frac = token.split(None, 1)
        return float(whole) + _number_value(frac)
    if "/" in token:
        num, den = token.split("/", 1)
        return float(num) / float(den) if float(den) else float(num)
    if token[-1] in _FRACTIONS:
        whole = token[:-1].strip()
        return (float(whole) if whole else 0.0) + _FRACTIONS[token[-1]]
    return float(token.replace(",", "."))


def _as_amount(value: float) -> Amount:
    if value == int(value):
        return int(value)
    return round(value, 3)


def split_quantity(text: str) -> Tuple[Optional[Amount], Optional[str], str]:
    """Return (amount, unit, rest) for text starting with a quantity.

    amount is None when the text has no leading number; a range keeps its
    text form ('2-3').
    """
    m = _QUANTITY.match(text)
    if not m:
        return None, None, text.strip()
    low, high = m.group("low"), m.group("high")
    try:
        if high:
            amount: Amount = f"{low.strip()}-{high.strip()}"
        else:
            amount = _as_amount(_number_value(low))
    except (ValueError, ZeroDivisionError):
        return None, None, text.strip()
    rest = text[m.end():].strip()
    unit = None
    u = _UNIT_TOKEN.match(rest)
    if u and u.group("unit").lower() in UNITS:
        unit = u.group("unit")
        rest = rest[u.end():].lstrip(" ,").strip()
    return amount, unit, rest


def parse_ingredient_line(line: str, group_label: Optional[str] = None) -> Ingredient:
    """Split '200 g Mehl' into amount/unit/name.

    Lines without a leading quantity become the name as a whole.
    """
    amount, unit, rest = split_quantity(line)
    if amount is None:
        return Ingredient(name=line.strip(), group_label=group_label)
    if not rest:
        # '2 Stück' with nothing after the unit; keep the word as the name
        if unit:
            return Ingredient(amount=amount, name=unit, group_label=group_label)
        return Ingredient(name=line.strip(), group_label=group_label)
    return Ingredient(amount=amount, unit=unit, name=rest, group_label=group_label)


def parse_ingredient_cells(
    amount_text: Optional[str], name: str, group_label: Optional[str] = None
) -> Ingredient:
    """Build an ingredient from separate amount and name cells (table layouts)."""
    amount_text = (amount_text or "").strip()
    if not amount_text:
        return Ingredient(name=name, group_label=group_label)
    amount, unit, rest = split_quantity(amount_text)
    if amount is None:
        # free-text amounts such as 'etwas' or 'n. B.'
        return Ingredient(amount=amount_text, name=name, group_label=group_label)
    if rest:
        name = f"{rest} {name}"
    return Ingredient(amount=amount, unit=unit, name=name, group_label=group_label)


def normalize_ingredient(raw: Any, clean) -> Optional[Ingredient]:
    """Normalize one candidate entry; clean is the text cleaner to apply."""
    if isinstance(raw, dict):
        name = clean(raw.get("name") or "")
        if not name:
            return None
        amount = raw.get("amount")
        group = clean(raw.get("group") or "") or None
        return parse_ingredient_cells(clean(str(amount)) if amount is not None else None, name, group)
    line = clean(str(raw)) if raw is not None else ""
    if not line:
        return None
    return parse_ingredient_line(line)

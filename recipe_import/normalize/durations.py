"""Turn recipe time values into whole minutes."""

from __future__ import annotations

import math
import re
from typing import Any, Optional

_ISO_DURATION = re.compile(
    r"^P(?!$)"
    r"(?:(?P<weeks>\d+(?:\.\d+)?)W)?"
    r"(?:(?P<days>\d+(?:\.\d+)?)D)?"
    r"(?:T(?=\d)"
    r"(?:(?P<hours>\d+(?:\.\d+)?)H)?"
    r"(?:(?P<minutes>\d+(?:\.\d+)?)M)?"
    r"(?:(?P<seconds>\d+(?:\.\d+)?)S)?"
    r")?$",
    re.I,
)

_SECONDS = {"weeks": 7 * 86400, "days": 86400, "hours": 3600, "minutes": 60, "seconds": 1}

_HOURS_TEXT = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:std|stunde|stunden|hours?|hrs?|h)\b\.?", re.I)
_MINUTES_TEXT = re.compile(r"(\d+)\s*(?:min|minuten|minute|minutes|mins|m)\b\.?", re.I)
_NUMBER = re.compile(r"\d+")


def parse_iso_duration(value: str) -> Optional[int]:
    """Parse an ISO-8601 duration such as PT1H30M into minutes.

    Year and month designators are not accepted. Seconds round up to the next
    minute. Returns None for anything that is not a duration.
    """
    if not isinstance(value, str):
        return None
    m = _ISO_DURATION.match(value.strip())
    if not m:
        return None
    total = 0.0
    for part, factor in _SECONDS.items():
        if m.group(part):
            total += float(m.group(part)) * factor
    return int(math.ceil(total / 60))


def to_minutes(value: Any) -> Optional[int]:
    """Minutes from an int/float or an ISO-8601 duration; None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if value < 0 or math.isnan(value) or math.isinf(value):
            return None
        return int(round(value))
    if isinstance(value, str):
        return parse_iso_duration(value)
    return None


def parse_time_text(text: str) -> Optional[int]:
    """Minutes from page text like '15 Min.', '1 Std. 30 Min.' or 'PT20M'.

    Used by the site rules, which read times from visible text.
    """
    if not text:
        return None
    iso = parse_iso_duration(text)
    if iso is not None:
        return iso
    minutes = 0.0
    found = False
    h = _HOURS_TEXT.search(text)
    if h:
        minutes += float(h.group(1).replace(",", ".")) * 60
        found = True
    m = _MINUTES_TEXT.search(text)
    if m:
        minutes += int(m.group(1))
        found = True
    if not found:
        plain = _NUMBER.search(text)
        if not plain:
            return None
        return int(plain.group(0))
    return int(round(minutes))

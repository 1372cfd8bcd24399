"""Application settings loaded from environment (and .env).

This module provides a small Settings holder backed by environment variables.
Keep this file simple and import `settings` from other modules.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
import json
from pathlib import Path

# Site rules live in a JSON file so a new site can be supported without touching code.
SITE_RULES_PATH = Path(__file__).parent / "schemas" / "site_rules.json"


def load_site_rules_file(path: Path = SITE_RULES_PATH) -> list[dict]:
    if not path.exists():
        return []
    with open(path, "r", encoding="utf8") as fh:
        data = json.load(fh)
    return data.get("sites", []) if isinstance(data, dict) else list(data)


def _get(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None:
        return default
    return v


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # Fetching
    IMPORT_TIMEOUT: str = _get("IMPORT_TIMEOUT", "20")
    IMPORT_MAX_REDIRECTS: str = _get("IMPORT_MAX_REDIRECTS", "5")
    IMPORT_MAX_CONTENT_BYTES: str = _get("IMPORT_MAX_CONTENT_BYTES", str(5 * 1024 * 1024))
    IMPORT_USER_AGENT: str = _get(
        "IMPORT_USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )
    IMPORT_ACCEPT_LANGUAGE: str = _get("IMPORT_ACCEPT_LANGUAGE", "de-DE,de;q=0.9,en;q=0.8")
    # Refuse literal loopback/private addresses and localhost
    IMPORT_BLOCK_PRIVATE_HOSTS: bool = _get_bool("IMPORT_BLOCK_PRIVATE_HOSTS", True)

    # Logging configuration
    # LOG_LEVEL can be DEBUG, INFO, WARNING, ERROR, or CRITICAL
    LOG_LEVEL: str = _get("LOG_LEVEL", "INFO")
    # Optional path to write logs to a file; if unset, logs go to stderr
    LOG_FILE: str | None = _get("LOG_FILE", None)

    @property
    def timeout(self) -> float:
        return float(self.IMPORT_TIMEOUT)

    @property
    def max_redirects(self) -> int:
        return int(self.IMPORT_MAX_REDIRECTS)

    @property
    def max_content_bytes(self) -> int:
        return int(self.IMPORT_MAX_CONTENT_BYTES)


settings = Settings()


def validate_settings(s: Settings = settings) -> None:
    """Validate numeric settings and raise a helpful RuntimeError if any are unusable.

    Called by the CLI after the .env file is loaded.
    """
    invalid = []
    try:
        if s.timeout <= 0:
            invalid.append("IMPORT_TIMEOUT (must be > 0)")
    except ValueError:
        invalid.append("IMPORT_TIMEOUT (not a number)")
    try:
        if s.max_redirects < 0:
            invalid.append("IMPORT_MAX_REDIRECTS (must be >= 0)")
    except ValueError:
        invalid.append("IMPORT_MAX_REDIRECTS (not an integer)")
    try:
        if s.max_content_bytes <= 0:
            invalid.append("IMPORT_MAX_CONTENT_BYTES (must be > 0)")
    except ValueError:
        invalid.append("IMPORT_MAX_CONTENT_BYTES (not an integer)")
    if invalid:
        msg = (
            "Invalid environment variables: "
            + ", ".join(invalid)
            + "\nPlease fix them in your .env or environment and try again."
        )
        raise RuntimeError(msg)

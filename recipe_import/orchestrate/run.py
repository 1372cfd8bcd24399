"""Import pipeline: fetch a page, try the extractors in order, normalize.

Each call is independent; nothing here keeps state between imports.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, List, Optional, Tuple

import requests

from recipe_import.errors import MalformedStructuredDataError, UnsupportedPageError
from recipe_import.ingest.extract_linked_data import extract_linked_data
from recipe_import.ingest.extract_microdata import extract_microdata
from recipe_import.ingest.fetch import fetch_document
from recipe_import.ingest.site_rules import extract_site_rules
from recipe_import.models.recipe_schema import ExtractionCandidate, FetchedDocument, Recipe
from recipe_import.normalize.recipe import normalize_candidate

logger = logging.getLogger(__name__)

Extractor = Callable[[FetchedDocument], Optional[ExtractionCandidate]]

# Higher-fidelity formats first; the first usable result wins.
EXTRACTORS: List[Tuple[str, Extractor]] = [
    ("json-ld", extract_linked_data),
    ("microdata", extract_microdata),
    ("site-rules", extract_site_rules),
]


class PipelineState(str, enum.Enum):
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    NORMALIZING = "normalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _run_extractor(name: str, extractor: Extractor, doc: FetchedDocument) -> Optional[ExtractionCandidate]:
    """Run one extractor; malformed or crashing extractors count as NotFound."""
    try:
        return extractor(doc)
    except MalformedStructuredDataError as e:
        logger.debug("Extractor %s found malformed data: %s", name, e)
    except Exception:
        logger.exception("Extractor %s failed on %s; trying the next one", name, doc.final_url)
    return None


def extract_recipe(
    doc: FetchedDocument,
    source_url: str,
    extractors: Optional[List[Tuple[str, Extractor]]] = None,
) -> Recipe:
    """Try each extractor in priority order and normalize the first usable candidate.

    Raises UnsupportedPageError when every extractor came up empty.
    """
    extractors = EXTRACTORS if extractors is None else extractors
    for i, (name, extractor) in enumerate(extractors):
        logger.debug("Import state=%s(%d) extractor=%s", PipelineState.EXTRACTING.value, i, name)
        candidate = _run_extractor(name, extractor, doc)
        if candidate is None:
            continue
        logger.debug("Import state=%s extractor=%s", PipelineState.NORMALIZING.value, name)
        try:
            return normalize_candidate(candidate, base_url=doc.final_url, source_url=source_url)
        except MalformedStructuredDataError as e:
            logger.info("Discarding %s result for %s: %s", name, doc.final_url, e)
        except Exception:
            logger.exception("Normalizing the %s result for %s failed; trying the next one", name, doc.final_url)
    raise UnsupportedPageError()


def import_recipe_from_url(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    extractors: Optional[List[Tuple[str, Extractor]]] = None,
) -> Recipe:
    """Fetch a URL and return the recipe found on it.

    Fetch errors (InvalidUrlError, NetworkTimeoutError, FetchFailedError,
    ImportCancelledError) propagate unchanged; a page without a usable recipe
    raises UnsupportedPageError. No step is retried here.
    """
    state = PipelineState.FETCHING
    logger.info("Import start | url=%s", url)
    try:
        doc = fetch_document(url, session=session, timeout=timeout, cancel_event=cancel_event)
        state = PipelineState.EXTRACTING
        recipe = extract_recipe(doc, source_url=url.strip(), extractors=extractors)
    except Exception as e:
        logger.warning(
            "Import %s | url=%s stage=%s reason=%s",
            PipelineState.FAILED.value,
            url,
            state.value,
            getattr(e, "kind", type(e).__name__),
        )
        raise
    state = PipelineState.SUCCEEDED
    logger.info(
        "Import %s | url=%s title=%s ingredients=%d steps=%d images=%d",
        state.value,
        url,
        recipe.title,
        len(recipe.ingredients),
        len(recipe.instructions),
        len(recipe.images),
    )
    return recipe

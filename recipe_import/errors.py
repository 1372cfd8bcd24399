"""Recipe import exceptions.

Everything a caller can see derives from RecipeImportError and carries a
stable ``kind`` plus a message fit for a notification. The CLI and the HTTP
endpoint translate these into exit codes and status codes.
"""

from __future__ import annotations

from typing import Optional


class RecipeImportError(Exception):
    """Base exception for recipe import failures."""

    kind = "import_error"
    transient = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidUrlError(RecipeImportError):
    """The URL is malformed, not http(s), blocked, or redirected to a non-http(s) target."""

    kind = "invalid_url"


class NetworkTimeoutError(RecipeImportError):
    """The fetch did not complete within the timeout or the host was unreachable."""

    kind = "network_timeout"
    transient = True


class FetchFailedError(RecipeImportError):
    kind = "fetch_failed"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnsupportedPageError(RecipeImportError):
    """No extractor recognized a recipe on the page."""

    kind = "unsupported"

    def __init__(self, message: str = "Could not extract a recipe from this page"):
        super().__init__(message)


class MalformedStructuredDataError(RecipeImportError):
    """An extractor matched but produced unusable data.

    Only used inside the pipeline to fall through to the next extractor.
    """

    kind = "malformed_data"


class ImportCancelledError(RecipeImportError):
    kind = "cancelled"

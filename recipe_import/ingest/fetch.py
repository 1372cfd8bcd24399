"""HTTP fetcher for recipe pages."""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
import threading
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests

from recipe_import.errors import (
    FetchFailedError,
    ImportCancelledError,
    InvalidUrlError,
    NetworkTimeoutError,
)
from recipe_import.models.recipe_schema import FetchedDocument
from recipe_import.settings import settings


logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
CHUNK_SIZE = 64 * 1024
_META_CHARSET = re.compile(rb"""<meta[^>]+charset=["']?([\w-]+)""", re.I)


def _is_private_host(hostname: str) -> bool:
    """True for localhost and literal private/loopback/link-local/reserved IPs.

    Short, decimal and hex IPv4 forms ('127.1', '2130706433', '0x7f000001')
    are read the way the resolver reads them. Names are not resolved.
    """
    host = hostname.lower().strip("[]")
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        try:
            ip = ipaddress.ip_address(socket.inet_aton(host))
        except (OSError, ValueError):
            return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved


def validate_url(url: str, *, redirect: bool = False) -> str:
    """Return the url if it may be dereferenced, else raise InvalidUrlError.

    Only absolute http(s) urls with a host are accepted. With redirect=True the
    message names the redirect target instead of the user's input.
    """
    what = "Redirect target" if redirect else "URL"
    if not url or not isinstance(url, str):
        raise InvalidUrlError(f"{what} is required")
    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
        hostname = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidUrlError(f"{what} is not valid: {url}") from e
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidUrlError(f"{what} must use http or https: {url}")
    if not parsed.netloc or not hostname:
        raise InvalidUrlError(f"{what} has no host: {url}")
    if settings.IMPORT_BLOCK_PRIVATE_HOSTS and _is_private_host(hostname):
        raise InvalidUrlError(f"{what} points to a blocked host: {hostname}")
    return candidate


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ImportCancelledError("Import was cancelled")


def _read_body(resp, cancel_event: Optional[threading.Event], max_bytes: int) -> bytes:
    chunks = []
    size = 0
    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
        _check_cancelled(cancel_event)
        if not chunk:
            continue
        size += len(chunk)
        if size > max_bytes:
            raise FetchFailedError(
                f"Page is larger than {max_bytes} bytes", status_code=resp.status_code
            )
        chunks.append(chunk)
    return b"".join(chunks)


def _decode(resp, body: bytes) -> str:
    """Decode using the header charset, then a <meta charset>, then utf-8."""
    content_type = resp.headers.get("Content-Type", "") or ""
    encoding = None
    if "charset" in content_type.lower():
        encoding = requests.utils.get_encoding_from_headers({"content-type": content_type})
    if not encoding:
        m = _META_CHARSET.search(body[:4096])
        if m:
            encoding = m.group(1).decode("ascii", "ignore")
    try:
        return body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        logger.debug("Unknown charset %r; falling back to utf-8", encoding)
        return body.decode("utf-8", errors="replace")


def fetch_document(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> FetchedDocument:
    """GET the url with browser-like headers and a timeout.

    Redirects are followed by hand so every hop can be checked against the
    allowed schemes. Raises InvalidUrlError, NetworkTimeoutError,
    FetchFailedError or ImportCancelledError. A session passed in by the
    caller is left open; one created here is closed before returning.
    """
    current = validate_url(url)
    timeout = settings.timeout if timeout is None else timeout
    headers = {
        "User-Agent": settings.IMPORT_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": settings.IMPORT_ACCEPT_LANGUAGE,
    }
    own_session = session is None
    sess = session if session is not None else requests.Session()
    last_status: Optional[int] = None
    try:
        for hop in range(settings.max_redirects + 1):
            _check_cancelled(cancel_event)
            logger.debug("Fetching URL: %s (hop %d)", current, hop)
            try:
                resp = sess.get(
                    current,
                    headers=headers,
                    timeout=timeout,
                    allow_redirects=False,
                    stream=True,
                )
            except requests.Timeout as e:
                raise NetworkTimeoutError(f"Timed out fetching {current}") from e
            except requests.ConnectionError as e:
                raise NetworkTimeoutError(f"Could not reach {current}") from e
            except requests.RequestException as e:
                raise FetchFailedError(f"Could not load page: {e}") from e

            try:
                if resp.is_redirect:
                    location = resp.headers.get("Location", "")
                    try:
                        target = urljoin(current, location)
                    except ValueError as e:
                        raise InvalidUrlError(f"Redirect target is not valid: {location}") from e
                    logger.debug("Redirect %s -> %s (status %s)", current, target, resp.status_code)
                    current = validate_url(target, redirect=True)
                    last_status = resp.status_code
                    continue
                if not 200 <= resp.status_code < 300:
                    raise FetchFailedError(
                        f"Could not load page: {resp.status_code}", status_code=resp.status_code
                    )
                try:
                    body = _read_body(resp, cancel_event, settings.max_content_bytes)
                except requests.Timeout as e:
                    raise NetworkTimeoutError(f"Timed out reading {current}") from e
                except requests.RequestException as e:
                    raise NetworkTimeoutError(f"Connection lost while reading {current}") from e
                text = _decode(resp, body)
                logger.info("Fetched %s -> status %s (%d bytes)", current, resp.status_code, len(body))
                return FetchedDocument(
                    text=text,
                    final_url=current,
                    content_type=resp.headers.get("Content-Type"),
                    status_code=resp.status_code,
                )
            finally:
                resp.close()
        raise FetchFailedError(
            f"Too many redirects (more than {settings.max_redirects})", status_code=last_status
        )
    finally:
        if own_session:
            sess.close()

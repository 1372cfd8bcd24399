import threading

import pytest
import requests

from conftest import DummyResponse, DummySession, redirect
from recipe_import.errors import (
    FetchFailedError,
    ImportCancelledError,
    InvalidUrlError,
    NetworkTimeoutError,
)
from recipe_import.ingest.fetch import fetch_document, validate_url
from recipe_import.settings import settings


@pytest.mark.parametrize(
    "url",
    ["", "not a url", "ftp://example.com/recipe", "file:///etc/passwd", "javascript:alert(1)", "https://"],
)
def test_invalid_urls_rejected_before_network(url):
    session = DummySession()
    with pytest.raises(InvalidUrlError):
        fetch_document(url, session=session)
    assert session.calls == []


@pytest.mark.parametrize(
    "url",
    [
        "http://localhost:8000/x",
        "http://127.0.0.1/",
        "http://10.0.0.5/r",
        "http://[::1]/",
        "http://2130706433/",
        "http://0x7f000001/",
        "http://127.1/",
    ],
)
def test_private_hosts_blocked(url):
    with pytest.raises(InvalidUrlError):
        validate_url(url)


@pytest.mark.parametrize("url", ["https://www.chefkoch.de/rezepte/1/x.html", "http://93.184.216.34/r"])
def test_public_hosts_pass(url):
    assert validate_url(url) == url


def test_private_hosts_allowed_when_disabled(monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_BLOCK_PRIVATE_HOSTS", False)
    assert validate_url("http://localhost:8000/x") == "http://localhost:8000/x"


def test_fetch_returns_text_final_url_and_content_type():
    resp = DummyResponse(200, "<html><h1>Kuchen</h1></html>")
    session = DummySession({"https://example.com/r": resp})
    doc = fetch_document("https://example.com/r", session=session, timeout=3)

    assert doc.text == "<html><h1>Kuchen</h1></html>"
    assert doc.final_url == "https://example.com/r"
    assert doc.content_type == "text/html; charset=utf-8"
    url, kwargs = session.calls[0]
    assert kwargs["timeout"] == 3
    assert kwargs["allow_redirects"] is False
    assert resp.closed
    # a session passed in by the caller stays open
    assert not session.closed


def test_follows_relative_redirect_and_reports_final_url():
    session = DummySession(
        {
            "http://example.com/old": redirect("/new"),
            "http://example.com/new": redirect("https://www.example.com/final", 301),
            "https://www.example.com/final": DummyResponse(200, "ok"),
        }
    )
    doc = fetch_document("http://example.com/old", session=session)
    assert doc.final_url == "https://www.example.com/final"
    assert [c[0] for c in session.calls] == [
        "http://example.com/old",
        "http://example.com/new",
        "https://www.example.com/final",
    ]


def test_redirect_to_non_http_scheme_is_rejected():
    session = DummySession({"https://example.com/r": redirect("file:///etc/passwd")})
    with pytest.raises(InvalidUrlError):
        fetch_document("https://example.com/r", session=session)
    assert len(session.calls) == 1


def test_unparsable_redirect_target_is_invalid_url():
    resp = redirect("http://[::1")
    session = DummySession({"https://example.com/r": resp})
    with pytest.raises(InvalidUrlError) as exc:
        fetch_document("https://example.com/r", session=session)
    assert "Redirect target" in exc.value.message
    assert resp.closed


def test_redirect_to_private_host_is_rejected():
    session = DummySession({"https://example.com/r": redirect("http://169.254.169.254/latest/meta-data")})
    with pytest.raises(InvalidUrlError):
        fetch_document("https://example.com/r", session=session)


def test_too_many_redirects(monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_MAX_REDIRECTS", "2")
    session = DummySession(
        {
            "https://example.com/a": redirect("https://example.com/b"),
            "https://example.com/b": redirect("https://example.com/a"),
        }
    )
    with pytest.raises(FetchFailedError) as exc:
        fetch_document("https://example.com/a", session=session)
    assert exc.value.status_code == 302
    assert len(session.calls) == 3


def test_404_raises_fetch_failed_with_status():
    session = DummySession({"https://example.com/missing": DummyResponse(404, "nope")})
    with pytest.raises(FetchFailedError) as exc:
        fetch_document("https://example.com/missing", session=session)
    assert exc.value.status_code == 404


@pytest.mark.parametrize(
    "error",
    [requests.ConnectTimeout("slow"), requests.ReadTimeout("slow"), requests.ConnectionError("unreachable")],
)
def test_network_errors_are_timeouts(error):
    session = DummySession({"https://example.com/r": error})
    with pytest.raises(NetworkTimeoutError) as exc:
        fetch_document("https://example.com/r", session=session)
    assert exc.value.transient


def test_body_over_limit_fails(monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_MAX_CONTENT_BYTES", "10")
    resp = DummyResponse(200, "x" * 100)
    session = DummySession({"https://example.com/big": resp})
    with pytest.raises(FetchFailedError):
        fetch_document("https://example.com/big", session=session)
    assert resp.closed


def test_cancelled_before_request():
    cancel = threading.Event()
    cancel.set()
    session = DummySession({"https://example.com/r": DummyResponse(200, "ok")})
    with pytest.raises(ImportCancelledError):
        fetch_document("https://example.com/r", session=session, cancel_event=cancel)
    assert session.calls == []


class CancelAfterFirstChunk(DummyResponse):
    def __init__(self, cancel, body):
        super().__init__(200, body)
        self.cancel = cancel
        self.chunks_sent = 0

    def iter_content(self, chunk_size=1):
        for chunk in (self.body[:4], self.body[4:]):
            self.chunks_sent += 1
            yield chunk
            self.cancel.set()


def test_cancelled_while_reading_body():
    cancel = threading.Event()
    resp = CancelAfterFirstChunk(cancel, b"<html>Kuchen</html>")
    session = DummySession({"https://example.com/r": resp})
    with pytest.raises(ImportCancelledError):
        fetch_document("https://example.com/r", session=session, cancel_event=cancel)
    assert resp.chunks_sent == 2
    assert resp.closed


def test_decodes_with_meta_charset_when_header_has_none():
    body = '<html><head><meta charset="iso-8859-1"></head><h1>Käsespätzle</h1></html>'.encode("iso-8859-1")
    resp = DummyResponse(200, body, {"Content-Type": "text/html"})
    session = DummySession({"https://example.com/r": resp})
    doc = fetch_document("https://example.com/r", session=session)
    assert "Käsespätzle" in doc.text


def test_defaults_to_utf8():
    resp = DummyResponse(200, "<h1>Grüße</h1>".encode("utf-8"), {"Content-Type": "text/html"})
    session = DummySession({"https://example.com/r": resp})
    assert "Grüße" in fetch_document("https://example.com/r", session=session).text


def test_own_session_is_closed(monkeypatch):
    created = []

    class TrackingSession(DummySession):
        def __init__(self):
            super().__init__({"https://example.com/r": DummyResponse(200, "ok")})
            created.append(self)

    monkeypatch.setattr(requests, "Session", TrackingSession)
    fetch_document("https://example.com/r")
    assert created and created[0].closed

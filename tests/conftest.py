import pytest
from requests.structures import CaseInsensitiveDict


class DummyResponse:
    """Just enough of requests.Response for the fetcher."""

    def __init__(self, status_code=200, body=b"", headers=None):
        self.status_code = status_code
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.headers = CaseInsensitiveDict(headers or {"Content-Type": "text/html; charset=utf-8"})
        self.closed = False

    @property
    def is_redirect(self):
        return "location" in self.headers and self.status_code in (301, 302, 303, 307, 308)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i : i + chunk_size]

    def close(self):
        self.closed = True


class DummySession:
    """Maps url -> DummyResponse (or an exception to raise) and records calls."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.calls = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.routes.get(url)
        if outcome is None:
            return DummyResponse(404, b"not found")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def redirect(location, status=302):
    return DummyResponse(status, b"", {"Location": location})


@pytest.fixture
def page_session():
    """Build a session serving one html page at the given url."""

    def _make(url, html, status=200):
        return DummySession({url: DummyResponse(status, html)})

    return _make

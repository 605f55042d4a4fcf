from io import BytesIO
from logging import INFO
from urllib.parse import urldefrag, urljoin

from pageaudit.fetch import FetchFailure, Response


def frozen_clock():
    """Clock that never advances, so every request takes 0 ms."""
    return 0.0


class FakeFetcher:
    """Fetcher that serves scripted responses instead of using the network.

    Requests for URLs that have no route fail as if the connection
    was refused.
    """

    def __init__(self):
        self.routes = {}
        self.once = {}
        self.requests = []
        self.headers_sent = []

    def add(self, url, status=200, body=b"", headers=None, methods=("GET", "HEAD")):
        for method in methods:
            self.routes[(method, url)] = (status, body, dict(headers or {}))

    def add_once(self, url, status, body=b"", headers=None, method="GET"):
        """Serve a response for the next request only, before the regular route."""
        self.once.setdefault((method, url), []).append(
            (status, body, dict(headers or {}))
        )

    def add_page(self, url, html, headers=None):
        headers = dict(headers or {})
        headers.setdefault("Content-Type", "text/html")
        self.add(url, body=html.encode(), headers=headers, methods=("GET",))

    def add_redirect(self, url, location, status=301):
        self.add(url, status, headers={"Location": location})

    def add_failure(self, url, message, methods=("GET", "HEAD")):
        for method in methods:
            self.routes[(method, url)] = FetchFailure(url, message)

    def request(self, method, url, headers, follow_redirects=True):
        self.requests.append((method, url))
        self.headers_sent.append(dict(headers))
        for _ in range(10):
            key = (method, urldefrag(url).url)
            queued = self.once.get(key)
            route = queued.pop(0) if queued else self.routes.get(key)
            if route is None:
                raise FetchFailure(url, "connection refused")
            if isinstance(route, FetchFailure):
                raise route
            status, body, resp_headers = route
            location = resp_headers.get("Location")
            if follow_redirects and 300 <= status < 400 and location:
                url = urljoin(url, location)
                continue
            if method == "HEAD":
                body = b""
            return Response(url, status, resp_headers, BytesIO(body))
        raise FetchFailure(url, "too many redirects")


def log_messages(caplog):
    """Return the informational and issue messages logged during a run."""
    records = [
        record for record in caplog.records if record.name == "pageaudit.report"
    ]
    oks = [record.getMessage() for record in records if record.levelno <= INFO]
    issues = [record.getMessage() for record in records if record.levelno > INFO]
    return oks, issues

# SPDX-License-Identifier: BSD-3-Clause

"""
Load documents via HTTP or from the local file system.

L{Fetcher.request} performs a single request and returns a L{Response},
from which the body can be read in one go or streamed in chunks.
Responses with error or redirect statuses are returned like any other
response; only failures to get a response at all raise L{FetchFailure}.
"""

from __future__ import annotations

from email.message import Message
from http.client import HTTPException, HTTPMessage
from io import BytesIO
from logging import getLogger
from os import getcwd
from typing import IO, Iterator, Mapping
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin, urlsplit, urlunsplit
from urllib.request import (
    FileHandler,
    HTTPRedirectHandler,
    OpenerDirector,
    Request as URLRequest,
    build_opener,
)
from urllib.response import addinfourl
import zlib

from pageaudit.version import VERSION_STRING

USER_AGENT = f"pageaudit/{VERSION_STRING}"

NETWORK_SCHEMES = ("http", "https")

_LOG = getLogger(__name__)


class FetchFailure(Exception):
    """Raised when no response could be obtained for a request."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
        """The URL that was requested."""


def to_url(page: str) -> str:
    """
    Turn a page argument into a full URL.

    Anything that does not use a network scheme and is not already
    a C{file:} URL is treated as a path on the local file system.
    """

    scheme = urlsplit(page).scheme
    if scheme in NETWORK_SCHEMES or scheme == "file":
        return page
    if page.startswith("/"):
        return urljoin("file://", page)
    return urljoin(f"file://{getcwd()}/", page)


def normalize_url(url: str) -> str:
    """
    Return a unique string for the given URL.

    This is required in some places, since different libraries
    have different opinions whether local URLs should start with
    C{file:/} or C{file:///}.
    """

    return urlunsplit(urlsplit(url))


def request_headers(user_agent: str | None) -> dict[str, str]:
    """
    Return the headers sent with every request.

    Caching is suppressed so response times are accurate.
    If C{user_agent} is C{None}, no C{User-Agent} header is sent.
    """

    headers = {
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Accept-Encoding": "gzip, deflate",
    }
    if user_agent is not None:
        headers["User-Agent"] = user_agent
    return headers


def _make_decoder(content_encoding: str | None) -> zlib._Decompress | None:
    encoding = (content_encoding or "").strip().lower()
    if encoding == "gzip":
        return zlib.decompressobj(16 + zlib.MAX_WBITS)
    elif encoding == "deflate":
        return zlib.decompressobj()
    else:
        return None


class Response:
    """
    The result of one request: final URL, status, headers and body.

    A response holds an open stream until it is closed, so use it as
    a context manager.
    """

    def __init__(
        self,
        url: str,
        status: int,
        headers: Message | Mapping[str, str],
        stream: IO[bytes],
    ):
        self.url = url
        """The URL that was reached after following redirects."""

        self.status = status
        """The HTTP status code; 200 for local files."""

        if not isinstance(headers, Message):
            message = HTTPMessage()
            for name, value in headers.items():
                message[name] = value
            headers = message
        self.headers: Message = headers
        """Response headers; lookup is case insensitive."""

        self._stream = stream

    def __enter__(self) -> Response:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def ok(self) -> bool:  # pylint: disable=invalid-name
        """C{True} iff the status is in the 2xx range."""
        return 200 <= self.status < 300

    @property
    def is_redirect(self) -> bool:
        """C{True} iff the status is in the 3xx range."""
        return 300 <= self.status < 400

    @property
    def charset(self) -> str | None:
        """The text encoding declared in the C{Content-Type} header, if any."""
        return self.headers.get_content_charset()

    def iter_content(self, chunk_size: int = 65536) -> Iterator[bytes]:
        """
        Yield the body in chunks, undoing any C{Content-Encoding}.

        @raise FetchFailure:
            If reading or decompressing the body fails.
        """

        decoder = _make_decoder(self.headers.get("Content-Encoding"))
        try:
            while True:
                chunk = self._stream.read(chunk_size)
                if not chunk:
                    break
                if decoder is not None:
                    chunk = decoder.decompress(chunk)
                if chunk:
                    yield chunk
            if decoder is not None:
                tail = decoder.flush()
                if tail:
                    yield tail
        except zlib.error as ex:
            raise FetchFailure(self.url, f"Bad compressed content: {ex}") from ex
        except (HTTPException, OSError) as ex:
            raise FetchFailure(self.url, f"Failed to read contents: {ex}") from ex

    def read(self) -> bytes:
        """Return the full (decoded) body."""
        return b"".join(self.iter_content())

    def close(self) -> None:
        self._stream.close()


class _NoRedirectHandler(HTTPRedirectHandler):
    def redirect_request(  # type: ignore[override]
        self,
        req: URLRequest,
        fp: IO[bytes],
        code: int,
        msg: str,
        headers: HTTPMessage,
        newurl: str,
    ) -> URLRequest | None:
        raise HTTPError(req.full_url, code, msg, headers, fp)


class _CustomFileHandler(FileHandler):
    def file_open(self, req: URLRequest) -> addinfourl:
        path = urlsplit(req.full_url).path

        # Drop queries and fragments on local files.
        req.full_url = f"file://{path}"

        try:
            return super().file_open(req)
        except URLError as ex:
            reason = ex.reason
            if isinstance(reason, IsADirectoryError) and path.endswith("/"):
                # Emulate the way a web server handles directories.
                req.full_url = f"file://{path}index.html"
                return self.file_open(req)
            raise


class Fetcher:
    """
    Performs requests using C{urllib}.

    Only one request is made at a time; the caller is expected to close
    each response before making the next request.
    """

    def __init__(self, timeout: float | None = None):
        """
        @param timeout:
            Socket timeout in seconds, or C{None} for the system default.
        """

        self.timeout = timeout
        self._openers: dict[bool, OpenerDirector] = {
            True: build_opener(_CustomFileHandler),
            False: build_opener(_NoRedirectHandler, _CustomFileHandler),
        }

    def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        follow_redirects: bool = True,
    ) -> Response:
        """
        Request a resource.

        @param method:
            C{"GET"} or C{"HEAD"}.
        @param url:
            The URL of the resource; local paths are accepted as well.
        @param headers:
            Request headers, see L{request_headers}.
        @param follow_redirects:
            If C{False}, a redirect is returned as the response instead of
            being followed.
        @return:
            The response, with its body not read yet.
        @raise FetchFailure:
            If no response could be obtained.
        """

        url = to_url(url)
        _LOG.debug("%s %s", method, url)
        url_req = URLRequest(url, headers=dict(headers), method=method)
        opener = self._openers[follow_redirects]
        try:
            response = opener.open(url_req, timeout=self.timeout)
        except HTTPError as ex:
            # Error and redirect statuses still carry a response.
            stream = ex.fp if ex.fp is not None else BytesIO()
            return Response(ex.filename or url, ex.code, ex.headers, stream)
        except URLError as ex:
            raise FetchFailure(url, str(ex.reason)) from ex
        except (HTTPException, ValueError) as ex:
            raise FetchFailure(url, str(ex)) from ex
        except OSError as ex:
            raise FetchFailure(url, ex.strerror or str(ex)) from ex

        status = response.status
        return Response(
            response.url, 200 if status is None else status, response.headers, response
        )

"""
Unit tests for `pageaudit.fetch`.
"""

import gzip
import zlib
from io import BytesIO

from pytest import raises

from pageaudit.fetch import (
    FetchFailure,
    Fetcher,
    Response,
    normalize_url,
    request_headers,
    to_url,
)


def test_to_url_network():
    """Test that network and file URLs are used as-is."""
    assert to_url("http://example.com/") == "http://example.com/"
    assert to_url("https://example.com/a?b") == "https://example.com/a?b"
    assert to_url("file:///tmp/page.html") == "file:///tmp/page.html"


def test_to_url_paths(tmp_path, monkeypatch):
    """Test that paths are converted to file URLs."""
    assert to_url("/tmp/page.html") == "file:///tmp/page.html"
    monkeypatch.chdir(tmp_path)
    assert to_url("page.html") == f"file://{tmp_path}/page.html"


def test_normalize_url():
    """Test that different spellings of local URLs become equal."""
    assert normalize_url("file:/tmp/x") == normalize_url("file:///tmp/x")


def test_request_headers():
    """Test the headers sent with every request."""
    headers = request_headers("agent/1.0")
    assert headers["User-Agent"] == "agent/1.0"
    assert headers["Cache-Control"] == "no-cache"
    assert headers["Pragma"] == "no-cache"
    assert headers["Accept-Encoding"] == "gzip, deflate"
    assert "User-Agent" not in request_headers(None)


def test_response_status():
    """Test status classification."""
    assert Response("u", 200, {}, BytesIO()).ok
    assert Response("u", 204, {}, BytesIO()).ok
    assert not Response("u", 301, {}, BytesIO()).ok
    assert Response("u", 301, {}, BytesIO()).is_redirect
    assert not Response("u", 404, {}, BytesIO()).is_redirect


def test_response_headers_case_insensitive():
    """Test that header lookup ignores case."""
    headers = {"content-type": "text/html; charset=latin-1"}
    response = Response("u", 200, headers, BytesIO())
    assert response.headers["Content-Type"] == "text/html; charset=latin-1"
    assert response.charset == "latin-1"


def test_response_gzip():
    """Test transparent decoding of gzip bodies."""
    data = b"<p>compressed</p>" * 100
    response = Response(
        "u", 200, {"Content-Encoding": "gzip"}, BytesIO(gzip.compress(data))
    )
    assert response.read() == data


def test_response_deflate():
    """Test transparent decoding of deflate bodies."""
    data = b"<p>compressed</p>" * 100
    response = Response(
        "u", 200, {"Content-Encoding": "deflate"}, BytesIO(zlib.compress(data))
    )
    assert b"".join(response.iter_content(chunk_size=7)) == data


def test_response_bad_compression():
    """Test that undecodable content is a fetch failure."""
    response = Response("u", 200, {"Content-Encoding": "gzip"}, BytesIO(b"plain"))
    with raises(FetchFailure):
        response.read()


def test_fetch_local_file(tmp_path):
    """Test reading a local file."""
    page = tmp_path / "page.html"
    page.write_bytes(b"<html></html>")
    fetcher = Fetcher()
    with fetcher.request("GET", str(page), request_headers(None)) as response:
        assert response.status == 200
        assert normalize_url(response.url) == f"file://{page}"
        assert response.read() == b"<html></html>"


def test_fetch_local_file_query(tmp_path):
    """Test that queries and fragments are dropped for local files."""
    page = tmp_path / "data.txt"
    page.write_bytes(b"hello")
    fetcher = Fetcher()
    url = f"file://{page}?md5=5d41402abc4b2a76b9719d911017c592#top"
    with fetcher.request("HEAD", url, request_headers(None)) as response:
        assert response.ok
        assert response.read() == b"hello"


def test_fetch_local_directory(tmp_path):
    """Test that a directory URL serves its index page."""
    (tmp_path / "index.html").write_bytes(b"index")
    fetcher = Fetcher()
    url = f"file://{tmp_path}/"
    with fetcher.request("GET", url, request_headers(None)) as response:
        assert response.read() == b"index"


def test_fetch_local_missing(tmp_path):
    """Test that a missing local file is a fetch failure."""
    fetcher = Fetcher()
    with raises(FetchFailure):
        fetcher.request("GET", str(tmp_path / "missing.html"), request_headers(None))

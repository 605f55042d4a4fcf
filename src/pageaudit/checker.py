# SPDX-License-Identifier: BSD-3-Clause

"""
Checks pages and the links found on them.

The L{PageChecker} and L{LinkChecker} classes are where the work is done.
Both take a task from the spider, check it and return the tasks that
should be run next. Results are logged to the page's
L{PageReport<pageaudit.report.PageReport>}.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from email.message import Message
from logging import getLogger
from time import monotonic
from urllib.parse import urldefrag, urlsplit, urlunsplit

from pageaudit.config import Options
from pageaudit.fetch import (
    FetchFailure,
    Fetcher,
    Response,
    normalize_url,
    request_headers,
    to_url,
)
from pageaudit.hashing import create_hash, query_hash
from pageaudit.links import filter_links, find_links
from pageaudit.markup import find_markup_errors, format_markup_error
from pageaudit.report import IssueLog, PageReport
from pageaudit.spider import Attempt, LinkTask, PageTask

_LOG = getLogger(__name__)

_RE_CACHE_DIRECTIVE = re.compile(
    r"max-age|max-stale|min-fresh|must-revalidate|no-cache|no-store|no-transform"
    r"|only-if-cached|private|proxy-revalidate|public|s-maxage"
)
_RE_NOT_CACHED = re.compile(r"no-cache|max-age=0")
_RE_ETAG = re.compile(r'(W/)?"[^"]*"')
_RE_CONTENT_ENCODING = re.compile(r"deflate|gzip")
_RE_LOCAL_HOST = re.compile(
    r"localhost|127\.\d{1,3}\.\d{1,3}\.\d{1,3}|[0:]*:[0:]*:0{0,3}1", re.IGNORECASE
)

MISSING_LOCATION = "[Missing Location header]"


class CheckContext:
    """State shared by all checks during one run."""

    def __init__(
        self,
        options: Options,
        fetcher: Fetcher,
        issues: IssueLog,
        clock: Callable[[], float] = monotonic,
    ):
        """
        @param options:
            Configuration of the run.
        @param fetcher:
            Performs the requests.
        @param issues:
            Check results are logged here.
        @param clock:
            Returns the current time in seconds; used to time requests.
        """

        self.options = options
        self.fetcher = fetcher
        self.issues = issues
        self.clock = clock
        self.headers = request_headers(options.user_agent)

        self.visited: set[str] = set()
        """Links that have been checked, without fragment."""

        self.pages_checked = 0
        self.links_checked = 0

    def elapsed_ms(self, start: float) -> int:
        """Return the milliseconds passed since C{start}."""
        return round((self.clock() - start) * 1000)


def is_local_url(url: str) -> bool:
    """Return C{True} iff C{url} points to a loopback address."""
    host = urlsplit(url).hostname
    return host is not None and _RE_LOCAL_HOST.fullmatch(host) is not None


def secure_variant(url: str) -> str:
    """Return C{url} with its C{http} scheme replaced by C{https}."""
    scheme_, netloc, path, query, fragment = urlsplit(url)
    return urlunsplit(("https", netloc, path, query, fragment))


def has_empty_fragment(url: str) -> bool:
    """Return C{True} iff C{url} ends in a C{#} with nothing after it."""
    return "#" in url and not url.split("#", 1)[1]


def check_caching(headers: Message, report: PageReport) -> None:
    """Check the C{Cache-Control} and C{ETag} response headers."""

    cache_control = headers.get("Cache-Control")
    if cache_control:
        if _RE_CACHE_DIRECTIVE.search(cache_control) is None:
            report.error("Invalid Cache-Control header in response: %s", cache_control)
    else:
        report.error("Missing Cache-Control header in response")

    etag = headers.get("ETag")
    if etag:
        if _RE_ETAG.fullmatch(etag) is None:
            report.error("Invalid ETag header in response: %s", etag)
    elif not cache_control or _RE_NOT_CACHED.search(cache_control) is None:
        # An ETag is pointless for responses that won't be cached.
        report.error("Missing ETag header in response")


def check_compression(headers: Message, report: PageReport) -> None:
    """Check the C{Content-Encoding} response header."""

    content_encoding = headers.get("Content-Encoding")
    if content_encoding:
        if _RE_CONTENT_ENCODING.fullmatch(content_encoding) is None:
            report.error(
                "Invalid Content-Encoding header in response: %s", content_encoding
            )
    else:
        report.error("Missing Content-Encoding header in response")


class PageChecker:
    """
    Retrieves a page, checks the response and finds links to other
    resources.
    """

    def __init__(self, context: CheckContext):
        self.context = context

    def check(self, task: PageTask) -> list[LinkTask]:
        """
        Check a single page.

        @return:
            Tasks for the links on the page that should be checked.
        """

        context = self.context
        options = context.options
        page = task.url
        report = context.issues.report_for(page)
        context.pages_checked += 1
        _LOG.debug("Checking page: %s", page)

        req_url = normalize_url(to_url(page))
        start = context.clock()
        try:
            with context.fetcher.request("GET", req_url, context.headers) as response:
                content = response.read()
        except FetchFailure as ex:
            report.error(
                "Page error (%s): %s (%dms)", ex, page, context.elapsed_ms(start)
            )
            return []
        elapsed = context.elapsed_ms(start)

        if not response.ok:
            report.error("Bad page (%d): %s (%dms)", response.status, page, elapsed)
            return []

        content_url = normalize_url(response.url)
        if content_url != req_url:
            report.info("Page: %s -> %s (%dms)", page, content_url, elapsed)
        else:
            report.info("Page: %s (%dms)", page, elapsed)

        if options.check_xhtml:
            for error in find_markup_errors(content, response.charset):
                report.error("%s", format_markup_error(error))

        max_time = options.max_response_time
        if max_time is not None and elapsed > max_time:
            report.error("Page response took more than %sms to complete", max_time)

        if options.check_caching:
            check_caching(response.headers, report)

        if options.check_compression:
            check_compression(response.headers, report)

        if not options.check_links:
            return []
        links = filter_links(
            find_links(content, content_url, response.charset),
            content_url,
            options.links_to_ignore,
            options.only_same_domain,
        )
        return [LinkTask(link, page) for link in links]


class LinkChecker:
    """
    Checks whether a linked resource can be retrieved.

    A link is first requested with C{HEAD}; since not every server
    handles C{HEAD} properly, a non-OK status is double checked with
    a C{GET} request before it is reported.
    """

    def __init__(self, context: CheckContext):
        self.context = context

    def check(self, task: LinkTask) -> list[LinkTask]:
        """
        Check a single link.

        @return:
            Tasks that replace this one, if more requests are needed.
        """

        context = self.context
        options = context.options
        link = task.url
        report = context.issues.report_for(task.page)

        if task.fresh:
            if options.no_empty_fragments and has_empty_fragment(link):
                report.error("Empty fragment: %s", link)
            identity = urldefrag(link).url
            if identity in context.visited:
                report.info("Visited link: %s", link)
                return []
            context.visited.add(identity)
            context.links_checked += 1
            if options.no_local_links and is_local_url(link):
                report.error("Local link: %s", link)
            if options.prefer_secure and urlsplit(link).scheme == "http":
                secure = secure_variant(link)
                return [LinkTask(secure, task.page, insecure=link, fresh=False)]

        expected = query_hash(link) if options.query_hashes else None
        if task.attempt is Attempt.RETRY or options.query_hashes:
            method = "GET"
        else:
            method = "HEAD"
        start = context.clock()
        try:
            response = context.fetcher.request(
                method, link, context.headers, not options.no_redirects
            )
        except FetchFailure as ex:
            if task.insecure is not None:
                return self._insecure_fallback(task, report)
            report.error(
                "Link error (%s): %s (%dms)", ex, link, context.elapsed_ms(start)
            )
            return []

        with response:
            elapsed = context.elapsed_ms(start)
            if not response.ok:
                if task.attempt is Attempt.FIRST:
                    # Retry HEAD request as GET to be sure.
                    return [task.retry()]
                if task.insecure is not None:
                    return self._insecure_fallback(task, report)
                if response.is_redirect and options.no_redirects:
                    location = response.headers.get("Location") or MISSING_LOCATION
                    report.error(
                        "Redirected link (%d): %s -> %s (%dms)",
                        response.status,
                        link,
                        location,
                        elapsed,
                    )
                else:
                    report.error(
                        "Bad link (%d): %s (%dms)", response.status, link, elapsed
                    )
                return []

            report.info("Link: %s (%dms)", link, elapsed)
            if task.insecure is not None:
                # Later links to the secure URL itself need no request.
                context.visited.add(urldefrag(link).url)
                report.error("Insecure link: %s", task.insecure)
            if expected is not None:
                self._check_hash(link, response, expected, report)
        return []

    def _insecure_fallback(self, task: LinkTask, report: PageReport) -> list[LinkTask]:
        """
        The secure variant of an insecure link is not available:
        flag the link and check the insecure link itself.
        """
        assert task.insecure is not None, task
        _LOG.debug("Secure variant not available: %s", task.url)
        report.error("Insecure link: %s", task.insecure)
        return [LinkTask(task.insecure, task.page, fresh=False)]

    def _check_hash(
        self,
        link: str,
        response: Response,
        expected: tuple[str, str],
        report: PageReport,
    ) -> None:
        """Compare the digest of the response body to the expected one."""

        algorithm, expected_digest = expected
        digest = create_hash(algorithm)
        try:
            for chunk in response.iter_content():
                digest.update(chunk)
        except FetchFailure as ex:
            report.error("Hash error (%s): %s", ex, link)
            return
        content_digest = digest.hexdigest()
        if content_digest.lower() == expected_digest.lower():
            report.info("Hash: %s", link)
        else:
            report.error("Hash error (%s): %s", content_digest.lower(), link)

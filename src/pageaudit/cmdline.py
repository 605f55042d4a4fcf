# SPDX-License-Identifier: BSD-3-Clause

"""Command line interface."""

from __future__ import annotations

import logging
from argparse import ArgumentParser, Namespace
from collections.abc import Callable, Mapping
from time import monotonic
from typing import Any

from pageaudit.checker import CheckContext, LinkChecker, PageChecker
from pageaudit.config import ConfigError, Options, load_config_file
from pageaudit.fetch import Fetcher
from pageaudit.report import ChecksFailed, IssueLog, plural
from pageaudit.spider import PageTask, Spider
from pageaudit.version import VERSION_STRING

_LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
"""Default socket timeout in seconds."""


def run(
    config: Options | Mapping[str, Any],
    fetcher: Fetcher | None = None,
    clock: Callable[[], float] = monotonic,
    issues: IssueLog | None = None,
) -> tuple[int, str]:
    """
    Checks the configured pages.

    @param config:
        Options for this run, or a mapping with camel case option names
        that is validated before anything is fetched.
    @param fetcher:
        Performs the requests; a new L{Fetcher} is created if C{None}.
    @param clock:
        Used to time requests.
    @param issues:
        Results are logged here; a new L{IssueLog} is created if C{None}.
    @return: C{(count, summary)}
        The number of issues, which is always 0 since issues make the run
        fail, and the summary text.
    @raise ConfigError:
        If the configuration is invalid.
    @raise ChecksFailed:
        If any issues were found; this happens after all checks are done.
    """

    options = config if isinstance(config, Options) else Options.from_mapping(config)
    if fetcher is None:
        fetcher = Fetcher(DEFAULT_TIMEOUT)
    if issues is None:
        issues = IssueLog(options.terse)

    context = CheckContext(options, fetcher, issues, clock)
    page_checker = PageChecker(context)
    link_checker = LinkChecker(context)

    spider = Spider(options.page_urls)
    for task in spider:
        if isinstance(task, PageTask):
            spider.add_tasks(page_checker.check(task))
        else:
            spider.add_tasks(link_checker.check(task))

    count = issues.count
    if options.terse:
        issues.logger.info(
            "Checked %s and %s, found %s.",
            plural(context.pages_checked, "page"),
            plural(context.links_checked, "link"),
            plural(count, "issue"),
        )

    summary = issues.summarize()
    if count:
        message = issues.count_message()
        if options.summary:
            message = summary + message
        raise ChecksFailed(message, count, summary)
    return count, summary


def options_from_args(args: Namespace) -> dict[str, Any]:
    """
    Combine the config file (if any) and the command line arguments
    into a single options mapping.

    @raise ConfigError:
        If the config file cannot be loaded.
    """

    mapping = load_config_file(args.config) if args.config is not None else {}

    if args.urls:
        page_urls = mapping.get("pageUrls")
        if page_urls is None:
            page_urls = []
        elif not isinstance(page_urls, list):
            raise ConfigError("pageUrls option is invalid; it should be a list of URLs")
        mapping["pageUrls"] = page_urls + args.urls

    for name in (
        "checkLinks",
        "checkXhtml",
        "checkCaching",
        "checkCompression",
        "onlySameDomain",
        "noRedirects",
        "noLocalLinks",
        "noEmptyFragments",
        "preferSecure",
        "queryHashes",
        "summary",
        "terse",
    ):
        if getattr(args, name):
            mapping[name] = True

    if args.ignore:
        mapping["linksToIgnore"] = list(mapping.get("linksToIgnore") or []) + args.ignore
    if args.max_response_time is not None:
        mapping["maxResponseTime"] = args.max_response_time
    if args.no_user_agent:
        mapping["userAgent"] = None
    elif args.user_agent is not None:
        mapping["userAgent"] = args.user_agent

    return mapping


def _add_flag(parser: ArgumentParser, flag: str, dest: str, help_text: str) -> None:
    parser.add_argument(flag, dest=dest, action="store_true", help=help_text)


def main() -> int:
    """
    Parse command line arguments and call L{run} with the results.

    This is the entry point that gets called by the wrapper script.
    """

    parser = ArgumentParser(
        description="Checks web pages and the resources they link to.",
    )
    parser.add_argument(
        "urls", metavar="URL|PATH", nargs="*", help="page to check"
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="JSON file containing options; command line arguments override it",
    )
    _add_flag(parser, "--check-links", "checkLinks", "check links on the pages")
    _add_flag(parser, "--check-xhtml", "checkXhtml", "check for XHTML well-formedness")
    _add_flag(parser, "--check-caching", "checkCaching", "check caching headers")
    _add_flag(
        parser, "--check-compression", "checkCompression", "check compression header"
    )
    _add_flag(
        parser,
        "--only-same-domain",
        "onlySameDomain",
        "only check links to the same host as the page",
    )
    _add_flag(parser, "--no-redirects", "noRedirects", "report redirected links")
    _add_flag(
        parser, "--no-local-links", "noLocalLinks", "report links to loopback addresses"
    )
    _add_flag(
        parser,
        "--no-empty-fragments",
        "noEmptyFragments",
        "report links with an empty fragment",
    )
    _add_flag(
        parser, "--prefer-secure", "preferSecure", "report links that could use HTTPS"
    )
    _add_flag(
        parser,
        "--query-hashes",
        "queryHashes",
        "verify content against sha1/md5/crc32 digests in link queries",
    )
    _add_flag(parser, "--summary", "summary", "list issues per page at the end")
    _add_flag(parser, "--terse", "terse", "only output the number of issues")
    parser.add_argument(
        "--ignore",
        metavar="LINK",
        action="append",
        default=[],
        help="link not to check, can be passed multiple times",
    )
    parser.add_argument(
        "--max-response-time",
        metavar="MS",
        type=float,
        help="report pages that take longer than this to load",
    )
    agent_group = parser.add_mutually_exclusive_group()
    agent_group.add_argument(
        "--user-agent", metavar="UA", help="value for the User-Agent header"
    )
    agent_group.add_argument(
        "--no-user-agent", action="store_true", help="do not send a User-Agent header"
    )
    parser.add_argument(
        "--timeout",
        metavar="SECONDS",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"socket timeout (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="increase amount of logging, can be passed multiple times",
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"pageaudit {VERSION_STRING}"
    )

    args = parser.parse_args()

    level_map = {0: logging.INFO, 1: logging.DEBUG}
    level = level_map.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        run(options_from_args(args), Fetcher(args.timeout))
    except (ConfigError, ChecksFailed) as ex:
        _LOG.error("%s", ex)
        return 1
    return 0

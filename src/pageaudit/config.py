# SPDX-License-Identifier: BSD-3-Clause

"""
Options for a test run.

L{Options} holds the validated configuration. It can be created directly
or from a mapping that uses the camel case option names of the task
runner integration, see L{Options.from_mapping}.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Sequence

from pageaudit.fetch import USER_AGENT

_LOG = getLogger(__name__)


class ConfigError(ValueError):
    """Raised when the configuration is invalid."""


_FLAGS = {
    "checkLinks": "check_links",
    "checkXhtml": "check_xhtml",
    "checkCaching": "check_caching",
    "checkCompression": "check_compression",
    "onlySameDomain": "only_same_domain",
    "noRedirects": "no_redirects",
    "noLocalLinks": "no_local_links",
    "noEmptyFragments": "no_empty_fragments",
    "preferSecure": "prefer_secure",
    "queryHashes": "query_hashes",
    "summary": "summary",
    "terse": "terse",
}
"""Maps boolean option names to L{Options} field names."""

OPTION_NAMES = frozenset(
    ("pageUrls", "linksToIgnore", "maxResponseTime", "userAgent", *_FLAGS)
)


def _is_string_list(value: object) -> bool:
    return isinstance(value, (list, tuple)) and all(
        isinstance(item, str) for item in value
    )


@dataclass(frozen=True)
class Options:
    """The configuration of a single test run."""

    page_urls: Sequence[str]
    """Pages to check, in order."""

    check_links: bool = False
    check_xhtml: bool = False
    check_caching: bool = False
    check_compression: bool = False
    only_same_domain: bool = False
    no_redirects: bool = False
    no_local_links: bool = False
    no_empty_fragments: bool = False
    prefer_secure: bool = False
    query_hashes: bool = False

    links_to_ignore: Sequence[str] = field(default_factory=tuple)
    """Resolved links that are not checked; compared as exact strings."""

    max_response_time: float | None = None
    """Maximum page response time in milliseconds, or C{None} for no limit."""

    user_agent: str | None = USER_AGENT
    """Value for the C{User-Agent} header, or C{None} to omit it."""

    summary: bool = False
    terse: bool = False

    def __post_init__(self) -> None:
        if not _is_string_list(self.page_urls):
            raise ConfigError("pageUrls option is invalid; it should be a list of URLs")
        if not _is_string_list(self.links_to_ignore):
            raise ConfigError("linksToIgnore option is invalid; it should be a list")
        max_time = self.max_response_time
        if max_time is not None and (
            isinstance(max_time, bool)
            or not isinstance(max_time, (int, float))
            or max_time <= 0
        ):
            raise ConfigError(
                "maxResponseTime option is invalid; it should be a positive number"
            )
        if self.user_agent is not None and not isinstance(self.user_agent, str):
            raise ConfigError("userAgent option is invalid; it should be a string or None")

        # Freeze sequences so options can be shared safely.
        object.__setattr__(self, "page_urls", tuple(self.page_urls))
        object.__setattr__(self, "links_to_ignore", tuple(self.links_to_ignore))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Options:
        """
        Create options from camel case option names.

        Boolean options are converted using their truth value.
        A false C{maxResponseTime} means no limit; a false C{userAgent}
        disables the header, while an absent one selects the default.

        @raise ConfigError:
            If a required option is missing or an option has the wrong type.
        """

        for name in mapping:
            if name not in OPTION_NAMES:
                _LOG.warning('Ignoring unknown option "%s"', name)

        page_urls = mapping.get("pageUrls")
        if page_urls is None or (
            not page_urls and not isinstance(page_urls, (list, tuple))
        ):
            # An empty list is a valid configuration that checks nothing.
            raise ConfigError(
                "pageUrls option is not present; it should be a list of URLs"
            )

        links_to_ignore = mapping.get("linksToIgnore")
        if links_to_ignore is None:
            links_to_ignore = ()

        user_agent = mapping.get("userAgent", USER_AGENT)
        if not user_agent:
            user_agent = None

        return cls(
            page_urls=page_urls,
            links_to_ignore=links_to_ignore,
            max_response_time=mapping.get("maxResponseTime") or None,
            user_agent=user_agent,
            **{attr: bool(mapping.get(name)) for name, attr in _FLAGS.items()},
        )


def load_config_file(path: str) -> dict[str, Any]:
    """
    Read options from a JSON file.

    @raise ConfigError:
        If the file cannot be read or does not contain a JSON object.
    """

    try:
        with open(path, encoding="utf-8") as inp:
            data = json.load(inp)
    except OSError as ex:
        raise ConfigError(f'Cannot read config file "{path}": {ex.strerror}') from ex
    except ValueError as ex:
        raise ConfigError(f'Config file "{path}" is not valid JSON: {ex}') from ex
    if not isinstance(data, dict):
        raise ConfigError(f'Config file "{path}" should contain a JSON object')
    return data

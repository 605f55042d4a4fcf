# SPDX-License-Identifier: BSD-3-Clause

"""
Finds links to other resources in an HTML page.

L{find_links} yields every candidate link in the page, resolved against
the page URL; L{filter_links} drops the links that should not be checked.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from logging import getLogger
from typing import cast
from urllib.parse import urljoin, urlsplit

from lxml import etree

_LOG = getLogger(__name__)

LINK_ATTRIBUTES: Sequence[tuple[str, str]] = (
    ("a", "href"),
    ("area", "href"),
    ("audio", "src"),
    ("embed", "src"),
    ("iframe", "src"),
    ("img", "src"),
    ("input", "src"),
    ("link", "href"),
    ("object", "data"),
    ("script", "src"),
    ("source", "src"),
    ("track", "src"),
    ("video", "src"),
)
"""The C{(element, attribute)} pairs that can link to another resource.

Links are reported grouped by pair, in this order.
"""


def parse_html(content: bytes, encoding: str | None = None) -> etree._Element | None:
    """
    Parse an HTML document leniently.

    @param content:
        The raw document.
    @param encoding:
        Text encoding from the HTTP header, if any.
    @return:
        The root element, or C{None} if there was no document to parse.
    """

    if not content.strip():
        return None
    parser = etree.HTMLParser(recover=True, encoding=encoding)
    try:
        root = etree.fromstring(content, parser)
    except etree.XMLSyntaxError as ex:
        _LOG.debug("Failed to parse document as HTML: %s", ex)
        return None
    return cast("etree._Element | None", root)


def iter_attribute_values(root: etree._Element) -> Iterator[str]:
    """Yield the non-empty values of all link-bearing attributes."""
    for tag, attr in LINK_ATTRIBUTES:
        for node in root.iter(tag):
            value = node.get(attr)
            if value is None:
                continue
            value = value.strip()
            if value:
                yield value


def resolve_link(base_url: str, value: str) -> str:
    """
    Resolve an attribute value against C{base_url}.

    An empty fragment is kept, so it can be reported.
    """
    link = urljoin(base_url, value)
    if value.endswith("#") and not link.endswith("#"):
        link += "#"
    return link


def find_links(
    content: bytes, base_url: str, encoding: str | None = None
) -> Iterator[str]:
    """
    Yield the links in an HTML document, resolved against C{base_url}.
    """

    root = parse_html(content, encoding)
    if root is None:
        return
    for value in iter_attribute_values(root):
        link = resolve_link(base_url, value)
        _LOG.debug(" Found link: %s", link)
        yield link


def filter_links(
    links: Iterable[str],
    base_url: str,
    links_to_ignore: Iterable[str] = (),
    only_same_domain: bool = False,
) -> Iterator[str]:
    """
    Drop links that are on the ignore list or, if C{only_same_domain}
    is set, that point to a different host than C{base_url}.

    Ignored links are compared as exact strings against the resolved link.
    """

    ignored = frozenset(links_to_ignore)
    base_host = urlsplit(base_url).hostname
    for link in links:
        if link in ignored:
            continue
        if only_same_domain and urlsplit(link).hostname != base_host:
            continue
        yield link

# SPDX-License-Identifier: BSD-3-Clause

"""
Checks documents for XML well-formedness.

The parsing itself is done by C{lxml}; this module only collects
the errors it reports and formats them for the issue log.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import NamedTuple

from lxml import etree


class MarkupError(NamedTuple):
    """A well-formedness error reported by the parser."""

    line: int
    column: int
    message: str
    char: str


def _char_at(lines: list[str], line: int, column: int) -> str:
    """Return the character at a 1-based position, or an empty string."""
    if 1 <= line <= len(lines):
        text = lines[line - 1]
        if 1 <= column <= len(text):
            return text[column - 1]
    return ""


def find_markup_errors(
    content: bytes, encoding: str | None = None
) -> Iterator[MarkupError]:
    """
    Parse C{content} as XML and yield every error the parser finds.

    @param content:
        The raw document. Any XML declaration is honored.
    @param encoding:
        Text encoding used to look up the offending characters.
    """

    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    failure: etree.XMLSyntaxError | None = None
    try:
        etree.fromstring(content, parser)
    except etree.XMLSyntaxError as ex:
        # Raised even in recover mode when there is no document at all.
        failure = ex

    lines = content.decode(encoding or "utf-8", "replace").splitlines()
    found = False
    for entry in parser.error_log:  # pylint: disable=not-an-iterable
        if entry.level < etree.ErrorLevels.ERROR:
            continue
        found = True
        yield MarkupError(
            entry.line,
            entry.column,
            entry.message,
            _char_at(lines, entry.line, entry.column),
        )

    if failure is not None and not found:
        line, column = failure.lineno or 0, failure.offset or 0
        yield MarkupError(line, column, failure.msg, _char_at(lines, line, column))


def format_markup_error(error: MarkupError) -> str:
    """Format an error as a single line."""
    message = ", ".join(
        part.strip() for part in error.message.strip().splitlines() if part.strip()
    )
    return (
        f"{message}, Line: {error.line:d}, Column: {error.column:d}, "
        f"Char: {error.char}"
    )

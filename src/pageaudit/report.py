# SPDX-License-Identifier: BSD-3-Clause

"""Collects and presents check results.

Results for a page, including the results for the links found on it,
are logged to a L{PageReport}. Reports are L{logging.LoggerAdapter}
implementations, so you can call the usual L{info<logging.Logger.info>}
and L{error<logging.Logger.error>} logging methods on them.

Messages logged at a level above C{INFO} are issues: the L{IssueLog}
that handed out the report keeps them, grouped by page, so they can be
counted and summarized at the end of the run.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from logging import INFO, Logger, getLogger
from typing import Any

from pageaudit.typing import LoggerBase

_LOG = getLogger(__name__)


def plural(count: int, noun: str) -> str:
    """Return C{count} followed by C{noun}, pluralized if needed."""
    return f"{count:d} {noun}{'' if count == 1 else 's'}"


class ChecksFailed(Exception):
    """Raised at the end of a run in which issues were found."""

    def __init__(self, message: str, count: int, summary: str):
        super().__init__(message)

        self.count = count
        """The number of issues found."""

        self.summary = summary
        """The issues grouped by page, see L{IssueLog.summarize}."""


class PageReport(LoggerBase):
    """Logs check results for one page and the links found on it."""

    def __init__(self, page: str, issues: IssueLog):
        """Initialize a report for C{page} that records issues in C{issues}."""
        super().__init__(issues.logger, dict(page=page))

        self.page = page
        """The page URL, as configured, to which this report applies."""

        self._issues = issues

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if level > INFO:
            self._issues.add(self.page, str(msg) % args if args else str(msg))
        if not self._issues.terse:
            super().log(level, msg, *args, **kwargs)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Process contextual information for a logged message.

        Our C{page} will be inserted into the log record.
        """

        extra = kwargs.get("extra")
        if extra is None:
            extra = self.extra
        else:
            extra.update(self.extra)
        kwargs["extra"] = extra

        return msg, kwargs


class IssueLog:
    """Collects issues for multiple pages, in the order they were found."""

    def __init__(self, terse: bool = False, logger: Logger = _LOG):
        """
        Initialize an empty issue log.

        @param terse:
            If C{True}, nothing is emitted while checking; the issues
            are still recorded.
        @param logger:
            Logger on which results are emitted.
        """

        self.terse = terse
        self.logger = logger
        self._reports: dict[str, PageReport] = {}
        self._issues: dict[str, list[str]] = {}

    def report_for(self, page: str) -> PageReport:
        """
        Return the report for C{page}.

        The first call for a page fixes the position of that page in
        the summary.
        """

        report = self._reports.get(page)
        if report is None:
            report = PageReport(page, self)
            self._reports[page] = report
            self._issues[page] = []
        return report

    def ok(self, message: str, *args: Any) -> None:  # pylint: disable=invalid-name
        """Log an informational message that does not belong to a page."""
        if not self.terse:
            self.logger.info(message, *args)

    def error(self, page: str, message: str, *args: Any) -> None:
        """Log an issue for C{page}."""
        self.report_for(page).error(message, *args)

    def add(self, page: str, message: str) -> None:
        """Record an issue without emitting it."""
        self._issues.setdefault(page, []).append(message)

    @property
    def count(self) -> int:
        """The total number of issues recorded."""
        return sum(len(messages) for messages in self._issues.values())

    def __iter__(self) -> Iterator[tuple[str, str]]:
        """Yield C{(page, message)} for every issue."""
        for page, messages in self._issues.items():
            for message in messages:
                yield page, message

    def summarize(self) -> str:
        """
        Return the issues grouped by page.

        Pages without issues are left out. If there are no issues at all,
        an empty string is returned.
        """

        lines = []
        for page, messages in self._issues.items():
            if messages:
                lines.append(f" {page}")
                lines += [f"  {message}" for message in messages]
        if not lines:
            return ""
        return "\n".join(["Summary of issues:"] + lines) + "\n"

    def count_message(self) -> str:
        """Return the line that ends a run with issues."""
        return f"{plural(self.count, 'issue')}, see above"

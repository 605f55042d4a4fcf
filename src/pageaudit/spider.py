# SPDX-License-Identifier: BSD-3-Clause

"""Keeps the queue of pages and links to check.

Create a `Spider` with the configured pages, then iterate through it to
receive tasks and call `Spider.add_tasks` with the tasks that checking
produced. New tasks go to the front of the queue, so the links found on
a page are checked before the next page.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum, auto
from logging import getLogger
from typing import Union

_LOG = getLogger(__name__)


class Attempt(Enum):
    """Which request for a link a task makes."""

    FIRST = auto()
    """First request: C{HEAD}, unless the body is needed."""

    RETRY = auto()
    """Repeated request with C{GET} after C{HEAD} gave a non-OK status."""


@dataclass(frozen=True)
class PageTask:
    """Check one of the configured pages."""

    url: str


@dataclass(frozen=True)
class LinkTask:
    """Check one link found on a page."""

    url: str
    """The resolved link to request."""

    page: str
    """The page the link was found on; issues are reported for this page."""

    attempt: Attempt = Attempt.FIRST

    insecure: str | None = None
    """If set, C{url} is the secure variant of this insecure link."""

    fresh: bool = True
    """C{True} until the link has been registered as visited."""

    def retry(self) -> LinkTask:
        """
        Return the task that repeats this request using C{GET}.

        The link was registered as visited by the first attempt,
        so the retry is never fresh.
        """
        assert self.attempt is Attempt.FIRST, self
        return replace(self, attempt=Attempt.RETRY, fresh=False)


Task = Union[PageTask, LinkTask]


class Spider:
    """Queue of tasks, processed strictly in order.

    Instances of this class are iterable. It is valid to add new tasks
    while iterating.
    """

    def __init__(self, page_urls: Iterable[str]):
        """Initializes a spider with one page task per page URL."""
        self._queue: deque[Task] = deque(PageTask(url) for url in page_urls)
        self.done = 0
        """Number of tasks handed out so far."""

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[Task]:
        queue = self._queue
        while queue:
            _LOG.debug("done: %d, to do: %d", self.done, len(queue))
            task = queue.popleft()
            self.done += 1
            yield task

    def add_tasks(self, tasks: Iterable[Task]) -> None:
        """
        Put C{tasks} at the front of the queue, keeping their order.
        """
        self._queue.extendleft(reversed(list(tasks)))

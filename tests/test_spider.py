"""
Unit tests for `pageaudit.spider`.
"""

from pytest import raises

from pageaudit.spider import Attempt, LinkTask, PageTask, Spider


def test_pages_in_order():
    """Test that pages are handed out in configured order."""
    spider = Spider(["a", "b", "c"])
    assert len(spider) == 3
    assert list(spider) == [PageTask("a"), PageTask("b"), PageTask("c")]
    assert spider.done == 3
    assert len(spider) == 0


def test_new_tasks_go_first():
    """Test that tasks added while iterating run before the remaining pages."""
    spider = Spider(["a", "b"])
    seen = []
    for task in spider:
        seen.append(task)
        if isinstance(task, PageTask):
            spider.add_tasks(LinkTask(f"{task.url}{n}", task.url) for n in range(3))
        elif task.url == "a1" and task.attempt is Attempt.FIRST:
            spider.add_tasks([task.retry()])
    assert seen == [
        PageTask("a"),
        LinkTask("a0", "a"),
        LinkTask("a1", "a"),
        LinkTask("a1", "a", Attempt.RETRY, fresh=False),
        LinkTask("a2", "a"),
        PageTask("b"),
        LinkTask("b0", "b"),
        LinkTask("b1", "b"),
        LinkTask("b2", "b"),
    ]


def test_add_nothing():
    """Test that adding no tasks leaves the queue as it is."""
    spider = Spider(["a"])
    spider.add_tasks([])
    assert list(spider) == [PageTask("a")]


def test_retry_once():
    """Test that a retry keeps the task's other fields."""
    task = LinkTask("https://x/", "p", insecure="http://x/", fresh=False)
    retry = task.retry()
    assert retry.attempt is Attempt.RETRY
    assert (retry.url, retry.page, retry.insecure, retry.fresh) == (
        "https://x/",
        "p",
        "http://x/",
        False,
    )
    assert task.attempt is Attempt.FIRST
    with raises(AssertionError):
        retry.retry()


def test_retry_not_fresh():
    """Test that retrying a fresh task does not register the link again."""
    task = LinkTask("http://x/", "p")
    assert task.fresh
    retry = task.retry()
    assert retry.attempt is Attempt.RETRY
    assert retry.fresh is False
    assert (retry.url, retry.page, retry.insecure) == ("http://x/", "p", None)

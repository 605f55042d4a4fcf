"""
Unit tests for `pageaudit.report`.
"""

from logging import ERROR, INFO, getLogger

from pytest import mark

from pageaudit.report import IssueLog, plural

logger = getLogger(__name__)


@mark.parametrize(
    "count, text", ((0, "0 issues"), (1, "1 issue"), (2, "2 issues"), (11, "11 issues"))
)
def test_plural(count, text):
    """Test pluralization of counts."""
    assert plural(count, "issue") == text


def test_issue_log_empty():
    """Test an issue log without issues."""
    issues = IssueLog(logger=logger)
    issues.report_for("http://example.com/a").info("Page: fine")
    assert issues.count == 0
    assert list(issues) == []
    assert issues.summarize() == ""


def test_issue_log_records(caplog):
    """Test that issues are emitted and recorded, info is only emitted."""
    issues = IssueLog(logger=logger)
    with caplog.at_level(INFO, logger=__name__):
        report = issues.report_for("http://example.com/a")
        report.info("Link: %s", "http://example.com/ok")
        report.error("Bad link (%d): %s", 404, "http://example.com/bad")
        issues.error("http://example.com/b", "Page error (%s): %s", "refused", "b")
        issues.ok("done")
    assert caplog.record_tuples == [
        (__name__, INFO, "Link: http://example.com/ok"),
        (__name__, ERROR, "Bad link (404): http://example.com/bad"),
        (__name__, ERROR, "Page error (refused): b"),
        (__name__, INFO, "done"),
    ]
    assert caplog.records[1].page == "http://example.com/a"
    assert issues.count == 2
    assert list(issues) == [
        ("http://example.com/a", "Bad link (404): http://example.com/bad"),
        ("http://example.com/b", "Page error (refused): b"),
    ]


def test_issue_log_terse(caplog):
    """Test that terse mode records issues without emitting anything."""
    issues = IssueLog(terse=True, logger=logger)
    with caplog.at_level(INFO, logger=__name__):
        issues.report_for("p").info("Page: p")
        issues.error("p", "Bad page (500): p")
        issues.ok("done")
    assert caplog.records == []
    assert issues.count == 1


def test_summarize_groups_by_page():
    """Test that the summary groups issues by page in first-seen order."""
    issues = IssueLog(logger=logger)
    issues.report_for("http://example.com/a")
    issues.report_for("http://example.com/b")
    issues.report_for("http://example.com/c")
    issues.error("http://example.com/c", "issue c1")
    issues.error("http://example.com/a", "issue a1")
    issues.error("http://example.com/c", "issue c2")
    assert issues.summarize() == (
        "Summary of issues:\n"
        " http://example.com/a\n"
        "  issue a1\n"
        " http://example.com/c\n"
        "  issue c1\n"
        "  issue c2\n"
    )


def test_count_message():
    """Test the message that ends a failed run."""
    issues = IssueLog(logger=logger)
    issues.error("p", "one")
    assert issues.count_message() == "1 issue, see above"
    issues.error("p", "two")
    assert issues.count_message() == "2 issues, see above"


def test_percent_in_message():
    """Test that messages without arguments are recorded verbatim."""
    issues = IssueLog(logger=logger)
    issues.report_for("p").error("100% broken")
    assert list(issues) == [("p", "100% broken")]

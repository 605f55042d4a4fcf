"""Audits web pages and the resources they link to.

What follows here is a quick tour of the code.

Overview
========

A test run checks a list of pages. Each page is fetched once and the
response is checked: the HTTP status, and optionally the response time,
caching headers, compression and XHTML well-formedness of the body.

If link checking is enabled, every link-bearing attribute in the page
is resolved and the resource it points to is verified as well, before
the next page is checked. Links can also carry a digest in their query,
which is compared to the digest of the linked content.

Entry Point
===========

`pageaudit.cmdline.main` parses command line arguments and then calls
`pageaudit.cmdline.run` to start a test run.

A test run creates a `pageaudit.spider.Spider` that holds the queue of
tasks, a `pageaudit.report.IssueLog` that collects the results and
a `pageaudit.checker.CheckContext` that is shared by the page and link
checkers.

Key Concepts
============

Work is split into *tasks*: a `pageaudit.spider.PageTask` checks one of
the configured pages, a `pageaudit.spider.LinkTask` checks one link found
on such a page. Checking a task can produce new tasks; those are put at
the front of the queue, so a page's links are done before the next page.

Only one request is in flight at any time, which keeps the order of the
output deterministic.

Every problem found is an *issue*. Issues are owned by the page they
were found on, even if the problem is in a linked resource. If any issue
was found, the run fails after all tasks are done.
"""

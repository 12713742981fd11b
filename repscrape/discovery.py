"""
Page-count discovery: one probe visit to the listing root, reading its pagination control.
Depends only on the collector and extractors.
"""

from repscrape.config import USERS_URL
from repscrape.errors import IssueError, ProbeError
from repscrape.extractors import find_max_page
from repscrape.fetcher import Collector, Page


def discover_max_pages(collector: Collector, url: str = USERS_URL) -> int:
    """
    Visit url once and return the highest page number advertised (at least 1).
    Raises ProbeError if the visit cannot be issued or the fetch fails.
    """
    found: list[int] = []

    def handle(page: Page) -> None:
        found.append(find_max_page(page.soup))

    try:
        collector.visit(url, handle)
    except IssueError as e:
        raise ProbeError(f"Could not probe {url}: {e}") from e
    failures = collector.wait()
    if failures:
        raise ProbeError(f"Probe fetch failed for {url}: {failures[0].error}") from failures[0].error
    return max([1, *found])

"""Scraping pipeline: probe page count, crawl pages in parallel, export. Used by CLI and programmatic callers."""

import math
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from tqdm import tqdm

from repscrape.aggregate import UserAggregate
from repscrape.config import PAGE_URL_TEMPLATE, ScrapeConfig
from repscrape.discovery import discover_max_pages
from repscrape.errors import ScrapeError
from repscrape.extractors import iter_users
from repscrape.fetcher import Collector, FetchFailure, Fetcher, Page, report_failures
from repscrape.models import User
from repscrape.parsing import ParseStats
from repscrape.storage import write_csv


def capped_page_count(discovered: int, record_cap: int, users_per_page: int) -> int:
    """min(discovered, ceil(record_cap / users_per_page)), never below 1."""
    return max(1, min(discovered, math.ceil(record_cap / users_per_page)))


def page_url(page: int, template: str = PAGE_URL_TEMPLATE) -> str:
    return template.format(page=page)


class ProgressReporter:
    """
    Running user count on a tqdm bar (stderr). With the bar disabled, prints
    "Scraped N users" every report_every users instead.
    Called under the aggregate lock, so counts arrive in increasing order.
    """

    def __init__(self, *, enabled: bool = True, report_every: int = 1) -> None:
        self._report_every = max(1, report_every)
        self._bar = tqdm(desc="Scraping users", unit=" user", file=sys.stderr) if enabled else None
        self.last = 0

    def __call__(self, count: int) -> None:
        self.last = count
        if self._bar is not None:
            self._bar.update(count - self._bar.n)
        elif count % self._report_every == 0:
            print(f"Scraped {count} users", file=sys.stderr)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()

    def __enter__(self) -> "ProgressReporter":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


@dataclass
class CrawlResult:
    users: list[User]
    pages: int
    failures: list[FetchFailure] = field(default_factory=list)


def scrape_users(
    collector: Collector,
    discovered_pages: int,
    *,
    config: ScrapeConfig | None = None,
    stats: ParseStats | None = None,
    progress: ProgressReporter | None = None,
) -> CrawlResult:
    """
    Visit pages 1..N (N capped by the record cap) and collect every user.
    An IssueError stops further visits but in-flight pages are still awaited before it propagates.
    Failed page fetches are reported and contribute no users.
    """
    config = config or ScrapeConfig()
    max_pages = capped_page_count(discovered_pages, config.record_cap, config.users_per_page)
    aggregate = UserAggregate(capacity=max_pages * config.users_per_page)

    def handle(page: Page) -> None:
        for user in iter_users(page, stats):
            aggregate.append(user, progress)

    try:
        for n in range(1, max_pages + 1):
            collector.visit(page_url(n, config.page_url_template), handle)
    finally:
        failures = collector.wait()

    if failures:
        print(f"  {len(failures)} of {max_pages} pages failed:", file=sys.stderr)
        report_failures(failures)
    return CrawlResult(users=aggregate.snapshot(), pages=max_pages, failures=failures)


class PipelineState(str, Enum):
    """Pipeline phases; each is entered at most once."""

    INIT = "init"
    PROBING = "probing"
    CRAWLING = "crawling"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    PipelineState.INIT: {PipelineState.PROBING},
    PipelineState.PROBING: {PipelineState.CRAWLING, PipelineState.FAILED},
    PipelineState.CRAWLING: {PipelineState.EXPORTING, PipelineState.FAILED},
    PipelineState.EXPORTING: {PipelineState.DONE, PipelineState.FAILED},
    PipelineState.DONE: set(),
    PipelineState.FAILED: set(),
}


@dataclass
class PipelineResult:
    state: PipelineState
    output: Path
    discovered_pages: int = 0
    crawled_pages: int = 0
    user_count: int = 0
    failures: list[FetchFailure] = field(default_factory=list)
    parse_failures: dict[str, int] = field(default_factory=dict)


class Pipeline:
    """One run: INIT -> PROBING -> CRAWLING -> EXPORTING -> DONE, or FAILED from any working phase."""

    def __init__(self, config: ScrapeConfig, collector: Collector | None = None) -> None:
        self.config = config.validate()
        self._collector = collector
        self.state = PipelineState.INIT
        self.failed_phase: PipelineState | None = None
        self.stats = ParseStats()

    def _enter(self, state: PipelineState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid pipeline transition {self.state.value} -> {state.value}")
        self.state = state

    def _make_collector(self) -> Collector:
        return Collector(
            parallelism=self.config.parallelism,
            fetcher=Fetcher(timeout=self.config.timeout),
            delay=self.config.delay,
        )

    def run(self) -> PipelineResult:
        cfg = self.config
        owns_collector = self._collector is None
        collector = self._collector or self._make_collector()
        self._enter(PipelineState.PROBING)
        try:
            if cfg.max_pages is not None:
                discovered = cfg.max_pages
                print(f"Using {discovered} pages (probe skipped)", file=sys.stderr)
            else:
                print("Scraping max pages...", file=sys.stderr)
                discovered = discover_max_pages(collector, cfg.users_url)
                print(f"  Found {discovered} pages", file=sys.stderr)

            self._enter(PipelineState.CRAWLING)
            print("Scraping users...", file=sys.stderr)
            with ProgressReporter(enabled=cfg.progress, report_every=cfg.report_every) as progress:
                crawl = scrape_users(
                    collector, discovered, config=cfg, stats=self.stats, progress=progress
                )
            print(f"  → {len(crawl.users)} users from {crawl.pages} pages", file=sys.stderr)
            if self.stats.total:
                details = ", ".join(f"{k}={v}" for k, v in sorted(self.stats.as_dict().items()))
                print(f"  Zero-filled unparseable fields: {details}", file=sys.stderr)

            self._enter(PipelineState.EXPORTING)
            print(f"Writing to CSV ({cfg.output})...", file=sys.stderr)
            write_csv(crawl.users, cfg.output, escape_quotes=cfg.escape_quotes)
            self._enter(PipelineState.DONE)
        except ScrapeError:
            self.failed_phase = self.state
            self._enter(PipelineState.FAILED)
            raise
        finally:
            if owns_collector:
                collector.close()

        return PipelineResult(
            state=self.state,
            output=cfg.output,
            discovered_pages=discovered,
            crawled_pages=crawl.pages,
            user_count=len(crawl.users),
            failures=crawl.failures,
            parse_failures=self.stats.as_dict(),
        )


def run_pipeline(config: ScrapeConfig, collector: Collector | None = None) -> PipelineResult:
    """Run probe, crawl, and export once. Raises ScrapeError subclasses on fatal errors."""
    return Pipeline(config, collector).run()

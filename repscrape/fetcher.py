"""HTTP fetching (User-Agent, timeouts, politeness delay) and a bounded-concurrency page collector."""

import random
import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from dataclasses import dataclass
from typing import Callable, Iterator

import httpx
from bs4 import BeautifulSoup, Tag

from repscrape.config import DEFAULT_PARALLELISM, DEFAULT_TIMEOUT
from repscrape.errors import ConfigurationError, IssueError


def _polite_sleep(delay: float) -> None:
    """Sleep with ±15% jitter plus small random offset to avoid fixed-interval bot patterns."""
    jittered = delay * random.uniform(0.85, 1.15) if delay > 0 else 0.0
    if jittered > 0:
        time.sleep(jittered + random.uniform(0, 0.02))

# Desktop browser UA so listing pages render the same markup a visitor sees
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "text/html", "Accept-Language": "en"}


class Fetcher:
    """HTTP fetcher with connection pooling. Reuse for multiple requests; spawn() one per thread."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = {**DEFAULT_HEADERS, **(headers or {})}
        # Custom transport (e.g. httpx.MockTransport) for offline runs
        self._transport = transport
        self._client: httpx.Client | None = None

    def spawn(self) -> "Fetcher":
        """Return a new Fetcher with the same config (for use in another thread)."""
        return Fetcher(timeout=self._timeout, headers=self._headers, transport=self._transport)

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                follow_redirects=True,
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def fetch_html(self, url: str, *, delay: float = 0) -> tuple[bytes, str]:
        """Fetch HTML; returns (raw_bytes, charset). Raises httpx errors on transport failure or non-2xx."""
        _polite_sleep(delay)
        resp = self._get_client().get(url)
        resp.raise_for_status()
        return resp.content, resp.charset_encoding or "utf-8"


@dataclass
class Page:
    """A fetched document, parsed with lxml."""

    url: str
    soup: BeautifulSoup

    @classmethod
    def from_bytes(cls, url: str, raw: bytes, charset: str = "utf-8") -> "Page":
        try:
            html_str = raw.decode(charset, errors="replace")
        except LookupError:
            html_str = raw.decode("utf-8", errors="replace")
        return cls(url=url, soup=BeautifulSoup(html_str, "lxml"))

    def iter_matches(self, selector: str) -> Iterator[Tag]:
        """Lazily yield nodes matching a CSS selector, in document order."""
        yield from self.soup.css.iselect(selector)


@dataclass
class FetchFailure:
    """A visit that failed: the fetch itself, or the handler run on its page."""

    url: str
    error: BaseException


PageHandler = Callable[[Page], None]


def _check_url(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise IssueError(f"Invalid URL {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise IssueError(f"Not an absolute http(s) URL: {url!r}")


class Collector:
    """
    Fetch pages on a thread pool with at most `parallelism` visits in flight.

    visit() validates the URL synchronously, blocks while the ceiling is reached,
    then schedules fetch + handler. wait() blocks until all scheduled work is done
    and returns the failures collected since the previous wait().
    """

    def __init__(
        self,
        *,
        parallelism: int = DEFAULT_PARALLELISM,
        fetcher: Fetcher | None = None,
        delay: float = 0.0,
    ) -> None:
        if not isinstance(parallelism, int) or parallelism < 1:
            raise ConfigurationError(f"parallelism must be a positive integer, got {parallelism!r}")
        self.parallelism = parallelism
        self._base_fetcher = fetcher or Fetcher()
        self._delay = delay
        self._slots = threading.BoundedSemaphore(parallelism)
        self._executor = ThreadPoolExecutor(max_workers=parallelism, thread_name_prefix="collector")
        self._local = threading.local()
        self._fetchers: list[Fetcher] = []
        self._fetchers_lock = threading.Lock()
        self._pending: set[Future] = set()
        self._failures: list[FetchFailure] = []
        self._state_lock = threading.Lock()
        self._closed = False

    def _thread_fetcher(self) -> Fetcher:
        f = getattr(self._local, "fetcher", None)
        if f is None:
            f = self._base_fetcher.spawn()
            self._local.fetcher = f
            with self._fetchers_lock:
                self._fetchers.append(f)
        return f

    def _run(self, url: str, handler: PageHandler) -> None:
        try:
            raw, charset = self._thread_fetcher().fetch_html(url, delay=self._delay)
            handler(Page.from_bytes(url, raw, charset))
        except Exception as e:
            with self._state_lock:
                self._failures.append(FetchFailure(url, e))
        finally:
            self._slots.release()

    def _done(self, fut: Future) -> None:
        with self._state_lock:
            self._pending.discard(fut)

    def visit(self, url: str, handler: PageHandler) -> None:
        """Schedule one fetch. Raises IssueError if the visit cannot be issued."""
        if self._closed:
            raise IssueError(f"Collector is closed; cannot visit {url}")
        _check_url(url)
        self._slots.acquire()
        try:
            fut = self._executor.submit(self._run, url, handler)
        except RuntimeError as e:
            self._slots.release()
            raise IssueError(f"Could not schedule {url}: {e}") from e
        with self._state_lock:
            self._pending.add(fut)
        fut.add_done_callback(self._done)

    def wait(self) -> list[FetchFailure]:
        """Block until every issued visit and its handler finish; return and clear failures."""
        while True:
            with self._state_lock:
                pending = list(self._pending)
            if not pending:
                break
            done, _ = wait_futures(pending)
            with self._state_lock:
                self._pending.difference_update(done)
        with self._state_lock:
            failures, self._failures = self._failures, []
        return failures

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        with self._fetchers_lock:
            for f in self._fetchers:
                f.close()
            self._fetchers.clear()
        self._base_fetcher.close()

    def __enter__(self) -> "Collector":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def report_failures(failures: list[FetchFailure], limit: int = 10) -> None:
    """Print up to `limit` failure lines to stderr."""
    for failure in failures[:limit]:
        print(f"  Error {failure.url}: {failure.error}", file=sys.stderr)
    if len(failures) > limit:
        print(f"  ... and {len(failures) - limit} more failed pages", file=sys.stderr)

import threading
import time

import httpx
import pytest

from repscrape.errors import ConfigurationError, IssueError
from repscrape.fetcher import DEFAULT_USER_AGENT, Collector, Fetcher, Page


def _ok_transport(body: str = "<html><body><p class='x'>hi</p></body></html>") -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(200, html=body))


def test_fetch_html_sends_user_agent():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, html="<p>ok</p>")

    with Fetcher(transport=httpx.MockTransport(handler)) as f:
        raw, charset = f.fetch_html("https://example.com/")
    assert raw == b"<p>ok</p>"
    assert charset == "utf-8"
    assert seen["ua"] == DEFAULT_USER_AGENT


def test_fetch_html_raises_on_error_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    with Fetcher(transport=transport) as f:
        with pytest.raises(httpx.HTTPStatusError):
            f.fetch_html("https://example.com/missing")


def test_page_iter_matches_is_lazy_and_ordered():
    page = Page.from_bytes("https://example.com", b"<ul><li class='i'>1</li><li class='i'>2</li></ul>")
    matches = page.iter_matches(".i")
    assert next(matches).get_text() == "1"
    assert [m.get_text() for m in matches] == ["2"]


@pytest.mark.parametrize("parallelism", [0, -1, 2.5])
def test_collector_rejects_bad_parallelism(parallelism):
    with pytest.raises(ConfigurationError):
        Collector(parallelism=parallelism)


@pytest.mark.parametrize("url", ["/users?page=1", "ftp://example.com/x", "not a url", ""])
def test_visit_rejects_unissuable_url(make_collector, url):
    collector = make_collector(_ok_transport())
    with pytest.raises(IssueError):
        collector.visit(url, lambda page: None)
    assert collector.wait() == []


def test_visit_after_close_is_issue_error():
    collector = Collector(parallelism=1, fetcher=Fetcher(transport=_ok_transport()))
    collector.close()
    with pytest.raises(IssueError):
        collector.visit("https://example.com/", lambda page: None)


def test_wait_runs_every_handler(make_collector):
    collector = make_collector(_ok_transport(), parallelism=5)
    handled: list[str] = []
    lock = threading.Lock()

    def handle(page: Page) -> None:
        with lock:
            handled.append(page.url)

    urls = [f"https://example.com/p{i}" for i in range(40)]
    for u in urls:
        collector.visit(u, handle)
    assert collector.wait() == []
    assert sorted(handled) == sorted(urls)


def test_in_flight_never_exceeds_parallelism(make_collector):
    state = {"now": 0, "max": 0}
    lock = threading.Lock()

    def handler(request: httpx.Request) -> httpx.Response:
        with lock:
            state["now"] += 1
            state["max"] = max(state["max"], state["now"])
        time.sleep(0.02)
        with lock:
            state["now"] -= 1
        return httpx.Response(200, html="<p></p>")

    collector = make_collector(httpx.MockTransport(handler), parallelism=3)
    for i in range(15):
        collector.visit(f"https://example.com/{i}", lambda page: None)
    collector.wait()
    assert 1 <= state["max"] <= 3


def test_failures_reported_once_and_cleared(make_collector):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500 if request.url.path == "/bad" else 200, html="<p></p>")

    def explode(page: Page) -> None:
        if page.url.endswith("/boom"):
            raise ValueError("handler broke")

    collector = make_collector(httpx.MockTransport(handler))
    for path in ("/ok", "/bad", "/boom"):
        collector.visit(f"https://example.com{path}", explode)
    failures = collector.wait()
    assert sorted(f.url for f in failures) == ["https://example.com/bad", "https://example.com/boom"]
    by_url = {f.url: f.error for f in failures}
    assert isinstance(by_url["https://example.com/bad"], httpx.HTTPStatusError)
    assert isinstance(by_url["https://example.com/boom"], ValueError)
    assert collector.wait() == []


def test_wait_blocks_on_futures_instead_of_polling(make_collector, monkeypatch):
    import repscrape.fetcher as fetcher_mod

    release = threading.Event()
    calls = []
    real_wait = fetcher_mod.wait_futures

    def counting_wait(fs, *args, **kwargs):
        calls.append(len(fs))
        return real_wait(fs, *args, **kwargs)

    def handler(request: httpx.Request) -> httpx.Response:
        release.wait(timeout=5)
        return httpx.Response(200, html="<p></p>")

    monkeypatch.setattr(fetcher_mod, "wait_futures", counting_wait)
    collector = make_collector(httpx.MockTransport(handler), parallelism=2)
    collector.visit("https://example.com/slow", lambda page: None)
    threading.Timer(0.2, release.set).start()
    assert collector.wait() == []
    assert calls == [1]
    assert collector._pending == set()
    calls.clear()
    assert collector.wait() == []
    assert calls == []

"""Shared fixtures: synthetic users-listing markup served through httpx.MockTransport."""

import httpx
import pytest

from repscrape.fetcher import Collector, Fetcher

ROOT_URL = "https://stackoverflow.com/users"


def user_html(name: str, location: str = "", rep: str = "1", tags: tuple[str, ...] = ()) -> str:
    """One .user-info block laid out like the live listing."""
    links = "".join(f'<a href="/questions/tagged/{t}" class="post-tag">{t}</a>' for t in tags)
    return f"""
<div class="user-info user-hover">
  <div class="user-gravatar48"><a href="/users/1"><div class="gravatar-wrapper-48"><img src="a.png"></div></a></div>
  <div class="user-details">
    <a href="/users/1/someone">{name}</a>
    <span class="user-location">{location}</span>
    <div class="-flair"><span class="reputation-score" title="reputation score">{rep}</span></div>
  </div>
  <div class="user-tags">{links}</div>
</div>"""


def pagination_html(items: list[str]) -> str:
    spans = "".join(f'<a class="s-pagination--item" href="#">{i}</a>' for i in items)
    return f'<div class="s-pagination site1 themed pager">{spans}</div>'


def listing_html(users: list[str], pagination: list[str] | None = None) -> str:
    pager = pagination_html(pagination) if pagination is not None else ""
    return f"<html><body><div id='user-browser'>{''.join(users)}</div>{pager}</body></html>"


def site_transport(
    root_html: str,
    pages: dict[int, str],
    *,
    fail_pages: frozenset[int] = frozenset(),
    fail_root: bool = False,
) -> httpx.MockTransport:
    """Serve root_html for the bare listing URL and pages[n] for ?page=n (empty listing if absent)."""

    def handler(request: httpx.Request) -> httpx.Response:
        page = request.url.params.get("page")
        if page is None:
            return httpx.Response(503) if fail_root else httpx.Response(200, html=root_html)
        n = int(page)
        if n in fail_pages:
            return httpx.Response(500)
        return httpx.Response(200, html=pages.get(n, listing_html([])))

    return httpx.MockTransport(handler)


@pytest.fixture
def make_collector():
    """Factory for collectors backed by a mock transport; closes them after the test."""
    made: list[Collector] = []

    def _make(transport: httpx.BaseTransport, parallelism: int = 4) -> Collector:
        c = Collector(parallelism=parallelism, fetcher=Fetcher(transport=transport))
        made.append(c)
        return c

    yield _make
    for c in made:
        c.close()

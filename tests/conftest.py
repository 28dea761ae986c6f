"""Shared fixtures: a routed fake web, ad factories and a fake ad source."""

from __future__ import annotations

import json
import threading
from typing import Callable

import httpx
import pytest

from adtrace_agent.ad_source import AdSourceError
from adtrace_agent.fetcher import WebClient
from adtrace_agent.models import AdRecord, BrandProfile


def _route_key(url: httpx.URL) -> tuple[str, str]:
    return url.host.lower(), url.path or "/"


class FakeWeb:
    """Tiny site map served through ``httpx.MockTransport``.

    Routes ignore the query string. Unknown URLs answer 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[tuple[str, str]] = []
        self.on_request: Callable[[httpx.Request], None] | None = None
        self._lock = threading.Lock()

    def page(self, url: str, html: str, status: int = 200, content_type: str = "text/html; charset=utf-8"):
        def respond(request: httpx.Request) -> httpx.Response:
            body = b"" if request.method == "HEAD" else html.encode()
            return httpx.Response(status, headers={"content-type": content_type}, content=body)

        self.routes[_route_key(httpx.URL(url))] = respond

    def redirect(self, url: str, location: str, status: int = 301):
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, headers={"location": location})

        self.routes[_route_key(httpx.URL(url))] = respond

    def json(self, url: str, payload, status: int = 200):
        def respond(request: httpx.Request) -> httpx.Response:
            body = b"" if request.method == "HEAD" else json.dumps(payload).encode()
            return httpx.Response(status, headers={"content-type": "application/json"}, content=body)

        self.routes[_route_key(httpx.URL(url))] = respond

    def fail(self, url: str, exc: Exception):
        def respond(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[_route_key(httpx.URL(url))] = respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append((request.method, str(request.url)))
        if self.on_request is not None:
            self.on_request(request)
        respond = self.routes.get(_route_key(request.url))
        if respond is None:
            return httpx.Response(404, headers={"content-type": "text/html"}, content=b"not found")
        return respond(request)

    def hosts(self) -> set[str]:
        return {httpx.URL(u).host for _, u in self.requests}

    def client(self) -> WebClient:
        return WebClient(transport=httpx.MockTransport(self.handler))


class FakeAdSource:
    """Canned ad search results keyed by search terms."""

    def __init__(
        self,
        results: dict[str, list[AdRecord]] | None = None,
        default: list[AdRecord] | None = None,
        failing: set[str] | None = None,
    ):
        self.results = results or {}
        self.default = default or []
        self.failing = failing or set()
        self.calls: list[tuple[str, str, int]] = []
        self._lock = threading.Lock()

    def search(self, terms, countries, match_mode, max_results):
        with self._lock:
            self.calls.append((terms, match_mode, max_results))
        if terms in self.failing:
            raise AdSourceError("(#613) Calls to this api have exceeded the rate limit.", code=613)
        ads = self.results.get(terms, self.default)
        return list(ads)[:max_results]


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def client(web: FakeWeb):
    c = web.client()
    yield c
    c.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_ad() -> Callable[..., AdRecord]:
    counter = {"n": 0}

    def factory(
        page_id: str = "p1",
        page_name: str = "Glow25",
        captions: list[str] | None = None,
        bodies: list[str] | None = None,
        titles: list[str] | None = None,
        snapshot_url: str | None = None,
        ad_id: str | None = None,
    ) -> AdRecord:
        counter["n"] += 1
        return AdRecord(
            id=ad_id or f"ad{counter['n']}",
            page_id=page_id,
            page_name=page_name,
            ad_creative_link_captions=captions or [],
            ad_creative_bodies=bodies or [],
            ad_creative_link_titles=titles or [],
            ad_snapshot_url=snapshot_url,
        )

    return factory


@pytest.fixture
def glow25() -> BrandProfile:
    return BrandProfile(
        brand_name="Glow25",
        aliases=["glow25"],
        domain="glow25.de",
        official_page_ids=["p1"],
    )


@pytest.fixture
def fake_ad_source() -> type[FakeAdSource]:
    return FakeAdSource

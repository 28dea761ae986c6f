from __future__ import annotations

import logging
import re
import time

import httpx

from .fetcher import FetchedPage, FetchError, WebClient
from .models import RedirectChain

logger = logging.getLogger(__name__)

META_REFRESH_RES = (
    re.compile(
        r"<meta[^>]*http-equiv=[\"']?refresh[\"']?[^>]*content=[\"']?\d+\s*;\s*url=([^\"'>\s]+)",
        re.IGNORECASE,
    ),
    re.compile(
        r"<meta[^>]*content=[\"']?\d+\s*;\s*url=([^\"'>\s]+)[\"']?[^>]*http-equiv=[\"']?refresh[\"']?",
        re.IGNORECASE,
    ),
)

JS_REDIRECT_RES = (
    re.compile(r"window\.location(?:\.href)?\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"(?:window\.)?location\.replace\s*\(\s*[\"']([^\"']+)[\"']\s*\)", re.IGNORECASE),
    re.compile(r"document\.location\.href\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"top\.location(?:\.href)?\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
)


def _join(base: str, ref: str) -> str | None:
    try:
        return str(httpx.URL(base).join(ref.strip()))
    except (httpx.InvalidURL, ValueError):
        return None


def _visit_key(url: str) -> str:
    """Loop-guard key: fragment dropped, empty path read as '/', host lower-cased."""
    try:
        u = httpx.URL(url)
    except (httpx.InvalidURL, ValueError):
        return url
    return str(u.copy_with(fragment=None, path=u.path or "/", host=u.host.lower()))


def refresh_target(html: str, base_url: str) -> str | None:
    """Destination of a meta-refresh or whitelisted JS redirect in ``html``."""
    for pattern in META_REFRESH_RES + JS_REDIRECT_RES:
        m = pattern.search(html)
        if m:
            return _join(base_url, m.group(1))
    return None


class RedirectWalk:
    """Outcome of one walk: the chain plus the last page body that was fetched."""

    def __init__(self, chain: RedirectChain, page: FetchedPage | None, error: FetchError | None):
        self.chain = chain
        self.page = page
        self.error = error


def walk_redirects(
    client: WebClient,
    url: str,
    *,
    max_hops: int = 10,
    timeout_s: float = 8.0,
) -> RedirectWalk:
    """Follow 3xx, meta-refresh and JS redirects hop by hop.

    Each hop is probed with HEAD; a non-redirect or rejected HEAD is repeated as
    GET so servers that ignore HEAD and HTML-level redirects are both caught.
    Stops on a repeated URL, after ``max_hops``, on timeout or on a network
    failure, always returning the chain gathered so far.
    """
    started = time.monotonic()
    chain = [url]
    seen = {_visit_key(url)}
    current = url
    hops = 0
    note = None
    page: FetchedPage | None = None
    error: FetchError | None = None

    while True:
        if hops >= max_hops:
            note = "max_hops"
            break
        remaining = timeout_s - (time.monotonic() - started)
        if remaining <= 0:
            note = "timeout"
            break

        res = client.fetch(current, method="HEAD", follow_redirects=False, timeout=remaining)
        next_url = None
        if isinstance(res, FetchedPage) and res.is_redirect:
            next_url = _join(current, res.location or "")
        else:
            remaining = timeout_s - (time.monotonic() - started)
            if remaining <= 0:
                note = "timeout"
                break
            res = client.fetch(current, method="GET", follow_redirects=False, timeout=remaining)
            if isinstance(res, FetchError):
                error = res
                note = res.reason
                break
            page = res
            if res.is_redirect:
                next_url = _join(current, res.location or "")
            elif res.ok and res.text:
                next_url = refresh_target(res.text, current)

        if not next_url or _visit_key(next_url) in seen:
            if next_url:
                note = "cycle"
            break
        chain.append(next_url)
        seen.add(_visit_key(next_url))
        current = next_url
        hops += 1
        page = None

    if note and note != "cycle":
        logger.debug("redirect walk %s stopped at %s (%s)", url, current, note)
    return RedirectWalk(RedirectChain(final_url=current, chain=chain, hops=hops, note=note), page, error)


def resolve_redirects(
    client: WebClient,
    url: str,
    *,
    max_hops: int = 10,
    timeout_s: float = 8.0,
) -> RedirectChain:
    return walk_redirects(client, url, max_hops=max_hops, timeout_s=timeout_s).chain

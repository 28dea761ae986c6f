from __future__ import annotations

import html as htmllib
import logging
import re
from typing import Callable
from urllib.parse import parse_qs, urljoin, urlparse

from .fetcher import FetchError, WebClient
from .redirects import JS_REDIRECT_RES, META_REFRESH_RES, resolve_redirects
from .urls import (
    decode_url,
    domain_of,
    has_path,
    host_in,
    is_probably_asset_url,
    is_pseudo_link,
    is_valid_landing_url,
    strip_fragment,
)

logger = logging.getLogger(__name__)

_WRAPPER_RES = (
    re.compile(r"https?://l\.facebook\.com/l\.php\?[^\"'\s<>]+", re.IGNORECASE),
    re.compile(r"https?://l\.instagram\.com/\?[^\"'\s<>]+", re.IGNORECASE),
)

_OG_URL_RES = (
    re.compile(r"<meta[^>]*property=[\"']og:url[\"'][^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*property=[\"']og:url[\"']", re.IGNORECASE),
)
_CANONICAL_RES = (
    re.compile(r"<link[^>]*rel=[\"']canonical[\"'][^>]*href=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<link[^>]*href=[\"']([^\"']+)[\"'][^>]*rel=[\"']canonical[\"']", re.IGNORECASE),
)
_LYNX_RE = re.compile(r"data-lynx-uri=[\"']([^\"']+)[\"']", re.IGNORECASE)

_RENDER_AD_HREF_RE = re.compile(r"data-href=[\"']([^\"']*render_ad[^\"']*)[\"']", re.IGNORECASE)
_DATA_URL_RE = re.compile(r"data-(?:url|destination[-_]url)=[\"']([^\"']+)[\"']", re.IGNORECASE)
_DEST_URL_RE = re.compile(r"[\"']?destination_url[\"']?\s*[:=]\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_LINK_FIELD_RE = re.compile(r"\"link\"\s*:\s*\"(https?://[^\"]+)\"", re.IGNORECASE)

_SCRIPT_KEY_RE = re.compile(
    r"\"(?:link_url|website_url|call_to_action_url|landing_page_url|cta_link)\"\s*:\s*\"([^\"]+)\"",
    re.IGNORECASE,
)

_ANCHOR_RE = re.compile(r"<a\b([^>]*)>(.*?)</a>", re.IGNORECASE | re.DOTALL)
_HREF_ATTR_RE = re.compile(r"href\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_CLASS_ATTR_RE = re.compile(r"class\s*=\s*[\"']([^\"']*)[\"']", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_AD_CTA_TEXT_RE = re.compile(
    r"\b(shop now|learn more|buy now|order now|jetzt kaufen|mehr erfahren|jetzt shoppen|zum shop)\b",
    re.IGNORECASE,
)
_AD_CTA_CLASS_RE = re.compile(r"(_8l12|\bcta\b)", re.IGNORECASE)

_AGGRESSIVE_KEY_RE = re.compile(
    r"\"(?:uri|url|href|link|website|destination)\"\s*:\s*\"(https?://[^\"]+)\"",
    re.IGNORECASE,
)
_ENCODED_U_RE = re.compile(r"[?&]u=(https?%3A[^&\"'\s<>]+)", re.IGNORECASE)
_ANY_URL_RE = re.compile(r"https?://[^\s\"'<>\\)]+", re.IGNORECASE)
_NOISE_HOSTS = (
    "googleapis.com",
    "gstatic.com",
    "cloudflare.com",
    "cloudflareinsights.com",
    "sentry.io",
    "google-analytics.com",
    "googletagmanager.com",
    "doubleclick.net",
)

# Call-to-action patterns on presell/editorial pages.
_CTA_TEXT_DE_RE = re.compile(
    r"(angebot|kaufen|bestellen|verfügbar|prüfen|shop|jetzt|hier|klicken|weiter|produkt)",
    re.IGNORECASE,
)
_CTA_TEXT_EN_RE = re.compile(r"\b(buy|shop|order|get|claim|check)\b", re.IGNORECASE)
_CTA_DATA_RE = re.compile(r"data-(?:href|url|redirect|link|target)\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_CTA_ONCLICK_LOCATION_RE = re.compile(
    r"onclick\s*=\s*[\"'][^\"']*?location(?:\.href)?\s*=\s*[\"']?([^\"'\s;]+)",
    re.IGNORECASE,
)
_CTA_ONCLICK_CALL_RE = re.compile(
    r"onclick\s*=\s*[\"'][^\"']*?(?:navigateTo|redirect|goTo)\s*\(\s*[\"']?([^\"'\s)]+)",
    re.IGNORECASE,
)
_CTA_FORM_RE = re.compile(r"<form[^>]*action\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_CTA_JS_VAR_RE = re.compile(
    r"\b\w*(?:redirect|target|shop|checkout|buy)(?:Url|Link|Href)\s*=\s*[\"']([^\"']+)[\"']",
    re.IGNORECASE,
)
_CTA_JSON_RE = re.compile(
    r"\"(?:redirect|target|shop|checkout|buy|order)_?(?:url|link|href)\"\s*:\s*\"([^\"]+)\"",
    re.IGNORECASE,
)
_CTA_EXCLUDED_HOSTS = (
    "facebook.com",
    "fb.com",
    "instagram.com",
    "meta.com",
    "google.com",
    "youtube.com",
    "twitter.com",
    "pinterest.com",
)


def unwrap_platform_link(url: str) -> str | None:
    """Real destination hidden in an ``l.php?u=`` style share wrapper."""
    try:
        p = urlparse(htmllib.unescape(url))
    except ValueError:
        return None
    params = parse_qs(p.query)
    for key in ("u", "href"):
        if params.get(key):
            return decode_url(params[key][0])
    return None


def _clean(raw: str) -> str:
    value = htmllib.unescape(raw.strip()).replace("\\/", "/")
    if value.lower().startswith(("http%3a", "https%3a")):
        value = decode_url(value)
    return value


def _anchors(html: str):
    for attrs, inner in _ANCHOR_RE.findall(html):
        m = _HREF_ATTR_RE.search(attrs)
        if not m:
            continue
        cls = _CLASS_ATTR_RE.search(attrs)
        text = " ".join(_TAG_RE.sub(" ", inner).split())
        yield m.group(1), htmllib.unescape(text), cls.group(1) if cls else ""


def _wrapped_links(html: str) -> list[str]:
    found = []
    for pattern in _WRAPPER_RES:
        for raw in pattern.findall(html):
            target = unwrap_platform_link(raw)
            if target:
                found.append(target)
    return found


def _meta_tags(html: str) -> list[str]:
    found = [m for pattern in _OG_URL_RES + _CANONICAL_RES for m in pattern.findall(html)]
    for lynx in _LYNX_RE.findall(html):
        found.append(unwrap_platform_link(lynx) or lynx)
    return found


def _data_attributes(html: str) -> list[str]:
    found = []
    for href in _RENDER_AD_HREF_RE.findall(html):
        try:
            params = parse_qs(urlparse(htmllib.unescape(href)).query)
        except ValueError:
            continue
        for key in ("dest_url", "link"):
            if params.get(key):
                found.append(decode_url(params[key][0]))
    found += _DATA_URL_RE.findall(html)
    found += _DEST_URL_RE.findall(html)
    found += _LINK_FIELD_RE.findall(html)
    return found


def _script_json(html: str) -> list[str]:
    return _SCRIPT_KEY_RE.findall(html)


def _meta_refresh(html: str) -> list[str]:
    return [m for pattern in META_REFRESH_RES for m in pattern.findall(html)]


def _js_redirects(html: str) -> list[str]:
    return [m for pattern in JS_REDIRECT_RES for m in pattern.findall(html)]


def _cta_anchors(html: str) -> list[str]:
    return [
        href
        for href, text, cls in _anchors(html)
        if _AD_CTA_TEXT_RE.search(text) or _AD_CTA_CLASS_RE.search(cls)
    ]


def _aggressive(html: str) -> list[str]:
    found = _AGGRESSIVE_KEY_RE.findall(html)
    found += [decode_url(u) for u in _ENCODED_U_RE.findall(html)]

    scanned = []
    for raw in _ANY_URL_RE.findall(html):
        url = _clean(raw)
        host = domain_of(url) or ""
        if is_probably_asset_url(url) or host_in(host, _NOISE_HOSTS):
            continue
        if is_valid_landing_url(url):
            scanned.append(url)
    with_path = [u for u in scanned if has_path(u)]
    return found + with_path + [u for u in scanned if u not in with_path]


# Ordered from most to least reliable; the first valid candidate wins.
_FAMILIES: tuple[tuple[str, Callable[[str], list[str]]], ...] = (
    ("platform_wrapper", _wrapped_links),
    ("meta_tag", _meta_tags),
    ("data_attribute", _data_attributes),
    ("script_json", _script_json),
    ("meta_refresh", _meta_refresh),
    ("js_redirect", _js_redirects),
    ("cta_anchor", _cta_anchors),
    ("aggressive", _aggressive),
)


def extract_candidate(html: str, base_url: str | None = None) -> tuple[str, str] | None:
    """Return ``(url, family)`` for the first valid outbound link in ``html``."""
    if not html:
        return None
    text = html.replace("\\/", "/")
    for name, finder in _FAMILIES:
        for raw in finder(text):
            url = _clean(raw)
            if base_url and "://" not in url:
                url = urljoin(base_url, url)
            if is_valid_landing_url(url):
                return url, name
    return None


def extract_candidate_url(html: str, base_url: str | None = None) -> str | None:
    hit = extract_candidate(html, base_url)
    return hit[0] if hit else None


def _cta_texts(pattern: re.Pattern[str]) -> Callable[[str], list[str]]:
    def finder(html: str) -> list[str]:
        return [href for href, text, _ in _anchors(html) if pattern.search(text)]

    return finder


_CTA_FAMILIES: tuple[tuple[str, Callable[[str], list[str]]], ...] = (
    ("anchor_text_de", _cta_texts(_CTA_TEXT_DE_RE)),
    ("anchor_text_en", _cta_texts(_CTA_TEXT_EN_RE)),
    ("data_attribute", _CTA_DATA_RE.findall),
    ("onclick_location", _CTA_ONCLICK_LOCATION_RE.findall),
    ("onclick_call", _CTA_ONCLICK_CALL_RE.findall),
    ("form_action", _CTA_FORM_RE.findall),
    ("js_variable", _CTA_JS_VAR_RE.findall),
    ("json_field", _CTA_JSON_RE.findall),
)


def _usable_cta(raw: str, page_url: str) -> str | None:
    value = _clean(raw)
    if len(value) < 5 or is_pseudo_link(value):
        return None
    url = urljoin(page_url, value)
    try:
        p = urlparse(url)
    except ValueError:
        return None
    if p.scheme not in ("http", "https") or not p.hostname:
        return None
    if host_in(p.hostname, _CTA_EXCLUDED_HOSTS):
        return None
    if strip_fragment(url).rstrip("/") == strip_fragment(page_url).rstrip("/"):
        return None
    return url


def extract_cta(html: str, page_url: str) -> tuple[str, str] | None:
    """First call-to-action target on a content page, as ``(absolute_url, method)``."""
    if not html:
        return None
    for name, finder in _CTA_FAMILIES:
        for raw in finder(html):
            url = _usable_cta(raw, page_url)
            if url:
                return url, name
    return None


def landing_url_from_snapshot(
    client: WebClient,
    snapshot_url: str,
    *,
    timeout_s: float = 6.0,
    max_hops: int = 10,
) -> str | None:
    """Fetch an ad snapshot, pull the advertised link out of it and follow its redirects."""
    res = client.get_page(snapshot_url, timeout=timeout_s)
    if isinstance(res, FetchError):
        logger.debug("snapshot fetch failed: %s", res)
        return None
    found = extract_candidate(res.text, base_url=res.final_url)
    if not found:
        return None
    url, family = found
    logger.debug("snapshot %s -> %s via %s", snapshot_url, url, family)
    chain = resolve_redirects(client, url, max_hops=max_hops, timeout_s=timeout_s)
    return chain.final_url if is_valid_landing_url(chain.final_url) else url

from __future__ import annotations

import logging
import re

from .extractor import extract_cta
from .fetcher import FetchError, WebClient
from .models import PresellChain
from .redirects import resolve_redirects
from .urls import domain_of

logger = logging.getLogger(__name__)

_EDITORIAL_URL_RE = re.compile(r"(editorial|review|erfahrung|test|bewertung|ratgeber|artikel|bericht)", re.IGNORECASE)
_OG_ARTICLE_RES = (
    re.compile(r"<meta[^>]*property=[\"']og:type[\"'][^>]*content=[\"']article[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']article[\"'][^>]*property=[\"']og:type[\"']", re.IGNORECASE),
)
_CTA_VOCAB_RE = re.compile(
    r"(jetzt kaufen|jetzt bestellen|zum angebot|hier bestellen|zum shop|jetzt testen"
    r"|buy now|order now|shop now|get yours|claim your)",
    re.IGNORECASE,
)
SHOP_MARKERS_RE = re.compile(r"(shopify|woocommerce|magento|checkout|warenkorb|cart|bestell|kasse)", re.IGNORECASE)
_ARTICLE_MARKUP_RE = re.compile(r"(<article\b|class=[\"'][^\"']*\barticle\b)", re.IGNORECASE)


def presell_signals(url: str, html: str) -> list[str]:
    """Editorial markers of a page; two or more make it a presell page."""
    signals = []
    if _EDITORIAL_URL_RE.search(url):
        signals.append("editorial_url")
    if any(p.search(html) for p in _OG_ARTICLE_RES):
        signals.append("og_article")
    if _CTA_VOCAB_RE.search(html):
        signals.append("cta_vocabulary")
    if not SHOP_MARKERS_RE.search(html):
        signals.append("no_shop_markup")
    if _ARTICLE_MARKUP_RE.search(html):
        signals.append("article_markup")
    return signals


def is_presell_page(url: str, html: str) -> bool:
    return len(presell_signals(url, html)) >= 2


def track_presell(
    client: WebClient,
    page_url: str,
    *,
    timeout_s: float = 8.0,
    max_hops: int = 10,
    html: str | None = None,
) -> PresellChain:
    """Walk a content page through its call-to-action to the final destination.

    ``html`` may be passed when the page body was already fetched.
    """
    base_url = page_url
    if html is None:
        res = client.get_page(page_url, timeout=timeout_s)
        if isinstance(res, FetchError):
            logger.debug("presell fetch failed: %s", res)
            return PresellChain(initial_url=page_url, chain=[page_url])
        html = res.text
        base_url = res.final_url

    out = PresellChain(initial_url=page_url, chain=[page_url])
    out.is_presell = is_presell_page(base_url, html)
    confidence = 0.2 if out.is_presell else 0.0

    cta = extract_cta(html, base_url)
    if cta:
        cta_url, method = cta
        confidence += 0.3
        resolved = resolve_redirects(client, cta_url, max_hops=max_hops, timeout_s=timeout_s)
        out.cta_url = cta_url
        out.extraction_method = method
        out.final_url = resolved.final_url
        out.chain = [page_url] + [u for u in resolved.chain if u != page_url]
        out.shop_domain = domain_of(resolved.final_url)
        if SHOP_MARKERS_RE.search(resolved.final_url):
            confidence += 0.4

    out.confidence = round(confidence, 2)
    return out

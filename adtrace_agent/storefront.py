from __future__ import annotations

import json
import logging
import re
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from .config import ConfidenceWeights
from .fetcher import FetchedPage, FetchError, WebClient
from .models import PlatformDetection, VendorMatch
from .store import MemoryStore
from .urls import normalize_alias

logger = logging.getLogger(__name__)

PLATFORM_TTL_S = 24 * 3600

_SHOPIFY_SHOP_RE = re.compile(r"Shopify\.shop\s*=\s*[\"']([^\"']+)[\"']")
_OG_SITE_NAME_RES = (
    re.compile(r"<meta[^>]*property=[\"']og:site_name[\"'][^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*property=[\"']og:site_name[\"']", re.IGNORECASE),
)
_WOO_RE = re.compile(r"woocommerce|wc-ajax", re.IGNORECASE)
_MAGENTO_RE = re.compile(r"Magento|mage/cookies")

_LEGAL_FORMS = {
    "gmbh", "ag", "ug", "kg", "ltd", "llc", "inc", "co", "corp",
    "limited", "sa", "bv", "sarl", "srl", "ek",
}

_JSON_ACCEPT = "application/json,text/javascript;q=0.9,*/*;q=0.5"


def storefront_signals(html: str | None) -> set[str]:
    """Independent commerce markers found in a page."""
    if not html:
        return set()
    h = html.lower()
    signals: set[str] = set()

    if "cdn.shopify.com" in h or "myshopify.com" in h:
        signals.add("shopify")
    if "woocommerce" in h and ("wp-content" in h or "wp-json" in h):
        signals.add("woocommerce")
    if "magento" in h:
        signals.add("magento")

    if "add to cart" in h or "in den warenkorb" in h or "add-to-cart" in h:
        signals.add("add_to_cart")
    if "checkout" in h or "/kasse" in h:
        signals.add("checkout")
    if "/cart" in h or "warenkorb" in h or "basket" in h:
        signals.add("cart")

    if "\"@type\"" in h and "\"product\"" in h:
        signals.add("product_schema")
    if "pricecurrency" in h or "itemprop=\"price\"" in h or "data-price" in h:
        signals.add("pricing")
    return signals


def looks_like_shopify(html: str | None) -> bool:
    h = html or ""
    return "cdn.shopify.com" in h or bool(_SHOPIFY_SHOP_RE.search(h))


def detect_from_html(domain: str, html: str | None) -> PlatformDetection:
    """Fingerprint the homepage markup; each hit adds its weight to ``confidence``."""
    det = PlatformDetection(domain=domain)
    h = html or ""
    if not h.strip():
        return det

    if "cdn.shopify.com" in h:
        det.platform = "shopify"
        det.confidence += 0.3
        det.detection_methods.append("shopify_cdn")

    m = _SHOPIFY_SHOP_RE.search(h)
    if m:
        det.platform = "shopify"
        det.confidence += 0.3
        det.detection_methods.append("shopify_js")
        det.myshopify_domain = m.group(1).lower()
        det.store_name = det.myshopify_domain.split(".myshopify.com")[0]

    for pattern in _OG_SITE_NAME_RES:
        og = pattern.search(h)
        if og:
            det.og_site_name = og.group(1).strip()
            det.confidence += 0.1
            det.detection_methods.append("og_site_name")
            break

    if det.platform != "shopify" and _WOO_RE.search(h):
        det.platform = "woocommerce"
        det.confidence += 0.3
        det.detection_methods.append("woocommerce")

    if det.platform == "unknown" and _MAGENTO_RE.search(h):
        det.platform = "magento"
        det.confidence += 0.2
        det.detection_methods.append("magento")

    det.signals = sorted(storefront_signals(h))
    return det


def vendors_from_products(payload: Any) -> list[str]:
    """Vendor names of a ``products.json`` listing, most frequent first."""
    if not isinstance(payload, dict):
        return []
    counts: Counter[str] = Counter()
    for product in payload.get("products") or []:
        if not isinstance(product, dict):
            continue
        vendor = str(product.get("vendor") or "").strip()
        if vendor:
            counts[vendor] += 1
    return [v for v, _ in counts.most_common()]


def fetch_vendors(client: WebClient, domain: str, *, timeout_s: float) -> list[str] | None:
    """Vendors from the public product listing, or None when the domain exposes none."""
    res = client.fetch(f"https://{domain}/products.json?limit=250", timeout=timeout_s, accept=_JSON_ACCEPT)
    if isinstance(res, FetchError):
        return None
    if not res.ok or "json" not in (res.content_type or "").lower():
        return None
    try:
        payload = json.loads(res.text)
    except ValueError:
        logger.debug("products.json on %s is not valid JSON", domain)
        return None
    return vendors_from_products(payload)


def detect_platform(
    client: WebClient,
    domain: str,
    *,
    timeout_s: float = 8.0,
    store: MemoryStore | None = None,
) -> PlatformDetection:
    """Storefront software and product vendors of ``domain``.

    The homepage and the product listing are fetched concurrently. With a
    ``store`` the detection is cached for a day under ``platform:<domain>``.
    """
    key = f"platform:{domain}"
    if store is not None:
        cached = store.get(key)
        if cached is not None:
            return cached

    with ThreadPoolExecutor(max_workers=2) as ex:
        home_f = ex.submit(client.get_page, f"https://{domain}", timeout=timeout_s)
        vendors_f = ex.submit(fetch_vendors, client, domain, timeout_s=timeout_s)
        home = home_f.result()
        vendors = vendors_f.result()

    det = detect_from_html(domain, home.text if isinstance(home, FetchedPage) else None)
    if vendors is not None:
        det.platform = "shopify"
        det.confidence += 0.3
        det.detection_methods.append("products_json")
        det.vendors = vendors
        if vendors:
            det.vendor_name = vendors[0]
            det.confidence += 0.1
            det.detection_methods.append("vendor")
    det.is_shopify = det.platform == "shopify"
    det.confidence = round(min(1.0, det.confidence), 2)

    logger.info(
        "platform %s: %s (%.2f, %s)",
        domain,
        det.platform,
        det.confidence,
        ",".join(det.detection_methods) or "-",
    )
    if store is not None:
        store.put(key, det, PLATFORM_TTL_S)
    return det


def normalize_vendor(name: str) -> str:
    """``"Glow25 GmbH"`` -> ``"glow25"``: legal form dropped, separators stripped."""
    tokens = [t for t in re.split(r"[\s,]+", name.lower().strip()) if t]
    kept = [t for i, t in enumerate(tokens) if i == 0 or t.replace(".", "") not in _LEGAL_FORMS]
    return normalize_alias("".join(kept))


def vendor_matches(
    vendors: list[str],
    brand_name: str,
    weights: ConfidenceWeights | None = None,
) -> VendorMatch:
    """Compare ``brand_name`` to each vendor; the strongest tier wins."""
    w = weights or ConfidenceWeights()
    brand = brand_name.strip().lower()
    if not brand:
        return VendorMatch()
    brand_norm = normalize_vendor(brand_name)

    for vendor in vendors:
        if vendor.strip().lower() == brand:
            return VendorMatch(found=True, matched_vendor=vendor, confidence=w.vendor_exact)
    for vendor in vendors:
        if brand_norm and normalize_vendor(vendor) == brand_norm:
            return VendorMatch(found=True, matched_vendor=vendor, confidence=w.vendor_normalized)
    for vendor in vendors:
        v = vendor.strip().lower()
        if len(v) >= 3 and (brand in v or v in brand):
            return VendorMatch(found=True, matched_vendor=vendor, confidence=w.vendor_contains)
    return VendorMatch()

from adtrace_agent.config import ConfidenceWeights
from adtrace_agent.storefront import (
    detect_from_html,
    detect_platform,
    looks_like_shopify,
    normalize_vendor,
    vendor_matches,
    vendors_from_products,
)
from adtrace_agent.store import MemoryStore

SHOPIFY_HOME = """
<html><head>
<meta property="og:site_name" content="Glow25">
<link rel="stylesheet" href="https://cdn.shopify.com/s/files/theme.css">
<script>Shopify.shop = "glow25-store.myshopify.com";</script>
</head><body><button>Add to cart</button></body></html>
"""


def test_detect_from_html_shopify():
    det = detect_from_html("glow25.de", SHOPIFY_HOME)
    assert det.platform == "shopify"
    assert det.myshopify_domain == "glow25-store.myshopify.com"
    assert det.store_name == "glow25-store"
    assert det.og_site_name == "Glow25"
    assert det.detection_methods == ["shopify_cdn", "shopify_js", "og_site_name"]
    assert round(det.confidence, 2) == 0.7
    assert "add_to_cart" in det.signals


def test_detect_from_html_woocommerce_and_empty():
    det = detect_from_html("shop.example", '<link href="/wp-content/plugins/woocommerce/style.css">')
    assert det.platform == "woocommerce"
    assert detect_from_html("shop.example", "").platform == "unknown"


def test_looks_like_shopify():
    assert looks_like_shopify(SHOPIFY_HOME)
    assert not looks_like_shopify("<html>plain blog</html>")
    assert not looks_like_shopify(None)


def test_vendors_from_products_most_frequent_first():
    payload = {"products": [{"vendor": "Acme"}, {"vendor": "Glow25"}, {"vendor": "Glow25"}, {"title": "x"}]}
    assert vendors_from_products(payload) == ["Glow25", "Acme"]
    assert vendors_from_products(["not", "a", "dict"]) == []


def test_normalize_vendor_drops_legal_forms():
    assert normalize_vendor("Glow25 GmbH") == "glow25"
    assert normalize_vendor("Glow 25 e.K.") == "glow25"
    assert normalize_vendor("AG") == "ag"


def test_vendor_match_tiers():
    w = ConfidenceWeights()
    exact = vendor_matches(["glow25"], "Glow25")
    normalized = vendor_matches(["Glow25 GmbH"], "Glow25")
    contains = vendor_matches(["Glow25 Beauty"], "Glow25")
    none = vendor_matches(["Acme"], "Glow25")

    assert (exact.found, exact.confidence) == (True, w.vendor_exact)
    assert (normalized.found, normalized.confidence) == (True, 0.85)
    assert normalized.matched_vendor == "Glow25 GmbH"
    assert (contains.found, contains.confidence) == (True, w.vendor_contains)
    assert not none.found


def test_vendor_match_prefers_stronger_tier_over_list_order():
    vm = vendor_matches(["Glow25 Beauty", "Glow25"], "Glow25")
    assert vm.matched_vendor == "Glow25"
    assert vm.confidence == 0.95


def test_detect_platform_reads_products_and_caches(web, client):
    web.page("https://glow25.de/", SHOPIFY_HOME)
    web.json("https://glow25.de/products.json", {"products": [{"vendor": "Glow25"}]})
    store = MemoryStore()
    try:
        det = detect_platform(client, "glow25.de", store=store)
        assert det.is_shopify
        assert det.vendor_name == "Glow25"
        assert det.vendors == ["Glow25"]
        assert det.confidence == 1.0
        assert "products_json" in det.detection_methods

        seen = len(web.requests)
        again = detect_platform(client, "glow25.de", store=store)
        assert again == det
        assert len(web.requests) == seen
    finally:
        store.close()


def test_detect_platform_without_products_listing(web, client):
    web.page("https://blog.example/", "<html>blog</html>")
    det = detect_platform(client, "blog.example")
    assert det.platform == "unknown"
    assert not det.is_shopify
    assert det.vendors == []

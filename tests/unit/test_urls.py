from adtrace_agent.urls import (
    decode_url,
    domain_from_caption,
    domain_of,
    full_url_from_caption,
    has_path,
    host_in,
    is_platform_domain,
    is_valid_landing_url,
    normalize_alias,
    path_and_query,
    top_path_urls,
)


def test_domain_from_caption_normalizes_case_scheme_and_www():
    assert domain_from_caption("GLOW25.DE") == "glow25.de"
    assert domain_from_caption("https://www.Glow25.de/shop/kollagen") == "glow25.de"
    assert domain_from_caption("Glow25 Kollagen") is None
    assert domain_from_caption("") is None


def test_full_url_from_caption_keeps_path():
    assert full_url_from_caption("MONAPURE.DE/COLLECTIONS/SALE") == "https://monapure.de/collections/sale"
    assert full_url_from_caption("monapure.de/") == "https://monapure.de"
    assert full_url_from_caption("no domain here") is None


def test_domain_of_strips_www_and_rejects_dotless_hosts():
    assert domain_of("https://WWW.Shop.Example/p?x=1") == "shop.example"
    assert domain_of("shop.example/path") == "shop.example"
    assert domain_of("http://localhost:8000/") is None
    assert domain_of(None) is None


def test_host_in_matches_subdomains_only_on_label_boundary():
    assert host_in("l.facebook.com", ("facebook.com",))
    assert not host_in("notfacebook.com", ("facebook.com",))
    assert is_platform_domain("m.instagram.com")


def test_normalize_alias_drops_separators():
    assert normalize_alias("Glow 25-Shop_de.") == "glow25shopde"


def test_decode_url_handles_double_encoding():
    assert decode_url("https%253A%252F%252Fshop.example%252Fp") == "https://shop.example/p"
    assert decode_url("https%3A%2F%2Fshop.example") == "https://shop.example"


def test_path_helpers():
    assert not has_path("https://shop.example")
    assert not has_path("https://shop.example/")
    assert has_path("https://shop.example/p")
    assert path_and_query("https://shop.example/p?a=1") == "/p?a=1"
    assert path_and_query("https://shop.example") == "/"


def test_top_path_urls_orders_by_count_and_skips_bare_hosts():
    urls = {
        "https://blog.example": 50,
        "https://blog.example/a": 2,
        "https://blog.example/b": 7,
        "https://blog.example/c": 1,
    }
    assert top_path_urls(urls, 2) == ["https://blog.example/b", "https://blog.example/a"]


def test_is_valid_landing_url():
    assert is_valid_landing_url("https://shop.example/p")
    assert not is_valid_landing_url("https://www.facebook.com/ads/library")
    assert not is_valid_landing_url("javascript:void(0)")
    assert not is_valid_landing_url("/relative/path")
    assert not is_valid_landing_url(None)

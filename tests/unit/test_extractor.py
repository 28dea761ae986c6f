from adtrace_agent.extractor import (
    extract_candidate,
    extract_candidate_url,
    extract_cta,
    landing_url_from_snapshot,
    unwrap_platform_link,
)


def test_unwrap_platform_link():
    wrapped = "https://l.facebook.com/l.php?u=https%3A%2F%2Fshop.example%2Fp%3Fref%3Dfb&h=AT0abc"
    assert unwrap_platform_link(wrapped) == "https://shop.example/p?ref=fb"
    assert unwrap_platform_link("https://shop.example/") is None


def test_platform_wrapper_wins_over_later_families():
    html = (
        '<a href="https://l.facebook.com/l.php?u=https%3A%2F%2Fblog.example%2Freview&amp;h=x">Learn more</a>'
        '<meta property="og:url" content="https://other.example/page">'
    )
    assert extract_candidate(html) == ("https://blog.example/review", "platform_wrapper")


def test_platform_urls_are_skipped_in_favour_of_next_family():
    html = (
        '<meta property="og:url" content="https://www.facebook.com/ads/library/?id=1">'
        '<div data-url="https://shop.example/offer"></div>'
    )
    assert extract_candidate(html) == ("https://shop.example/offer", "data_attribute")


def test_escaped_script_json():
    html = '<script>{"link_url":"https:\\/\\/brand-deals.example\\/angebot"}</script>'
    assert extract_candidate_url(html) == "https://brand-deals.example/angebot"


def test_aggressive_scan_skips_assets_and_prefers_paths():
    html = (
        '<img src="https://cdn.example/logo.png">'
        '<script src="https://www.googletagmanager.com/gtm.js"></script>'
        "<p>Visit https://shop.example or https://shop.example/sale today</p>"
    )
    assert extract_candidate(html) == ("https://shop.example/sale", "aggressive")


def test_no_candidate():
    assert extract_candidate("<html><body>nothing</body></html>") is None
    assert extract_candidate("") is None


def test_cta_by_german_anchor_text_resolves_relative_link():
    html = '<p>Lesen Sie weiter.</p><a href="/go/offer">Jetzt kaufen</a>'
    assert extract_cta(html, "https://blog.example/review") == ("https://blog.example/go/offer", "anchor_text_de")


def test_cta_skips_social_and_self_links():
    html = (
        '<a href="https://www.facebook.com/sharer">Jetzt teilen</a>'
        '<a href="https://blog.example/review#top">Hier</a>'
        '<a href="https://shop.example/buy">Buy</a>'
    )
    assert extract_cta(html, "https://blog.example/review") == ("https://shop.example/buy", "anchor_text_en")


def test_cta_from_onclick_and_js_variable():
    onclick = "<button onclick=\"window.location.href='https://shop.example/checkout'\">Weiter</button>"
    assert extract_cta(onclick, "https://blog.example/a") == ("https://shop.example/checkout", "onclick_location")

    js = "<script>var redirectUrl = 'https://shop.example/cart';</script>"
    assert extract_cta(js, "https://blog.example/a") == ("https://shop.example/cart", "js_variable")


def test_landing_url_from_snapshot_follows_redirects(web, client):
    web.page(
        "https://www.facebook.com/ads/archive/render_ad/",
        '<a href="https://l.facebook.com/l.php?u=https%3A%2F%2Fgo.example%2Fx">Shop now</a>',
    )
    web.redirect("https://go.example/x", "https://shop.example/product", status=302)
    web.page("https://shop.example/product", "<html>product</html>")

    url = landing_url_from_snapshot(client, "https://www.facebook.com/ads/archive/render_ad/?id=1&access_token=t")

    assert url == "https://shop.example/product"


def test_landing_url_from_snapshot_fetch_failure(client):
    assert landing_url_from_snapshot(client, "https://www.facebook.com/ads/archive/render_ad/?id=2") is None

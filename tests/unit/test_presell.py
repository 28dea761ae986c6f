from adtrace_agent.presell import is_presell_page, presell_signals, track_presell

ADVERTORIAL = """
<html><head><meta property="og:type" content="article"></head>
<body><article>
<h1>Kollagen im Test: unsere Erfahrungen</h1>
<p>Nach vier Wochen war das Ergebnis deutlich sichtbar.</p>
<a href="https://go.example/r?id=7">Jetzt bestellen</a>
</article></body></html>
"""


def test_presell_signals_on_advertorial():
    signals = presell_signals("https://blog.example/ratgeber/kollagen-test", ADVERTORIAL)
    assert {"editorial_url", "og_article", "cta_vocabulary", "article_markup"} <= set(signals)
    assert is_presell_page("https://blog.example/ratgeber/kollagen-test", ADVERTORIAL)


def test_shop_page_is_not_presell():
    html = '<html><body><div class="product"><button>In den Warenkorb</button></div></body></html>'
    assert not is_presell_page("https://shop.example/products/kollagen", html)


def test_track_presell_follows_cta_to_shop(web, client):
    page = "https://blog.example/ratgeber/kollagen-test"
    web.page(page, ADVERTORIAL)
    web.redirect("https://go.example/r", "https://glow25.de/checkout", status=302)
    web.page("https://glow25.de/checkout", "<html>checkout</html>")

    chain = track_presell(client, page)

    assert chain.is_presell
    assert chain.cta_url == "https://go.example/r?id=7"
    assert chain.final_url == "https://glow25.de/checkout"
    assert chain.chain == [page, "https://go.example/r?id=7", "https://glow25.de/checkout"]
    assert chain.shop_domain == "glow25.de"
    assert chain.extraction_method == "anchor_text_de"
    assert chain.confidence == 0.9


def test_track_presell_uses_prefetched_html(web, client):
    html = '<html><body><a href="https://shop.example/p">Buy</a></body></html>'
    web.page("https://shop.example/p", "<html>product</html>")

    chain = track_presell(client, "https://blog.example/", html=html)

    assert chain.final_url == "https://shop.example/p"
    assert ("GET", "https://blog.example/") not in web.requests


def test_track_presell_fetch_failure(client):
    chain = track_presell(client, "https://gone.example/article")
    assert chain.chain == ["https://gone.example/article"]
    assert chain.final_url is None
    assert chain.confidence == 0.0

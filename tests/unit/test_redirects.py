from adtrace_agent.redirects import refresh_target, resolve_redirects, walk_redirects


def test_follows_http_redirect_chain(web, client):
    web.redirect("https://a.example/", "https://b.example/x", status=301)
    web.redirect("https://b.example/x", "/y", status=302)
    web.page("https://b.example/y", "<html>shop</html>")

    chain = resolve_redirects(client, "https://a.example/")

    assert chain.final_url == "https://b.example/y"
    assert chain.chain == ["https://a.example/", "https://b.example/x", "https://b.example/y"]
    assert chain.hops == 2
    assert chain.note is None


def test_redirect_loop_terminates_with_both_urls(web, client):
    web.redirect("https://a.example/", "https://b.example/")
    web.redirect("https://b.example/", "https://a.example/")

    chain = resolve_redirects(client, "https://a.example/", max_hops=10)

    assert chain.chain == ["https://a.example/", "https://b.example/"]
    assert chain.hops <= 3
    assert chain.note == "cycle"


def test_redirect_loop_back_to_slash_form_of_start(web, client):
    web.redirect("https://a.example/", "https://b.example/")
    web.redirect("https://b.example/", "https://a.example/")

    chain = resolve_redirects(client, "https://a.example", max_hops=10)

    assert chain.chain == ["https://a.example", "https://b.example/"]
    assert chain.hops == 1
    assert chain.note == "cycle"


def test_max_hops_stops_walk(web, client):
    for i in range(5):
        web.redirect(f"https://hop.example/{i}", f"https://hop.example/{i + 1}")

    chain = resolve_redirects(client, "https://hop.example/0", max_hops=2)

    assert chain.hops == 2
    assert chain.final_url == "https://hop.example/2"
    assert chain.note == "max_hops"


def test_meta_refresh_and_js_redirects_are_followed(web, client):
    web.page(
        "https://presell.example/",
        '<html><head><meta http-equiv="refresh" content="0; url=/go"></head></html>',
    )
    web.page("https://presell.example/go", "<script>window.location.href = 'https://shop.example/p';</script>")
    web.page("https://shop.example/p", "<html>product</html>")

    walk = walk_redirects(client, "https://presell.example/")

    assert walk.chain.final_url == "https://shop.example/p"
    assert walk.chain.chain == [
        "https://presell.example/",
        "https://presell.example/go",
        "https://shop.example/p",
    ]
    assert walk.page is not None and walk.page.text == "<html>product</html>"


def test_failed_fetch_returns_partial_chain(web, client):
    web.redirect("https://a.example/", "https://gone.example/")

    walk = walk_redirects(client, "https://a.example/")

    assert walk.chain.final_url == "https://gone.example/"
    assert walk.chain.chain == ["https://a.example/", "https://gone.example/"]
    assert walk.page is not None and walk.page.status == 404


def test_refresh_target_resolves_relative_urls():
    html = "<script>location.replace('/checkout')</script>"
    assert refresh_target(html, "https://shop.example/p") == "https://shop.example/checkout"
    assert refresh_target("<p>nothing</p>", "https://shop.example/") is None

import httpx

from adtrace_agent.fetcher import FetchedPage, FetchError


def test_get_page_returns_page(web, client):
    web.page("https://shop.example/", "<html>hello</html>")
    res = client.get_page("https://shop.example/", timeout=5)
    assert isinstance(res, FetchedPage)
    assert res.ok and res.is_html
    assert res.text == "<html>hello</html>"


def test_get_page_follows_redirects(web, client):
    web.redirect("https://old.example/", "https://new.example/landing", status=302)
    web.page("https://new.example/landing", "ok")
    res = client.get_page("https://old.example/", timeout=5)
    assert isinstance(res, FetchedPage)
    assert res.final_url == "https://new.example/landing"
    assert res.history == ["https://old.example/"]


def test_non_2xx_becomes_fetch_error(client):
    res = client.get_page("https://missing.example/", timeout=5)
    assert isinstance(res, FetchError)
    assert res.reason == "http_status"
    assert res.status == 404


def test_fetch_without_follow_exposes_location(web, client):
    web.redirect("https://hop.example/", "/next")
    res = client.fetch("https://hop.example/", timeout=5, follow_redirects=False)
    assert isinstance(res, FetchedPage)
    assert res.is_redirect
    assert res.location == "/next"


def test_network_and_timeout_errors_are_values(web, client):
    web.fail("https://down.example/", httpx.ConnectError("connection refused"))
    web.fail("https://slow.example/", httpx.ReadTimeout("timed out"))

    down = client.fetch("https://down.example/", timeout=5)
    slow = client.fetch("https://slow.example/", timeout=5)

    assert isinstance(down, FetchError) and down.reason == "network"
    assert isinstance(slow, FetchError) and slow.reason == "timeout"


def test_head_has_no_body(web, client):
    web.page("https://shop.example/", "<html>body</html>")
    res = client.fetch("https://shop.example/", timeout=5, method="HEAD")
    assert isinstance(res, FetchedPage)
    assert res.text == ""

from adtrace_agent.aggregator import PageStats
from adtrace_agent.models import ScanStats, VerificationResult
from adtrace_agent.report import (
    accept_matches,
    build_report,
    categorize,
    error_report,
    landing_pages,
    third_party_pages,
)


def _match(domain, kind, confidence, page_ids=("p2",), ad_count=1, **extra):
    return VerificationResult(
        domain=domain,
        match=True,
        kind=kind,
        confidence=confidence,
        page_ids=list(page_ids),
        ad_count=ad_count,
        **extra,
    )


def test_accept_matches_applies_min_confidence():
    results = [
        _match("a.example", "redirect", 0.90),
        _match("b.example", "content_match", 0.60),
        VerificationResult(domain="c.example"),
    ]
    accepted, filtered = accept_matches(results, 0.70)
    assert [r.domain for r in accepted] == ["a.example"]
    assert filtered == ["b.example"]


def test_third_party_pages_merge_per_page(glow25):
    matches = [
        _match("a.example", "content_link", 0.75, page_ids=["p2"], ad_count=3),
        _match("b.example", "redirect", 0.90, page_ids=["p2", "p1"], ad_count=2),
        _match("c.example", "presell_cta", 0.85, page_ids=["p3"], ad_count=9),
    ]
    pages = {"p2": PageStats(name="Health Blog"), "p3": PageStats(name="Deals")}

    out = third_party_pages(matches, glow25, pages)

    assert [p.page_id for p in out] == ["p2", "p3"]
    p2 = out[0]
    assert p2.page_name == "Health Blog"
    assert p2.connection_type == "redirect"
    assert p2.confidence == 0.90
    assert p2.ad_count == 5
    assert p2.discovered_via == "a.example"
    assert p2.domains_used == ["a.example", "b.example"]


def test_categorize_puts_brand_first_in_final_shop():
    cats = categorize(
        [
            _match("presell.example", "presell_cta", 0.85),
            _match("redir.example", "redirect", 0.90),
            _match("store.example", "shopify_vendor", 0.95),
        ],
        "glow25.de",
    )
    assert cats.presell == ["presell.example"]
    assert cats.redirect == ["redir.example"]
    assert cats.final_shop == ["glow25.de", "store.example"]
    assert cats.all == ["presell.example", "redir.example", "glow25.de", "store.example"]


def test_landing_pages_pick_best_url():
    matches = [
        _match("a.example", "presell_cta", 0.85, ad_count=2, shop_domain="glow25.de"),
        _match("b.example", "redirect", 0.90, ad_count=7, final_url="https://b.example/go"),
        _match("c.example", "redirect", 0.90, ad_count=1),
    ]
    full_urls = {"a.example": {"https://a.example": 9, "https://a.example/review?x=1": 3}}

    pages = landing_pages(matches, full_urls, "glow25.de")

    assert [(p.domain, p.url, p.full_path) for p in pages] == [
        ("b.example", "https://b.example/go", "/go"),
        ("a.example", "https://a.example/review?x=1", "/review?x=1"),
        ("c.example", "https://c.example", "/"),
    ]
    assert pages[1].leads_to == "glow25.de"


def test_build_report(glow25):
    matches = [
        _match(
            "blog.example",
            "presell_cta",
            0.85,
            ad_count=4,
            shop_domain="glow25.de",
            final_url="https://glow25.de/products/kollagen",
            chain=["https://blog.example", "https://blog.example/go", "https://glow25.de/products/kollagen"],
        )
    ]
    pages = {"p1": PageStats(name="Glow25", ad_count=12), "p2": PageStats(name="Blog", ad_count=4)}
    full_urls = {"glow25.de": {"https://glow25.de/products/kollagen": 5}}

    report = build_report(
        brand="Glow25",
        profile=glow25,
        matches=matches,
        pages=pages,
        full_urls=full_urls,
        stats=ScanStats(keywords_used=["kollagen"]),
    )

    assert report.success and report.status == "completed"
    assert report.brand_domain == "glow25.de"
    assert [(p.page_id, p.ad_count) for p in report.pages.official] == [("p1", 12)]
    assert report.pages.third_party[0].page_name == "Blog"
    assert report.scan_stats.matches_found == 1
    assert report.scan_stats.detection_methods == {"presell_cta": 1}
    assert [u.url for u in report.domain_urls["blog.example"]] == ["https://blog.example/go"]
    assert report.domain_urls["glow25.de"][0].count == 6
    assert report.presell_chains[0].final_domain == "glow25.de"
    assert len(report.presell_chains[0].chain) == 3


def test_error_report():
    report = error_report("Glow25", "Could not find brand domain from ads", duration_s=1.234)
    assert not report.success
    assert report.status == "error"
    assert report.error.startswith("Could not find brand domain")
    assert report.pages.third_party == []
    assert report.scan_stats.scan_duration_seconds == 1.23

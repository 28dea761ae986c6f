from __future__ import annotations

import logging
from collections import Counter

from .aggregator import PageStats
from .models import (
    BrandProfile,
    Diagnostics,
    DiscoveryReport,
    DomainCategories,
    LandingPage,
    PageInfo,
    Pages,
    PresellChainInfo,
    ScanStats,
    ThirdPartyPage,
    UrlCount,
    VerificationResult,
)
from .urls import domain_of, has_path, path_and_query, top_path_urls

logger = logging.getLogger(__name__)

_PRESELL_KINDS = {"presell_cta", "content_link", "content_match", "checkout_match"}
_SHOP_KINDS = {"shopify_vendor", "direct"}


def error_report(
    brand: str,
    error: str,
    *,
    duration_s: float = 0.0,
    diagnostics: Diagnostics | None = None,
) -> DiscoveryReport:
    return DiscoveryReport(
        success=False,
        status="error",
        brand=brand,
        scan_stats=ScanStats(scan_duration_seconds=round(duration_s, 2)),
        diagnostics=diagnostics,
        error=error,
    )


def accept_matches(
    results: list[VerificationResult],
    min_confidence: float,
) -> tuple[list[VerificationResult], list[str]]:
    """Split verified results into accepted matches and low-confidence domains."""
    accepted: list[VerificationResult] = []
    filtered: list[str] = []
    for r in results:
        if not r.match:
            continue
        if r.confidence < min_confidence:
            logger.info("filtered %s: %s %.2f < %.2f", r.domain, r.kind, r.confidence, min_confidence)
            filtered.append(r.domain)
            continue
        accepted.append(r)
    return accepted, filtered


def official_pages(profile: BrandProfile, pages: dict[str, PageStats]) -> list[PageInfo]:
    out = []
    for page_id in profile.official_page_ids:
        stats = pages.get(page_id)
        out.append(
            PageInfo(
                page_id=page_id,
                page_name=stats.name if stats else profile.brand_name,
                ad_count=stats.ad_count if stats else 0,
            )
        )
    return out


def third_party_pages(
    matches: list[VerificationResult],
    profile: BrandProfile,
    pages: dict[str, PageStats],
) -> list[ThirdPartyPage]:
    """One entry per advertiser page; the strongest connection wins."""
    merged: dict[str, ThirdPartyPage] = {}
    for m in matches:
        for page_id in m.page_ids:
            if page_id in profile.official_page_ids:
                continue
            existing = merged.get(page_id)
            if existing is None:
                stats = pages.get(page_id)
                merged[page_id] = ThirdPartyPage(
                    page_id=page_id,
                    page_name=stats.name if stats else "Unknown",
                    ad_count=m.ad_count,
                    connection_type=m.kind,
                    confidence=m.confidence,
                    discovered_via=m.domain,
                    domains_used=[m.domain],
                )
                continue
            if m.confidence > existing.confidence:
                existing.connection_type = m.kind
                existing.confidence = m.confidence
            if m.domain not in existing.domains_used:
                existing.domains_used.append(m.domain)
            existing.ad_count += m.ad_count
    return sorted(merged.values(), key=lambda p: (-p.confidence, -p.ad_count))


def categorize(matches: list[VerificationResult], brand_domain: str | None) -> DomainCategories:
    cats = DomainCategories()
    for m in matches:
        if m.kind in _PRESELL_KINDS:
            cats.presell.append(m.domain)
        elif m.kind == "redirect":
            cats.redirect.append(m.domain)
        elif m.kind in _SHOP_KINDS:
            cats.final_shop.append(m.domain)
    if brand_domain and brand_domain not in cats.final_shop:
        cats.final_shop.insert(0, brand_domain)
    cats.all = list(dict.fromkeys(cats.presell + cats.redirect + cats.final_shop))
    return cats


def enrich_full_urls(
    full_urls: dict[str, dict[str, int]],
    matches: list[VerificationResult],
) -> dict[str, dict[str, int]]:
    """Copy of ``full_urls`` plus path URLs seen while verifying, each under its own host."""
    out = {d: dict(urls) for d, urls in full_urls.items()}
    for m in matches:
        domain = m.domain.lower()
        seen = []
        if m.final_url and has_path(m.final_url):
            seen.append((domain_of(m.final_url) or domain, m.final_url))
        seen += [(domain, u) for u in m.chain if has_path(u) and domain_of(u) == domain]
        for host, url in seen:
            urls = out.setdefault(host, {})
            urls[url] = urls.get(url, 0) + 1
    return out


def domain_urls(
    domains: list[str],
    full_urls: dict[str, dict[str, int]],
    limit: int = 10,
) -> dict[str, list[UrlCount]]:
    out: dict[str, list[UrlCount]] = {}
    for domain in domains:
        urls = full_urls.get(domain.lower()) or {}
        top = top_path_urls(urls, limit)
        if top:
            out[domain] = [UrlCount(url=u, count=urls[u]) for u in top]
    return out


def landing_pages(
    matches: list[VerificationResult],
    full_urls: dict[str, dict[str, int]],
    brand_domain: str | None,
    limit: int = 20,
) -> list[LandingPage]:
    out = []
    for m in matches:
        best = top_path_urls(full_urls.get(m.domain.lower()) or {}, 1)
        if best:
            url = best[0]
        elif m.final_url and has_path(m.final_url):
            url = m.final_url
        else:
            url = f"https://{m.domain}"
        out.append(
            LandingPage(
                url=url,
                count=m.ad_count,
                domain=m.domain,
                full_path=path_and_query(url),
                leads_to=m.shop_domain or brand_domain,
                extraction_method=m.kind,
            )
        )
    out.sort(key=lambda p: -p.count)
    return out[:limit]


def presell_chains(matches: list[VerificationResult], brand_domain: str | None) -> list[PresellChainInfo]:
    return [
        PresellChainInfo(
            presell_domain=m.domain,
            chain=list(m.chain),
            final_domain=m.shop_domain or brand_domain or "",
        )
        for m in matches
        if m.kind == "presell_cta" and m.chain
    ]


def build_report(
    *,
    brand: str,
    profile: BrandProfile,
    matches: list[VerificationResult],
    pages: dict[str, PageStats],
    full_urls: dict[str, dict[str, int]],
    stats: ScanStats,
    diagnostics: Diagnostics | None = None,
) -> DiscoveryReport:
    """Assemble the final report from accepted matches only."""
    cats = categorize(matches, profile.domain)
    enriched = enrich_full_urls(full_urls, matches)

    relevant = list(cats.all)
    if profile.domain and profile.domain not in relevant:
        relevant.append(profile.domain)

    stats.matches_found = len(matches)
    stats.detection_methods = dict(Counter(m.kind for m in matches))

    return DiscoveryReport(
        success=True,
        status="completed",
        brand=brand,
        brand_domain=profile.domain,
        brand_platform=profile.platform,
        brand_profile=profile,
        pages=Pages(
            official=official_pages(profile, pages),
            third_party=third_party_pages(matches, profile, pages),
        ),
        domains=cats,
        domain_urls=domain_urls(relevant, enriched),
        top_landing_pages=landing_pages(matches, enriched, profile.domain),
        presell_chains=presell_chains(matches, profile.domain),
        scan_stats=stats,
        diagnostics=diagnostics,
    )

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .brand import alias_in_domain, caption_domains
from .models import AdRecord, BrandProfile, CandidateDomain
from .urls import NON_CANDIDATE_DOMAINS, SOCIAL_DOMAINS, domain_from_caption, full_url_from_caption, host_in

logger = logging.getLogger(__name__)

_SPAM_DOMAIN_RES = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^sex\.", r"\.sex$", r"porn", r"xxx", r"adult",
        r"spicygirl", r"videochat", r"dating\.", r"hookup",
        r"casino", r"gambling", r"lottery", r"slots\.",
        r"malware", r"phishing",
    )
]

# Ad-farm pages with generated names like "Corpus D36 0204-2".
_SPAM_PAGE_NAME_RES = [
    re.compile(r"^[A-Z][a-z]+ [A-Z]\d+ \d{4}"),
    re.compile(r"^[A-Z]{2,4} [a-z]\d{2,} \d{4}"),
    re.compile(r"\d{4}-\d+$"),
    re.compile(r"^Feel my [A-Z] CUP", re.IGNORECASE),
]


def is_spam_domain(domain: str) -> bool:
    return any(p.search(domain) for p in _SPAM_DOMAIN_RES)


def is_spam_page_name(name: str) -> bool:
    return any(p.search(name) for p in _SPAM_PAGE_NAME_RES)


def merge_ads(*batches: list[AdRecord]) -> list[AdRecord]:
    """Union by ad id; the first occurrence keeps its position."""
    merged: dict[str, AdRecord] = {}
    for batch in batches:
        for ad in batch:
            merged.setdefault(ad.id, ad)
    return list(merged.values())


def _brand_owned(domain: str, profile: BrandProfile) -> bool:
    return domain == (profile.domain or "").lower() or alias_in_domain(domain, profile.aliases)


@dataclass
class PageStats:
    name: str
    ad_count: int = 0
    domains: set[str] = field(default_factory=set)


@dataclass
class Aggregation:
    candidates: dict[str, CandidateDomain] = field(default_factory=dict)
    pages: dict[str, PageStats] = field(default_factory=dict)
    # Every caption domain, the brand's included, with full URL counts.
    full_urls: dict[str, dict[str, int]] = field(default_factory=dict)
    domain_ads: dict[str, list[AdRecord]] = field(default_factory=dict)

    def add_full_url(self, domain: str, url: str, count: int = 1) -> None:
        urls = self.full_urls.setdefault(domain, {})
        urls[url] = urls.get(url, 0) + count
        if domain in self.candidates:
            cand = self.candidates[domain].full_urls
            cand[url] = cand.get(url, 0) + count


def aggregate(ads: list[AdRecord], profile: BrandProfile) -> Aggregation:
    """Map caption domains to pages, ad counts and full URLs.

    The brand domain, its myshopify twin, social/shortener hosts, spam hosts and
    any domain carrying a brand alias are kept out of the candidate pool.
    """
    out = Aggregation()
    brand_domains = {(profile.domain or "").lower()}
    if profile.store_name:
        brand_domains.add(f"{profile.store_name}.myshopify.com")
    space_free_aliases = [re.sub(r"\s+", "", a) for a in profile.aliases]

    for ad in ads:
        page_id = ad.page_id or "unknown"
        page = out.pages.setdefault(page_id, PageStats(name=ad.page_name or "Unknown"))
        page.ad_count += 1

        for caption in ad.ad_creative_link_captions:
            domain = domain_from_caption(caption)
            if not domain:
                continue
            full_url = full_url_from_caption(caption)
            if full_url:
                urls = out.full_urls.setdefault(domain, {})
                urls[full_url] = urls.get(full_url, 0) + 1

            if domain in brand_domains or host_in(domain, NON_CANDIDATE_DOMAINS):
                continue
            if any(len(a) >= 3 and a in domain for a in space_free_aliases):
                brand_domains.add(domain)
                continue
            if is_spam_domain(domain):
                continue

            cand = out.candidates.setdefault(domain, CandidateDomain(domain=domain))
            if page_id not in cand.page_ids:
                cand.page_ids.append(page_id)
            cand.ad_count += 1
            page.domains.add(domain)

            domain_ads = out.domain_ads.setdefault(domain, [])
            if not domain_ads or domain_ads[-1].id != ad.id:
                domain_ads.append(ad)

    for domain, cand in out.candidates.items():
        cand.full_urls = dict(out.full_urls.get(domain, {}))
    return out


def brand_search_signals(
    brand_ads: list[AdRecord],
    profile: BrandProfile,
) -> tuple[dict[str, str], set[str]]:
    """Read the brand-name search for third-party hints.

    Returns ``(confirmed_pages, priority_domains)``: non-official pages whose
    ads link only to the brand domain, and non-brand domains advertised by
    other non-official pages. Neither is a match; both only steer ordering.
    """
    confirmed: dict[str, str] = {}
    priority: set[str] = set()
    if not profile.domain:
        return confirmed, priority

    by_page: dict[str, tuple[str, list[AdRecord]]] = {}
    for ad in brand_ads:
        if not ad.page_id:
            continue
        name, page_ads = by_page.setdefault(ad.page_id, (ad.page_name or "Unknown", []))
        page_ads.append(ad)

    brand_domain = profile.domain.lower()
    for page_id, (name, page_ads) in by_page.items():
        if page_id in profile.official_page_ids:
            continue
        domains = {d for ad in page_ads for d in caption_domains(ad)}
        third_party = [
            d for d in sorted(domains)
            if d != brand_domain and not host_in(d, SOCIAL_DOMAINS) and not alias_in_domain(d, profile.aliases)
        ]
        if not third_party:
            if brand_domain in domains:
                confirmed[page_id] = name
                logger.info("brand search: page %r links only to %s", name, brand_domain)
            continue
        if is_spam_page_name(name):
            continue
        for d in third_party:
            if not is_spam_domain(d):
                priority.add(d)
    return confirmed, priority


def confirmed_page_domains(
    keyword_ads: list[AdRecord],
    confirmed: dict[str, str],
    profile: BrandProfile,
) -> set[str]:
    """Own domains of confirmed pages, as seen in the keyword-search ads."""
    found: set[str] = set()
    for ad in keyword_ads:
        if ad.page_id not in confirmed:
            continue
        for d in caption_domains(ad):
            if _brand_owned(d, profile) or is_spam_domain(d):
                continue
            found.add(d)
    return found


def cross_reference_domains(keyword_ads: list[AdRecord], profile: BrandProfile) -> set[str]:
    """Non-brand domains of pages that also advertise the brand domain."""
    by_page: dict[str, set[str]] = {}
    for ad in keyword_ads:
        if not ad.page_id or ad.page_id in profile.official_page_ids:
            continue
        by_page.setdefault(ad.page_id, set()).update(caption_domains(ad))

    found: set[str] = set()
    for domains in by_page.values():
        if not any(_brand_owned(d, profile) for d in domains):
            continue
        for d in domains:
            if not _brand_owned(d, profile) and not is_spam_domain(d):
                found.add(d)
    return found


def rank_candidates(
    candidates: dict[str, CandidateDomain],
    priority: set[str],
    max_domains: int,
) -> list[CandidateDomain]:
    """Priority domains first, then by ad count; ``max_domains`` of 0 keeps all."""
    for domain, cand in candidates.items():
        cand.priority = domain in priority
    ranked = sorted(candidates.values(), key=lambda c: (not c.priority, -c.ad_count))
    if max_domains and len(ranked) > max_domains:
        logger.info("limiting to %d of %d candidate domains", max_domains, len(ranked))
        ranked = ranked[:max_domains]
    return ranked

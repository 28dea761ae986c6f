from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Callable

from .models import AdRecord, BrandProfile, PlatformDetection
from .urls import domain_from_caption, domain_of, normalize_alias

logger = logging.getLogger(__name__)

_NAME_SEPARATORS = (" - ", " – ", " | ", " · ", " — ")
_SUBTITLE_RE = re.compile(r"\s*[-–|·—].*$")
_TLD_RE = re.compile(r"\.[^.]+$")


def _add(aliases: list[str], value: str | None, min_len: int = 1) -> None:
    v = (value or "").strip().lower()
    if len(v) >= min_len and v not in aliases:
        aliases.append(v)


def name_aliases(brand_name: str) -> list[str]:
    """``"Glow25 - The Collagen Company"`` -> full name, ``"glow25"``."""
    full = brand_name.lower().strip()
    aliases = [full] if full else []
    for sep in _NAME_SEPARATORS:
        if sep in full:
            _add(aliases, full.split(sep)[0], 3)
    _add(aliases, _SUBTITLE_RE.sub("", full), 3)
    return aliases


def caption_domains(ad: AdRecord) -> list[str]:
    out = []
    for caption in ad.ad_creative_link_captions:
        d = domain_from_caption(caption)
        if d:
            out.append(d)
    return out


def page_counts(ads: list[AdRecord]) -> dict[str, tuple[str, int]]:
    """page_id -> (page_name, ad count), in first-seen order."""
    pages: dict[str, tuple[str, int]] = {}
    for ad in ads:
        if not ad.page_id or not ad.page_name:
            continue
        name, count = pages.get(ad.page_id, (ad.page_name, 0))
        pages[ad.page_id] = (name, count + 1)
    return pages


def official_page_ids(brand_name: str, ads: list[AdRecord]) -> list[str]:
    """Pages named after the brand; the busiest page when none is."""
    brand = brand_name.lower()
    pages = page_counts(ads)
    official = [
        pid
        for pid, (name, _) in pages.items()
        if brand in name.lower() or re.sub(r"\s+", "", name.lower()) in brand
    ]
    if not official and pages:
        official = [max(pages.items(), key=lambda item: item[1][1])[0]]
    return official


def plurality_domain(ads: list[AdRecord]) -> str | None:
    """Most frequent caption domain across ``ads``."""
    counts: Counter[str] = Counter()
    for ad in ads:
        counts.update(caption_domains(ad))
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def brand_payers(ads: list[AdRecord], official_ids: list[str]) -> list[str]:
    payers: list[str] = []
    for ad in ads:
        if ad.page_id not in official_ids:
            continue
        for bp in ad.beneficiary_payers:
            _add(payers, bp.beneficiary)
            _add(payers, bp.payer)
    return payers


def enrich_with_platform(profile: BrandProfile, det: PlatformDetection) -> BrandProfile:
    """Fold a storefront detection of the brand domain into the profile."""
    profile.platform = det.platform
    if det.is_shopify:
        profile.store_name = det.store_name
        profile.vendor_name = det.vendor_name
        if det.myshopify_domain:
            _add(profile.aliases, det.myshopify_domain.replace(".myshopify.com", ""))
        _add(profile.aliases, det.vendor_name)
        _add(profile.aliases, det.og_site_name)
    return profile


def resolve_brand_profile(
    brand_name: str,
    ads: list[AdRecord],
    detect: Callable[[str], PlatformDetection] | None = None,
) -> BrandProfile:
    """Build the brand profile from the brand's own search results.

    The brand domain is the plurality vote over ad caption domains. When
    ``detect`` is given it is called with that domain and its storefront
    details are merged in.
    """
    profile = BrandProfile(brand_name=brand_name, aliases=name_aliases(brand_name))
    if not ads:
        logger.info("no ads found for brand %r", brand_name)
        return profile

    profile.official_page_ids = official_page_ids(brand_name, ads)
    profile.domain = plurality_domain(ads)
    if profile.domain:
        _add(profile.aliases, _TLD_RE.sub("", profile.domain), 3)
        if detect is not None:
            enrich_with_platform(profile, detect(profile.domain))

    profile.payers = brand_payers(ads, profile.official_page_ids)
    logger.info(
        "brand %r: domain=%s platform=%s aliases=%s",
        brand_name,
        profile.domain,
        profile.platform,
        ",".join(profile.aliases),
    )
    return profile


def alias_in_domain(domain: str, aliases: list[str]) -> bool:
    """True when a separator-stripped alias of three or more chars occurs in ``domain``."""
    d = domain.lower()
    for alias in aliases:
        normalized = normalize_alias(alias)
        if len(normalized) >= 3 and normalized in d:
            return True
    return False


def is_brand_domain(domain: str | None, profile: BrandProfile) -> bool:
    """Does ``domain`` (or a URL) belong to the brand?"""
    d = domain_of(domain) if domain else None
    if not d:
        return False
    brand = (profile.domain or "").lower()
    if brand and (d == brand or d.endswith("." + brand)):
        return True
    if profile.store_name and d == f"{profile.store_name}.myshopify.com":
        return True
    return alias_in_domain(d, profile.aliases)

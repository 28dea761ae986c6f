"""
Brand attribution pipeline.

Given a brand name, search the ad library for the brand's own ads, resolve the
brand profile, mine niche keywords, search again by keyword, and verify every
third-party domain those ads point to. Stages run in order; expensive stages
are skipped when the run deadline is close, so a caller always gets whatever
was verified so far.
"""
from __future__ import annotations

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from .ad_source import AdSource, AdSourceError, MetaAdLibrarySource
from .aggregator import (
    Aggregation,
    aggregate,
    brand_search_signals,
    confirmed_page_domains,
    cross_reference_domains,
    merge_ads,
    rank_candidates,
)
from .brand import page_counts, resolve_brand_profile
from .config import Settings
from .deadline import Deadline
from .extractor import landing_url_from_snapshot
from .fetcher import WebClient
from .keywords import generate_keywords
from .models import (
    AdRecord,
    BrandProfile,
    CandidateDomain,
    Diagnostics,
    DiscoveryOptions,
    DiscoveryReport,
    DomainCheckTrace,
    MatchMode,
    ScanStats,
    StepTrace,
    VerificationResult,
)
from .refiner import GeminiKeywordRefiner, KeywordRefiner
from .renderer import PlaywrightRenderer, Renderer
from .report import accept_matches, build_report, error_report
from .store import MemoryStore
from .storefront import detect_platform
from .urls import is_valid_landing_url, top_path_urls
from .verification import DomainEvidence, DomainVerifier

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str, str], None]

LANDING_TTL_S = 7 * 24 * 3600
BRAND_SEARCH_CAP = 300
DOMAIN_BASE_SEARCH_CAP = 400
FULL_DOMAIN_SEARCH_CAP = 200
LANDING_DEFAULT_DOMAINS = 15
LANDING_MAX_DOMAINS = 20
SNAPSHOTS_PER_DOMAIN = 2
_KEYWORD_WORKERS = 3
_TLD_RE = re.compile(r"\.[a-z]+$")


def _validate_brand(brand: str | None) -> str | None:
    b = (brand or "").strip()
    return b or None


class DiscoveryPipeline:
    def __init__(
        self,
        ad_source: AdSource,
        client: WebClient | None = None,
        settings: Settings | None = None,
        *,
        refiner: KeywordRefiner | None = None,
        renderer: Renderer | None = None,
        store: MemoryStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or Settings()
        self.ad_source = ad_source
        self._owns_client = client is None
        self.client = client or WebClient(
            user_agent=self.settings.user_agent,
            accept_language=self.settings.accept_language,
            max_html_kb=self.settings.max_html_kb,
        )
        self.refiner = refiner
        self.renderer = renderer
        self.store = store
        self._sleep = sleep
        self._clock = clock

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _notify(self, progress: ProgressSink | None, stage: str, detail: str) -> None:
        logger.info("[%s] %s", stage, detail)
        if progress is None:
            return
        try:
            progress(stage, detail)
        except Exception as e:
            logger.warning("progress sink failed at %s: %s", stage, e)

    def _fetch_ads(
        self, terms: str, countries: list[str], mode: MatchMode, max_results: int
    ) -> tuple[list[AdRecord], StepTrace | None]:
        try:
            return self.ad_source.search(terms, countries, mode, max_results), None
        except AdSourceError as e:
            logger.warning("ad search %r failed (code=%s): %s", terms, e.code, e)
            return [], StepTrace(step="ad_search", outcome="error", detail=f"{terms!r}: {e} (code={e.code})")
        except Exception as e:
            logger.warning("ad search %r failed: %s", terms, e)
            return [], StepTrace(step="ad_search", outcome="error", detail=f"{terms!r}: {type(e).__name__}: {e}")

    def _search(
        self,
        terms: str,
        countries: list[str],
        mode: MatchMode,
        max_results: int,
        diag: Diagnostics,
    ) -> list[AdRecord]:
        ads, err = self._fetch_ads(terms, countries, mode, max_results)
        if err is not None:
            diag.errors.append(err)
        return ads

    def run(
        self,
        brand: str,
        options: DiscoveryOptions | None = None,
        progress: ProgressSink | None = None,
    ) -> DiscoveryReport:
        options = options or DiscoveryOptions()
        brand_name = _validate_brand(brand)
        if brand_name is None:
            return error_report(brand or "", "Brand name is required")

        deadline = Deadline(options.timeout_ms, self._clock)
        buffers = self.settings.buffers
        diag = Diagnostics()

        # 1. Brand profile from the brand's own ads.
        self._notify(progress, "brand_search", f"Searching ads for {brand_name}")
        brand_ads = self._search(
            brand_name,
            options.countries,
            "exact_phrase",
            min(options.max_brand_ads, BRAND_SEARCH_CAP),
            diag,
        )
        profile = resolve_brand_profile(
            brand_name,
            brand_ads,
            detect=lambda d: detect_platform(
                self.client,
                d,
                timeout_s=deadline.cap(self.settings.domain_timeout_s),
                store=self.store,
            ),
        )
        diag.brand_aliases = list(profile.aliases)
        if not profile.domain:
            diag.brand_ads_count = len(brand_ads)
            return error_report(
                brand_name,
                "Could not find brand domain from ads",
                duration_s=deadline.elapsed_s(),
                diagnostics=diag,
            )
        self._notify(progress, "brand_profile", f"Brand domain {profile.domain} ({profile.platform or 'unknown'})")

        # 2. Widen the brand's own ad set with domain searches.
        base = _TLD_RE.sub("", profile.domain)
        base_ads = self._search(
            base, options.countries, "unordered", min(options.max_brand_ads, DOMAIN_BASE_SEARCH_CAP), diag
        )
        domain_ads: list[AdRecord] = []
        if deadline.past_buffer(buffers.full_domain_search):
            diag.skipped_stages.append("full_domain_search")
        else:
            domain_ads = self._search(profile.domain, options.countries, "unordered", FULL_DOMAIN_SEARCH_CAP, diag)
        brand_ads = merge_ads(brand_ads, base_ads, domain_ads)
        diag.brand_ads_count = len(brand_ads)

        confirmed, priority = brand_search_signals(brand_ads, profile)

        # 3. Keywords and keyword search.
        keywords = self._keywords(brand_name, brand_ads, profile, options, deadline, diag)
        self._notify(progress, "keyword_search", f"Searching {len(keywords)} keywords: {', '.join(keywords)}")
        keyword_ads = self._keyword_search(keywords, options, diag)
        diag.keyword_ads_count = len(keyword_ads)

        # 4. Candidate pool.
        combined = merge_ads(brand_ads, keyword_ads)
        diag.combined_ads_count = len(combined)
        agg = aggregate(combined, profile)
        priority |= confirmed_page_domains(keyword_ads, confirmed, profile)
        priority |= cross_reference_domains(keyword_ads, profile)
        diag.priority_domains = sorted(d for d in priority if d in agg.candidates)
        ranked = rank_candidates(agg.candidates, priority, options.max_domains)
        self._notify(
            progress,
            "aggregate",
            f"{len(agg.candidates)} candidate domains, checking {len(ranked)}",
        )

        # 5. Landing URLs from ad snapshots.
        self._enrich_landing(ranked, agg, options, deadline, diag, progress)

        # 6. Verification.
        renderer = self.renderer if options.use_headless else None
        results = self._verify_all(ranked, agg, profile, renderer, deadline, diag, progress)

        matches, filtered = accept_matches(results, self.settings.min_confidence)
        diag.filtered_low_confidence = filtered
        diag.domains_skipped_timeout = len(ranked) - len(results)

        stats = ScanStats(
            keywords_used=keywords,
            total_ads_scanned=len(keyword_ads),
            unique_domains_found=len(agg.candidates),
            unique_domains_checked=len(results),
            scan_duration_seconds=round(deadline.elapsed_s(), 2),
        )
        report = build_report(
            brand=brand_name,
            profile=profile,
            matches=matches,
            pages=agg.pages,
            full_urls=agg.full_urls,
            stats=stats,
            diagnostics=diag,
        )
        self._notify(
            progress,
            "done",
            f"{len(matches)} matches from {len(results)} checked domains in {stats.scan_duration_seconds}s",
        )
        return report

    def _keywords(
        self,
        brand_name: str,
        brand_ads: list[AdRecord],
        profile: BrandProfile,
        options: DiscoveryOptions,
        deadline: Deadline,
        diag: Diagnostics,
    ) -> list[str]:
        generated = generate_keywords(brand_ads, brand_name, options.max_keywords * 3)
        base = generated.keywords[: options.max_keywords]

        if self.refiner is not None and generated.keywords:
            if deadline.past_buffer(self.settings.buffers.keyword_refinement):
                diag.skipped_stages.append("keyword_refinement")
            else:
                pages = page_counts(brand_ads)
                page_name = next(
                    (pages[pid][0] for pid in profile.official_page_ids if pid in pages),
                    brand_name,
                )
                try:
                    refined = self.refiner.refine(generated.keywords, brand_name, page_name, options.max_keywords)
                except Exception as e:
                    logger.warning("keyword refinement failed: %s", e)
                    refined = None
                    reason = f"{type(e).__name__}: {e}"
                else:
                    reason = getattr(self.refiner, "last_error", None) or "no keywords returned"
                if refined:
                    base = refined
                    diag.keywords_refined = True
                else:
                    diag.errors.append(StepTrace(step="keyword_refinement", outcome="error", detail=reason))

        keywords: list[str] = []
        for k in list(options.keywords) + list(base):
            k = k.strip()
            if k and k.lower() not in (x.lower() for x in keywords):
                keywords.append(k)
        return keywords[: options.max_keywords] or [brand_name]

    def _keyword_search(self, keywords: list[str], options: DiscoveryOptions, diag: Diagnostics) -> list[AdRecord]:
        batches: list[list[AdRecord]] = []
        with ThreadPoolExecutor(max_workers=_KEYWORD_WORKERS) as ex:
            for i in range(0, len(keywords), _KEYWORD_WORKERS):
                if i:
                    self._sleep(self.settings.batch_delay_s)
                chunk = keywords[i : i + _KEYWORD_WORKERS]
                for ads, err in ex.map(
                    lambda k: self._fetch_ads(k, options.countries, "unordered", options.max_keyword_ads),
                    chunk,
                ):
                    batches.append(ads)
                    if err is not None:
                        diag.errors.append(err)
        return merge_ads(*batches)

    def _landing_for(self, ads: list[AdRecord], deadline: Deadline) -> tuple[str | None, str | None]:
        """Landing URL from the first usable snapshot, or the reason none was found."""
        tried = 0
        for ad in ads:
            if not ad.ad_snapshot_url:
                continue
            if tried >= SNAPSHOTS_PER_DOMAIN:
                break
            tried += 1

            key = f"landing:{ad.id}"
            url = self.store.get(key) if self.store is not None else None
            if url is None:
                url = landing_url_from_snapshot(
                    self.client,
                    ad.ad_snapshot_url,
                    timeout_s=deadline.cap(self.settings.landing_timeout_s),
                    max_hops=self.settings.max_redirect_hops,
                ) or ""
                if self.store is not None:
                    self.store.put(key, url, LANDING_TTL_S)
            if is_valid_landing_url(url):
                return url, None
        if not tried:
            return None, None
        return None, f"no landing url in {tried} snapshot(s)"

    def _enrich_landing(
        self,
        ranked: list[CandidateDomain],
        agg: Aggregation,
        options: DiscoveryOptions,
        deadline: Deadline,
        diag: Diagnostics,
        progress: ProgressSink | None,
    ) -> None:
        buffers = self.settings.buffers
        if deadline.past_buffer(buffers.landing_enrichment):
            diag.skipped_stages.append("landing_enrichment")
            return

        limit = min(options.max_domains or LANDING_DEFAULT_DOMAINS, LANDING_MAX_DOMAINS)
        targets = [c.domain for c in ranked[:limit]]
        size = self.settings.enrich_batch_size
        self._notify(progress, "landing_urls", f"Extracting landing URLs for {len(targets)} domains")

        found = 0
        with ThreadPoolExecutor(max_workers=size) as ex:
            for i in range(0, len(targets), size):
                if i and deadline.past_buffer(buffers.landing_enrichment_batch):
                    diag.skipped_stages.append("landing_enrichment_partial")
                    break
                batch = targets[i : i + size]
                outcomes = list(ex.map(lambda d: self._landing_for(agg.domain_ads.get(d, []), deadline), batch))
                for domain, (url, reason) in zip(batch, outcomes):
                    if url:
                        agg.add_full_url(domain, url)
                        found += 1
                    elif reason:
                        diag.errors.append(StepTrace(step="landing_url", outcome="miss", detail=f"{domain}: {reason}"))
        logger.info("landing urls: %d of %d domains", found, len(targets))

    def _verify_all(
        self,
        ranked: list[CandidateDomain],
        agg: Aggregation,
        profile: BrandProfile,
        renderer: Renderer | None,
        deadline: Deadline,
        diag: Diagnostics,
        progress: ProgressSink | None,
    ) -> list[VerificationResult]:
        buffers = self.settings.buffers
        if deadline.past_buffer(buffers.verification):
            diag.skipped_stages.append("verification")
            return []

        verifier = DomainVerifier(self.client, self.settings, renderer=renderer)
        size = self.settings.verify_batch_size
        results: list[VerificationResult] = []

        with ThreadPoolExecutor(max_workers=size) as ex:
            for i in range(0, len(ranked), size):
                if deadline.past_buffer(buffers.verification_batch):
                    logger.info("deadline: stopping verification after %d of %d domains", i, len(ranked))
                    diag.skipped_stages.append("verification_partial")
                    break
                if i:
                    self._sleep(self.settings.batch_delay_s)

                batch = ranked[i : i + size]
                self._notify(progress, "verify", f"Checking domains {i + 1}-{i + len(batch)} of {len(ranked)}")
                futures = [
                    ex.submit(
                        verifier.verify,
                        c.domain,
                        profile,
                        DomainEvidence(ads=agg.domain_ads.get(c.domain, []), full_urls=dict(c.full_urls)),
                        deadline=deadline,
                    )
                    for c in batch
                ]
                for cand, fut in zip(batch, futures):
                    try:
                        r = fut.result()
                    except Exception as e:
                        logger.exception("verification of %s failed", cand.domain)
                        r = VerificationResult(
                            domain=cand.domain,
                            trace=[StepTrace(step="verify", outcome="error", detail=str(e))],
                        )
                    r.page_ids = list(cand.page_ids)
                    r.ad_count = cand.ad_count
                    results.append(r)
                    diag.domains_checked.append(
                        DomainCheckTrace(
                            domain=cand.domain,
                            priority=cand.priority,
                            result=f"MATCH({r.kind},{r.confidence:.2f})" if r.match else "NO_MATCH",
                            urls=top_path_urls(cand.full_urls, 3),
                            steps=r.trace,
                        )
                    )
        return results


def discover(
    brand: str,
    options: DiscoveryOptions | None = None,
    *,
    progress: ProgressSink | None = None,
    settings: Settings | None = None,
    ad_source: AdSource | None = None,
    store: MemoryStore | None = None,
) -> DiscoveryReport:
    """Run one discovery with collaborators built from ``settings``."""
    options = options or DiscoveryOptions()
    if _validate_brand(brand) is None:
        return error_report(brand or "", "Brand name is required")

    settings = settings or Settings.from_env()
    own_source = ad_source is None
    if ad_source is None:
        if not settings.meta_access_token:
            return error_report(brand, "META_ACCESS_TOKEN is not configured")
        ad_source = MetaAdLibrarySource(settings.meta_access_token, api_version=settings.meta_api_version)

    refiner = GeminiKeywordRefiner(settings.gemini_api_key, settings.gemini_model) if settings.gemini_api_key else None
    renderer = PlaywrightRenderer(user_agent=settings.user_agent) if options.use_headless else None
    pipeline = DiscoveryPipeline(ad_source, settings=settings, refiner=refiner, renderer=renderer, store=store)
    try:
        return pipeline.run(brand, options, progress)
    finally:
        pipeline.close()
        if own_source:
            ad_source.close()

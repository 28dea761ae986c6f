from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

MatchKind = Literal[
    "direct",
    "redirect",
    "shopify_vendor",
    "content_link",
    "content_match",
    "presell_cta",
    "checkout_match",
    "none",
]
MatchMode = Literal["exact_phrase", "unordered"]
StepOutcome = Literal["match", "miss", "error", "skipped"]
JobStatus = Literal["queued", "running", "completed", "error"]


class BeneficiaryPayer(BaseModel):
    beneficiary: str | None = None
    payer: str | None = None


class AdRecord(BaseModel):
    """One creative as returned by the ad source. Read-only input."""

    id: str
    page_id: str | None = None
    page_name: str | None = None
    ad_creative_bodies: list[str] = []
    ad_creative_link_titles: list[str] = []
    ad_creative_link_descriptions: list[str] = []
    ad_creative_link_captions: list[str] = []
    ad_snapshot_url: str | None = None
    ad_delivery_start_time: str | None = None
    ad_delivery_stop_time: str | None = None
    publisher_platforms: list[str] = []
    languages: list[str] = []
    eu_total_reach: int | None = None
    beneficiary_payers: list[BeneficiaryPayer] = []


class BrandProfile(BaseModel):
    brand_name: str
    aliases: list[str] = []
    domain: str | None = None
    platform: str | None = None
    store_name: str | None = None
    vendor_name: str | None = None
    official_page_ids: list[str] = []
    payers: list[str] = []


class CandidateDomain(BaseModel):
    domain: str
    page_ids: list[str] = []
    ad_count: int = 0
    full_urls: dict[str, int] = {}
    priority: bool = False


class RedirectChain(BaseModel):
    final_url: str
    chain: list[str]
    hops: int = 0
    note: str | None = None


class PresellChain(BaseModel):
    initial_url: str
    cta_url: str | None = None
    final_url: str | None = None
    chain: list[str] = []
    is_presell: bool = False
    shop_domain: str | None = None
    confidence: float = 0.0
    extraction_method: str | None = None


class PlatformDetection(BaseModel):
    domain: str
    platform: str = "unknown"
    is_shopify: bool = False
    store_name: str | None = None
    myshopify_domain: str | None = None
    og_site_name: str | None = None
    vendor_name: str | None = None
    vendors: list[str] = []
    signals: list[str] = []
    detection_methods: list[str] = []
    confidence: float = 0.0


class VendorMatch(BaseModel):
    found: bool = False
    matched_vendor: str | None = None
    confidence: float = 0.0


class KeywordScore(BaseModel):
    keyword: str
    frequency: int
    source: Literal["body", "title", "description"]


class KeywordResult(BaseModel):
    keywords: list[str]
    scores: list[KeywordScore]
    total_ads_analyzed: int


class StepTrace(BaseModel):
    step: str
    outcome: StepOutcome
    detail: str | None = None


class VerificationResult(BaseModel):
    domain: str
    match: bool = False
    kind: MatchKind = "none"
    confidence: float = 0.0
    final_url: str | None = None
    shop_domain: str | None = None
    vendor_name: str | None = None
    chain: list[str] = []
    page_ids: list[str] = []
    ad_count: int = 0
    trace: list[StepTrace] = []


class DiscoveryOptions(BaseModel):
    countries: list[str] = Field(default_factory=lambda: ["DE"])
    keywords: list[str] = []
    max_brand_ads: int = Field(300, ge=1, le=5000)
    max_keyword_ads: int = Field(500, ge=1, le=5000)
    max_keywords: int = Field(10, ge=1, le=50)
    # 0 = verify every candidate
    max_domains: int = Field(20, ge=0)
    use_headless: bool = False
    # 0 = no deadline (batch jobs)
    timeout_ms: int = Field(55000, ge=0)


class DiscoverRequest(DiscoveryOptions):
    brand: str = Field(..., min_length=1)


class BatchDiscoverRequest(DiscoveryOptions):
    brands: list[str] = Field(..., min_length=1)


class PageInfo(BaseModel):
    page_id: str
    page_name: str
    ad_count: int
    is_official: bool = True


class ThirdPartyPage(BaseModel):
    page_id: str
    page_name: str
    ad_count: int
    connection_type: MatchKind
    confidence: float
    discovered_via: str
    domains_used: list[str]


class Pages(BaseModel):
    official: list[PageInfo] = []
    third_party: list[ThirdPartyPage] = []


class DomainCategories(BaseModel):
    presell: list[str] = []
    redirect: list[str] = []
    final_shop: list[str] = []
    all: list[str] = []


class UrlCount(BaseModel):
    url: str
    count: int


class LandingPage(BaseModel):
    url: str
    count: int
    domain: str
    full_path: str
    leads_to: str | None = None
    extraction_method: MatchKind


class PresellChainInfo(BaseModel):
    presell_domain: str
    chain: list[str]
    final_domain: str


class ScanStats(BaseModel):
    keywords_used: list[str] = []
    total_ads_scanned: int = 0
    unique_domains_found: int = 0
    unique_domains_checked: int = 0
    matches_found: int = 0
    scan_duration_seconds: float = 0.0
    detection_methods: dict[str, int] = {}


class DomainCheckTrace(BaseModel):
    domain: str
    priority: bool
    result: str
    urls: list[str] = []
    steps: list[StepTrace] = []


class Diagnostics(BaseModel):
    brand_aliases: list[str] = []
    brand_ads_count: int = 0
    keyword_ads_count: int = 0
    combined_ads_count: int = 0
    keywords_refined: bool = False
    priority_domains: list[str] = []
    skipped_stages: list[str] = []
    errors: list[StepTrace] = []
    domains_checked: list[DomainCheckTrace] = []
    domains_skipped_timeout: int = 0
    filtered_low_confidence: list[str] = []


class DiscoveryReport(BaseModel):
    success: bool
    status: Literal["completed", "error"]
    brand: str
    brand_domain: str | None = None
    brand_platform: str | None = None
    brand_profile: BrandProfile | None = None
    pages: Pages = Field(default_factory=Pages)
    domains: DomainCategories = Field(default_factory=DomainCategories)
    domain_urls: dict[str, list[UrlCount]] = {}
    top_landing_pages: list[LandingPage] = []
    presell_chains: list[PresellChainInfo] = []
    scan_stats: ScanStats = Field(default_factory=ScanStats)
    diagnostics: Diagnostics | None = None
    error: str | None = None


class Job(BaseModel):
    id: str
    brand: str
    status: JobStatus = "queued"
    progress: str = "Queued"
    options: DiscoveryOptions = Field(default_factory=DiscoveryOptions)
    result: DiscoveryReport | None = None
    error: str | None = None
    created_at: float
    started_at: float | None = None
    completed_at: float | None = None

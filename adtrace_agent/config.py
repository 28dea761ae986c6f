from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ConfidenceWeights(BaseModel):
    """Per-method confidence for the verification cascade.

    These are empirically tuned defaults, not derived values. Every weight can be
    overridden per run through ``Settings.weights``.
    """

    direct: float = 1.0
    redirect: float = 0.90
    content_link: float = 0.75
    content_match: float = 0.60
    presell_cta: float = 0.85
    landing_domain: float = 0.85
    landing_path: float = 0.80
    landing_content_link: float = 0.75
    landing_content_match: float = 0.65
    dual_domain: float = 0.80
    rendered_link: float = 0.85
    rendered_content_link: float = 0.80
    rendered_content_match: float = 0.70
    rendered_cta: float = 0.85

    vendor_exact: float = 0.95
    vendor_normalized: float = 0.85
    vendor_contains: float = 0.80


class StageBuffers(BaseModel):
    """Milliseconds that must remain on the run deadline before a stage may start."""

    full_domain_search: int = 40000
    keyword_refinement: int = 35000
    landing_enrichment: int = 20000
    landing_enrichment_batch: int = 15000
    verification: int = 10000
    verification_batch: int = 3000


class Settings(BaseModel):
    min_confidence: float = Field(0.70, ge=0.0, le=1.0)
    weights: ConfidenceWeights = Field(default_factory=ConfidenceWeights)
    buffers: StageBuffers = Field(default_factory=StageBuffers)

    verify_batch_size: int = Field(5, ge=1)
    enrich_batch_size: int = Field(5, ge=1)
    batch_delay_s: float = 0.1

    domain_timeout_s: float = 8.0
    rendered_domain_timeout_s: float = 12.0
    landing_timeout_s: float = 6.0
    cta_timeout_s: float = 8.0
    render_timeout_s: float = 20.0
    max_redirect_hops: int = 10
    max_html_kb: int = 1024

    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "de-DE,de;q=0.9,en;q=0.8"

    meta_access_token: str | None = None
    meta_api_version: str = "v24.0"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"

    @classmethod
    def from_env(cls) -> Settings:
        data: dict = {
            "meta_access_token": os.getenv("META_ACCESS_TOKEN") or None,
            "gemini_api_key": os.getenv("GEMINI_API_KEY") or None,
        }
        if os.getenv("META_API_VERSION"):
            data["meta_api_version"] = os.environ["META_API_VERSION"]
        if os.getenv("GEMINI_MODEL"):
            data["gemini_model"] = os.environ["GEMINI_MODEL"]
        if os.getenv("ADTRACE_USER_AGENT"):
            data["user_agent"] = os.environ["ADTRACE_USER_AGENT"]
        if os.getenv("ADTRACE_MIN_CONFIDENCE"):
            data["min_confidence"] = float(os.environ["ADTRACE_MIN_CONFIDENCE"])
        if os.getenv("ADTRACE_DOMAIN_TIMEOUT_S"):
            data["domain_timeout_s"] = float(os.environ["ADTRACE_DOMAIN_TIMEOUT_S"])
        return cls(**data)

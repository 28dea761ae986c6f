"""
Domain verification cascade.

For one candidate domain, run an ordered list of checks from cheapest and most
reliable to most expensive. The first check that ties the domain to the brand
decides the result; every check leaves a trace entry either way.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol, Union

import httpx

from .brand import caption_domains, is_brand_domain
from .config import ConfidenceWeights, Settings
from .deadline import Deadline
from .fetcher import FetchError, WebClient
from .models import AdRecord, BrandProfile, MatchKind, StepTrace, VerificationResult
from .presell import track_presell
from .redirects import RedirectWalk, resolve_redirects, walk_redirects
from .renderer import Renderer, RenderError
from .storefront import fetch_vendors, looks_like_shopify, vendor_matches
from .urls import domain_of, top_path_urls, url_path

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(r"href\s*=\s*[\"'](https?://[^\"']+)[\"']", re.IGNORECASE)
_RENDERED_CTA_TOKENS = (
    "shop", "kauf", "bestell", "checkout", "angebot", "buy", "order",
    "/go/", "/out/", "/click", "/redirect", "/track",
)


@dataclass
class DomainEvidence:
    """What the ad search already knows about a domain."""

    ads: list[AdRecord] = field(default_factory=list)
    full_urls: dict[str, int] = field(default_factory=dict)


@dataclass
class Hit:
    kind: MatchKind
    confidence: float
    shop_domain: str | None = None
    detail: str = ""
    final_url: str | None = None
    vendor_name: str | None = None
    chain: list[str] | None = None


@dataclass
class Miss:
    detail: str = ""
    skipped: bool = False


Outcome = Union[Hit, Miss]


class VerifySession:
    """Per-domain state shared by the steps of one cascade run."""

    def __init__(
        self,
        domain: str,
        client: WebClient,
        settings: Settings,
        renderer: Renderer | None = None,
        deadline: Deadline | None = None,
    ):
        self.domain = domain
        self.client = client
        self.settings = settings
        self.weights: ConfidenceWeights = settings.weights
        self.renderer = renderer
        self.deadline = deadline
        self._home: RedirectWalk | None = None

    def timeout(self, seconds: float) -> float:
        return self.deadline.cap(seconds) if self.deadline else seconds

    @property
    def domain_timeout(self) -> float:
        base = self.settings.rendered_domain_timeout_s if self.renderer else self.settings.domain_timeout_s
        return self.timeout(base)

    def homepage(self) -> RedirectWalk:
        if self._home is None:
            self._home = walk_redirects(
                self.client,
                f"https://{self.domain}",
                max_hops=self.settings.max_redirect_hops,
                timeout_s=self.domain_timeout,
            )
        return self._home

    @property
    def fetched(self) -> bool:
        return self._home is not None

    def homepage_html(self) -> str | None:
        page = self.homepage().page
        if page is None or not page.ok:
            return None
        return page.text

    def vendor_names(self, profile: BrandProfile) -> list[str]:
        names = []
        for name in (profile.vendor_name, profile.brand_name):
            if name and name not in names:
                names.append(name)
        return names

    def vendor_hit(self, domain: str, profile: BrandProfile):
        vendors = fetch_vendors(self.client, domain, timeout_s=self.domain_timeout)
        if vendors is None:
            return None, "no product listing"
        best = None
        for name in self.vendor_names(profile):
            vm = vendor_matches(vendors, name, self.weights)
            if vm.found and (best is None or vm.confidence > best.confidence):
                best = vm
        if best is None:
            return None, f"vendors {vendors[:5]} do not match"
        return best, ""


def _content_outcome(
    html: str,
    profile: BrandProfile,
    link_weight: float,
    match_weight: float,
) -> Outcome:
    h = html.lower()
    brand = (profile.domain or "").lower()
    if brand and brand in h:
        return Hit("content_link", link_weight, brand, f"mentions {brand}")
    for alias in profile.aliases:
        if len(alias) >= 4 and alias in h:
            return Hit("content_match", match_weight, profile.domain, f"mentions alias {alias!r}")
    return Miss("no brand reference")


class Strategy(Protocol):
    name: str

    def attempt(
        self,
        domain: str,
        profile: BrandProfile,
        evidence: DomainEvidence,
        session: VerifySession,
    ) -> Outcome: ...


class DirectCheck:
    name = "direct"

    def attempt(self, domain, profile, evidence, session):
        if profile.domain and domain.lower() == profile.domain.lower():
            return Hit("direct", session.weights.direct, domain, "is the brand domain")
        return Miss()


class RedirectCheck:
    name = "redirect"

    def attempt(self, domain, profile, evidence, session):
        walk = session.homepage()
        if walk.page is None and walk.chain.hops == 0 and walk.error is not None:
            return Miss(f"fetch failed: {walk.error.reason}")
        final_domain = domain_of(walk.chain.final_url)
        if is_brand_domain(final_domain, profile):
            return Hit(
                "redirect",
                session.weights.redirect,
                final_domain,
                f"lands on {final_domain}",
                final_url=walk.chain.final_url,
                chain=walk.chain.chain,
            )
        return Miss(f"stays on {final_domain}")


class VendorCheck:
    name = "vendor"

    def attempt(self, domain, profile, evidence, session):
        html = session.homepage_html()
        if html is None:
            return Miss("no homepage", skipped=True)
        if not looks_like_shopify(html):
            return Miss("not a storefront")
        vm, why = session.vendor_hit(domain, profile)
        if vm is None:
            return Miss(why)
        return Hit(
            "shopify_vendor",
            vm.confidence,
            domain,
            f"vendor {vm.matched_vendor!r}",
            vendor_name=vm.matched_vendor,
        )


class ContentCheck:
    name = "content"

    def attempt(self, domain, profile, evidence, session):
        html = session.homepage_html()
        if html is None:
            return Miss("no homepage", skipped=True)
        w = session.weights
        return _content_outcome(html, profile, w.content_link, w.content_match)


class PresellCheck:
    name = "presell_cta"

    def attempt(self, domain, profile, evidence, session):
        home_url = f"https://{domain}"
        urls = [u for u in top_path_urls(evidence.full_urls, 3) if u != home_url]
        home_html = session.homepage_html()
        if home_html is not None:
            urls.insert(0, home_url)
        if not urls:
            return Miss("no page to inspect", skipped=True)

        misses = []
        for url in urls:
            chain = track_presell(
                session.client,
                url,
                timeout_s=session.domain_timeout,
                max_hops=session.settings.max_redirect_hops,
                html=home_html if url == home_url else None,
            )
            if not chain.final_url:
                misses.append(f"{url}: no cta")
                continue
            final_domain = domain_of(chain.final_url)
            if is_brand_domain(final_domain, profile):
                return Hit(
                    "presell_cta",
                    session.weights.presell_cta,
                    final_domain,
                    f"{url} -> {chain.cta_url} -> {chain.final_url}",
                    final_url=chain.final_url,
                    chain=chain.chain,
                )
            if final_domain and final_domain != domain:
                vm, _ = session.vendor_hit(final_domain, profile)
                if vm is not None:
                    return Hit(
                        "checkout_match",
                        vm.confidence,
                        final_domain,
                        f"{url} -> {final_domain} sells {vm.matched_vendor!r}",
                        final_url=chain.final_url,
                        vendor_name=vm.matched_vendor,
                        chain=chain.chain,
                    )
            misses.append(f"{url}: cta ends on {final_domain}")
        return Miss("; ".join(misses))


class LandingUrlCheck:
    name = "landing_url"

    def attempt(self, domain, profile, evidence, session):
        if not evidence.full_urls:
            return Miss("no landing urls", skipped=True)
        w = session.weights
        path_aliases = {a.replace(" ", "-") for a in profile.aliases if len(a) >= 4}

        for url in evidence.full_urls:
            url_domain = domain_of(url)
            if is_brand_domain(url_domain, profile):
                return Hit("redirect", w.landing_domain, url_domain, f"{url} is on the brand domain", final_url=url)
            segments = [s for s in url_path(url).lower().split("/") if s]
            hit = next((s for s in segments if s in path_aliases), None)
            if hit:
                return Hit("content_link", w.landing_path, profile.domain, f"path segment {hit!r} in {url}", final_url=url)

        for url in top_path_urls(evidence.full_urls, 2):
            res = session.client.get_page(url, timeout=session.timeout(session.settings.landing_timeout_s))
            if isinstance(res, FetchError):
                logger.debug("landing fetch failed: %s", res)
                continue
            outcome = _content_outcome(res.text, profile, w.landing_content_link, w.landing_content_match)
            if isinstance(outcome, Hit):
                outcome.final_url = url
                outcome.detail = f"{url} {outcome.detail}"
                return outcome
        return Miss("landing pages carry no brand reference")


class DualDomainCheck:
    name = "dual_domain"

    def attempt(self, domain, profile, evidence, session):
        for ad in evidence.ads:
            for d in caption_domains(ad):
                if d != domain and is_brand_domain(d, profile):
                    return Hit("content_link", session.weights.dual_domain, d, f"ad {ad.id} also links {d}")
        return Miss()


class RenderedCheck:
    name = "rendered"

    def attempt(self, domain, profile, evidence, session):
        if session.renderer is None:
            return Miss("no renderer", skipped=True)
        w = session.weights
        paths = top_path_urls(evidence.full_urls, 1)
        target = paths[0] if paths else f"https://{domain}"

        page = session.renderer.render(target, timeout_s=session.timeout(session.settings.render_timeout_s))
        links = list(page.links) + [m for m in _HREF_RE.findall(page.html) if m not in page.links]

        for link in links:
            link_domain = domain_of(link)
            if is_brand_domain(link_domain, profile):
                return Hit("presell_cta", w.rendered_link, link_domain, f"rendered link {link}", final_url=link)

        outcome = _content_outcome(page.html, profile, w.rendered_content_link, w.rendered_content_match)
        if isinstance(outcome, Hit):
            return outcome

        cta_links = [
            link for link in links
            if link.lower().startswith("http") and any(t in link.lower() for t in _RENDERED_CTA_TOKENS)
        ][:3]
        for link in cta_links:
            chain = resolve_redirects(
                session.client,
                link,
                max_hops=session.settings.max_redirect_hops,
                timeout_s=session.timeout(session.settings.cta_timeout_s),
            )
            final_domain = domain_of(chain.final_url)
            if is_brand_domain(final_domain, profile):
                return Hit(
                    "presell_cta",
                    w.rendered_cta,
                    final_domain,
                    f"rendered cta {link} -> {chain.final_url}",
                    final_url=chain.final_url,
                    chain=chain.chain,
                )
        return Miss(f"{len(links)} rendered links, none to the brand")


DEFAULT_CASCADE: tuple[Strategy, ...] = (
    DirectCheck(),
    RedirectCheck(),
    VendorCheck(),
    ContentCheck(),
    PresellCheck(),
    LandingUrlCheck(),
    DualDomainCheck(),
    RenderedCheck(),
)


class DomainVerifier:
    def __init__(
        self,
        client: WebClient,
        settings: Settings | None = None,
        *,
        renderer: Renderer | None = None,
        cascade: tuple[Strategy, ...] = DEFAULT_CASCADE,
    ):
        self.client = client
        self.settings = settings or Settings()
        self.renderer = renderer
        self.cascade = cascade

    def verify(
        self,
        domain: str,
        profile: BrandProfile,
        evidence: DomainEvidence | None = None,
        *,
        deadline: Deadline | None = None,
    ) -> VerificationResult:
        """Run the cascade for ``domain``; the first hit is final."""
        evidence = evidence or DomainEvidence()
        session = VerifySession(domain, self.client, self.settings, self.renderer, deadline)
        result = VerificationResult(domain=domain)

        for strategy in self.cascade:
            try:
                outcome = strategy.attempt(domain, profile, evidence, session)
            except (httpx.HTTPError, RenderError, ValueError) as e:
                logger.info("%s: %s step failed: %s", domain, strategy.name, e)
                result.trace.append(StepTrace(step=strategy.name, outcome="error", detail=str(e)))
                continue

            if isinstance(outcome, Miss):
                result.trace.append(
                    StepTrace(
                        step=strategy.name,
                        outcome="skipped" if outcome.skipped else "miss",
                        detail=outcome.detail or None,
                    )
                )
                continue

            result.trace.append(StepTrace(step=strategy.name, outcome="match", detail=outcome.detail or None))
            result.match = True
            result.kind = outcome.kind
            result.confidence = outcome.confidence
            result.shop_domain = outcome.shop_domain
            result.vendor_name = outcome.vendor_name
            if outcome.chain:
                result.chain = list(outcome.chain)
            result.final_url = outcome.final_url
            break

        if session.fetched:
            home = session.homepage().chain
            result.final_url = result.final_url or home.final_url
            result.chain = result.chain or home.chain

        if result.match:
            logger.info("%s: MATCH %s (%.2f)", domain, result.kind, result.confidence)
        else:
            logger.info("%s: no match", domain)
        return result

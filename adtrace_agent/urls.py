from __future__ import annotations

import re
from urllib.parse import unquote, urlparse, urlunparse

# Social/platform hosts that never count as a landing page.
PLATFORM_DOMAINS = (
    "facebook.com",
    "fb.com",
    "fb.me",
    "fbcdn.net",
    "facebook.net",
    "instagram.com",
    "meta.com",
    "meta.ai",
    "threads.net",
    "whatsapp.com",
    "messenger.com",
)

# Hosts dropped from the candidate pool: platforms plus generic link services.
NON_CANDIDATE_DOMAINS = (
    "facebook.com",
    "fb.com",
    "instagram.com",
    "meta.com",
    "google.com",
    "youtube.com",
    "twitter.com",
    "pinterest.com",
    "tiktok.com",
    "bit.ly",
    "linktr.ee",
    "l.facebook.com",
)

# Wider list used when judging what a brand-search page advertises.
SOCIAL_DOMAINS = PLATFORM_DOMAINS + (
    "google.com",
    "youtube.com",
    "tiktok.com",
    "twitter.com",
    "x.com",
    "linkedin.com",
    "pinterest.com",
    "snapchat.com",
)

_ALIAS_SEPARATORS_RE = re.compile(r"[\s\-_.]+")
_SCHEME_WWW_RE = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)
_ASSET_RE = re.compile(r"\.(js|css|png|jpe?g|gif|webp|svg|woff2?|ttf|eot|ico)(\?|$)", re.IGNORECASE)
_PSEUDO_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")


def host_in(host: str, domains: tuple[str, ...]) -> bool:
    h = host.lower()
    return any(h == d or h.endswith("." + d) for d in domains)


def is_platform_domain(host: str) -> bool:
    return host_in(host, PLATFORM_DOMAINS)


def normalize_alias(value: str) -> str:
    """Lower-case and drop whitespace, hyphens, underscores and dots."""
    return _ALIAS_SEPARATORS_RE.sub("", value.lower())


def domain_of(url: str | None) -> str | None:
    """Hostname of a URL (or bare domain) without ``www.``, lower-cased."""
    if not url:
        return None
    candidate = url.strip()
    if "://" not in candidate:
        candidate = "https://" + candidate
    try:
        host = urlparse(candidate).hostname
    except ValueError:
        return None
    if not host or "." not in host:
        return None
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def domain_from_caption(caption: str | None) -> str | None:
    """``"WWW.Glow25.DE/shop"`` -> ``"glow25.de"``; None when it does not look like a domain."""
    if not caption:
        return None
    cleaned = _SCHEME_WWW_RE.sub("", caption.strip().lower())
    domain = cleaned.split("/")[0]
    if domain and "." in domain and " " not in domain:
        return domain
    return None


def full_url_from_caption(caption: str | None) -> str | None:
    """``"MONAPURE.DE/COLLECTIONS/SALE"`` -> ``"https://monapure.de/collections/sale"``."""
    if not caption:
        return None
    cleaned = _SCHEME_WWW_RE.sub("", caption.strip().lower()).rstrip("/")
    domain = cleaned.split("/")[0]
    if not domain or "." not in domain or " " in domain:
        return None
    return f"https://{cleaned}"


def decode_url(url: str) -> str:
    """Percent-decode, twice when the value was double-encoded."""
    decoded = unquote(url)
    if "%" in decoded:
        decoded = unquote(decoded)
    return decoded


def strip_fragment(u: str) -> str:
    try:
        p = urlparse(u)
        return urlunparse(p._replace(fragment=""))
    except ValueError:
        return u


def is_probably_asset_url(u: str) -> bool:
    return bool(_ASSET_RE.search(u))


def is_pseudo_link(u: str) -> bool:
    return u.strip().lower().startswith(_PSEUDO_PREFIXES)


def url_path(url: str) -> str:
    try:
        return urlparse(url).path or "/"
    except ValueError:
        return "/"


def has_path(url: str) -> bool:
    return url_path(url) not in ("", "/")


def path_and_query(url: str) -> str:
    try:
        p = urlparse(url)
    except ValueError:
        return "/"
    path = p.path or "/"
    return f"{path}?{p.query}" if p.query else path


def top_path_urls(full_urls: dict[str, int], limit: int) -> list[str]:
    """Most frequent URLs that carry a real path, highest count first."""
    ranked = sorted(
        ((u, c) for u, c in full_urls.items() if has_path(u)),
        key=lambda item: item[1],
        reverse=True,
    )
    return [u for u, _ in ranked[:limit]]


def is_valid_landing_url(url: str | None) -> bool:
    """Absolute http(s) URL that does not point at a social platform."""
    if not url or is_pseudo_link(url):
        return False
    try:
        p = urlparse(url)
    except ValueError:
        return False
    if p.scheme not in ("http", "https") or not p.hostname:
        return False
    return not is_platform_domain(p.hostname)

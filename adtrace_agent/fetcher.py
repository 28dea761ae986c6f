from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

import httpx

from .config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

_HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass(frozen=True)
class FetchedPage:
    url: str
    final_url: str
    status: int
    content_type: str | None
    text: str
    location: str | None = None
    history: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and bool(self.location)

    @property
    def is_html(self) -> bool:
        return bool(self.content_type) and "html" in self.content_type.lower()


@dataclass(frozen=True)
class FetchError:
    url: str
    reason: str
    detail: str = ""
    status: int | None = None

    def __str__(self) -> str:
        suffix = f" ({self.detail})" if self.detail else ""
        return f"{self.reason}: {self.url}{suffix}"


FetchResult = Union[FetchedPage, FetchError]


class WebClient:
    """Thin wrapper over a shared ``httpx.Client``.

    Every call returns either a ``FetchedPage`` or a ``FetchError``; httpx
    exceptions never leave this class. The client is safe to share across the
    worker threads of one run.
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        accept_language: str = "de-DE,de;q=0.9,en;q=0.8",
        max_html_kb: int = 1024,
        transport: httpx.BaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self.accept_language = accept_language
        self.max_bytes = max_html_kb * 1024
        self._client = httpx.Client(transport=transport, timeout=10.0, follow_redirects=False)

    def __enter__(self) -> WebClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch(
        self,
        url: str,
        *,
        timeout: float,
        method: str = "GET",
        follow_redirects: bool = True,
        accept: str = _HTML_ACCEPT,
    ) -> FetchResult:
        headers = {
            "user-agent": self.user_agent,
            "accept": accept,
            "accept-language": self.accept_language,
        }
        try:
            res = self._client.request(
                method,
                url,
                headers=headers,
                timeout=timeout,
                follow_redirects=follow_redirects,
            )
        except httpx.TimeoutException as e:
            return _failed(url, "timeout", e)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            return _failed(url, "invalid_url", e)
        except httpx.HTTPError as e:
            return _failed(url, "network", e)

        text = ""
        if method != "HEAD" and res.content:
            text = _decode(res.content[: self.max_bytes], res.charset_encoding)

        return FetchedPage(
            url=url,
            final_url=str(res.url),
            status=res.status_code,
            content_type=res.headers.get("content-type"),
            text=text,
            location=res.headers.get("location"),
            history=[str(r.url) for r in res.history],
        )

    def get_page(self, url: str, *, timeout: float) -> FetchResult:
        """GET with redirects followed; non-2xx answers become ``FetchError``."""
        res = self.fetch(url, timeout=timeout)
        if isinstance(res, FetchedPage) and not res.ok:
            return FetchError(url=url, reason="http_status", detail=str(res.status), status=res.status)
        return res


def _decode(body: bytes, charset: str | None) -> str:
    try:
        return body.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _failed(url: str, reason: str, exc: Exception) -> FetchError:
    logger.debug("%s %s: %s", reason, url, exc)
    return FetchError(url=url, reason=reason, detail=str(exc) or type(exc).__name__)

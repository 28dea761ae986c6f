from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """The page could not be rendered."""


@dataclass(frozen=True)
class RenderedPage:
    final_url: str
    html: str
    links: list[str] = field(default_factory=list)


class Renderer(Protocol):
    def render(self, url: str, *, timeout_s: float) -> RenderedPage: ...


class PlaywrightRenderer:
    """Headless chromium; one browser per call so worker threads never share one."""

    def __init__(self, *, user_agent: str = DEFAULT_USER_AGENT, settle_ms: int = 1500):
        self.user_agent = user_agent
        self.settle_ms = settle_ms

    def render(self, url: str, *, timeout_s: float = 20.0) -> RenderedPage:
        timeout_ms = int(timeout_s * 1000)
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(
                    headless=True,
                    args=[
                        "--no-sandbox",
                        "--disable-dev-shm-usage",
                        "--disable-gpu",
                    ],
                )
                context = browser.new_context(
                    viewport={"width": 1365, "height": 768},
                    user_agent=self.user_agent,
                    java_script_enabled=True,
                    ignore_https_errors=True,
                )
                page = context.new_page()
                try:
                    page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                    # Give client-side redirects and lazy CTAs a moment.
                    page.wait_for_timeout(self.settle_ms)
                    links = page.eval_on_selector_all("a[href]", "els => els.map(e => e.href)")
                    return RenderedPage(final_url=page.url, html=page.content(), links=list(links))
                finally:
                    context.close()
                    browser.close()
        except PlaywrightError as e:
            logger.warning("render failed for %s: %s", url, e)
            raise RenderError(str(e)) from e

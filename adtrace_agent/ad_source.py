from __future__ import annotations

import json
import logging
import time
from typing import Callable, Protocol

import httpx
from pydantic import ValidationError

from .models import AdRecord, MatchMode

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.facebook.com"

AD_FIELDS = ",".join(
    [
        "id",
        "ad_creation_time",
        "ad_delivery_start_time",
        "ad_delivery_stop_time",
        "ad_creative_bodies",
        "ad_creative_link_titles",
        "ad_creative_link_descriptions",
        "ad_creative_link_captions",
        "ad_snapshot_url",
        "page_id",
        "page_name",
        "publisher_platforms",
        "languages",
        "eu_total_reach",
        "beneficiary_payers",
    ]
)

_SEARCH_TYPES = {
    "exact_phrase": "KEYWORD_EXACT_PHRASE",
    "unordered": "KEYWORD_UNORDERED",
}


class AdSourceError(Exception):
    def __init__(self, message: str, code: int | None = None, subcode: int | None = None):
        super().__init__(message)
        self.code = code
        self.subcode = subcode

    @property
    def rate_limited(self) -> bool:
        return self.code in (4, 613)


class AdSource(Protocol):
    def search(
        self,
        terms: str,
        countries: list[str],
        match_mode: MatchMode,
        max_results: int,
    ) -> list[AdRecord]: ...


class MetaAdLibrarySource:
    """Client for the Graph API ``ads_archive`` endpoint with cursor paging."""

    def __init__(
        self,
        access_token: str,
        *,
        api_version: str = "v24.0",
        base_url: str = GRAPH_BASE_URL,
        timeout_s: float = 30.0,
        page_delay_s: float = 0.2,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.access_token = access_token
        self.endpoint = f"{base_url}/{api_version}/ads_archive"
        self.page_delay_s = page_delay_s
        self._sleep = sleep
        self._client = httpx.Client(transport=transport, timeout=timeout_s)

    def close(self) -> None:
        self._client.close()

    def _page(self, params: dict[str, str]) -> dict:
        try:
            res = self._client.get(self.endpoint, params=params)
        except httpx.HTTPError as e:
            raise AdSourceError(f"ads_archive request failed: {e}") from e

        try:
            body = res.json()
        except ValueError:
            body = {}
        if res.status_code >= 400 or not isinstance(body, dict) or "error" in body:
            err = body.get("error") if isinstance(body, dict) else None
            err = err if isinstance(err, dict) else {}
            raise AdSourceError(
                err.get("message") or f"HTTP {res.status_code}",
                err.get("code"),
                err.get("error_subcode"),
            )
        return body

    def search(
        self,
        terms: str,
        countries: list[str],
        match_mode: MatchMode = "exact_phrase",
        max_results: int = 1000,
    ) -> list[AdRecord]:
        ads: list[AdRecord] = []
        cursor: str | None = None

        while len(ads) < max_results:
            params = {
                "access_token": self.access_token,
                "search_terms": terms,
                "ad_reached_countries": json.dumps(countries),
                "ad_active_status": "ALL",
                "search_type": _SEARCH_TYPES[match_mode],
                "ad_type": "ALL",
                "fields": AD_FIELDS,
                "limit": str(min(100, max_results - len(ads))),
            }
            if cursor:
                params["after"] = cursor

            body = self._page(params)
            data = body.get("data") or []
            if not data:
                break
            for raw in data:
                try:
                    ads.append(AdRecord.model_validate(raw))
                except ValidationError as e:
                    logger.debug("skipping malformed ad record: %s", e)

            cursor = ((body.get("paging") or {}).get("cursors") or {}).get("after")
            if not cursor:
                break
            self._sleep(self.page_delay_s)

        logger.info("ad search %r (%s): %d ads", terms, match_mode, len(ads[:max_results]))
        return ads[:max_results]

"""
HTTP client for the WooCommerce REST API (wc/v3).
Query-string auth, browser UA, X-WP-TotalPages pagination.
"""

import time
import requests
from typing import Any, Dict, List, Optional, Tuple
from config.settings import (
    WOO_BASE_URL, WOO_CONSUMER_KEY, WOO_CONSUMER_SECRET,
    REQUEST_TIMEOUT, WOO_MAX_PER_PAGE, BROWSER_HEADERS,
)
from models import UNBOUNDED_LIMIT
from errors import DataAccessError, ConfigurationError
from chat_logger import get_logger, sanitize_url

logger = get_logger("dataviz_chat")


class WooClient:
    def __init__(
        self,
        base_url: str = WOO_BASE_URL,
        consumer_key: str = WOO_CONSUMER_KEY,
        consumer_secret: str = WOO_CONSUMER_SECRET,
        timeout: int = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update(BROWSER_HEADERS)

    def get(self, endpoint: str, params: Optional[Dict] = None) -> Tuple[Any, Dict[str, str]]:
        """GET one resource page. Returns (json, headers)."""
        if not self.base_url or not self.consumer_key:
            raise ConfigurationError(
                "WooCommerce is not configured. Set WOO_BASE_URL, WOO_CONSUMER_KEY "
                "and WOO_CONSUMER_SECRET."
            )

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        query = dict(params or {})
        query["consumer_key"] = self.consumer_key
        query["consumer_secret"] = self.consumer_secret

        start = time.time()
        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"WooCommerce request failed | url={url} | error={str(e)}")
            raise DataAccessError(f"WooCommerce API unreachable: {e}") from e

        elapsed_ms = int((time.time() - start) * 1000)
        logger.debug(
            f"WooCommerce GET | url={sanitize_url(response.url or url)} | "
            f"status={response.status_code} | time={elapsed_ms}ms"
        )

        if response.status_code >= 400:
            raise DataAccessError(
                f"WooCommerce API error {response.status_code}",
                status_code=response.status_code,
                body=response.text[:1000],
            )
        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                f"WooCommerce returned non-JSON body | url={sanitize_url(response.url or url)} | "
                f"status={response.status_code}"
            )
            raise DataAccessError(
                "WooCommerce API returned an invalid JSON response",
                status_code=response.status_code,
                body=response.text[:1000],
            ) from e
        return data, response.headers

    def get_collection(
        self,
        endpoint: str,
        params: Optional[Dict] = None,
        limit: int = WOO_MAX_PER_PAGE,
    ) -> List[Dict]:
        """
        Fetch up to `limit` records, following pagination.

        limit = -1 fetches every page.
        """
        params = dict(params or {})
        unbounded = limit == UNBOUNDED_LIMIT
        per_page = WOO_MAX_PER_PAGE if unbounded else max(1, min(limit, WOO_MAX_PER_PAGE))

        records: List[Dict] = []
        page = 1
        while True:
            params.update({"per_page": per_page, "page": page})
            data, headers = self.get(endpoint, params)
            if not isinstance(data, list):
                break
            records.extend(data)

            total_pages = int(headers.get("X-WP-TotalPages") or 1)
            if not data or page >= total_pages:
                break
            if not unbounded and len(records) >= limit:
                break
            page += 1

        return records if unbounded else records[:limit]

    def count(self, endpoint: str, params: Optional[Dict] = None) -> int:
        """Total record count from the X-WP-Total header."""
        query = dict(params or {})
        query["per_page"] = 1
        data, headers = self.get(endpoint, query)
        total = headers.get("X-WP-Total")
        if total is not None:
            return int(total)
        return len(data) if isinstance(data, list) else 0

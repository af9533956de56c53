"""HTTP client for the BMKG open data feeds."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from felt_quakes.errors import FetchError
from felt_quakes.sources import SourceConfig

logger = logging.getLogger(__name__)


class BMKGClient:
    """Synchronous client fetching one BMKG JSON feed with retry.

    Usable as a context manager; pass ``client`` to share (or mock) the
    underlying ``httpx.Client``.
    """

    def __init__(self, config: SourceConfig, client: httpx.Client | None = None):
        self.config = config
        self._client = client or httpx.Client(timeout=config.timeout_seconds)

    def __enter__(self) -> BMKGClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if not self._client.is_closed:
            self._client.close()

    def fetch_feed(self) -> dict[str, Any]:
        """Fetch and decode the feed document.

        Raises:
            FetchError: All attempts failed, or the body is not JSON.
        """
        resp = self._request_with_retry()
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(f"{self.config.name}: response is not JSON") from exc

    def _request_with_retry(self) -> httpx.Response:
        """GET with exponential backoff retry."""
        last_exc: Exception | None = None

        for attempt in range(self.config.max_retries + 1):
            try:
                resp = self._client.get(self.config.url)
                resp.raise_for_status()
                return resp
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                last_exc = exc
                if attempt < self.config.max_retries:
                    backoff = self.config.retry_backoff_base ** attempt
                    logger.warning(
                        "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                        self.config.name, attempt + 1, self.config.max_retries + 1,
                        exc, backoff,
                    )
                    time.sleep(backoff)

        raise FetchError(
            f"{self.config.name}: all {self.config.max_retries + 1} attempts failed"
        ) from last_exc

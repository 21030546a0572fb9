"""Hiring Notifier — Async Jobs API Client.

Rate-limited, retrying async client for the hiring GraphQL endpoint.
Built on httpx.AsyncClient with:
  - User-agent rotation per request
  - Bearer-token auth and a Country header
  - Exponential backoff retry on network, status, and parse errors
  - Shutdown-aware early exit between attempts
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from hiring_notifier.config import JobsApiConfig, RateLimitingConfig
from hiring_notifier.models import JobRecord
from hiring_notifier.utils.logger import get_logger
from hiring_notifier.utils.rate_limiter import AsyncRateLimiter
from hiring_notifier.utils.resilience import (
    JobsApiError,
    RetriesExhaustedError,
    compute_backoff,
)
from hiring_notifier.utils.shutdown import ShutdownToken

logger = get_logger(__name__)

_SEARCH_QUERY = (
    "query searchJobCardsByLocation($searchJobRequest: SearchJobRequest!) {\n"
    "  searchJobCardsByLocation(searchJobRequest: $searchJobRequest) {\n"
    "    nextToken\n"
    "    jobCards {\n"
    "      jobId\n"
    "      jobTitle\n"
    "      jobType\n"
    "      locationName\n"
    "      scheduleCount\n"
    "      totalPayRateMin\n"
    "      totalPayRateMax\n"
    "    }\n"
    "  }\n"
    "}"
)


class JobsApiClient:
    """Async HTTP client for the Jobs API with retry and rate limiting.

    Attributes:
        config: Jobs API configuration.
        rate_config: Retry and rate-limit tuning.
        total_requests: Running count of successful requests this session.
    """

    def __init__(
        self,
        config: JobsApiConfig,
        rate_config: RateLimitingConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: JobsApiConfig loaded from settings.yaml.
            rate_config: RateLimitingConfig loaded from settings.yaml.
            transport: Optional httpx transport, e.g. MockTransport in tests.
        """
        self.config = config
        self.rate_config = rate_config
        self.total_requests: int = 0
        self._rate_limiter = AsyncRateLimiter(
            max_calls=max(1, rate_config.requests_per_second),
            period_seconds=1.0,
        )
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )

    def build_payload(self, today: Optional[str] = None) -> dict[str, Any]:
        """Build the GraphQL search request body.

        Args:
            today: First-day-on-site lower bound (YYYY-MM-DD). Defaults to today (UTC).

        Returns:
            JSON-serializable request payload.
        """
        today = today or datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return {
            "operationName": "searchJobCardsByLocation",
            "variables": {
                "searchJobRequest": {
                    "locale": self.config.locale,
                    "country": self.config.country,
                    "keyWords": "",
                    "equalFilters": [],
                    "dateFilters": [
                        {"key": "firstDayOnSite", "range": {"startDate": today}},
                    ],
                    "sorters": [
                        {"fieldName": "totalPayRateMax", "ascending": "false"},
                    ],
                    "pageSize": self.config.page_size,
                },
            },
            "query": _SEARCH_QUERY,
        }

    def _build_headers(self) -> dict[str, str]:
        return {
            "User-Agent": random.choice(self.config.user_agents),
            "Authorization": f"Bearer {self.config.api_token}",
            "Country": self.config.country,
        }

    @staticmethod
    def parse_jobs(data: Any) -> list[JobRecord]:
        """Map a response body to JobRecords.

        Args:
            data: Decoded JSON body.

        Returns:
            Jobs in response order.

        Raises:
            JobsApiError: If the body does not have the expected shape.
        """
        try:
            cards = data["data"]["searchJobCardsByLocation"]["jobCards"]
            return [JobRecord.from_api_card(card) for card in cards]
        except (KeyError, TypeError, ValueError) as e:
            raise JobsApiError(f"Unexpected response shape: {e!r}") from e

    async def fetch_once(self) -> list[JobRecord]:
        """Perform a single API call.

        Returns:
            Parsed jobs.

        Raises:
            httpx.HTTPError: On network errors and timeouts.
            JobsApiError: On non-2xx status or an unparseable body.
        """
        response = await self._client.post(
            self.config.api_url,
            json=self.build_payload(),
            headers=self._build_headers(),
        )

        if not response.is_success:
            raise JobsApiError(
                f"HTTP error {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise JobsApiError(f"Invalid JSON body: {e}") from e

        jobs = self.parse_jobs(data)
        self.total_requests += 1
        logger.debug("Fetched %d job cards", len(jobs))
        return jobs

    async def fetch_jobs(self, shutdown: ShutdownToken) -> list[JobRecord]:
        """Fetch jobs, retrying with exponential backoff.

        The shutdown token is checked before every attempt, again once
        a rate-limit slot is granted, and during every backoff sleep;
        once it is set the call returns an empty list instead of failing.

        Args:
            shutdown: Shared shutdown token.

        Returns:
            Parsed jobs, or [] if shutdown was requested.

        Raises:
            RetriesExhaustedError: If all `max_retries` attempts failed.
        """
        max_retries = self.rate_config.max_retries

        for attempt in range(max_retries):
            if shutdown.is_set:
                return []

            await self._rate_limiter.acquire()
            # acquire() may have waited out a full window
            if shutdown.is_set:
                return []

            try:
                return await self.fetch_once()
            except (httpx.HTTPError, JobsApiError) as e:
                if attempt + 1 >= max_retries:
                    logger.warning(
                        "Attempt %d/%d failed: %s. Giving up",
                        attempt + 1, max_retries, e,
                    )
                    break

                delay = compute_backoff(
                    attempt,
                    self.rate_config.retry_base_ms,
                    self.rate_config.retry_max_delay_ms,
                )
                logger.warning(
                    "Attempt %d/%d failed: %s. Retrying in %.2fs",
                    attempt + 1, max_retries, e, delay,
                )
                if await shutdown.wait(timeout=delay):
                    return []

        raise RetriesExhaustedError(max_retries)

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()
        logger.debug("HTTP client closed (total requests: %d)", self.total_requests)

    async def __aenter__(self) -> "JobsApiClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

"""Hiring Notifier — Fetcher Package.

Polls the Jobs API and turns responses into notification batches.
Components:
  - JobsApiClient: Async HTTP client with retry, backoff and rate limiting
  - FetchPipeline: Per-tick fan-out, dedup and grouping by location
"""

from hiring_notifier.fetcher.client import JobsApiClient
from hiring_notifier.fetcher.pipeline import FetchPipeline

__all__ = [
    "JobsApiClient",
    "FetchPipeline",
]

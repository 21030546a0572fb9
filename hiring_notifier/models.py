"""Hiring Notifier — Data Models.

Dataclasses for the entities flowing through the pipeline: job postings
parsed from the Jobs API and the per-location batches handed to the
notifier. Only a posting's id is ever persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class JobRecord:
    """One job posting from a Jobs API response.

    Attributes:
        id: Unique external job key.
        title: Job title.
        location: Location name, used to group notifications.
        job_type: Raw type codes, e.g. "FULL_TIME;PART_TIME".
        pay_min: Minimum hourly pay.
        pay_max: Maximum hourly pay.
        shift_count: Number of schedules offered.
    """

    id: str
    title: str
    location: str
    job_type: str
    pay_min: float
    pay_max: float
    shift_count: int

    @classmethod
    def from_api_card(cls, card: dict[str, Any]) -> "JobRecord":
        """Build a JobRecord from a `jobCards` entry.

        Args:
            card: One element of `data.searchJobCardsByLocation.jobCards`.

        Returns:
            A JobRecord instance.

        Raises:
            KeyError: If a required field is missing.
            TypeError: If a numeric field is null.
            ValueError: If a numeric field cannot be converted.
        """
        return cls(
            id=str(card["jobId"]),
            title=card["jobTitle"],
            location=card["locationName"],
            job_type=card["jobType"],
            pay_min=float(card["totalPayRateMin"]),
            pay_max=float(card["totalPayRateMax"]),
            shift_count=int(card["scheduleCount"]),
        )


@dataclass
class NotificationBatch:
    """New jobs from one fetch that share a location.

    Attributes:
        location: The shared location name.
        jobs: Jobs in API response order.
    """

    location: str
    jobs: list[JobRecord] = field(default_factory=list)

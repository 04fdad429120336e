"""
API usage monitor.
Counts calls per external service and keeps the most recent failures.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)

SERVICES = ("groq", "eden", "semantic_scholar", "crossref", "zotero", "google", "telegram")


@dataclass
class ApiError:
    api: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class UsageStats:
    uptime_seconds: int
    calls: dict[str, int]
    failures: dict[str, int]
    recent_errors: list[ApiError]

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    @property
    def success_rate(self) -> float:
        """Percentage of successful calls (100 when nothing was called yet)."""
        if not self.total_calls:
            return 100.0
        return 100.0 * (self.total_calls - sum(self.failures.values())) / self.total_calls


class ApiMonitor:
    """Process-wide counter of external API usage."""

    MAX_ERRORS = 10

    def __init__(self):
        self.calls: dict[str, int] = {name: 0 for name in SERVICES}
        self.failures: dict[str, int] = {name: 0 for name in SERVICES}
        self.errors: deque[ApiError] = deque(maxlen=self.MAX_ERRORS)
        self.started_at = time.monotonic()

    def log_call(self, api: str, success: bool = True, error: str | None = None) -> None:
        self.calls[api] = self.calls.get(api, 0) + 1
        if not success:
            self.failures[api] = self.failures.get(api, 0) + 1
            self.errors.append(ApiError(api=api, message=error or "API call failed"))
            logger.warning(f"{api} call failed: {error}")

    def get_stats(self) -> UsageStats:
        return UsageStats(
            uptime_seconds=int(time.monotonic() - self.started_at),
            calls=dict(self.calls),
            failures=dict(self.failures),
            recent_errors=list(self.errors),
        )


# Global monitor instance
monitor = ApiMonitor()

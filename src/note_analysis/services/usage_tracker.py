"""Usage analytics: a bounded in-memory log of analysis requests."""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from note_analysis.config import settings
from note_analysis.entities import EndpointUsage, UsageRecord, UsageStats
from note_analysis.exceptions import ValidationError
from note_analysis.services.response_cache import estimate_cache_cost_savings
from note_analysis.services.token_budget import format_cost

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60

# Look-back window per reporting period; None means everything recorded
PERIODS: dict[str, int | None] = {
    "today": DAY_SECONDS,
    "week": 7 * DAY_SECONDS,
    "month": 30 * DAY_SECONDS,
    "all": None,
}


class UsageTracker:
    """Records per-request token usage and cost.

    Only the most recent ``max_records`` requests are kept; older records
    fall off the front of the buffer.
    """

    def __init__(
        self,
        max_records: int | None = None,
        enabled: bool = True,
        log_records: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the tracker.

        Args:
            max_records: Buffer capacity. Defaults to settings.
            enabled: When False record() is a no-op.
            log_records: Log every record at INFO level.
            clock: Returns the current Unix time in seconds.
        """
        self._records: deque[UsageRecord] = deque(maxlen=max_records or settings.usage_max_records)
        self._enabled = enabled
        self._log_records = log_records
        self._clock = clock
        self._lock = threading.Lock()

    @classmethod
    def create(cls, log_records: bool = False, clock: Callable[[], float] = time.time) -> "UsageTracker":
        return cls(enabled=settings.enable_usage_analytics, log_records=log_records, clock=clock)

    def now(self) -> float:
        return self._clock()

    def record(self, record: UsageRecord) -> None:
        if not self._enabled:
            return
        with self._lock:
            self._records.append(record)
        if self._log_records:
            logger.info(
                "Usage %s tokens=%d cost=%s success=%s cache_hit=%s",
                record.endpoint,
                record.total_tokens,
                format_cost(record.cost),
                record.success,
                record.cache_hit,
            )

    def recent(self, limit: int = 100) -> list[UsageRecord]:
        with self._lock:
            records = list(self._records)
        return records[-limit:]

    def get_stats(self, start: float, end: float | None = None) -> UsageStats:
        """Aggregate records with ``start <= timestamp <= end``."""
        end = self._clock() if end is None else end
        with self._lock:
            records = [r for r in self._records if start <= r.timestamp <= end]

        stats = UsageStats(period_start=start, period_end=end)
        for record in records:
            stats.total_requests += 1
            if record.success:
                stats.successful_requests += 1
            else:
                stats.failed_requests += 1
            if record.cache_hit:
                stats.cache_hits += 1
            if record.deduplicated:
                stats.deduplicated_requests += 1
            stats.total_input_tokens += record.input_tokens
            stats.total_output_tokens += record.output_tokens
            stats.total_cost += record.cost
            stats.total_response_time_ms += record.response_time_ms

            endpoint = stats.by_endpoint.setdefault(record.endpoint, EndpointUsage())
            endpoint.requests += 1
            endpoint.tokens += record.total_tokens
            endpoint.cost += record.cost
            if record.cache_hit:
                endpoint.cache_hits += 1
        return stats

    def get_period_stats(self, period: str) -> UsageStats:
        """Aggregate over one of ``today``, ``week``, ``month`` or ``all``.

        Raises:
            ValidationError: If ``period`` is not one of those names
        """
        if period not in PERIODS:
            raise ValidationError("Invalid period. Use: today, week, month, or all")

        now = self._clock()
        window = PERIODS[period]
        return self.get_stats(0.0 if window is None else now - window, now)

    def summary(self) -> dict[str, UsageStats]:
        return {
            "today": self.get_period_stats("today"),
            "thisWeek": self.get_period_stats("week"),
            "thisMonth": self.get_period_stats("month"),
            "allTime": self.get_period_stats("all"),
        }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __len__(self) -> int:
        return len(self._records)


def _percent(part: int, whole: int) -> str:
    return f"{part / whole * 100:.1f}%" if whole else "0.0%"


def _timestamp(value: float) -> str:
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def generate_usage_report(stats: UsageStats, cache: dict[str, Any] | None = None) -> str:
    """Render aggregated usage as a markdown report."""
    lines = [
        "# API Usage Report",
        "",
        f"**Period:** {_timestamp(stats.period_start)} - {_timestamp(stats.period_end)}",
        "",
        "## Summary",
        "",
        f"- Total Requests: {stats.total_requests}",
        f"- Successful: {stats.successful_requests} ({_percent(stats.successful_requests, stats.total_requests)})",
        f"- Failed: {stats.failed_requests} ({_percent(stats.failed_requests, stats.total_requests)})",
        f"- Served from cache: {stats.cache_hits} ({_percent(stats.cache_hits, stats.total_requests)})",
        f"- Deduplicated: {stats.deduplicated_requests}",
        f"- Total Tokens: {stats.total_tokens:,}",
        f"  - Input: {stats.total_input_tokens:,}",
        f"  - Output: {stats.total_output_tokens:,}",
        f"- Total Cost: ${stats.total_cost:.4f}",
        f"- Average Cost/Request: ${stats.average_cost_per_request:.4f}",
        f"- Average Tokens/Request: {round(stats.average_tokens_per_request)}",
        f"- Estimated cache savings: ${estimate_cache_cost_savings(stats.cache_hits):.2f}",
        "",
        "## By Endpoint",
        "",
        "| Endpoint | Requests | Tokens | Cost | Cache Hits |",
        "|----------|----------|--------|------|------------|",
    ]
    for endpoint, usage in stats.by_endpoint.items():
        lines.append(
            f"| {endpoint} | {usage.requests} | {usage.tokens:,} | ${usage.cost:.4f} | {usage.cache_hits} |"
        )

    if cache is not None:
        lines += [
            "",
            "## Response Cache",
            "",
            f"- Hits: {cache.get('hits', 0)}",
            f"- Misses: {cache.get('misses', 0)}",
            f"- Hit Rate: {cache.get('hitRate', 0)}",
            f"- Size: {cache.get('size', 0)}",
        ]
    return "\n".join(lines) + "\n"

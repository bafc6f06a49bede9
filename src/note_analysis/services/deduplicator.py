"""Short-window de-duplication of repeated requests from the same client."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from note_analysis.config import settings
from note_analysis.utils import dedup_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DedupResult:
    """Outcome of a duplicate check."""

    is_duplicate: bool
    cached_result: Any | None = None


@dataclass(frozen=True)
class _DedupEntry:
    result: Any
    expires_at: float


class RequestDeduplicator:
    """Remembers each client's recent successful results.

    Unlike ResponseCache this store is per client and short-lived: it
    absorbs accidental double submits and retries within a window of a
    few seconds.
    """

    def __init__(
        self,
        window_ms: int | None = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the deduplicator.

        Args:
            window_ms: How long a result is replayed, in milliseconds. Defaults to settings.
            enabled: When False no request is ever treated as a duplicate.
            clock: Returns the current time in seconds.
        """
        self._window_ms = window_ms or settings.deduplication_window_ms
        self._enabled = enabled
        self._clock = clock
        self._entries: dict[str, _DedupEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def create(
        cls,
        window_ms: int | None = None,
        enabled: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "RequestDeduplicator":
        return cls(
            window_ms=window_ms,
            enabled=settings.enable_request_deduplication if enabled is None else enabled,
            clock=clock,
        )

    def check_duplicate(self, client_id: str, payload: Any) -> DedupResult:
        """Return the previous result if this client sent the same payload recently."""
        if not self._enabled:
            return DedupResult(is_duplicate=False)

        key = dedup_key(client_id, payload)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return DedupResult(is_duplicate=False)
            if now >= entry.expires_at:
                del self._entries[key]
                return DedupResult(is_duplicate=False)

        logger.info("Duplicate request from %s served from dedup store", client_id)
        return DedupResult(is_duplicate=True, cached_result=entry.result)

    def record_result(self, client_id: str, payload: Any, result: Any) -> None:
        """Remember a successful result for the dedup window."""
        if not self._enabled:
            return

        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            self._entries[dedup_key(client_id, payload)] = _DedupEntry(
                result=result,
                expires_at=now + self._window_ms / 1000,
            )

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "enabled": self._enabled,
                "entries": len(self._entries),
                "window_ms": self._window_ms,
            }

    @property
    def enabled(self) -> bool:
        return self._enabled

"""Cache entry domain entity."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a cached analysis response.

    This is an internal representation used by services and repositories.
    For API contracts, use the DTO classes from the dto package.

    Attributes:
        key: Storage key (prefix, endpoint and request fingerprint)
        value: The cached response payload
        stored_at: Unix timestamp when the entry was written
        ttl_seconds: Lifetime of the entry in seconds
        metadata: Optional additional data (endpoint, request hash, etc.)
    """

    key: str
    value: Any
    stored_at: float
    ttl_seconds: int
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: float) -> bool:
        """Return True once the entry has outlived its TTL."""
        return now - self.stored_at > self.ttl_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "stored_at": self.stored_at,
            "ttl_seconds": self.ttl_seconds,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntryEntity":
        return cls(
            key=data["key"],
            value=data["value"],
            stored_at=float(data["stored_at"]),
            ttl_seconds=int(data["ttl_seconds"]),
            metadata=data.get("metadata") or {},
        )

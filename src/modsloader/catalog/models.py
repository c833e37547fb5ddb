"""Catalog record types and their public projection."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with second precision."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class CanaryState:
    """An active canary rollout: when it started and how much of the audience it covers."""

    published_at: str
    percent: float


@dataclass(frozen=True)
class ModVariantRecord:
    """One accepted artifact variant, keyed by (tag, logical_id, variant_kind)."""

    tag: str
    logical_id: str
    variant_kind: str
    version: Optional[str]
    content_hash: str
    filename: str
    storage_url: str
    inserted_at: str
    canary_published_at: Optional[str] = None
    canary_percent: Optional[float] = None
    row_id: Optional[int] = None

    @property
    def canary(self) -> Optional[CanaryState]:
        if self.canary_published_at is None or not self.canary_percent:
            return None
        return CanaryState(self.canary_published_at, self.canary_percent)

    def to_public_dict(self, base_url: str = "") -> Dict[str, Any]:
        """
        Project the record into the shape served to clients.

        `downloadUrl` is the storage URL prefixed with `base_url`.
        """
        public: Dict[str, Any] = {
            "id": self.logical_id,
            "filename": self.filename,
            "version": self.version,
            "contentHash": self.content_hash,
            "downloadUrl": f"{base_url.rstrip('/')}/{self.storage_url}",
            "date": self.inserted_at,
        }
        canary = self.canary
        if canary is not None:
            public["canary"] = {
                "publishedAt": canary.published_at,
                "percent": canary.percent,
            }
        return public

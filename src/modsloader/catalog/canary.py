"""
Canary rollout state machine.

Each stored variant is either not in canary, or in an active canary rollout
that remembers when it started. The publish timestamp measures rollout age:
changing only the percentage keeps it, leaving canary and coming back
restarts it, and a new artifact (different content hash) always starts over.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import CanaryState, ModVariantRecord


class WriteAction(str, Enum):
    """What the catalog must do with an observed artifact."""

    INSERT = "insert"
    REPLACE = "replace"
    UPDATE_CANARY = "update_canary"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class WritePlan:
    action: WriteAction
    canary: Optional[CanaryState]

    @property
    def mutates(self) -> bool:
        return self.action is not WriteAction.UNCHANGED


def normalize_requested_percent(percent: Optional[float]) -> Optional[float]:
    """Map "no canary requested" (None or 0) to None; pass any other percent through."""
    if percent is None or percent == 0:
        return None
    return float(percent)


def next_canary_state(
    current: Optional[CanaryState], requested_percent: Optional[float], now: str
) -> Optional[CanaryState]:
    """
    Compute the canary state after observing `requested_percent` this cycle.

    | current            | requested      | next                |
    |--------------------|----------------|---------------------|
    | none               | none           | none                |
    | none               | p              | CanaryState(now, p) |
    | CanaryState(t, p0) | p0             | CanaryState(t, p0)  |
    | CanaryState(t, p0) | p1 != p0       | CanaryState(t, p1)  |
    | CanaryState(t, p0) | none           | none                |
    """
    requested = normalize_requested_percent(requested_percent)
    if requested is None:
        return None
    if current is None:
        return CanaryState(published_at=now, percent=requested)
    if current.percent == requested:
        return current
    return CanaryState(published_at=current.published_at, percent=requested)


def plan_variant_write(
    existing: Optional[ModVariantRecord],
    content_hash: str,
    requested_percent: Optional[float],
    now: str,
) -> WritePlan:
    """
    Decide how an observed artifact changes the stored record for its key.

    Parameters:
        existing (Optional[ModVariantRecord]): The stored record for (tag, logical_id, variant_kind), if any.
        content_hash (str): Content hash of the artifact observed this cycle.
        requested_percent (Optional[float]): Canary percent declared this cycle.
        now (str): Timestamp to use when a rollout starts.

    Returns:
        WritePlan: The action to take and the canary state the record should carry.
    """
    if existing is None:
        return WritePlan(WriteAction.INSERT, next_canary_state(None, requested_percent, now))

    if existing.content_hash != content_hash:
        return WritePlan(WriteAction.REPLACE, next_canary_state(None, requested_percent, now))

    current = existing.canary
    target = next_canary_state(current, requested_percent, now)
    if target == current:
        return WritePlan(WriteAction.UNCHANGED, current)
    return WritePlan(WriteAction.UPDATE_CANARY, target)

"""
Read-through cache for the public catalog views.

Both views are built lazily from the store on the first read after an
invalidation and then served as the same objects until the next committed
write. Readers must treat the returned mappings as read-only.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

from modsloader.constants import VARIANT_KINDS
from modsloader.log_utils import logger

from .models import ModVariantRecord

AllVersionsView = Dict[str, Dict[str, List[Dict[str, Any]]]]
LatestVersionsView = Dict[str, Dict[str, Optional[Dict[str, Any]]]]


def build_all_versions_view(
    records: List[ModVariantRecord], base_url: str = ""
) -> AllVersionsView:
    """Group records by tag and variant kind, newest first."""
    view: AllVersionsView = {}
    for record in sorted(records, key=lambda r: r.row_id or 0, reverse=True):
        variants = view.setdefault(record.tag, {kind: [] for kind in VARIANT_KINDS})
        variants.setdefault(record.variant_kind, []).append(
            record.to_public_dict(base_url)
        )
    return view


def build_latest_versions_view(
    records: List[ModVariantRecord], base_url: str = ""
) -> LatestVersionsView:
    """Pick the most recently inserted record per tag and variant kind."""
    latest: Dict[str, Dict[str, ModVariantRecord]] = {}
    for record in records:
        current = latest.setdefault(record.tag, {}).get(record.variant_kind)
        if current is None or (record.row_id or 0) > (current.row_id or 0):
            latest[record.tag][record.variant_kind] = record

    view: LatestVersionsView = {}
    for tag, variants in latest.items():
        view[tag] = {
            kind: (variants[kind].to_public_dict(base_url) if kind in variants else None)
            for kind in VARIANT_KINDS
        }
    return view


class CatalogViewCache:
    """
    Memoized "all versions" and "latest version" views.

    Constructed once by the catalog store; empty until the first read. A
    generation counter keeps a build that raced with an invalidation from
    being cached.
    """

    def __init__(
        self,
        loader: Callable[[], List[ModVariantRecord]],
        base_url: str = "",
    ):
        self._loader = loader
        self._base_url = base_url
        self._lock = threading.Lock()
        self._generation = 0
        self._all_versions: Optional[AllVersionsView] = None
        self._latest_versions: Optional[LatestVersionsView] = None
        self.build_count = 0

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
            self._all_versions = None
            self._latest_versions = None
        logger.debug("Catalog view cache invalidated")

    def get_all_versions(self) -> AllVersionsView:
        with self._lock:
            if self._all_versions is not None:
                return self._all_versions
            generation = self._generation

        view = build_all_versions_view(self._loader(), self._base_url)

        with self._lock:
            self.build_count += 1
            if self._generation != generation:
                return view
            if self._all_versions is None:
                self._all_versions = view
            return self._all_versions

    def get_latest_versions(self) -> LatestVersionsView:
        with self._lock:
            if self._latest_versions is not None:
                return self._latest_versions
            generation = self._generation

        view = build_latest_versions_view(self._loader(), self._base_url)

        with self._lock:
            self.build_count += 1
            if self._generation != generation:
                return view
            if self._latest_versions is None:
                self._latest_versions = view
            return self._latest_versions

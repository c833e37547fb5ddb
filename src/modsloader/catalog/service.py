"""
Read side of the catalog, as consumed by the HTTP façade and the CLI.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from modsloader.download.files import ContentStore
from modsloader.log_utils import logger

from .store import CatalogStore


@dataclass
class IntegrityIssue:
    """A record whose blob is missing or does not hash to the stored content hash."""

    tag: str
    variant_kind: str
    storage_url: str
    content_hash: str
    reason: str


class ModCatalog:
    """Serves the public views from the store's read-through cache."""

    def __init__(self, store: CatalogStore, content_store: ContentStore):
        self.store = store
        self.content_store = content_store

    def get_all_versions(self, tag: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        All stored versions grouped by tag and variant kind, newest first.

        With `tag`, return only that tag's projection, or None if the tag is unknown.
        """
        view = self.store.cache.get_all_versions()
        if tag is None:
            return view
        return view.get(tag)

    def get_latest_versions(self, tag: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        The most recently inserted record per tag and variant kind.

        With `tag`, return only that tag's projection, or None if the tag is unknown.
        """
        view = self.store.cache.get_latest_versions()
        if tag is None:
            return view
        return view.get(tag)

    def verify(self) -> List[IntegrityIssue]:
        """Check every record's blob against its content hash. Nothing is modified."""
        issues: List[IntegrityIssue] = []
        records = self.store.list_records()
        for record in records:
            if not self.content_store.exists(record.storage_url):
                reason = "missing"
            elif not self.content_store.verify(record.storage_url, record.content_hash):
                reason = "hash mismatch"
            else:
                continue
            logger.warning(f"{record.tag} {record.variant_kind}: {reason} ({record.storage_url})")
            issues.append(
                IntegrityIssue(
                    tag=record.tag,
                    variant_kind=record.variant_kind,
                    storage_url=record.storage_url,
                    content_hash=record.content_hash,
                    reason=reason,
                )
            )
        logger.info(f"Verified {len(records)} records, {len(issues)} problem(s) found")
        return issues

    def stats(self) -> Dict[str, int]:
        return self.store.stats()

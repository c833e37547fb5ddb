"""
Reconciliation Pass

Brings the catalog in line with the configured mods: every mod with a source
is fetched, resolved, downloaded and committed, then tags that are no longer
configured are pruned. Failures are isolated per mod and reported in the
pass result; nothing raised by a single mod aborts the pass.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from modsloader.download.downloader import ArtifactDownloader
from modsloader.download.files import ContentStore
from modsloader.download.interfaces import ModEntry, ResolvedArtifact
from modsloader.download.registry import SourceRegistry
from modsloader.exceptions import ModsLoaderError, StorageError
from modsloader.log_utils import logger

from .store import CatalogStore
from .writer import CatalogWriter, plan_variant_targets


@dataclass
class ModSyncResult:
    """Outcome of reconciling one mod."""

    tag: str
    """Catalog key of the mod"""

    success: bool
    """Whether the mod was processed without error"""

    actions: Dict[str, str] = field(default_factory=dict)
    """Variant kind -> write action taken ('insert', 'replace', 'update_canary', 'unchanged')"""

    skipped: bool = False
    """True for placeholder mods that have no upstream source"""

    error_type: Optional[str] = None
    """Exception class name (if failed)"""

    error_message: Optional[str] = None
    """Error message (if failed)"""


@dataclass
class PassReport:
    """Outcome of one reconciliation pass."""

    results: List[ModSyncResult] = field(default_factory=list)
    pruned_tags: List[str] = field(default_factory=list)
    prune_failures: List[str] = field(default_factory=list)
    skipped: bool = False
    """True when the pass did not run because another one was in flight"""

    duration: float = 0.0

    @property
    def failed(self) -> List[ModSyncResult]:
        return [result for result in self.results if not result.success]

    @property
    def ok(self) -> bool:
        return not self.skipped and not self.failed and not self.prune_failures


class Reconciler:
    """
    Runs reconciliation passes over the configured mods.

    Only one pass (or manual upload) may write at a time: a pass that finds the
    store's writer lock held is skipped, not queued.
    """

    def __init__(
        self,
        entries: Sequence[ModEntry],
        registry: SourceRegistry,
        downloader: ArtifactDownloader,
        store: CatalogStore,
        content_store: ContentStore,
    ):
        self.entries = list(entries)
        self.registry = registry
        self.downloader = downloader
        self.store = store
        self.content_store = content_store
        self.writer = CatalogWriter(store, content_store)

    def run_pass(self) -> PassReport:
        """
        Run one full pass unless another pass or an upload holds the writer lock.

        Returns:
            PassReport: Per-mod outcomes and pruning results; `skipped` is set when nothing ran.
        """
        if not self.store.writer_lock.acquire(blocking=False):
            logger.warning("A reconciliation pass is already in progress; skipping this one")
            return PassReport(skipped=True)
        try:
            return self._run_pass()
        finally:
            self.store.writer_lock.release()

    def _run_pass(self) -> PassReport:
        start_time = time.time()
        logger.info(f"Starting reconciliation pass over {len(self.entries)} mod(s)")
        report = PassReport()

        for entry in self.entries:
            report.results.append(self.sync_mod(entry))

        self._prune_stale_tags(report)

        report.duration = time.time() - start_time
        self._log_summary(report)
        return report

    def sync_mod(self, entry: ModEntry) -> ModSyncResult:
        """Reconcile a single mod, converting any failure into a failed result."""
        if entry.source is None:
            logger.debug(f"{entry.tag}: no upstream source, skipping")
            return ModSyncResult(tag=entry.tag, success=True, skipped=True)

        try:
            actions = self._sync_mod(entry)
        except ModsLoaderError as e:
            logger.error(f"{entry.tag}: {type(e).__name__}: {e}")
            return ModSyncResult(
                tag=entry.tag,
                success=False,
                error_type=type(e).__name__,
                error_message=str(e),
            )
        except Exception as e:
            logger.error(f"{entry.tag}: unexpected error: {e}", exc_info=True)
            return ModSyncResult(
                tag=entry.tag,
                success=False,
                error_type=type(e).__name__,
                error_message=str(e),
            )
        return ModSyncResult(tag=entry.tag, success=True, actions=actions)

    def _sync_mod(self, entry: ModEntry) -> Dict[str, str]:
        strategy = self.registry.get(entry.source)
        logger.info(f"Checking {entry.tag} ({strategy.source_type})")
        result = strategy.fetch_latest(entry.source)

        if result.assets.is_empty():
            logger.info(f"{entry.tag}: no matching assets in the latest release")
            return {}

        targets = plan_variant_targets(
            result.assets.present_kinds(), entry.variant_restriction
        )

        artifacts: Dict[str, ResolvedArtifact] = {}
        for source_kind in sorted(set(targets.values())):
            candidate = result.assets.get(source_kind)
            artifacts[source_kind] = self.downloader.download(candidate)

        written = self.writer.save_variants(
            entry.tag,
            {target: artifacts[source_kind] for target, source_kind in targets.items()},
            result.canary_percent,
        )
        return {kind: action.value for kind, action in written.items()}

    def _prune_stale_tags(self, report: PassReport) -> None:
        """
        Delete records and blobs of tags that are no longer configured.

        Records go first so no stored URL outlives its blob. A blob directory
        that cannot be removed is left behind and retried on the next pass.
        """
        configured = {entry.tag for entry in self.entries}
        stale_records = self.store.list_tags() - configured
        stale_tags = sorted(stale_records | (self.content_store.list_tag_dirs() - configured))
        if not stale_tags:
            return

        logger.info(f"Pruning {len(stale_tags)} tag(s) no longer configured: {', '.join(stale_tags)}")
        for tag in stale_tags:
            if tag in stale_records:
                try:
                    deleted = self.store.delete_tag(tag)
                except StorageError as e:
                    logger.error(f"{tag}: {e}")
                    report.prune_failures.append(tag)
                    continue
                logger.info(f"{tag}: removed {deleted} record(s)")
            if not self.content_store.remove_tag(tag):
                logger.error(f"{tag}: could not remove blob directory; retrying on the next pass")
                report.prune_failures.append(tag)
                continue
            report.pruned_tags.append(tag)

    def _log_summary(self, report: PassReport) -> None:
        processed = [result for result in report.results if not result.skipped]
        logger.info(
            f"Reconciliation pass finished in {report.duration:.1f}s: "
            f"{len(processed) - len(report.failed)} synced, {len(report.failed)} failed, "
            f"{len(report.pruned_tags)} pruned"
        )
        for result in report.failed:
            logger.info(f"  - {result.tag}: {result.error_type}: {result.error_message}")

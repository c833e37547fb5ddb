"""SQLite-backed catalog of accepted mod artifact variants."""

import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional, Set

from modsloader.download.interfaces import ResolvedArtifact
from modsloader.exceptions import StorageError
from modsloader.log_utils import logger

from .cache import CatalogViewCache
from .canary import WriteAction, WritePlan, plan_variant_write
from .models import ModVariantRecord, utc_now_iso

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS mods (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tag TEXT NOT NULL,
    logical_id TEXT NOT NULL,
    variant_kind TEXT NOT NULL,
    version TEXT,
    content_hash TEXT NOT NULL,
    filename TEXT NOT NULL,
    storage_url TEXT NOT NULL,
    inserted_at TEXT NOT NULL,
    canary_published_at TEXT,
    canary_percent REAL,
    UNIQUE (tag, logical_id, variant_kind),
    CHECK ((canary_published_at IS NULL) = (canary_percent IS NULL OR canary_percent = 0))
);
CREATE INDEX IF NOT EXISTS idx_mods_tag ON mods (tag);
CREATE INDEX IF NOT EXISTS idx_mods_hash ON mods (content_hash);
"""

_RECORD_COLUMNS = """
    id, tag, logical_id, variant_kind, version, content_hash, filename,
    storage_url, inserted_at, canary_published_at, canary_percent
"""


class CatalogStore:
    """
    Durable record of every accepted artifact variant.

    Rows are keyed by (tag, logical_id, variant_kind). A newly accepted artifact
    for an existing key replaces the row, so only the current artifact per key
    is retained; the autoincrement id records insertion order.

    The store owns the read-through view cache and invalidates it after every
    committed mutation. `writer_lock` is the single-writer guard shared by
    reconciliation passes and manual uploads.
    """

    def __init__(self, path: str, public_base_url: str = "", wal_mode: bool = True):
        """
        Initialize the SQLite catalog store.

        Args:
            path: Path to the SQLite database file
            public_base_url: Prefix for download URLs in the public views
            wal_mode: If True, enable WAL mode so readers do not block on the writer

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self.writer_lock = threading.Lock()

        try:
            self.conn = sqlite3.connect(str(self.path), check_same_thread=False, timeout=30.0)
            self.conn.row_factory = sqlite3.Row
            if wal_mode:
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.executescript(SCHEMA_SQL)
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError("Failed to open catalog database", path=str(self.path), details=str(e)) from e

        self.cache = CatalogViewCache(self.list_records, public_base_url)
        logger.debug(f"Initialized catalog database at {self.path}")

    def get_record(
        self, tag: str, logical_id: str, variant_kind: str
    ) -> Optional[ModVariantRecord]:
        """Get the current record for a key, or None."""
        with self._lock:
            cursor = self.conn.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM mods
                WHERE tag = ? AND logical_id = ? AND variant_kind = ?
                """,
                (tag, logical_id, variant_kind),
            )
            row = cursor.fetchone()
            return self._row_to_record(row) if row else None

    def list_records(self, tag: Optional[str] = None) -> List[ModVariantRecord]:
        """Get all records (optionally for one tag) in insertion order."""
        with self._lock:
            if tag is None:
                cursor = self.conn.execute(
                    f"SELECT {_RECORD_COLUMNS} FROM mods ORDER BY id ASC"
                )
            else:
                cursor = self.conn.execute(
                    f"SELECT {_RECORD_COLUMNS} FROM mods WHERE tag = ? ORDER BY id ASC",
                    (tag,),
                )
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def list_tags(self) -> Set[str]:
        """Get the set of tags that have at least one record."""
        with self._lock:
            cursor = self.conn.execute("SELECT DISTINCT tag FROM mods")
            return {row[0] for row in cursor.fetchall()}

    def commit_variant(
        self,
        tag: str,
        artifact: ResolvedArtifact,
        variant_kind: str,
        storage_url: str,
        canary_percent: Optional[float],
        now: Optional[str] = None,
    ) -> WriteAction:
        """
        Record an accepted artifact variant, applying the canary transition.

        The blob at `storage_url` must already be written. The view cache is
        invalidated only when a row was actually written.

        Returns:
            WriteAction: What was done to the stored record.

        Raises:
            StorageError: If the database write fails
        """
        now = now or utc_now_iso()
        with self._lock:
            existing = self.get_record(tag, artifact.logical_id, variant_kind)
            plan = plan_variant_write(existing, artifact.content_hash, canary_percent, now)
            if not plan.mutates:
                logger.debug(f"{tag} {variant_kind}: unchanged ({artifact.content_hash[:12]})")
                return plan.action

            try:
                self._apply_plan(tag, artifact, variant_kind, storage_url, plan, now)
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(
                    "Failed to record mod variant",
                    path=str(self.path),
                    details=f"{tag}/{artifact.logical_id}/{variant_kind}: {e}",
                ) from e

        logger.info(
            f"{tag} {variant_kind}: {plan.action.value} {artifact.full_name}"
            + (f" (canary {plan.canary.percent:g}%)" if plan.canary else "")
        )
        self.cache.invalidate()
        return plan.action

    def _apply_plan(
        self,
        tag: str,
        artifact: ResolvedArtifact,
        variant_kind: str,
        storage_url: str,
        plan: WritePlan,
        now: str,
    ) -> None:
        published_at = plan.canary.published_at if plan.canary else None
        percent = plan.canary.percent if plan.canary else None

        if plan.action is WriteAction.UPDATE_CANARY:
            self.conn.execute(
                """
                UPDATE mods
                SET canary_published_at = ?, canary_percent = ?
                WHERE tag = ? AND logical_id = ? AND variant_kind = ?
                """,
                (published_at, percent, tag, artifact.logical_id, variant_kind),
            )
            return

        self.conn.execute(
            """
            INSERT OR REPLACE INTO mods
            (tag, logical_id, variant_kind, version, content_hash, filename,
             storage_url, inserted_at, canary_published_at, canary_percent)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                tag,
                artifact.logical_id,
                variant_kind,
                artifact.logical_version,
                artifact.content_hash,
                artifact.full_name,
                storage_url,
                now,
                published_at,
                percent,
            ),
        )

    def delete_tag(self, tag: str) -> int:
        """
        Delete every record of a tag.

        Returns:
            int: Number of deleted records
        """
        with self._lock:
            try:
                cursor = self.conn.execute("DELETE FROM mods WHERE tag = ?", (tag,))
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(
                    "Failed to delete tag records", path=str(self.path), details=f"{tag}: {e}"
                ) from e
            deleted = cursor.rowcount

        if deleted:
            self.cache.invalidate()
        return deleted

    def stats(self) -> Dict[str, int]:
        """Return catalog statistics."""
        with self._lock:
            total = self.conn.execute("SELECT COUNT(*) FROM mods").fetchone()[0]
            tags = self.conn.execute("SELECT COUNT(DISTINCT tag) FROM mods").fetchone()[0]
            hashes = self.conn.execute(
                "SELECT COUNT(DISTINCT content_hash) FROM mods"
            ).fetchone()[0]
            canaries = self.conn.execute(
                "SELECT COUNT(*) FROM mods WHERE canary_published_at IS NOT NULL"
            ).fetchone()[0]
            return {
                "total_records": total,
                "tags": tags,
                "unique_hashes": hashes,
                "active_canaries": canaries,
            }

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                logger.debug("Catalog database connection closed")

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ModVariantRecord:
        return ModVariantRecord(
            tag=row["tag"],
            logical_id=row["logical_id"],
            variant_kind=row["variant_kind"],
            version=row["version"],
            content_hash=row["content_hash"],
            filename=row["filename"],
            storage_url=row["storage_url"],
            inserted_at=row["inserted_at"],
            canary_published_at=row["canary_published_at"],
            canary_percent=row["canary_percent"],
            row_id=row["id"],
        )

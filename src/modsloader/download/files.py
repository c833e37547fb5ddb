"""
Content Store for mod artifacts

Blobs live at `mods/{tag}/{contentHash}/{name}.{variant}` below the store
directory. Paths are derived from the content hash, so a blob that already
exists is never rewritten.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Set, Tuple

from modsloader.constants import MODS_DIR_NAME
from modsloader.exceptions import PathValidationError, StorageError
from modsloader.log_utils import logger
from modsloader.utils import calculate_file_sha256

from .interfaces import ResolvedArtifact


def _sanitize_path_component(component: Optional[str]) -> Optional[str]:
    """Return `component` trimmed, or None if it cannot be used as one path segment."""
    if component is None:
        return None

    trimmed = component.strip()
    if trimmed in {"", ".", ".."} or "\x00" in trimmed or os.path.isabs(trimmed):
        return None
    if any(sep and sep in trimmed for sep in ("/", os.sep, os.altsep)):
        return None
    return trimmed


def _require_component(component: Optional[str], label: str) -> str:
    safe = _sanitize_path_component(component)
    if safe is None:
        raise PathValidationError(f"Unsafe {label} for storage path", details=repr(component))
    return safe


def _remove_within(path: Path, base: Path) -> bool:
    """
    Delete a directory tree, file or symlink lying below `base`.

    Symlinks are unlinked, never followed. Returns False when the target is
    outside `base` (or is `base` itself) or the removal fails part way.
    """
    real_base = base.resolve()
    try:
        if path.is_symlink():
            if path.parent.resolve() != real_base and real_base not in path.parent.resolve().parents:
                logger.warning(f"Not removing symlink outside {real_base}: {path}")
                return False
            path.unlink()
            return True

        target = path.resolve()
        if real_base not in target.parents:
            logger.warning(f"Not removing {path}: it resolves outside {real_base}")
            return False
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
    except OSError as e:
        logger.error(f"Error removing {path}: {e}")
        return False
    return True


class ContentStore:
    """
    Hash-addressed blob tree for mod artifacts.

    Writes are idempotent: when two writers race on the same path both write
    identical bytes and the final `os.replace` leaves one complete blob.
    """

    def __init__(self, store_dir: str):
        self.store_dir = Path(store_dir)
        self.mods_dir = self.store_dir / MODS_DIR_NAME

    def build_storage_url(
        self, tag: str, content_hash: str, name_without_extension: str, variant_kind: str
    ) -> str:
        """
        Build the store-relative path for a blob.

        Raises:
            PathValidationError: If any component is unsafe as a path segment.
        """
        safe_tag = _require_component(tag, "tag")
        safe_hash = _require_component(content_hash, "content hash")
        safe_name = _require_component(
            f"{name_without_extension}.{variant_kind}", "file name"
        )
        return f"{MODS_DIR_NAME}/{safe_tag}/{safe_hash}/{safe_name}"

    def resolve(self, storage_url: str) -> Path:
        return self.store_dir / storage_url

    def exists(self, storage_url: str) -> bool:
        return self.resolve(storage_url).is_file()

    def write(self, tag: str, artifact: ResolvedArtifact, variant_kind: str) -> Tuple[str, bool]:
        """
        Write an artifact blob unless it is already present.

        Returns:
            Tuple[str, bool]: The storage URL and whether bytes were written.

        Raises:
            StorageError: If the blob cannot be written.
        """
        storage_url = self.build_storage_url(
            tag, artifact.content_hash, artifact.name_without_extension, variant_kind
        )
        target = self.resolve(storage_url)
        if target.is_file():
            logger.debug(f"Blob already stored: {storage_url}")
            return storage_url, False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=str(target.parent), prefix="tmp-", suffix=".part"
            )
        except OSError as e:
            raise StorageError("Could not prepare blob directory", path=str(target), details=str(e)) from e

        try:
            with os.fdopen(temp_fd, "wb") as temp_f:
                temp_f.write(artifact.blob)
            os.replace(temp_path, target)
        except OSError as e:
            raise StorageError("Could not write blob", path=str(target), details=str(e)) from e
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        logger.info(f"Mod file saved: {tag}: {target.name} ({artifact.content_hash})")
        return storage_url, True

    def list_tag_dirs(self) -> Set[str]:
        """Names of the tag directories currently present under `mods/`."""
        if not self.mods_dir.is_dir():
            return set()
        return {entry.name for entry in self.mods_dir.iterdir() if entry.is_dir() or entry.is_symlink()}

    def remove_tag(self, tag: str) -> bool:
        """
        Recursively delete a tag's blob directory.

        Returns:
            bool: `True` if the directory is gone afterwards, `False` if removal failed or was refused.
        """
        safe_tag = _sanitize_path_component(tag)
        if safe_tag is None:
            logger.warning(f"Refusing to remove blobs for unsafe tag {tag!r}")
            return False
        tag_dir = self.mods_dir / safe_tag
        if not tag_dir.exists() and not tag_dir.is_symlink():
            return True
        return _remove_within(tag_dir, self.mods_dir)

    def verify(self, storage_url: str, expected_hash: str) -> bool:
        """Check that a stored blob exists and its SHA-256 matches `expected_hash`."""
        path = self.resolve(storage_url)
        if not path.is_file():
            logger.warning(f"Blob missing for verification: {storage_url}")
            return False
        actual = calculate_file_sha256(str(path))
        return actual == expected_hash

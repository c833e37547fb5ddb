"""
Artifact Downloader

Fetches mod artifacts into memory, hashes the raw bytes and reads the id and
version declared by the archive's embedded manifest.
"""

import io
import xml.etree.ElementTree as ET
import zipfile
from typing import Optional, Tuple

import requests

from modsloader.constants import MANIFEST_FILE_NAME
from modsloader.exceptions import ManifestError
from modsloader.log_utils import logger
from modsloader.utils import calculate_sha256, fetch_bytes

from .interfaces import CandidateAsset, ResolvedArtifact


def _text_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def read_manifest(blob: bytes) -> Tuple[Optional[str], Optional[str]]:
    """
    Read the logical id and version from the archive manifest.

    Returns:
        Tuple[Optional[str], Optional[str]]: (id, version); both None when the
        archive has no manifest entry.

    Raises:
        ManifestError: If the archive or the manifest cannot be read.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(blob)) as archive:
            if MANIFEST_FILE_NAME not in archive.namelist():
                return None, None
            manifest = archive.read(MANIFEST_FILE_NAME)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, RuntimeError) as e:
        raise ManifestError("Unreadable mod archive", str(e)) from e

    try:
        root = ET.fromstring(manifest)
    except ET.ParseError as e:
        raise ManifestError(f"Malformed {MANIFEST_FILE_NAME}", str(e)) from e

    return _text_or_none(root.findtext("id")), _text_or_none(root.findtext("version"))


def build_artifact(blob: bytes, candidate: CandidateAsset) -> ResolvedArtifact:
    """
    Hash raw artifact bytes and attach the manifest id and version.

    A malformed archive does not fail: the artifact keeps its bytes and falls
    back to the filename tag prefix for its id.
    """
    content_hash = calculate_sha256(blob)

    try:
        manifest_id, manifest_version = read_manifest(blob)
    except ManifestError as e:
        logger.warning(
            f"Could not read manifest of {candidate.full_name}: {e}. Using filename metadata."
        )
        manifest_id, manifest_version = None, None

    return ResolvedArtifact(
        blob=blob,
        logical_id=manifest_id if manifest_id is not None else candidate.tag_prefix,
        logical_version=manifest_version,
        content_hash=content_hash,
        full_name=candidate.full_name,
        name_without_extension=candidate.name_without_extension,
    )


class ArtifactDownloader:
    """
    Downloads candidate assets and turns them into resolved artifacts.

    The content hash is computed over the raw downloaded bytes, not over the
    archive's logical contents.
    """

    def __init__(self, session: requests.Session, timeout: Optional[float] = None):
        self.session = session
        self.timeout = timeout

    def download(self, candidate: CandidateAsset) -> ResolvedArtifact:
        """
        Download a candidate and inspect its manifest.

        Raises:
            DownloadError: When the artifact URL is unreachable or returns a non-success status.
        """
        logger.info(f"Downloading {candidate.full_name}")
        blob = fetch_bytes(self.session, candidate.download_url, timeout=self.timeout)
        artifact = build_artifact(blob, candidate)
        logger.debug(
            f"Downloaded {candidate.full_name} ({len(blob)} bytes, sha256 {artifact.content_hash})"
        )
        return artifact

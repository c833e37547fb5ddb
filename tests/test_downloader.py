"""Tests for artifact download, hashing and manifest inspection."""

import hashlib
import io
import zipfile
from unittest.mock import Mock

import pytest

from mod_test_utils import build_mod_archive
from modsloader.download.assets import parse_asset_name
from modsloader.download.downloader import ArtifactDownloader, build_artifact, read_manifest
from modsloader.exceptions import DownloadError, ManifestError

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]

CANDIDATE = parse_asset_name(
    "wotstat.analytics_1.4.0.wotmod", "https://github.com/dl/wotstat.analytics_1.4.0.wotmod"
)


class TestReadManifest:
    """Tests for read_manifest."""

    def test_reads_id_and_version(self):
        blob = build_mod_archive("wotstat.analytics", "1.4.0")

        assert read_manifest(blob) == ("wotstat.analytics", "1.4.0")

    def test_archive_without_manifest(self):
        assert read_manifest(build_mod_archive()) == (None, None)

    def test_manifest_with_blank_fields(self):
        blob = build_mod_archive(mod_id="  ", version=None)

        assert read_manifest(blob) == (None, None)

    def test_not_an_archive(self):
        with pytest.raises(ManifestError):
            read_manifest(b"definitely not a zip file")

    def test_malformed_manifest_xml(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("meta.xml", "<root><id>broken</root>")

        with pytest.raises(ManifestError):
            read_manifest(buffer.getvalue())


class TestBuildArtifact:
    """Tests for build_artifact."""

    def test_hash_covers_raw_bytes(self):
        blob = build_mod_archive("wotstat.analytics", "1.4.0")

        artifact = build_artifact(blob, CANDIDATE)

        assert artifact.content_hash == hashlib.sha256(blob).hexdigest()
        assert artifact.logical_id == "wotstat.analytics"
        assert artifact.logical_version == "1.4.0"
        assert artifact.full_name == "wotstat.analytics_1.4.0.wotmod"
        assert artifact.name_without_extension == "wotstat.analytics_1.4.0"

    def test_unreadable_archive_degrades_to_filename_metadata(self):
        artifact = build_artifact(b"garbage", CANDIDATE)

        assert artifact.blob == b"garbage"
        assert artifact.logical_id == "wotstat.analytics"
        assert artifact.logical_version is None

    def test_manifest_without_id_uses_tag_prefix(self):
        artifact = build_artifact(build_mod_archive(version="2.0"), CANDIDATE)

        assert artifact.logical_id == "wotstat.analytics"
        assert artifact.logical_version == "2.0"


class TestArtifactDownloader:
    """Tests for ArtifactDownloader.download."""

    def test_download_fetches_candidate_url(self, mocker):
        blob = build_mod_archive("custom.id", "9.9")
        fetch = mocker.patch(
            "modsloader.download.downloader.fetch_bytes", return_value=blob
        )
        session = Mock()

        artifact = ArtifactDownloader(session, timeout=10).download(CANDIDATE)

        fetch.assert_called_once_with(session, CANDIDATE.download_url, timeout=10)
        assert artifact.logical_id == "custom.id"
        assert artifact.blob == blob

    def test_download_failure_propagates(self, mocker):
        mocker.patch(
            "modsloader.download.downloader.fetch_bytes",
            side_effect=DownloadError("gone", url=CANDIDATE.download_url, status_code=404),
        )

        with pytest.raises(DownloadError):
            ArtifactDownloader(Mock()).download(CANDIDATE)

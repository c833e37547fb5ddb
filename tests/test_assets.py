"""Tests for asset filename parsing and per-variant resolution."""

import pytest

from modsloader.download.assets import parse_asset_name, resolve_assets
from modsloader.exceptions import VersionError

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]

URL = "https://example.com/download"


def _candidate(name):
    candidate = parse_asset_name(name, f"{URL}/{name}")
    assert candidate is not None
    return candidate


class TestParseAssetName:
    """Tests for parse_asset_name."""

    def test_prefix_version_and_kind(self):
        candidate = parse_asset_name("wotstat.analytics_1.4.2.wotmod", URL)

        assert candidate.tag_prefix == "wotstat.analytics"
        assert candidate.version == "1.4.2"
        assert candidate.variant_kind == "wotmod"
        assert candidate.full_name == "wotstat.analytics_1.4.2.wotmod"
        assert candidate.name_without_extension == "wotstat.analytics_1.4.2"
        assert candidate.download_url == URL

    def test_name_without_version(self):
        candidate = parse_asset_name("izeberg.modssettingsapi.mtmod", URL)

        assert candidate.tag_prefix == "izeberg.modssettingsapi"
        assert candidate.version == ""
        assert candidate.variant_kind == "mtmod"

    def test_version_without_underscore(self):
        candidate = parse_asset_name("mod1.2.wotmod", URL)

        assert candidate.tag_prefix == "mod"
        assert candidate.version == "1.2"

    def test_bare_version(self):
        candidate = parse_asset_name("1.0.mtmod", URL)

        assert candidate.tag_prefix == ""
        assert candidate.version == "1.0"

    @pytest.mark.parametrize(
        "name",
        ["readme.md", "mod_1.0.zip", "mod_1.0.wotmod.sha256", "", "mod.WOTMOD"],
    )
    def test_non_artifacts_are_rejected(self, name):
        assert parse_asset_name(name, URL) is None

    def test_none_name_is_rejected(self):
        assert parse_asset_name(None, URL) is None


class TestResolveAssets:
    """Tests for resolve_assets."""

    def test_picks_highest_version_per_kind(self):
        resolved = resolve_assets(
            [
                _candidate("mod_1.0.wotmod"),
                _candidate("mod_2.0.wotmod"),
                _candidate("mod_1.5.wotmod"),
            ]
        )

        assert resolved.wotmod.version == "2.0"
        assert resolved.mtmod is None

    def test_kinds_resolve_independently(self):
        resolved = resolve_assets(
            [
                _candidate("mod_1.9.mtmod"),
                _candidate("mod_1.10.mtmod"),
                _candidate("mod_3.0.wotmod"),
            ]
        )

        assert resolved.mtmod.version == "1.10"
        assert resolved.wotmod.version == "3.0"
        assert resolved.present_kinds() == ["mtmod", "wotmod"]

    def test_no_candidates_resolves_nothing(self):
        resolved = resolve_assets([])

        assert resolved.is_empty()
        assert resolved.present_kinds() == []

    def test_equal_versions_resolve_to_last_candidate(self):
        first = _candidate("alpha_1.0.wotmod")
        second = _candidate("beta_1.0.0.wotmod")

        resolved = resolve_assets([first, second])

        assert resolved.wotmod is second

    def test_unversioned_candidate_loses_to_versioned(self):
        resolved = resolve_assets(
            [_candidate("mod_0.1.wotmod"), _candidate("mod.wotmod")]
        )

        assert resolved.wotmod.version == "0.1"

    def test_get_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            resolve_assets([]).get("zip")

    def test_unparseable_version_raises(self, mocker):
        broken = _candidate("mod_1.0.wotmod")
        other = mocker.Mock(version="x.y", variant_kind="wotmod")

        with pytest.raises(VersionError):
            resolve_assets([broken, other])

"""Tests for dotted numeric version comparison."""

from functools import cmp_to_key

import pytest

from modsloader.download.version import compare_versions, parse_version_segments
from modsloader.exceptions import VersionError

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]


class TestParseVersionSegments:
    """Tests for parse_version_segments."""

    def test_splits_numeric_segments(self):
        assert parse_version_segments("1.10.0") == (1, 10, 0)

    @pytest.mark.parametrize("version", [None, "", "   "])
    def test_missing_version_is_empty(self, version):
        assert parse_version_segments(version) == ()

    @pytest.mark.parametrize("version", ["1.a", "v1.2", "1..2", "1.2-beta", "-1"])
    def test_non_numeric_segment_raises(self, version):
        with pytest.raises(VersionError) as exc_info:
            parse_version_segments(version)
        assert exc_info.value.version == version


class TestCompareVersions:
    """Tests for compare_versions."""

    @pytest.mark.parametrize(
        "left,right",
        [("1.2", "1.2.0"), ("1.2.0.0", "1.2"), ("0", ""), ("3", "3.0.0")],
    )
    def test_trailing_zero_segments_are_equal(self, left, right):
        assert compare_versions(left, right) == 0
        assert compare_versions(right, left) == 0

    def test_segments_compare_numerically(self):
        assert compare_versions("1.10", "1.9") == 1
        assert compare_versions("1.9", "1.10") == -1

    def test_longer_version_with_nonzero_tail_is_greater(self):
        assert compare_versions("1.2.1", "1.2") == 1

    def test_empty_version_sorts_below_any_release(self):
        assert compare_versions("", "0.0.1") == -1
        assert compare_versions(None, "1") == -1

    def test_sorts_as_a_total_order(self):
        versions = ["1.10", "1.2", "1.9.9", "2", "1.2.0.1"]

        ordered = sorted(versions, key=cmp_to_key(compare_versions))

        assert ordered == ["1.2", "1.2.0.1", "1.9.9", "1.10", "2"]

    def test_invalid_version_propagates(self):
        with pytest.raises(VersionError):
            compare_versions("1.0", "latest")

"""Tests for loose version comparison and version extraction."""

import pytest

from orion_store.domain.version import (
    compare_versions,
    dotted,
    extract_version,
    prefixed_multipart,
    prefixed_single,
    strip_noise,
)


class TestCompareVersions:
    """Test numeric version comparison."""

    @pytest.mark.parametrize(
        ("left", "right", "expected"),
        [
            ("1.2.0", "1.10.0", -1),
            ("2.0", "1.9.9", 1),
            ("v1.0", "1.0.0", 0),
            ("V3.1", "3.1", 0),
            ("1.0-beta", "1.0", 0),
            ("10.0.1", "9.99", 1),
        ],
    )
    def test_ordering(self, left, right, expected):
        """Test representative comparisons."""
        assert compare_versions(left, right) == expected

    @pytest.mark.parametrize(
        ("left", "right"),
        [("1.2", "1.3"), ("2.0.1", "2.0"), ("v5", "4.9"), ("1.0", "1.0.0")],
    )
    def test_antisymmetric(self, left, right):
        """Swapping the arguments negates the result."""
        assert compare_versions(left, right) == -compare_versions(right, left)

    @pytest.mark.parametrize("other", ["1.0", "", None, "Latest"])
    def test_empty_input_is_equal(self, other):
        """Missing values compare as equal to anything."""
        assert compare_versions("", other) == 0
        assert compare_versions(None, other) == 0

    def test_non_numeric_components_count_as_zero(self):
        """Text-only versions reduce to 0."""
        assert compare_versions("Latest", "0") == 0
        assert compare_versions("Installed", "1.0") == -1


class TestExtractVersion:
    """Test the extraction strategies and their order."""

    @pytest.mark.parametrize(
        ("candidate", "expected"),
        [
            ("MyApp-v2.3.1-arm64-v8a.apk", "2.3.1"),
            ("app_v5.apk", "5"),
            ("NewPipe_v0.27.6.apk", "0.27.6"),
            ("Seal-1.13.1-armeabi-v7a-release.apk", "1.13.1"),
            ("tool-v2-3-1.apk", "2.3.1"),
            ("Release 10.2", "10.2"),
        ],
    )
    def test_examples(self, candidate, expected):
        """Test common release naming styles."""
        assert extract_version(candidate) == expected

    @pytest.mark.parametrize(
        "candidate", ["release-latest.apk", "nightly", "", None, "vendor.apk"]
    )
    def test_no_version(self, candidate):
        """Names without a version yield None."""
        assert extract_version(candidate) is None

    def test_architecture_noise_is_not_a_version(self):
        """ABI suffixes such as v7a/v8a are stripped before matching."""
        assert strip_noise("App-arm64-v8a.apk") == "app-"
        assert extract_version("App-armeabi-v7a.apk") is None

    def test_strategies_individually(self):
        """Each strategy only matches its own shape."""
        assert prefixed_multipart("app-v1-2") == "1.2"
        assert prefixed_multipart("app-1.2") is None
        assert dotted("build 4.5.6 final") == "4.5.6"
        assert dotted("v7") is None
        assert prefixed_single("app-v7") == "7"
        assert prefixed_single("v7beta") is None

"""Unit tests for utility functions."""

import pytest

from pyrcc.utils import (
    format_progress,
    format_size,
    is_special_entry,
    join_remote,
    normalize_separators,
    resolve_remote_path,
)


class TestFormatSize:
    """Tests for format_size function."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 B"),
            (512, "512 B"),
            (1023, "1023 B"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (524288, "512 KB"),
            (2411725, "2.3 MB"),
            (1024**3, "1 GB"),
            (1024**4, "1 TB"),
            (1024**5, "1 PB"),
            (1024**6, "1 EB"),
        ],
    )
    def test_binary_units(self, size, expected):
        """Test sizes escalate through 1024-based units."""
        assert format_size(size) == expected

    def test_two_decimal_rounding(self):
        """Test values are rounded to two decimals."""
        assert format_size(1024 + 12) == "1.01 KB"
        assert format_size(int(1024 * 1.999)) == "2 KB"

    def test_exabytes_do_not_overflow_units(self):
        """Test sizes beyond EB stay in EB."""
        assert format_size(2048 * 1024**6) == "2048 EB"


class TestFormatProgress:
    """Tests for format_progress function."""

    def test_size_pair_and_percent(self):
        """Test the "done of total, percent" format."""
        assert format_progress(524288, 2411725) == "512 KB of 2.3 MB, 22%"

    def test_complete(self):
        assert format_progress(100, 100) == "100 B of 100 B, 100%"

    def test_empty_file_is_complete(self):
        """Test a zero total does not divide by zero."""
        assert format_progress(0, 0) == "0 B of 0 B, 100%"


class TestRemotePaths:
    """Tests for remote path helpers."""

    def test_relative_path_joins_working_directory(self):
        assert resolve_remote_path("logs", "/var") == "/var/logs"

    def test_absolute_path_ignores_working_directory(self):
        assert resolve_remote_path("/etc/hosts", "/var") == "/etc/hosts"

    def test_parent_references_are_collapsed(self):
        assert resolve_remote_path("../tmp/./x", "/var/log") == "/var/tmp/x"

    def test_backslashes_are_normalized(self):
        assert resolve_remote_path("dir\\sub\\file.txt", "/home") == (
            "/home/dir/sub/file.txt"
        )

    def test_leading_double_slash_is_collapsed(self):
        assert resolve_remote_path("//srv", "/") == "/srv"

    def test_empty_working_directory_defaults_to_root(self):
        assert resolve_remote_path("a", "") == "/a"

    def test_normalize_separators(self):
        assert normalize_separators("a\\b/c") == "a/b/c"

    def test_join_remote(self):
        assert join_remote("/a", "b") == "/a/b"
        assert join_remote("/", "b") == "/b"

    def test_special_entries(self):
        assert is_special_entry(".")
        assert is_special_entry("..")
        assert not is_special_entry(".hidden")

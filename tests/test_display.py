"""Tests for display module."""

from unittest.mock import patch

from diskdive.display import (
    confirm_action,
    entry_icon,
    percent,
    show_cache_info,
    show_large_files,
    show_overview,
    show_scan_result,
    show_scanning_progress,
    truncate_path,
    usage_bar,
)
from diskdive.models import DirectoryEntry, LargeFileEntry, ScanResult

MB = 1024 * 1024


def _result() -> ScanResult:
    entries = [
        DirectoryEntry(name="node_modules", path="/p/node_modules", size=300 * MB, is_dir=True, is_cleanable=True),
        DirectoryEntry(name="movie.mkv", path="/p/movie.mkv", size=200 * MB),
        DirectoryEntry(name="src", path="/p/src", size=1 * MB, is_dir=True),
    ]
    return ScanResult(
        entries=entries,
        large_files=[LargeFileEntry(name="movie.mkv", path="/p/movie.mkv", size=200 * MB)],
        total_size=501 * MB,
        total_files=42,
    )


class TestUsageBar:
    def test_full(self):
        assert usage_bar(10, 10, width=4) == "████"

    def test_half(self):
        assert usage_bar(5, 10, width=4) == "██░░"

    def test_zero_total(self):
        assert usage_bar(0, 0, width=4) == "░░░░"


class TestPercent:
    def test_share(self):
        assert percent(1, 4) == "25.0%"

    def test_zero_total(self):
        assert percent(5, 0) == "0.0%"


class TestEntryIcon:
    def test_cleanable(self):
        assert entry_icon(_result().entries[0]) == "🧹"

    def test_file(self):
        assert entry_icon(_result().entries[1]) == "📄"

    def test_directory(self):
        assert entry_icon(_result().entries[2]) == "📁"


class TestTruncatePath:
    def test_short_path_unchanged(self):
        assert truncate_path("/a/b") == "/a/b"

    def test_long_path(self):
        path = "/very" * 30
        short = truncate_path(path, max_len=20)
        assert len(short) == 20
        assert short.startswith("...")
        assert short.endswith("/very")


class TestShowScanResult:
    @patch("diskdive.display.console")
    def test_prints_table_and_total(self, mock_console):
        show_scan_result("/p", _result())
        assert mock_console.print.call_count >= 2

    @patch("diskdive.display.console")
    def test_truncated_listing(self, mock_console):
        show_scan_result("/p", _result(), limit=1)
        printed = [str(call.args[0]) for call in mock_console.print.call_args_list if call.args]
        assert any("2 more entries" in text for text in printed)


class TestShowLargeFiles:
    @patch("diskdive.display.console")
    def test_lists_files(self, mock_console):
        show_large_files(_result())
        printed = [str(call.args[0]) for call in mock_console.print.call_args_list if call.args]
        assert any("/p/movie.mkv" in text for text in printed)

    @patch("diskdive.display.console")
    def test_nothing_when_empty(self, mock_console):
        show_large_files(ScanResult())
        mock_console.print.assert_not_called()


class TestShowOverview:
    @patch("diskdive.display.console")
    def test_unknown_sizes(self, mock_console):
        show_overview({"~": 5 * MB, "/opt": None})
        mock_console.print.assert_called_once()


class TestShowCacheInfo:
    @patch("diskdive.display.console")
    def test_panel(self, mock_console):
        show_cache_info({"cache_dir": "/c", "records": 2, "record_bytes": 4096, "overview_entries": 1})
        mock_console.print.assert_called_once()


class TestProgress:
    def test_returns_progress(self):
        from rich.progress import Progress

        assert isinstance(show_scanning_progress(), Progress)


class TestConfirmAction:
    @patch("rich.prompt.Confirm.ask", return_value=True)
    def test_confirm(self, mock_ask):
        assert confirm_action("Sure?") is True
        mock_ask.assert_called_once_with("Sure?")

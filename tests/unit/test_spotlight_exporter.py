"""Tests for the Spotlight export pipeline."""

import hashlib
import os
import stat
import subprocess
from pathlib import Path
from unittest.mock import call, patch

import pytest

from conftest import create_mock_item
from pocket_cli.errors import ExportIOError
from pocket_cli.export.spotlight import (
    MAX_TITLE,
    SpotlightExporter,
    check_visible,
    descriptor_filename,
    render_webloc,
    sanitize_title,
)

ALLOWED = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'\". _-|()[]")


def completed(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


@pytest.fixture
def mock_run():
    with patch("pocket_cli.export.spotlight.subprocess.run") as run:
        run.return_value = completed()
        yield run


class TestSanitizeTitle:
    """Test cases for filename sanitizing."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Hello World", "Hello World"),
            ("Python Tips & Tricks", "Python Tips Tricks"),
            ("  --_Leading and trailing_-- ", "Leading and trailing"),
            ("a/b\\c:d*e?f", "abcdef"),
            ("tabs\tand\nnewlines", "tabsandnewlines"),
            ("many     spaces", "many spaces"),
            ("[Video] (2019) | 'Quotes' \"too\"", "[Video] (2019) | 'Quotes' \"too\""),
            ("Ünïcödé café", "ncd caf"),
            ("", ""),
            ("日本語のタイトル", ""),
            ("---___   ", ""),
            (".NET Tips", "NET Tips"),
            ("...and more", "and more"),
            ("Version 2.0.", "Version 2.0."),
        ],
    )
    def test_sanitize(self, title, expected):
        """Test disallowed characters are dropped and noise trimmed."""
        assert sanitize_title(title) == expected

    def test_truncates_to_code_points(self):
        """Test long titles are cut to the title budget."""
        result = sanitize_title("x" * 500)
        assert len(result) == MAX_TITLE == 120

    @pytest.mark.parametrize(
        "title",
        ["", "🎉" * 200, "é" * 300, "a b c" * 80, "<script>alert(1)</script>" * 10],
    )
    def test_output_stays_in_allow_list(self, title):
        """Test any title yields an allowed name within the length budget."""
        result = sanitize_title(title)
        assert len(result) <= MAX_TITLE
        assert set(result) <= ALLOWED


class TestDescriptorFilename:
    """Test cases for filename policies."""

    def test_title_policy(self):
        item = create_mock_item(1, "My: Article!", "http://a")
        assert descriptor_filename(item) == "My Article.webloc"

    def test_title_policy_falls_back_to_item_id(self):
        """Test an untitled item is named after its id."""
        item = create_mock_item(42, "???", "http://a")
        assert descriptor_filename(item, "title") == "42.webloc"

    @pytest.mark.parametrize("title,expected", [(".NET Tips", "NET Tips.webloc"), ("...", "42.webloc")])
    def test_title_policy_never_hidden(self, title, expected):
        """Test dot-prefixed titles do not produce hidden descriptors."""
        name = descriptor_filename(create_mock_item(42, title, "http://a"))

        assert name == expected
        assert not name.startswith(".")

    def test_hash_policy(self):
        item = create_mock_item(1, "ignored", "http://a")
        expected = hashlib.sha256(b"http://a").hexdigest()
        assert descriptor_filename(item, "hash") == f"{expected}.webloc"

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            descriptor_filename(create_mock_item(1, "x"), "uuid")


class TestRenderWebloc:
    """Test cases for the property list payload."""

    def test_url_is_escaped(self):
        item = create_mock_item(1, "T", "https://example.com/?a=1&b=<2>")
        content = render_webloc(item)

        assert "<string>https://example.com/?a=1&amp;b=&lt;2&gt;</string>" in content
        assert content.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert "<key>URL</key>" in content
        assert "<key>Name</key>" not in content

    def test_include_title(self):
        item = create_mock_item(1, 'Tom & "Jerry"', "http://a")
        content = render_webloc(item, include_title=True)

        assert "<key>Name</key>" in content
        assert "<string>Tom &amp; &quot;Jerry&quot;</string>" in content


class TestCheckVisible:
    def test_hidden_component_rejected(self):
        with pytest.raises(ExportIOError, match="hidden"):
            check_visible(Path("/Users/me/.cache/pocket"))

    def test_visible_path_accepted(self):
        check_visible(Path("/Users/me/Library/Caches/Metadata/pocket-cli"))


class TestSpotlightExporter:
    """Test cases for SpotlightExporter."""

    def test_export_writes_converts_and_indexes(self, tmp_path, mock_items, mock_run):
        """Test the end-to-end example: two files, one index call at the end."""
        target = tmp_path / "index"

        written = SpotlightExporter().export(mock_items, target)

        assert written == [target / "B.webloc", target / "A.webloc"]
        assert "<string>http://b</string>" in (target / "B.webloc").read_text()
        assert "<string>http://a</string>" in (target / "A.webloc").read_text()
        assert mock_run.call_args_list == [
            call(
                ["/usr/bin/plutil", "-convert", "binary1", str(target / "B.webloc")],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            ),
            call(
                ["/usr/bin/plutil", "-convert", "binary1", str(target / "A.webloc")],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            ),
            call(
                ["/usr/bin/mdimport", str(target)],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            ),
        ]

    def test_each_item_converted_before_next_written(self, tmp_path, mock_run):
        """Test write-then-convert happens item by item."""
        target = tmp_path / "index"
        seen = []

        def run(command, **kwargs):
            seen.append(sorted(p.name for p in target.iterdir()))
            return completed()

        mock_run.side_effect = run
        items = [create_mock_item(1, "One"), create_mock_item(2, "Two")]

        SpotlightExporter().export(items, target)

        assert seen == [["One.webloc"], ["One.webloc", "Two.webloc"], ["One.webloc", "Two.webloc"]]

    def test_directory_is_reset(self, tmp_path, mock_run):
        """Test stale files are removed and the directory is owner-only."""
        target = tmp_path / "index"
        (target / "nested").mkdir(parents=True)
        (target / "stale.webloc").write_text("old")
        (target / "nested" / "old.webloc").write_text("old")

        SpotlightExporter().export([create_mock_item(1, "Fresh")], target)

        assert sorted(p.name for p in target.iterdir()) == ["Fresh.webloc"]
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o700

    def test_empty_export_still_indexes(self, tmp_path, mock_run):
        target = tmp_path / "index"

        assert SpotlightExporter().export([], target) == []
        assert list(target.iterdir()) == []
        mock_run.assert_called_once()

    def test_hash_policy_one_file_per_item(self, tmp_path, mock_run):
        """Test hash names never collide for distinct URLs."""
        target = tmp_path / "index"
        items = [
            create_mock_item(1, "Same", "http://one"),
            create_mock_item(2, "Same", "http://two"),
        ]

        SpotlightExporter(filename_policy="hash").export(items, target)

        assert len(list(target.iterdir())) == 2

    def test_title_collision_overwrites(self, tmp_path, mock_run, caplog):
        """Test two items sharing a title leave one descriptor, the later one."""
        target = tmp_path / "index"
        items = [
            create_mock_item(1, "Same Title", "http://first"),
            create_mock_item(2, "Same Title!", "http://second"),
        ]

        with caplog.at_level("WARNING", logger="pocket_cli.export.spotlight"):
            written = SpotlightExporter().export(items, target)

        assert written == [target / "Same Title.webloc"] * 2
        assert [p.name for p in target.iterdir()] == ["Same Title.webloc"]
        assert "http://second" in (target / "Same Title.webloc").read_text()
        assert "overwrites Same Title.webloc" in caplog.text

    def test_converter_failure_aborts(self, tmp_path, mock_run):
        """Test a converter failure stops the export with its output."""
        target = tmp_path / "index"
        mock_run.return_value = completed(1, "plutil: invalid property list")
        items = [create_mock_item(1, "One"), create_mock_item(2, "Two")]

        with pytest.raises(ExportIOError) as exc_info:
            SpotlightExporter().export(items, target)

        assert exc_info.value.output == "plutil: invalid property list"
        assert "exit status 1" in str(exc_info.value)
        assert mock_run.call_count == 1
        assert [p.name for p in target.iterdir()] == ["One.webloc"]

    def test_indexer_failure(self, tmp_path, mock_run):
        """Test a failing re-index is a hard failure."""
        mock_run.side_effect = [completed(), completed(2, "mdimport: no such directory")]

        with pytest.raises(ExportIOError, match="Indexing"):
            SpotlightExporter().export([create_mock_item(1, "One")], tmp_path / "index")

    def test_missing_tool(self, tmp_path, mock_run):
        """Test a missing executable becomes ExportIOError."""
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "/usr/bin/plutil")

        with pytest.raises(ExportIOError, match="Converting"):
            SpotlightExporter().export([create_mock_item(1, "One")], tmp_path / "index")

    def test_reset_failure(self, tmp_path, mock_run):
        """Test a directory that cannot be reset aborts before any write."""
        target = tmp_path / "index"
        with patch("pocket_cli.export.spotlight.shutil.rmtree", side_effect=OSError("busy")):
            target.mkdir()
            with pytest.raises(ExportIOError, match="Cannot reset"):
                SpotlightExporter().export([create_mock_item(1, "One")], target)

        mock_run.assert_not_called()

    def test_target_is_a_file(self, tmp_path, mock_run):
        """Test a plain file at the target path is replaced by the directory."""
        target = tmp_path / "index"
        target.write_text("not a directory")

        SpotlightExporter().export([create_mock_item(1, "One")], target)

        assert target.is_dir()

    def test_custom_commands(self, tmp_path, mock_run):
        target = tmp_path / "index"
        exporter = SpotlightExporter(converter=["conv"], indexer=["idx", "-v"])

        exporter.export([create_mock_item(1, "One")], target)

        commands = [c.args[0] for c in mock_run.call_args_list]
        assert commands == [["conv", str(target / "One.webloc")], ["idx", "-v", str(target)]]

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            SpotlightExporter(filename_policy="random")

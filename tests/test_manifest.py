"""Tests for manifest parsing."""

from pathlib import Path

import pytest

from setup_os.core.errors import ManifestError
from setup_os.core.manifest import ManifestEntry, load_manifest, parse_line, parse_manifest


def test_parse_full_line() -> None:
    """Test a line with every field set."""
    entry = parse_line("  config/dotfiles/git/gitconfig | ~/.gitconfig | no | DOTFILES_GIT ")
    assert entry == ManifestEntry(
        source="config/dotfiles/git/gitconfig",
        destination="~/.gitconfig",
        backup=False,
        condition="DOTFILES_GIT",
    )


def test_parse_defaults() -> None:
    """Test that backup defaults to yes and condition to none."""
    entry = parse_line("a|~/.a")
    assert entry is not None
    assert entry.backup is True
    assert entry.condition is None


@pytest.mark.parametrize("value", ["yes", "YES", "true", "anything"])
def test_only_no_disables_backup(value: str) -> None:
    entry = parse_line(f"a|~/.a|{value}")
    assert entry is not None and entry.backup is True


@pytest.mark.parametrize("line", ["", "   ", "# comment", "   # indented comment"])
def test_blank_and_comment_lines_skipped(line: str) -> None:
    assert parse_line(line) is None


@pytest.mark.parametrize("line", ["only-source", "src|", "|~/.dest", " | "])
def test_missing_field_is_an_error(line: str) -> None:
    """Test that a line without source or destination reports its location."""
    with pytest.raises(ManifestError, match="manifest.txt:7"):
        parse_line(line, 7, "manifest.txt")


def test_parse_manifest_keeps_order_and_line_numbers() -> None:
    text = "# header\n\nb|~/.b\na|~/.a|yes|FLAG\n"
    entries = parse_manifest(text)
    assert [e.source for e in entries] == ["b", "a"]
    assert [e.lineno for e in entries] == [3, 4]


def test_condition_unset_counts_as_enabled() -> None:
    entry = ManifestEntry("a", "~/.a", condition="DOTFILES_GIT")
    assert entry.is_active({})
    assert entry.is_active({"DOTFILES_GIT": "true"})
    assert not entry.is_active({"DOTFILES_GIT": "false"})
    assert not entry.is_active({"DOTFILES_GIT": "1"})


def test_paths(tmp_path: Path, home: Path) -> None:
    """Test that sources resolve against the root and destinations expand ~."""
    entry = ManifestEntry("config/dotfiles/zsh/zshrc", "~/.zshrc")
    assert entry.source_path(tmp_path) == tmp_path / "config/dotfiles/zsh/zshrc"
    assert entry.destination_path() == home / ".zshrc"

    absolute = ManifestEntry(str(tmp_path / "x"), "/etc/x")
    assert absolute.source_path(Path("/elsewhere")) == tmp_path / "x"


def test_load_manifest(config) -> None:
    entries = load_manifest(config.manifest_path)
    assert len(entries) == 4
    assert entries[-1].condition == "DOTFILES_CLAUDE"
    assert entries[-1].backup is False


def test_load_missing_manifest(tmp_path: Path) -> None:
    with pytest.raises(ManifestError, match="Manifest not found"):
        load_manifest(tmp_path / "missing.txt")

"""Tests for symlink reconciliation."""

import os
from datetime import datetime
from pathlib import Path

import pytest

from setup_os.core.config import Config
from setup_os.core.errors import SymlinkError
from setup_os.core.manifest import ManifestEntry, load_manifest
from setup_os.core.symlink import LinkAction, LinkStatus, SymlinkManager, shorten_path, summarize

STAMP = datetime(2024, 1, 2, 3, 4, 5)
FOREIGN_TARGET = "/opt/elsewhere/zshrc"


@pytest.fixture
def manager(config: Config) -> SymlinkManager:
    return SymlinkManager(config, timestamp=STAMP)


@pytest.fixture
def entries(config: Config):
    return load_manifest(config.manifest_path)


def zshrc_entry(backup: bool = True) -> ManifestEntry:
    return ManifestEntry("config/dotfiles/zsh/zshrc", "~/.zshrc", backup=backup)


def test_link_all_creates_links(
    manager: SymlinkManager, entries, repo_root: Path, home: Path
) -> None:
    results = manager.link_all(entries)

    assert [r.action for r in results] == [LinkAction.CREATED] * 4
    assert os.readlink(home / ".zshrc") == str(repo_root / "config/dotfiles/zsh/zshrc")
    # Parent directories are created as needed
    assert (home / ".config/tmux/tmux.conf").is_symlink()


def test_second_run_is_a_noop(manager: SymlinkManager, entries, config: Config) -> None:
    """Test that linking twice leaves nothing to do the second time."""
    manager.link_all(entries)
    again = SymlinkManager(config, timestamp=datetime(2024, 1, 2, 3, 4, 6))
    results = again.link_all(entries)

    assert all(r.action is LinkAction.UNCHANGED for r in results)
    assert not config.backup_root.exists()


def test_existing_file_backed_up_verbatim(manager: SymlinkManager, home: Path) -> None:
    original = home / ".zshrc"
    original.write_text("# my old zshrc\nalias x=y\n")

    result = manager.link(zshrc_entry())

    assert result.action is LinkAction.BACKED_UP
    assert result.backup_path == home / ".dotfiles_backup/20240102_030405/.zshrc"
    assert result.backup_path.read_text() == "# my old zshrc\nalias x=y\n"
    assert original.is_symlink()


def test_backup_keeps_path_relative_to_home(config: Config, home: Path) -> None:
    manager = SymlinkManager(config, timestamp=STAMP)
    target = home / ".config/tmux/tmux.conf"
    target.parent.mkdir(parents=True)
    target.write_text("old")

    entry = ManifestEntry("config/dotfiles/tmux/tmux.conf", "~/.config/tmux/tmux.conf")
    result = manager.link(entry)

    assert result.backup_path == manager.backup_dir / ".config/tmux/tmux.conf"
    assert result.backup_path.read_text() == "old"


def test_backup_name_collision(manager: SymlinkManager, home: Path) -> None:
    manager.backup_dir.mkdir(parents=True)
    (manager.backup_dir / ".zshrc").write_text("earlier backup")
    (home / ".zshrc").write_text("current")

    result = manager.link(zshrc_entry())

    assert result.backup_path == manager.backup_dir / ".zshrc.1"
    assert (manager.backup_dir / ".zshrc").read_text() == "earlier backup"
    assert result.backup_path.read_text() == "current"


def test_disabled_condition_is_skipped(
    config: Config, entries, home: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that an entry whose condition is false is neither linked nor reported."""
    monkeypatch.setenv("DOTFILES_CLAUDE", "false")
    manager = SymlinkManager(config, timestamp=STAMP)

    results = manager.link_all(entries)
    statuses = manager.check(entries)

    assert len(results) == 3
    assert not (home / ".claude/settings.json").exists()
    assert len(statuses) == 3
    assert all(s.status is LinkStatus.LINKED for s in statuses)


def test_wrong_target_backed_up_and_replaced(
    manager: SymlinkManager, repo_root: Path, home: Path
) -> None:
    (home / ".zshrc").symlink_to(FOREIGN_TARGET)

    result = manager.link(zshrc_entry())

    assert result.action is LinkAction.BACKED_UP
    assert result.backup_path.is_symlink()
    assert os.readlink(result.backup_path) == FOREIGN_TARGET
    assert os.readlink(home / ".zshrc") == str(repo_root / "config/dotfiles/zsh/zshrc")


def test_managed_link_replaced_without_backup(
    manager: SymlinkManager, repo_root: Path, home: Path
) -> None:
    """Test that an old link into the dotfiles tree is removed, not backed up."""
    (home / ".zshrc").symlink_to(repo_root / "config/dotfiles/old/zshrc")

    result = manager.link(zshrc_entry())

    assert result.action is LinkAction.REPLACED
    assert result.backup_path is None
    assert not manager.backup_dir.exists()
    assert os.readlink(home / ".zshrc") == str(repo_root / "config/dotfiles/zsh/zshrc")


def test_no_backup_removes_foreign_symlink(manager: SymlinkManager, home: Path) -> None:
    (home / ".zshrc").symlink_to(FOREIGN_TARGET)

    result = manager.link(zshrc_entry(backup=False))

    assert result.action is LinkAction.REPLACED
    assert result.backup_path is None
    assert not manager.backup_dir.exists()


def test_no_backup_still_moves_real_files(manager: SymlinkManager, home: Path) -> None:
    (home / ".zshrc").write_text("precious")

    result = manager.link(zshrc_entry(backup=False))

    assert result.action is LinkAction.BACKED_UP
    assert result.backup_path.read_text() == "precious"


def test_missing_source_raises(manager: SymlinkManager, home: Path) -> None:
    entry = ManifestEntry("config/dotfiles/nope", "~/.nope")
    with pytest.raises(SymlinkError, match="Source does not exist"):
        manager.link(entry)
    assert not (home / ".nope").exists()


def test_link_all_stops_at_first_failure(manager: SymlinkManager, home: Path) -> None:
    entries = [ManifestEntry("config/dotfiles/nope", "~/.nope"), zshrc_entry()]
    with pytest.raises(SymlinkError):
        manager.link_all(entries)
    assert not (home / ".zshrc").exists()


def test_dry_run_changes_nothing(config: Config, entries, home: Path) -> None:
    (home / ".zshrc").write_text("keep me")
    manager = SymlinkManager(config, dry_run=True, timestamp=STAMP)

    results = manager.link_all(entries)

    assert results[0].action is LinkAction.BACKED_UP
    assert (home / ".zshrc").read_text() == "keep me"
    assert not (home / ".zshrc").is_symlink()
    assert not (home / ".config").exists()
    assert not config.backup_root.exists()


def test_status(manager: SymlinkManager, entries, home: Path) -> None:
    manager.link(entries[0])
    (home / ".config/tmux").mkdir(parents=True)
    (home / ".config/tmux/tmux.conf").symlink_to(FOREIGN_TARGET)
    (home / ".gitconfig").write_text("[user]\n")

    statuses = manager.check(entries)

    assert [s.status for s in statuses] == [
        LinkStatus.LINKED,
        LinkStatus.WRONG_TARGET,
        LinkStatus.CONFLICT,
        LinkStatus.MISSING,
    ]
    counts = summarize(statuses)
    assert counts[LinkStatus.LINKED] == 1
    assert counts[LinkStatus.MISSING] == 1
    assert manager.print_check(statuses) is False


def test_remove(manager: SymlinkManager, entries, home: Path) -> None:
    manager.link_all(entries)
    (home / ".gitconfig").unlink()
    (home / ".gitconfig").write_text("local")
    (home / ".zshrc").unlink()
    (home / ".zshrc").symlink_to(FOREIGN_TARGET)

    removed = [manager.remove(entry) for entry in entries]

    assert removed == [False, True, False, True]
    assert (home / ".gitconfig").read_text() == "local"
    assert (home / ".zshrc").is_symlink()
    assert not (home / ".config/tmux/tmux.conf").exists()


def test_is_managed_link(manager: SymlinkManager, tmp_path: Path) -> None:
    link = tmp_path / "link"
    link.symlink_to("/srv/setup-os/config/x")
    assert manager.is_managed_link(link)
    link.unlink()
    link.symlink_to(FOREIGN_TARGET)
    assert not manager.is_managed_link(link)
    assert not manager.is_managed_link(tmp_path / "missing")


def test_shorten_path(home: Path) -> None:
    assert shorten_path(home / ".zshrc") == "~/.zshrc"
    assert shorten_path(home) == "~"
    assert shorten_path(Path("/etc/hosts")) == "/etc/hosts"


def test_parent_that_is_a_file_raises(manager: SymlinkManager, home: Path) -> None:
    (home / ".config").write_text("not a directory")
    entry = ManifestEntry("config/dotfiles/tmux/tmux.conf", "~/.config/tmux/tmux.conf")
    with pytest.raises(SymlinkError, match="Failed to create directory"):
        manager.link(entry)


def test_unusable_backup_root_raises(config: Config, tmp_path: Path, home: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    config.load_from_dict({"backup_root": str(blocker / "sub")})
    (home / ".zshrc").write_text("keep me")

    with pytest.raises(SymlinkError, match="Failed to back up"):
        SymlinkManager(config, timestamp=STAMP).link(zshrc_entry())
    assert (home / ".zshrc").read_text() == "keep me"

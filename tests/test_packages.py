"""Tests for package lists and category gating."""

from pathlib import Path

import pytest

from setup_os.core.errors import SetupError
from setup_os.core.packages import (
    any_category_enabled,
    category_var,
    enabled_categories,
    enabled_packages,
    load_categories,
    parse_mas_list,
    parse_package_list,
)


@pytest.fixture
def formulae_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "formulae"
    directory.mkdir()
    (directory / "core.txt").write_text("# Core tools\ngit\n\ncurl  # downloads\n  jq\n")
    (directory / "software-dev.txt").write_text("node\ngit\n")
    (directory / "media.txt").write_text("ffmpeg\n")
    (directory / "README.md").write_text("not a package list\n")
    return directory


def test_category_var() -> None:
    assert category_var("FORMULAE", "core") == "FORMULAE_CORE"
    assert category_var("CASKS", "power-user") == "CASKS_POWER_USER"


def test_parse_package_list(formulae_dir: Path) -> None:
    assert parse_package_list(formulae_dir / "core.txt") == ["git", "curl", "jq"]


def test_parse_package_list_missing(tmp_path: Path) -> None:
    with pytest.raises(SetupError, match="Package file not found"):
        parse_package_list(tmp_path / "nope.txt")


def test_parse_mas_list(tmp_path: Path) -> None:
    path = tmp_path / "apps.txt"
    path.write_text("# ID|Name\n497799835|Xcode\nabc|Broken\n441258766\n")
    assert parse_mas_list(path) == [("497799835", "Xcode"), ("441258766", "441258766")]


def test_load_categories_sorted(formulae_dir: Path) -> None:
    categories = load_categories(formulae_dir)
    assert [c.name for c in categories] == ["core", "media", "software-dev"]
    assert categories[2].flag("FORMULAE") == "FORMULAE_SOFTWARE_DEV"


def test_unset_category_is_enabled(formulae_dir: Path) -> None:
    names = [c.name for c in enabled_categories(formulae_dir, "FORMULAE", announce=False)]
    assert names == ["core", "media", "software-dev"]


def test_category_gating(formulae_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORMULAE_MEDIA", "false")
    monkeypatch.setenv("FORMULAE_CORE", "true")
    names = [c.name for c in enabled_categories(formulae_dir, "FORMULAE")]
    assert names == ["core", "software-dev"]


def test_enabled_packages_deduplicated(
    formulae_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("FORMULAE_MEDIA", "no")
    assert enabled_packages(formulae_dir, "FORMULAE", announce=False) == [
        "git",
        "curl",
        "jq",
        "node",
    ]


def test_any_category_enabled(formulae_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert not any_category_enabled(formulae_dir, "FORMULAE")
    monkeypatch.setenv("FORMULAE_MEDIA", "true")
    assert any_category_enabled(formulae_dir, "FORMULAE")
    assert not any_category_enabled(formulae_dir / "missing", "FORMULAE")

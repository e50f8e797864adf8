"""CLI tests for the rip commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner, Result

from ripgrave.cli.rip import app, seance_filters, unbury_filters
from ripgrave.core.config import RipConfig
from ripgrave.core.selection import (
    ExactOrFullPath,
    Glob,
    InScope,
    LocalRelative,
    MostRecent,
)

runner = CliRunner()


@pytest.fixture(autouse=True)
def _in_workdir(workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(workdir)


def rip(graveyard: Path, *args: str, **kwargs: str) -> Result:
    return runner.invoke(app, ["--graveyard", str(graveyard), *args], **kwargs)


def test_bury_and_unbury_last(graveyard: Path, workdir: Path) -> None:
    (workdir / "a.txt").write_text("a")

    buried = rip(graveyard, "bury", "a.txt")
    assert buried.exit_code == 0
    assert "BURIED" in buried.stdout
    assert not (workdir / "a.txt").exists()

    restored = rip(graveyard, "unbury")
    assert restored.exit_code == 0
    assert "Returned" in restored.stdout
    assert (workdir / "a.txt").read_text() == "a"


def test_bury_missing_target_exits_non_zero(graveyard: Path, workdir: Path) -> None:
    (workdir / "ok").write_text("x")

    result = rip(graveyard, "bury", "ok", "missing")

    assert result.exit_code == 1
    assert "FAILED missing" in result.stdout
    assert not (workdir / "ok").exists()


def test_unbury_nothing_to_do(graveyard: Path) -> None:
    result = rip(graveyard, "unbury")

    assert result.exit_code == 0
    assert "Nothing to do" in result.stdout


def test_seance_plain_lists_cwd_only(
    graveyard: Path, workdir: Path, tmp_path: Path
) -> None:
    (workdir / "a.txt").write_text("a")
    outside = tmp_path / "outside.txt"
    outside.write_text("o")
    rip(graveyard, "bury", "a.txt", str(outside))

    local = rip(graveyard, "seance", "--plain")
    everything = rip(graveyard, "seance", "--plain", "--all")

    assert local.exit_code == 0
    assert local.stdout.splitlines() == [str(workdir / "a.txt")]
    assert everything.stdout.splitlines() == [str(workdir / "a.txt"), str(outside)]


def test_seance_with_pattern(graveyard: Path, workdir: Path) -> None:
    for name in ("a.txt", "b.log"):
        (workdir / name).write_text(name)
    rip(graveyard, "bury", "a.txt", "b.log")

    result = rip(graveyard, "seance", "--plain", "*.log")

    assert result.stdout.splitlines() == [str(workdir / "b.log")]


def test_unbury_glob_with_negation(graveyard: Path, workdir: Path) -> None:
    for name in ("a.tmp", "b.tmp", "keep.tmp"):
        (workdir / name).write_text(name)
    rip(graveyard, "bury", "a.tmp", "b.tmp", "keep.tmp")

    result = rip(graveyard, "unbury", "--local", "*.tmp", "!keep.tmp")

    assert result.exit_code == 0
    assert (workdir / "a.tmp").exists()
    assert (workdir / "b.tmp").exists()
    assert not (workdir / "keep.tmp").exists()


def test_unbury_by_path(graveyard: Path, workdir: Path) -> None:
    for name in ("a", "b"):
        (workdir / name).write_text(name)
    rip(graveyard, "bury", "a", "b")

    result = rip(graveyard, "unbury", "a")

    assert result.exit_code == 0
    assert (workdir / "a").exists()
    assert not (workdir / "b").exists()


def test_unbury_seance_with_target(
    graveyard: Path, workdir: Path, tmp_path: Path
) -> None:
    (workdir / "a").write_text("a")
    outside = tmp_path / "outside.txt"
    outside.write_text("o")
    rip(graveyard, "bury", "a", str(outside))

    result = rip(graveyard, "unbury", "--seance", str(outside))

    assert result.exit_code == 0
    assert (workdir / "a").exists()
    assert outside.exists()


def test_decompose_requires_confirmation(graveyard: Path, workdir: Path) -> None:
    (workdir / "a").write_text("a")
    rip(graveyard, "bury", "a")

    declined = rip(graveyard, "decompose", input="n\n")
    assert declined.exit_code == 1
    assert (graveyard / ".record").read_text() != ""

    accepted = rip(graveyard, "decompose", input="y\n")
    assert accepted.exit_code == 0
    assert (graveyard / ".record").read_text() == ""


def test_decompose_yes_and_prune(graveyard: Path, workdir: Path) -> None:
    (workdir / "a").write_text("a")
    rip(graveyard, "bury", "a")

    assert rip(graveyard, "decompose", "--yes").exit_code == 0

    pruned = rip(graveyard, "prune")
    assert pruned.exit_code == 0
    assert "Pruned 0 stale record(s)" in pruned.stdout


def test_graveyard_from_environment(
    tmp_path: Path, workdir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    graveyard = tmp_path / "env-graveyard"
    monkeypatch.setenv("GRAVEYARD", str(graveyard))
    (workdir / "a").write_text("a")

    result = runner.invoke(app, ["bury", "a"])

    assert result.exit_code == 0
    assert (graveyard / ".record").exists()


class TestFilterTranslation:
    """Test how command-line targets become selection filters."""

    def test_no_target_is_most_recent(self, config: RipConfig) -> None:
        assert unbury_filters([], config) == [MostRecent(None)]

    def test_no_target_local(self, config: RipConfig) -> None:
        config.local = True

        assert unbury_filters([], config) == [MostRecent(config.cwd)]

    def test_seance_mode_restores_cwd(self, config: RipConfig) -> None:
        assert unbury_filters([], config, seance=True) == [InScope(config.cwd)]

    def test_seance_mode_adds_cwd_to_targets(self, config: RipConfig) -> None:
        filters = unbury_filters(["a.txt"], config, seance=True)

        assert filters == [ExactOrFullPath(config.cwd / "a.txt"), InScope(config.cwd)]

    def test_paths_and_globs(self, config: RipConfig) -> None:
        filters = unbury_filters(["a.txt", "*.log", "!x.log"], config)

        assert filters == [
            ExactOrFullPath(config.cwd / "a.txt"),
            Glob(["*.log", "!x.log"]),
        ]

    def test_local_paths(self, config: RipConfig) -> None:
        config.local = True

        [path_filter, glob_filter] = unbury_filters(["a.txt", "*.log"], config)

        assert path_filter == LocalRelative(Path("a.txt"), config.cwd)
        assert isinstance(glob_filter, Glob)
        assert glob_filter.scope == config.cwd

    def test_seance_filters(self, config: RipConfig) -> None:
        assert seance_filters([], config) == [InScope(config.cwd)]
        assert seance_filters([], config, show_all=True) == [InScope(None)]
        assert seance_filters(["*.txt"], config) == [
            Glob(["*.txt"], scope=config.cwd)
        ]

"""Tests for the restoration engine."""

import errno
from pathlib import Path
from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from ripgrave.core.burial import BurialEngine, BuryOptions
from ripgrave.core.errors import RecordStoreLockError, TargetNotFoundError
from ripgrave.core.restoration import RestorationEngine, restore_destination
from ripgrave.core.schemas import BurialRecord, RestoreMode
from ripgrave.core.selection import ExactOrFullPath, MostRecent, SelectionEngine
from ripgrave.fs.record import RecordStore


@pytest.fixture
def engines(
    graveyard: Path, store: RecordStore
) -> tuple[BurialEngine, SelectionEngine, RestorationEngine]:
    return (
        BurialEngine(graveyard, store),
        SelectionEngine(store, graveyard),
        RestorationEngine(store),
    )


def bury_file(engine: BurialEngine, path: Path, content: str) -> BurialRecord:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    [outcome] = engine.bury([path], BuryOptions(cwd=path.parent))
    assert outcome.record is not None
    return outcome.record


class TestRestoreDestination:
    """Test where restored content goes."""

    record = BurialRecord(
        original_path=Path("/home/u/proj/src/main.py"),
        graveyard_path=Path("/g/home/u/proj/src/main.py"),
    )

    def test_original_mode(self) -> None:
        """Test that original mode returns the recorded path."""
        assert restore_destination(self.record) == Path("/home/u/proj/src/main.py")

    def test_local_mode_keeps_relative_position(self) -> None:
        """Test local restore below the original's ancestor."""
        destination = restore_destination(
            self.record, RestoreMode.LOCAL, Path("/home/u/proj")
        )

        assert destination == Path("/home/u/proj/src/main.py")

    def test_local_mode_elsewhere_uses_basename(self) -> None:
        """Test local restore from an unrelated directory."""
        destination = restore_destination(
            self.record, RestoreMode.LOCAL, Path("/tmp/elsewhere")
        )

        assert destination == Path("/tmp/elsewhere/main.py")


class TestRestore:
    """Test moving content back out of the graveyard."""

    def test_round_trip_is_byte_identical(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
        store: RecordStore,
    ) -> None:
        """Test bury then restore by exact path."""
        burial, selection, restoration = engines
        target = workdir / "data.bin"
        target.write_bytes(bytes(range(256)))
        burial.bury([target], BuryOptions(cwd=workdir))

        records = selection.select(ExactOrFullPath(target))
        [outcome] = restoration.restore(records)

        assert outcome.status == "restored"
        assert outcome.method == "rename"
        assert target.read_bytes() == bytes(range(256))
        assert list(store.scan()) == []

    def test_most_recent_scenario(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
        store: RecordStore,
    ) -> None:
        """Test undoing two burials one after the other."""
        burial, selection, restoration = engines
        a = bury_file(burial, workdir / "a.txt", "a")
        b = bury_file(burial, workdir / "b.txt", "b")

        [first] = restoration.restore(selection.select(MostRecent()))

        assert first.record == b
        assert (workdir / "b.txt").read_text() == "b"
        assert not (workdir / "a.txt").exists()
        assert list(store.scan()) == [a]

        [second] = restoration.restore(selection.select(MostRecent()))

        assert second.record == a
        assert (workdir / "a.txt").read_text() == "a"
        assert list(store.scan()) == []
        assert selection.select(MostRecent()) == []

    def test_occupied_original_gets_suffix(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
        store: RecordStore,
    ) -> None:
        """Test restoring two burials of the same path."""
        burial, selection, restoration = engines
        target = workdir / "notes.txt"
        bury_file(burial, target, "first")
        bury_file(burial, target, "second")

        outcomes = restoration.restore(selection.select(ExactOrFullPath(target)))

        assert [o.destination for o in outcomes] == [
            target,
            target.with_name("notes.txt~1"),
        ]
        assert target.read_text() == "first"
        assert target.with_name("notes.txt~1").read_text() == "second"
        assert list(store.scan()) == []

    def test_reverse_order(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
    ) -> None:
        """Test restoring newest first."""
        burial, selection, restoration = engines
        target = workdir / "notes.txt"
        bury_file(burial, target, "first")
        bury_file(burial, target, "second")

        restoration.restore(selection.select(ExactOrFullPath(target)), reverse=True)

        assert target.read_text() == "second"
        assert target.with_name("notes.txt~1").read_text() == "first"

    def test_local_mode(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
        tmp_path: Path,
    ) -> None:
        """Test restoring into the current directory."""
        burial, selection, restoration = engines
        record = bury_file(burial, workdir / "deep" / "f.txt", "x")
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()

        [outcome] = restoration.restore(
            [record], RestoreMode.LOCAL, current_directory=elsewhere
        )

        assert outcome.destination == elsewhere / "f.txt"
        assert (elsewhere / "f.txt").read_text() == "x"
        assert not (workdir / "deep" / "f.txt").exists()

    def test_missing_parent_is_recreated(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
    ) -> None:
        """Test restoring into a directory that was removed meanwhile."""
        burial, _, restoration = engines
        record = bury_file(burial, workdir / "gone" / "f.txt", "x")
        (workdir / "gone").rmdir()

        [outcome] = restoration.restore([record])

        assert outcome.status == "restored"
        assert (workdir / "gone" / "f.txt").read_text() == "x"


class TestRestoreFailures:
    """Test that failures are isolated per record."""

    def test_missing_grave_keeps_record(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
        store: RecordStore,
    ) -> None:
        """Test a record whose content disappeared."""
        burial, _, restoration = engines
        gone = bury_file(burial, workdir / "gone.txt", "x")
        kept = bury_file(burial, workdir / "kept.txt", "y")
        gone.graveyard_path.unlink()

        with capture_logs() as logs:
            outcomes = restoration.restore([gone, kept])

        assert [o.status for o in outcomes] == ["failed", "restored"]
        assert isinstance(outcomes[0].error, TargetNotFoundError)
        assert list(store.scan()) == [gone]
        assert any(e["event"] == "restore.missing_grave" for e in logs)

    def test_move_failure_keeps_record(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
        store: RecordStore,
    ) -> None:
        """Test that a failed move leaves the record untouched."""
        burial, _, restoration = engines
        record = bury_file(burial, workdir / "f.txt", "x")

        with (
            patch(
                "ripgrave.core.restoration.move_path",
                side_effect=PermissionError(errno.EACCES, "denied"),
            ),
            capture_logs(),
        ):
            [outcome] = restoration.restore([record])

        assert outcome.status == "failed"
        assert "denied" in (outcome.reason or "")
        assert record.graveyard_path.exists()
        assert list(store.scan()) == [record]

    def test_record_removal_failure_is_a_warning(
        self,
        engines: tuple[BurialEngine, SelectionEngine, RestorationEngine],
        workdir: Path,
        store: RecordStore,
    ) -> None:
        """Test that the content stays restored if the record cannot be updated."""
        burial, _, restoration = engines
        record = bury_file(burial, workdir / "f.txt", "x")

        with (
            patch.object(
                store, "remove", side_effect=RecordStoreLockError(store.path, 2)
            ),
            capture_logs() as logs,
        ):
            [outcome] = restoration.restore([record])

        assert outcome.status == "restored"
        assert outcome.warning is not None
        assert (workdir / "f.txt").read_text() == "x"
        assert any(e["event"] == "restore.record_not_removed" for e in logs)

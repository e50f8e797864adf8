"""Restoration engine: move buried content back out of the graveyard.

Records are restored independently. The record is removed only after
the reverse move succeeded; a failed restore leaves it untouched.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import structlog

from ripgrave.core.constants import MOVE_CLAIM_RETRIES
from ripgrave.core.errors import RipError, TargetNotFoundError
from ripgrave.core.schemas import BurialRecord, RestoreMode
from ripgrave.fs.conflicts import resolve
from ripgrave.fs.fs_ops import MoveMethod, move_path
from ripgrave.fs.paths import is_within, lexical_normalize
from ripgrave.fs.record import RecordStore


@dataclass
class RestoreOutcome:
    """Result of restoring one record."""

    record: BurialRecord
    status: Literal["restored", "failed"]
    destination: Path | None = None
    method: MoveMethod | None = None
    error: RipError | OSError | None = None
    warning: str | None = None

    @property
    def reason(self) -> str | None:
        return str(self.error) if self.error is not None else None


def restore_destination(
    record: BurialRecord,
    mode: RestoreMode = RestoreMode.ORIGINAL,
    current_directory: Path | None = None,
) -> Path:
    """Where a record's content should go back to.

    In local mode a record buried from below ``current_directory`` keeps its
    relative position there; anything else lands in ``current_directory``
    under its base name.
    """
    if mode is not RestoreMode.LOCAL:
        return record.original_path

    cwd = lexical_normalize(current_directory or Path.cwd())
    if is_within(record.original_path, cwd) and record.original_path != cwd:
        return cwd / record.original_path.relative_to(cwd)
    return cwd / record.original_path.name


class RestorationEngine:
    """Moves records' content back and removes their records."""

    def __init__(self, store: RecordStore, logger: Any = None) -> None:
        """Initialize restoration engine.

        Args:
            store: Record store the restored records are removed from
            logger: Optional structlog logger instance
        """
        self.store = store
        self._logger = logger or structlog.get_logger(__name__)

    def restore(
        self,
        records: Sequence[BurialRecord],
        mode: RestoreMode = RestoreMode.ORIGINAL,
        current_directory: Path | None = None,
        reverse: bool = False,
    ) -> list[RestoreOutcome]:
        """Restore records oldest-first (newest-first with ``reverse``).

        Args:
            records: Records to restore, usually from SelectionEngine
            mode: Restore to the original path or relative to the cwd
            current_directory: Base directory for local mode
            reverse: Process newest records first

        Returns:
            One outcome per record
        """
        ordered = list(reversed(records)) if reverse else list(records)
        return [self.restore_one(r, mode, current_directory) for r in ordered]

    def restore_one(
        self,
        record: BurialRecord,
        mode: RestoreMode = RestoreMode.ORIGINAL,
        current_directory: Path | None = None,
    ) -> RestoreOutcome:
        """Restore a single record; errors are captured in the outcome."""
        log = self._logger.bind(grave=str(record.graveyard_path))

        if not os.path.lexists(record.graveyard_path):
            e = TargetNotFoundError(record.graveyard_path)
            log.warning("restore.missing_grave", original=str(record.original_path))
            return RestoreOutcome(record=record, status="failed", error=e)

        wanted = restore_destination(record, mode, current_directory)
        try:
            destination, method = self._move_out(record.graveyard_path, wanted)
        except (RipError, OSError) as e:
            log.warning("restore.failed", destination=str(wanted), reason=str(e))
            return RestoreOutcome(
                record=record, status="failed", destination=wanted, error=e
            )

        outcome = RestoreOutcome(
            record=record, status="restored", destination=destination, method=method
        )
        try:
            self.store.remove([record.graveyard_path])
        except (RipError, OSError) as e:
            outcome.warning = f"record not removed: {e}"
            log.error("restore.record_not_removed", reason=str(e))

        log.info("restore.item", destination=str(destination), method=method)
        return outcome

    def _move_out(self, grave: Path, wanted: Path) -> tuple[Path, MoveMethod]:
        for _ in range(MOVE_CLAIM_RETRIES):
            destination = resolve(wanted)
            try:
                return destination, move_path(grave, destination)
            except FileExistsError:
                # Claimed by another process between probe and move
                continue
        destination = resolve(wanted)
        return destination, move_path(grave, destination)

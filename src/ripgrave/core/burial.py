"""Burial engine: move targets into the graveyard and record them.

Each target is processed independently; a failure is reported in its
outcome and never stops the rest of the batch. A record is appended only
after the content has actually been relocated.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import structlog

from ripgrave.core.constants import LOCK_NAME, MOVE_CLAIM_RETRIES, RECORD_NAME
from ripgrave.core.errors import (
    RipError,
    TargetInGraveyardError,
    TargetNotFoundError,
)
from ripgrave.core.schemas import BurialRecord
from ripgrave.fs.conflicts import resolve_grave
from ripgrave.fs.fs_ops import MoveMethod, move_path, remove_path
from ripgrave.fs.paths import (
    absolutize,
    canonicalize,
    ensure_graveyard,
    is_within,
    join_absolute,
)
from ripgrave.fs.record import RecordStore


@dataclass
class BuryOptions:
    """Options for burial.

    Attributes:
        cwd: Directory relative targets are resolved against
        purge_in_graveyard: Permanently delete targets already inside the
            graveyard instead of failing on them
    """

    cwd: Path = field(default_factory=Path.cwd)
    purge_in_graveyard: bool = False


@dataclass
class BurialOutcome:
    """Result of burying one target."""

    target: str
    status: Literal["buried", "purged", "failed"]
    source: Path | None = None
    destination: Path | None = None
    method: MoveMethod | None = None
    record: BurialRecord | None = None
    error: RipError | OSError | None = None

    @property
    def reason(self) -> str | None:
        return str(self.error) if self.error is not None else None


class BurialEngine:
    """Moves targets into a graveyard and appends burial records."""

    def __init__(
        self,
        graveyard_root: Path,
        store: RecordStore | None = None,
        logger: Any = None,
    ) -> None:
        """Initialize burial engine.

        Args:
            graveyard_root: Absolute graveyard root
            store: Record store (defaults to the graveyard's own record)
            logger: Optional structlog logger instance
        """
        self.graveyard_root = graveyard_root
        self.store = store or RecordStore(graveyard_root)
        self._logger = logger or structlog.get_logger(__name__)

    def bury(
        self, targets: Sequence[str | Path], options: BuryOptions | None = None
    ) -> list[BurialOutcome]:
        """Bury each target, returning one outcome per target.

        Raises:
            GraveyardUnwritableError: If the graveyard cannot be used at all
        """
        options = options or BuryOptions()
        ensure_graveyard(self.graveyard_root)
        return [self.bury_one(target, options) for target in targets]

    def bury_one(self, target: str | Path, options: BuryOptions) -> BurialOutcome:
        """Bury a single target; errors are captured in the outcome."""
        label = os.fspath(target)
        log = self._logger.bind(target=label)

        try:
            source = self._resolve_source(target, options.cwd)
        except RipError as e:
            log.warning("bury.failed", reason=str(e))
            return BurialOutcome(target=label, status="failed", error=e)

        if is_within(self.graveyard_root, source):
            e = TargetInGraveyardError(f"{source} contains the graveyard", source)
            log.warning("bury.failed", reason=str(e))
            return BurialOutcome(target=label, status="failed", source=source, error=e)

        if is_within(source, self.graveyard_root):
            if options.purge_in_graveyard:
                return self._purge(label, source, log)
            e = TargetInGraveyardError(f"{source} is already in the graveyard", source)
            log.warning("bury.failed", reason=str(e))
            return BurialOutcome(target=label, status="failed", source=source, error=e)

        destination: Path | None = None
        try:
            destination, method = self._move_into_graveyard(source)
        except (RipError, OSError) as e:
            log.warning("bury.failed", source=str(source), reason=str(e))
            return BurialOutcome(
                target=label,
                status="failed",
                source=source,
                destination=destination,
                error=e,
            )

        record = BurialRecord(original_path=source, graveyard_path=destination)
        try:
            self.store.append(record)
        except (RipError, OSError) as e:
            self._unwind(source, destination, log)
            log.error("bury.record_failed", source=str(source), reason=str(e))
            return BurialOutcome(
                target=label,
                status="failed",
                source=source,
                destination=destination,
                error=e,
            )

        log.info("bury.item", source=str(source), grave=str(destination), method=method)
        return BurialOutcome(
            target=label,
            status="buried",
            source=source,
            destination=destination,
            method=method,
            record=record,
        )

    def decompose(self) -> list[BurialRecord]:
        """Permanently delete all graveyard content and truncate the record.

        Confirmation is the caller's job. Runs under the record's exclusive
        lock so no burial can be recorded halfway through.

        Returns:
            The records that were discarded
        """
        if not self.graveyard_root.exists():
            return []

        def purge() -> None:
            for entry in self.graveyard_root.iterdir():
                if entry.name in (RECORD_NAME, LOCK_NAME):
                    continue
                remove_path(entry)

        records = self.store.clear(purge=purge)
        self._logger.info(
            "decompose.done", graveyard=str(self.graveyard_root), records=len(records)
        )
        return records

    def _resolve_source(self, target: str | Path, cwd: Path) -> Path:
        if not os.path.lexists(absolutize(target, cwd)):
            raise TargetNotFoundError(target)
        return canonicalize(target, cwd)

    def _move_into_graveyard(self, source: Path) -> tuple[Path, MoveMethod]:
        candidate = join_absolute(self.graveyard_root, source)
        for _ in range(MOVE_CLAIM_RETRIES):
            destination = resolve_grave(candidate, self.graveyard_root)
            try:
                return destination, move_path(source, destination)
            except FileExistsError:
                # Claimed by another process between probe and move
                continue
        destination = resolve_grave(candidate, self.graveyard_root)
        return destination, move_path(source, destination)

    def _purge(self, label: str, source: Path, log: Any) -> BurialOutcome:
        try:
            remove_path(source)
        except OSError as e:
            log.warning("bury.purge_failed", reason=str(e))
            return BurialOutcome(target=label, status="failed", source=source, error=e)
        log.info("bury.purged", source=str(source))
        return BurialOutcome(target=label, status="purged", source=source)

    def _unwind(self, source: Path, destination: Path, log: Any) -> None:
        """Move unrecorded content back so nothing is buried without a record."""
        try:
            move_path(destination, source)
        except (RipError, OSError) as e:
            log.error(
                "bury.unwind_failed",
                source=str(source),
                grave=str(destination),
                reason=str(e),
            )

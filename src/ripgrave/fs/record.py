"""Append-only record log of burial events.

The record lives at ``<graveyard>/.record``, one burial per line::

    <unix_timestamp>\t<original_path>\t<graveyard_path>

Backslash, TAB, CR and LF inside paths are escaped (``\\\\``, ``\\t``,
``\\r``, ``\\n``) so every line splits into exactly three fields.
Bytes that are not valid UTF-8 round-trip through ``surrogateescape``.

Cross-process access is coordinated with ``flock`` on a sidecar lock
file: readers share it, writers (append, remove, clear) hold it
exclusively. Removal rewrites the log into a temp file that replaces the
original, so the log itself cannot carry the lock.
"""

from __future__ import annotations

import fcntl
import os
import re
import tempfile
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import structlog

from ripgrave.core.constants import (
    LEGACY_TIMESTAMP_FORMAT,
    LOCK_BACKOFF,
    LOCK_MAX_BACKOFF,
    LOCK_NAME,
    LOCK_RETRIES,
    RECORD_DELIMITER,
    RECORD_NAME,
)
from ripgrave.core.errors import RecordStoreCorruptionError, RecordStoreLockError
from ripgrave.core.schemas import BurialRecord
from ripgrave.utils.debug import debug

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"

_ESCAPES = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "t": "\t", "n": "\n", "r": "\r"}
_ESCAPE_RE = re.compile(r"\\(.?)", re.DOTALL)


def _escape(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def _unescape(value: str) -> str:
    def replace(match: re.Match[str]) -> str:
        code = match.group(1)
        if code not in _UNESCAPES:
            raise ValueError(f"invalid escape sequence '\\{code}'")
        return _UNESCAPES[code]

    return _ESCAPE_RE.sub(replace, value)


def _format_timestamp(moment: datetime) -> str:
    delta = moment - _EPOCH
    seconds = delta.days * 86400 + delta.seconds
    return f"{seconds}.{delta.microseconds:06d}"


def _parse_timestamp(field: str) -> datetime:
    whole, _, fraction = field.partition(".")
    if whole.lstrip("-").isdigit() and (not fraction or fraction.isdigit()):
        micros = int(fraction.ljust(6, "0")[:6]) if fraction else 0
        return _EPOCH + timedelta(seconds=int(whole), microseconds=micros)

    # Older releases wrote local time as "Mon Jan  1 12:00:00 2024"
    legacy = datetime.strptime(" ".join(field.split()), LEGACY_TIMESTAMP_FORMAT)
    return legacy.astimezone()


def encode_record(record: BurialRecord) -> str:
    """Encode a record as one log line (without the trailing newline)."""
    return RECORD_DELIMITER.join(
        (
            _format_timestamp(record.timestamp),
            _escape(os.fsdecode(record.original_path)),
            _escape(os.fsdecode(record.graveyard_path)),
        )
    )


def parse_record(line: str, line_number: int = 0) -> BurialRecord:
    """Parse one log line.

    Args:
        line: Raw line without its newline
        line_number: Position in the log, used for error reporting

    Returns:
        The decoded record

    Raises:
        RecordStoreCorruptionError: If the line is malformed
    """
    fields = line.split(RECORD_DELIMITER)
    if len(fields) != 3:
        raise RecordStoreCorruptionError(
            line_number, line, f"expected 3 fields, found {len(fields)}"
        )

    try:
        return BurialRecord(
            timestamp=_parse_timestamp(fields[0]),
            original_path=Path(_unescape(fields[1])),
            graveyard_path=Path(_unescape(fields[2])),
        )
    except ValueError as e:
        raise RecordStoreCorruptionError(line_number, line, str(e)) from e


class RecordStore:
    """Durable, lock-protected log of burial events.

    Records are kept in append order; the last line is the most recent
    burial. The log is the single source of truth for what is buried.
    """

    def __init__(
        self,
        graveyard_root: Path,
        *,
        lock_retries: int = LOCK_RETRIES,
        lock_backoff: float = LOCK_BACKOFF,
        logger: Any = None,
    ) -> None:
        """Initialize the store.

        Args:
            graveyard_root: Graveyard directory holding the record
            lock_retries: Non-blocking lock attempts before giving up
            lock_backoff: Initial delay between attempts, doubled each time
            logger: Optional structlog logger instance
        """
        self.graveyard_root = graveyard_root
        self.path = graveyard_root / RECORD_NAME
        self.lock_path = graveyard_root / LOCK_NAME
        self.lock_retries = max(1, lock_retries)
        self.lock_backoff = lock_backoff
        self._logger = (logger or structlog.get_logger(__name__)).bind(
            record=str(self.path)
        )

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self, exclusive: bool) -> Iterator[None]:
        self.graveyard_root.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            self._acquire(lock_file.fileno(), exclusive)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _acquire(self, fd: int, exclusive: bool) -> None:
        operation = (fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH) | fcntl.LOCK_NB
        delay = self.lock_backoff
        for attempt in range(1, self.lock_retries + 1):
            try:
                fcntl.flock(fd, operation)
                return
            except BlockingIOError:
                if attempt == self.lock_retries:
                    break
                debug(f"Record lock busy (attempt {attempt}), retrying in {delay}s")
                time.sleep(delay)
                delay = min(delay * 2, LOCK_MAX_BACKOFF)

        self._logger.error("record.lock_failed", attempts=self.lock_retries)
        raise RecordStoreLockError(self.path, self.lock_retries)

    # ------------------------------------------------------------------
    # File access (callers hold the lock)
    # ------------------------------------------------------------------

    def _read_lines(self) -> list[str]:
        if not self.path.exists():
            return []
        with open(self.path, encoding=_ENCODING, errors=_ERRORS, newline="") as f:
            return [line for line in f.read().split("\n") if line]

    def _parse_lines(self, lines: Iterable[str]) -> Iterator[BurialRecord]:
        for number, line in enumerate(lines, start=1):
            try:
                yield parse_record(line, number)
            except RecordStoreCorruptionError as e:
                self._logger.warning(
                    "record.malformed_line", line_number=number, reason=str(e)
                )

    def _ends_with_newline(self) -> bool:
        with open(self.path, "rb") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return True
            f.seek(-1, os.SEEK_END)
            return f.read(1) == b"\n"

    def _rewrite(self, lines: list[str]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.graveyard_root, prefix=f"{RECORD_NAME}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
                f.writelines(f"{line}\n" for line in lines)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, record: BurialRecord) -> None:
        """Append one record, durable before the lock is released."""
        line = encode_record(record)
        with self._locked(exclusive=True):
            prefix = "" if not self.path.exists() or self._ends_with_newline() else "\n"
            with open(
                self.path, "a", encoding=_ENCODING, errors=_ERRORS, newline=""
            ) as f:
                f.write(f"{prefix}{line}\n")
                f.flush()
                os.fsync(f.fileno())

        self._logger.debug(
            "record.appended",
            original=str(record.original_path),
            grave=str(record.graveyard_path),
        )

    def scan(self) -> Iterator[BurialRecord]:
        """Iterate over all records, oldest first.

        The log is read under a shared lock when this is called; lines are
        parsed lazily afterwards. Malformed lines are skipped with a warning.
        """
        if not self.path.exists():
            return iter(())
        with self._locked(exclusive=False):
            lines = self._read_lines()
        return self._parse_lines(lines)

    def remove(self, graveyard_paths: Iterable[Path | str]) -> int:
        """Remove every record whose graveyard path is in ``graveyard_paths``.

        The log is re-read under the exclusive lock that also performs the
        atomic replace, so appends made before the lock was taken survive.
        Malformed lines are preserved verbatim.

        Returns:
            Number of records removed
        """
        targets = {Path(p) for p in graveyard_paths}
        if not targets or not self.path.exists():
            return 0

        with self._locked(exclusive=True):
            kept: list[str] = []
            removed = 0
            for number, line in enumerate(self._read_lines(), start=1):
                try:
                    record = parse_record(line, number)
                except RecordStoreCorruptionError:
                    kept.append(line)
                    continue
                if record.graveyard_path in targets:
                    removed += 1
                else:
                    kept.append(line)

            if removed:
                self._rewrite(kept)

        self._logger.debug("record.removed", count=removed)
        return removed

    def clear(self, purge: Callable[[], None] | None = None) -> list[BurialRecord]:
        """Truncate the log, optionally running ``purge`` under the same lock.

        Args:
            purge: Callback deleting graveyard content while writers are
                locked out

        Returns:
            The records that were discarded
        """
        with self._locked(exclusive=True):
            records = list(self._parse_lines(self._read_lines()))
            if purge is not None:
                purge()
            with open(self.path, "w", encoding=_ENCODING) as f:
                f.flush()
                os.fsync(f.fileno())

        self._logger.info("record.cleared", count=len(records))
        return records

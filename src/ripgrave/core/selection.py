"""Selection of burial records for listing (seance) and restoration.

A selection is made of filters. ``MostRecent`` stands alone; the other
filters may be combined and their matches are unioned. Results always
come back in log order (oldest first), so listing indices stay stable
between invocations as long as nobody else modifies the record.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from ripgrave.core.constants import DEFAULT_MAX_DEPTH
from ripgrave.core.errors import AmbiguousFilterError, RecordNotFoundError
from ripgrave.core.globbing import GlobSet
from ripgrave.core.schemas import BurialRecord
from ripgrave.fs.paths import is_within, lexical_normalize, local_rebase, mirror
from ripgrave.fs.record import RecordStore


@dataclass(frozen=True)
class MostRecent:
    """The last burial, optionally the last one under ``scope``."""

    scope: Path | None = None


@dataclass(frozen=True)
class ExactOrFullPath:
    """Records whose original or graveyard path equals ``path``."""

    path: Path


@dataclass(frozen=True)
class LocalRelative:
    """A name relative to ``current_directory``, matched like ExactOrFullPath."""

    path: Path
    current_directory: Path


@dataclass(frozen=True, init=False)
class Glob:
    """Glob patterns evaluated against records under ``scope``.

    Attributes:
        patterns: One pattern or a group (``!`` negates)
        scope: Base directory; ``None`` means the whole filesystem
        max_depth: Deepest match below the base, in segments
        full_path: Match graveyard paths instead of original paths
    """

    patterns: tuple[str, ...]
    scope: Path | None = None
    max_depth: int = DEFAULT_MAX_DEPTH
    full_path: bool = False

    def __init__(
        self,
        patterns: str | Sequence[str],
        scope: Path | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        full_path: bool = False,
    ) -> None:
        if isinstance(patterns, str):
            patterns = (patterns,)
        object.__setattr__(self, "patterns", tuple(patterns))
        object.__setattr__(self, "scope", scope)
        object.__setattr__(self, "max_depth", max_depth)
        object.__setattr__(self, "full_path", full_path)


@dataclass(frozen=True)
class InScope:
    """Every record whose original path is ``scope`` or below it."""

    scope: Path | None = None


Filter = MostRecent | ExactOrFullPath | LocalRelative | Glob | InScope


class _Matcher:
    """Filters compiled once against one graveyard root."""

    def __init__(self, graveyard_root: Path, filters: Sequence[Filter]) -> None:
        self.graveyard_root = graveyard_root
        self.targets: list[Path] = []
        self.scopes: list[Path] = []
        self.globs: list[tuple[Glob, Path, GlobSet]] = []
        for f in filters:
            if isinstance(f, ExactOrFullPath):
                self.targets.append(lexical_normalize(f.path))
            elif isinstance(f, LocalRelative):
                self.targets.append(local_rebase(f.path, f.current_directory))
            elif isinstance(f, InScope):
                self.scopes.append(lexical_normalize(f.scope or "/"))
            elif isinstance(f, Glob):
                base = lexical_normalize(f.scope or "/")
                self.globs.append((f, base, GlobSet(f.patterns, f.max_depth)))
        self.target_graves = {mirror(t, graveyard_root) for t in self.targets}

    def matches(self, record: BurialRecord) -> bool:
        if record.original_path in self.targets:
            return True
        if record.graveyard_path in self.targets:
            return True
        if record.graveyard_path in self.target_graves:
            return True
        if any(is_within(record.original_path, s) for s in self.scopes):
            return True
        return any(self._glob_matches(*g, record) for g in self.globs)

    def _glob_matches(
        self, glob: Glob, base: Path, globset: GlobSet, record: BurialRecord
    ) -> bool:
        if not is_within(record.original_path, base):
            return False
        if glob.full_path:
            return globset.matches(
                record.graveyard_path, mirror(base, self.graveyard_root)
            )
        return globset.matches(record.original_path, base)


class SelectionEngine:
    """Reads the record store and applies selection filters."""

    def __init__(
        self, store: RecordStore, graveyard_root: Path, logger: Any = None
    ) -> None:
        """Initialize selection engine.

        Args:
            store: Record store to read from
            graveyard_root: Graveyard root the records live under
            logger: Optional structlog logger instance
        """
        self.store = store
        self.graveyard_root = graveyard_root
        self._logger = logger or structlog.get_logger(__name__)

    def select(
        self, filters: Filter | Sequence[Filter], *, require: bool = False
    ) -> list[BurialRecord]:
        """Return the records matching ``filters`` in log order.

        Records whose graveyard content is missing are skipped.

        Args:
            filters: One filter or a sequence of filters
            require: Raise instead of returning an empty list

        Raises:
            AmbiguousFilterError: For an empty selection or MostRecent
                combined with anything else
            RecordNotFoundError: If ``require`` and nothing matched
        """
        filters = self._validate(filters)

        if isinstance(filters[0], MostRecent):
            selected = self._most_recent(filters[0])
        else:
            matcher = _Matcher(self.graveyard_root, filters)
            selected = []
            seen: set[Path] = set()
            for record in self.store.scan():
                if record.graveyard_path in seen or not matcher.matches(record):
                    continue
                if not self._present(record):
                    continue
                seen.add(record.graveyard_path)
                selected.append(record)

        self._logger.debug(
            "select.done",
            filters=[type(f).__name__ for f in filters],
            count=len(selected),
        )
        if require and not selected:
            raise RecordNotFoundError()
        return selected

    def stale_records(self) -> list[BurialRecord]:
        """Records whose graveyard content no longer exists."""
        return [
            r for r in self.store.scan() if not os.path.lexists(r.graveyard_path)
        ]

    def prune_stale(self) -> int:
        """Remove stale records from the store.

        Returns:
            Number of records removed
        """
        stale = self.stale_records()
        if not stale:
            return 0
        return self.store.remove(r.graveyard_path for r in stale)

    def _validate(self, filters: Filter | Sequence[Filter]) -> list[Filter]:
        if not isinstance(filters, Sequence):
            filters = [filters]
        filters = list(filters)
        if not filters:
            raise AmbiguousFilterError("Selection needs at least one filter")
        if len(filters) > 1 and any(isinstance(f, MostRecent) for f in filters):
            raise AmbiguousFilterError(
                "'most recent' cannot be combined with other filters"
            )
        return filters

    def _most_recent(self, f: MostRecent) -> list[BurialRecord]:
        records = list(self.store.scan())
        for record in reversed(records):
            if f.scope is not None and not is_within(record.original_path, f.scope):
                continue
            if self._present(record):
                return [record]
        return []

    def _present(self, record: BurialRecord) -> bool:
        if os.path.lexists(record.graveyard_path):
            return True
        self._logger.warning(
            "select.stale_record",
            original=str(record.original_path),
            grave=str(record.graveyard_path),
        )
        return False

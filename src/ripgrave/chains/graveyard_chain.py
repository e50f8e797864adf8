"""Graveyard chain orchestrating bury, seance, unbury and decompose.

This module provides the GraveyardChain class, the interface consumed by
the CLI. It wires the engines to one explicitly configured graveyard,
binds structured logging context and renders Rich console output.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ripgrave.core.burial import BurialEngine, BurialOutcome, BuryOptions
from ripgrave.core.config import RipConfig
from ripgrave.core.restoration import RestorationEngine, RestoreOutcome
from ripgrave.core.schemas import BurialRecord, RestoreMode
from ripgrave.core.selection import Filter, SelectionEngine
from ripgrave.fs.paths import entry_type
from ripgrave.fs.record import RecordStore


@dataclass
class BurialReport:
    """Summary report of a bury invocation."""

    outcomes: list[BurialOutcome] = field(default_factory=list)

    @property
    def buried_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "buried")

    @property
    def purged_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "purged")

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "failed")


@dataclass
class RestoreReport:
    """Summary report of an unbury invocation."""

    outcomes: list[RestoreOutcome] = field(default_factory=list)

    @property
    def restored_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "restored")

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "failed")

    @property
    def nothing_to_do(self) -> bool:
        return not self.outcomes


class GraveyardChain:
    """Facade over the burial, selection and restoration engines.

    Every operation runs against ``config.graveyard``; there is no
    process-wide graveyard.
    """

    def __init__(
        self, config: RipConfig, logger: Any = None, ui: Console | None = None
    ) -> None:
        """Initialize graveyard chain.

        Args:
            config: Resolved invocation settings
            logger: Optional structlog logger instance
            ui: Optional Rich console for output
        """
        self.config = config
        self._logger = (logger or structlog.get_logger()).bind(
            graveyard=str(config.graveyard)
        )
        self._ui = ui or Console()

        self.store = RecordStore(config.graveyard, logger=self._logger)
        self.burial = BurialEngine(config.graveyard, self.store, logger=self._logger)
        self.selection = SelectionEngine(
            self.store, config.graveyard, logger=self._logger
        )
        self.restoration = RestorationEngine(self.store, logger=self._logger)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def bury(
        self, targets: Sequence[str | Path], *, purge_in_graveyard: bool = False
    ) -> BurialReport:
        """Send targets to the graveyard."""
        options = BuryOptions(cwd=self.config.cwd, purge_in_graveyard=purge_in_graveyard)
        report = BurialReport(self.burial.bury(targets, options))

        for outcome in report.outcomes:
            self._show_burial(outcome)

        self._logger.info(
            "bury.summary",
            total_items=len(report.outcomes),
            buried_count=report.buried_count,
            purged_count=report.purged_count,
            failed_count=report.failed_count,
        )
        return report

    def list(
        self, filters: Filter | Sequence[Filter], *, require: bool = False
    ) -> list[BurialRecord]:
        """Records matching ``filters``, in log order."""
        return self.selection.select(filters, require=require)

    def restore(
        self,
        filters: Filter | Sequence[Filter],
        mode: RestoreMode | None = None,
        *,
        reverse: bool = False,
    ) -> RestoreReport:
        """Select records and move their content back.

        An empty selection is not an error: the report is empty and
        ``nothing_to_do`` is set.
        """
        mode = mode or self.config.restore_mode
        records = self.selection.select(filters)
        if not records:
            self._logger.info("restore.nothing_to_do")
            return RestoreReport()

        report = RestoreReport(
            self.restoration.restore(
                records, mode, current_directory=self.config.cwd, reverse=reverse
            )
        )
        for outcome in report.outcomes:
            self._show_restore(outcome)

        self._logger.info(
            "restore.summary",
            mode=mode.value,
            total_items=len(report.outcomes),
            restored_count=report.restored_count,
            failed_count=report.failed_count,
        )
        return report

    def decompose(self) -> list[BurialRecord]:
        """Permanently erase the graveyard. Callers confirm beforehand.

        With ``verbose`` set, the erased entries are listed with their type.
        """
        types: dict[Path, str] = {}
        if self.config.verbose:
            types = {
                r.graveyard_path: entry_type(r.graveyard_path)
                for r in self.store.scan()
            }

        records = self.burial.decompose()
        if self.config.verbose and records:
            table = Table(box=None, show_edge=False, pad_edge=False)
            table.add_column("File", style="bold yellow")
            table.add_column("Type", style="bold bright_red")
            for record in records:
                table.add_row(
                    escape(self.display_path(record)),
                    types.get(record.graveyard_path, "other"),
                )
            self._ui.print(table)
        self._ui.print(
            f"[bold red]Decomposed[/bold red] {len(records)} record(s) in "
            f"{escape(str(self.config.graveyard))}",
            soft_wrap=True,
        )
        return records

    def prune(self) -> int:
        """Drop records whose graveyard content has disappeared."""
        removed = self.selection.prune_stale()
        self._logger.info("prune.summary", removed_count=removed)
        return removed

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def display_path(self, record: BurialRecord, full_path: bool | None = None) -> str:
        """Path shown for a record in listings."""
        full_path = self.config.full_path if full_path is None else full_path
        if full_path:
            return str(record.graveyard_path).replace(
                str(self.config.graveyard), "$GRAVEYARD", 1
            )
        return str(record.original_path)

    def render_seance(
        self,
        records: Sequence[BurialRecord],
        *,
        full_path: bool | None = None,
        plain: bool = False,
    ) -> None:
        """Print an indexed listing of buried records."""
        if plain:
            for record in records:
                self._ui.print(
                    self.display_path(record, full_path),
                    markup=False,
                    highlight=False,
                    soft_wrap=True,
                )
            return

        table = Table(box=None, show_edge=False, pad_edge=False)
        table.add_column("#", style="bold green", justify="right")
        table.add_column("Buried", style="bold magenta")
        table.add_column("Type", style="bold bright_red")
        table.add_column("Path", style="bold yellow")

        for index, record in enumerate(records):
            table.add_row(
                str(index),
                _buried_at(record),
                entry_type(record.graveyard_path),
                escape(self.display_path(record, full_path)),
            )
        self._ui.print(table)

    def _show_burial(self, outcome: BurialOutcome) -> None:
        if outcome.status == "buried":
            self._ui.print(
                f"[green]BURIED[/green] {escape(str(outcome.source))}",
                highlight=False,
                soft_wrap=True,
            )
        elif outcome.status == "purged":
            self._ui.print(
                f"[red]UNLINKED[/red] {escape(str(outcome.source))}",
                highlight=False,
                soft_wrap=True,
            )
        else:
            self._ui.print(
                f"[red]FAILED[/red] {escape(outcome.target)} "
                f"({escape(outcome.reason or 'unknown error')})",
                highlight=False,
                soft_wrap=True,
            )

    def _show_restore(self, outcome: RestoreOutcome) -> None:
        if outcome.status == "restored":
            source = self.display_path(outcome.record)
            self._ui.print(
                f"[blue]Returned[/blue] {escape(source)} to "
                f"{escape(str(outcome.destination))}",
                highlight=False,
                soft_wrap=True,
            )
            if outcome.warning:
                self._ui.print(
                    f"[yellow]WARNING[/yellow] {escape(outcome.warning)}", soft_wrap=True
                )
        else:
            self._ui.print(
                f"[red]FAILED[/red] {escape(str(outcome.record.original_path))} "
                f"({escape(outcome.reason or 'unknown error')})",
                highlight=False,
                soft_wrap=True,
            )


def _buried_at(record: BurialRecord) -> str:
    stamp: datetime = record.timestamp.astimezone()
    return stamp.strftime("%Y-%m-%d %H:%M:%S")

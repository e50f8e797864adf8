"""CLI entry point for the ``rip`` graveyard commands."""

from __future__ import annotations

import importlib
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
    from typer import Typer as TyperType
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")
    TyperType = Any

from ripgrave.chains.graveyard_chain import GraveyardChain
from ripgrave.core.config import RipConfig
from ripgrave.core.constants import DEFAULT_MAX_DEPTH
from ripgrave.core.errors import RipError
from ripgrave.core.globbing import is_glob
from ripgrave.core.selection import (
    ExactOrFullPath,
    Filter,
    Glob,
    InScope,
    LocalRelative,
    MostRecent,
)
from ripgrave.utils.logging_config import configure_logging

app: TyperType = typer.Typer(
    help="Send files to the graveyard instead of deleting them.",
    no_args_is_help=True,
)


@dataclass
class GlobalOptions:
    """Options given before the subcommand."""

    graveyard: Path | None = None
    verbose: bool = False


GraveyardOption = Annotated[
    Path | None,
    typer.Option(
        "--graveyard",
        "-G",
        help="Directory where deleted files rest (overrides $GRAVEYARD).",
    ),
]
VerboseFlag = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Log every step to stderr."),
]
TargetsArgument = Annotated[
    list[str],
    typer.Argument(help="Files or directories to send to the graveyard."),
]
PatternsArgument = Annotated[
    list[str] | None,
    typer.Argument(help="Glob patterns; a leading '!' negates."),
]
UnburyArgument = Annotated[
    list[str] | None,
    typer.Argument(
        help="Paths or glob patterns to restore. Restores the last burial if omitted."
    ),
]
AllFlag = Annotated[
    bool,
    typer.Option("--all", "-a", help="List the whole graveyard, not just the cwd."),
]
FullPathFlag = Annotated[
    bool,
    typer.Option("--full-path", "-f", help="Match and show graveyard paths."),
]
PlainFlag = Annotated[
    bool,
    typer.Option("--plain", help="Print bare paths, one per line."),
]
LocalFlag = Annotated[
    bool,
    typer.Option("--local", "-l", help="Restore relative to the current directory."),
]
SeanceFlag = Annotated[
    bool,
    typer.Option("--seance", "-s", help="Restore everything buried from the cwd."),
]
MaxDepthOption = Annotated[
    int,
    typer.Option("--max-depth", "-d", min=1, help="Maximum glob depth."),
]
PurgeFlag = Annotated[
    bool,
    typer.Option(
        "--purge",
        help="Permanently delete targets that are already in the graveyard.",
    ),
]
YesFlag = Annotated[
    bool,
    typer.Option("--yes", "-y", help="Do not ask for confirmation."),
]


def main(
    ctx: typer.Context,
    graveyard: GraveyardOption = None,
    verbose: VerboseFlag = False,
) -> None:
    """Reversible rm: bury, seance, unbury and decompose."""

    configure_logging(verbose)
    ctx.obj = GlobalOptions(graveyard=graveyard, verbose=verbose)


def _config(ctx: typer.Context, **options: Any) -> RipConfig:
    state: GlobalOptions = ctx.obj or GlobalOptions()
    return RipConfig.resolve(state.graveyard, verbose=state.verbose, **options)


def _fail(message: str) -> typer.Exit:
    typer.secho(message, err=True, fg=typer.colors.RED)
    return typer.Exit(code=1)


def unbury_filters(
    targets: Sequence[str],
    config: RipConfig,
    *,
    seance: bool = False,
) -> list[Filter]:
    """Translate unbury arguments into selection filters.

    No target restores the most recent burial (under the cwd in local
    mode). Glob targets form one pattern group so negations apply to it.
    With ``seance`` everything buried from the cwd is added to the targets.
    """
    scope = config.cwd if config.local else None
    patterns = [t for t in targets if is_glob(t)]
    paths = [t for t in targets if not is_glob(t)]

    if not targets:
        if seance:
            return [InScope(config.cwd)]
        return [MostRecent(scope)]

    filters: list[Filter] = []
    for path in paths:
        if config.local:
            filters.append(LocalRelative(Path(path), config.cwd))
        else:
            filters.append(ExactOrFullPath(config.cwd / path))
    if patterns:
        filters.append(
            Glob(
                patterns,
                scope=scope,
                max_depth=config.max_depth,
                full_path=config.full_path,
            )
        )
    if seance:
        filters.append(InScope(config.cwd))
    return filters


def seance_filters(
    patterns: Sequence[str], config: RipConfig, *, show_all: bool = False
) -> list[Filter]:
    """Translate seance arguments into selection filters."""
    scope = None if show_all else config.cwd
    if not patterns:
        return [InScope(scope)]
    return [
        Glob(
            patterns,
            scope=scope,
            max_depth=config.max_depth,
            full_path=config.full_path,
        )
    ]


def bury(
    ctx: typer.Context,
    targets: TargetsArgument,
    purge: PurgeFlag = False,
) -> None:
    """Send files or directories to the graveyard."""

    chain = GraveyardChain(_config(ctx))
    try:
        report = chain.bury(targets, purge_in_graveyard=purge)
    except RipError as exc:
        raise _fail(str(exc)) from exc

    if report.failed_count:
        raise typer.Exit(code=1)


def seance(
    ctx: typer.Context,
    patterns: PatternsArgument = None,
    show_all: AllFlag = False,
    full_path: FullPathFlag = False,
    plain: PlainFlag = False,
    max_depth: MaxDepthOption = DEFAULT_MAX_DEPTH,
) -> None:
    """List what was buried from the current directory."""

    config = _config(ctx, full_path=full_path, max_depth=max_depth)
    chain = GraveyardChain(config)
    try:
        records = chain.list(seance_filters(patterns or [], config, show_all=show_all))
    except RipError as exc:
        raise _fail(str(exc)) from exc

    chain.render_seance(records, plain=plain)


def unbury(
    ctx: typer.Context,
    targets: UnburyArgument = None,
    local: LocalFlag = False,
    seance_mode: SeanceFlag = False,
    full_path: FullPathFlag = False,
    max_depth: MaxDepthOption = DEFAULT_MAX_DEPTH,
) -> None:
    """Restore buried files (the most recent one if no target is given)."""

    config = _config(ctx, local=local, full_path=full_path, max_depth=max_depth)
    chain = GraveyardChain(config)
    filters = unbury_filters(targets or [], config, seance=seance_mode)
    try:
        report = chain.restore(filters)
    except RipError as exc:
        raise _fail(str(exc)) from exc

    if report.nothing_to_do:
        typer.secho("Nothing to do: but nobody came.", fg=typer.colors.YELLOW)
        return
    if report.failed_count:
        raise typer.Exit(code=1)


def decompose(ctx: typer.Context, yes: YesFlag = False) -> None:
    """Permanently delete everything in the graveyard."""

    config = _config(ctx)
    if not yes:
        typer.confirm(
            f"Permanently delete everything in {config.graveyard}?", abort=True
        )

    chain = GraveyardChain(config)
    try:
        chain.decompose()
    except RipError as exc:
        raise _fail(str(exc)) from exc


def prune(ctx: typer.Context) -> None:
    """Forget records whose graveyard content has disappeared."""

    chain = GraveyardChain(_config(ctx))
    try:
        removed = chain.prune()
    except RipError as exc:
        raise _fail(str(exc)) from exc
    typer.secho(f"Pruned {removed} stale record(s)", fg=typer.colors.GREEN)


def run_cli(args: Sequence[str] | None = None) -> None:
    app(args=args)


app.callback()(main)
app.command("bury")(bury)
app.command("seance")(seance)
app.command("unbury")(unbury)
app.command("decompose")(decompose)
app.command("prune")(prune)

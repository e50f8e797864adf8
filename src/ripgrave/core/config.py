"""Configuration for a ripgrave invocation.

The graveyard root is resolved once per process and then passed
explicitly to every engine. Precedence: explicit option, then
``$GRAVEYARD``, then ``$XDG_DATA_HOME/graveyard``, then
``/tmp/graveyard-$USER``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ripgrave.core.constants import (
    DEFAULT_MAX_DEPTH,
    FALLBACK_GRAVEYARD,
    GRAVEYARD_ENV,
    LOCK_NAME,
    RECORD_NAME,
    USER_ENV,
    XDG_DATA_HOME_ENV,
    XDG_GRAVEYARD_NAME,
)
from ripgrave.core.schemas import RestoreMode

__all__ = ["RipConfig", "resolve_graveyard_root"]


def resolve_graveyard_root(
    explicit: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Resolve the graveyard root directory.

    Args:
        explicit: Value of the command-line option, if given
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Absolute graveyard path (not created here)
    """
    env = os.environ if environ is None else environ

    chosen: str | Path
    if explicit is not None and str(explicit):
        chosen = explicit
    elif env.get(GRAVEYARD_ENV):
        chosen = env[GRAVEYARD_ENV]
    elif env.get(XDG_DATA_HOME_ENV):
        chosen = Path(env[XDG_DATA_HOME_ENV]) / XDG_GRAVEYARD_NAME
    else:
        chosen = f"{FALLBACK_GRAVEYARD}-{env.get(USER_ENV) or 'unknown'}"

    return Path(chosen).expanduser().resolve()


@dataclass
class RipConfig:
    """Settings shared by all commands of one invocation.

    Attributes:
        graveyard: Absolute graveyard root
        max_depth: Deepest glob match below the base directory
        local: Restore relative to ``cwd`` instead of the original path
        full_path: Match and display graveyard paths
        verbose: Emit info/debug log events
        cwd: Directory the invocation runs in
    """

    graveyard: Path
    max_depth: int = DEFAULT_MAX_DEPTH
    local: bool = False
    full_path: bool = False
    verbose: bool = False
    cwd: Path = field(default_factory=Path.cwd)

    @classmethod
    def resolve(
        cls,
        graveyard: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
        **options: object,
    ) -> RipConfig:
        """Build a config, resolving the graveyard root by precedence."""
        return cls(graveyard=resolve_graveyard_root(graveyard, environ), **options)  # type: ignore[arg-type]

    @property
    def record_path(self) -> Path:
        return self.graveyard / RECORD_NAME

    @property
    def lock_path(self) -> Path:
        return self.graveyard / LOCK_NAME

    @property
    def restore_mode(self) -> RestoreMode:
        return RestoreMode.LOCAL if self.local else RestoreMode.ORIGINAL

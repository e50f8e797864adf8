"""Filesystem layer: path mapping, conflict resolution, moves and the record.

This module provides the graveyard path mapping, ``~N`` conflict
resolution, the rename-or-copy move primitive and the locked record log.
"""

from ripgrave.fs.conflicts import resolve, resolve_grave
from ripgrave.fs.fs_ops import MoveMethod, move_path, remove_path
from ripgrave.fs.paths import (
    canonicalize,
    join_absolute,
    local_rebase,
    to_graveyard,
    to_original,
)
from ripgrave.fs.record import RecordStore

__all__ = [
    "MoveMethod",
    "RecordStore",
    "canonicalize",
    "join_absolute",
    "local_rebase",
    "move_path",
    "remove_path",
    "resolve",
    "resolve_grave",
    "to_graveyard",
    "to_original",
]

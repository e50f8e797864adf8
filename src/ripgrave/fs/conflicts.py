"""Name-conflict resolution with numbered ``~N`` suffixes.

Used both when burying (destination inside the graveyard) and when
unburying (destination at the original location). Probing is a plain
existence check, so another process may claim the same name before the
move happens; callers re-probe when a move finds its destination taken.
"""

import itertools
import os
from pathlib import Path

from ripgrave.core.constants import CONFLICT_SEPARATOR, DEFAULT_NAME_MAX
from ripgrave.core.errors import ConflictResolutionExhaustedError
from ripgrave.utils.debug import debug


def exists_no_follow(path: Path) -> bool:
    """True if anything, including a dangling symlink, occupies ``path``."""
    return os.path.lexists(path)


def _name_max(directory: Path) -> int:
    """Maximum file name length in bytes for the filesystem of ``directory``."""
    for candidate in (directory, *directory.parents):
        if candidate.exists():
            try:
                return os.pathconf(candidate, "PC_NAME_MAX")
            except (OSError, ValueError):
                break
    return DEFAULT_NAME_MAX


def resolve(candidate: Path) -> Path:
    """Return ``candidate`` or the first free ``candidate~N`` sibling.

    Args:
        candidate: Desired destination

    Returns:
        A path where nothing currently exists

    Raises:
        ConflictResolutionExhaustedError: If suffixed names outgrow the
            filesystem's name length limit
    """
    if not exists_no_follow(candidate):
        return candidate

    name_max = _name_max(candidate.parent)
    for n in itertools.count(1):
        name = f"{candidate.name}{CONFLICT_SEPARATOR}{n}"
        if len(os.fsencode(name)) > name_max:
            raise ConflictResolutionExhaustedError(candidate, name_max)
        renamed = candidate.with_name(name)
        if not exists_no_follow(renamed):
            debug(f"Conflict at {candidate}, using {renamed}")
            return renamed
    raise ConflictResolutionExhaustedError(candidate, name_max)  # pragma: no cover


def resolve_grave(candidate: Path, graveyard_root: Path) -> Path:
    """Resolve a burial destination inside the graveyard.

    Besides the destination itself, an ancestor inside the graveyard may
    be a regular file (``/a/b`` buried as a file, ``/a/b/c`` buried after
    ``/a/b`` became a directory). The ancestor component is then suffixed
    and the rest of the path re-attached below it.
    """
    for ancestor in candidate.parents:
        if ancestor == graveyard_root or graveyard_root not in ancestor.parents:
            break
        if ancestor.is_file() or ancestor.is_symlink():
            relative = candidate.relative_to(ancestor)
            return resolve(resolve(ancestor) / relative)

    return resolve(candidate)

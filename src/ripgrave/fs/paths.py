"""Path utilities mapping between the filesystem and the graveyard.

The graveyard mirrors absolute source paths: ``/home/u/f`` is buried at
``<graveyard>/home/u/f``. The mapping is a pure function of the
canonical source path, so it can always be inverted.
"""

import os
import uuid
from pathlib import Path

from ripgrave.core.errors import (
    GraveyardUnwritableError,
    InvalidGraveyardPathError,
    PathResolutionError,
)


def join_absolute(left: Path | str, right: Path | str) -> Path:
    """Concatenate two paths, even if the right argument is absolute.

    Args:
        left: Base directory
        right: Path to attach, its root marker is dropped

    Returns:
        ``left`` joined with ``right`` relative to its anchor
    """
    right = Path(right)
    if right.is_absolute():
        right = right.relative_to(right.anchor)
    return Path(left) / right


def absolutize(path: Path | str, cwd: Path | str | None = None) -> Path:
    """Anchor a relative path at ``cwd`` and leave every component as written.

    ``..`` is kept so the filesystem can resolve it after any symlink
    before it, as the kernel does.
    """
    path = Path(path)
    if path.is_absolute():
        return path
    return Path(cwd if cwd is not None else os.getcwd()) / path


def lexical_normalize(path: Path | str, cwd: Path | str | None = None) -> Path:
    """Make a path absolute and collapse ``.``/``..`` without touching disk."""
    return Path(os.path.normpath(absolutize(path, cwd)))


def canonicalize(path: Path | str, cwd: Path | str | None = None) -> Path:
    """Return the canonical absolute path of an existing filesystem entry.

    Parent directories are fully resolved, including ``..`` that follows
    a symlinked directory. A symlink as the last component is kept as-is
    so the link, not its target, is handled.

    Args:
        path: Relative or absolute path
        cwd: Directory relative paths are resolved against (default: cwd)

    Returns:
        Canonical absolute path

    Raises:
        PathResolutionError: If the path does not exist or cannot be resolved
    """
    absolute = absolutize(path, cwd)
    if not os.path.lexists(absolute):
        raise PathResolutionError(f"No such file or directory: {path}", absolute)

    try:
        if absolute.name not in ("", "..") and absolute.is_symlink():
            return absolute.parent.resolve(strict=True) / absolute.name
        return absolute.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise PathResolutionError(f"Cannot resolve {path}: {e}", absolute) from e


def mirror(path: Path | str, graveyard_root: Path) -> Path:
    """Map an absolute path to its graveyard location without checking disk."""
    return join_absolute(graveyard_root, lexical_normalize(path))


def to_graveyard(
    original_path: Path | str, graveyard_root: Path, cwd: Path | str | None = None
) -> Path:
    """Compute the graveyard location for an existing source path.

    Args:
        original_path: Source path, relative paths are resolved against ``cwd``
        graveyard_root: Absolute graveyard root
        cwd: Directory relative paths are resolved against

    Returns:
        ``graveyard_root`` joined with the canonical source path

    Raises:
        PathResolutionError: If the source does not exist
    """
    return join_absolute(graveyard_root, canonicalize(original_path, cwd))


def to_original(graveyard_path: Path | str, graveyard_root: Path) -> Path:
    """Invert :func:`to_graveyard`.

    Raises:
        InvalidGraveyardPathError: If ``graveyard_path`` is outside the root
    """
    graveyard_path = Path(graveyard_path)
    try:
        relative = graveyard_path.relative_to(graveyard_root)
    except ValueError as e:
        raise InvalidGraveyardPathError(graveyard_path, graveyard_root) from e
    return Path("/") / relative


def local_rebase(relative_name: Path | str, current_directory: Path | str) -> Path:
    """Reconstruct the likely original path of a file buried from a directory.

    Only used for local-restore mode: ``src/main.py`` unburied from
    ``/home/u/proj`` means ``/home/u/proj/src/main.py``.
    """
    return lexical_normalize(relative_name, current_directory)


def is_within(path: Path, base: Path) -> bool:
    """True if ``path`` is ``base`` or one of its descendants."""
    return path == base or base in path.parents


def ensure_graveyard(graveyard_root: Path) -> Path:
    """Ensure the graveyard exists and is writable.

    Raises:
        GraveyardUnwritableError: If it cannot be created or written to
    """
    try:
        graveyard_root.mkdir(parents=True, exist_ok=True)

        # Test write access
        test_file = graveyard_root / f".test_{uuid.uuid4().hex}"
        test_file.write_text("test")
        test_file.unlink()

    except OSError as e:
        raise GraveyardUnwritableError(
            f"Cannot use graveyard {graveyard_root}: {e}. "
            "Ensure the directory is writable or choose a different graveyard.",
            graveyard_root,
        ) from e

    return graveyard_root


def ensure_parent_dir(path: Path) -> None:
    """Ensure parent directory exists for a path.

    Raises:
        OSError: If parent directory cannot be created
    """
    parent = path.parent
    if not parent.exists():
        parent.mkdir(parents=True, exist_ok=True)


def entry_type(path: Path) -> str:
    """Describe a filesystem entry for listings: file, dir, link or other."""
    if path.is_symlink():
        return "link"
    if path.is_dir():
        return "dir"
    if path.is_file():
        return "file"
    return "other"

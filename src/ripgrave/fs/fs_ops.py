"""Filesystem moves with a verified cross-device fallback.

A move is an atomic ``rename`` whenever source and destination share a
filesystem. Across devices it becomes copy, verify, then delete the
source; the source is only removed once the copy is known complete.
"""

import errno
import os
import shutil
import stat
from pathlib import Path
from typing import Literal

import structlog

from ripgrave.core.errors import CrossDeviceMoveError
from ripgrave.fs.conflicts import exists_no_follow
from ripgrave.fs.paths import ensure_parent_dir
from ripgrave.utils.debug import debug

MoveMethod = Literal["rename", "copy"]

logger = structlog.get_logger(__name__)


def move_path(src: Path, dst: Path) -> MoveMethod:
    """Move a file, directory or symlink to ``dst``.

    Args:
        src: Existing source entry
        dst: Destination, must not exist yet

    Returns:
        "rename" for a same-device rename, "copy" for the fallback

    Raises:
        FileExistsError: If something already occupies ``dst``
        CrossDeviceMoveError: If the copy+delete fallback failed
        OSError: For any other rename failure
    """
    if exists_no_follow(dst):
        raise FileExistsError(errno.EEXIST, "Destination exists", str(dst))

    ensure_parent_dir(dst)

    # Try a simple rename, which only works within the same mount point
    try:
        os.rename(src, dst)
        debug(f"Direct rename: {src} -> {dst}")
        return "rename"
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    _copy_then_remove(src, dst)
    debug(f"Cross-device move: {src} -> {dst}")
    return "copy"


def remove_path(path: Path) -> None:
    """Permanently delete a file, symlink or directory tree."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _copy_then_remove(src: Path, dst: Path) -> None:
    try:
        _copy_entry(src, dst)
        _verify_copy(src, dst)
    except (OSError, shutil.Error) as e:
        _discard_partial(dst)
        raise CrossDeviceMoveError(src, dst, str(e)) from e
    except KeyboardInterrupt:
        _discard_partial(dst)
        raise

    try:
        remove_path(src)
    except OSError as e:
        raise CrossDeviceMoveError(
            src, dst, f"failed to remove source: {e}", copy_retained=True
        ) from e


def _copy_entry(src: Path, dst: Path) -> None:
    mode = os.lstat(src).st_mode
    if stat.S_ISLNK(mode):
        os.symlink(os.readlink(src), dst)
    elif stat.S_ISDIR(mode):
        shutil.copytree(src, dst, symlinks=True, copy_function=_copy_file)
    else:
        _copy_file(src, dst)


def _copy_file(src: str | Path, dst: str | Path) -> str | Path:
    st = os.lstat(src)
    if stat.S_ISFIFO(st.st_mode):
        os.mkfifo(dst, stat.S_IMODE(st.st_mode))
        return dst

    # Special files (sockets, devices) make copy2 raise SpecialFileError
    shutil.copy2(src, dst, follow_symlinks=False)
    if stat.S_ISREG(st.st_mode):
        with open(dst, "rb") as fh:
            os.fsync(fh.fileno())
    return dst


def _describe(path: str | Path) -> tuple[int, object]:
    st = os.lstat(path)
    kind = stat.S_IFMT(st.st_mode)
    if stat.S_ISLNK(st.st_mode):
        return kind, os.readlink(path)
    if stat.S_ISREG(st.st_mode):
        return kind, st.st_size
    return kind, None


def _snapshot(root: Path) -> dict[str, tuple[int, object]]:
    entries = {".": _describe(root)}
    if root.is_dir() and not root.is_symlink():
        for dirpath, dirnames, filenames in os.walk(root):
            for name in dirnames + filenames:
                full = os.path.join(dirpath, name)
                entries[os.path.relpath(full, root)] = _describe(full)
    return entries


def _verify_copy(src: Path, dst: Path) -> None:
    """Compare entry sets, types, sizes and link targets of both trees."""
    if _snapshot(src) != _snapshot(dst):
        raise OSError(errno.EIO, "Copy verification failed", str(dst))


def _discard_partial(dst: Path) -> None:
    if not exists_no_follow(dst):
        return
    try:
        remove_path(dst)
        debug(f"Removed partial copy: {dst}")
    except OSError as e:
        logger.warning("move.partial_copy_left", path=str(dst), error=str(e))

"""Custom exceptions for ripgrave.

This module defines typed exceptions used throughout the burial and
restoration engines. Per-item failures are carried inside outcome objects,
so every exception exposes ``to_dict()`` for the presentation layer.
"""

from pathlib import Path
from typing import Any


class RipError(Exception):
    """Base exception for all ripgrave errors.

    All custom exceptions should inherit from this base class to allow
    for broad exception handling when needed.
    """

    kind = "rip_error"

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for reports.

        Returns:
            Dictionary representation suitable for JSON output
        """
        result: dict[str, Any] = {"error": self.kind, "message": str(self)}
        if self.path is not None:
            result["path"] = str(self.path)
        return result

    def __repr__(self) -> str:
        """Return repr string for debugging."""
        return f"{type(self).__name__}({str(self)!r}, path={self.path!r})"


class PathResolutionError(RipError):
    """Raised when a path cannot be made absolute or canonicalized."""

    kind = "path_resolution"


class TargetNotFoundError(PathResolutionError):
    """Raised when a burial target (or a grave) does not exist."""

    kind = "target_not_found"

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Cannot remove {path}: no such file or directory", path)


class InvalidGraveyardPathError(RipError):
    """Raised when a path expected inside the graveyard lies outside it.

    Attributes:
        graveyard: Graveyard root the path was checked against
    """

    kind = "invalid_graveyard_path"

    def __init__(self, path: Path | str, graveyard: Path | str) -> None:
        self.graveyard = Path(graveyard)
        super().__init__(f"{path} is not inside the graveyard {graveyard}", path)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["graveyard"] = str(self.graveyard)
        return result


class GraveyardUnwritableError(RipError):
    """Raised when the graveyard root cannot be created or written to."""

    kind = "graveyard_unwritable"


class TargetInGraveyardError(RipError):
    """Raised when a burial target is inside, or contains, the graveyard."""

    kind = "target_in_graveyard"


class CrossDeviceMoveError(RipError):
    """Raised when the copy+delete fallback of a cross-device move fails.

    Attributes:
        destination: Where the content was being copied to
        copy_retained: True if a complete copy was kept at ``destination``
    """

    kind = "cross_device_move"

    def __init__(
        self,
        path: Path | str,
        destination: Path | str,
        reason: str,
        copy_retained: bool = False,
    ) -> None:
        self.destination = Path(destination)
        self.copy_retained = copy_retained
        message = f"Failed to move {path} to {destination} across devices: {reason}"
        if copy_retained:
            message += f" (complete copy kept at {destination})"
        super().__init__(message, path)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["destination"] = str(self.destination)
        result["copy_retained"] = self.copy_retained
        return result


class ConflictResolutionExhaustedError(RipError):
    """Raised when no free ``~N`` suffix fits in the filesystem's name limit."""

    kind = "conflict_resolution_exhausted"

    def __init__(self, path: Path | str, name_max: int) -> None:
        self.name_max = name_max
        super().__init__(
            f"No free conflict suffix for {path} within {name_max} bytes", path
        )


class RecordStoreCorruptionError(RipError):
    """Raised when a record log line cannot be parsed.

    Attributes:
        line_number: 1-based position of the line in the log
        line: The raw line (without newline)
    """

    kind = "record_store_corruption"

    def __init__(self, line_number: int, line: str, reason: str) -> None:
        self.line_number = line_number
        self.line = line
        super().__init__(f"Malformed record on line {line_number}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["line_number"] = self.line_number
        return result


class RecordStoreLockError(RipError):
    """Raised when the record log lock cannot be acquired after retries."""

    kind = "record_store_lock"

    def __init__(self, path: Path | str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"Could not lock record {path} after {attempts} attempts", path
        )


class RecordNotFoundError(RipError):
    """Raised when a selection matched nothing ("nothing to do")."""

    kind = "record_not_found"

    def __init__(self, message: str = "But nobody came") -> None:
        super().__init__(message)


class AmbiguousFilterError(RipError):
    """Raised when a selection mixes modes that cannot be combined."""

    kind = "ambiguous_filter"

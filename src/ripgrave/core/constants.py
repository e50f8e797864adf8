"""Core constants for ripgrave.

This module defines constants used throughout the application:
- Graveyard layout (record and lock file names)
- Configuration defaults and environment variable names
- Record log format and lock retry settings
"""

# ============================================================================
# Graveyard Layout
# ============================================================================

#: Default graveyard prefix when nothing else is configured ("-$USER" appended)
FALLBACK_GRAVEYARD: str = "/tmp/graveyard"

#: Name of the graveyard directory under $XDG_DATA_HOME
XDG_GRAVEYARD_NAME: str = "graveyard"

#: Name of the record log inside the graveyard root
RECORD_NAME: str = ".record"

#: Sidecar lock file guarding the record log
LOCK_NAME: str = ".record.lock"

# ============================================================================
# Environment
# ============================================================================

#: Explicit graveyard override
GRAVEYARD_ENV: str = "GRAVEYARD"

#: XDG data home, the graveyard lives in "$XDG_DATA_HOME/graveyard"
XDG_DATA_HOME_ENV: str = "XDG_DATA_HOME"

#: User name used to suffix the fallback graveyard
USER_ENV: str = "USER"

# ============================================================================
# Selection
# ============================================================================

#: Max depth for glob matching, $HOME/.local/share/graveyard is already deep
DEFAULT_MAX_DEPTH: int = 10

#: Characters that turn an unbury target into a glob pattern
GLOB_CHARACTERS: tuple[str, ...] = ("*", "?", "[", "{")

#: Prefix negating a glob pattern
NEGATION_PREFIX: str = "!"

# ============================================================================
# Record Log
# ============================================================================

#: Field delimiter of the record log
RECORD_DELIMITER: str = "\t"

#: Timestamp format written by older releases ("Mon Jan  1 12:00:00 2024")
LEGACY_TIMESTAMP_FORMAT: str = "%a %b %d %H:%M:%S %Y"

#: Number of non-blocking lock attempts before giving up
LOCK_RETRIES: int = 8

#: Initial delay between lock attempts in seconds (doubled each retry)
LOCK_BACKOFF: float = 0.05

#: Maximum delay between lock attempts in seconds
LOCK_MAX_BACKOFF: float = 1.0

# ============================================================================
# Conflict Resolution
# ============================================================================

#: Separator between a name and its conflict counter ("notes.txt~2")
CONFLICT_SEPARATOR: str = "~"

#: Fallback when the filesystem does not report a maximum name length
DEFAULT_NAME_MAX: int = 255

#: Attempts to re-probe a destination claimed by another process
MOVE_CLAIM_RETRIES: int = 3

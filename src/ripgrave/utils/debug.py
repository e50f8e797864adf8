"""Debug utility for ripgrave.

Provides a single debug() function that can be toggled via the
RIPGRAVE_DEBUG environment variable. It traces low-level filesystem
steps (renames, copies, lock attempts) that are too noisy for the
structured log.

Usage:
    from ripgrave.utils.debug import debug

    debug(f"Direct rename: {src} -> {dst}")

Environment:
    RIPGRAVE_DEBUG: Set to '1', 'true', 'yes' (case-insensitive) to enable
                    debug output. Any other value or unset disables it.
"""

import os
import sys
from typing import Any

# Determine if debug mode is enabled at module import time
_DEBUG_ENABLED = os.environ.get("RIPGRAVE_DEBUG", "").lower() in (
    "1",
    "true",
    "yes",
)


def debug(msg: Any) -> None:
    """Print debug message to stderr if RIPGRAVE_DEBUG is enabled.

    Args:
        msg: Message to print. Will be converted to string.

    Note:
        The environment variable is read at import time. Changing it
        afterwards has no effect unless the module is reloaded.
    """
    if _DEBUG_ENABLED:
        print(f"[DEBUG] {msg}", file=sys.stderr)

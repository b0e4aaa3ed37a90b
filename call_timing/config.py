"""
Environment-driven settings. Values are read on demand, never at import.
"""

import os
import tempfile

DEFAULT_MAX_ITERATIONS = 100

_TRUTHY = {"1", "true", "yes", "on"}


def enabled_from_env() -> bool:
    """True when CALL_TIMING_ENABLED is set to a truthy value."""
    return os.environ.get("CALL_TIMING_ENABLED", "").strip().lower() in _TRUTHY


def export_dir() -> str:
    """Directory exported files are written to."""
    return os.path.expanduser(os.environ.get("CALL_TIMING_EXPORT_DIR") or tempfile.gettempdir())

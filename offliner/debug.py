"""
debug.py - Verbose switch for per-URL rewrite tracing

Off unless OFFLINER_VERBOSE=1 or set_verbose(True).
"""

import os
import sys

_VERBOSE = os.getenv("OFFLINER_VERBOSE", "").lower() in ("1", "true", "yes")


def set_verbose(enabled: bool) -> None:
    global _VERBOSE
    _VERBOSE = enabled


def debug_print(*args, **kwargs) -> None:
    """print() to stdout in verbose mode only."""
    if _VERBOSE:
        print(*args, **kwargs)


def debug_print_error(*args, **kwargs) -> None:
    """print() to stderr in verbose mode only."""
    if _VERBOSE:
        print(*args, file=sys.stderr, **kwargs)


def is_verbose() -> bool:
    return _VERBOSE

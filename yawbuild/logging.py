"""
Logging helpers for the release pipeline.

Usage:
    from yawbuild.logging import get_logger
    log = get_logger('compiler')

The level comes from the YAW_LOG environment variable, the same variable the
game binary reads for its own log output (error, warn, info, debug, trace).
"""

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER = 'yawbuild'
LOG_ENV_VAR = 'YAW_LOG'
_HANDLER_MARKER = '_yawbuild_stderr'

_LEVELS = {
    'error': logging.ERROR,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'info': logging.INFO,
    'debug': logging.DEBUG,
    'trace': logging.DEBUG,
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the yawbuild namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def level_from_env(value: Optional[str] = None) -> int:
    """Map a YAW_LOG value to a logging level (default INFO)."""
    if value is None:
        value = os.environ.get(LOG_ENV_VAR, '')
    return _LEVELS.get(value.strip().lower(), logging.INFO)


def configure_logging(level: Optional[int] = None) -> logging.Logger:
    """Attach a stderr handler to the yawbuild root logger.

    Safe to call more than once; the handler is only added the first time.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level if level is not None else level_from_env())
    if not any(getattr(h, _HANDLER_MARKER, False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        setattr(handler, _HANDLER_MARKER, True)
        handler.setFormatter(logging.Formatter('[%(levelname)s %(name)s] %(message)s'))
        root.addHandler(handler)
    root.propagate = False
    return root

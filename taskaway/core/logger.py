"""
Logging setup.

All modules obtain their logger through setup_logger(__name__) so that format
and level are configured in one place.
"""

import logging
import sys

from taskaway.core.config import get_settings

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger("taskaway")
    root.addHandler(handler)
    root.setLevel(get_settings().LOG_LEVEL.upper())
    root.propagate = True
    _configured = True


def setup_logger(name: str) -> logging.Logger:
    """Return a module logger under the taskaway hierarchy."""
    _configure_root()
    if not name.startswith("taskaway"):
        name = f"taskaway.{name}"
    return logging.getLogger(name)


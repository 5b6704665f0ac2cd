"""Process-wide logging context.

Modules log through `logging.getLogger(__name__)`; the context decides whether
DEBUG records from the `liveness_core` hierarchy are emitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

ROOT_LOGGER_NAME = "liveness_core"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass
class LoggingContext:
    debug_enabled: bool = False

    def apply(self) -> None:
        level = logging.DEBUG if self.debug_enabled else logging.INFO
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)

    def set_debug_enabled(self, enabled: bool) -> None:
        self.debug_enabled = bool(enabled)
        self.apply()


_CONTEXT = LoggingContext()


def get_logging_context() -> LoggingContext:
    return _CONTEXT


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Console (and optional file) logging for command line use."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=handlers)
    _CONTEXT.set_debug_enabled(debug)

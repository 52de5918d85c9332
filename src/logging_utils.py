"""
Logger hierarchy for ARCH.

Every module logs through a child of the ``arch`` logger, named after the
module: ``arch.session``, ``arch.stream``, ``arch.llm``, ``arch.formula``,
``arch.artifacts``, ``arch.persistence``, ``arch.config`` and ``arch.main``.
A single stderr handler sits on ``arch``; children only propagate to it.

Levels as used across the package:
    DEBUG    abandoned streams, ignored input, unavailable artifacts
    INFO     session start and reset, generated artifacts, export and import
    WARNING  a formula point replaced by 0, an unwritable LLM log,
             a token estimate that fell back, a bad config file
    ERROR    a failed stream, session start or artifact request

The REPL calls ``set_quiet()`` so that INFO lines do not interleave with the
streamed reply. ``--verbose`` calls ``set_verbose(True)`` instead.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "arch"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

_handler: Optional[logging.Handler] = None


def configure_logging(level: int = logging.INFO, stream: Optional[object] = None) -> logging.Handler:
    """
    Attach the stderr handler to the ``arch`` logger.

    Only the first call has an effect; later calls return the same handler.
    The handler passes every record, so the ``arch`` logger level alone
    decides what is shown.
    """
    global _handler
    if _handler is not None:
        return _handler

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)

    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    root.addHandler(_handler)
    return _handler


def get_logger(name: str) -> logging.Logger:
    """``arch.<module>`` logger for ``__name__``, with any ``src.`` prefix dropped."""
    configure_logging()

    if name.startswith("src."):
        name = name[len("src."):]
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_verbose(verbose: bool) -> None:
    # DEBUG adds abandoned streams and ignored input
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG if verbose else logging.INFO)


def set_quiet() -> None:
    """Warnings and errors only."""
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.WARNING)

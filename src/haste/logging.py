"""Logging setup for haste.

Every module logs through ``logging.getLogger("haste")``.  The CLI calls
:func:`setup_logging` once per invocation: progress and stored datums go
to the console at INFO, each spawned command line at DEBUG, and
``--log-file`` keeps a DEBUG transcript of the whole run.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "haste"

_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Console threshold for the ``-v``/``-q`` flags; ``-v`` wins."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """(Re)configure the ``haste`` logger and return it.

    Handlers from a previous call are closed and replaced, so the CLI can
    be invoked repeatedly in one process.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(console_level(verbose=verbose, quiet=quiet))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        transcript = logging.FileHandler(log_file, encoding="utf-8")
        transcript.setLevel(logging.DEBUG)
        transcript.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(transcript)
        logger.debug("Logging to %s", log_file)

    return logger

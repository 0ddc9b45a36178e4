"""Logger setup for the ``normal_solver`` logger.

Example::

    from runtime.logging_config import setup_logging

    logger = setup_logging(debug=True)
    logger.debug("Built adjacency cache for 1024 groups.")
"""

import logging
import logging.handlers
import os
from typing import Optional, Union

LOGGER_NAME = "normal_solver"


def setup_logging(
    log_file: Optional[Union[str, os.PathLike]] = None,
    *,
    quiet: bool = False,
    debug: bool = False,
    max_bytes: int = 5_000_000,
) -> logging.Logger:
    """Configure and return the shared `normal_solver` logger.

    Calling this again replaces the handlers installed by a previous call, so
    it is safe to reconfigure between runs. No file is written unless
    `log_file` is given; the file rotates once it exceeds `max_bytes`.
    """
    logger = logging.getLogger(LOGGER_NAME)
    # Keep propagation enabled so pytest's caplog still sees records when the
    # console handler is suppressed.
    logger.propagate = True

    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                os.fspath(log_file), maxBytes=max_bytes, backupCount=0
            )
        except OSError as exc:
            logger.warning("Could not open log file %r: %s", str(log_file), exc)
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if not quiet:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger

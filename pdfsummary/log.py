"""Logging setup for the summarizer service.

``cli.main()`` calls ``setup_logging`` once, before the server or single-file
run starts.  It configures the ``"pdfsummary"`` package logger; every module
logs through ``logging.getLogger(__name__)`` and records propagate up to it.
The thread name is part of the format so concurrent page calls
(``page_0``, ``page_1``, ...) and uvicorn worker threads can be told apart.
"""

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "pdfsummary"
_FMT = "%(asctime)s  %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
_DATE = "%H:%M:%S"


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Attach stderr (and optionally file) handlers to the package logger.

    Args:
        verbose:  DEBUG level when True (per-page prompt sizes, per-call
                  timings); INFO otherwise.
        log_file: Extra destination for the same records.  Missing parent
                  directories are created.

    Existing handlers are closed and replaced, so repeated calls never
    duplicate output.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    fmt = logging.Formatter(_FMT, datefmt=_DATE)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

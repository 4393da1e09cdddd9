"""Logging configuration for the pkghist CLI and HTTP server."""

import logging
import sys

logger = logging.getLogger("pkghist")

# Console output for one-shot commands
DEFAULT_FORMAT = "%(message)s"
VERBOSE_FORMAT = "%(levelname)s: %(message)s"

# Long-running server output, shared with werkzeug's request log
SERVER_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
SERVER_DATEFMT = "%Y-%m-%d %H:%M:%S"

# werkzeug logs one INFO line per request
WERKZEUG_LOGGER = "werkzeug"


def _level(verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.WARNING
    if verbose:
        return logging.DEBUG
    return logging.INFO


def setup_logging(verbose: bool = False, quiet: bool = False, server: bool = False) -> None:
    """Configure the pkghist logger, plus werkzeug's when serving.

    Args:
        verbose: Show DEBUG messages (including upstream URLs).
        quiet: Only show warnings and errors.
        server: Use timestamped output and route werkzeug's request log
            through the same handler.

    Calling it again replaces the previous configuration.
    """
    level = _level(verbose, quiet)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if server:
        handler.setFormatter(logging.Formatter(SERVER_FORMAT, datefmt=SERVER_DATEFMT))
    else:
        handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else DEFAULT_FORMAT))

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)

    # werkzeug installs its own bare handler unless one is already present
    werkzeug_logger = logging.getLogger(WERKZEUG_LOGGER)
    werkzeug_logger.handlers.clear()
    if server:
        werkzeug_logger.addHandler(handler)
        werkzeug_logger.setLevel(logging.WARNING if quiet else logging.INFO)
        werkzeug_logger.propagate = False

"""
Logging Configuration

Attaches handlers to the 'surfgrow' logger namespace. Library modules only
call logging.getLogger(__name__); handlers are configured here, once, by
the command-line runner or by an embedding application.
"""
import logging
import sys
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PACKAGE_LOGGER = "surfgrow"


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None) -> logging.Logger:
    """
    Route 'surfgrow' log records to stdout and optionally to a file.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level, as a number or a name such as "DEBUG"
        log_file: Path of a log file to (over)write, or None

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to stdout%s", f" and {log_file}" if log_file else "")
    return logger

import logging
from typing import Optional

ROOT_LOGGER_NAME = "mrmaster"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Retrieve a configured logger for the specified module.

    If no name is provided, the package logger 'mrmaster' is returned.
    The package logger is configured once with:
    - A StreamHandler for console output
    - A standardized log format with timestamp, level, logger name, and message

    Module loggers (`mrmaster.*`, i.e. `__name__`) carry no handler of
    their own and inherit handler and level from the package logger.

    Args:
        name (Optional[str]): Name of the logger (usually the module name).

    Returns:
        logging.Logger: Configured logger instance.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    return logging.getLogger(name or ROOT_LOGGER_NAME)


def setup_logger(level: Optional[str] = None) -> logging.Logger:
    """
    Initialize and configure the global logger for the coordinator.

    This function is typically called once during process startup.

    Args:
        level (Optional[str]): Level name such as "info" or "debug".

    Returns:
        logging.Logger: Global application logger.
    """
    logger = get_logger()
    if level:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.info("mrmaster logger initialized")
    return logger

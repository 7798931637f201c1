import logging
from typing import Optional

ROOT_LOGGER_NAME = "mrworker"


def get_logger(name: Optional[str] = None) -> logging.Logger:
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


def setup_logger(level: Optional[str] = None):
	logger = get_logger()
	if level:
		logger.setLevel(getattr(logging, level.upper(), logging.INFO))
	logger.info("mrworker logger initialized")
	return logger

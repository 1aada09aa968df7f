# app/core/logging.py
import logging
import sys
import colorlog

# Third-party loggers that flood DEBUG output with request/connection chatter
_NOISY_LOGGERS = ("pymongo", "motor", "httpx", "httpcore", "openai", "anthropic", "multipart")

_DEV_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s"
_PROD_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def configure_logging(level=logging.INFO, *, colored: bool = True):
    """
    Single stdout handler on the root logger. Colors in development, plain
    timestamped lines in production.
    """
    handler = colorlog.StreamHandler(sys.stdout)
    if colored:
        formatter = colorlog.ColoredFormatter(_DEV_FORMAT, datefmt="%H:%M:%S", log_colors=_LEVEL_COLORS)
    else:
        formatter = logging.Formatter(_PROD_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

"""Logging setup for the API process and Celery workers."""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once: existing handlers are replaced.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers = [handler]

    # httpx logs every request at INFO, including Razorpay URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)

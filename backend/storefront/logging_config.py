# Overview: Log formatting with the current request id stamped on every record.

import logging

from flask import g, has_request_context
from flask.logging import default_handler


LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    def filter(self, record):
        request_id = None
        if has_request_context():
            request_id = getattr(g, "request_id", None)
        record.request_id = request_id or "-"
        return True


class RequestIdHandler(logging.StreamHandler):
    def __init__(self):
        super().__init__()
        self.setFormatter(logging.Formatter(LOG_FORMAT))
        self.addFilter(RequestIdFilter())


def configure_logging(app) -> None:
    """
    app.logger is the "storefront" logger, so service modules logging under
    storefront.* share this handler.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = app.logger
    logger.removeHandler(default_handler)
    for handler in list(logger.handlers):
        if isinstance(handler, RequestIdHandler):
            logger.removeHandler(handler)
    logger.addHandler(RequestIdHandler())
    logger.setLevel(level)

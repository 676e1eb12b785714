# src/alertledger/logging_conf.py
import logging
import sys

from alertledger.config import settings


def setup_logging(level: int | None = None) -> logging.Logger:
    """Attach a stdout handler to the package logger (once)."""
    logger = logging.getLogger("alertledger")
    if logger.handlers:
        return logger
    if level is None:
        level = logging.DEBUG if settings.ENV == "dev" else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # ledger commands are logged by us; uvicorn's per-request lines are noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return logger

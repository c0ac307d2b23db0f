"""Console logging bootstrap shared by the server and the CLI."""
from __future__ import annotations

import logging
import sys

LOGGER_NAME = "ytconvert"


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[37m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers still see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        lvl = record.levelname
        record.levelname = f"{self.COLORS.get(lvl, self.RESET)}{lvl}{self.RESET}"
        return super().format(record)


def init_logger(level: str = "INFO") -> logging.Logger:
    """
    Idempotent logger init:
    - Logs to stdout with colored level names.
    - Respects the requested level for the root logger.
    - Leaves uvicorn's own loggers at INFO.
    """
    root = logging.getLogger()
    if getattr(root, "_ytconvert_inited", False):
        return logging.getLogger(LOGGER_NAME)

    resolved = getattr(logging, (level or "INFO").upper(), logging.INFO)
    root.setLevel(resolved)

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.setFormatter(
        ColoredFormatter("%(asctime)s %(levelname)s %(name)s - %(message)s", datefmt="%Y-%m-%dT%H:%M:%S%z")
    )
    root.addHandler(handler)

    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)

    root._ytconvert_inited = True  # type: ignore[attr-defined]
    logger = logging.getLogger(LOGGER_NAME)
    logger.debug("Logger initialized")
    return logger

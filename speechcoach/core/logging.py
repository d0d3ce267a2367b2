# speechcoach/core/logging.py
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

def configure_logging(level: str = "INFO") -> None:
    """
    Single stream handler on the root logger. Safe to call more than once
    (uvicorn --reload re-imports main).
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not any(getattr(h, "_speechcoach", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._speechcoach = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    # httpx logs every request at INFO; keep vendor calls quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.WARNING if level.upper() != "DEBUG" else logging.DEBUG)

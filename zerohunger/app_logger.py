# zerohunger/app_logger.py
"""Console logging for the ``zerohunger.*`` logger tree.

Modules call ``get_logger("lifecycle")`` and log under ``zerohunger.lifecycle``.
The level comes from ``Settings.log_level``; uvicorn keeps its own loggers.
"""
import logging
from typing import Optional

from zerohunger.core.config import settings

ROOT = "zerohunger"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

def _level(name: Optional[str]) -> int:
    value = logging.getLevelName((name or settings.log_level).upper())
    return value if isinstance(value, int) else logging.INFO

def setup_logging(level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(ROOT)
    logger.setLevel(_level(level))

    # module reloads (uvicorn --reload) must not stack handlers
    handler = next((h for h in logger.handlers if getattr(h, "_zerohunger", False)), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._zerohunger = True
        logger.addHandler(handler)

    logger.propagate = False
    return logger

def get_logger(name: Optional[str] = None) -> logging.Logger:
    base = logging.getLogger(ROOT)
    return base.getChild(name) if name else base

logger = setup_logging()

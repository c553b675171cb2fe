"""
Shared utilities.

Provides get_logger() so every module logs with the same format and level.
"""
import logging
import os

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_configured = False


def configure_logging(level: str = None) -> None:
    """
    Configure the package root logger.

    Handlers are installed once; an explicit level always overrides the
    LOG_LEVEL environment default.
    """
    global _configured
    root = logging.getLogger("neurosynapse")
    if _configured:
        if level:
            root.setLevel(getattr(logging, level.upper(), logging.INFO))
        return

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.
    """
    configure_logging()
    return logging.getLogger(name)


__all__ = ["get_logger", "configure_logging"]

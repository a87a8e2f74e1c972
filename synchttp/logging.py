import logging
from typing import Optional

LOGGER_NAME = "synchttp"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the package logger, or a child of it when ``name`` is given.

    A ``NullHandler`` is attached to the package logger so nothing is emitted
    unless the application configures logging.
    """
    root = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(h, logging.NullHandler) for h in root.handlers):
        root.addHandler(logging.NullHandler())
    if name:
        return root.getChild(name)
    return root

import logging
import sys

from pgwarden.config import settings

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"


class Logger:
    """Thin wrapper that hands out consistently configured stdlib loggers."""

    _configured = False

    def __init__(self, name: str, level: str | None = None) -> None:
        self._name = name
        self._level = (level or settings.LOG_LEVEL).upper()

    @classmethod
    def _configure_root(cls, level: str) -> None:
        if cls._configured:
            return
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root = logging.getLogger("pgwarden")
        root.addHandler(handler)
        root.setLevel(level)
        root.propagate = False
        cls._configured = True

    def get_logger(self) -> logging.Logger:
        self._configure_root(self._level)
        return logging.getLogger(self._name)

import logging
import os
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional


DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | user=%(user_id)s | %(message)s"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")

_current_user_id: ContextVar[Optional[int]] = ContextVar("current_user_id", default=None)


class ContextFilter(logging.Filter):
    """Stamps each record with the user bound to the current task, or "-"."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "user_id"):
            user_id = _current_user_id.get()
            record.user_id = "-" if user_id is None else user_id
        return True


def bind_user(user_id: Optional[int]) -> None:
    """Attach ``user_id`` to every log line emitted by the current task."""
    _current_user_id.set(user_id)


@contextmanager
def user_context(user_id: Optional[int]) -> Iterator[None]:
    token = _current_user_id.set(user_id)
    try:
        yield
    finally:
        _current_user_id.reset(token)


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    resolved_level = getattr(logging, (level or DEFAULT_LEVEL), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(resolved_level)
    # Reloads would otherwise stack handlers
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)

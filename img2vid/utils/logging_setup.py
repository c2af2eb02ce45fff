from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | session=%(session_id)s job=%(job)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_session_id: contextvars.ContextVar[str] = contextvars.ContextVar("log_session_id", default="-")
_job: contextvars.ContextVar[str] = contextvars.ContextVar("log_job", default="-")


class ContextFilter(logging.Filter):
    """Stamps the current session and generation job onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()
        record.job = _job.get()
        return True


@contextmanager
def log_context(session_id: Optional[str] = None, job: Optional[str] = None) -> Iterator[None]:
    session_token = _session_id.set(session_id) if session_id is not None else None
    job_token = _job.set(job) if job is not None else None
    try:
        yield
    finally:
        if job_token is not None:
            _job.reset(job_token)
        if session_token is not None:
            _session_id.reset(session_token)


def _is_ours(handler: logging.Handler) -> bool:
    return getattr(handler, "_img2vid", False)


def configure_logging(logging_config: Dict[str, Any]) -> logging.Logger:
    """
    Attach the app's handlers to the root logger once.

    `logging_config` is the `logging` section of the app config: `log_file`
    (empty disables the file handler), `level` and `enable_console`.
    """
    root = logging.getLogger()
    if any(_is_ours(h) for h in root.handlers):
        return root

    handlers = []
    log_file = logging_config.get("log_file")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if logging_config.get("enable_console"):
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        handler._img2vid = True
        root.addHandler(handler)

    root.setLevel(getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO))
    return root

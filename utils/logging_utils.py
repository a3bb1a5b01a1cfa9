"""
Logging setup shared by the API process, the warmup worker and the tests.

Usage
-----
At process start (see ``run_server.py``):

    from utils.logging_utils import setup_logging

    setup_logging(level="INFO", job_name="district-advisor")

In a module:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="ranking")
    logger.info("Ranking recomputed", extra={"regions": 64})

Every record carries ``job_name`` and ``tag`` so log lines from the
background warmup thread and request handlers can be told apart.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Mapping, Optional


# ---------------------------------------------------------------------------
# Bootstrap config
# ---------------------------------------------------------------------------

# Applied on import so that anything logged before setup_logging() still has
# a timestamp and level.
BOOTSTRAP_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
BOOTSTRAP_DATEFMT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    level=logging.INFO,
    format=BOOTSTRAP_FORMAT,
    datefmt=BOOTSTRAP_DATEFMT,
)


DEFAULT_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(name)s | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_JOB_NAME = "district-advisor"

# Query parameter names whose values never reach a log line.
SENSITIVE_QUERY_TOKENS = ("apikey", "api_key", "key", "token", "secret", "pass")

_CONFIGURED: bool = False


# ---------------------------------------------------------------------------
# Record filters
# ---------------------------------------------------------------------------

class MaxLevelFilter(logging.Filter):
    """Pass only records at or below ``max_level`` (keeps stdout free of warnings)."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class EnsureTagFilter(logging.Filter):
    """
    Guarantee a ``tag`` attribute on every record.

    Records emitted through a tagged adapter already have one; plain
    ``logging.getLogger`` callers (uvicorn, requests) get the last segment of
    their logger name, e.g. ``"uvicorn.error"`` -> ``"error"``.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            logger_name = getattr(record, "name", "")
            record.tag = logger_name.split(".")[-1] if logger_name else "-"
        return True


class JobNameFilter(logging.Filter):
    """Stamp every record with the process-wide ``job_name``."""

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = DEFAULT_JOB_NAME,
) -> Mapping[str, Any]:
    """
    Build the ``dictConfig`` mapping used by :func:`setup_logging`.

    DEBUG and INFO go to stdout, WARNING and above go to stderr; both
    handlers share the tag/job_name filters and the same formatter.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "ensure_tag": {"()": EnsureTagFilter},
            "job_name": {"()": JobNameFilter, "job_name": job_name},
            "stdout_max_info": {
                "()": MaxLevelFilter,
                "max_level": logging.INFO,
            },
        },
        "formatters": {
            "standard": {
                "format": log_format,
                "datefmt": date_format,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["ensure_tag", "job_name", "stdout_max_info"],
                "level": "DEBUG",
                "stream": "ext://sys.stdout",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["ensure_tag", "job_name"],
                "level": "WARNING",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["stdout", "stderr"],
        },
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = DEFAULT_JOB_NAME,
    override_existing: bool = False,
) -> None:
    """
    Apply the logging configuration once per process.

    Repeated calls are ignored unless ``override_existing`` is True, so the
    app factory and ``run_server.py`` can both call it safely.
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    logging.config.dictConfig(
        build_logging_config(
            level=level,
            log_format=log_format,
            date_format=date_format,
            job_name=job_name,
        )
    )
    _CONFIGURED = True


def get_tagged_logger(
    name: str,
    *,
    tag: Optional[str] = None,
) -> logging.LoggerAdapter:
    """
    Return a ``LoggerAdapter`` whose records always carry ``tag``.

    ``tag`` defaults to the last dotted segment of ``name``.
    """
    base_logger = logging.getLogger(name)
    if tag is None:
        tag = name.split(".")[-1]
    return logging.LoggerAdapter(base_logger, {"tag": tag})


def mask_url_secrets(url: str) -> str:
    """Return ``url`` with credential-like query parameter values replaced by ``***``.

    Examples
    --------
    - https://customer-api.open-meteo.com/v1/forecast?latitude=23.8&apikey=abc
      -> https://customer-api.open-meteo.com/v1/forecast?latitude=23.8&apikey=%2A%2A%2A
    - https://api.open-meteo.com/v1/forecast?latitude=23.8 -> unchanged
    """
    from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.query:
        return url

    masked_pairs = []
    changed = False
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if any(token in key.lower() for token in SENSITIVE_QUERY_TOKENS):
            masked_pairs.append((key, "***"))
            changed = True
        else:
            masked_pairs.append((key, value))
    if not changed:
        return url

    return urlunparse(parsed._replace(query=urlencode(masked_pairs)))

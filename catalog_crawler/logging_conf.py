"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
import re
from pathlib import Path
from typing import Iterable

import structlog

_LOGGING_INITIALISED = False

SECRET_KEYS = frozenset({"api_key", "credential", "credentials", "numista_api_key"})


def redact_secrets(_logger, _method, event_dict):
    """structlog processor masking credential values passed as log fields."""

    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def default_log_dir() -> Path:
    env_root = os.environ.get("CATALOG_CRAWLER_HOME")
    root = Path(env_root).expanduser() if env_root else Path.cwd()
    return root / "logs"


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = default_log_dir()
    error_log = log_dir / "error.log"
    crawler_log = log_dir / "crawler.log"
    (log_dir / "crawls").mkdir(parents=True, exist_ok=True)
    error_log.touch(exist_ok=True)
    crawler_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.json.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    # Console stays quiet unless verbose; the Rich progress owns the terminal.
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level if verbose else "WARNING",
                        "formatter": "plain",
                    },
                    "crawler_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(crawler_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    "catalog_crawler": {
                        "handlers": ["console", "crawler_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                redact_secrets,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("catalog_crawler")


def _slug(label: str) -> str:
    return re.sub(r"[^0-9A-Za-z_-]+", "_", label.strip()) or "crawl"


def crawl_logger(label: str, verbose: bool = False) -> structlog.BoundLogger:
    """Return a logger bound to one crawl and ensure its file handler exists."""

    configure_logging(verbose)
    slug = _slug(label)
    crawl_log_path = default_log_dir() / "crawls" / f"{slug}.log"
    crawl_log_path.parent.mkdir(parents=True, exist_ok=True)

    logger_name = f"catalog_crawler.crawl.{slug}"
    py_logger = logging.getLogger(logger_name)
    if not any(
        isinstance(handler, logging.FileHandler)
        and handler.baseFilename == str(crawl_log_path.resolve())
        for handler in py_logger.handlers
    ):
        file_handler = logging.FileHandler(crawl_log_path, encoding="utf-8")
        global_logger = logging.getLogger("catalog_crawler")
        if global_logger.handlers:
            file_handler.setFormatter(global_logger.handlers[0].formatter)
        file_handler.setLevel(logging.INFO)
        py_logger.addHandler(file_handler)

    return structlog.get_logger(logger_name).bind(crawl=label)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_crawl_logs() -> Iterable[Path]:
    crawls_dir = default_log_dir() / "crawls"
    if not crawls_dir.exists():
        return []
    return sorted(crawls_dir.glob("*.log"))


__all__ = [
    "available_crawl_logs",
    "configure_logging",
    "crawl_logger",
    "default_log_dir",
    "redact_secrets",
    "tail_log",
]

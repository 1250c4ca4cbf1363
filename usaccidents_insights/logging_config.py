#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/logging_config.py
# Purpose: Centralized logging setup (rotating file, redaction, levels)
#
# Description of code and how it works:
# - Creates a TimedRotatingFileHandler (daily) + console handler.
# - Redacts the database password if it ever appears in logs.
# - Respects env: ACCIDENTS_LOG_DIR, ACCIDENTS_LOG_FILE, ACCIDENTS_LOG_LEVEL.
#
# Author: Tim Canady
# Created: 2025-10-09
#
# Version: 1.1.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.1.0 (2025-11-03): Redact DATABASE_URL password instead of OHGO key; idempotent setup.
# - 1.0.0 (2025-10-09): Initial logging bundle.
###################################################################
#
from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .config import Settings, get_settings

LOGGER_NAME = "usaccidents"


def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _db_password(url: Optional[str]) -> str:
    if not url:
        return ""
    try:
        return make_url(url).password or ""
    except ArgumentError:
        return ""


class _RedactFilter(logging.Filter):
    def __init__(self, secret: Optional[str]):
        super().__init__()
        self.secret = secret or ""

    def _mask(self, v):
        return v.replace(self.secret, "***") if isinstance(v, str) and self.secret in v else v

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secret:
            if isinstance(record.msg, str):
                record.msg = self._mask(record.msg)
            if isinstance(record.args, dict):
                record.args = {k: self._mask(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask(v) for v in record.args)
        return True


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    settings = settings or get_settings()
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    # Where to write logs
    project_root = Path(__file__).resolve().parents[1]
    log_dir = Path(settings.log_dir or project_root / "logs")
    _ensure_dir(log_dir)
    log_file = Path(settings.log_file or log_dir / "usaccidents_insights.log")

    # Level
    level = getattr(logging, settings.log_level, logging.INFO)
    logger.setLevel(level)
    logger.propagate = False  # don't double-log to root

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S%z",
    )
    redact_filter = _RedactFilter(_db_password(settings.database_url))

    # File handler: rotate at midnight, keep 7 days
    fh = TimedRotatingFileHandler(str(log_file), when="midnight", backupCount=7, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(fmt)
    fh.addFilter(redact_filter)
    logger.addHandler(fh)

    # Console handler
    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(redact_filter)
    logger.addHandler(ch)

    logger.info("Logging initialized at %s (file=%s)", settings.log_level, log_file)
    return logger

"""
Root logger setup for eventstreams programs.

Library modules only create `logging.getLogger(__name__)` loggers; the
`eventstreams-tail` CLI (or an embedding application) calls setup_logging()
once to attach handlers.
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .config import get_section

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are chatty at DEBUG (sseclient logs every frame).
NOISY_LOGGERS = ("urllib3", "sseclient")


def _build_handlers(level_name: str, log_file: Optional[str]) -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level_name,
        },
    }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": level_name,
            "filename": log_file,
            "encoding": "utf-8",
        }
    return handlers


def setup_logging(config_path: str = "config.yaml") -> None:
    """
    Configure the root logger from the `logging` section of config.yaml.

    LOG_LEVEL overrides `logging.level`. Records go to stderr, and also to
    `logging.file` when one is set. urllib3 and sseclient are held at WARNING
    so a DEBUG run shows the stream's own records.
    """
    logging_cfg = get_section("logging", config_path)
    level_name = (os.getenv("LOG_LEVEL") or logging_cfg.get("level") or "INFO").upper()
    handlers = _build_handlers(level_name, logging_cfg.get("file"))

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": logging_cfg.get("format") or DEFAULT_FORMAT}},
            "handlers": handlers,
            "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
            "root": {"level": level_name, "handlers": list(handlers)},
        }
    )

from __future__ import annotations

import copy
import logging
import logging.config
from logging import LogRecord
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class AppFilter(logging.Filter):
    """
    Attach the stem of the emitting module's filename to each record.
    """

    def filter(self, record: LogRecord) -> bool:
        record.filenameStem = Path(record.filename).stem
        return True


def rich_handler_factory() -> RichHandler:
    return RichHandler(
        console=Console(stderr=True, width=160),
        rich_tracebacks=True,
        markup=False,
        show_path=False,
    )


LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "appfilter": {
            "()": AppFilter,
        }
    },
    "formatters": {
        "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
        "pretty": {"format": "[%(filenameStem)s] %(message)s"},
    },
    "handlers": {
        "default": {
            "formatter": "standard",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "rich": {
            "()": rich_handler_factory,
            "formatter": "pretty",
            "filters": ["appfilter"],
        },
    },
    "loggers": {
        "samplereader": {
            "handlers": ["rich"],
            "level": "INFO",
            "propagate": False,
        },
    },
}


def setup(level: int | str = "INFO", *, pretty: bool = True) -> None:
    """
    Initialize logging for the samplereader loggers.

    Args:
        level: Level of the ``samplereader`` logger
        pretty: Use the rich handler; otherwise plain lines on stderr
    """
    config = copy.deepcopy(LOGGING_CONFIG)
    logger = config["loggers"]["samplereader"]
    logger["level"] = logging.getLevelName(level) if isinstance(level, int) else level
    logger["handlers"] = ["rich"] if pretty else ["default"]
    logging.config.dictConfig(config)


__all__ = ("setup",)

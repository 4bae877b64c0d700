from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from todo_core.config import PROJECT_ROOT, SETTINGS, Settings

LOG_FILE_NAME = "todo_core.log"
APP_LOGGER_PREFIX = "todo_core."


class ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - todo_core records pass at the configured level
    - SQL statement logging passes only when SQL echo is on
    - other third-party records (sqlalchemy, alembic) need WARNING+
    The log file still receives everything.
    """

    def __init__(self, *, sql_echo: bool = False) -> None:
        super().__init__()
        self._sql_echo = sql_echo

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(APP_LOGGER_PREFIX) or name == "todo_core":
            return True
        if self._sql_echo and name.startswith("sqlalchemy.engine"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(settings: Settings = SETTINGS, *, root: Path = PROJECT_ROOT) -> Path:
    """Install file and console handlers on the root logger; returns the log file path.

    A relative ``settings.log_dir`` is resolved against ``root``.
    """
    log_dir = root / settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=3)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ConsoleNoiseFilter(sql_echo=settings.sql_echo))

    logging.basicConfig(
        level=settings.log_level.upper(),
        handlers=[file_handler, console_handler],
        force=True,
    )
    logging.getLogger(__name__).debug("Logging configured file=%s", log_file)
    return log_file

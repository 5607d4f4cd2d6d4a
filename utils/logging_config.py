"""Конфигурация логирования CRM: файл ``crm.log`` и консоль."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config import Settings, get_settings

LOG_FILE_NAME = "crm.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s │ %(message)s"


class PeeweeFilter(logging.Filter):
    """Фильтрует SELECT-запросы peewee."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - short doc
        """True, если SQL-запрос не начинается с ``SELECT``."""
        if hasattr(record, "sql"):
            msg = record.sql
        else:
            msg = record.getMessage()
        return not str(msg).lstrip().startswith("SELECT")


def _resolve_level(settings: Settings) -> int:
    if settings.detailed_logging:
        return logging.DEBUG
    level = logging.getLevelName(settings.log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(settings: Settings | None = None) -> Path:
    """Настраивает вывод логов и возвращает путь к файлу журнала."""
    settings = settings or get_settings()
    logs_dir = Path(settings.log_dir).expanduser()
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / LOG_FILE_NAME

    level = _resolve_level(settings)
    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_h = RotatingFileHandler(
        log_path,
        maxBytes=2_000_000,  # 2 MB
        backupCount=3,
        encoding="utf-8",
    )
    console_h = logging.StreamHandler()
    for handler in (file_h, console_h):
        handler.setFormatter(fmt)
        handler.setLevel(level)

    logging.basicConfig(level=level, handlers=[file_h, console_h], force=True)

    peewee_logger = logging.getLogger("peewee")
    for old in [f for f in peewee_logger.filters if isinstance(f, PeeweeFilter)]:
        peewee_logger.removeFilter(old)
    if not settings.detailed_logging:
        peewee_logger.addFilter(PeeweeFilter())

    return log_path

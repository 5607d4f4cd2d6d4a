from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from appdirs import user_log_dir
from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    database_url: str = ""
    log_dir: str = field(default_factory=lambda: user_log_dir("estate_crm"))
    log_level: str = "INFO"
    detailed_logging: bool = False
    # Переходы статусов выполняются одной транзакцией БД
    atomic_transitions: bool = True
    # Бронирование только свободных (available) юнитов
    require_available_unit: bool = True
    current_employee_email: str | None = None


@lru_cache()
def get_settings() -> Settings:
    dotenv_path = Path(__file__).resolve().parent / ".env"
    load_dotenv(dotenv_path)

    return Settings(
        database_url=os.getenv("DATABASE_URL", ""),
        log_dir=os.getenv("LOG_DIR") or user_log_dir("estate_crm"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        detailed_logging=_env_flag("DETAILED_LOGGING", False),
        atomic_transitions=_env_flag("ATOMIC_TRANSITIONS", True),
        require_available_unit=_env_flag("REQUIRE_AVAILABLE_UNIT", True),
        current_employee_email=os.getenv("CURRENT_EMPLOYEE_EMAIL") or None,
    )

import logging

from config import Settings, get_settings
from database.init import create_tables, init_from_env
from core.app_context import get_app_context
from utils.logging_config import setup_logging

__all__ = ["main"]


def main(settings: Settings | None = None) -> int:
    """Готовит базу данных и журнал CRM к работе."""

    settings = settings or get_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL не задан в .env")

    init_from_env(settings.database_url)
    log_path = setup_logging(settings)
    logger = logging.getLogger(__name__)

    # ───── Проверка и подготовка окружения ─────
    create_tables()

    context = get_app_context()
    if context.settings.current_employee_email:
        actor = context.actor_resolver()
        if actor is None:
            logger.warning(
                "⚠️ Сотрудник %s не найден, действия будут отклонены",
                context.settings.current_employee_email,
            )
        else:
            logger.info("👤 Текущий сотрудник: %s (%s)", actor.name, actor.role.value)

    logger.info(
        "🚀 CRM готова: переходы %s, журнал %s",
        "в транзакции" if settings.atomic_transitions else "без транзакции",
        log_path,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Пакет прикладных сервисов.

Подмодули импортируются напрямую, например:
    from services.reservations import create_reservation
    from services.sales import convert_to_sale
    from services.lifecycle_app_service import LifecycleAppService
"""

__all__: list[str] = []

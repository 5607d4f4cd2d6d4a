"""Подмодуль сервисов контактов с клиентами."""

from .dto import FollowUpCommand, FollowUpDTO
from .followup_service import (
    get_follow_ups_by_client_id,
    list_follow_ups,
    record_follow_up,
    status_after_follow_up,
)

__all__ = [
    "FollowUpCommand",
    "FollowUpDTO",
    "get_follow_ups_by_client_id",
    "list_follow_ups",
    "record_follow_up",
    "status_after_follow_up",
]

"""Подмодуль сервисов бронирования юнитов."""

from .dto import (
    NOTE_MAX_LENGTH,
    NOTE_OPTIONS,
    ReservationCreateCommand,
    ReservationDTO,
    ReservationNoteDTO,
    ReservationStats,
    UnitDTO,
)
from .reservation_service import (
    add_reservation_note,
    build_reservation_query,
    cancel_reservation,
    create_reservation,
    delete_reservation,
    get_reservation_by_id,
    get_reservation_stats,
    list_reservable_units,
    list_reservation_notes,
    list_reservations,
)

__all__ = [
    "NOTE_MAX_LENGTH",
    "NOTE_OPTIONS",
    "ReservationCreateCommand",
    "ReservationDTO",
    "ReservationNoteDTO",
    "ReservationStats",
    "UnitDTO",
    "add_reservation_note",
    "build_reservation_query",
    "cancel_reservation",
    "create_reservation",
    "delete_reservation",
    "get_reservation_by_id",
    "get_reservation_stats",
    "list_reservable_units",
    "list_reservation_notes",
    "list_reservations",
]

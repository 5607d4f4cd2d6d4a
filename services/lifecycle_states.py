"""Таблицы допустимых переходов статусов.

Каждая таблица обязана покрывать все значения своего перечисления:
новый статус нельзя добавить, не описав его переходы.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from database.models import ClientStatus, ReservationStatus, UnitStatus
from services.errors import InvalidTransitionError, ValidationError

UNIT_TRANSITIONS: Mapping[UnitStatus, frozenset[UnitStatus]] = {
    UnitStatus.AVAILABLE: frozenset({UnitStatus.RESERVED}),
    UnitStatus.RESERVED: frozenset({UnitStatus.SOLD, UnitStatus.AVAILABLE}),
    UnitStatus.SOLD: frozenset({UnitStatus.RESERVED}),
}

RESERVATION_TRANSITIONS: Mapping[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.ACTIVE: frozenset(
        {ReservationStatus.CONVERTED, ReservationStatus.CANCELLED}
    ),
    # обратно в active только при удалении продажи
    ReservationStatus.CONVERTED: frozenset({ReservationStatus.ACTIVE}),
    ReservationStatus.CANCELLED: frozenset(),
}

# Статусы после контакта: перезаписываются всегда (последняя запись побеждает)
FOLLOW_UP_STATUSES = frozenset({ClientStatus.INTERESTED, ClientStatus.VISITED})

_ALWAYS = FOLLOW_UP_STATUSES | {ClientStatus.RESERVED}

CLIENT_TRANSITIONS: Mapping[ClientStatus, frozenset[ClientStatus]] = {
    ClientStatus.NEW: _ALWAYS | {ClientStatus.LEAD},
    ClientStatus.LEAD: _ALWAYS | {ClientStatus.NEW},
    ClientStatus.INTERESTED: _ALWAYS | {ClientStatus.NEW, ClientStatus.CONVERTED},
    ClientStatus.VISITED: _ALWAYS | {ClientStatus.NEW, ClientStatus.CONVERTED},
    ClientStatus.RESERVED: _ALWAYS | {ClientStatus.NEW, ClientStatus.CONVERTED},
    ClientStatus.CONVERTED: _ALWAYS | {ClientStatus.CONVERTED},
}

_TABLES: dict[str, tuple[type[Enum], Mapping]] = {
    "client": (ClientStatus, CLIENT_TRANSITIONS),
    "unit": (UnitStatus, UNIT_TRANSITIONS),
    "reservation": (ReservationStatus, RESERVATION_TRANSITIONS),
}

for _entity, (_enum, _table) in _TABLES.items():
    _missing = set(_enum) - set(_table)
    if _missing:  # pragma: no cover - ошибка разработчика
        raise RuntimeError(
            f"Таблица переходов '{_entity}' не покрывает статусы: {sorted(_missing)}"
        )


def parse_status(entity: str, value: str | Enum):
    """Привести строку из базы к перечислению сущности."""
    enum_cls, _ = _table_for(entity)
    try:
        return enum_cls(getattr(value, "value", value))
    except ValueError:
        raise ValidationError(f"Неизвестный статус {entity}: '{value}'") from None


def can_transition(entity: str, current: str | Enum, target: str | Enum) -> bool:
    _, table = _table_for(entity)
    return parse_status(entity, target) in table[parse_status(entity, current)]


def ensure_transition(entity: str, current: str | Enum, target: str | Enum) -> None:
    if not can_transition(entity, current, target):
        raise InvalidTransitionError(
            entity,
            getattr(current, "value", current),
            getattr(target, "value", target),
        )


def sources_for(entity: str, target: str | Enum) -> frozenset:
    """Все статусы, из которых разрешён переход в ``target``."""
    _, table = _table_for(entity)
    wanted = parse_status(entity, target)
    return frozenset(src for src, targets in table.items() if wanted in targets)


def _table_for(entity: str) -> tuple[type[Enum], Mapping]:
    try:
        return _TABLES[entity]
    except KeyError:
        raise ValueError(f"Нет таблицы переходов для '{entity}'") from None

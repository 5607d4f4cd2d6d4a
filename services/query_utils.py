"""Вспомогательные функции чтения и записи статусов через Peewee."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Iterable, TypeVar

from peewee import (
    Field,
    InterfaceError,
    Model,
    Node,
    OperationalError,
    PeeweeException,
)

from services.errors import DependencyError, NotFoundError, StaleStateError
from services.lifecycle_states import ensure_transition, parse_status, sources_for

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE = (OperationalError, InterfaceError)
READ_ATTEMPTS = 2


def read_with_retry(fetch: Callable[[], T], *, what: str = "чтение") -> T:
    """Выполнить чтение, повторив его один раз при сбое соединения."""
    for attempt in range(1, READ_ATTEMPTS + 1):
        try:
            return fetch()
        except _RETRYABLE as exc:
            if attempt == READ_ATTEMPTS:
                logger.error("❌ %s: база недоступна (%s)", what, exc)
                raise DependencyError(f"Не удалось выполнить {what}: {exc}") from exc
            logger.warning("⚠️ %s: повтор после ошибки %s", what, exc)
        except PeeweeException as exc:
            logger.error("❌ %s: ошибка базы данных (%s)", what, exc)
            raise DependencyError(f"Не удалось выполнить {what}: {exc}") from exc
    raise AssertionError("unreachable")  # pragma: no cover


def get_or_not_found(model: type[Model], row_id: Any, entity: str) -> Model:
    """Прочитать запись по id или выбросить :class:`NotFoundError`."""
    if row_id in (None, ""):
        raise NotFoundError(entity, row_id)
    row = read_with_retry(
        lambda: model.get_or_none(model.id == row_id),
        what=f"чтение {entity} id={row_id}",
    )
    if row is None:
        raise NotFoundError(entity, row_id)
    return row


def swap_status(
    model: type[Model],
    entity: str,
    row_id: Any,
    target: Enum,
    *,
    expected: Iterable[Enum] | None = None,
    **extra: Any,
) -> int:
    """Сменить статус записи сравнением-с-обменом.

    ``UPDATE ... SET status = target WHERE id = ? AND status IN (expected)``.
    Без ``expected`` допустимы все статусы, из которых таблица переходов
    разрешает ``target``. Ноль изменённых строк означает, что запись пропала
    или её статус уже другой.
    """
    if expected is None:
        sources = set(sources_for(entity, target))
    else:
        sources = {parse_status(entity, status) for status in expected}
        for status in sources:
            ensure_transition(entity, status, target)

    values = {model.status: parse_status(entity, target).value}
    for name, value in extra.items():
        values[getattr(model, name)] = value

    query = model.update(values).where(
        (model.id == row_id) & (model.status.in_([s.value for s in sources]))
    )
    changed = query.execute()
    if changed:
        return changed

    row = model.get_or_none(model.id == row_id)
    if row is None:
        raise NotFoundError(entity, row_id)
    if expected is None:
        # неизвестный или запрещённый текущий статус
        ensure_transition(entity, row.status, target)
    raise StaleStateError(
        entity, row_id, sorted(s.value for s in sources), row.status
    )


def build_or_condition(fields: Iterable[Field], value: str) -> Node | None:
    """Сформировать OR-условие ``field.contains(value)`` для разных моделей.

    Parameters:
        fields: Iterable с полями Peewee из разных моделей.
        value: Текст для поиска.

    Returns:
        Peewee-выражение, объединяющее условия ``OR``. ``None`` если список
        полей пуст или значение не задано.
    """
    if not value:
        return None
    condition: Node | None = None
    for field in fields:
        expr = field.contains(value)
        condition = expr if condition is None else (condition | expr)
    return condition

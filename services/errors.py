"""Ошибки жизненного цикла клиента, юнита, брони и продажи."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from services.transition import Transition


class LifecycleError(Exception):
    """Базовая ошибка переходов статусов."""


class ValidationError(LifecycleError, ValueError):
    """Некорректные или отсутствующие входные данные."""


class InvalidTransitionError(ValidationError):
    """Переход статуса не разрешён таблицей переходов."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"Недопустимый переход {entity}: '{current}' → '{target}'"
        )
        self.entity = entity
        self.current = current
        self.target = target


class NotFoundError(LifecycleError, LookupError):
    """Связанная запись не найдена."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} id={entity_id} не найден(а)")
        self.entity = entity
        self.entity_id = entity_id


class AccessDeniedError(LifecycleError, PermissionError):
    """Нет текущего сотрудника или недостаточно прав."""


class StaleStateError(LifecycleError):
    """Статус записи изменился между чтением и записью."""

    def __init__(self, entity: str, entity_id: Any, expected: Any, actual: Any):
        super().__init__(
            f"{entity} id={entity_id}: ожидался статус {expected}, сейчас '{actual}'"
        )
        self.entity = entity
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual


class DependencyError(LifecycleError):
    """Ошибка обращения к базе данных."""


class ConsistencyWarning(LifecycleError):
    """Основная запись выполнена, но сопутствующее обновление не прошло.

    ``transition`` хранит выполненные и оставшиеся шаги; ``resume()``
    повторяет оставшиеся.
    """

    def __init__(self, transition: "Transition", cause: BaseException):
        super().__init__(
            f"Переход '{transition.name}' выполнен частично: "
            f"шаг '{transition.failed_step}' не выполнен ({cause}). "
            f"Осталось: {', '.join(transition.pending) or '—'}"
        )
        self.transition = transition
        self.cause = cause

    @property
    def result(self) -> Any:
        return self.transition.result

    def resume(self) -> Any:
        return self.transition.resume()

"""Многошаговый переход статусов с журналом выполненных шагов.

При ``atomic=True`` все шаги выполняются в одной транзакции ``db.atomic()``.
Без транзакции переход работает как сага: сбой основного шага откатывает
выполненные шаги их компенсациями, сбой сопутствующего шага (``follow_through``)
после основной записи поднимает :class:`ConsistencyWarning`, через который
оставшиеся шаги можно повторить.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from peewee import PeeweeException

from config import get_settings
from database.db import db
from services.errors import ConsistencyWarning, DependencyError, LifecycleError

logger = logging.getLogger(__name__)


@dataclass
class Step:
    name: str
    action: Callable[[], Any]
    compensate: Callable[[], Any] | None = None
    follow_through: bool = False


class Transition:
    def __init__(
        self,
        name: str,
        *,
        atomic: bool | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.atomic = get_settings().atomic_transitions if atomic is None else atomic
        self.context: dict[str, Any] = dict(context or {})
        self.steps: list[Step] = []
        self.results: dict[str, Any] = {}
        self.completed: list[str] = []
        self.failed_step: str | None = None
        self._result_step: str | None = None

    def step(
        self,
        name: str,
        action: Callable[[], Any],
        *,
        compensate: Callable[[], Any] | None = None,
        follow_through: bool = False,
        result: bool = False,
    ) -> "Transition":
        if any(existing.name == name for existing in self.steps):
            raise ValueError(f"Шаг '{name}' уже добавлен в переход '{self.name}'")
        self.steps.append(Step(name, action, compensate, follow_through))
        if result:
            self._result_step = name
        return self

    @property
    def pending(self) -> list[str]:
        return [step.name for step in self.steps if step.name not in self.completed]

    @property
    def result(self) -> Any:
        if self._result_step is None:
            return None
        return self.results.get(self._result_step)

    def run(self) -> Any:
        if self.atomic:
            self._run_atomic()
        else:
            self._run_saga()
        logger.info("✅ Переход '%s' выполнен %s", self.name, self.context)
        return self.result

    def resume(self) -> Any:
        """Повторить невыполненные шаги после частичного сбоя."""
        if not self.pending:
            return self.result
        logger.info(
            "🔁 Повтор перехода '%s', шаги: %s", self.name, ", ".join(self.pending)
        )
        self.failed_step = None
        for step in self._pending_steps():
            try:
                self._execute(step)
            except LifecycleError as exc:
                logger.warning(
                    "⚠️ Повтор перехода '%s' снова прерван на шаге '%s': %s",
                    self.name,
                    step.name,
                    exc,
                )
                raise ConsistencyWarning(self, exc) from exc
        logger.info("✅ Переход '%s' завершён после повтора", self.name)
        return self.result

    # ──────────────────────────── внутреннее ────────────────────────────

    def _pending_steps(self) -> list[Step]:
        return [step for step in self.steps if step.name not in self.completed]

    def _execute(self, step: Step) -> None:
        try:
            value = step.action()
        except LifecycleError:
            self.failed_step = step.name
            raise
        except PeeweeException as exc:
            self.failed_step = step.name
            logger.exception(
                "❌ Переход '%s': ошибка базы на шаге '%s'", self.name, step.name
            )
            raise DependencyError(
                f"Шаг '{step.name}' перехода '{self.name}' не выполнен: {exc}"
            ) from exc
        self.results[step.name] = value
        self.completed.append(step.name)

    def _run_atomic(self) -> None:
        try:
            with db.atomic():
                for step in self.steps:
                    self._execute(step)
        except LifecycleError as exc:
            # транзакция откатана: ни один шаг не сохранён
            self.completed.clear()
            self.results.clear()
            logger.warning(
                "⚠️ Переход '%s' откатан на шаге '%s': %s",
                self.name,
                self.failed_step,
                exc,
            )
            raise

    def _run_saga(self) -> None:
        for step in self.steps:
            try:
                self._execute(step)
            except LifecycleError as exc:
                primary_done = any(
                    not done.follow_through
                    for done in self.steps
                    if done.name in self.completed
                )
                if step.follow_through and primary_done:
                    logger.warning(
                        "⚠️ Переход '%s': основная запись выполнена, шаг '%s' нет: %s",
                        self.name,
                        step.name,
                        exc,
                    )
                    raise ConsistencyWarning(self, exc) from exc
                self._compensate()
                raise

    def _compensate(self) -> None:
        by_name = {step.name: step for step in self.steps}
        for name in reversed(list(self.completed)):
            step = by_name[name]
            if step.compensate is None:
                continue
            try:
                step.compensate()
            except (LifecycleError, PeeweeException):
                logger.exception(
                    "❌ Переход '%s': компенсация шага '%s' не удалась",
                    self.name,
                    name,
                )
                continue
            self.completed.remove(name)
            self.results.pop(name, None)
            logger.info("↩️ Переход '%s': шаг '%s' компенсирован", self.name, name)

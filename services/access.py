"""Текущий сотрудник и проверки прав.

Сотрудник определяется один раз на действие и явно передаётся в сервисы.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from peewee import fn

from database.models import Employee, EmployeeProject, EmployeeRole, Reservation
from services.errors import AccessDeniedError, ValidationError
from services.query_utils import read_with_retry

logger = logging.getLogger(__name__)

# роли, которым видны все проекты
_ALL_PROJECTS_ROLES = {EmployeeRole.ADMIN, EmployeeRole.SALES_MANAGER}


@dataclass(frozen=True)
class Actor:
    id: int
    role: EmployeeRole
    name: str = ""

    @classmethod
    def from_employee(cls, employee: Employee) -> "Actor":
        try:
            role = EmployeeRole(employee.role)
        except ValueError:
            raise ValidationError(
                f"У сотрудника id={employee.id} неизвестная роль '{employee.role}'"
            ) from None
        return cls(id=employee.id, role=role, name=employee.name)

    @property
    def is_admin(self) -> bool:
        return self.role is EmployeeRole.ADMIN


class ActorResolver(Protocol):
    def __call__(self) -> Actor | None: ...


class EmployeeEmailResolver:
    """Ищет активного сотрудника по e-mail текущей сессии без учёта регистра."""

    def __init__(self, email_source: Callable[[], str | None]) -> None:
        self._email_source = email_source

    def __call__(self) -> Actor | None:
        email = (self._email_source() or "").strip().lower()
        if not email:
            return None
        employee = read_with_retry(
            lambda: Employee.get_or_none(fn.LOWER(Employee.email) == email),
            what=f"поиск сотрудника {email}",
        )
        if employee is None or not employee.is_active:
            logger.warning("❗ Сотрудник с e-mail %s не найден или отключён", email)
            return None
        return Actor.from_employee(employee)


def require_actor(actor: Actor | None) -> Actor:
    if actor is None:
        raise AccessDeniedError("Текущий сотрудник не определён")
    return actor


def ensure_admin(actor: Actor | None) -> Actor:
    actor = require_actor(actor)
    if not actor.is_admin:
        logger.warning("⛔ Сотрудник id=%s: действие только для администратора", actor.id)
        raise AccessDeniedError("Действие доступно только администратору")
    return actor


def sees_all_projects(actor: Actor) -> bool:
    return actor.role in _ALL_PROJECTS_ROLES


def ensure_manager(actor: Actor | None) -> Actor:
    """Администратор или руководитель продаж."""
    actor = require_actor(actor)
    if not sees_all_projects(actor):
        logger.warning("⛔ Сотрудник id=%s: действие только для руководителя", actor.id)
        raise AccessDeniedError("Действие доступно только руководителю продаж")
    return actor


def allowed_project_ids(actor: Actor) -> set[int] | None:
    """Проекты сотрудника; ``None``, если доступны все проекты."""
    if sees_all_projects(actor):
        return None
    rows = read_with_retry(
        lambda: list(
            EmployeeProject.select(EmployeeProject.project)
            .where(EmployeeProject.employee == actor.id)
            .tuples()
        ),
        what=f"проекты сотрудника id={actor.id}",
    )
    return {project_id for (project_id,) in rows}


def ensure_project_access(actor: Actor | None, project_id: int) -> Actor:
    actor = require_actor(actor)
    allowed = allowed_project_ids(actor)
    if allowed is not None and project_id not in allowed:
        logger.warning(
            "⛔ Сотрудник id=%s: нет доступа к проекту id=%s", actor.id, project_id
        )
        raise AccessDeniedError(f"Нет доступа к проекту id={project_id}")
    return actor


def can_view_reservation_notes(actor: Actor, reservation: Reservation) -> bool:
    if sees_all_projects(actor):
        return True
    return reservation.employee_id == actor.id

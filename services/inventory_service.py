"""Удаление юнитов и проектов, закрепление проектов за сотрудниками."""

from __future__ import annotations

import logging
from typing import Iterable

from database.db import db
from database.models import (
    Client,
    Employee,
    EmployeeProject,
    FollowUp,
    Project,
    ProjectModel,
    Reservation,
    Sale,
    Unit,
    UnitStatus,
)
from services.access import Actor, ensure_admin, ensure_project_access, require_actor
from services.errors import ValidationError
from services.query_utils import get_or_not_found, read_with_retry

logger = logging.getLogger(__name__)


def delete_unit(actor: Actor | None, unit_id: int) -> None:
    """Удалить свободный юнит без броней и продаж."""
    actor = require_actor(actor)
    unit = get_or_not_found(Unit, unit_id, "Юнит")
    ensure_project_access(actor, unit.project_id)
    if unit.status != UnitStatus.AVAILABLE.value:
        logger.warning("❌ Юнит id=%s в статусе %s нельзя удалить", unit.id, unit.status)
        raise ValidationError(
            f"Удалить можно только свободный юнит, статус юнита {unit.unit_code}: {unit.status}"
        )
    reservations = read_with_retry(
        lambda: Reservation.select().where(Reservation.unit == unit.id).count(),
        what=f"брони юнита id={unit.id}",
    )
    sales = read_with_retry(
        lambda: Sale.select().where(Sale.unit == unit.id).count(),
        what=f"продажи юнита id={unit.id}",
    )
    if reservations or sales:
        raise ValidationError(
            f"У юнита {unit.unit_code} есть брони ({reservations}) или продажи ({sales})"
        )
    with db.atomic():
        # история контактов сохраняется без ссылки на юнит
        FollowUp.update(unit=None).where(FollowUp.unit == unit.id).execute()
        unit.delete_instance()
    logger.info("🗑️ Юнит id=%s (%s) удалён", unit.id, unit.unit_code)


def delete_project(actor: Actor | None, project_id: int) -> None:
    """Удалить проект без юнитов. Только для администратора."""
    ensure_admin(actor)
    project = get_or_not_found(Project, project_id, "Проект")
    units = read_with_retry(
        lambda: Unit.select().where(Unit.project == project.id).count(),
        what=f"юниты проекта id={project.id}",
    )
    if units:
        logger.warning("❌ Проект id=%s содержит %s юнитов", project.id, units)
        raise ValidationError(
            f"Нельзя удалить проект '{project.name}': в нём {units} юнитов"
        )
    with db.atomic():
        EmployeeProject.delete().where(EmployeeProject.project == project.id).execute()
        ProjectModel.delete().where(ProjectModel.project == project.id).execute()
        Client.update(interested_in_project=None).where(
            Client.interested_in_project == project.id
        ).execute()
        project.delete_instance()
    logger.info("🗑️ Проект id=%s (%s) удалён", project.id, project.name)


def assign_employee_projects(
    actor: Actor | None, employee_id: int, project_ids: Iterable[int]
) -> list[int]:
    """Заменить набор проектов сотрудника."""
    ensure_admin(actor)
    employee = get_or_not_found(Employee, employee_id, "Сотрудник")
    wanted = sorted({int(pid) for pid in project_ids})
    if wanted:
        existing = read_with_retry(
            lambda: {
                pid
                for (pid,) in Project.select(Project.id)
                .where(Project.id.in_(wanted))
                .tuples()
            },
            what="проверка проектов",
        )
        missing = [pid for pid in wanted if pid not in existing]
        if missing:
            raise ValidationError(f"Проекты не найдены: {missing}")

    with db.atomic():
        EmployeeProject.delete().where(EmployeeProject.employee == employee.id).execute()
        for pid in wanted:
            EmployeeProject.create(employee=employee.id, project=pid)
    logger.info("👥 Сотруднику id=%s назначены проекты %s", employee.id, wanted)
    return wanted

"""Закрепление клиентов за продавцами."""

from __future__ import annotations

import logging
from typing import Iterable

from peewee import JOIN, ModelSelect

from database.db import db
from database.models import Client, ClientAssignment, Employee, EmployeeRole
from services.access import Actor, ensure_manager, require_actor, sees_all_projects
from services.errors import AccessDeniedError, ValidationError
from services.query_utils import build_or_condition, get_or_not_found, read_with_retry
from .dto import AssignmentChange

logger = logging.getLogger(__name__)


def _search(query: ModelSelect, search_text: str) -> ModelSelect:
    condition = build_or_condition([Client.name, Client.mobile], search_text.strip())
    return query.where(condition) if condition is not None else query


def build_assigned_clients_query(employee_id: int, search_text: str = "") -> ModelSelect:
    """Клиенты продавца, последние закреплённые сверху."""
    query = (
        Client.select()
        .join(ClientAssignment)
        .where(ClientAssignment.employee == employee_id)
        .order_by(ClientAssignment.created_at.desc(), ClientAssignment.id.desc())
    )
    return _search(query, search_text)


def list_assigned_clients(
    actor: Actor | None, employee_id: int, search_text: str = ""
) -> list[Client]:
    actor = require_actor(actor)
    if not sees_all_projects(actor) and employee_id != actor.id:
        raise AccessDeniedError("Продавец видит только своих клиентов")
    query = build_assigned_clients_query(employee_id, search_text or "")
    return read_with_retry(lambda: list(query), what=f"клиенты сотрудника id={employee_id}")


def list_unassigned_clients(actor: Actor | None, search_text: str = "") -> list[Client]:
    """Клиенты, не закреплённые ни за кем, новые сверху."""
    ensure_manager(actor)
    query = (
        Client.select()
        .join(ClientAssignment, JOIN.LEFT_OUTER)
        .where(ClientAssignment.id.is_null())
        .order_by(Client.created_at.desc(), Client.id.desc())
    )
    query = _search(query, search_text or "")
    return read_with_retry(lambda: list(query), what="незакреплённые клиенты")


def save_client_assignments(
    actor: Actor | None, employee_id: int, client_ids: Iterable[int]
) -> AssignmentChange:
    """Привести набор клиентов продавца к ``client_ids``.

    Добавляются только новые закрепления, лишние снимаются; существующие
    сохраняют дату закрепления.
    """
    actor = ensure_manager(actor)
    employee = get_or_not_found(Employee, employee_id, "Сотрудник")
    if employee.role != EmployeeRole.SALES.value or not employee.is_active:
        raise ValidationError(
            f"Клиентов можно закреплять только за активным продавцом, id={employee.id}"
        )
    wanted = {int(cid) for cid in client_ids}
    if wanted:
        existing = read_with_retry(
            lambda: {
                cid
                for (cid,) in Client.select(Client.id)
                .where(Client.id.in_(list(wanted)))
                .tuples()
            },
            what="проверка клиентов",
        )
        missing = sorted(wanted - existing)
        if missing:
            raise ValidationError(f"Клиенты не найдены: {missing}")

    current = read_with_retry(
        lambda: {
            cid
            for (cid,) in ClientAssignment.select(ClientAssignment.client)
            .where(ClientAssignment.employee == employee.id)
            .tuples()
        },
        what=f"клиенты сотрудника id={employee.id}",
    )
    change = AssignmentChange(
        added=sorted(wanted - current), removed=sorted(current - wanted)
    )
    if not change.added and not change.removed:
        logger.info("ℹ️ Клиенты сотрудника id=%s без изменений", employee.id)
        return change

    with db.atomic():
        if change.removed:
            ClientAssignment.delete().where(
                (ClientAssignment.employee == employee.id)
                & (ClientAssignment.client.in_(change.removed))
            ).execute()
        for cid in change.added:
            ClientAssignment.create(
                client=cid, employee=employee.id, assigned_by=actor.id
            )
    logger.info(
        "👥 Сотруднику id=%s: закреплено клиентов %s, снято %s",
        employee.id,
        len(change.added),
        len(change.removed),
    )
    return change

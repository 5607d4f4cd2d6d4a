"""Отчёт об активности сотрудника за период."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from peewee import JOIN, fn

from database.models import (
    Client,
    Employee,
    FollowUp,
    Reservation,
    ReservationNote,
    Sale,
    Unit,
)
from services.access import (
    Actor,
    allowed_project_ids,
    require_actor,
    sees_all_projects,
)
from services.errors import AccessDeniedError, ValidationError
from services.query_utils import get_or_not_found, read_with_retry
from services.validators import parse_required_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeActivity:
    employee_id: int
    start: date
    end: date
    follow_ups: int = 0
    reservations_created: int = 0
    reservations_followed: int = 0
    # созданные и сопровождённые без повторов
    reservations_total: int = 0
    sales: int = 0
    sales_amount: Decimal = Decimal("0.00")
    reservation_notes: int = 0


def _period(start: Any, end: Any) -> tuple[date, date, datetime, datetime]:
    start_date = parse_required_date(start, "start")
    end_date = parse_required_date(end, "end")
    if start_date > end_date:
        raise ValidationError(
            f"Начало периода {start_date} позже окончания {end_date}"
        )
    since = datetime.combine(start_date, time.min)
    until = datetime.combine(end_date + timedelta(days=1), time.min)
    return start_date, end_date, since, until


def _follow_up_count(employee_id, since, until, allowed) -> int:
    query = FollowUp.select().where(
        (FollowUp.employee == employee_id)
        & (FollowUp.created_at >= since)
        & (FollowUp.created_at < until)
    )
    if allowed is not None:
        ids = list(allowed)
        # контакт без юнита относится к проекту, которым интересуется клиент
        query = (
            query.join(Client, on=(FollowUp.client == Client.id))
            .switch(FollowUp)
            .join(Unit, JOIN.LEFT_OUTER, on=(FollowUp.unit == Unit.id))
            .where(
                Unit.project.in_(ids)
                | (FollowUp.unit.is_null() & Client.interested_in_project.in_(ids))
            )
        )
    return query.count()


def _reservation_counts(employee_id, since, until, allowed) -> tuple[int, int, int]:
    created = (
        (Reservation.employee == employee_id)
        & (Reservation.created_at >= since)
        & (Reservation.created_at < until)
    )
    followed = (
        (Reservation.follow_employee == employee_id)
        & (Reservation.last_follow_up_at >= since)
        & (Reservation.last_follow_up_at < until)
    )

    def count(condition) -> int:
        query = Reservation.select().join(Unit).where(condition)
        if allowed is not None:
            query = query.where(Unit.project.in_(list(allowed)))
        return query.count()

    return count(created), count(followed), count(created | followed)


def _sales_totals(employee_id, since, until, allowed) -> tuple[int, Decimal]:
    query = Sale.select(
        fn.COUNT(Sale.id).alias("cnt"),
        fn.COALESCE(fn.SUM(Sale.price_before_tax), 0).alias("amount"),
    ).where(
        (Sale.sales_employee == employee_id)
        & (Sale.created_at >= since)
        & (Sale.created_at < until)
    )
    if allowed is not None:
        query = query.where(Sale.project.in_(list(allowed)))
    row = query.dicts().get()
    return row["cnt"], Decimal(str(row["amount"])).quantize(Decimal("0.01"))


def _note_count(employee_id, since, until, allowed) -> int:
    query = (
        ReservationNote.select()
        .join(Reservation)
        .join(Unit)
        .where(
            (ReservationNote.created_by == employee_id)
            & (ReservationNote.created_at >= since)
            & (ReservationNote.created_at < until)
        )
    )
    if allowed is not None:
        query = query.where(Unit.project.in_(list(allowed)))
    return query.count()


def get_employee_activity(
    actor: Actor | None, employee_id: int, start: Any, end: Any
) -> EmployeeActivity:
    """Счётчики работы сотрудника за период ``start``..``end`` включительно.

    Учитываются контакты с клиентами, созданные и сопровождённые брони
    (по ``follow_employee`` и ``last_follow_up_at``), продажи и отметки
    броней. Всё ограничено проектами того, кто смотрит отчёт. Продавец
    видит только собственную активность.
    """
    actor = require_actor(actor)
    start_date, end_date, since, until = _period(start, end)
    if not sees_all_projects(actor) and employee_id != actor.id:
        logger.warning(
            "⛔ Сотрудник id=%s: нет доступа к отчёту сотрудника id=%s",
            actor.id,
            employee_id,
        )
        raise AccessDeniedError("Продавец видит только свой отчёт")
    employee = get_or_not_found(Employee, employee_id, "Сотрудник")
    allowed = allowed_project_ids(actor)

    def _collect() -> EmployeeActivity:
        created, followed, total = _reservation_counts(
            employee.id, since, until, allowed
        )
        sales, amount = _sales_totals(employee.id, since, until, allowed)
        return EmployeeActivity(
            employee_id=employee.id,
            start=start_date,
            end=end_date,
            follow_ups=_follow_up_count(employee.id, since, until, allowed),
            reservations_created=created,
            reservations_followed=followed,
            reservations_total=total,
            sales=sales,
            sales_amount=amount,
            reservation_notes=_note_count(employee.id, since, until, allowed),
        )

    activity = read_with_retry(
        _collect, what=f"отчёт по сотруднику id={employee.id}"
    )
    logger.info(
        "📊 Отчёт по сотруднику id=%s за %s..%s: контактов %s, броней %s, продаж %s",
        employee.id,
        start_date,
        end_date,
        activity.follow_ups,
        activity.reservations_total,
        activity.sales,
    )
    return activity

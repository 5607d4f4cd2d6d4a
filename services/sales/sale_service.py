"""Сервис оформления продаж по броням."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime

from peewee import ModelSelect

from database.models import (
    Client,
    ClientStatus,
    Employee,
    Reservation,
    ReservationStatus,
    Sale,
    Unit,
    UnitStatus,
)
from services.access import (
    Actor,
    allowed_project_ids,
    ensure_project_access,
    require_actor,
)
from services.errors import StaleStateError, ValidationError
from services.query_utils import (
    build_or_condition,
    get_or_not_found,
    read_with_retry,
    swap_status,
)
from services.transition import Transition
from services.validators import (
    parse_price,
    parse_required_date,
    pick_fields,
    require_ids,
)
from .dto import SALE_CONTRACT_FIELDS, SaleCreateCommand

logger = logging.getLogger(__name__)


# ──────────────────────────── Получение ─────────────────────────────


def get_sale_by_id(sale_id: int) -> Sale | None:
    return Sale.get_or_none(Sale.id == sale_id)


def build_sale_query(actor: Actor, search_text: str = "") -> ModelSelect:
    """Продажи в проектах сотрудника, поиск по имени клиента и коду юнита."""
    query = Sale.select(Sale, Client, Unit).join(Client).switch(Sale).join(Unit)
    allowed = allowed_project_ids(actor)
    if allowed is not None:
        query = query.where(Sale.project.in_(list(allowed)))
    condition = build_or_condition([Client.name, Unit.unit_code], search_text.strip())
    if condition is not None:
        query = query.where(condition)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc())


def list_sales(actor: Actor | None, search_text: str = "") -> list[Sale]:
    actor = require_actor(actor)
    query = build_sale_query(actor, search_text or "")
    return read_with_retry(lambda: list(query), what="список продаж")


def find_reservation_to_restore(sale: Sale) -> Reservation | None:
    """Бронь, которую нужно вернуть в ``active`` при удалении продажи.

    Сначала бронь, связанная с продажей. Для продаж без связи берётся самая
    новая ``converted``-бронь той же пары клиент/юнит.
    """
    if sale.reservation_id:
        linked = Reservation.get_or_none(Reservation.id == sale.reservation_id)
        if linked is not None and linked.status == ReservationStatus.CONVERTED.value:
            return linked

    candidates = (
        Reservation.select()
        .where(
            (Reservation.client == sale.client_id)
            & (Reservation.unit == sale.unit_id)
            & (Reservation.status == ReservationStatus.CONVERTED.value)
        )
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
    )
    found = list(candidates.limit(2))
    if len(found) > 1:
        logger.warning(
            "⚠️ Продажа id=%s: несколько оформленных броней для клиента id=%s и юнита id=%s, "
            "восстанавливается самая новая id=%s",
            sale.id,
            sale.client_id,
            sale.unit_id,
            found[0].id,
        )
    return found[0] if found else None


# ──────────────────────────── Переходы ─────────────────────────────


def convert_to_sale(
    actor: Actor | None,
    reservation_id: int,
    client_id: int,
    unit_id: int,
    employee_id: int,
    sale_fields: SaleCreateCommand | None,
    *,
    atomic: bool | None = None,
) -> Sale:
    """Оформить продажу по активной брони.

    Бронь → ``converted``, юнит → ``sold``, клиент → ``converted``.
    Сумма ``price_before_tax`` обязана быть неотрицательным числом;
    при ошибке проверки продажа не создаётся.
    """
    actor = require_actor(actor)
    require_ids(
        reservation_id=reservation_id,
        client_id=client_id,
        unit_id=unit_id,
        employee_id=employee_id,
    )
    sale_fields = sale_fields or SaleCreateCommand()
    sale_date = parse_required_date(sale_fields.sale_date, "sale_date")
    try:
        price = parse_price(sale_fields.price_before_tax)
    except ValidationError as exc:
        logger.warning("❌ Продажа по брони id=%s: %s", reservation_id, exc)
        raise
    contract = pick_fields(asdict(sale_fields), SALE_CONTRACT_FIELDS)

    reservation = get_or_not_found(Reservation, reservation_id, "Бронь")
    client = get_or_not_found(Client, client_id, "Клиент")
    unit = get_or_not_found(Unit, unit_id, "Юнит")
    employee = get_or_not_found(Employee, employee_id, "Сотрудник")
    if reservation.client_id != client.id or reservation.unit_id != unit.id:
        raise ValidationError(
            f"Бронь id={reservation.id} не относится к клиенту id={client.id} "
            f"и юниту id={unit.id}"
        )
    ensure_project_access(actor, unit.project_id)
    if reservation.status != ReservationStatus.ACTIVE.value:
        raise StaleStateError(
            "reservation", reservation.id, [ReservationStatus.ACTIVE.value], reservation.status
        )
    if unit.status != UnitStatus.RESERVED.value:
        raise StaleStateError("unit", unit.id, [UnitStatus.RESERVED.value], unit.status)

    now = datetime.now()
    tr = Transition(
        "convert_to_sale",
        atomic=atomic,
        context={"reservation_id": reservation.id, "unit_id": unit.id},
    )
    tr.step(
        "insert_sale",
        lambda: Sale.create(
            client=client.id,
            unit=unit.id,
            project=unit.project_id,
            sales_employee=employee.id,
            reservation=reservation.id,
            sale_date=sale_date,
            price_before_tax=price,
            **contract,
        ),
        compensate=lambda: tr.results["insert_sale"].delete_instance(),
        result=True,
    )
    tr.step(
        "reservation_status",
        lambda: swap_status(
            Reservation,
            "reservation",
            reservation.id,
            ReservationStatus.CONVERTED,
            expected=[ReservationStatus.ACTIVE],
            converted_at=now,
        ),
        compensate=lambda: swap_status(
            Reservation,
            "reservation",
            reservation.id,
            ReservationStatus.ACTIVE,
            expected=[ReservationStatus.CONVERTED],
            converted_at=None,
        ),
    )
    tr.step(
        "unit_status",
        lambda: swap_status(
            Unit,
            "unit",
            unit.id,
            UnitStatus.SOLD,
            expected=[UnitStatus.RESERVED],
            sold_at=now,
        ),
        compensate=lambda: swap_status(
            Unit,
            "unit",
            unit.id,
            UnitStatus.RESERVED,
            expected=[UnitStatus.SOLD],
            sold_at=None,
        ),
    )
    tr.step(
        "client_status",
        lambda: swap_status(
            Client, "client", client.id, ClientStatus.CONVERTED, converted_at=now
        ),
        follow_through=True,
    )
    sale = tr.run()
    logger.info(
        "💰 Продажа id=%s: бронь id=%s, юнит %s, сумма %s",
        sale.id,
        reservation.id,
        unit.unit_code,
        price,
    )
    return sale


def delete_sale(actor: Actor | None, sale_id: int, *, atomic: bool | None = None) -> None:
    """Удалить продажу, вернув бронь, юнит и клиента в состояние брони.

    Запись продажи удаляется последней.
    """
    actor = require_actor(actor)
    sale = get_or_not_found(Sale, sale_id, "Продажа")
    ensure_project_access(actor, sale.project_id)
    reservation = read_with_retry(
        lambda: find_reservation_to_restore(sale),
        what=f"поиск брони продажи id={sale.id}",
    )
    client = get_or_not_found(Client, sale.client_id, "Клиент")
    previous_client_status = client.status

    tr = Transition(
        "delete_sale",
        atomic=atomic,
        context={"sale_id": sale.id, "unit_id": sale.unit_id},
    )
    if reservation is not None:
        tr.step(
            "reservation_status",
            lambda: swap_status(
                Reservation,
                "reservation",
                reservation.id,
                ReservationStatus.ACTIVE,
                expected=[ReservationStatus.CONVERTED],
                converted_at=None,
            ),
            compensate=lambda: swap_status(
                Reservation,
                "reservation",
                reservation.id,
                ReservationStatus.CONVERTED,
                expected=[ReservationStatus.ACTIVE],
                converted_at=reservation.converted_at,
            ),
        )
    else:
        logger.warning("⚠️ Продажа id=%s: бронь для восстановления не найдена", sale.id)
    tr.step(
        "unit_status",
        lambda: swap_status(
            Unit,
            "unit",
            sale.unit_id,
            UnitStatus.RESERVED,
            expected=[UnitStatus.SOLD],
            sold_at=None,
        ),
        compensate=lambda: swap_status(
            Unit, "unit", sale.unit_id, UnitStatus.SOLD, expected=[UnitStatus.RESERVED]
        ),
    )
    tr.step(
        "client_status",
        lambda: swap_status(
            Client, "client", client.id, ClientStatus.RESERVED, converted_at=None
        ),
        compensate=lambda: Client.update(
            status=previous_client_status, converted_at=client.converted_at
        )
        .where(Client.id == client.id)
        .execute(),
    )
    tr.step("delete_sale", lambda: sale.delete_instance())
    tr.run()
    logger.info("🗑️ Продажа id=%s удалена, юнит id=%s снова забронирован", sale.id, sale.unit_id)

"""Сервис бронирования юнитов."""

from __future__ import annotations

import logging
from datetime import date, datetime

from peewee import ModelSelect, fn

from config import get_settings
from database.models import (
    Client,
    ClientStatus,
    Reservation,
    ReservationNote,
    ReservationStatus,
    Sale,
    Unit,
    UnitStatus,
)
from services.access import (
    Actor,
    allowed_project_ids,
    can_view_reservation_notes,
    ensure_project_access,
    require_actor,
)
from services.errors import AccessDeniedError, StaleStateError, ValidationError
from services.query_utils import get_or_not_found, read_with_retry, swap_status
from services.transition import Transition
from services.validators import clean_text, combine_notes, parse_optional_date
from .dto import (
    NOTE_MAX_LENGTH,
    NOTE_OPTIONS,
    ReservationCreateCommand,
    ReservationStats,
)

logger = logging.getLogger(__name__)

NOTES_LIMIT = 200


# ──────────────────────────── Получение ─────────────────────────────


def get_reservation_by_id(reservation_id: int) -> Reservation | None:
    return Reservation.get_or_none(Reservation.id == reservation_id)


def build_reservation_query(
    actor: Actor,
    *,
    status: str | ReservationStatus | None = None,
    project_id: int | None = None,
    client_id: int | None = None,
) -> ModelSelect:
    """Брони, видимые сотруднику, новые сверху."""
    query = Reservation.select(Reservation, Unit).join(Unit)
    allowed = allowed_project_ids(actor)
    if allowed is not None:
        query = query.where(Unit.project.in_(list(allowed)))
    if project_id is not None:
        query = query.where(Unit.project == project_id)
    if client_id is not None:
        query = query.where(Reservation.client == client_id)
    if status:
        query = query.where(
            Reservation.status == ReservationStatus(getattr(status, "value", status)).value
        )
    return query.order_by(Reservation.created_at.desc(), Reservation.id.desc())


def list_reservations(
    actor: Actor | None,
    *,
    status: str | ReservationStatus | None = None,
    project_id: int | None = None,
    client_id: int | None = None,
) -> list[Reservation]:
    actor = require_actor(actor)
    try:
        query = build_reservation_query(
            actor, status=status, project_id=project_id, client_id=client_id
        )
    except ValueError:
        raise ValidationError(f"Неизвестный статус брони: '{status}'") from None
    return read_with_retry(lambda: list(query), what="список броней")


def get_reservation_stats(
    actor: Actor | None, project_id: int | None = None
) -> ReservationStats:
    """Количество броней по статусам в пределах проектов сотрудника."""
    actor = require_actor(actor)
    query = (
        build_reservation_query(actor, project_id=project_id)
        .select(Reservation.status, fn.COUNT(Reservation.id).alias("cnt"))
        .group_by(Reservation.status)
        .order_by()
        .tuples()
    )
    counts = dict(read_with_retry(lambda: list(query), what="статистика броней"))
    return ReservationStats(
        total=sum(counts.values()),
        active=counts.get(ReservationStatus.ACTIVE.value, 0),
        cancelled=counts.get(ReservationStatus.CANCELLED.value, 0),
        converted=counts.get(ReservationStatus.CONVERTED.value, 0),
    )


def list_reservable_units(actor: Actor | None, project_id: int) -> list[Unit]:
    """Свободные юниты проекта, доступного сотруднику."""
    ensure_project_access(actor, project_id)
    query = (
        Unit.select()
        .where(
            (Unit.project == project_id)
            & (Unit.status == UnitStatus.AVAILABLE.value)
        )
        .order_by(Unit.unit_code)
    )
    return read_with_retry(lambda: list(query), what=f"юниты проекта id={project_id}")


# ──────────────────────────── Переходы ─────────────────────────────


def _reserve_unit(unit_id: int, strict: bool) -> int:
    if not strict:
        current = Unit.get_or_none(Unit.id == unit_id)
        if current is not None and current.status == UnitStatus.RESERVED.value:
            logger.warning(
                "⚠️ Юнит id=%s уже забронирован, повторная бронь разрешена настройкой",
                unit_id,
            )
            return 0
    return swap_status(
        Unit, "unit", unit_id, UnitStatus.RESERVED, expected=[UnitStatus.AVAILABLE]
    )


def _release_unit(unit_id: int) -> int:
    return swap_status(
        Unit, "unit", unit_id, UnitStatus.AVAILABLE, expected=[UnitStatus.RESERVED]
    )


def _release_unit_if_free(unit_id: int, reservation_id: int) -> int:
    """Освободить юнит, если его не держит другая активная бронь."""
    holders = (
        Reservation.select()
        .where(
            (Reservation.unit == unit_id)
            & (Reservation.id != reservation_id)
            & (Reservation.status == ReservationStatus.ACTIVE.value)
        )
        .count()
    )
    if holders:
        logger.info(
            "ℹ️ Юнит id=%s остаётся забронированным: активных броней %s",
            unit_id,
            holders,
        )
        return 0
    return _release_unit(unit_id)


def _revert_client_if_unreserved(
    client_id: int,
    *,
    exclude_id: int | None = None,
    ignore_cancelled: bool = False,
) -> bool:
    """Вернуть клиента в ``new``, если других броней не осталось."""
    query = Reservation.select().where(Reservation.client == client_id)
    if exclude_id is not None:
        query = query.where(Reservation.id != exclude_id)
    if ignore_cancelled:
        query = query.where(Reservation.status != ReservationStatus.CANCELLED.value)
    remaining = query.count()
    if remaining:
        logger.info(
            "ℹ️ У клиента id=%s остались брони (%s), статус не меняется",
            client_id,
            remaining,
        )
        return False
    current = Client.get_or_none(Client.id == client_id)
    if current is not None and current.status == ClientStatus.NEW.value:
        return False
    swap_status(Client, "client", client_id, ClientStatus.NEW)
    return True


def create_reservation(
    actor: Actor | None,
    client_id: int,
    unit_id: int,
    details: ReservationCreateCommand | None = None,
    *,
    atomic: bool | None = None,
    require_available_unit: bool | None = None,
) -> Reservation:
    """Забронировать юнит за клиентом.

    Создаёт бронь в статусе ``active`` и переводит юнит и клиента в
    ``reserved``. По умолчанию бронировать можно только свободный юнит:
    статус юнита меняется сравнением-с-обменом ``available → reserved``.
    """
    actor = require_actor(actor)
    details = details or ReservationCreateCommand()
    reservation_date = (
        parse_optional_date(details.reservation_date, "reservation_date")
        or date.today()
    )
    if require_available_unit is None:
        require_available_unit = get_settings().require_available_unit

    client = get_or_not_found(Client, client_id, "Клиент")
    unit = get_or_not_found(Unit, unit_id, "Юнит")
    ensure_project_access(actor, unit.project_id)
    if unit.status == UnitStatus.SOLD.value:
        raise StaleStateError("unit", unit.id, [UnitStatus.AVAILABLE.value], unit.status)

    tr = Transition(
        "create_reservation",
        atomic=atomic,
        context={"client_id": client.id, "unit_id": unit.id},
    )
    tr.step(
        "insert_reservation",
        lambda: Reservation.create(
            client=client.id,
            unit=unit.id,
            employee=actor.id,
            reservation_date=reservation_date,
            status=ReservationStatus.ACTIVE.value,
            **details.to_payload(),
        ),
        compensate=lambda: tr.results["insert_reservation"].delete_instance(),
        result=True,
    )
    tr.step(
        "unit_status",
        lambda: _reserve_unit(unit.id, require_available_unit),
        compensate=lambda: tr.results["unit_status"] and _release_unit(unit.id),
    )
    tr.step(
        "client_status",
        lambda: swap_status(Client, "client", client.id, ClientStatus.RESERVED),
        follow_through=True,
    )
    reservation = tr.run()
    logger.info(
        "🏠 Бронь id=%s: клиент id=%s, юнит %s (id=%s)",
        reservation.id,
        client.id,
        unit.unit_code,
        unit.id,
    )
    return reservation


def _ensure_not_sold(reservation: Reservation) -> None:
    sales = Sale.select().where(Sale.reservation == reservation.id).count()
    if sales or reservation.status == ReservationStatus.CONVERTED.value:
        logger.warning(
            "❌ Бронь id=%s связана с продажей, удаление/отмена запрещены",
            reservation.id,
        )
        raise ValidationError(
            f"Бронь id={reservation.id} оформлена продажей: сначала удалите продажу"
        )


def delete_reservation(
    actor: Actor | None, reservation_id: int, *, atomic: bool | None = None
) -> None:
    """Удалить бронь и освободить юнит.

    Порядок: удаление брони → юнит ``available`` → клиент ``new``, если
    других броней у клиента не осталось. Юнит отменённой брони уже
    освобождён и не трогается.
    """
    actor = require_actor(actor)
    reservation = get_or_not_found(Reservation, reservation_id, "Бронь")
    unit = get_or_not_found(Unit, reservation.unit_id, "Юнит")
    ensure_project_access(actor, unit.project_id)
    read_with_retry(
        lambda: _ensure_not_sold(reservation), what=f"проверка продаж брони id={reservation.id}"
    )

    was_active = reservation.status == ReservationStatus.ACTIVE.value
    client_id = reservation.client_id

    def _delete_row() -> int:
        ReservationNote.delete().where(
            ReservationNote.reservation == reservation.id
        ).execute()
        return reservation.delete_instance()

    tr = Transition(
        "delete_reservation",
        atomic=atomic,
        context={"reservation_id": reservation.id, "client_id": client_id},
    )
    tr.step("delete_reservation", _delete_row)
    if was_active:
        tr.step(
            "unit_status",
            lambda: _release_unit_if_free(unit.id, reservation.id),
            follow_through=True,
        )
    tr.step(
        "client_status",
        lambda: _revert_client_if_unreserved(client_id),
        follow_through=True,
    )
    tr.run()
    logger.info("🗑️ Бронь id=%s удалена", reservation_id)


def cancel_reservation(
    actor: Actor | None, reservation_id: int, *, atomic: bool | None = None
) -> Reservation:
    """Отменить активную бронь, сохранив запись."""
    actor = require_actor(actor)
    reservation = get_or_not_found(Reservation, reservation_id, "Бронь")
    unit = get_or_not_found(Unit, reservation.unit_id, "Юнит")
    ensure_project_access(actor, unit.project_id)
    read_with_retry(
        lambda: _ensure_not_sold(reservation), what=f"проверка продаж брони id={reservation.id}"
    )

    tr = Transition(
        "cancel_reservation",
        atomic=atomic,
        context={"reservation_id": reservation.id},
    )
    tr.step(
        "reservation_status",
        lambda: swap_status(
            Reservation,
            "reservation",
            reservation.id,
            ReservationStatus.CANCELLED,
            expected=[ReservationStatus.ACTIVE],
            cancelled_at=datetime.now(),
        ),
    )
    tr.step(
        "unit_status",
        lambda: _release_unit_if_free(unit.id, reservation.id),
        follow_through=True,
    )
    tr.step(
        "client_status",
        lambda: _revert_client_if_unreserved(
            reservation.client_id, exclude_id=reservation.id, ignore_cancelled=True
        ),
        follow_through=True,
    )
    tr.run()
    logger.info("🚫 Бронь id=%s отменена", reservation.id)
    return Reservation.get_by_id(reservation.id)


# ──────────────────────────── Отметки ─────────────────────────────


def _get_visible_reservation(actor: Actor, reservation_id: int) -> Reservation:
    reservation = get_or_not_found(Reservation, reservation_id, "Бронь")
    if not can_view_reservation_notes(actor, reservation):
        logger.warning(
            "⛔ Сотрудник id=%s: нет доступа к отметкам брони id=%s",
            actor.id,
            reservation_id,
        )
        raise AccessDeniedError(f"Нет доступа к брони id={reservation_id}")
    return reservation


def list_reservation_notes(
    actor: Actor | None, reservation_id: int
) -> list[ReservationNote]:
    actor = require_actor(actor)
    _get_visible_reservation(actor, reservation_id)
    query = (
        ReservationNote.select()
        .where(ReservationNote.reservation == reservation_id)
        .order_by(ReservationNote.created_at.asc(), ReservationNote.id.asc())
        .limit(NOTES_LIMIT)
    )
    return read_with_retry(lambda: list(query), what="отметки брони")


def add_reservation_note(
    actor: Actor | None,
    reservation_id: int,
    *,
    picked: str | None = None,
    typed: str | None = None,
    atomic: bool | None = None,
) -> list[ReservationNote]:
    """Добавить отметку сопровождения к активной брони.

    Выбранная из :data:`NOTE_OPTIONS` отметка и свободный текст
    сохраняются отдельными строками.
    """
    actor = require_actor(actor)
    reservation = _get_visible_reservation(actor, reservation_id)
    if reservation.status != ReservationStatus.ACTIVE.value:
        raise ValidationError("Отметки можно добавлять только к активной брони")

    picked = clean_text(picked)
    typed = clean_text(typed)
    if not picked and not typed:
        raise ValidationError("Выберите отметку или введите текст")
    if picked and picked not in NOTE_OPTIONS:
        raise ValidationError(f"Недопустимая отметка: '{picked}'")
    if typed and len(typed) > NOTE_MAX_LENGTH:
        raise ValidationError(
            f"Отметка слишком длинная (максимум {NOTE_MAX_LENGTH} символов)"
        )

    texts = [text for text in (picked, typed) if text]

    def _insert_notes() -> list[ReservationNote]:
        return [
            ReservationNote.create(
                reservation=reservation.id, note_text=text, created_by=actor.id
            )
            for text in texts
        ]

    tr = Transition(
        "reservation_note",
        atomic=atomic,
        context={"reservation_id": reservation.id},
    )
    tr.step("insert_notes", _insert_notes, result=True)
    tr.step(
        "follow_up_meta",
        lambda: Reservation.update(
            follow_employee=actor.id,
            last_follow_up_at=datetime.now(),
            follow_up_details=combine_notes(picked, typed),
        )
        .where(Reservation.id == reservation.id)
        .execute(),
        follow_through=True,
    )
    notes = tr.run()
    logger.info("📝 Бронь id=%s: добавлено отметок %s", reservation.id, len(notes))
    return notes

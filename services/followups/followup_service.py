"""Журнал контактов с клиентом и статус клиента после контакта."""

from __future__ import annotations

import logging
from datetime import date

from peewee import ModelSelect

from database.models import Client, ClientStatus, FollowUp, FollowUpType, Unit
from services.access import Actor, ensure_project_access, require_actor
from services.errors import ValidationError
from services.query_utils import get_or_not_found, read_with_retry, swap_status
from services.transition import Transition
from services.validators import clean_text, combine_notes, parse_optional_date

logger = logging.getLogger(__name__)


def _parse_type(value: str | FollowUpType) -> FollowUpType:
    try:
        return FollowUpType(getattr(value, "value", value))
    except ValueError:
        raise ValidationError(f"Неизвестный тип контакта: '{value}'") from None


def status_after_follow_up(follow_type: FollowUpType) -> ClientStatus:
    """Визит → ``visited``, любой другой контакт → ``interested``."""
    if follow_type is FollowUpType.VISIT:
        return ClientStatus.VISITED
    return ClientStatus.INTERESTED


def record_follow_up(
    actor: Actor | None,
    client_id: int,
    type: str | FollowUpType,
    notes: str | None = None,
    next_date: date | str | None = None,
    *,
    details: str | None = None,
    visit_location: str | None = None,
    unit_id: int | None = None,
    atomic: bool | None = None,
) -> FollowUp:
    """Записать контакт и обновить статус клиента.

    Статус перезаписывается всегда, независимо от предыдущего. Проверки
    выполняются до первой записи в базу.
    """
    actor = require_actor(actor)
    follow_type = _parse_type(type)
    location = clean_text(visit_location)
    if follow_type is FollowUpType.VISIT and not location:
        logger.warning("❌ Визит клиента id=%s без места визита", client_id)
        raise ValidationError("Для визита укажите место визита")
    next_follow_up_date = parse_optional_date(next_date, "next_follow_up_date")

    client = get_or_not_found(Client, client_id, "Клиент")
    unit = None
    if unit_id not in (None, ""):
        unit = get_or_not_found(Unit, unit_id, "Юнит")
        ensure_project_access(actor, unit.project_id)

    target = status_after_follow_up(follow_type)
    tr = Transition(
        "follow_up",
        atomic=atomic,
        context={"client_id": client.id, "type": follow_type.value},
    )
    tr.step(
        "insert_follow_up",
        lambda: FollowUp.create(
            client=client.id,
            employee=actor.id,
            unit=unit.id if unit else None,
            type=follow_type.value,
            notes=combine_notes(details, notes),
            next_follow_up_date=next_follow_up_date,
            visit_location=location if follow_type is FollowUpType.VISIT else None,
        ),
        result=True,
    )
    tr.step(
        "client_status",
        lambda: swap_status(Client, "client", client.id, target),
        follow_through=True,
    )
    follow_up = tr.run()
    logger.info(
        "📞 Контакт id=%s (%s) с клиентом id=%s, статус → %s",
        follow_up.id,
        follow_type.value,
        client.id,
        target.value,
    )
    return follow_up


def get_follow_ups_by_client_id(client_id: int) -> ModelSelect:
    """Контакты клиента, новые сверху."""
    return (
        FollowUp.select()
        .where(FollowUp.client == client_id)
        .order_by(FollowUp.created_at.desc(), FollowUp.id.desc())
    )


def list_follow_ups(client_id: int) -> list[FollowUp]:
    return read_with_retry(
        lambda: list(get_follow_ups_by_client_id(client_id)),
        what=f"контакты клиента id={client_id}",
    )

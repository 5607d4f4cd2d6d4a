from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime

from database.models import Reservation, ReservationNote, Unit

# Стандартные отметки сопровождения брони
NOTE_OPTIONS: tuple[str, ...] = (
    "Бронь действует — покупатель хочет отменить",
    "Заявка подаётся",
    "Нет ответа",
    "Перевод зарплаты — смена финансирующей организации",
    "Новая — в работе",
    "Накопление первого взноса",
    "Ожидание одобрения банка",
    "Подбор ставки",
    "Подбор финансирующей организации",
    "Сделка исполнена",
    "Задержка со стороны финансирующей организации",
    "Погашение обязательств",
    "Клиент несерьёзен",
    "Период ожидания банка",
    "Ожидание зачисления зарплаты",
    "Отказ финансирующей организации",
    "Клиента невозможно профинансировать",
)

NOTE_MAX_LENGTH = 500


@dataclass(frozen=True)
class ReservationCreateCommand:
    reservation_date: date | str | None = None
    bank_name: str | None = None
    bank_employee_name: str | None = None
    bank_employee_mobile: str | None = None
    notes: str | None = None

    def to_payload(self) -> dict:
        payload: dict[str, object] = {}
        for key, value in asdict(self).items():
            if key == "reservation_date" or value in (None, ""):
                continue
            payload[key] = value.strip() if isinstance(value, str) else value
        return payload


@dataclass
class ReservationDTO:
    id: int
    client_id: int
    client_name: str
    unit_id: int
    unit_code: str
    project_id: int
    employee_id: int | None
    status: str
    reservation_date: date
    bank_name: str | None
    notes: str | None
    follow_employee_id: int | None
    last_follow_up_at: datetime | None
    follow_up_details: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, reservation: Reservation) -> "ReservationDTO":
        unit = reservation.unit
        return cls(
            id=reservation.id,
            client_id=reservation.client_id,
            client_name=reservation.client.name,
            unit_id=unit.id,
            unit_code=unit.unit_code,
            project_id=unit.project_id,
            employee_id=reservation.employee_id,
            status=reservation.status,
            reservation_date=reservation.reservation_date,
            bank_name=reservation.bank_name,
            notes=reservation.notes,
            follow_employee_id=reservation.follow_employee_id,
            last_follow_up_at=reservation.last_follow_up_at,
            follow_up_details=reservation.follow_up_details,
            created_at=reservation.created_at,
        )


@dataclass(frozen=True)
class ReservationStats:
    total: int = 0
    active: int = 0
    cancelled: int = 0
    converted: int = 0


@dataclass
class ReservationNoteDTO:
    id: int
    reservation_id: int
    note_text: str
    created_by_id: int | None
    created_by_name: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, note: ReservationNote) -> "ReservationNoteDTO":
        return cls(
            id=note.id,
            reservation_id=note.reservation_id,
            note_text=note.note_text,
            created_by_id=note.created_by_id,
            created_by_name=note.created_by.name if note.created_by_id else None,
            created_at=note.created_at,
        )


@dataclass
class UnitDTO:
    id: int
    project_id: int
    unit_code: str
    block_no: str | None
    status: str

    @classmethod
    def from_model(cls, unit: Unit) -> "UnitDTO":
        return cls(
            id=unit.id,
            project_id=unit.project_id,
            unit_code=unit.unit_code,
            block_no=unit.block_no,
            status=unit.status,
        )

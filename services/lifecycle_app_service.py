"""Прикладной сервис жизненного цикла сделки на уровне интерфейса.

Текущий сотрудник определяется один раз на каждое действие и передаётся
в доменные функции явно. Наружу отдаются DTO, а не модели Peewee.
"""

from __future__ import annotations

from typing import Iterable

from services.access import Actor, ActorResolver, require_actor
from services.assignments import (
    AssignmentChange,
    ClientDTO,
    list_assigned_clients,
    list_unassigned_clients,
    save_client_assignments,
)
from services.followups import (
    FollowUpCommand,
    FollowUpDTO,
    list_follow_ups,
    record_follow_up,
)
from services.inventory_service import (
    assign_employee_projects,
    delete_project,
    delete_unit,
)
from services.report_service import EmployeeActivity, get_employee_activity
from services.reservations import (
    ReservationCreateCommand,
    ReservationDTO,
    ReservationNoteDTO,
    ReservationStats,
    UnitDTO,
    add_reservation_note,
    cancel_reservation,
    create_reservation,
    delete_reservation,
    get_reservation_stats,
    list_reservable_units,
    list_reservation_notes,
    list_reservations,
)
from services.sales import (
    SaleCreateCommand,
    SaleDTO,
    convert_to_sale,
    delete_sale,
    list_sales,
)


class LifecycleAppService:
    """Фасад между интерфейсом и сервисами контактов, броней и продаж."""

    def __init__(self, actor_resolver: ActorResolver) -> None:
        self._actor_resolver = actor_resolver

    def current_actor(self) -> Actor:
        return require_actor(self._actor_resolver())

    # ───── контакты ─────

    def record_follow_up(self, command: FollowUpCommand) -> FollowUpDTO:
        follow_up = record_follow_up(
            self.current_actor(),
            command.client_id,
            command.type,
            command.notes,
            command.next_follow_up_date,
            details=command.details,
            visit_location=command.visit_location,
            unit_id=command.unit_id,
        )
        return FollowUpDTO.from_model(follow_up)

    def get_follow_ups(self, client_id: int) -> list[FollowUpDTO]:
        self.current_actor()
        return [FollowUpDTO.from_model(f) for f in list_follow_ups(client_id)]

    # ───── брони ─────

    def get_reservable_units(self, project_id: int) -> list[UnitDTO]:
        units = list_reservable_units(self.current_actor(), project_id)
        return [UnitDTO.from_model(unit) for unit in units]

    def create_reservation(
        self,
        client_id: int,
        unit_id: int,
        command: ReservationCreateCommand | None = None,
    ) -> ReservationDTO:
        reservation = create_reservation(
            self.current_actor(), client_id, unit_id, command
        )
        return ReservationDTO.from_model(reservation)

    def cancel_reservation(self, reservation_id: int) -> ReservationDTO:
        reservation = cancel_reservation(self.current_actor(), reservation_id)
        return ReservationDTO.from_model(reservation)

    def delete_reservation(self, reservation_id: int) -> None:
        delete_reservation(self.current_actor(), reservation_id)

    def get_reservations(
        self, *, status: str | None = None, project_id: int | None = None
    ) -> list[ReservationDTO]:
        rows = list_reservations(
            self.current_actor(), status=status, project_id=project_id
        )
        return [ReservationDTO.from_model(r) for r in rows]

    def get_reservation_stats(self, project_id: int | None = None) -> ReservationStats:
        return get_reservation_stats(self.current_actor(), project_id)

    def get_employee_activity(self, employee_id: int, start, end) -> EmployeeActivity:
        return get_employee_activity(self.current_actor(), employee_id, start, end)

    def get_notes(self, reservation_id: int) -> list[ReservationNoteDTO]:
        notes = list_reservation_notes(self.current_actor(), reservation_id)
        return [ReservationNoteDTO.from_model(n) for n in notes]

    def add_note(
        self,
        reservation_id: int,
        *,
        picked: str | None = None,
        typed: str | None = None,
    ) -> list[ReservationNoteDTO]:
        notes = add_reservation_note(
            self.current_actor(), reservation_id, picked=picked, typed=typed
        )
        return [ReservationNoteDTO.from_model(n) for n in notes]

    # ───── продажи ─────

    def convert_to_sale(
        self,
        reservation_id: int,
        client_id: int,
        unit_id: int,
        employee_id: int,
        command: SaleCreateCommand | None,
    ) -> SaleDTO:
        sale = convert_to_sale(
            self.current_actor(),
            reservation_id,
            client_id,
            unit_id,
            employee_id,
            command,
        )
        return SaleDTO.from_model(sale)

    def delete_sale(self, sale_id: int) -> None:
        delete_sale(self.current_actor(), sale_id)

    def get_sales(self, search_text: str = "") -> list[SaleDTO]:
        return [SaleDTO.from_model(s) for s in list_sales(self.current_actor(), search_text)]

    # ───── справочники ─────

    def delete_unit(self, unit_id: int) -> None:
        delete_unit(self.current_actor(), unit_id)

    def delete_project(self, project_id: int) -> None:
        delete_project(self.current_actor(), project_id)

    def assign_projects(self, employee_id: int, project_ids: Iterable[int]) -> list[int]:
        return assign_employee_projects(self.current_actor(), employee_id, project_ids)

    # ───── закрепление клиентов ─────

    def get_assigned_clients(
        self, employee_id: int, search_text: str = ""
    ) -> list[ClientDTO]:
        clients = list_assigned_clients(self.current_actor(), employee_id, search_text)
        return [ClientDTO.from_model(c) for c in clients]

    def get_unassigned_clients(self, search_text: str = "") -> list[ClientDTO]:
        clients = list_unassigned_clients(self.current_actor(), search_text)
        return [ClientDTO.from_model(c) for c in clients]

    def save_assignments(
        self, employee_id: int, client_ids: Iterable[int]
    ) -> AssignmentChange:
        return save_client_assignments(self.current_actor(), employee_id, client_ids)


__all__ = ["LifecycleAppService"]

from datetime import date

import pytest

from database.models import (
    Client,
    ClientStatus,
    EmployeeRole,
    Reservation,
    Sale,
    Unit,
)
from factories import make_client, make_employee, make_unit
from services.access import Actor
from services.errors import AccessDeniedError, ValidationError
from services.followups import FollowUpCommand
from services.lifecycle_app_service import LifecycleAppService
from services.reservations import NOTE_OPTIONS, ReservationCreateCommand
from services.sales import SaleCreateCommand


@pytest.fixture()
def service(seller):
    return LifecycleAppService(lambda: seller)


def _state(client, unit, reservation_id=None):
    state = (Client.get_by_id(client.id).status, Unit.get_by_id(unit.id).status)
    if reservation_id is not None:
        state += (Reservation.get_by_id(reservation_id).status,)
    return state


def test_full_lead_to_sale_and_back(service, seller, client, unit):
    assert client.status == ClientStatus.NEW.value

    follow_up = service.record_follow_up(
        FollowUpCommand(client_id=client.id, type="call", notes="интересуется 3-комн.")
    )
    assert follow_up.employee_id == seller.id
    assert _state(client, unit) == ("interested", "available")

    reservation = service.create_reservation(
        client.id, unit.id, ReservationCreateCommand(bank_name="Банк")
    )
    assert reservation.client_name == client.name
    assert reservation.unit_code == unit.unit_code
    assert _state(client, unit, reservation.id) == ("reserved", "reserved", "active")

    sale = service.convert_to_sale(
        reservation.id,
        client.id,
        unit.id,
        seller.id,
        SaleCreateCommand(sale_date=date(2024, 6, 1), price_before_tax="1 200 000"),
    )
    assert sale.reservation_id == reservation.id
    assert sale.sales_employee_name == seller.name
    assert _state(client, unit, reservation.id) == ("converted", "sold", "converted")

    service.delete_sale(sale.id)
    assert Sale.select().count() == 0
    assert _state(client, unit, reservation.id) == ("reserved", "reserved", "active")


def test_sale_round_trip_restores_previous_statuses(service, seller, client, unit):
    reservation = service.create_reservation(client.id, unit.id)
    service.record_follow_up(
        FollowUpCommand(client_id=client.id, type="visit", visit_location="Шоурум")
    )
    before = _state(client, unit, reservation.id)
    assert before == ("visited", "reserved", "active")

    sale = service.convert_to_sale(
        reservation.id,
        client.id,
        unit.id,
        seller.id,
        SaleCreateCommand(sale_date="2024-06-01", price_before_tax="10"),
    )
    service.delete_sale(sale.id)

    # после удаления продажи клиент возвращается в reserved
    assert _state(client, unit, reservation.id) == ("reserved", "reserved", "active")


def test_service_lists_and_notes(service, seller, client, unit, project):
    reservation = service.create_reservation(client.id, unit.id)
    make_unit(project, "A-102")

    assert [u.unit_code for u in service.get_reservable_units(project.id)] == ["A-102"]
    assert [r.id for r in service.get_reservations(status="active")] == [reservation.id]
    assert service.get_reservation_stats().active == 1

    notes = service.add_note(reservation.id, picked=NOTE_OPTIONS[2])
    assert notes[0].created_by_name == seller.name
    assert [n.note_text for n in service.get_notes(reservation.id)] == [NOTE_OPTIONS[2]]

    cancelled = service.cancel_reservation(reservation.id)
    assert cancelled.status == "cancelled"
    assert service.get_follow_ups(client.id) == []


def test_sales_list_through_service(service, seller, client, unit):
    reservation = service.create_reservation(client.id, unit.id)
    service.convert_to_sale(
        reservation.id,
        client.id,
        unit.id,
        seller.id,
        SaleCreateCommand(sale_date="2024-06-01", price_before_tax="10"),
    )
    assert [s.unit_code for s in service.get_sales("A-1")] == [unit.unit_code]


def test_delete_reservation_through_service(service, client, unit):
    reservation = service.create_reservation(client.id, unit.id)
    service.delete_reservation(reservation.id)
    assert _state(client, unit) == ("new", "available")


def test_non_numeric_price_through_service(service, seller, client, unit):
    reservation = service.create_reservation(client.id, unit.id)
    with pytest.raises(ValidationError):
        service.convert_to_sale(
            reservation.id,
            client.id,
            unit.id,
            seller.id,
            SaleCreateCommand(sale_date="2024-06-01", price_before_tax="дорого"),
        )
    assert Sale.select().count() == 0


def test_actor_is_resolved_once_per_call(in_memory_db, project):
    employee = make_employee(EmployeeRole.ADMIN)
    calls = []

    def resolver():
        calls.append(1)
        return Actor.from_employee(employee)

    service = LifecycleAppService(resolver)
    client = make_client()
    unit = make_unit(project)

    service.create_reservation(client.id, unit.id)
    assert len(calls) == 1


def test_missing_actor_is_rejected(in_memory_db, client):
    service = LifecycleAppService(lambda: None)
    with pytest.raises(AccessDeniedError):
        service.record_follow_up(FollowUpCommand(client_id=client.id, type="call"))


def test_admin_only_operations_through_service(service, project):
    with pytest.raises(AccessDeniedError):
        service.delete_project(project.id)
    with pytest.raises(AccessDeniedError):
        service.assign_projects(1, [project.id])


def test_assignments_and_activity_through_service(admin, seller, client, unit):
    service = LifecycleAppService(lambda: admin)

    change = service.save_assignments(seller.id, [client.id])
    assert change.added == [client.id]
    assert [c.name for c in service.get_assigned_clients(seller.id)] == [client.name]
    assert service.get_unassigned_clients() == []

    LifecycleAppService(lambda: seller).create_reservation(client.id, unit.id)
    activity = service.get_employee_activity(seller.id, date.today(), date.today())
    assert activity.reservations_created == 1

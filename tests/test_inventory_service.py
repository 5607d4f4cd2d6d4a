import pytest

from database.models import (
    Client,
    EmployeeProject,
    EmployeeRole,
    FollowUp,
    Project,
    ProjectModel,
    Unit,
)
from factories import make_client, make_employee, make_project, make_unit
from services.errors import AccessDeniedError, ValidationError
from services.followups import record_follow_up
from services.inventory_service import (
    assign_employee_projects,
    delete_project,
    delete_unit,
)
from services.reservations import cancel_reservation, create_reservation


def test_delete_available_unit(admin, seller, client, unit):
    follow_up = record_follow_up(seller, client.id, "call", unit_id=unit.id)

    delete_unit(admin, unit.id)

    assert Unit.select().count() == 0
    assert FollowUp.get_by_id(follow_up.id).unit_id is None


def test_reserved_unit_cannot_be_deleted(admin, client, unit):
    create_reservation(admin, client.id, unit.id)
    with pytest.raises(ValidationError):
        delete_unit(admin, unit.id)
    assert Unit.select().count() == 1


def test_unit_with_cancelled_reservation_is_kept(admin, client, unit):
    reservation = create_reservation(admin, client.id, unit.id)
    cancel_reservation(admin, reservation.id)

    with pytest.raises(ValidationError):
        delete_unit(admin, unit.id)


def test_seller_cannot_delete_foreign_unit(seller):
    foreign = make_unit(make_project("Чужой"))
    with pytest.raises(AccessDeniedError):
        delete_unit(seller, foreign.id)


def test_delete_project_requires_admin(seller, project):
    with pytest.raises(AccessDeniedError):
        delete_project(seller, project.id)


def test_project_with_units_cannot_be_deleted(admin, unit, project):
    with pytest.raises(ValidationError):
        delete_project(admin, project.id)
    assert Project.select().count() == 1


def test_delete_empty_project(admin, seller, project):
    ProjectModel.create(project=project, name="Тип A")
    lead = make_client("Лид", interested_in_project=project)

    delete_project(admin, project.id)

    assert Project.select().count() == 0
    assert EmployeeProject.select().count() == 0
    assert ProjectModel.select().count() == 0
    assert Client.get_by_id(lead.id).interested_in_project_id is None


def test_assign_employee_projects_replaces_set(admin, in_memory_db):
    first, second, third = (make_project(n) for n in ("A", "B", "C"))
    employee = make_employee(EmployeeRole.SALES)
    EmployeeProject.create(employee=employee, project=first)

    result = assign_employee_projects(admin, employee.id, [third.id, second.id, third.id])

    assert result == sorted([second.id, third.id])
    linked = {
        link.project_id
        for link in EmployeeProject.select().where(EmployeeProject.employee == employee.id)
    }
    assert linked == {second.id, third.id}

    assert assign_employee_projects(admin, employee.id, []) == []
    assert EmployeeProject.select().count() == 0


def test_assign_unknown_project(admin, in_memory_db):
    employee = make_employee()
    with pytest.raises(ValidationError):
        assign_employee_projects(admin, employee.id, [12345])


def test_assign_requires_admin(seller, in_memory_db):
    with pytest.raises(AccessDeniedError):
        assign_employee_projects(seller, seller.id, [])

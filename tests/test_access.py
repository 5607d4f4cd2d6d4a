import pytest

from database.models import Employee, EmployeeProject, EmployeeRole, Reservation
from factories import make_client, make_employee, make_project, make_unit
from services.access import (
    Actor,
    EmployeeEmailResolver,
    allowed_project_ids,
    can_view_reservation_notes,
    ensure_admin,
    ensure_project_access,
    require_actor,
)
from services.errors import AccessDeniedError, ValidationError


def test_resolver_finds_active_employee_by_email(in_memory_db):
    employee = make_employee(EmployeeRole.SALES_MANAGER, email="boss@example.com")

    actor = EmployeeEmailResolver(lambda: "  Boss@Example.com ")()

    assert actor == Actor(employee.id, EmployeeRole.SALES_MANAGER, employee.name)


def test_resolver_skips_missing_and_inactive(in_memory_db):
    make_employee(email="gone@example.com", is_active=False)

    assert EmployeeEmailResolver(lambda: None)() is None
    assert EmployeeEmailResolver(lambda: "gone@example.com")() is None
    assert EmployeeEmailResolver(lambda: "nobody@example.com")() is None


def test_unknown_role_is_rejected(in_memory_db):
    employee = Employee.create(name="X", email="x@example.com", role="guest")
    with pytest.raises(ValidationError):
        Actor.from_employee(employee)


def test_require_actor_and_admin():
    admin = Actor(1, EmployeeRole.ADMIN)
    manager = Actor(2, EmployeeRole.SALES_MANAGER)

    with pytest.raises(AccessDeniedError):
        require_actor(None)
    assert ensure_admin(admin) is admin
    with pytest.raises(AccessDeniedError):
        ensure_admin(manager)


def test_project_scope_by_role(in_memory_db):
    first = make_project("A")
    second = make_project("B")
    seller = make_employee()
    EmployeeProject.create(employee=seller, project=first)

    seller_actor = Actor.from_employee(seller)
    manager = Actor(99, EmployeeRole.SALES_MANAGER)

    assert allowed_project_ids(seller_actor) == {first.id}
    assert allowed_project_ids(manager) is None
    ensure_project_access(seller_actor, first.id)
    ensure_project_access(manager, second.id)
    with pytest.raises(AccessDeniedError):
        ensure_project_access(seller_actor, second.id)


def test_note_visibility(in_memory_db):
    owner = make_employee()
    other = make_employee()
    reservation = Reservation.create(
        client=make_client(), unit=make_unit(make_project()), employee=owner
    )

    assert can_view_reservation_notes(Actor.from_employee(owner), reservation)
    assert not can_view_reservation_notes(Actor.from_employee(other), reservation)
    assert can_view_reservation_notes(Actor(5, EmployeeRole.SALES_MANAGER), reservation)


@pytest.mark.parametrize(
    "session_email", ["Ivan.Petrov@Example.com", "ivan.petrov@example.com"]
)
def test_resolver_ignores_stored_email_case(in_memory_db, session_email):
    employee = make_employee(email="Ivan.Petrov@Example.com")

    actor = EmployeeEmailResolver(lambda: session_email)()

    assert actor is not None
    assert actor.id == employee.id

import pytest

from database.models import EmployeeProject, EmployeeRole
from factories import make_client, make_employee, make_project, make_unit
from services.access import Actor


@pytest.fixture()
def project(in_memory_db):
    return make_project("Жемчужина")


@pytest.fixture()
def admin(in_memory_db):
    return Actor.from_employee(make_employee(EmployeeRole.ADMIN, name="Админ"))


@pytest.fixture()
def seller(in_memory_db, project):
    """Продавец, за которым закреплён ``project``."""
    employee = make_employee(EmployeeRole.SALES, name="Продавец")
    EmployeeProject.create(employee=employee, project=project)
    return Actor.from_employee(employee)


@pytest.fixture()
def client(in_memory_db):
    return make_client("Иван Петров")


@pytest.fixture()
def unit(project):
    return make_unit(project, "A-101")

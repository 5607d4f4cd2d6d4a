"""Фабрики тестовых записей."""

from datetime import date
from itertools import count

from database.models import Client, Employee, EmployeeRole, Project, Unit
from services.sales import SaleCreateCommand

_seq = count(1)


def make_project(name: str = "Проект", **kwargs) -> Project:
    return Project.create(name=name, **kwargs)


def make_employee(role: EmployeeRole = EmployeeRole.SALES, **kwargs) -> Employee:
    n = next(_seq)
    kwargs.setdefault("name", f"Сотрудник {n}")
    kwargs.setdefault("email", f"employee{n}@example.com")
    return Employee.create(role=role.value, **kwargs)


def make_client(name: str = "Клиент", **kwargs) -> Client:
    return Client.create(name=name, **kwargs)


def make_unit(project: Project, unit_code: str | None = None, **kwargs) -> Unit:
    return Unit.create(
        project=project, unit_code=unit_code or f"U-{next(_seq)}", **kwargs
    )


def sale_fields(**overrides) -> SaleCreateCommand:
    data = dict(sale_date=date(2024, 5, 1), price_before_tax="450 000,00")
    data.update(overrides)
    return SaleCreateCommand(**data)

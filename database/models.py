from datetime import datetime
from enum import Enum

from peewee import (
    BooleanField,
    CharField,
    DateField,
    DateTimeField,
    DecimalField,
    ForeignKeyField,
    Model,
    TextField,
)

from database.db import db


class BaseModel(Model):
    created_at = DateTimeField(default=datetime.now, index=True)

    class Meta:
        database = db


# ───────────────────────────── Статусы ─────────────────────────────


class EmployeeRole(str, Enum):
    ADMIN = "admin"
    SALES_MANAGER = "sales_manager"
    SALES = "sales"


class ClientStatus(str, Enum):
    NEW = "new"
    LEAD = "lead"
    INTERESTED = "interested"
    VISITED = "visited"
    RESERVED = "reserved"
    CONVERTED = "converted"


class UnitStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"


class ReservationStatus(str, Enum):
    ACTIVE = "active"
    CONVERTED = "converted"
    CANCELLED = "cancelled"


class FollowUpType(str, Enum):
    CALL = "call"
    WHATSAPP = "whatsapp"
    VISIT = "visit"


# ───────────────────────────── Справочники ─────────────────────────────


class Project(BaseModel):
    name = CharField(index=True)
    code = CharField(null=True)

    def __str__(self) -> str:
        return self.name


class ProjectModel(BaseModel):
    """Типовая планировка (модель) юнитов проекта."""

    project = ForeignKeyField(Project, backref="models")
    name = CharField()

    def __str__(self) -> str:
        return self.name


class Employee(BaseModel):
    name = CharField()
    email = CharField(unique=True)
    mobile = CharField(null=True)
    role = CharField(default=EmployeeRole.SALES.value)
    is_active = BooleanField(default=True)

    def __str__(self) -> str:
        return self.name


class EmployeeProject(BaseModel):
    """Проекты, закреплённые за сотрудником отдела продаж."""

    employee = ForeignKeyField(Employee, backref="project_links")
    project = ForeignKeyField(Project, backref="employee_links")

    class Meta:
        indexes = ((("employee", "project"), True),)


# ───────────────────────────── Жизненный цикл ─────────────────────────────


class Client(BaseModel):
    name = CharField(index=True)
    mobile = CharField(null=True)
    identity_no = CharField(null=True)
    interested_in_project = ForeignKeyField(Project, null=True, backref="leads")
    status = CharField(default=ClientStatus.NEW.value, index=True)
    converted_at = DateTimeField(null=True)

    def __str__(self) -> str:
        return self.name


class Unit(BaseModel):
    project = ForeignKeyField(Project, backref="units")
    model = ForeignKeyField(ProjectModel, null=True, backref="units")
    unit_code = CharField(index=True)
    block_no = CharField(null=True)
    status = CharField(default=UnitStatus.AVAILABLE.value, index=True)
    sold_at = DateTimeField(null=True)

    def __str__(self) -> str:
        return self.unit_code


class Reservation(BaseModel):
    client = ForeignKeyField(Client, backref="reservations")
    unit = ForeignKeyField(Unit, backref="reservations")
    employee = ForeignKeyField(Employee, null=True, backref="reservations")
    reservation_date = DateField(default=lambda: datetime.now().date())
    status = CharField(default=ReservationStatus.ACTIVE.value, index=True)
    converted_at = DateTimeField(null=True)
    cancelled_at = DateTimeField(null=True)

    # финансирование, только для отображения
    bank_name = CharField(null=True)
    bank_employee_name = CharField(null=True)
    bank_employee_mobile = CharField(null=True)
    notes = TextField(null=True)

    # последняя отметка сопровождения
    follow_employee = ForeignKeyField(
        Employee, null=True, backref="followed_reservations"
    )
    last_follow_up_at = DateTimeField(null=True)
    follow_up_details = TextField(null=True)

    def __str__(self) -> str:
        return f"Бронь #{self.id} ({self.status})"


class ReservationNote(BaseModel):
    reservation = ForeignKeyField(Reservation, backref="notes_log")
    note_text = TextField()
    created_by = ForeignKeyField(Employee, null=True, backref="reservation_notes")


class Sale(BaseModel):
    client = ForeignKeyField(Client, backref="sales")
    unit = ForeignKeyField(Unit, backref="sales")
    project = ForeignKeyField(Project, backref="sales")
    sales_employee = ForeignKeyField(Employee, backref="sales")
    reservation = ForeignKeyField(Reservation, null=True, backref="sales")
    sale_date = DateField()
    price_before_tax = DecimalField(max_digits=14, decimal_places=2)
    contract_support_no = CharField(null=True)
    contract_talad_no = CharField(null=True)
    contract_type = CharField(null=True)
    finance_type = CharField(null=True)
    finance_entity = CharField(null=True)

    def __str__(self) -> str:
        return f"Продажа #{self.id}"


class FollowUp(BaseModel):
    """Неизменяемая запись о контакте с клиентом."""

    client = ForeignKeyField(Client, backref="follow_ups")
    employee = ForeignKeyField(Employee, backref="follow_ups")
    unit = ForeignKeyField(Unit, null=True, backref="follow_ups")
    type = CharField()
    notes = TextField(null=True)
    next_follow_up_date = DateField(null=True)
    visit_location = CharField(null=True)


class ClientAssignment(BaseModel):
    """Клиент, закреплённый за продавцом; ``created_at`` служит датой закрепления."""

    client = ForeignKeyField(Client, backref="assignments")
    employee = ForeignKeyField(Employee, backref="client_assignments")
    assigned_by = ForeignKeyField(Employee, null=True, backref="given_assignments")

    class Meta:
        indexes = ((("client", "employee"), True),)
